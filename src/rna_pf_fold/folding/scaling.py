"""
Scale factors that keep partition-function values inside float range.

Every stored interval value is multiplied by ``scale[d] = pf_scale ** -d``
for its length `d`, so with `pf_scale` close to the per-nucleotide
Boltzmann weight of a typical structure the numbers stay near 1.
"""
from __future__ import annotations
from dataclasses import dataclass
import logging
from math import exp
import sys

import numpy as np

logger = logging.getLogger(__name__)

# Mean free energy per nucleotide of random sequences (kcal/mol) at 37 °C
# and its temperature slope, used for the default scale estimate.
MEAN_ENERGY_PER_NT_37 = -0.185
MEAN_ENERGY_SLOPE = 0.00727

# Safety factor applied to a free-energy estimate when rescaling.
DEFAULT_SFACT = 1.07

# Running maxima above this trigger an overflow warning.
MAX_REAL = sys.float_info.max
OVERFLOW_WARNING_LEVEL = MAX_REAL / 10.0

# Ensemble weights at or below this are reported as underflow.
MIN_REAL = sys.float_info.min


class PartitionOverflowError(ArithmeticError):
    """
    Raised when a partition-function cell reaches the largest finite float.

    The caller should retry with a larger `pf_scale` (e.g. via
    :func:`rna_pf_fold.folding.partition.rescale_pf_params`).
    """
    def __init__(self, i: int, j: int, value: float):
        self.i = i
        self.j = j
        self.value = value
        super().__init__(f"overflow in pf_fold while calculating q[{i},{j}]; use larger pf_scale")


@dataclass(slots=True)
class ScaleFactors:
    """
    Per-length scale vectors of one fold compound.

    Attributes
    ----------
    pf_scale : float
        Per-nucleotide scale.
    scale : np.ndarray
        ``scale[d] = pf_scale ** -d`` for ``d = 0..n + 1``.
    exp_ml_base : np.ndarray
        ``exp_ml_base[d] = ml_base_weight ** d * scale[d]``.
    """
    pf_scale: float
    scale: np.ndarray
    exp_ml_base: np.ndarray


def estimate_pf_scale(kt: float, temp_c: float) -> float:
    """
    Default `pf_scale` from the mean free energy of random sequences.

    Parameters
    ----------
    kt : float
        Thermal energy in kcal/mol.
    temp_c : float
        Temperature in Celsius.

    Returns
    -------
    float
        ``exp(-G_nt / kT)`` with ``G_nt = -0.185 + 0.00727 (T - 37)``, never below 1.
    """
    pf_scale = exp(-(MEAN_ENERGY_PER_NT_37 + MEAN_ENERGY_SLOPE * (temp_c - 37.0)) / kt)

    return max(pf_scale, 1.0)


def pf_scale_from_energy(free_energy: float, seq_len: int, kt: float, sfact: float = DEFAULT_SFACT) -> float:
    """
    `pf_scale` derived from a free-energy estimate `G` of the whole molecule.

    Returns
    -------
    float
        ``exp(-sfact * G / (kT * n))``; 1 for an empty sequence.
    """
    if seq_len <= 0:
        return 1.0

    return exp(-(sfact * free_energy) / kt / seq_len)


def make_scale_factors(seq_len: int, pf_scale: float, ml_base_weight: float) -> ScaleFactors:
    """
    Build `scale` and `exp_ml_base` for lengths ``0..n + 1``.

    Parameters
    ----------
    seq_len : int
        Sequence (alignment) length `n`.
    pf_scale : float
        Per-nucleotide scale.
    ml_base_weight : float
        Boltzmann weight of one unpaired multiloop nucleotide (raised to
        ``n_seq`` for alignments by the caller).

    Raises
    ------
    ValueError
        If `pf_scale` is not positive.
    """
    if not pf_scale > 0.0:
        raise ValueError(f"pf_scale must be positive, got {pf_scale}.")

    lengths = np.arange(seq_len + 2, dtype=np.float64)
    scale = np.power(1.0 / pf_scale, lengths)
    exp_ml_base = np.power(ml_base_weight, lengths) * scale
    logger.debug(f"Scale factors: pf_scale={pf_scale:.6g}, n={seq_len}")

    return ScaleFactors(pf_scale=pf_scale, scale=scale, exp_ml_base=exp_ml_base)
