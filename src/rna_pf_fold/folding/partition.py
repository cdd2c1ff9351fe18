"""
Driver of the partition-function passes and one-shot folding helpers.
"""
from __future__ import annotations
from dataclasses import dataclass, replace
import logging
import math
from typing import List, Optional, Sequence

from rna_pf_fold.energies import BoltzmannEnergyModelProtocol
from rna_pf_fold.folding.circular import fill_circular
from rna_pf_fold.folding.fold_compound import (
    CompoundKind,
    FoldCompound,
    GQuadFn,
    make_alignment_fold_compound,
    make_fold_compound,
)
from rna_pf_fold.folding.fold_state import make_pf_fold_state
from rna_pf_fold.folding.pair_probs import DEFAULT_PROB_CUTOFF, pair_probabilities, plist_from_probs
from rna_pf_fold.folding.pf_recurrences import PartitionFoldingConfig, PartitionFunctionEngine, free_energy_from_q
from rna_pf_fold.folding.scaling import MIN_REAL, make_scale_factors, pf_scale_from_energy
from rna_pf_fold.rules.hard_constraints import HardConstraints
from rna_pf_fold.rules.soft_constraints import SoftConstraints
from rna_pf_fold.rules.unstructured_domains import UnstructuredDomains
from rna_pf_fold.structures import PairProbability
from rna_pf_fold.utils.nucleotide_utils import normalize_sequence

logger = logging.getLogger(__name__)

# Free energy reported when a fold compound cannot be handled.
PF_FAILURE_ENERGY = 100000.0


@dataclass(frozen=True, slots=True)
class PartitionResult:
    """
    Outcome of a one-shot partition-function fold.

    Attributes
    ----------
    free_energy : float
        Ensemble free energy in kcal/mol (per sequence for alignments).
    fold_compound : FoldCompound
        The filled compound, for further queries.
    probabilities : List[PairProbability], optional
        Pair probabilities above the cutoff, when requested.
    """
    free_energy: float
    fold_compound: FoldCompound
    probabilities: Optional[List[PairProbability]] = None


def _ensemble_weight(fc: FoldCompound) -> float:
    config = fc.config
    state = fc.state
    n = fc.seq_len
    if config.backtrack_type == "C":
        return state.qb.get(1, n)
    if config.backtrack_type == "M":
        return state.qm.get(1, n)
    if config.circular:
        return state.qo

    return state.q.get(1, n)


def pf(fc: FoldCompound) -> float:
    """
    Fills the partition function of `fc` and returns the ensemble free energy.

    Runs the linear pass, the circular post-processing for circular
    compounds and, if ``config.compute_bpp`` is set, the pair probabilities.
    The matrices are reallocated first, so a compound can be folded again
    after :func:`rescale_pf_params`.

    Parameters
    ----------
    fc : FoldCompound
        A single-sequence or alignment compound.

    Returns
    -------
    float
        ``(-ln Q - n ln pf_scale) * kT / n_seq`` in kcal/mol, `+∞` for an
        empty ensemble, or `PF_FAILURE_ENERGY` for an unknown compound kind.

    Raises
    ------
    PartitionOverflowError
        If `pf_scale` is too small for this sequence.
    """
    if fc.kind not in (CompoundKind.SINGLE, CompoundKind.ALIGNMENT):
        logger.warning(f"Unrecognized fold compound type {fc.kind!r}; no partition function computed.")
        return PF_FAILURE_ENERGY

    config = fc.config
    n = fc.seq_len
    fc.state = make_pf_fold_state(n, store_qm1=config.needs_qm1)

    PartitionFunctionEngine(config).fill_linear(fc)
    if config.circular:
        fill_circular(fc)

    q_total = _ensemble_weight(fc)
    if q_total <= MIN_REAL:
        logger.warning("pf_scale too large")
    free_energy = free_energy_from_q(q_total, n, fc.scale_factors.pf_scale, fc.kT, fc.n_seq)
    logger.info(f"Ensemble free energy: {free_energy:.4f} kcal/mol")

    if config.compute_bpp:
        pair_probabilities(fc)

    return free_energy


def subsequence_free_energy(fc: FoldCompound, i: int, j: int) -> float:
    """
    Ensemble free energy of the subsequence ``[i, j]`` from ``Q(i, j)``.

    Raises
    ------
    ValueError
        If ``1 <= i <= j <= n`` does not hold.
    RuntimeError
        If the linear pass has not run.
    """
    n = fc.seq_len
    if not 1 <= i <= j <= n:
        raise ValueError(f"Invalid subsequence ({i}, {j}) for length {n}.")
    if not fc.state.linear_filled:
        raise RuntimeError("Subsequence free energies require a filled partition function.")

    return free_energy_from_q(fc.state.q.get(i, j), j - i + 1, fc.scale_factors.pf_scale, fc.kT, fc.n_seq)


def rescale_pf_params(fc: FoldCompound, free_energy: float) -> float:
    """
    Recompute `pf_scale` and the scale vectors from a free-energy estimate.

    Parameters
    ----------
    fc : FoldCompound
        The compound to rescale.
    free_energy : float
        Estimated free energy of the whole molecule in kcal/mol (per sequence
        for alignments), e.g. the MFE or a previous ensemble free energy.

    Returns
    -------
    float
        The new `pf_scale`.
    """
    n = fc.seq_len
    pf_scale = pf_scale_from_energy(free_energy * fc.n_seq, n, fc.kT, fc.config.sfact)
    pf_scale = max(pf_scale, 1.0)
    fc.scale_factors = make_scale_factors(n, pf_scale, fc.model.exp_ml_base ** fc.n_seq)
    logger.info(f"Rescaled pf_scale to {pf_scale:.6g} from free energy {free_energy:.3f} kcal/mol")

    return pf_scale


def _result(fc: FoldCompound, free_energy: float, cutoff: float) -> PartitionResult:
    probabilities = plist_from_probs(fc, cutoff) if fc.state.probs is not None else None

    return PartitionResult(free_energy=free_energy, fold_compound=fc, probabilities=probabilities)


def pf_fold(
    seq: str,
    constraint: Optional[str] = None,
    *,
    config: Optional[PartitionFoldingConfig] = None,
    model: Optional[BoltzmannEnergyModelProtocol] = None,
    soft: Optional[SoftConstraints] = None,
    domains: Optional[UnstructuredDomains] = None,
    gquad: Optional[GQuadFn] = None,
    cutoff: float = DEFAULT_PROB_CUTOFF,
) -> PartitionResult:
    """
    Partition function (and optionally pair probabilities) of one sequence.

    Parameters
    ----------
    seq : str
        RNA sequence.
    constraint : str, optional
        Pseudo dot-bracket hard constraint (see :meth:`HardConstraints.from_dot_bracket`).
    config : PartitionFoldingConfig, optional
        Run settings.
    model, soft, domains, gquad :
        Passed to :func:`make_fold_compound`.
    cutoff : float
        Smallest probability reported in the result.

    Returns
    -------
    PartitionResult
        Free energy, filled compound and probabilities (if ``compute_bpp``).
    """
    config = config if config is not None else PartitionFoldingConfig()
    hard = None
    if constraint is not None:
        hard = HardConstraints.from_dot_bracket(
            normalize_sequence(seq), constraint,
            min_loop_size=config.min_loop_size, circular=config.circular,
        )
    fc = make_fold_compound(seq, model, config, hard=hard, soft=soft, domains=domains, gquad=gquad)

    return _result(fc, pf(fc), cutoff)


def pf_circfold(
    seq: str,
    constraint: Optional[str] = None,
    *,
    config: Optional[PartitionFoldingConfig] = None,
    model: Optional[BoltzmannEnergyModelProtocol] = None,
    soft: Optional[SoftConstraints] = None,
) -> PartitionResult:
    """Partition function of a circular RNA; see :func:`pf_fold`."""
    config = replace(config if config is not None else PartitionFoldingConfig(), circular=True)

    return pf_fold(seq, constraint, config=config, model=model, soft=soft)


def alipf_fold(
    alignment: Sequence[str],
    *,
    config: Optional[PartitionFoldingConfig] = None,
    model: Optional[BoltzmannEnergyModelProtocol] = None,
    hard: Optional[HardConstraints] = None,
    soft: Optional[Sequence[Optional[SoftConstraints]]] = None,
) -> PartitionResult:
    """
    Partition function of an alignment of RNA sequences.

    The returned free energy is per sequence, i.e. divided by the number of rows.
    """
    fc = make_alignment_fold_compound(alignment, model, config, hard=hard, soft=soft)
    free_energy = pf(fc)
    if math.isinf(free_energy):
        logger.warning("Alignment ensemble is empty under the given constraints.")

    return PartitionResult(free_energy=free_energy, fold_compound=fc)
