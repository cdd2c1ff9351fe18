from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from math import exp
from typing import Callable, Optional, Sequence

import numpy as np


class Decomposition(Enum):
    """Decomposition kinds reported to a soft-constraint callback."""
    PAIR_HP = "pair_hp"
    PAIR_IL = "pair_il"
    PAIR_ML = "pair_ml"
    ML_ML = "ml_ml"
    ML_STEM = "ml_stem"
    ML_ML_ML = "ml_ml_ml"
    EXT_UP = "ext_up"
    EXT_EXT = "ext_ext"
    EXT_STEM = "ext_stem"
    EXT_EXT_EXT = "ext_ext_ext"


# exp_f(i, j, k, l, kind) -> multiplicative Boltzmann weight of decomposing
# the interval [i, j] into the parts described by (k, l) and `kind`.
ExpDecompositionFn = Callable[[int, int, int, int, Decomposition], float]


@dataclass(slots=True)
class SoftConstraints:
    """
    Soft constraints: weights that bias, but never forbid, decompositions.

    Every slot is optional and an absent slot is neutral (weight 1).

    Attributes
    ----------
    exp_energy_up : np.ndarray, optional
        ``exp_energy_up[i, u]`` is the weight of positions ``i..i+u-1`` being
        unpaired (shape ``(n + 2, n + 2)``, ``exp_energy_up[i, 0] = 1``).
    exp_energy_stack : np.ndarray, optional
        Per-position weight applied to the four nucleotides of a stacked pair
        (interior loop without unpaired nucleotides).
    exp_f : ExpDecompositionFn, optional
        General per-decomposition callback.
    """
    exp_energy_up: Optional[np.ndarray] = None
    exp_energy_stack: Optional[np.ndarray] = None
    exp_f: Optional[ExpDecompositionFn] = None

    def up_weight(self, start: int, length: int) -> float:
        """Weight of `length` unpaired positions starting at `start` (1 when empty)."""
        if self.exp_energy_up is None or length <= 0:
            return 1.0

        return float(self.exp_energy_up[start, length])

    def stack_weight(self, i: int, j: int, k: int, l: int) -> float:
        """Weight of the stacked pairs `(i, j)` and `(k, l)`."""
        if self.exp_energy_stack is None:
            return 1.0
        stack = self.exp_energy_stack

        return float(stack[i] * stack[j] * stack[k] * stack[l])

    @classmethod
    def from_unpaired_energies(cls, energies: Sequence[float], kt: float) -> "SoftConstraints":
        """
        Build cumulative unpaired weights from per-position pseudo-energies.

        Parameters
        ----------
        energies : Sequence[float]
            ``energies[p - 1]`` is the free energy (kcal/mol) of leaving
            position `p` unpaired.
        kt : float
            Thermal energy in kcal/mol.

        Returns
        -------
        SoftConstraints
            Constraints with `exp_energy_up` filled for every run.
        """
        n = len(energies)
        weights = np.zeros((n + 2, n + 2), dtype=np.float64)
        for i in range(1, n + 2):
            weights[i, 0] = 1.0
            total = 0.0
            for u in range(1, n - i + 2):
                total += float(energies[i + u - 2])
                weights[i, u] = exp(-total / kt)

        return cls(exp_energy_up=weights)

    @classmethod
    def from_stack_energies(cls, energies: Sequence[float], kt: float) -> "SoftConstraints":
        """Per-position stacking bonuses (kcal/mol, one per nucleotide)."""
        n = len(energies)
        weights = np.ones(n + 2, dtype=np.float64)
        for p in range(1, n + 1):
            weights[p] = exp(-float(energies[p - 1]) / kt)

        return cls(exp_energy_stack=weights)
