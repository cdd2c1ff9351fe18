from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Pair:
    """
    Immutable (i, j) index pair of a base pair.

    Parameters
    ----------
    base_i : int
        Left index (1-based).
    base_j : int
        Right index (1-based), ``base_j > base_i``.
    """
    base_i: int
    base_j: int


@dataclass(frozen=True, slots=True)
class PairProbability:
    """
    One entry of a base-pair probability list.

    Attributes
    ----------
    pair : Pair
        The 1-based positions of the pair.
    probability : float
        Equilibrium probability that `pair` is formed.
    """
    pair: Pair
    probability: float

    @property
    def base_i(self) -> int:
        return self.pair.base_i

    @property
    def base_j(self) -> int:
        return self.pair.base_j
