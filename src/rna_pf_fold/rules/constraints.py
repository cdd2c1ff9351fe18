from __future__ import annotations
from typing import Final, Optional

from rna_pf_fold.utils.nucleotide_utils import normalize_base, pair_key

# Minimum number of unpaired nucleotides required in a hairpin loop ("turn").
MIN_HAIRPIN_UNPAIRED: Final[int] = 3

# Maximum total number of unpaired nucleotides in an interior loop.
MAX_LOOP: Final[int] = 30

# ---- Pairing rules (RNA) -----------------------------------------------------

# Canonical pair types (including wobble) in parameter-table order.
PAIR_TYPES: Final[tuple[str, ...]] = ("CG", "GC", "GU", "UG", "AU", "UA")

# Type given to a pair that is allowed (e.g. enforced or alignment column)
# but is not one of the canonical types.
NON_STANDARD: Final[str] = "NS"

_RNA_ALLOWED_PAIRS: Final[frozenset[str]] = frozenset(PAIR_TYPES)


def can_pair(base_i: Optional[str], base_j: Optional[str]) -> bool:
    """
    Return True if nucleotides `base_i` and `base_j` can base pair in RNA.

    Canonical Watson–Crick pairs (AU, GC) and GU wobble pairs are allowed.

    Parameters
    ----------
    base_i, base_j : str or None
        Single-character nucleotides, case-insensitive. `None` (absent
        symbol) never pairs.

    Returns
    -------
    bool
        True if (a,b) is in {AU, UA, GC, CG, GU, UG}; False otherwise.
    """
    if not isinstance(base_i, str) or not isinstance(base_j, str):
        return False

    if len(base_i) != 1 or len(base_j) != 1:
        return False

    return (normalize_base(base_i) + normalize_base(base_j)) in _RNA_ALLOWED_PAIRS


def pair_type(base_i: Optional[str], base_j: Optional[str]) -> str:
    """
    Pair type of `(base_i, base_j)` read 5'→3'.

    Returns
    -------
    str
        One of `PAIR_TYPES`, or `NON_STANDARD` when the bases cannot form a
        canonical pair (including gaps).
    """
    if can_pair(base_i, base_j):
        return pair_key(base_i, base_j)

    return NON_STANDARD
