"""
Alignment helpers: input validation, consensus sequence and covariance scores.

The covariance score ``pscore(i, j)`` (kcal/mol) rewards alignment columns
whose rows form different but compatible pairs (consistent and compensatory
mutations) and penalises rows that cannot pair. The alignment recursions
multiply ``Qb(i, j)`` by ``exp(pscore(i, j) / kT)``.
"""
from __future__ import annotations
from collections import Counter
import logging
from typing import Sequence, Tuple

import numpy as np

from rna_pf_fold.rules.constraints import MIN_HAIRPIN_UNPAIRED, PAIR_TYPES, can_pair
from rna_pf_fold.utils.nucleotide_utils import is_gap, normalize_sequence

logger = logging.getLogger(__name__)

# Score of a column pair that may never form.
PSCORE_NONE = float("-inf")

# Columns scoring below ``cv_fact * MIN_PSCORE`` are not allowed to pair.
MIN_PSCORE = -2.0

# Row classes besides the canonical pair types.
_NOT_COMPATIBLE = "XX"
_GAP_GAP = "--"


def validate_alignment(alignment: Sequence[str]) -> Tuple[str, ...]:
    """
    Normalise the rows of an alignment and check that they line up.

    Raises
    ------
    ValueError
        If the alignment is empty, a row is invalid, or the rows differ in length.
    """
    if not alignment:
        raise ValueError("Alignment must contain at least one sequence.")

    rows = tuple(normalize_sequence(row, allow_gaps=True) for row in alignment)
    length = len(rows[0])
    for idx, row in enumerate(rows):
        if len(row) != length:
            raise ValueError(f"Alignment row {idx} has length {len(row)}, expected {length}.")

    return rows


def consensus_sequence(rows: Sequence[str]) -> str:
    """Most frequent non-gap symbol per column (``N`` for all-gap columns)."""
    consensus = []
    for column in zip(*rows):
        counts = Counter(base for base in column if not is_gap(base))
        consensus.append(counts.most_common(1)[0][0] if counts else "N")

    return "".join(consensus)


def _row_class(base_i: str, base_j: str) -> str:
    if is_gap(base_i) and is_gap(base_j):
        return _GAP_GAP
    if can_pair(base_i, base_j):
        return base_i + base_j

    return _NOT_COMPATIBLE


def _hamming(a: str, b: str) -> int:
    return sum(1 for x, y in zip(a, b) if x != y)


def covariance_scores(
    rows: Sequence[str],
    *,
    min_loop_size: int = MIN_HAIRPIN_UNPAIRED,
    cv_fact: float = 1.0,
    nc_fact: float = 1.0,
) -> np.ndarray:
    """
    Computes the covariance score of every column pair of an alignment.

    For each column pair the rows are classified as one of the six canonical
    pair types, as non-compatible (a base that cannot pair, or a base facing
    a gap) or as gap-gap. The score is

        ``cv_fact * (Σ f_k f_l d(k, l) / n_seq - nc_fact * (f_nc + f_gg / 4))``

    summed over unordered pairs of canonical types `k <= l`, where `d` is the
    Hamming distance of the two pair types and `f` are the row counts.

    Parameters
    ----------
    rows : Sequence[str]
        Validated, equal-length alignment rows.
    min_loop_size : int
        Column pairs enclosing fewer than this many columns never pair.
    cv_fact : float
        Weight of the covariance term.
    nc_fact : float
        Weight of the non-compatible penalty.

    Returns
    -------
    np.ndarray
        Array of shape ``(n + 2, n + 2)`` with ``pscore[i, j]`` (kcal/mol)
        for ``i < j`` (mirrored to ``[j, i]``); `PSCORE_NONE` where more than
        half of the rows cannot pair.
    """
    n_seq = len(rows)
    n = len(rows[0]) if rows else 0
    pscore = np.full((n + 2, n + 2), PSCORE_NONE, dtype=np.float64)

    for i in range(1, n + 1):
        for j in range(i + 1, n + 1):
            if j - i <= min_loop_size:
                continue
            freq = Counter(_row_class(row[i - 1], row[j - 1]) for row in rows)
            n_incompatible = freq.get(_NOT_COMPATIBLE, 0)
            n_gap_gap = freq.get(_GAP_GAP, 0)
            if 2 * n_incompatible + n_gap_gap > n_seq:
                continue

            score = 0.0
            for a, type_k in enumerate(PAIR_TYPES):
                f_k = freq.get(type_k, 0)
                if not f_k:
                    continue
                for type_l in PAIR_TYPES[a:]:
                    score += f_k * freq.get(type_l, 0) * _hamming(type_k, type_l)

            value = cv_fact * (score / n_seq - nc_fact * (n_incompatible + 0.25 * n_gap_gap))
            pscore[i, j] = pscore[j, i] = value

    logger.debug(f"Covariance scores computed for {n_seq} sequences of length {n}")

    return pscore
