from __future__ import annotations

import numpy as np


def row_wise_index(seq_len: int) -> np.ndarray:
    """
    Build the row-wise triangular index table `iindx`.

    The offset of the 1-based cell `(i, j)` (with `i <= j`) is
    ``iindx[i] - j``, so for a fixed `i` increasing `j` walks memory
    downward contiguously and a row segment ``q(i, k)`` for ``k = a..b``
    is the slice ``data[iindx[i] - b : iindx[i] - a + 1]`` read backwards.

    Parameters
    ----------
    seq_len : int
        Sequence (alignment) length `n`.

    Returns
    -------
    np.ndarray
        Integer array of length ``n + 2``; entries 0 and ``n + 1`` are unused.
    """
    idx = np.zeros(seq_len + 2, dtype=np.int64)
    for i in range(1, seq_len + 1):
        idx[i] = ((seq_len + 1 - i) * (seq_len - i)) // 2 + seq_len + 1

    return idx


def column_wise_index(seq_len: int) -> np.ndarray:
    """
    Build the column-wise triangular index table `jindx`.

    The offset of the 1-based cell `(i, j)` is ``jindx[j] + i``, so for a
    fixed `j` increasing `i` walks memory upward contiguously.

    Parameters
    ----------
    seq_len : int
        Sequence (alignment) length `n`.

    Returns
    -------
    np.ndarray
        Integer array of length ``n + 2``.
    """
    idx = np.zeros(seq_len + 2, dtype=np.int64)
    for j in range(1, seq_len + 2):
        idx[j] = (j * (j - 1)) // 2

    return idx


def triangle_size(seq_len: int) -> int:
    """Number of slots needed to hold every cell `1 <= i <= j <= n` under either layout."""
    return ((seq_len + 1) * (seq_len + 2)) // 2 + 1

