from __future__ import annotations
from enum import Enum
from typing import Iterator, Tuple

import numpy as np

from rna_pf_fold.utils.indices_utils import column_wise_index, row_wise_index, triangle_size


class TriLayout(Enum):
    """Memory layout of a flat upper-triangular matrix."""
    ROW_WISE = "row"
    COLUMN_WISE = "column"


class PartitionTriMatrix:
    """
    Upper-triangular float64 matrix for partition-function DP tables.

    Cells `(i, j)` with ``1 <= i <= j <= n`` (1-based) are stored in a single
    flat `numpy` array addressed either row-wise (``iindx[i] - j``) or
    column-wise (``jindx[j] + i``). The recursion engines work on `data`
    and the index tables directly; `get` and `set` validate their indices
    and are meant for callers outside the hot loops.

    Values are stored rescaled: ``stored(i, j) = true(i, j) * scale[j - i + 1]``.
    """
    __slots__ = ("_seq_len", "_layout", "_index", "data")

    def __init__(self, seq_len: int, layout: TriLayout = TriLayout.ROW_WISE, fill: float = 0.0):
        self._seq_len = seq_len
        self._layout = layout
        if layout is TriLayout.ROW_WISE:
            self._index = row_wise_index(seq_len)
        else:
            self._index = column_wise_index(seq_len)
        self.data = np.full(triangle_size(seq_len), fill, dtype=np.float64)

    @property
    def size(self) -> int:
        """Returns the sequence length N that defines the matrix dimensions."""
        return self._seq_len

    @property
    def layout(self) -> TriLayout:
        return self._layout

    @property
    def index(self) -> np.ndarray:
        """The `iindx` (row-wise) or `jindx` (column-wise) table of this matrix."""
        return self._index

    def offset(self, base_i: int, base_j: int) -> int:
        """Flat offset of cell `(i, j)`; validates indices."""
        if base_i < 1 or base_j > self._seq_len or base_j < base_i:
            raise IndexError(f"TriMatrix invalid index: (i={base_i}, j={base_j}) for N={self._seq_len}")
        if self._layout is TriLayout.ROW_WISE:
            return int(self._index[base_i]) - base_j

        return int(self._index[base_j]) + base_i

    def get(self, base_i: int, base_j: int) -> float:
        """
        Retrieves the value at cell `(i, j)`.

        Parameters
        ----------
        base_i : int
            The row index (1-based).
        base_j : int
            The column index (1-based).

        Returns
        -------
        float
            The value stored at the specified cell.
        """
        return float(self.data[self.offset(base_i, base_j)])

    def set(self, base_i: int, base_j: int, value: float) -> None:
        """Sets the `value` at cell `(i, j)`."""
        self.data[self.offset(base_i, base_j)] = value

    def row_segment(self, base_i: int, k_start: int, k_end: int) -> np.ndarray:
        """
        Values ``M(i, k)`` for ``k = k_start..k_end`` in increasing `k`.

        Only available for the row-wise layout, where the segment is one
        contiguous slice of `data` (returned as a reversed view).
        """
        if self._layout is not TriLayout.ROW_WISE:
            raise ValueError("row_segment() requires a row-wise matrix.")
        if k_end < k_start:
            return self.data[0:0]
        base = int(self._index[base_i])

        return self.data[base - k_end: base - k_start + 1][::-1]

    def to_dense(self) -> np.ndarray:
        """
        Copy the triangle into a dense ``(n + 2) x (n + 2)`` array.

        Cells outside the triangle are zero. Row/column 0 and `n + 1` are
        padding so 1-based indices can be used unchanged.
        """
        n = self._seq_len
        dense = np.zeros((n + 2, n + 2), dtype=np.float64)
        for i, j in self.iter_upper_indices():
            dense[i, j] = self.data[self.offset(i, j)]

        return dense

    def iter_upper_indices(self) -> Iterator[Tuple[int, int]]:
        """
        Yields all valid `(i, j)` index tuples in the upper triangle.

        Yields
        ------
        Iterator[Tuple[int, int]]
            An iterator over the 1-based `(i, j)` index tuples, row-major.
        """
        n = self._seq_len
        for i in range(1, n + 1):
            for j in range(i, n + 1):
                yield i, j
