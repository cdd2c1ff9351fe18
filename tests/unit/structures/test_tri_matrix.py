"""
Unit tests for the flat upper-triangular partition-function matrix.

`PartitionTriMatrix` stores cells `(i, j)` with ``1 <= i <= j <= n`` in one
`numpy` array, addressed row-wise or column-wise. The recursions read it
through `data` and the index tables; these tests pin down the checked
accessors and the row-segment view the vectorised split sums rely on.
"""
import numpy as np
import pytest

from rna_pf_fold.structures import PartitionTriMatrix, TriLayout


@pytest.mark.parametrize("layout", [TriLayout.ROW_WISE, TriLayout.COLUMN_WISE])
def test_set_get_roundtrip_leaves_other_cells_untouched(layout):
    """
    Writing one cell must not alias any other cell in either layout.

    Parameters
    ----------
    layout : TriLayout
        Memory layout under test.
    """
    n = 6
    matrix = PartitionTriMatrix(n, layout)
    matrix.set(2, 5, 3.25)

    for i, j in matrix.iter_upper_indices():
        expected = 3.25 if (i, j) == (2, 5) else 0.0
        assert matrix.get(i, j) == expected


def test_fill_value_and_size():
    matrix = PartitionTriMatrix(4, fill=1.5)

    assert matrix.size == 4
    assert matrix.layout is TriLayout.ROW_WISE
    assert all(matrix.get(i, j) == 1.5 for i, j in matrix.iter_upper_indices())


@pytest.mark.parametrize("i, j", [(0, 1), (3, 2), (1, 5), (-1, 3)])
def test_invalid_indices_raise(i, j):
    """
    Indices outside ``1 <= i <= j <= n`` are rejected by the checked accessors.
    """
    matrix = PartitionTriMatrix(4)

    with pytest.raises(IndexError):
        matrix.get(i, j)
    with pytest.raises(IndexError):
        matrix.set(i, j, 1.0)


def test_iter_upper_indices_is_row_major_and_complete():
    matrix = PartitionTriMatrix(3)

    assert list(matrix.iter_upper_indices()) == [(1, 1), (1, 2), (1, 3), (2, 2), (2, 3), (3, 3)]


def test_row_segment_returns_increasing_k():
    """
    ``row_segment(i, a, b)`` yields ``M(i, a), ..., M(i, b)`` in order and
    is a view on the flat storage.
    """
    n = 6
    matrix = PartitionTriMatrix(n)
    for k in range(2, n + 1):
        matrix.set(2, k, float(k))

    segment = matrix.row_segment(2, 3, 5)
    assert list(segment) == [3.0, 4.0, 5.0]

    # A view: later writes are visible.
    matrix.set(2, 4, 40.0)
    assert segment[1] == 40.0


def test_row_segment_empty_range():
    matrix = PartitionTriMatrix(5)

    assert matrix.row_segment(1, 4, 3).size == 0


def test_row_segment_requires_row_wise_layout():
    matrix = PartitionTriMatrix(5, TriLayout.COLUMN_WISE)

    with pytest.raises(ValueError):
        matrix.row_segment(1, 1, 3)


def test_to_dense_places_values_at_one_based_indices():
    n = 4
    matrix = PartitionTriMatrix(n, TriLayout.COLUMN_WISE)
    matrix.set(1, 4, 2.0)
    matrix.set(3, 3, 7.0)

    dense = matrix.to_dense()

    assert dense.shape == (n + 2, n + 2)
    assert dense[1, 4] == 2.0
    assert dense[3, 3] == 7.0
    # The lower triangle and the padding rows stay zero.
    assert dense[4, 1] == 0.0
    assert np.count_nonzero(dense) == 2


def test_offset_follows_index_tables():
    n = 5
    row = PartitionTriMatrix(n)
    column = PartitionTriMatrix(n, TriLayout.COLUMN_WISE)

    assert row.offset(2, 4) == int(row.index[2]) - 4
    assert column.offset(2, 4) == int(column.index[4]) + 2
