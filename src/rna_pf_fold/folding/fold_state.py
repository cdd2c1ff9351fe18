from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import numpy as np

from rna_pf_fold.structures import PartitionTriMatrix, TriLayout


@dataclass(slots=True)
class PartitionFoldState:
    """
    Holds the partition-function matrices of one fold compound.

    Every matrix cell is stored rescaled by ``scale[j - i + 1]``.

    Attributes
    ----------
    q : PartitionTriMatrix
        Q(i, j): all structures on ``[i, j]`` (exterior-loop context).
    qb : PartitionTriMatrix
        Qb(i, j): structures on ``[i, j]`` closed by the pair `(i, j)`.
    qm : PartitionTriMatrix
        Qm(i, j): multiloop interior segments with at least one branch.
    qm1 : PartitionTriMatrix or None
        Qm1(i, j): exactly one branch starting at `i`, unpaired tail to `j`.
        Column-wise; only kept when circular folding or probabilities need it.
    q1k : np.ndarray
        ``q1k[k] = Q(1, k)``, ``q1k[0] = 1``.
    qln : np.ndarray
        ``qln[k] = Q(k, n)``, ``qln[n + 1] = 1``.
    qm2 : np.ndarray or None
        Circular only: two or more branches on ``[k, n]``.
    qo, qho, qio, qmo : float
        Circular totals: all structures, exterior hairpin, exterior interior
        loop and exterior multiloop contributions.
    probs : PartitionTriMatrix or None
        Base-pair probabilities once computed.
    """
    q: PartitionTriMatrix
    qb: PartitionTriMatrix
    qm: PartitionTriMatrix
    qm1: Optional[PartitionTriMatrix]
    q1k: np.ndarray
    qln: np.ndarray
    qm2: Optional[np.ndarray] = None
    qo: float = 0.0
    qho: float = 0.0
    qio: float = 0.0
    qmo: float = 0.0
    probs: Optional[PartitionTriMatrix] = None
    linear_filled: bool = False
    circular_filled: bool = False


def make_pf_fold_state(seq_len: int, store_qm1: bool = False) -> PartitionFoldState:
    """
    Allocates zero-filled partition-function matrices for a sequence of length `seq_len`.

    Parameters
    ----------
    seq_len : int
        Sequence (alignment) length `n`.
    store_qm1 : bool, optional
        Also allocate the column-wise `qm1` matrix.

    Returns
    -------
    PartitionFoldState
        A new state with `q`, `qb`, `qm` row-wise and `qm1` column-wise.
    """
    qm1 = PartitionTriMatrix(seq_len, TriLayout.COLUMN_WISE) if store_qm1 else None

    return PartitionFoldState(
        q=PartitionTriMatrix(seq_len),
        qb=PartitionTriMatrix(seq_len),
        qm=PartitionTriMatrix(seq_len),
        qm1=qm1,
        q1k=np.zeros(seq_len + 2, dtype=np.float64),
        qln=np.zeros(seq_len + 2, dtype=np.float64),
    )
