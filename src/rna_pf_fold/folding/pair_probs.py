"""
Base-pair probabilities from a filled linear partition function.

The outside pass walks the inside recursion backwards: every cell receives
the derivative of ``Q(1, n)`` with respect to its own value and hands it on
to the cells it was built from, weighted exactly as in the inside pass.
Since each structure uses the pair ``(i, j)`` at most once,

    ``P(i, j) = Qb(i, j) * dQ(1, n)/dQb(i, j) / Q(1, n)``.

Only linear single sequences without ligands, G-quadruplexes or a general
soft-constraint callback are supported.
"""
from __future__ import annotations
import logging
import time
from typing import List

import numpy as np

from rna_pf_fold.folding.fold_compound import CompoundKind, FoldCompound
from rna_pf_fold.folding.loop_weights import (
    exp_ext_stem_weight,
    exp_interior_pair,
    exp_ml_stem_weight,
    exp_multiloop_closing,
    interior_loop_partners,
)
from rna_pf_fold.rules.hard_constraints import LoopContext
from rna_pf_fold.structures import Pair, PairProbability, PartitionTriMatrix

logger = logging.getLogger(__name__)

_EXT = int(LoopContext.EXT_LOOP)
_INT = int(LoopContext.INT_LOOP)
_INT_ENC = int(LoopContext.INT_LOOP_ENC)
_MB_ENC = int(LoopContext.MB_LOOP_ENC)

DEFAULT_PROB_CUTOFF = 1e-5


def _check_supported(fc: FoldCompound) -> None:
    if fc.kind is not CompoundKind.SINGLE:
        raise ValueError("Pair probabilities are only available for single sequences.")
    if fc.config.circular:
        raise ValueError("Pair probabilities are not available for circular molecules.")
    if fc.domains is not None or fc.gquad is not None or fc.exp_f is not None:
        raise ValueError("Pair probabilities do not support ligands, G-quadruplexes or soft-constraint callbacks.")
    if not fc.state.linear_filled:
        raise RuntimeError("Pair probabilities require a filled linear partition function.")
    if fc.state.qm1 is None:
        raise RuntimeError("Pair probabilities require the qm1 matrix; enable compute_bpp or store_qm1.")


def _exterior_stem_matrix(fc: FoldCompound, qb: np.ndarray, ext_up: np.ndarray) -> np.ndarray:
    """Dense ``Qq(i, j)``: one exterior stem starting at `i`, unpaired tail to `j`."""
    n = fc.seq_len
    turn = fc.config.min_loop_size
    matrix = fc.hard.matrix
    qq = np.zeros((n + 2, n + 2), dtype=np.float64)
    for i in range(1, n + 1):
        for j in range(i + turn + 1, n + 1):
            value = qq[i, j - 1] * ext_up[j]
            if qb[i, j] > 0.0 and matrix[i, j] & _EXT:
                value += qb[i, j] * exp_ext_stem_weight(fc, i, j)
            qq[i, j] = value

    return qq


def pair_probabilities(fc: FoldCompound) -> PartitionTriMatrix:
    """
    Computes the base-pair probability matrix of a linear single sequence.

    Parameters
    ----------
    fc : FoldCompound
        A compound whose linear pass has run with `qm1` stored.

    Returns
    -------
    PartitionTriMatrix
        Row-wise matrix with ``P(i, j)`` for ``i < j``; also stored as ``fc.state.probs``.

    Raises
    ------
    ValueError
        For unsupported compounds or an empty ensemble.
    RuntimeError
        If the inside matrices are missing.
    """
    _check_supported(fc)
    start_time = time.perf_counter()

    n = fc.seq_len
    turn = fc.config.min_loop_size
    hc = fc.hard
    state = fc.state
    scale = fc.scale_factors.scale
    exp_ml_base = fc.scale_factors.exp_ml_base

    q = state.q.to_dense()
    qb = state.qb.to_dense()
    qm = state.qm.to_dense()
    qm1 = state.qm1.to_dense()
    z = q[1, n]
    if not z > 0.0:
        raise ValueError("Partition function is zero; no structure is allowed.")

    ext_up = np.zeros(n + 2, dtype=np.float64)
    ml_up = np.zeros(n + 2, dtype=np.float64)
    for j in range(1, n + 1):
        if hc.up_ext[j]:
            ext_up[j] = scale[1] * fc.up_weight(j, j)
        if hc.up_ml[j]:
            ml_up[j] = exp_ml_base[1] * fc.up_weight(j, j)
    qq = _exterior_stem_matrix(fc, qb, ext_up)

    # Outside (adjoint) values of every matrix.
    o_q = np.zeros_like(q)
    o_qq = np.zeros_like(q)
    o_qm = np.zeros_like(q)
    o_qm1 = np.zeros_like(q)
    o_qb = np.zeros_like(q)
    o_q[1, n] = 1.0

    probs = PartitionTriMatrix(n)

    # Reverse of the inside order: every parent is finished before its parts.
    for j in range(n, 0, -1):
        for i in range(1, j + 1):
            if j - i <= turn:
                continue

            # ---------- Q = Qq + open chain + Σ Q(i, k) Qq(k+1, j) ----------
            oq = o_q[i, j]
            if oq != 0.0:
                o_qq[i, j] += oq
                o_q[i, i:j] += oq * qq[i + 1:j + 1, j]
                o_qq[i + 1:j + 1, j] += oq * q[i, i:j]

            # ---------- Qq = Qq(i, j-1) * unpaired + Qb * ext stem ----------
            oqq = o_qq[i, j]
            if oqq != 0.0:
                o_qq[i, j - 1] += oqq * ext_up[j]
                if qb[i, j] > 0.0 and hc.matrix[i, j] & _EXT:
                    o_qb[i, j] += oqq * exp_ext_stem_weight(fc, i, j)

            # ---------- Qm = Σ Qm(i, k-1) Qm1(k, j) + unpaired prefix + Qm1 ----------
            oqm = o_qm[i, j]
            if oqm != 0.0:
                o_qm[i, i:j] += oqm * qm1[i + 1:j + 1, j]
                o_qm1[i + 1:j + 1, j] += oqm * qm[i, i:j]
                max_k = min(i + int(hc.up_ml[i]), j)
                if max_k > i:
                    count = max_k - i
                    o_qm1[i + 1:max_k + 1, j] += oqm * exp_ml_base[1:count + 1] * fc.up_weights_from(i, count)
                o_qm1[i, j] += oqm

            # ---------- Qm1 = Qm1(i, j-1) * unpaired + Qb * ml stem ----------
            oqm1 = o_qm1[i, j]
            if oqm1 != 0.0:
                o_qm1[i, j - 1] += oqm1 * ml_up[j]
                if qb[i, j] > 0.0 and hc.matrix[i, j] & _MB_ENC:
                    o_qb[i, j] += oqm1 * exp_ml_stem_weight(fc, i, j)

            # ---------- Qb = hairpin + interior loops + multiloop ----------
            qb_ij = qb[i, j]
            oqb = o_qb[i, j]
            if qb_ij == 0.0 or oqb == 0.0:
                continue
            probs.set(i, j, qb_ij * oqb / z)

            for k, l in interior_loop_partners(fc, i, j):
                if qb[k, l] > 0.0:
                    o_qb[k, l] += oqb * exp_interior_pair(fc, i, j, k, l)

            if j - i >= 3:
                closing = exp_multiloop_closing(fc, i, j)
                if closing > 0.0:
                    weight = oqb * closing
                    o_qm[i + 1, i + 1:j - 1] += weight * qm1[i + 2:j, j - 1]
                    o_qm1[i + 2:j, j - 1] += weight * qm[i + 1, i + 1:j - 1]

    state.probs = probs
    elapsed = time.perf_counter() - start_time
    logger.info(f"Pair probabilities computed in {elapsed:.2f}s")

    return probs


def _require_probs(fc: FoldCompound) -> PartitionTriMatrix:
    if fc.state.probs is None:
        return pair_probabilities(fc)

    return fc.state.probs


def plist_from_probs(fc: FoldCompound, cutoff: float = DEFAULT_PROB_CUTOFF) -> List[PairProbability]:
    """Pairs with probability of at least `cutoff`, ordered by `(i, j)`."""
    probs = _require_probs(fc)
    plist = []
    for i, j in probs.iter_upper_indices():
        p = probs.get(i, j)
        if i < j and p >= cutoff and p > 0.0:
            plist.append(PairProbability(pair=Pair(i, j), probability=p))

    return plist


def stack_probabilities(fc: FoldCompound, cutoff: float = DEFAULT_PROB_CUTOFF) -> List[PairProbability]:
    """
    Probabilities that `(i, j)` is stacked on the pair `(i + 1, j - 1)`.

    ``P(i, j) * Qb(i+1, j-1) * w_stack(i, j) / Qb(i, j)``: the share of
    ``Qb(i, j)`` that comes from the stack, times the probability of the
    outer pair.

    Parameters
    ----------
    fc : FoldCompound
        A folded linear single-sequence compound.
    cutoff : float
        Smallest stacking probability to report.

    Returns
    -------
    List[PairProbability]
        One entry per outer pair `(i, j)`, ordered by `(i, j)`.
    """
    probs = _require_probs(fc)
    qb = fc.state.qb
    matrix = fc.hard.matrix
    turn = fc.config.min_loop_size
    stacks = []
    for i, j in probs.iter_upper_indices():
        if j - i - 2 <= turn:
            continue
        p = probs.get(i, j)
        if p <= 0.0 or not (matrix[i, j] & _INT and matrix[i + 1, j - 1] & _INT_ENC):
            continue
        inner = qb.get(i + 1, j - 1)
        if inner == 0.0:
            continue
        p_stack = p * inner * exp_interior_pair(fc, i, j, i + 1, j - 1) / qb.get(i, j)
        if p_stack >= cutoff:
            stacks.append(PairProbability(pair=Pair(i, j), probability=p_stack))

    return stacks


def unpaired_probabilities(fc: FoldCompound) -> np.ndarray:
    """``pu[i] = 1 - Σ_j P(i, j)`` for ``i = 1..n`` (entry 0 and ``n + 1`` unused)."""
    dense = _require_probs(fc).to_dense()
    paired = dense.sum(axis=0) + dense.sum(axis=1)
    pu = 1.0 - paired
    pu[0] = pu[-1] = 0.0

    return pu


def mean_bp_distance(fc: FoldCompound) -> float:
    """
    Mean base-pair distance between two structures drawn from the ensemble.

    ``<d> = Σ_{i<j} 2 P(i, j) (1 - P(i, j))``.
    """
    dense = _require_probs(fc).to_dense()

    return float(2.0 * np.sum(dense * (1.0 - dense)))
