"""
Circular post-processing of a filled linear partition function.

For a circular molecule the exterior loop is closed, so it is itself a
hairpin, an interior loop or a multiloop of some pair, or the whole
backbone is unpaired:

    ``Qo = Qho + Qio + Qmo + scale[n]``

All three loop terms reuse the linear `qb`, `qm` and `qm1` matrices.
"""
from __future__ import annotations
import logging
import time
from typing import TYPE_CHECKING

from rna_pf_fold.folding.loop_weights import (
    exp_exterior_hairpin,
    exp_exterior_interior,
    exterior_interior_partners,
)
from rna_pf_fold.folding.pf_kernels import circular_multiloop_sum, circular_qm2

if TYPE_CHECKING:
    from rna_pf_fold.folding.fold_compound import FoldCompound

logger = logging.getLogger(__name__)


def fill_circular(fc: FoldCompound) -> None:
    """
    Computes `qm2`, `qho`, `qio`, `qmo` and `qo` of a circular fold compound.

    Parameters
    ----------
    fc : FoldCompound
        A compound whose linear pass has run with the same `min_loop_size`.

    Raises
    ------
    RuntimeError
        If the linear matrices are not filled or `qm1` was not stored.
    """
    state = fc.state
    if not state.linear_filled:
        raise RuntimeError("Circular post-processing requires a filled linear partition function.")
    if state.qm1 is None:
        raise RuntimeError("Circular post-processing requires the qm1 matrix; enable store_qm1.")

    start_time = time.perf_counter()
    n = fc.seq_len
    turn = fc.config.min_loop_size
    qb = state.qb.data
    iindx = state.qb.index

    state.qm2 = circular_qm2(state.qm1.data, state.qm1.index, n, turn)

    qho = 0.0
    qio = 0.0
    for p in range(1, n + 1):
        for q in range(p + turn + 1, n + 1):
            qb_pq = qb[iindx[p] - q]
            if qb_pq == 0.0:
                continue
            if n - q + p - 1 < turn:
                continue

            # --- 1. Exterior hairpin closed by (q, p) ---
            qho += qb_pq * exp_exterior_hairpin(fc, p, q)

            # --- 2. Exterior interior loop with a pair (k, l) 3' of q ---
            for k, l in exterior_interior_partners(fc, p, q):
                qb_kl = qb[iindx[k] - l]
                if qb_kl == 0.0:
                    continue
                qio += qb_pq * qb_kl * exp_exterior_interior(fc, p, q, k, l)

    # --- 3. Exterior multiloop ---
    qmo = circular_multiloop_sum(state.qm.data, iindx, state.qm2, n, turn)
    qmo *= fc.model.exp_ml_closing ** fc.n_seq

    qo = qho + qio + qmo
    if fc.hard.up_ext[1] >= n:
        qo += fc.scale_factors.scale[n] * fc.up_weight(1, n)

    state.qho, state.qio, state.qmo, state.qo = qho, qio, qmo, qo
    state.circular_filled = True

    elapsed = time.perf_counter() - start_time
    logger.info(f"Circular post-processing completed in {elapsed:.2f}s")
    logger.debug(f"qho={qho:.6g} qio={qio:.6g} qmo={qmo:.6g} qo={qo:.6g}")
