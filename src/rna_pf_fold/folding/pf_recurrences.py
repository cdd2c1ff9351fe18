from __future__ import annotations
from dataclasses import dataclass
import logging
import math
import time
from typing import TYPE_CHECKING, List, Optional

import numpy as np
from tqdm import tqdm

from rna_pf_fold.folding.loop_weights import (
    covariance_weight,
    exp_ext_stem_weight,
    exp_hairpin_loop,
    exp_interior_loops,
    exp_ml_stem_weight,
    exp_multiloop_fast,
)
from rna_pf_fold.folding.scaling import DEFAULT_SFACT, MAX_REAL, OVERFLOW_WARNING_LEVEL, PartitionOverflowError
from rna_pf_fold.rules.constraints import MAX_LOOP, MIN_HAIRPIN_UNPAIRED
from rna_pf_fold.rules.hard_constraints import LoopContext
from rna_pf_fold.rules.soft_constraints import Decomposition
from rna_pf_fold.rules.unstructured_domains import DomainContext

if TYPE_CHECKING:
    from rna_pf_fold.folding.fold_compound import FoldCompound

logger = logging.getLogger(__name__)

BACKTRACK_TYPES = ("F", "C", "M")

_EXT = int(LoopContext.EXT_LOOP)
_MB_ENC = int(LoopContext.MB_LOOP_ENC)


@dataclass(slots=True)
class PartitionFoldingConfig:
    """
    Configuration settings for the McCaskill partition-function recursions.

    Attributes
    ----------
    temp_c : float
        Temperature in Celsius used for the default energy model and `pf_scale`.
    min_loop_size : int
        Minimum number of unpaired nucleotides in a hairpin ("turn").
    max_loop : int
        Maximum number of unpaired nucleotides in an interior loop.
    circular : bool
        Fold a circular molecule.
    gquad : bool
        Add G-quadruplex contributions from the compound's gquad provider.
    backtrack_type : {"F", "C", "M"}
        Which ensemble the free energy refers to: all structures, structures
        closed by ``(1, n)``, or multiloop-like structures on ``[1, n]``.
    compute_bpp : bool
        Also compute base-pair probabilities.
    store_qm1 : bool
        Keep the full `qm1` matrix (always kept for circular folds and
        probabilities).
    pf_scale : float, optional
        Per-nucleotide scale; estimated from the temperature when omitted.
    sfact : float
        Safety factor used when rescaling `pf_scale` from a free energy.
    cv_fact, nc_fact : float
        Covariance and non-compatible weights of the alignment score.
    verbose : bool
        Show a progress bar.
    """
    temp_c: float = 37.0
    min_loop_size: int = MIN_HAIRPIN_UNPAIRED
    max_loop: int = MAX_LOOP
    circular: bool = False
    gquad: bool = False
    backtrack_type: str = "F"
    compute_bpp: bool = False
    store_qm1: bool = False
    pf_scale: Optional[float] = None
    sfact: float = DEFAULT_SFACT
    cv_fact: float = 1.0
    nc_fact: float = 1.0
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.backtrack_type not in BACKTRACK_TYPES:
            raise ValueError(f"backtrack_type must be one of {BACKTRACK_TYPES}, got {self.backtrack_type!r}.")
        if self.min_loop_size < 0 or self.max_loop < 0:
            raise ValueError("min_loop_size and max_loop must be non-negative.")

    @property
    def needs_qm1(self) -> bool:
        return self.store_qm1 or self.circular or self.compute_bpp


@dataclass(slots=True)
class PartitionFunctionEngine:
    """
    Fills the linear partition-function matrices of a fold compound.

    The matrices are filled column by column (`j` ascending, `i` descending)
    so that the two rolling buffers ``qq[i] = Qq(i, j)`` and
    ``qqm[i] = Qm1(i, j)`` of the current column and ``qq1``/``qqm1`` of
    the previous one are all that the split sums need. Single sequences and
    alignments share this code; the per-row work lives in
    :mod:`rna_pf_fold.folding.loop_weights`.

    Attributes
    ----------
    config : PartitionFoldingConfig
        Recursion settings.
    """
    config: PartitionFoldingConfig

    def fill_linear(self, fc: FoldCompound) -> None:
        """
        Fills `q`, `qb`, `qm`, `qm1`, `q1k` and `qln` of `fc`.

        Parameters
        ----------
        fc : FoldCompound
            The compound to fill; its matrices must be zero-initialised.

        Raises
        ------
        PartitionOverflowError
            If a `q` cell reaches the largest finite float.
        """
        start_time = time.perf_counter()
        n = fc.seq_len
        turn = self.config.min_loop_size
        state = fc.state

        logger.info("=" * 60)
        logger.info(f"McCaskill partition function for length N={n}, n_seq={fc.n_seq}")
        logger.info(f"pf_scale={fc.scale_factors.pf_scale:.6g}, turn={turn}, max_loop={self.config.max_loop}")
        logger.info("=" * 60)

        self._init_short_intervals(fc, turn)

        q_max = 0.0
        qq = np.zeros(n + 2, dtype=np.float64)
        qq1 = np.zeros(n + 2, dtype=np.float64)
        qqm = np.zeros(n + 2, dtype=np.float64)
        qqm1 = np.zeros(n + 2, dtype=np.float64)

        domains = fc.domains
        motif_sizes = domains.motif_sizes if domains is not None else ()
        max_u = max(motif_sizes, default=0)
        qqu: Optional[List[np.ndarray]] = None
        qqmu: Optional[List[np.ndarray]] = None
        if domains is not None:
            qqu = [np.zeros(n + 2, dtype=np.float64) for _ in range(max_u + 1)]
            qqmu = [np.zeros(n + 2, dtype=np.float64) for _ in range(max_u + 1)]

        show_progress = self.config.verbose or logger.isEnabledFor(logging.INFO)
        column_iter = tqdm(range(turn + 2, n + 1), desc="McCaskill PF", leave=False, disable=not show_progress)

        # Main DP loop over columns j; every cell (i, j) only reads cells (i', j') with j' < j or i' > i.
        for j in column_iter:
            for i in range(j - turn - 1, 0, -1):
                q_ij = self._fill_cell(fc, i, j, qq, qq1, qqm, qqm1, qqu, qqmu, motif_sizes)

                if q_ij > q_max:
                    q_max = q_ij
                    if q_max > OVERFLOW_WARNING_LEVEL:
                        logger.warning(f"Q close to overflow: {i} {j} {q_ij:g}")
                if q_ij >= MAX_REAL:
                    raise PartitionOverflowError(i, j, q_ij)

            # Rotate the column buffers by reference.
            qq1, qq = qq, qq1
            qqm1, qqm = qqm, qqm1
            if domains is not None:
                qqu.insert(0, qqu.pop())
                qqmu.insert(0, qqmu.pop())

        q = state.q
        iindx = q.index
        for k in range(1, n + 1):
            state.q1k[k] = q.data[iindx[1] - k]
            state.qln[k] = q.data[iindx[k] - n]
        state.q1k[0] = 1.0
        state.qln[n + 1] = 1.0
        state.linear_filled = True

        elapsed = time.perf_counter() - start_time
        final_q = state.q1k[n] if n else 1.0
        logger.info(f"McCaskill PF completed in {elapsed:.2f}s ({elapsed * 1000:.0f}ms)")
        logger.info(f"Final Q[1,{n}] = {final_q:.6g} (scaled)")

    # ---------- Initialisation ----------
    def _init_short_intervals(self, fc: FoldCompound, turn: int) -> None:
        """``Q(i, j)`` for ``j - i <= turn``: the open chain only, if it may stay unpaired."""
        n = fc.seq_len
        hc = fc.hard
        scale = fc.scale_factors.scale
        q = fc.state.q
        iindx = q.index
        exp_f = fc.exp_f
        domains = fc.domains

        for d in range(0, turn + 1):
            for i in range(1, n - d + 1):
                j = i + d
                if hc.up_ext[i] <= d:
                    continue
                value = scale[d + 1] * fc.up_weight(i, j)
                if exp_f is not None:
                    value *= exp_f(i, j, i, j, Decomposition.EXT_UP)
                if domains is not None:
                    value *= domains.exp_energy_cb(i, j, DomainContext.EXT_LOOP)
                q.data[iindx[i] - j] = value

    # ---------- One cell ----------
    def _fill_cell(
        self,
        fc: FoldCompound,
        i: int,
        j: int,
        qq: np.ndarray,
        qq1: np.ndarray,
        qqm: np.ndarray,
        qqm1: np.ndarray,
        qqu: Optional[List[np.ndarray]],
        qqmu: Optional[List[np.ndarray]],
        motif_sizes,
    ) -> float:
        """Fills `qb`, `qqm`/`qm1`, `qm`, `qq` and `q` at `(i, j)`; returns the new ``Q(i, j)``."""
        state = fc.state
        hc = fc.hard
        scale = fc.scale_factors.scale
        exp_ml_base = fc.scale_factors.exp_ml_base
        exp_f = fc.exp_f
        domains = fc.domains
        iindx = state.q.index
        ij = iindx[i] - j
        ctx = int(hc.matrix[i, j])

        # ---------- 1. Qb: (i, j) closes a hairpin, interior loop or multiloop ----------
        qbt = 0.0
        if ctx:
            qbt = exp_hairpin_loop(fc, i, j) + exp_interior_loops(fc, i, j) + exp_multiloop_fast(fc, i, j, qqm1)
            if qbt > 0.0 and fc.pscore is not None:
                qbt *= covariance_weight(fc, i, j)
        state.qb.data[ij] = qbt

        # ---------- 2. Qm1: one branch at i, unpaired tail to j ----------
        qqm_i = 0.0
        if hc.up_ml[j]:
            temp = qqm1[i] * exp_ml_base[1] * fc.up_weight(j, j)
            if exp_f is not None:
                temp *= exp_f(i, j, i, j - 1, Decomposition.ML_ML)
            qqm_i = temp
            if domains is not None:
                for u in motif_sizes:
                    if j - u >= i and hc.up_ml[j - u + 1] >= u:
                        qqm_i += (qqmu[u][i] * exp_ml_base[u] * fc.up_weight(j - u + 1, j)
                                  * domains.exp_energy_cb(j - u + 1, j, DomainContext.MB_LOOP | DomainContext.MOTIF))
        if qbt > 0.0 and ctx & _MB_ENC:
            stem = qbt * exp_ml_stem_weight(fc, i, j)
            if exp_f is not None:
                stem *= exp_f(i, j, i, j, Decomposition.ML_STEM)
            qqm_i += stem
        if fc.gquad is not None:
            qqm_i += fc.gquad(i, j) * scale[j - i + 1] * fc.model.exp_ml_intern
        qqm[i] = qqm_i
        if qqmu is not None:
            qqmu[0][i] = qqm_i
        if state.qm1 is not None:
            state.qm1.data[state.qm1.index[j] + i] = qqm_i

        # ---------- 3. Qm: one or more branches on [i, j] ----------
        if exp_f is None:
            qm_ij = float(np.dot(state.qm.row_segment(i, i, j - 1), qqm[i + 1:j + 1]))
        else:
            qm = state.qm.data
            qm_ij = 0.0
            for k in range(i + 1, j + 1):
                qm_ij += qm[iindx[i] - (k - 1)] * qqm[k] * exp_f(i, j, k - 1, k, Decomposition.ML_ML_ML)
        max_k = min(i + int(hc.up_ml[i]), j)
        if max_k > i:
            qm_ij += self._unpaired_prefix_sum(fc, i, j, max_k, qqm)
        state.qm.data[ij] = qm_ij + qqm_i

        # ---------- 4. Qq: one stem starting at i in the exterior loop ----------
        qq_i = 0.0
        if hc.up_ext[j]:
            temp = qq1[i] * scale[1] * fc.up_weight(j, j)
            if exp_f is not None:
                temp *= exp_f(i, j, i, j - 1, Decomposition.EXT_EXT)
            qq_i = temp
            if domains is not None:
                for u in motif_sizes:
                    if j - u >= i and hc.up_ext[j - u + 1] >= u:
                        qq_i += (qqu[u][i] * scale[u] * fc.up_weight(j - u + 1, j)
                                 * domains.exp_energy_cb(j - u + 1, j, DomainContext.EXT_LOOP | DomainContext.MOTIF))
        if qbt > 0.0 and ctx & _EXT:
            stem = qbt * exp_ext_stem_weight(fc, i, j)
            if exp_f is not None:
                stem *= exp_f(i, j, i, j, Decomposition.EXT_STEM)
            qq_i += stem
        if fc.gquad is not None:
            qq_i += fc.gquad(i, j) * scale[j - i + 1]
        qq[i] = qq_i
        if qqu is not None:
            qqu[0][i] = qq_i

        # ---------- 5. Q: all structures on [i, j] ----------
        q = state.q.data
        q_ij = qq_i
        length = j - i + 1
        if hc.up_ext[i] >= length:
            temp = scale[length] * fc.up_weight(i, j)
            if exp_f is not None:
                temp *= exp_f(i, j, i, j, Decomposition.EXT_UP)
            if domains is not None:
                temp *= domains.exp_energy_cb(i, j, DomainContext.EXT_LOOP)
            q_ij += temp
        if exp_f is None:
            q_ij += float(np.dot(state.q.row_segment(i, i, j - 1), qq[i + 1:j + 1]))
        else:
            for k in range(i, j):
                q_ij += q[iindx[i] - k] * qq[k + 1] * exp_f(i, j, k, k + 1, Decomposition.EXT_EXT_EXT)
        q[ij] = q_ij

        return q_ij

    @staticmethod
    def _unpaired_prefix_sum(fc: FoldCompound, i: int, j: int, max_k: int, qqm: np.ndarray) -> float:
        """``Σ_{k=i+1}^{max_k} exp_ml_base[k-i] * soft * ligand * Qm1(k, j)`` for an unpaired prefix ``[i, k-1]``."""
        exp_ml_base = fc.scale_factors.exp_ml_base
        exp_f = fc.exp_f
        domains = fc.domains
        count = max_k - i

        if exp_f is None and domains is None:
            weights = exp_ml_base[1:count + 1] * fc.up_weights_from(i, count)
            return float(np.dot(weights, qqm[i + 1:max_k + 1]))

        total = 0.0
        for k in range(i + 1, max_k + 1):
            temp = exp_ml_base[k - i] * qqm[k] * fc.up_weight(i, k - 1)
            if domains is not None:
                temp *= domains.exp_energy_cb(i, k - 1, DomainContext.MB_LOOP)
            if exp_f is not None:
                temp *= exp_f(i, j, k, j, Decomposition.ML_ML)
            total += temp

        return total


def free_energy_from_q(q_total: float, seq_len: int, pf_scale: float, kt: float, n_seq: int = 1) -> float:
    """
    Ensemble free energy ``(-ln Q - n ln pf_scale) * kT / n_seq`` in kcal/mol.

    Returns `+∞` for an empty ensemble.
    """
    if q_total <= 0.0:
        return math.inf

    return (-math.log(q_total) - seq_len * math.log(pf_scale)) * kt / n_seq
