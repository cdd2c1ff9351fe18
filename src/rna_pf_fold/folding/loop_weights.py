"""
Scaled Boltzmann weights of the loops closed by a base pair.

Each function returns the weight of one loop decomposition of a fold
compound, already multiplied by the scale factor of the nucleotides the
loop itself adds, by the per-row energy-model weights, and by the hard,
soft and ligand constraints that apply to it. The linear, circular and
outside passes share these functions, so a decomposition is weighted the
same way in every direction.
"""
from __future__ import annotations
from math import exp
from typing import TYPE_CHECKING, Iterator, Tuple

import numpy as np

from rna_pf_fold.rules.constraints import pair_type
from rna_pf_fold.rules.hard_constraints import LoopContext
from rna_pf_fold.rules.soft_constraints import Decomposition
from rna_pf_fold.rules.unstructured_domains import DomainContext
from rna_pf_fold.utils.nucleotide_utils import is_gap

if TYPE_CHECKING:
    from rna_pf_fold.folding.fold_compound import FoldCompound

_HP = int(LoopContext.HP_LOOP)
_INT = int(LoopContext.INT_LOOP)
_INT_ENC = int(LoopContext.INT_LOOP_ENC)
_MB = int(LoopContext.MB_LOOP)

# Longest loop that can match a tabulated special hairpin.
_SPECIAL_HAIRPIN_MAX = 6


def _run_allowed(up: np.ndarray, start: int, length: int) -> bool:
    return length <= 0 or up[start] >= length


def _no_gaps(enc, *columns: int) -> bool:
    return not any(is_gap(enc[c]) for c in columns)


# ---------- Hairpins ----------
def exp_hairpin_loop(fc: FoldCompound, i: int, j: int) -> float:
    """
    Weight of the hairpin closed by `(i, j)`, scaled by ``scale[j - i + 1]``.

    Returns 0 if `(i, j)` may not close a hairpin or the loop may not stay unpaired.
    """
    hc = fc.hard
    if not hc.matrix[i, j] & _HP:
        return 0.0
    u = j - i - 1
    if not _run_allowed(hc.up_hp, i + 1, u):
        return 0.0

    weight = fc.scale_factors.scale[u + 2]
    for row, sc in zip(fc.rows, fc.soft):
        a2s = row.a2s
        u_row = a2s[j - 1] - a2s[i]
        enc = row.encoding
        loop_seq = None
        if u_row <= _SPECIAL_HAIRPIN_MAX and not is_gap(enc[i]) and not is_gap(enc[j]):
            loop_seq = row.ungapped[a2s[i] - 1:a2s[i] + u_row + 1]
        weight *= fc.model.exp_hairpin(
            u_row, pair_type(enc[i], enc[j]), row.three_prime[i], row.five_prime[j], loop_seq,
        )
        if sc is not None:
            weight *= sc.up_weight(a2s[i] + 1, u_row)
        if weight == 0.0:
            return 0.0

    exp_f = fc.exp_f
    if exp_f is not None:
        weight *= exp_f(i, j, i, j, Decomposition.PAIR_HP)
    if fc.domains is not None and u > 0:
        weight *= fc.domains.exp_energy_cb(i + 1, j - 1, DomainContext.HP_LOOP)

    return weight


# ---------- Interior loops ----------
def interior_loop_partners(fc: FoldCompound, i: int, j: int) -> Iterator[Tuple[int, int]]:
    """
    Yields the inner pairs `(k, l)` that may close an interior loop with `(i, j)`.

    Loops are limited to ``max_loop`` unpaired nucleotides and the inner pair
    must leave room for a hairpin.
    """
    hc = fc.hard
    if not hc.matrix[i, j] & _INT:
        return
    turn = fc.config.min_loop_size
    max_loop = fc.config.max_loop
    up_int = hc.up_int

    max_k = min(i + max_loop + 1, j - turn - 2)
    for k in range(i + 1, max_k + 1):
        u1 = k - i - 1
        if not _run_allowed(up_int, i + 1, u1):
            break
        min_l = max(k + turn + 1, j - 1 - max_loop + u1)
        for l in range(j - 1, min_l - 1, -1):
            if not _run_allowed(up_int, l + 1, j - l - 1):
                break
            if hc.matrix[k, l] & _INT_ENC:
                yield k, l


def exp_interior_pair(fc: FoldCompound, i: int, j: int, k: int, l: int) -> float:
    """
    Weight of the interior loop (stack, bulge or interior loop) between the
    outer pair `(i, j)` and the inner pair `(k, l)`.

    Scaled by the unpaired nucleotides plus the two outer pair positions,
    so that ``Qb(k, l) * weight`` is scaled like ``Qb(i, j)``.
    """
    u1 = k - i - 1
    u2 = j - l - 1
    weight = fc.scale_factors.scale[u1 + u2 + 2]
    for row, sc in zip(fc.rows, fc.soft):
        a2s = row.a2s
        enc = row.encoding
        u1_row = a2s[k - 1] - a2s[i]
        u2_row = a2s[j - 1] - a2s[l]
        weight *= fc.model.exp_interior(
            u1_row, u2_row, pair_type(enc[i], enc[j]), pair_type(enc[l], enc[k]),
            row.three_prime[i], row.five_prime[j], row.five_prime[k], row.three_prime[l],
        )
        if sc is not None:
            weight *= sc.up_weight(a2s[i] + 1, u1_row) * sc.up_weight(a2s[l] + 1, u2_row)
            if u1_row == 0 and u2_row == 0 and _no_gaps(enc, i, j, k, l):
                weight *= sc.stack_weight(a2s[i], a2s[j], a2s[k], a2s[l])

    exp_f = fc.exp_f
    if exp_f is not None:
        weight *= exp_f(i, j, k, l, Decomposition.PAIR_IL)
    domains = fc.domains
    if domains is not None:
        if u1 > 0:
            weight *= domains.exp_energy_cb(i + 1, k - 1, DomainContext.INT_LOOP)
        if u2 > 0:
            weight *= domains.exp_energy_cb(l + 1, j - 1, DomainContext.INT_LOOP)

    return weight


def exp_interior_loops(fc: FoldCompound, i: int, j: int) -> float:
    """Σ over inner pairs `(k, l)` of ``Qb(k, l)`` times the interior-loop weight."""
    qb = fc.state.qb.data
    iindx = fc.state.qb.index
    total = 0.0
    for k, l in interior_loop_partners(fc, i, j):
        qb_kl = qb[iindx[k] - l]
        if qb_kl == 0.0:
            continue
        total += qb_kl * exp_interior_pair(fc, i, j, k, l)

    return total


# ---------- Multiloops ----------
def exp_multiloop_closing(fc: FoldCompound, i: int, j: int) -> float:
    """
    Weight of `(i, j)` closing a multiloop, branches and unpaired interior excluded.

    Includes the closing penalty, the closing stem viewed from inside the
    loop and ``scale[2]`` for the pair positions.
    """
    if not fc.hard.matrix[i, j] & _MB:
        return 0.0
    model = fc.model
    weight = model.exp_ml_closing ** fc.n_seq * fc.scale_factors.scale[2]
    for row in fc.rows:
        enc = row.encoding
        weight *= model.exp_ml_stem(pair_type(enc[j], enc[i]), row.five_prime[j], row.three_prime[i])

    exp_f = fc.exp_f
    if exp_f is not None:
        weight *= exp_f(i, j, i + 1, j - 1, Decomposition.PAIR_ML)

    return weight


def exp_multiloop_fast(fc: FoldCompound, i: int, j: int, qqm1: np.ndarray) -> float:
    """
    Multiloop contribution to ``Qb(i, j)`` from the previous column buffer.

    ``Σ_{k=i+2}^{j-1} Qm(i+1, k-1) * Qm1(k, j-1)`` times the closing weight,
    where ``qqm1[k] = Qm1(k, j - 1)``.
    """
    if j - i - 1 < 2:
        return 0.0
    closing = exp_multiloop_closing(fc, i, j)
    if closing == 0.0:
        return 0.0
    segment = fc.state.qm.row_segment(i + 1, i + 1, j - 2)

    return closing * float(np.dot(segment, qqm1[i + 2:j]))


# ---------- Stems ----------
def exp_ext_stem_weight(fc: FoldCompound, i: int, j: int) -> float:
    """Weight of `(i, j)` as a helix end in the exterior loop (dangles, AU penalty)."""
    weight = 1.0
    for row in fc.rows:
        enc = row.encoding
        weight *= fc.model.exp_ext_stem(pair_type(enc[i], enc[j]), row.five_prime[i], row.three_prime[j])

    return weight


def exp_ml_stem_weight(fc: FoldCompound, i: int, j: int) -> float:
    """Weight of `(i, j)` as a branch of a multiloop."""
    weight = 1.0
    for row in fc.rows:
        enc = row.encoding
        weight *= fc.model.exp_ml_stem(pair_type(enc[i], enc[j]), row.five_prime[i], row.three_prime[j])

    return weight


def covariance_weight(fc: FoldCompound, i: int, j: int) -> float:
    """``exp(pscore(i, j) / kT)`` for alignments, 1 otherwise."""
    if fc.pscore is None:
        return 1.0

    return exp(fc.pscore[i, j] / fc.kT)


# ---------- Circular exterior loop ----------
def exp_exterior_hairpin(fc: FoldCompound, p: int, q: int) -> float:
    """
    Weight of the exterior loop of a circular molecule read as a hairpin
    closed by `(q, p)`, scaled by the ``n - q + p - 1`` unpaired nucleotides.
    """
    hc = fc.hard
    n = fc.seq_len
    if not hc.matrix[p, q] & _HP:
        return 0.0
    u = n - q + p - 1
    if u < fc.config.min_loop_size:
        return 0.0
    if not (_run_allowed(hc.up_hp, q + 1, n - q) and _run_allowed(hc.up_hp, 1, p - 1)):
        return 0.0

    weight = fc.scale_factors.scale[u]
    for row, sc in zip(fc.rows, fc.soft):
        a2s = row.a2s
        enc = row.encoding
        u_row = a2s[n] - a2s[q] + a2s[p - 1]
        loop_seq = None
        if u_row <= _SPECIAL_HAIRPIN_MAX and not is_gap(enc[p]) and not is_gap(enc[q]):
            loop_seq = row.ungapped[a2s[q] - 1:] + row.ungapped[:a2s[p]]
        weight *= fc.model.exp_hairpin(
            u_row, pair_type(enc[q], enc[p]), row.three_prime[q], row.five_prime[p], loop_seq,
        )
        if sc is not None:
            weight *= sc.up_weight(a2s[q] + 1, a2s[n] - a2s[q]) * sc.up_weight(1, a2s[p - 1])

    return weight


def exterior_interior_partners(fc: FoldCompound, p: int, q: int) -> Iterator[Tuple[int, int]]:
    """
    Yields pairs `(k, l)` 3' of `(p, q)` that close an interior loop through
    the origin of a circular molecule together with `(p, q)`.
    """
    hc = fc.hard
    if not hc.matrix[p, q] & _INT:
        return
    n = fc.seq_len
    turn = fc.config.min_loop_size
    max_loop = fc.config.max_loop
    up_int = hc.up_int
    if not _run_allowed(up_int, 1, p - 1):
        return

    for k in range(q + 1, n):
        ln1 = k - q - 1
        if ln1 + p - 1 > max_loop:
            break
        if not _run_allowed(up_int, q + 1, ln1):
            break
        l_start = max(ln1 + p - 1 + n - max_loop, k + turn + 1)
        for l in range(l_start, n + 1):
            if not hc.matrix[k, l] & _INT_ENC:
                continue
            if _run_allowed(up_int, l + 1, n - l):
                yield k, l


def exp_exterior_interior(fc: FoldCompound, p: int, q: int, k: int, l: int) -> float:
    """
    Weight of the circular exterior interior loop closed by `(q, p)` and `(k, l)`,
    scaled by its ``(k - q - 1) + (p - 1 + n - l)`` unpaired nucleotides.
    """
    n = fc.seq_len
    ln1 = k - q - 1
    ln2 = p - 1 + n - l
    weight = fc.scale_factors.scale[ln1 + ln2]
    for row, sc in zip(fc.rows, fc.soft):
        a2s = row.a2s
        enc = row.encoding
        ln1_row = a2s[k - 1] - a2s[q]
        ln2_row = a2s[n] - a2s[l] + a2s[p - 1]
        weight *= fc.model.exp_interior(
            ln1_row, ln2_row, pair_type(enc[q], enc[p]), pair_type(enc[l], enc[k]),
            row.three_prime[q], row.five_prime[p], row.five_prime[k], row.three_prime[l],
        )
        if sc is not None:
            weight *= sc.up_weight(a2s[q] + 1, ln1_row)
            weight *= sc.up_weight(a2s[l] + 1, a2s[n] - a2s[l]) * sc.up_weight(1, a2s[p - 1])
            if ln1_row == 0 and ln2_row == 0 and _no_gaps(enc, q, p, k, l):
                weight *= sc.stack_weight(a2s[q], a2s[p], a2s[k], a2s[l])

    return weight
