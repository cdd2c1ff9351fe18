"""
Shared fixtures for the partition-function tests.

Three helpers are provided:

* ``fake_model`` builds a small, context-sensitive Boltzmann model. Each
  weight depends on every argument it receives (pair types, neighbours,
  loop sizes, loop sequence), so a recursion that hands the wrong
  neighbour or loop length to the model produces a different number.
* ``brute_force`` enumerates every nested structure of a short sequence
  and scores it loop by loop with the same model, giving an independent
  reference for ``Q`` and the pair probabilities.
* ``brute_force_alignment`` does the same over the columns of an
  alignment, folding every row (gaps skipped) onto each column structure.
"""
from __future__ import annotations

# --- Standard Library Imports ---
from functools import lru_cache
from math import exp, prod
from typing import Callable, Dict, List, Optional, Sequence, Tuple

# --- Third-Party Imports ---
import pytest

# --- Local Application Imports ---
from rna_pf_fold.energies import load_energy_model
from rna_pf_fold.folding.alignment import MIN_PSCORE, covariance_scores
from rna_pf_fold.rules.constraints import can_pair, pair_type
from rna_pf_fold.rules.unstructured_domains import DomainContext
from rna_pf_fold.utils.energy_utils import thermal_energy
from rna_pf_fold.utils.nucleotide_utils import is_gap

_PAIR_FACTOR = {"CG": 3.0, "GC": 3.5, "GU": 1.3, "UG": 1.2, "AU": 1.8, "UA": 1.6}
_BASE_FACTOR = {"A": 1.05, "C": 0.95, "G": 1.1, "U": 0.9}


def _p(pair: str) -> float:
    return _PAIR_FACTOR.get(pair, 0.5)


def _b(base: Optional[str]) -> float:
    return _BASE_FACTOR.get(base, 1.0)


class FakeBoltzmannModel:
    """
    Toy energy model implementing the Boltzmann-weight protocol.

    Passing a number for `hairpin`, `interior`, `ml_stem` or `ext_stem`
    replaces the context-sensitive default with that constant.
    """
    def __init__(
        self,
        *,
        hairpin: Optional[float] = None,
        interior: Optional[float] = None,
        ml_stem: Optional[float] = None,
        ext_stem: Optional[float] = None,
        ml_closing: float = 0.3,
        ml_base: float = 0.9,
        ml_intern: float = 0.8,
        temp_k: float = 310.15,
    ):
        self._hairpin = hairpin
        self._interior = interior
        self._ml_stem = ml_stem
        self._ext_stem = ext_stem
        self._ml_closing = ml_closing
        self._ml_base = ml_base
        self._ml_intern = ml_intern
        self.temp_k = temp_k
        self.hairpin_calls: List[Tuple] = []

    @property
    def kT(self) -> float:
        return thermal_energy(self.temp_k)

    @property
    def exp_ml_closing(self) -> float:
        return self._ml_closing

    @property
    def exp_ml_base(self) -> float:
        return self._ml_base

    @property
    def exp_ml_intern(self) -> float:
        return self._ml_intern

    def exp_hairpin(self, size, pair, mm5, mm3, loop_seq):
        self.hairpin_calls.append((size, pair, mm5, mm3, loop_seq))
        if self._hairpin is not None:
            return self._hairpin
        weight = 0.02 * 0.97 ** size * _p(pair) * _b(mm5) * _b(mm3) ** 2
        if loop_seq:
            weight *= 1.0 + 0.05 * loop_seq.count("A")
        return weight

    def exp_interior(self, u1, u2, pair, pair2, si, sj, sp, sq):
        if self._interior is not None:
            return self._interior
        return (1.5 * 0.4 ** (u1 + u2) * 1.1 ** u1 * _p(pair) * _p(pair2) ** 0.5
                * _b(si) * _b(sj) ** 2 * _b(sp) ** 3 * _b(sq) ** 0.5)

    def exp_ml_stem(self, pair, n5, n3):
        if self._ml_stem is not None:
            return self._ml_stem
        return 0.7 * _p(pair) * _b(n5) ** 2 * _b(n3)

    def exp_ext_stem(self, pair, n5, n3):
        if self._ext_stem is not None:
            return self._ext_stem
        return 1.3 * _p(pair) * _b(n5) * _b(n3) ** 3


class BruteForceEnsemble:
    """
    Exhaustive enumeration of the nested structures of a short sequence.

    Parameters
    ----------
    seq : str
        The (ungapped) sequence.
    model : FakeBoltzmannModel
        Weights used to score every loop.
    min_loop_size, max_loop : int
        Same meaning as in :class:`PartitionFoldingConfig`.
    circular : bool
        Treat the backbone as closed.
    unpaired_weights : Sequence[float], optional
        Extra weight of each position when it is unpaired.
    segment_weight : Callable[[DomainContext, int, int], float], optional
        Weight of every maximal unpaired stretch ``[start, end]`` of a loop
        (linear molecules only); empty stretches are passed too.
    """
    def __init__(
        self,
        seq: str,
        model,
        *,
        min_loop_size: int = 3,
        max_loop: int = 30,
        circular: bool = False,
        unpaired_weights: Optional[Sequence[float]] = None,
        segment_weight: Optional[Callable[[DomainContext, int, int], float]] = None,
    ):
        self.seq = seq
        self.n = len(seq)
        self.model = model
        self.turn = min_loop_size
        self.max_loop = max_loop
        self.circular = circular
        self.unpaired_weights = unpaired_weights
        self.segment_weight = segment_weight

    # --- Enumeration ---
    def _can_pair(self, i: int, j: int) -> bool:
        if j - i <= self.turn:
            return False
        if self.circular and self.n - j + i - 1 < self.turn:
            return False
        return can_pair(self.seq[i - 1], self.seq[j - 1])

    def structures(self) -> List[Tuple[Tuple[int, int], ...]]:
        @lru_cache(maxsize=None)
        def fold(i: int, j: int) -> Tuple[Tuple[Tuple[int, int], ...], ...]:
            if i > j:
                return ((),)
            out = list(fold(i + 1, j))
            for k in range(i + 1, j + 1):
                if not self._can_pair(i, k):
                    continue
                for inner in fold(i + 1, k - 1):
                    for rest in fold(k + 1, j):
                        out.append(((i, k),) + inner + rest)
            return tuple(out)

        return list(fold(1, self.n))

    # --- Scoring ---
    def _base(self, pos: int) -> Optional[str]:
        if self.circular:
            return self.seq[(pos - 1) % self.n]
        return self.seq[pos - 1] if 1 <= pos <= self.n else None

    def _type(self, i: int, j: int) -> str:
        return pair_type(self._base(i), self._base(j))

    def _five(self, pos: int) -> Optional[str]:
        return self._base(pos - 1)

    def _three(self, pos: int) -> Optional[str]:
        return self._base(pos + 1)

    def _size(self, start: int, end: int) -> int:
        return max(0, end - start + 1)

    def _hairpin_seq(self, i: int, j: int, u: int) -> Optional[str]:
        return self.seq[i - 1:j] if u <= 6 else None

    def _up(self, pos: int) -> float:
        return 1.0 if self.unpaired_weights is None else self.unpaired_weights[pos - 1]

    def _ligands(self, ctx: DomainContext, children, start: int, end: int) -> float:
        if self.segment_weight is None:
            return 1.0
        weight, pos = 1.0, start
        for k, l in children:
            weight *= self.segment_weight(ctx, pos, k - 1)
            pos = l + 1
        return weight * self.segment_weight(ctx, pos, end)

    def _children(self, partner: Dict[int, int], start: int, end: int):
        children, unpaired, up = [], 0, 1.0
        k = start
        while k <= end:
            if partner.get(k, 0) > k:
                children.append((k, partner[k]))
                k = partner[k] + 1
            else:
                unpaired += 1
                up *= self._up(k)
                k += 1
        return children, unpaired, up

    def _loop(self, partner: Dict[int, int], i: int, j: int) -> float:
        model = self.model
        five, three = self._five, self._three
        children, unpaired, up = self._children(partner, i + 1, j - 1)
        if not children:
            u = self._size(i + 1, j - 1)
            weight = model.exp_hairpin(u, self._type(i, j), three(i), five(j), self._hairpin_seq(i, j, u))
            ctx = DomainContext.HP_LOOP
        elif len(children) == 1:
            k, l = children[0]
            if (k - i - 1) + (j - l - 1) > self.max_loop:
                return 0.0
            weight = model.exp_interior(self._size(i + 1, k - 1), self._size(l + 1, j - 1),
                                        self._type(i, j), self._type(l, k),
                                        three(i), five(j), five(k), three(l))
            ctx = DomainContext.INT_LOOP
        else:
            weight = (model.exp_ml_closing * model.exp_ml_stem(self._type(j, i), five(j), three(i))
                      * model.exp_ml_base ** unpaired)
            weight *= prod(model.exp_ml_stem(self._type(k, l), five(k), three(l)) for k, l in children)
            ctx = DomainContext.MB_LOOP
        weight *= up * self._ligands(ctx, children, i + 1, j - 1)
        for k, l in children:
            weight *= self._loop(partner, k, l)
        return weight

    def _exterior(self, partner: Dict[int, int]) -> float:
        model = self.model
        b = self._base
        n = self.n
        children, unpaired, up = self._children(partner, 1, n)
        inner = prod(self._loop(partner, k, l) for k, l in children)

        if not self.circular:
            stems = prod(model.exp_ext_stem(self._type(k, l), self._five(k), self._three(l)) for k, l in children)
            return stems * up * inner * self._ligands(DomainContext.EXT_LOOP, children, 1, n)
        if not children:
            return up
        if len(children) == 1:
            p, q = children[0]
            u = n - q + p - 1
            loop_seq = self.seq[q - 1:] + self.seq[:p] if u <= 6 else None
            weight = model.exp_hairpin(u, self._type(q, p), b(q + 1), b(p - 1), loop_seq)
        elif len(children) == 2:
            (p, q), (k, l) = children
            ln1, ln2 = k - q - 1, p - 1 + n - l
            if ln1 + ln2 > self.max_loop:
                return 0.0
            weight = model.exp_interior(ln1, ln2, self._type(q, p), self._type(l, k),
                                        b(q + 1), b(p - 1), b(k - 1), b(l + 1))
        else:
            weight = model.exp_ml_closing * model.exp_ml_base ** unpaired
            weight *= prod(model.exp_ml_stem(self._type(k, l), b(k - 1), b(l + 1)) for k, l in children)
        return weight * up * inner

    def weight(self, pairs: Sequence[Tuple[int, int]]) -> float:
        partner: Dict[int, int] = {}
        for i, j in pairs:
            partner[i] = j
            partner[j] = i
        return self._exterior(partner)

    # --- Ensemble quantities ---
    def partition_function(self, power: int = 1) -> float:
        """``Σ_S w(S) ** power``; `power` is the number of identical alignment rows."""
        return sum(self.weight(s) ** power for s in self.structures())

    def pair_probabilities(self) -> Dict[Tuple[int, int], float]:
        z = 0.0
        totals: Dict[Tuple[int, int], float] = {}
        for s in self.structures():
            w = self.weight(s)
            z += w
            for pair in s:
                totals[pair] = totals.get(pair, 0.0) + w
        return {pair: w / z for pair, w in totals.items()}


class _GappedRow(BruteForceEnsemble):
    """One alignment row scored on a column structure; gaps are skipped."""

    def _is_base(self, column: int) -> bool:
        return not is_gap(self.seq[column - 1])

    def _five(self, pos: int) -> Optional[str]:
        bases = [c for c in range(1, pos) if self._is_base(c)]
        return self.seq[bases[-1] - 1] if bases else None

    def _three(self, pos: int) -> Optional[str]:
        bases = [c for c in range(pos + 1, self.n + 1) if self._is_base(c)]
        return self.seq[bases[0] - 1] if bases else None

    def _size(self, start: int, end: int) -> int:
        return sum(1 for c in range(start, end + 1) if self._is_base(c))

    def _hairpin_seq(self, i: int, j: int, u: int) -> Optional[str]:
        if u > 6 or not (self._is_base(i) and self._is_base(j)):
            return None
        return self.seq[i - 1:j].replace("-", "")


class BruteForceAlignment(BruteForceEnsemble):
    """
    Exhaustive enumeration of the column structures of a short alignment.

    A structure weighs the product of its per-row weights times
    ``exp(pscore(i, j) / kT)`` for every pair; column pairs scoring below
    ``MIN_PSCORE`` never form.
    """
    def __init__(self, alignment: Sequence[str], model, *, min_loop_size: int = 3, max_loop: int = 30):
        super().__init__(alignment[0], model, min_loop_size=min_loop_size, max_loop=max_loop)
        self.pscore = covariance_scores(alignment, min_loop_size=min_loop_size)
        self.rows = [_GappedRow(row, model, min_loop_size=min_loop_size, max_loop=max_loop) for row in alignment]

    def _can_pair(self, i: int, j: int) -> bool:
        return j - i > self.turn and self.pscore[i, j] >= MIN_PSCORE

    def weight(self, pairs: Sequence[Tuple[int, int]]) -> float:
        covariance = prod(exp(self.pscore[i, j] / self.model.kT) for i, j in pairs)
        return covariance * prod(row.weight(pairs) for row in self.rows)


@pytest.fixture
def fake_model():
    """Factory for :class:`FakeBoltzmannModel` instances."""
    def _make(**kwargs) -> FakeBoltzmannModel:
        return FakeBoltzmannModel(**kwargs)

    return _make


@pytest.fixture
def brute_force():
    """Factory for :class:`BruteForceEnsemble` instances."""
    def _make(seq: str, model, **kwargs) -> BruteForceEnsemble:
        return BruteForceEnsemble(seq, model, **kwargs)

    return _make


@pytest.fixture
def brute_force_alignment():
    """Factory for :class:`BruteForceAlignment` instances."""
    def _make(alignment: Sequence[str], model, **kwargs) -> BruteForceAlignment:
        return BruteForceAlignment(alignment, model, **kwargs)

    return _make


@pytest.fixture(scope="session")
def turner_model():
    """The bundled Turner 2004 subset at 37 °C."""
    return load_energy_model()
