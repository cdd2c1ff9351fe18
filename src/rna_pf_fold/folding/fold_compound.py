"""
The fold compound: everything one partition-function run needs.

A fold compound bundles the sequence (or alignment) context, the energy
model, the configuration, the constraint collaborators, the scale factors
and the DP matrices. Single sequences are represented as an alignment of
one row whose column → position map is the identity, so one recursion
skeleton serves both kinds.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from rna_pf_fold.energies import BoltzmannEnergyModelProtocol, load_energy_model
from rna_pf_fold.folding.alignment import MIN_PSCORE, covariance_scores, validate_alignment
from rna_pf_fold.folding.fold_state import PartitionFoldState, make_pf_fold_state
from rna_pf_fold.folding.pf_recurrences import PartitionFoldingConfig
from rna_pf_fold.folding.scaling import ScaleFactors, estimate_pf_scale, make_scale_factors
from rna_pf_fold.rules.constraints import pair_type
from rna_pf_fold.rules.hard_constraints import HardConstraints
from rna_pf_fold.rules.soft_constraints import ExpDecompositionFn, SoftConstraints
from rna_pf_fold.rules.unstructured_domains import UnstructuredDomains
from rna_pf_fold.utils.nucleotide_utils import is_gap, normalize_sequence

logger = logging.getLogger(__name__)

# G(i, j) -> unscaled Boltzmann weight of a G-quadruplex spanning [i, j].
GQuadFn = Callable[[int, int], float]


class CompoundKind(Enum):
    SINGLE = "single"
    ALIGNMENT = "alignment"


@dataclass(frozen=True, slots=True)
class SequenceRow:
    """
    One (possibly gapped) row of a fold compound.

    Attributes
    ----------
    aligned : str
        The row as given, gaps normalised to ``-``.
    ungapped : str
        The row without gaps.
    encoding : Tuple[str | None, ...]
        ``encoding[p]`` is the symbol in column `p` (1-based). Entries 0 and
        ``n + 1`` hold the wrapped-around neighbours of a circular molecule
        and `None` otherwise.
    five_prime, three_prime : Tuple[str | None, ...]
        Nearest non-gap nucleotide 5' (resp. 3') of each column; wraps around
        for circular molecules and is `None` past the ends of linear ones.
    a2s : Tuple[int, ...]
        ``a2s[p]`` is the number of nucleotides in columns ``1..p``.
    """
    aligned: str
    ungapped: str
    encoding: Tuple[Optional[str], ...]
    five_prime: Tuple[Optional[str], ...]
    three_prime: Tuple[Optional[str], ...]
    a2s: Tuple[int, ...]


def make_sequence_row(aligned: str, circular: bool = False) -> SequenceRow:
    """Build the encoding, neighbour tables and column map of one row."""
    n = len(aligned)
    encoding = [None] + list(aligned) + [None]
    if circular and n:
        encoding[0] = aligned[-1]
        encoding[n + 1] = aligned[0]

    bases = [(p, base) for p, base in enumerate(aligned, start=1) if not is_gap(base)]

    five_prime: list = [None] * (n + 2)
    last = None
    for p in range(1, n + 1):
        five_prime[p] = last
        if not is_gap(aligned[p - 1]):
            last = aligned[p - 1]

    three_prime: list = [None] * (n + 2)
    nxt = None
    for p in range(n, 0, -1):
        three_prime[p] = nxt
        if not is_gap(aligned[p - 1]):
            nxt = aligned[p - 1]

    if circular and bases:
        first_base, last_base = bases[0][1], bases[-1][1]
        for p in range(1, n + 1):
            if five_prime[p] is None:
                five_prime[p] = last_base
            if three_prime[p] is None:
                three_prime[p] = first_base

    a2s = [0] * (n + 1)
    for p in range(1, n + 1):
        a2s[p] = a2s[p - 1] + (0 if is_gap(aligned[p - 1]) else 1)

    return SequenceRow(
        aligned=aligned,
        ungapped="".join(base for _, base in bases),
        encoding=tuple(encoding),
        five_prime=tuple(five_prime),
        three_prime=tuple(three_prime),
        a2s=tuple(a2s),
    )


@dataclass(slots=True)
class FoldCompound:
    """
    Sequence context, collaborators and DP state of one partition-function run.

    Attributes
    ----------
    kind : CompoundKind
        Single sequence or alignment.
    rows : Tuple[SequenceRow, ...]
        One row for a single sequence, `n_seq` rows for an alignment.
    model : BoltzmannEnergyModelProtocol
        Loop Boltzmann weights.
    config : PartitionFoldingConfig
        Run settings.
    hard : HardConstraints
        Allowed pairs per loop context and maximal unpaired runs.
    soft : Tuple[SoftConstraints | None, ...]
        Soft constraints per row; `None` is neutral.
    scale_factors : ScaleFactors
        `pf_scale` and the per-length scale vectors.
    state : PartitionFoldState
        The DP matrices.
    domains : UnstructuredDomains, optional
        Ligand-binding callback (single sequences only).
    gquad : GQuadFn, optional
        G-quadruplex weight provider (single sequences only).
    pscore : np.ndarray, optional
        Covariance scores (alignments only).
    """
    kind: CompoundKind
    rows: Tuple[SequenceRow, ...]
    model: BoltzmannEnergyModelProtocol
    config: PartitionFoldingConfig
    hard: HardConstraints
    soft: Tuple[Optional[SoftConstraints], ...]
    scale_factors: ScaleFactors
    state: PartitionFoldState
    domains: Optional[UnstructuredDomains] = None
    gquad: Optional[GQuadFn] = None
    pscore: Optional[np.ndarray] = None

    @property
    def seq_len(self) -> int:
        return len(self.rows[0].aligned)

    @property
    def n_seq(self) -> int:
        return len(self.rows)

    @property
    def sequence(self) -> str:
        """The sequence of a single-sequence compound (first row otherwise)."""
        return self.rows[0].aligned

    @property
    def alignment(self) -> Tuple[str, ...]:
        return tuple(row.aligned for row in self.rows)

    @property
    def exp_f(self) -> Optional[ExpDecompositionFn]:
        """The general soft-constraint callback, if any."""
        sc = self.soft[0]
        if self.kind is CompoundKind.SINGLE and sc is not None:
            return sc.exp_f

        return None

    @property
    def kT(self) -> float:
        return self.model.kT

    def pair_types(self, i: int, j: int) -> Tuple[str, ...]:
        """Pair type of columns `(i, j)` in every row."""
        return tuple(pair_type(row.encoding[i], row.encoding[j]) for row in self.rows)

    def up_weight(self, start: int, end: int) -> float:
        """Soft-constraint weight of columns ``start..end`` being unpaired, over all rows."""
        if end < start:
            return 1.0
        weight = 1.0
        for row, sc in zip(self.rows, self.soft):
            if sc is None or sc.exp_energy_up is None:
                continue
            first = row.a2s[start - 1] + 1
            weight *= sc.up_weight(first, row.a2s[end] - row.a2s[start - 1])

        return weight

    def up_weights_from(self, start: int, count: int) -> np.ndarray:
        """``w[m - 1] = up_weight(start, start + m - 1)`` for ``m = 1..count``."""
        if self.kind is CompoundKind.SINGLE:
            sc = self.soft[0]
            if sc is None or sc.exp_energy_up is None:
                return np.ones(count, dtype=np.float64)
            return np.asarray(sc.exp_energy_up[start, 1:count + 1], dtype=np.float64)

        return np.array([self.up_weight(start, start + m - 1) for m in range(1, count + 1)], dtype=np.float64)


def _resolve_scale_factors(
    seq_len: int,
    n_seq: int,
    model: BoltzmannEnergyModelProtocol,
    config: PartitionFoldingConfig,
) -> ScaleFactors:
    pf_scale = config.pf_scale
    if pf_scale is None:
        # Alignment weights are products over rows, so is the per-column scale.
        pf_scale = estimate_pf_scale(model.kT, config.temp_c) ** n_seq

    return make_scale_factors(seq_len, pf_scale, model.exp_ml_base ** n_seq)


def make_fold_compound(
    seq: str,
    model: Optional[BoltzmannEnergyModelProtocol] = None,
    config: Optional[PartitionFoldingConfig] = None,
    *,
    hard: Optional[HardConstraints] = None,
    soft: Optional[SoftConstraints] = None,
    domains: Optional[UnstructuredDomains] = None,
    gquad: Optional[GQuadFn] = None,
) -> FoldCompound:
    """
    Build a single-sequence fold compound.

    Parameters
    ----------
    seq : str
        RNA sequence (T is read as U).
    model : BoltzmannEnergyModelProtocol, optional
        Energy model; the bundled parameters at ``config.temp_c`` when omitted.
    config : PartitionFoldingConfig, optional
        Run settings; defaults when omitted.
    hard : HardConstraints, optional
        Hard constraints; canonical pairs with a minimal hairpin when omitted.
    soft : SoftConstraints, optional
        Soft constraints.
    domains : UnstructuredDomains, optional
        Ligand-binding collaborator.
    gquad : GQuadFn, optional
        G-quadruplex weight provider, required when ``config.gquad`` is set.

    Returns
    -------
    FoldCompound
        A compound with zero-filled matrices, ready for :func:`pf`.

    Raises
    ------
    ValueError
        On an invalid sequence, mismatched constraint sizes, or a collaborator
        the circular exterior loop cannot apply.
    """
    seq = normalize_sequence(seq)
    config = config if config is not None else PartitionFoldingConfig()
    model = model if model is not None else load_energy_model(temp_c=config.temp_c)
    n = len(seq)

    if hard is None:
        hard = HardConstraints.from_sequence(seq, min_loop_size=config.min_loop_size, circular=config.circular)
    elif hard.seq_len != n:
        raise ValueError(f"Hard constraints cover {hard.seq_len} positions, sequence has {n}.")

    if config.gquad and gquad is None:
        raise ValueError("G-quadruplex folding requires a gquad weight provider.")

    if config.circular and (domains is not None or gquad is not None or (soft is not None and soft.exp_f)):
        raise ValueError("Circular folding supports hard constraints and unpaired/stack soft constraints only.")

    fc = FoldCompound(
        kind=CompoundKind.SINGLE,
        rows=(make_sequence_row(seq, circular=config.circular),),
        model=model,
        config=config,
        hard=hard,
        soft=(soft,),
        scale_factors=_resolve_scale_factors(n, 1, model, config),
        state=make_pf_fold_state(n, store_qm1=config.needs_qm1),
        domains=domains,
        gquad=gquad if config.gquad else None,
    )
    logger.debug(f"Fold compound: n={n}, pf_scale={fc.scale_factors.pf_scale:.6g}, circular={config.circular}")

    return fc


def make_alignment_fold_compound(
    alignment: Sequence[str],
    model: Optional[BoltzmannEnergyModelProtocol] = None,
    config: Optional[PartitionFoldingConfig] = None,
    *,
    hard: Optional[HardConstraints] = None,
    soft: Optional[Sequence[Optional[SoftConstraints]]] = None,
) -> FoldCompound:
    """
    Build a fold compound for a set of aligned sequences.

    Column pairs are allowed when their covariance score is at least
    ``cv_fact * MIN_PSCORE`` and the hairpin is long enough.

    Parameters
    ----------
    alignment : Sequence[str]
        Equal-length aligned rows (``-``, ``.``, ``_``, ``~`` are gaps).
    model, config :
        As for :func:`make_fold_compound`.
    hard : HardConstraints, optional
        Replaces the covariance-based default pair rule.
    soft : Sequence[SoftConstraints | None], optional
        One entry per row, indexed by ungapped row positions.

    Raises
    ------
    ValueError
        On invalid rows, mismatched sizes, or a general soft-constraint callback.
    """
    rows = validate_alignment(alignment)
    config = config if config is not None else PartitionFoldingConfig()
    model = model if model is not None else load_energy_model(temp_c=config.temp_c)
    n, n_seq = len(rows[0]), len(rows)

    pscore = covariance_scores(rows, min_loop_size=config.min_loop_size, cv_fact=config.cv_fact,
                               nc_fact=config.nc_fact)
    if hard is None:
        threshold = config.cv_fact * MIN_PSCORE
        hard = HardConstraints.from_pair_rule(
            n, lambda i, j: pscore[i, j] >= threshold, min_loop_size=config.min_loop_size,
            circular=config.circular,
        )
    elif hard.seq_len != n:
        raise ValueError(f"Hard constraints cover {hard.seq_len} columns, alignment has {n}.")

    if soft is None:
        soft_rows: Tuple[Optional[SoftConstraints], ...] = (None,) * n_seq
    else:
        soft_rows = tuple(soft)
        if len(soft_rows) != n_seq:
            raise ValueError(f"Expected {n_seq} soft-constraint entries, got {len(soft_rows)}.")
        if any(sc is not None and sc.exp_f is not None for sc in soft_rows):
            raise ValueError("General soft-constraint callbacks are not supported for alignments.")

    fc = FoldCompound(
        kind=CompoundKind.ALIGNMENT,
        rows=tuple(make_sequence_row(row, circular=config.circular) for row in rows),
        model=model,
        config=config,
        hard=hard,
        soft=soft_rows,
        scale_factors=_resolve_scale_factors(n, n_seq, model, config),
        state=make_pf_fold_state(n, store_qm1=config.needs_qm1),
        pscore=pscore,
    )
    logger.debug(f"Alignment fold compound: n={n}, n_seq={n_seq}, pf_scale={fc.scale_factors.pf_scale:.6g}")

    return fc
