"""
Unstructured domains: ligands that bind stretches of unpaired nucleotides.

The recursions only see a callback ``exp_energy_cb(i, j, context)``:

* with ``context & MOTIF`` it returns the summed weight of motifs that
  occupy exactly the segment ``[i, j]``;
* otherwise it returns the partition function of the unpaired segment
  ``[i, j]`` over all ways of placing motifs in it, the unbound state
  included (so an empty or motif-free segment weighs 1).
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntFlag
from math import exp
from typing import Callable, Dict, Sequence, Tuple

import numpy as np

from rna_pf_fold.utils.nucleotide_utils import normalize_sequence


class DomainContext(IntFlag):
    """Loop context of an unpaired segment queried for ligand binding."""
    EXT_LOOP = 1
    HP_LOOP = 2
    INT_LOOP = 4
    MB_LOOP = 8
    ALL_LOOPS = 15
    MOTIF = 16


LOOP_CONTEXTS = (
    DomainContext.EXT_LOOP,
    DomainContext.HP_LOOP,
    DomainContext.INT_LOOP,
    DomainContext.MB_LOOP,
)

ExpDomainFn = Callable[[int, int, DomainContext], float]


@dataclass(frozen=True, slots=True)
class LigandMotif:
    """
    A sequence motif bound by a ligand.

    Attributes
    ----------
    motif : str
        Nucleotides that must be unpaired and match exactly.
    energy : float
        Binding free energy in kcal/mol.
    loop_types : DomainContext
        Loop contexts in which the motif may be bound.
    """
    motif: str
    energy: float
    loop_types: DomainContext = DomainContext.ALL_LOOPS


@dataclass(slots=True)
class UnstructuredDomains:
    """
    Ligand-binding collaborator attached to a fold compound.

    Attributes
    ----------
    motif_sizes : Tuple[int, ...]
        Distinct motif widths; the recursions keep one rolling buffer per width.
    exp_energy_cb : ExpDomainFn
        Segment/motif weight callback (see module docstring).
    """
    motif_sizes: Tuple[int, ...]
    exp_energy_cb: ExpDomainFn
    motifs: Tuple[LigandMotif, ...] = field(default=())

    @property
    def max_motif_size(self) -> int:
        return max(self.motif_sizes, default=0)

    @classmethod
    def from_motifs(cls, seq: str, motifs: Sequence[LigandMotif], kt: float) -> "UnstructuredDomains":
        """
        Precompute motif occurrences and segment partition functions for `seq`.

        Parameters
        ----------
        seq : str
            The RNA sequence of the fold compound.
        motifs : Sequence[LigandMotif]
            Motifs to place.
        kt : float
            Thermal energy in kcal/mol.

        Returns
        -------
        UnstructuredDomains
            A collaborator whose callback serves all loop contexts.

        Raises
        ------
        ValueError
            If no motif is given or a motif is empty.
        """
        if not motifs:
            raise ValueError("At least one ligand motif is required.")
        seq = normalize_sequence(seq)
        motifs = tuple(LigandMotif(normalize_sequence(m.motif), m.energy, m.loop_types) for m in motifs)
        n = len(seq)

        # Motif hits per loop context, keyed by the occupied segment.
        hits: Dict[DomainContext, Dict[Tuple[int, int], float]] = {ctx: {} for ctx in LOOP_CONTEXTS}
        for m in motifs:
            width = len(m.motif)
            weight = exp(-m.energy / kt)
            for start in range(1, n - width + 2):
                if seq[start - 1:start - 1 + width] != m.motif:
                    continue
                segment = (start, start + width - 1)
                for ctx in LOOP_CONTEXTS:
                    if m.loop_types & ctx:
                        hits[ctx][segment] = hits[ctx].get(segment, 0.0) + weight

        # Segment partition functions, z[i, j] over j >= i - 1.
        segment_z: Dict[DomainContext, np.ndarray] = {}
        for ctx in LOOP_CONTEXTS:
            ends: Dict[int, list] = {}
            for (start, end), weight in hits[ctx].items():
                ends.setdefault(end, []).append((start, weight))
            z = np.ones((n + 2, n + 2), dtype=np.float64)
            for i in range(1, n + 1):
                for j in range(i, n + 1):
                    total = z[i, j - 1]
                    for start, weight in ends.get(j, ()):
                        if start >= i:
                            total += z[i, start - 1] * weight
                    z[i, j] = total
            segment_z[ctx] = z

        def exp_energy_cb(i: int, j: int, context: DomainContext) -> float:
            loop = DomainContext(context & DomainContext.ALL_LOOPS)
            if loop not in segment_z:
                raise ValueError(f"Exactly one loop context expected, got {context!r}.")
            if context & DomainContext.MOTIF:
                return hits[loop].get((i, j), 0.0)
            if j < i:
                return 1.0

            return float(segment_z[loop][i, j])

        sizes = tuple(sorted({len(m.motif) for m in motifs}))

        return cls(motif_sizes=sizes, exp_energy_cb=exp_energy_cb, motifs=motifs)
