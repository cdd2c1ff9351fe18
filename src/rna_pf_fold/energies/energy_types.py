from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

# A mapping from a base to its canonical complement, e.g., {"A": "U", "C": "G"}.
BasePairMap = Mapping[str, str]

# An (ΔH [kcal/mol], ΔS [cal/(K·mol)]) tuple.
ThermoPair = Tuple[float, float]

# Multiloop coefficients (a, b, c): closing, per-branch and per-unpaired ΔG.
MultiLoopCoeffs = Tuple[float, float, float]

# Ninio asymmetry penalty per nucleotide and its maximum (ΔG, kcal/mol).
NinioCoeffs = Tuple[float, float]

# A dictionary mapping a key (e.g., a stack "CG/GC") to its (ΔH, ΔS) values.
PairEnergies = Dict[str, ThermoPair]

# A dictionary mapping a loop length (integer) to its (ΔH, ΔS) values.
LoopEnergies = Dict[int, ThermoPair]


@dataclass(frozen=True, slots=True)
class SecondaryStructureEnergies:
    """
    Immutable container for the nearest-neighbour parameters of nested structures.

    Energies are (ΔH [kcal/mol], ΔS [cal/(K·mol)]) unless stated otherwise,
    so free energies can be evaluated at any temperature.

    Parameters
    ----------
    BULGE : LoopEnergies
        Bulge loop baseline by loop length (nt).
    COMPLEMENT_BASES : BasePairMap
        Map of canonical complements.
    DANGLES : PairEnergies
        Single-nucleotide dangles: ``"N./PAIR"`` (5' of the pair) and
        ``"PAIR/.N"`` (3' of the pair).
    HAIRPIN : LoopEnergies
        Hairpin loop baseline by loop length (nt).
    MULTILOOP : MultiLoopCoeffs
        ΔG coefficients ``(a, b, c)`` of ``a + b * branches + c * unpaired``.
    INTERNAL : LoopEnergies
        Interior loop baseline by total loop length (nt).
    NN_STACK : PairEnergies
        Stacking energies keyed ``"<outer pair>/<inner pair>"`` where the
        inner pair is read from its 3' base (e.g. ``"GC/CG"`` for GG/CC).
    TERMINAL_AU : ThermoPair
        Penalty for every helix end closed by an AU or GU pair.
    NINIO : NinioCoeffs
        Interior-loop asymmetry penalty per nucleotide and its cap (ΔG).
    INTERNAL_MISMATCH : PairEnergies
        First-mismatch bonuses in interior loops, keyed ``"X/Y"``.
    HAIRPIN_MISMATCH : PairEnergies, optional
        First-mismatch bonuses in hairpins, keyed ``"X/Y"``.
    SPECIAL_HAIRPINS : PairEnergies, optional
        Total free energies of tabulated tri-, tetra- and hexaloops
        (closing pair included).
    """
    BULGE: LoopEnergies
    COMPLEMENT_BASES: BasePairMap
    DANGLES: PairEnergies
    HAIRPIN: LoopEnergies
    MULTILOOP: MultiLoopCoeffs
    INTERNAL: LoopEnergies
    NN_STACK: PairEnergies
    TERMINAL_AU: ThermoPair = (0.0, 0.0)
    NINIO: NinioCoeffs = (0.0, 0.0)
    INTERNAL_MISMATCH: Optional[PairEnergies] = None
    HAIRPIN_MISMATCH: Optional[PairEnergies] = None
    SPECIAL_HAIRPINS: Optional[PairEnergies] = None
