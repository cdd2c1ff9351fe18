"""
Free-energy (ΔG, kcal/mol) functions of the nearest-neighbour loop model.

The functions take loop *geometry* (loop lengths, pair types and the
neighbouring nucleotides) rather than sequence indices, so the same code
scores a single sequence and every row of an alignment, where gaps make the
per-row loop lengths differ from the alignment-column distances.
"""
from __future__ import annotations
from typing import Optional

from rna_pf_fold.energies.energy_types import SecondaryStructureEnergies
from rna_pf_fold.rules.constraints import NON_STANDARD
from rna_pf_fold.utils import calculate_delta_g, lookup_loop_baseline_js
from rna_pf_fold.utils.nucleotide_utils import is_gap

DEFAULT_T_K = 310.15  # 37 °C in Kelvin

INF = float("inf")

# Pair types that carry the terminal AU/GU penalty.
_AU_LIKE = frozenset({"AU", "UA", "GU", "UG", NON_STANDARD})


def hairpin_energy(
    size: int,
    pair: str,
    mm5: Optional[str],
    mm3: Optional[str],
    loop_seq: Optional[str],
    energies: SecondaryStructureEnergies,
    temp_k: float = DEFAULT_T_K,
) -> float:
    """
    Calculates the free energy (ΔG) of a hairpin loop.

    Parameters
    ----------
    size : int
        Number of unpaired nucleotides in the loop.
    pair : str
        Type of the closing pair `(i, j)`.
    mm5, mm3 : str or None
        First and last loop nucleotide (3' of `i`, 5' of `j`).
    loop_seq : str or None
        Closing pair plus loop (``size + 2`` characters) for the special
        hairpin lookup.
    energies : SecondaryStructureEnergies
        Parameter tables.
    temp_k : float, optional
        Temperature in Kelvin.

    Returns
    -------
    float
        ΔG in kcal/mol; `+∞` if no baseline is available.

    Notes
    -----
    Loops shorter than the smallest tabulated size only arise in alignment
    rows whose loop is shortened by gaps; they are scored with the smallest
    tabulated baseline.
    """
    if not energies.HAIRPIN:
        return INF

    # --- 1. Tabulated special loops ---
    if loop_seq and energies.SPECIAL_HAIRPINS and len(loop_seq) == size + 2:
        special = energies.SPECIAL_HAIRPINS.get(loop_seq.upper())
        if special is not None:
            return calculate_delta_g(special, temp_k)

    # --- 2. Baseline ---
    table_size = max(size, min(energies.HAIRPIN))
    base_dh_ds = lookup_loop_baseline_js(energies.HAIRPIN, table_size)
    if base_dh_ds is None:
        return INF
    delta_g = calculate_delta_g(base_dh_ds, temp_k)

    # --- 3. Closing pair terms ---
    if size > 3:
        delta_g += _first_mismatch_bonus(energies.HAIRPIN_MISMATCH, mm5, mm3, temp_k)
    delta_g += _terminal_au_penalty(pair, energies, temp_k)

    return delta_g


def stack_energy(
    pair: str,
    pair2: str,
    energies: SecondaryStructureEnergies,
    temp_k: float = DEFAULT_T_K,
) -> float:
    """
    Free energy of the outer pair `pair` stacked on the inner pair `pair2`.

    `pair2` is read from the inner pair's 3' base (the ``"XY/ZW"``
    stacking-table convention), e.g. GG/CC is ``stack("GC", "CG")``.
    Stacks involving a non-standard pair are neutral.
    """
    stack_dh_ds = energies.NN_STACK.get(f"{pair}/{pair2}")
    if stack_dh_ds is None:
        return 0.0 if NON_STANDARD in (pair, pair2) else INF

    return calculate_delta_g(stack_dh_ds, temp_k)


def internal_loop_energy(
    u1: int,
    u2: int,
    pair: str,
    pair2: str,
    si: Optional[str],
    sj: Optional[str],
    sp: Optional[str],
    sq: Optional[str],
    energies: SecondaryStructureEnergies,
    temp_k: float = DEFAULT_T_K,
) -> float:
    """
    Calculates the free energy of an interior loop, bulge or stack.

    The loop is closed by the outer pair `(i, j)` of type `pair` and the
    inner pair `(k, l)` whose type read from `l` is `pair2`.

    Parameters
    ----------
    u1, u2 : int
        Unpaired nucleotides on the 5' side (between i and k) and the
        3' side (between l and j).
    pair, pair2 : str
        Outer and (reversed) inner pair types.
    si, sj : str or None
        Nucleotides 3' of `i` and 5' of `j`.
    sp, sq : str or None
        Nucleotides 5' of `k` and 3' of `l`.
    energies : SecondaryStructureEnergies
        Parameter tables.
    temp_k : float
        Temperature in Kelvin.

    Returns
    -------
    float
        ΔG in kcal/mol.

    Notes
    -----
    - ``u1 = u2 = 0``: nearest-neighbour stack.
    - one side empty: bulge; a 1-nt bulge keeps the stack of its pairs,
      longer bulges pay the terminal AU/GU penalties.
    - otherwise: length baseline, Ninio asymmetry, first-mismatch bonuses
      (not for 1×n loops) and terminal AU/GU penalties.
    """
    if u1 == 0 and u2 == 0:
        return stack_energy(pair, pair2, energies, temp_k)

    # --- Bulge ---
    if u1 == 0 or u2 == 0:
        size = u1 + u2
        base_dh_ds = lookup_loop_baseline_js(energies.BULGE, size)
        if base_dh_ds is None:
            return INF
        delta_g = calculate_delta_g(base_dh_ds, temp_k)
        if size == 1:
            delta_g += stack_energy(pair, pair2, energies, temp_k)
        else:
            delta_g += _terminal_au_penalty(pair, energies, temp_k)
            delta_g += _terminal_au_penalty(pair2, energies, temp_k)

        return delta_g

    # --- Interior loop ---
    size = u1 + u2
    base_dh_ds = lookup_loop_baseline_js(energies.INTERNAL, size)
    if base_dh_ds is None:
        return INF
    delta_g = calculate_delta_g(base_dh_ds, temp_k)

    ninio_per_nt, ninio_max = energies.NINIO
    delta_g += min(ninio_max, ninio_per_nt * abs(u1 - u2))

    if min(u1, u2) > 1:
        delta_g += _first_mismatch_bonus(energies.INTERNAL_MISMATCH, si, sj, temp_k)
        delta_g += _first_mismatch_bonus(energies.INTERNAL_MISMATCH, sq, sp, temp_k)

    delta_g += _terminal_au_penalty(pair, energies, temp_k)
    delta_g += _terminal_au_penalty(pair2, energies, temp_k)

    return delta_g


def dangle_energy(
    pair: str,
    n5: Optional[str],
    n3: Optional[str],
    energies: SecondaryStructureEnergies,
    temp_k: float = DEFAULT_T_K,
) -> float:
    """
    Dangling-end contribution of the neighbours of a helix end.

    Parameters
    ----------
    pair : str
        Pair type of the helix end, read from the base whose 5' neighbour is `n5`.
    n5, n3 : str or None
        Nucleotide 5' of the pair's first base and 3' of its second base;
        absent neighbours contribute nothing.
    """
    delta_g = 0.0
    if not is_gap(n5):
        dangle5 = energies.DANGLES.get(f"{n5}./{pair}")
        if dangle5 is not None:
            delta_g += calculate_delta_g(dangle5, temp_k)
    if not is_gap(n3):
        dangle3 = energies.DANGLES.get(f"{pair}/.{n3}")
        if dangle3 is not None:
            delta_g += calculate_delta_g(dangle3, temp_k)

    return delta_g


def exterior_stem_energy(
    pair: str,
    n5: Optional[str],
    n3: Optional[str],
    energies: SecondaryStructureEnergies,
    temp_k: float = DEFAULT_T_K,
) -> float:
    """ΔG of a helix end in the exterior loop: dangles plus terminal AU/GU penalty."""
    return dangle_energy(pair, n5, n3, energies, temp_k) + _terminal_au_penalty(pair, energies, temp_k)


def multiloop_stem_energy(
    pair: str,
    n5: Optional[str],
    n3: Optional[str],
    energies: SecondaryStructureEnergies,
    temp_k: float = DEFAULT_T_K,
) -> float:
    """ΔG of a multiloop branch: per-branch penalty, dangles and terminal AU/GU penalty."""
    _, branch_cost, _ = energies.MULTILOOP

    return branch_cost + exterior_stem_energy(pair, n5, n3, energies, temp_k)


def multiloop_closing_energy(energies: SecondaryStructureEnergies) -> float:
    """Closing penalty `a` of the affine multiloop model ``a + b * branches + c * unpaired``."""
    coeff_a, _, _ = energies.MULTILOOP

    return coeff_a


def multiloop_unpaired_energy(energies: SecondaryStructureEnergies) -> float:
    """Per-unpaired-nucleotide penalty `c` of the affine multiloop model."""
    _, _, coeff_c = energies.MULTILOOP

    return coeff_c


def _first_mismatch_bonus(
    table: Optional[dict],
    base_5: Optional[str],
    base_3: Optional[str],
    temp_k: float,
) -> float:
    """Bonus for the first mismatch `base_5`/`base_3` inside a closing pair."""
    if not table or is_gap(base_5) or is_gap(base_3):
        return 0.0
    mismatch = table.get(f"{base_5}/{base_3}")

    return 0.0 if mismatch is None else calculate_delta_g(mismatch, temp_k)


def _terminal_au_penalty(pair: Optional[str], energies: SecondaryStructureEnergies, temp_k: float) -> float:
    """Terminal AU/GU (and non-standard) helix-end penalty."""
    if pair in _AU_LIKE:
        return calculate_delta_g(energies.TERMINAL_AU, temp_k)

    return 0.0
