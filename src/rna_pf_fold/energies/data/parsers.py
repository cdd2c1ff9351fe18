from __future__ import annotations
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple

from rna_pf_fold.energies.energy_types import (
    BasePairMap,
    LoopEnergies,
    MultiLoopCoeffs,
    NinioCoeffs,
    PairEnergies,
    ThermoPair,
)
from rna_pf_fold.energies.data.thermo_math import resolve_dh_ds


# ---------- Top-level config helpers ----------

def get_temperature_kelvin(data: Mapping[str, Any]) -> float:
    """
    Return the temperature (Kelvin) at which the tabulated ΔG values were measured.

    Notes
    -----
    Prefer metadata.temperature_kelvin, else top-level temperature_kelvin,
    else default 310.15 K.
    """
    metadata = data.get("metadata") or {}
    temp_k = metadata.get("temperature_kelvin") or data.get("temperature_kelvin") or 310.15

    return float(temp_k)


def parse_complements(data: Mapping[str, Any]) -> BasePairMap:
    """
    Parse and normalize the base complement map.

    Raises
    ------
    ValueError
        If the complements mapping is missing or empty.
    """
    complements_data = data.get("complements")
    if not isinstance(complements_data, dict) or not complements_data:
        raise ValueError("YAML must contain a non-empty 'complements' mapping.")

    return {str(k).upper(): str(v).upper() for k, v in complements_data.items()}


def validate_rna_complements(complements: BasePairMap) -> None:
    """
    Validate that an RNA complement map contains U and does not contain T.

    Raises
    ------
    ValueError
        If 'U' is missing, or 'T' is present, in keys or values.
    """
    if "U" not in complements.keys() and "U" not in complements.values():
        raise ValueError("RNA complements must include uracil ('U').")
    if "T" in complements.keys() or "T" in complements.values():
        raise ValueError("RNA complements must not contain thymine ('T') (DNA-specific).")


# ---------- Generic Cell Helpers ----------

def _cell(matrix: Any, idx_i: int, idx_j: int) -> float | None:
    """
    Safely fetch a numeric cell from a 2D matrix-like object.

    Returns
    -------
    float | None
        Cell value coerced to `float`, or `None` if out of bounds,
        matrix is `None`, or the cell itself is `None`.
    """
    if matrix is None:
        return None
    try:
        cell_value = matrix[idx_i][idx_j]
    except (IndexError, KeyError, TypeError):
        return None

    return None if cell_value is None else float(cell_value)


def _entry_dg(entry: Mapping[str, Any]) -> Any:
    return entry.get("dg") if "dg" in entry else entry.get("dg_37")


def parse_thermo_entry(entry: Any, temp_k: float) -> Optional[ThermoPair]:
    """
    Resolve one `{dh|ds|dg}` mapping to `(ΔH, ΔS)`.

    A bare number is read as ΔG. Entries giving only ΔG are treated as
    purely entropic (ΔH = 0).

    Returns
    -------
    tuple of float, float or None
        `None` when the entry is empty.
    """
    if entry is None:
        return None
    if isinstance(entry, (int, float)):
        return resolve_dh_ds(dh=None, ds=None, dg=float(entry), temp_k=temp_k, entropic_default=True)
    if not isinstance(entry, dict):
        raise ValueError(f"Unsupported thermodynamic entry: {entry!r}")

    dh = entry.get("dh")
    ds = entry.get("ds")
    dg = _entry_dg(entry)
    if dh is None and ds is None and dg is None:
        return None

    return resolve_dh_ds(dh=dh, ds=ds, dg=dg, temp_k=temp_k, entropic_default=True)


def _resolve_cell_thermo(
    dh_matrix: Any, ds_matrix: Any, dg_matrix: Any, idx_i: int, idx_j: int, temp_k: float
) -> Optional[Tuple[float, float]]:
    """
    Resolve a single cell's thermodynamic tuple (ΔH, ΔS) from up to three grids.

    Returns
    -------
    tuple of float, float or None
        `(ΔH, ΔS)`, or `None` if the cell is empty in every grid.
    """
    dh = _cell(dh_matrix, idx_i, idx_j)
    ds = _cell(ds_matrix, idx_i, idx_j)
    dg = _cell(dg_matrix, idx_i, idx_j)
    if dh is None and ds is None and dg is None:
        return None

    return resolve_dh_ds(dh=dh, ds=ds, dg=dg, temp_k=temp_k, entropic_default=True)


def _parse_grid(
    grid: Any,
    temp_k: float,
    key_fmtr: Callable[[str, str], str],
) -> PairEnergies:
    """
    Flatten a `rows` × `cols` grid with any of `dh`, `ds`, `dg` into keyed entries.

    Cells empty in all grids are omitted.
    """
    if not isinstance(grid, dict):
        return {}

    rows = [str(x) for x in grid.get("rows", [])]
    cols = [str(x) for x in grid.get("cols", [])]
    dh_rows = grid.get("dh")
    ds_rows = grid.get("ds")
    dg_rows = _entry_dg(grid)

    energies: PairEnergies = {}
    for i, row in enumerate(rows):
        for j, col in enumerate(cols):
            delta_h_delta_s = _resolve_cell_thermo(dh_rows, ds_rows, dg_rows, i, j, temp_k)
            if delta_h_delta_s is None:
                continue

            energies[key_fmtr(row, col)] = delta_h_delta_s

    return energies


# ---------- Multiloop / scalars ----------

def parse_multiloop(data: Mapping[str, Any]) -> MultiLoopCoeffs:
    """
    Parse multiloop coefficients `(a, b, c)` from the YAML tree.

    Returns
    -------
    MultiLoopCoeffs
        Closing penalty `a`, per-branch penalty `b` and per-unpaired
        penalty `c`, as ΔG in kcal/mol.

    Raises
    ------
    ValueError
        If the `multiloop` section is missing or not a mapping.

    Notes
    -----
    The affine multiloop model scores ``a + b * branches + c * unpaired``.
    """
    multiloop_data = data.get("multiloop")
    if not isinstance(multiloop_data, dict):
        raise ValueError("Missing 'multiloop' section.")

    coeff_a = float(multiloop_data.get("a", 0.0))
    coeff_b = float(multiloop_data.get("b", 0.0))
    coeff_c = float(multiloop_data.get("c", 0.0))

    return coeff_a, coeff_b, coeff_c


def parse_ninio(data: Mapping[str, Any]) -> NinioCoeffs:
    """Asymmetry penalty per nucleotide and its cap (kcal/mol); zeros if absent."""
    ninio_data = data.get("ninio") or {}

    return float(ninio_data.get("per_nt", 0.0)), float(ninio_data.get("max", 0.0))


def parse_terminal_au(data: Mapping[str, Any], temp_k: float) -> ThermoPair:
    """Penalty for helices ending in an AU or GU pair; zero if absent."""
    resolved = parse_thermo_entry(data.get("terminal_au"), temp_k)

    return resolved if resolved is not None else (0.0, 0.0)


# ---------- Loop length tables ----------

def parse_loop_table(
    data: Mapping[str, Any],
    keys: Iterable[str],
    temp_k: float,
) -> LoopEnergies:
    """
    Parse baseline loop energies indexed by loop length (nt).

    The first present key among `keys` (e.g. ``("hairpin_loops",
    "hairpin_loop")``) is used; it maps loop length → {dh|ds|dg}.

    Returns
    -------
    LoopEnergies
        Mapping `length:int → (ΔH, ΔS)`. Empty if no table is present.
    """
    loop = None
    for loop_type in keys:
        if loop_type in data:
            loop = data[loop_type]
            break

    if not isinstance(loop, dict):
        return {}

    loop_energies: LoopEnergies = {}
    for length_str, entry in loop.items():
        resolved = parse_thermo_entry(entry, temp_k)
        if resolved is None:
            continue
        loop_energies[int(length_str)] = resolved

    return loop_energies


# ---------- Stacks (nearest-neighbor) ----------

def parse_stacks_matrix(data: Mapping[str, Any], temp_k: float) -> PairEnergies:
    """
    Parse the stacking matrix into flat ``"<outer>/<inner>"`` keys.

    The YAML section must have `rows` (outer pair types), `cols` (inner pair
    types read from the inner 3' base) and any two of `dh`, `ds`, `dg`.

    Returns
    -------
    PairEnergies
        Mapping ``"CG/GC" → (ΔH, ΔS)`` for all non-empty cells.
    """
    return _parse_grid(data.get("stacks_matrix"), temp_k, lambda r, c: f"{r}/{c}")


# ---------- Dangles ----------

def parse_dangles(data: Mapping[str, Any], temp_k: float) -> PairEnergies:
    """
    Parse both 5' and 3' dangle matrices into a unified flat map.

    Expected YAML sections:
      - `dangle5_matrix` → keys of the form ``"N./PAIR"``
      - `dangle3_matrix` → keys of the form ``"PAIR/.N"``

    Returns
    -------
    PairEnergies
        Combined mapping of dangle contributions for all present cells.
    """
    dangles_energies: PairEnergies = {}
    dangles_energies.update(_parse_grid(
        data.get("dangle5_matrix"), temp_k, lambda pair, nuc: f"{nuc}./{pair}"
    ))
    dangles_energies.update(_parse_grid(
        data.get("dangle3_matrix"), temp_k, lambda pair, nuc: f"{pair}/.{nuc}"
    ))

    return dangles_energies


# ---------- Mismatches ----------

def parse_mismatch(data: Mapping[str, Any], section: str, temp_k: float) -> PairEnergies:
    """
    Parse a first-mismatch table into ``"X/Y"`` keys.

    `rows` are the loop nucleotide 3' of the closing pair's 5' base and
    `cols` the loop nucleotide 5' of its 3' base.

    Returns
    -------
    PairEnergies
        Mapping ``"X/Y" → (ΔH, ΔS)``; empty if the section is absent.
    """
    return _parse_grid(data.get(section), temp_k, lambda r, c: f"{r}/{c}")


# ---------- Special hairpins (optional) ----------

def parse_special_hairpins(data: Mapping[str, Any], temp_k: float) -> PairEnergies:
    """
    Parse sequence-specific hairpin overrides (optional).

    Keys are the hairpin sequences including the closing pair.

    Returns
    -------
    PairEnergies
        Mapping `sequence → (ΔH, ΔS)` for entries with data.
    """
    special_hairpins_data = data.get("special_hairpins")
    if not isinstance(special_hairpins_data, dict):
        return {}

    special_hairpins_energies: PairEnergies = {}
    for k, entry in special_hairpins_data.items():
        resolved = parse_thermo_entry(entry, temp_k)
        if resolved is None:
            continue
        special_hairpins_energies[str(k).upper()] = resolved

    return special_hairpins_energies
