from __future__ import annotations
from math import exp, isinf, log
from typing import Mapping, Optional, Tuple

# Ideal gas constant in kcal mol⁻¹ K⁻¹
R_KCAL = 1.98720425864083e-3

# Ideal gas constant in cal mol⁻¹ K⁻¹
R_CAL = R_KCAL * 1000.0

# 0 °C in Kelvin
ZERO_C_IN_KELVIN = 273.15


def celsius_to_kelvin(temp_c: float) -> float:
    """Convert a temperature in °C to Kelvin."""
    return float(temp_c) + ZERO_C_IN_KELVIN


def thermal_energy(temp_k: float) -> float:
    """
    Thermal energy `kT` in kcal/mol at an absolute temperature.

    Parameters
    ----------
    temp_k : float
        Absolute temperature in Kelvin.

    Returns
    -------
    float
        ``R * T`` in kcal/mol.
    """
    return R_KCAL * float(temp_k)


def calculate_delta_g(delta_h_delta_s: Optional[tuple[float, float]], temp_k: float) -> float:
    """
    Compute Gibbs free energy change, ΔG, from enthalpy/entropy at a temperature.

    Uses the thermodynamic relation `ΔG = ΔH − T * (ΔS / 1000)`
    Where:
        - ΔH is in kcal/mol
        - ΔS is in cal/(K·mol)
        - T is in Kelvin.

    Parameters
    ----------
    delta_h_delta_s : tuple[float, float] or None
        Two-tuple `(ΔH, ΔS)`. If `None`, the value is considered unavailable
        and `+∞` is returned.
    temp_k : float
        Absolute temperature in Kelvin.

    Returns
    -------
    float
        Free energy change in `kcal/mol`.
    """
    if delta_h_delta_s is None:
        return float("inf")
    delta_h, delta_s = delta_h_delta_s

    return delta_h - temp_k * (delta_s / 1000.0)


def boltzmann_weight(delta_g: float, kt: float) -> float:
    """
    Boltzmann factor ``exp(-ΔG / kT)``.

    An infinite free energy maps to a weight of exactly zero.
    """
    if isinf(delta_g) and delta_g > 0:
        return 0.0

    return exp(-delta_g / kt)


def lookup_loop_baseline_js(
    table: Mapping[int, Tuple[float, float]],
    size: int,
    *,
    alpha: float = 1.75,
) -> Optional[Tuple[float, float]]:
    """
    Fetch a loop baseline (ΔH, ΔS) for a given loop size, using Jacobson–Stockmayer
    (JS) extrapolation when `size` is not tabulated.

    - Returns the exact (ΔH, ΔS) if `size` is present;
    - Else anchors at the largest key `a <= size` and extrapolates:
            ΔH(n) = ΔH(a)
            ΔS(n) = ΔS(a) − α · R · ln(n/a)        (R in cal/(K·mol))
      which gives ΔG(n) = ΔG(a) + α · R_kcal · T · ln(n/a) at any T;
    - Returns `None` if `size` is below the smallest key or the table is empty.

    Parameters
    ----------
    table : Mapping[int, tuple[float, float]]
        Loop baseline table keyed by integer loop size (nt).
    size : int
        Requested loop size.
    alpha : float
        Jacobson–Stockmayer loop-entropy coefficient.

    Returns
    -------
    Optional[tuple[float, float]]
        The (ΔH, ΔS) pair or `None` if table or anchor is not valid.
    """
    if not table:
        return None

    if size in table:
        return table[size]

    # Anchor = largest tabulated size <= requested size
    anchor = max((k for k in table.keys() if k <= size), default=None)
    if anchor is None:
        return None

    delta_h_a, delta_s_a = table[anchor]

    return delta_h_a, delta_s_a - alpha * R_CAL * log(size / anchor)
