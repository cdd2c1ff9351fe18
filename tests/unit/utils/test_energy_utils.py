"""
Unit tests for the thermodynamic helpers in `energy_utils`.

Covers the Gibbs free-energy relation, the thermal energy `kT`, Boltzmann
factors and the Jacobson–Stockmayer loop extrapolation used by the loop
tables.
"""
import math

import pytest

from rna_pf_fold.utils.energy_utils import (
    R_CAL,
    R_KCAL,
    boltzmann_weight,
    calculate_delta_g,
    celsius_to_kelvin,
    lookup_loop_baseline_js,
    thermal_energy,
)


# ------------------------------
# calculate_delta_g / kT
# ------------------------------
def test_calculate_delta_g_none_returns_inf():
    """
    A missing (ΔH, ΔS) pair means the loop is impossible: ΔG = +∞.
    """
    assert math.isinf(calculate_delta_g(None, 310.15))


def test_calculate_delta_g_matches_formula():
    """
    ΔG = ΔH - T * ΔS, with ΔS converted from cal to kcal.
    """
    dh, ds = -7.7, -20.6
    temp_k = 310.15

    expected = dh - temp_k * (ds / 1000.0)
    assert math.isclose(calculate_delta_g((dh, ds), temp_k), expected, rel_tol=1e-12)


def test_thermal_energy_at_37c():
    """kT at 37 °C is about 0.6163 kcal/mol."""
    kt = thermal_energy(celsius_to_kelvin(37.0))

    assert kt == pytest.approx(0.61632, abs=1e-4)
    assert kt == pytest.approx(R_KCAL * 310.15)


def test_gas_constant_units_agree():
    assert R_CAL == pytest.approx(1000.0 * R_KCAL)


# ------------------------------
# boltzmann_weight
# ------------------------------
def test_boltzmann_weight_of_zero_energy_is_one():
    assert boltzmann_weight(0.0, 0.6) == 1.0


def test_boltzmann_weight_of_infinite_energy_is_exactly_zero():
    """
    Forbidden loops (ΔG = +∞) must contribute nothing, without a NaN.
    """
    assert boltzmann_weight(float("inf"), 0.6) == 0.0


def test_boltzmann_weight_matches_exponential():
    kt = thermal_energy(310.15)

    assert boltzmann_weight(-1.5, kt) == pytest.approx(math.exp(1.5 / kt))


# ------------------------------
# lookup_loop_baseline_js
# ------------------------------
def test_lookup_loop_js_exact_hit_returns_table_entry():
    table = {3: (1.3, -13.2), 6: (-2.9, -26.8), 10: (5.0, -4.8)}

    for size, entry in table.items():
        assert lookup_loop_baseline_js(table, size) == entry


@pytest.mark.parametrize("alpha", [1.75, 2.5])
def test_lookup_loop_js_extrapolates_entropy_from_largest_anchor(alpha):
    """
    Untabulated sizes keep the anchor's ΔH and lower its ΔS by α·R·ln(n/a).

    Parameters
    ----------
    alpha : float
        Jacobson–Stockmayer coefficient.
    """
    table = {3: (0.0, -10.0), 6: (-2.9, -26.8)}

    dh, ds = lookup_loop_baseline_js(table, 9, alpha=alpha)

    # The anchor is the largest tabulated size not above the request (6).
    assert dh == pytest.approx(-2.9)
    assert ds == pytest.approx(-26.8 - alpha * R_CAL * math.log(9 / 6))


def test_lookup_loop_js_extrapolated_free_energy_grows_logarithmically():
    """
    ΔG(n) = ΔG(a) + 1.75 · R · T · ln(n / a) at any temperature.
    """
    table = {30: (0.0, -7.69 * 1000.0 / 310.15)}
    for temp_k in (290.0, 310.15, 330.0):
        g_anchor = calculate_delta_g(table[30], temp_k)
        g_big = calculate_delta_g(lookup_loop_baseline_js(table, 45), temp_k)

        assert g_big - g_anchor == pytest.approx(1.75 * R_KCAL * temp_k * math.log(45 / 30))


def test_lookup_loop_js_below_min_or_empty_returns_none():
    assert lookup_loop_baseline_js({}, 5) is None
    assert lookup_loop_baseline_js({3: (1.0, -10.0)}, 2) is None
