"""
Tests for `BoltzmannEnergyModel`, the memoised weight layer between the
ΔG functions and the recursions.
"""
import math

import pytest

from rna_pf_fold.energies.energy_model import BoltzmannEnergyModel, load_energy_model
from rna_pf_fold.energies.energy_ops import hairpin_energy, internal_loop_energy
from rna_pf_fold.energies.energy_types import SecondaryStructureEnergies
from rna_pf_fold.utils.energy_utils import thermal_energy


def test_load_energy_model_sets_temperature():
    model = load_energy_model(temp_c=25.0)

    assert model.temp_k == pytest.approx(298.15)
    assert model.kT == pytest.approx(thermal_energy(298.15))


def test_weights_are_boltzmann_factors_of_loop_energies(turner_model):
    kt = turner_model.kT
    dg_hp = hairpin_energy(5, "GC", "A", "A", None, turner_model.params, turner_model.temp_k)
    dg_int = internal_loop_energy(2, 2, "CG", "CG", "A", "G", "A", "G", turner_model.params, turner_model.temp_k)

    assert turner_model.exp_hairpin(5, "GC", "A", "A", "GAAAAAC") == pytest.approx(math.exp(-dg_hp / kt))
    assert turner_model.exp_interior(2, 2, "CG", "CG", "A", "G", "A", "G") == pytest.approx(math.exp(-dg_int / kt))


def test_multiloop_constants(turner_model):
    kt = turner_model.kT

    assert turner_model.exp_ml_closing == pytest.approx(math.exp(-9.3 / kt))
    assert turner_model.exp_ml_intern == pytest.approx(math.exp(0.9 / kt))
    assert turner_model.exp_ml_base == 1.0


def test_special_hairpins_only_for_short_loops(turner_model):
    """
    A special loop sequence changes the weight of a triloop; for long loops
    the sequence is ignored.
    """
    special = turner_model.exp_hairpin(3, "CG", "A", "C", "CAACG")
    generic = turner_model.exp_hairpin(3, "CG", "A", "C", None)
    assert special != pytest.approx(generic)

    long_loop = "G" + "A" * 8 + "C"
    assert turner_model.exp_hairpin(8, "GC", "A", "A", long_loop) == turner_model.exp_hairpin(8, "GC", "A", "A", None)


def test_weights_are_memoised():
    model = load_energy_model()
    first = model.exp_ext_stem("GC", "A", "U")
    size = len(model._cache)

    assert model.exp_ext_stem("GC", "A", "U") == first
    assert len(model._cache) == size


def test_missing_tables_give_zero_weight():
    """
    A loop with no baseline has ΔG = +∞ and hence weight 0.
    """
    params = SecondaryStructureEnergies(
        BULGE={},
        COMPLEMENT_BASES={"A": "U", "U": "A", "G": "C", "C": "G"},
        DANGLES={},
        HAIRPIN={},
        MULTILOOP=(3.0, 0.0, 0.0),
        INTERNAL={},
        NN_STACK={},
    )
    model = BoltzmannEnergyModel(params=params)

    assert model.exp_hairpin(4, "GC", "A", "A", None) == 0.0
    assert model.exp_interior(1, 0, "GC", "CG", "A", "A", "A", "A") == 0.0
    assert model.exp_ext_stem("GC", None, None) == 1.0
