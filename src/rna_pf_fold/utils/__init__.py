from rna_pf_fold.utils.energy_utils import (
    R_KCAL,
    boltzmann_weight,
    calculate_delta_g,
    celsius_to_kelvin,
    lookup_loop_baseline_js,
    thermal_energy,
)
from rna_pf_fold.utils.indices_utils import column_wise_index, row_wise_index
from rna_pf_fold.utils.nucleotide_utils import normalize_base, normalize_sequence, pair_key

__all__ = [
    "R_KCAL",
    "boltzmann_weight",
    "calculate_delta_g",
    "celsius_to_kelvin",
    "lookup_loop_baseline_js",
    "thermal_energy",
    "column_wise_index",
    "row_wise_index",
    "normalize_base",
    "normalize_sequence",
    "pair_key",
]
