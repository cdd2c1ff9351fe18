from rna_pf_fold.energies.energy_types import SecondaryStructureEnergies
from rna_pf_fold.energies.energy_loader import SecondaryStructureEnergyLoader
from rna_pf_fold.energies.energy_model import (
    BoltzmannEnergyModel,
    BoltzmannEnergyModelProtocol,
    load_energy_model,
)

__all__ = [
    "SecondaryStructureEnergies",
    "SecondaryStructureEnergyLoader",
    "BoltzmannEnergyModel",
    "BoltzmannEnergyModelProtocol",
    "load_energy_model",
]
