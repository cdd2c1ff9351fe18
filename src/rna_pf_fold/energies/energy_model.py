from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from rna_pf_fold.energies.energy_loader import SecondaryStructureEnergyLoader
from rna_pf_fold.energies.energy_types import SecondaryStructureEnergies
from rna_pf_fold.energies.energy_ops import (
    hairpin_energy, internal_loop_energy, exterior_stem_energy, multiloop_stem_energy,
    multiloop_closing_energy, multiloop_unpaired_energy,
)
from rna_pf_fold.utils.energy_utils import boltzmann_weight, celsius_to_kelvin, thermal_energy


class BoltzmannEnergyModelProtocol(Protocol):
    """
    Interface of the Boltzmann-weight callbacks used by the recursions.

    Every weight is ``exp(-ΔG / kT)`` of the corresponding loop term, without
    any ``pf_scale`` rescaling (the recursions apply the scale factors). A
    weight of 0 means the loop is impossible.
    """
    temp_k: float

    @property
    def kT(self) -> float: ...

    @property
    def exp_ml_closing(self) -> float: ...

    @property
    def exp_ml_base(self) -> float: ...

    @property
    def exp_ml_intern(self) -> float: ...

    def exp_hairpin(self, size: int, pair: str, mm5: Optional[str], mm3: Optional[str],
                    loop_seq: Optional[str]) -> float: ...

    def exp_interior(self, u1: int, u2: int, pair: str, pair2: str, si: Optional[str], sj: Optional[str],
                     sp: Optional[str], sq: Optional[str]) -> float: ...

    def exp_ml_stem(self, pair: str, n5: Optional[str], n3: Optional[str]) -> float: ...

    def exp_ext_stem(self, pair: str, n5: Optional[str], n3: Optional[str]) -> float: ...


@dataclass(frozen=True, slots=True)
class BoltzmannEnergyModel:
    """
    Nearest-neighbour Boltzmann weights at a fixed temperature.

    Dispatches to the ΔG functions of :mod:`rna_pf_fold.energies.energy_ops`
    and memoises the resulting weights, since the recursions query the same
    loop geometries many times.

    Attributes
    ----------
    params : SecondaryStructureEnergies
        Parsed parameter tables.
    temp_k : float
        Temperature in Kelvin. Defaults to 310.15 K (37 °C).
    """
    params: SecondaryStructureEnergies
    temp_k: float = 310.15
    _cache: Dict[Tuple[Any, ...], float] = field(default_factory=dict, init=False, repr=False, compare=False)

    @property
    def kT(self) -> float:
        """Thermal energy in kcal/mol."""
        return thermal_energy(self.temp_k)

    def _memo(self, key: Tuple[Any, ...], energy_fn: Callable[[], float]) -> float:
        weight = self._cache.get(key)
        if weight is None:
            weight = boltzmann_weight(energy_fn(), self.kT)
            self._cache[key] = weight

        return weight

    @property
    def exp_ml_closing(self) -> float:
        """Weight of closing a multiloop (the closing stem itself excluded)."""
        return self._memo(("ml_closing",), lambda: multiloop_closing_energy(self.params))

    @property
    def exp_ml_base(self) -> float:
        """Weight of one unpaired nucleotide inside a multiloop."""
        return self._memo(("ml_base",), lambda: multiloop_unpaired_energy(self.params))

    @property
    def exp_ml_intern(self) -> float:
        """Per-branch weight without any pair-specific terms."""
        return self._memo(("ml_intern",), lambda: self.params.MULTILOOP[1])

    def exp_hairpin(self, size: int, pair: str, mm5: Optional[str], mm3: Optional[str],
                    loop_seq: Optional[str]) -> float:
        """
        Weight of a hairpin loop of `size` unpaired nucleotides.

        Parameters
        ----------
        size : int
            Unpaired nucleotides in the loop.
        pair : str
            Closing pair type.
        mm5, mm3 : str or None
            First and last loop nucleotides.
        loop_seq : str or None
            Closing pair plus loop, for the special hairpin lookup.

        Returns
        -------
        float
            ``exp(-ΔG_hairpin / kT)``.
        """
        # Only short loops can match a special hairpin entry.
        key_seq = loop_seq if loop_seq is not None and size <= 6 else None
        return self._memo(
            ("hp", size, pair, mm5, mm3, key_seq),
            lambda: hairpin_energy(size, pair, mm5, mm3, key_seq, self.params, self.temp_k),
        )

    def exp_interior(self, u1: int, u2: int, pair: str, pair2: str, si: Optional[str], sj: Optional[str],
                     sp: Optional[str], sq: Optional[str]) -> float:
        """Weight of the interior loop (or stack/bulge) between `(i, j)` and `(k, l)`."""
        return self._memo(
            ("int", u1, u2, pair, pair2, si, sj, sp, sq),
            lambda: internal_loop_energy(u1, u2, pair, pair2, si, sj, sp, sq, self.params, self.temp_k),
        )

    def exp_ml_stem(self, pair: str, n5: Optional[str], n3: Optional[str]) -> float:
        """Weight of a helix branching off a multiloop."""
        return self._memo(
            ("ml_stem", pair, n5, n3),
            lambda: multiloop_stem_energy(pair, n5, n3, self.params, self.temp_k),
        )

    def exp_ext_stem(self, pair: str, n5: Optional[str], n3: Optional[str]) -> float:
        """Weight of a helix ending in the exterior loop."""
        return self._memo(
            ("ext_stem", pair, n5, n3),
            lambda: exterior_stem_energy(pair, n5, n3, self.params, self.temp_k),
        )


def load_energy_model(yaml_path: Optional[str | Path] = None, temp_c: float = 37.0) -> BoltzmannEnergyModel:
    """
    Load a parameter file and build the Boltzmann model at `temp_c` (°C).

    Parameters
    ----------
    yaml_path : str | Path, optional
        Parameter YAML; the bundled Turner 2004 subset when omitted.
    temp_c : float
        Temperature in Celsius.

    Returns
    -------
    BoltzmannEnergyModel
        Model ready for the recursion engines.
    """
    params = SecondaryStructureEnergyLoader().load(kind="RNA", yaml_path=yaml_path)

    return BoltzmannEnergyModel(params=params, temp_k=celsius_to_kelvin(temp_c))
