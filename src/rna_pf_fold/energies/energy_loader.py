from __future__ import annotations
from pathlib import Path
from typing import Literal

from rna_pf_fold.energies.data.yaml_io import default_parameter_path, read_yaml
from rna_pf_fold.energies.data.parsers import (
    get_temperature_kelvin, parse_complements, validate_rna_complements,
    parse_multiloop, parse_ninio, parse_terminal_au, parse_loop_table,
    parse_stacks_matrix, parse_dangles, parse_mismatch, parse_special_hairpins,
)
from rna_pf_fold.energies.energy_types import SecondaryStructureEnergies

Kind = Literal["RNA"]


class SecondaryStructureEnergyLoader:
    """
    Loads and parses thermodynamic energy parameters from a YAML file.

    The YAML tables are turned into an immutable
    :class:`SecondaryStructureEnergies` bundle with every entry normalised to
    ``(ΔH, ΔS)``.
    """
    def load(self, kind: Kind = "RNA", yaml_path: str | Path | None = None) -> SecondaryStructureEnergies:
        """
        Loads the thermodynamic energy parameter bundle for a given nucleic acid.

        Parameters
        ----------
        kind : {"RNA"}, optional
            The type of parameter set to load, by default "RNA".
        yaml_path : str | Path | None
            The YAML file to read; the bundled parameter set when omitted.

        Returns
        -------
        SecondaryStructureEnergies
            An immutable data object containing all the parsed tables.

        Raises
        ------
        ValueError
            If a `kind` other than "RNA" is specified or the file is malformed.

        Notes
        -----
        - Energies are stored as `(ΔH [kcal/mol], ΔS [cal/(K·mol)])`.
        - Conversion to free energy at temperature `T` (Kelvin) is:
          `ΔG = ΔH - T * (ΔS / 1000)`.
        """
        if kind.upper() != "RNA":
            raise ValueError("Only 'RNA' is supported for now.")

        return self._build_rna(yaml_path if yaml_path is not None else default_parameter_path())

    def _build_rna(self, yaml_path: str | Path) -> SecondaryStructureEnergies:
        """
        Constructs the RNA thermodynamic parameter tables from a YAML file.

        References
        ----------
        1. Turner, D. H. & Mathews, D. H. (2010). NNDB: the nearest neighbor
           parameter database for predicting stability of nucleic acid
           secondary structure. Nucleic Acids Res., 38, D280–D282.
        2. McCaskill, J. S. (1990). The equilibrium partition function and
           base pair binding probabilities for RNA secondary structure.
           Biopolymers, 29(6-7), 1105–1119.
        """
        data = read_yaml(yaml_path)
        temp_k = get_temperature_kelvin(data)

        complements = parse_complements(data)
        validate_rna_complements(complements)

        nn_stack = parse_stacks_matrix(data, temp_k)
        if not nn_stack:
            raise ValueError("YAML must contain a non-empty 'stacks_matrix' section.")

        return SecondaryStructureEnergies(
            BULGE=parse_loop_table(data, ("bulge_loops", "bulge_loop"), temp_k),
            COMPLEMENT_BASES=complements,
            DANGLES=parse_dangles(data, temp_k),
            HAIRPIN=parse_loop_table(data, ("hairpin_loops", "hairpin_loop"), temp_k),
            MULTILOOP=parse_multiloop(data),
            INTERNAL=parse_loop_table(data, ("internal_loops", "internal_loop"), temp_k),
            NN_STACK=nn_stack,
            TERMINAL_AU=parse_terminal_au(data, temp_k),
            NINIO=parse_ninio(data),
            INTERNAL_MISMATCH=parse_mismatch(data, "internal_mismatches", temp_k),
            HAIRPIN_MISMATCH=parse_mismatch(data, "hairpin_mismatches", temp_k),
            SPECIAL_HAIRPINS=parse_special_hairpins(data, temp_k),
        )
