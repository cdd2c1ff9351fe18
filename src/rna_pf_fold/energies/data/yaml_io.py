from __future__ import annotations
from importlib.resources import files as importlib_files
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_PARAMETER_FILE = "turner2004_pf_min.yaml"


def read_yaml(path: str | Path) -> Dict[str, Any]:
    """
    Read and parse a YAML file.

    Raises
    ------
    ValueError
        If the file does not have a YAML suffix or does not hold a mapping.
    """
    path_obj = Path(path)
    if path_obj.suffix.lower() not in {".yml", ".yaml"}:
        raise ValueError("Only YAML files are supported.")

    data = yaml.safe_load(path_obj.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Top level of {path_obj.name} must be a mapping.")

    return data


def default_parameter_path() -> Path:
    """Location of the parameter set bundled with the package."""
    return Path(str(importlib_files("rna_pf_fold") / "data" / DEFAULT_PARAMETER_FILE))
