from rna_pf_fold.rules.constraints import (
    MAX_LOOP,
    MIN_HAIRPIN_UNPAIRED,
    NON_STANDARD,
    PAIR_TYPES,
    can_pair,
    pair_type,
)
from rna_pf_fold.rules.hard_constraints import HardConstraints, LoopContext
from rna_pf_fold.rules.soft_constraints import Decomposition, SoftConstraints
from rna_pf_fold.rules.unstructured_domains import DomainContext, LigandMotif, UnstructuredDomains

__all__ = [
    "MAX_LOOP",
    "MIN_HAIRPIN_UNPAIRED",
    "NON_STANDARD",
    "PAIR_TYPES",
    "can_pair",
    "pair_type",
    "HardConstraints",
    "LoopContext",
    "Decomposition",
    "SoftConstraints",
    "DomainContext",
    "LigandMotif",
    "UnstructuredDomains",
]
