from rna_pf_fold.folding.fold_state import PartitionFoldState, make_pf_fold_state
from rna_pf_fold.folding.pf_recurrences import PartitionFoldingConfig, PartitionFunctionEngine
from rna_pf_fold.folding.scaling import PartitionOverflowError, ScaleFactors
from rna_pf_fold.folding.fold_compound import (
    CompoundKind,
    FoldCompound,
    make_alignment_fold_compound,
    make_fold_compound,
)
from rna_pf_fold.folding.pair_probs import mean_bp_distance, pair_probabilities, plist_from_probs, stack_probabilities
from rna_pf_fold.folding.partition import (
    PF_FAILURE_ENERGY,
    PartitionResult,
    alipf_fold,
    pf,
    pf_circfold,
    pf_fold,
    rescale_pf_params,
    subsequence_free_energy,
)

__all__ = [
    "PartitionFoldState",
    "make_pf_fold_state",
    "PartitionFoldingConfig",
    "PartitionFunctionEngine",
    "PartitionOverflowError",
    "ScaleFactors",
    "CompoundKind",
    "FoldCompound",
    "make_alignment_fold_compound",
    "make_fold_compound",
    "mean_bp_distance",
    "pair_probabilities",
    "plist_from_probs",
    "stack_probabilities",
    "PF_FAILURE_ENERGY",
    "PartitionResult",
    "alipf_fold",
    "pf",
    "pf_circfold",
    "pf_fold",
    "rescale_pf_params",
    "subsequence_free_energy",
]
