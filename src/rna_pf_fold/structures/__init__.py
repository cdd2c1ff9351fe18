from rna_pf_fold.structures.pairing import Pair, PairProbability
from rna_pf_fold.structures.tri_matrix import PartitionTriMatrix, TriLayout

__all__ = [
    "Pair",
    "PairProbability",
    "PartitionTriMatrix",
    "TriLayout",
]
