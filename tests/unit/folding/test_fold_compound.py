"""
Unit tests for fold-compound construction: sequence rows, defaults,
collaborator checks and the per-row unpaired weights.
"""
import math

import pytest

from rna_pf_fold.folding import PartitionFoldingConfig
from rna_pf_fold.folding.fold_compound import (
    CompoundKind,
    make_alignment_fold_compound,
    make_fold_compound,
    make_sequence_row,
)
from rna_pf_fold.folding.scaling import estimate_pf_scale
from rna_pf_fold.rules.hard_constraints import HardConstraints
from rna_pf_fold.rules.soft_constraints import SoftConstraints
from rna_pf_fold.rules.unstructured_domains import LigandMotif, UnstructuredDomains


# ------------------------------
# Sequence rows
# ------------------------------
def test_linear_row_has_no_outer_neighbours():
    row = make_sequence_row("GGAC")

    assert row.encoding == (None, "G", "G", "A", "C", None)
    assert row.five_prime[1] is None
    assert row.five_prime[2] == "G"
    assert row.three_prime[3] == "C"
    assert row.three_prime[4] is None
    assert row.a2s == (0, 1, 2, 3, 4)


def test_circular_row_wraps_around():
    row = make_sequence_row("GGAC", circular=True)

    assert row.encoding[0] == "C"
    assert row.encoding[5] == "G"
    assert row.five_prime[1] == "C"
    assert row.three_prime[4] == "G"


def test_gapped_row_skips_gaps():
    """
    Neighbours and the column → position map ignore gap columns.
    """
    row = make_sequence_row("G-AC")

    assert row.ungapped == "GAC"
    assert row.five_prime[3] == "G"
    assert row.three_prime[1] == "A"
    assert row.a2s == (0, 1, 1, 2, 3)


# ------------------------------
# Single sequences
# ------------------------------
def test_make_fold_compound_defaults(turner_model):
    fc = make_fold_compound("ggaacu", turner_model)

    assert fc.kind is CompoundKind.SINGLE
    assert fc.sequence == "GGAACU"
    assert (fc.seq_len, fc.n_seq) == (6, 1)
    assert fc.scale_factors.pf_scale == pytest.approx(estimate_pf_scale(turner_model.kT, 37.0))
    assert fc.state.qm1 is None
    assert fc.exp_f is None


def test_make_fold_compound_uses_given_scale_and_allocates_qm1(fake_model):
    config = PartitionFoldingConfig(pf_scale=1.7, compute_bpp=True)
    fc = make_fold_compound("GGGAAACCC", fake_model(), config)

    assert fc.scale_factors.pf_scale == 1.7
    assert fc.scale_factors.scale[2] == pytest.approx(1.7 ** -2)
    assert fc.state.qm1 is not None


def test_pair_types(fake_model):
    fc = make_fold_compound("GGGAAACCU", fake_model())

    assert fc.pair_types(1, 9) == ("GU",)
    assert fc.pair_types(4, 5) == ("NS",)


def test_rejects_mismatched_hard_constraints(fake_model):
    with pytest.raises(ValueError, match="Hard constraints"):
        make_fold_compound("GGGAAACCC", fake_model(), hard=HardConstraints.permissive(5))


def test_gquad_requires_provider(fake_model):
    with pytest.raises(ValueError, match="quadruplex"):
        make_fold_compound("GGGAAACCC", fake_model(), PartitionFoldingConfig(gquad=True))


def test_gquad_provider_is_ignored_unless_enabled(fake_model):
    fc = make_fold_compound("GGGAAACCC", fake_model(), gquad=lambda i, j: 1.0)

    assert fc.gquad is None


def test_circular_rejects_ligands(fake_model):
    model = fake_model()
    domains = UnstructuredDomains.from_motifs("GGGAAACCCAAA", [LigandMotif("AAA", -1.0)], model.kT)

    with pytest.raises(ValueError, match="Circular"):
        make_fold_compound("GGGAAACCCAAA", model, PartitionFoldingConfig(circular=True), domains=domains)


def test_unpaired_weights_of_a_single_sequence(fake_model):
    model = fake_model()
    energies = [0.2, -0.3, 0.5, 0.0, 0.1, 0.0, 0.0, 0.0, 0.0]
    soft = SoftConstraints.from_unpaired_energies(energies, model.kT)
    fc = make_fold_compound("GGGAAACCC", model, soft=soft)

    assert fc.up_weight(2, 3) == pytest.approx(math.exp(-0.2 / model.kT))
    assert fc.up_weight(4, 3) == 1.0
    assert list(fc.up_weights_from(2, 2)) == pytest.approx([
        math.exp(0.3 / model.kT),
        math.exp(-0.2 / model.kT),
    ])


# ------------------------------
# Alignments
# ------------------------------
def test_alignment_compound(fake_model):
    model = fake_model()
    fc = make_alignment_fold_compound(["GGGAAACCC", "GGGAAACCC"], model)

    assert fc.kind is CompoundKind.ALIGNMENT
    assert fc.n_seq == 2
    assert fc.alignment == ("GGGAAACCC", "GGGAAACCC")
    assert fc.pscore is not None
    assert fc.scale_factors.pf_scale == pytest.approx(estimate_pf_scale(model.kT, 37.0) ** 2)
    # Conserved G-C columns may pair, A-A columns may not.
    assert fc.hard.allows(1, 9)
    assert not fc.hard.allows(4, 9)


def test_alignment_unpaired_weights_use_row_positions(fake_model):
    """
    Row 0 has a gap in column 3, so columns 2..3 hold only its position 2.
    """
    model = fake_model()
    soft0 = SoftConstraints.from_unpaired_energies([1.0, 1.0, 1.0], model.kT)
    fc = make_alignment_fold_compound(["GA-C", "GAAC"], model, soft=[soft0, None])

    assert fc.up_weight(2, 3) == pytest.approx(math.exp(-1.0 / model.kT))
    assert fc.up_weight(2, 4) == pytest.approx(math.exp(-2.0 / model.kT))


def test_alignment_soft_constraints_are_checked(fake_model):
    model = fake_model()

    with pytest.raises(ValueError):
        make_alignment_fold_compound(["GGGAAACCC", "GGGAAACCC"], model, soft=[None])

    callback = SoftConstraints(exp_f=lambda i, j, k, l, d: 1.0)
    with pytest.raises(ValueError, match="callbacks"):
        make_alignment_fold_compound(["GGGAAACCC", "GGGAAACCC"], model, soft=[callback, None])
