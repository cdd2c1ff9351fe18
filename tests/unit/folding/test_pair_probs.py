"""
Tests for the outside pass that turns the filled partition function into
base-pair probabilities.
"""
import numpy as np
import pytest

from rna_pf_fold.folding import PartitionFoldingConfig, make_alignment_fold_compound, make_fold_compound, pf
from rna_pf_fold.folding.pair_probs import (
    mean_bp_distance,
    pair_probabilities,
    plist_from_probs,
    stack_probabilities,
    unpaired_probabilities,
)
from rna_pf_fold.rules.hard_constraints import HardConstraints
from rna_pf_fold.rules.soft_constraints import SoftConstraints

SEQUENCES = [
    "GGGAAACCC",
    "GAAACGAAUCGAAAC",
    "GGGAAACCCAGGAAACCUA",
]


def folded(seq, model, **kwargs):
    config = PartitionFoldingConfig(compute_bpp=True, pf_scale=1.0, **kwargs)
    fc = make_fold_compound(seq, model, config)
    pf(fc)
    return fc


@pytest.mark.parametrize("seq", SEQUENCES)
def test_probabilities_match_enumeration(seq, fake_model, brute_force):
    model = fake_model()
    fc = folded(seq, model)
    expected = brute_force(seq, model).pair_probabilities()
    n = len(seq)

    for i in range(1, n + 1):
        for j in range(i + 1, n + 1):
            assert fc.state.probs.get(i, j) == pytest.approx(expected.get((i, j), 0.0), abs=1e-10)


def test_probabilities_with_unpaired_soft_constraints(fake_model, brute_force):
    seq = "GGGAAACCCAGGAAACCUA"
    model = fake_model()
    energies = [0.2 if p % 2 else -0.1 for p in range(len(seq))]
    soft = SoftConstraints.from_unpaired_energies(energies, model.kT)
    config = PartitionFoldingConfig(compute_bpp=True, pf_scale=1.0)
    fc = make_fold_compound(seq, model, config, soft=soft)
    pf(fc)

    weights = [float(np.exp(-e / model.kT)) for e in energies]
    expected = brute_force(seq, model, unpaired_weights=weights).pair_probabilities()

    for (i, j), p in expected.items():
        assert fc.state.probs.get(i, j) == pytest.approx(p, abs=1e-10)


def test_unpaired_probabilities_and_distance(fake_model, brute_force):
    """
    ``pu`` and the mean base-pair distance follow from ``P(i, j)``.
    """
    seq = "GAAACGAAUCGAAAC"
    model = fake_model()
    fc = folded(seq, model)
    expected = brute_force(seq, model).pair_probabilities()

    pu = unpaired_probabilities(fc)
    for pos in range(1, len(seq) + 1):
        paired = sum(p for (i, j), p in expected.items() if pos in (i, j))
        assert pu[pos] == pytest.approx(1.0 - paired, abs=1e-10)

    distance = sum(2.0 * p * (1.0 - p) for p in expected.values())
    assert mean_bp_distance(fc) == pytest.approx(distance, abs=1e-10)


def test_enforced_pair_has_probability_one(fake_model):
    seq = "GGGAAACCC"
    model = fake_model()
    config = PartitionFoldingConfig(compute_bpp=True)
    hard = HardConstraints.from_dot_bracket(seq, "(.......)")
    fc = make_fold_compound(seq, model, config, hard=hard)
    pf(fc)

    assert fc.state.probs.get(1, 9) == pytest.approx(1.0)


def test_plist_respects_cutoff(fake_model):
    fc = folded("GGGAAACCCAGGAAACCUA", fake_model())

    plist = plist_from_probs(fc, cutoff=0.01)
    assert plist
    assert all(entry.probability >= 0.01 for entry in plist)
    assert [(e.base_i, e.base_j) for e in plist] == sorted((e.base_i, e.base_j) for e in plist)
    assert len(plist_from_probs(fc, cutoff=0.0)) >= len(plist)


@pytest.mark.parametrize("seq", ["GGGAAACCC", "GGGAAACCCAGGAAACCUA"])
def test_stack_probabilities_match_enumeration(seq, fake_model, brute_force):
    """
    ``P(i, j stacked on i+1, j-1)`` is the weight share of structures
    containing both pairs.
    """
    model = fake_model()
    fc = folded(seq, model)
    bf = brute_force(seq, model)

    z = 0.0
    stacked = {}
    for s in bf.structures():
        w = bf.weight(s)
        z += w
        for i, j in s:
            if (i + 1, j - 1) in s:
                stacked[(i, j)] = stacked.get((i, j), 0.0) + w
    expected = {pair: w / z for pair, w in stacked.items()}

    stacks = stack_probabilities(fc, cutoff=0.0)
    found = {(e.base_i, e.base_j): e.probability for e in stacks}

    assert expected
    assert set(found) <= set(expected)
    for pair, p in expected.items():
        assert found.get(pair, 0.0) == pytest.approx(p, abs=1e-10)
    assert [(e.base_i, e.base_j) for e in stacks] == sorted(found)


def test_stack_probabilities_respect_cutoff(fake_model):
    fc = folded("GGGAAACCCAGGAAACCUA", fake_model())
    everything = stack_probabilities(fc, cutoff=0.0)
    cutoff = max(e.probability for e in everything)

    kept = stack_probabilities(fc, cutoff=cutoff)
    assert len(kept) >= 1
    assert all(e.probability >= cutoff for e in kept)


def test_probabilities_computed_on_demand(fake_model):
    config = PartitionFoldingConfig(store_qm1=True, pf_scale=1.0)
    fc = make_fold_compound("GGGAAACCC", fake_model(), config)
    pf(fc)
    assert fc.state.probs is None

    plist = plist_from_probs(fc)
    assert fc.state.probs is not None
    assert plist


# ------------------------------
# Unsupported compounds
# ------------------------------
def test_rejects_alignments(fake_model):
    config = PartitionFoldingConfig(store_qm1=True)
    fc = make_alignment_fold_compound(["GGGAAACCC", "GGGAAACCC"], fake_model(), config)
    pf(fc)

    with pytest.raises(ValueError, match="single sequences"):
        pair_probabilities(fc)


def test_rejects_circular(fake_model):
    config = PartitionFoldingConfig(circular=True)
    fc = make_fold_compound("GGGAAACCCAAA", fake_model(), config)
    pf(fc)

    with pytest.raises(ValueError, match="circular"):
        pair_probabilities(fc)


def test_requires_filled_matrices(fake_model):
    fc = make_fold_compound("GGGAAACCC", fake_model(), PartitionFoldingConfig(compute_bpp=True))

    with pytest.raises(RuntimeError):
        pair_probabilities(fc)


def test_requires_qm1(fake_model):
    fc = make_fold_compound("GGGAAACCC", fake_model(), PartitionFoldingConfig())
    pf(fc)

    with pytest.raises(RuntimeError, match="qm1"):
        pair_probabilities(fc)


def test_rejects_empty_ensemble(turner_model):
    hard = HardConstraints.from_dot_bracket("AAAAA", "|....")
    config = PartitionFoldingConfig(store_qm1=True)
    fc = make_fold_compound("AAAAA", turner_model, config, hard=hard)
    pf(fc)

    with pytest.raises(ValueError, match="zero"):
        pair_probabilities(fc)
