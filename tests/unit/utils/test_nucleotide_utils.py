"""
Unit tests for the nucleotide normalisation helpers.

These validate upper-casing and T→U mapping of single bases, gap handling
for alignment rows, and alphabet validation of whole sequences.
"""
import pytest

from rna_pf_fold.utils.nucleotide_utils import is_gap, normalize_base, normalize_sequence, pair_key


def test_normalize_base_uppercases_and_maps_t_to_u():
    """
    Verifies the two core transformations of the function: uppercasing and T-to-U mapping.
    """
    # Test standard uppercasing (A and C).
    assert normalize_base("a") == "A"
    assert normalize_base("c") == "C"
    # Test T-to-U mapping for both cases.
    assert normalize_base("t") == "U"
    assert normalize_base("T") == "U"


@pytest.mark.parametrize("gap", ["-", ".", "_", "~"])
def test_normalize_base_maps_every_gap_symbol_to_dash(gap):
    assert normalize_base(gap) == "-"


def test_normalize_base_returns_non_single_char_inputs_unchanged():
    """
    Inputs that are not single-character strings are passed through as-is.
    """
    assert normalize_base(5) == 5
    assert normalize_base(None) is None
    assert normalize_base("AU") == "AU"
    assert normalize_base("") == ""


def test_normalize_sequence_strips_whitespace_and_maps_t():
    assert normalize_sequence(" acgt\nnu ") == "ACGUNU"


def test_normalize_sequence_accepts_gaps_only_when_allowed():
    """
    Gaps are legal in alignment rows but not in plain sequences.
    """
    assert normalize_sequence("GG.A_C", allow_gaps=True) == "GG-A-C"

    with pytest.raises(ValueError, match="Invalid characters"):
        normalize_sequence("GG-AC")


@pytest.mark.parametrize("raw", ["", "   ", "\n"])
def test_normalize_sequence_rejects_empty_input(raw):
    with pytest.raises(ValueError, match="empty"):
        normalize_sequence(raw)


def test_normalize_sequence_reports_bad_characters():
    with pytest.raises(ValueError) as excinfo:
        normalize_sequence("ACGXZ")

    # Offending symbols are listed in sorted order.
    assert "X, Z" in str(excinfo.value)


def test_is_gap():
    assert is_gap(None)
    assert is_gap("-")
    assert not is_gap("A")


def test_pair_key_normalises_both_bases():
    assert pair_key("g", "c") == "GC"
    assert pair_key("T", "a") == "UA"
