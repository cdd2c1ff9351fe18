from typing import Optional

# Characters accepted as gaps in aligned rows; all are normalised to "-".
GAP_CHARS = frozenset({"-", ".", "_", "~"})

RNA_ALPHABET = frozenset({"A", "C", "G", "U", "N"})


def normalize_base(base_raw: str) -> str:
    """
    Upper-case a nucleotide base and map T->U so RNA logic can be applied uniformly.

    Parameters
    ----------
    base_raw : str
        Raw single-character nucleotide base.

    Returns
    -------
    str
        Normalized base in {A, U, G, C, N}, or "-" for any gap character.
    """
    if not isinstance(base_raw, str) or len(base_raw) != 1:
        return base_raw

    if base_raw in GAP_CHARS:
        return "-"

    base_norm = base_raw.upper()

    return "U" if base_norm == "T" else base_norm


def normalize_sequence(raw_sequence: str, *, allow_gaps: bool = False) -> str:
    """
    Normalise an RNA sequence (or aligned row) and validate its alphabet.

    Whitespace is stripped, bases are upper-cased and T is mapped to U.

    Parameters
    ----------
    raw_sequence : str
        The input sequence.
    allow_gaps : bool
        Accept gap characters (for alignment rows).

    Returns
    -------
    str
        The normalised sequence.

    Raises
    ------
    ValueError
        If the sequence is empty or contains characters outside the alphabet.
    """
    cleaned = "".join(raw_sequence.split())
    if not cleaned:
        raise ValueError("Sequence must not be empty.")

    normalized = "".join(normalize_base(ch) for ch in cleaned)
    allowed = RNA_ALPHABET | {"-"} if allow_gaps else RNA_ALPHABET
    bad = sorted({ch for ch in normalized if ch not in allowed})
    if bad:
        raise ValueError(f"Invalid characters in sequence: {', '.join(bad)}")

    return normalized


def is_gap(base: Optional[str]) -> bool:
    """True for a missing symbol or an alignment gap."""
    return base is None or base == "-"


def pair_key(base_a: str, base_b: str) -> str:
    """
    Build the two-letter pair key "XY" for bases X (5') and Y (3').

    Parameters
    ----------
    base_a, base_b : str
        Single nucleotides.

    Returns
    -------
    str
        Normalised key such as "GC" or "UG".
    """
    return f"{normalize_base(base_a)}{normalize_base(base_b)}"
