from __future__ import annotations


def delta_g(dh: float, ds: float, temp_k: float) -> float:
    """
    Compute Gibbs free energy change ΔG(T).

    Uses the thermodynamic relation:
    ``ΔG(T) = ΔH − T * (ΔS / 1000)``

    Parameters
    ----------
    dh : float
        Enthalpy change ΔH in kcal/mol.
    ds : float
        Entropy change ΔS in cal/(K·mol).
    temp_k : float
        Absolute temperature T in Kelvin.

    Returns
    -------
    float
        ΔG(T) in kcal/mol.
    """
    return float(dh) - float(temp_k) * (float(ds) / 1000.0)


def resolve_dh_ds(
    *,
    dh: float | None,
    ds: float | None,
    dg: float | None,
    temp_k: float,
    entropic_default: bool = False,
) -> tuple[float, float]:
    """
    Resolve (ΔH, ΔS) from any two of (ΔH, ΔS, ΔG(T)).

    Given two provided values among ``dh``, ``ds`` and ``dg``, compute the
    missing one using ``ΔG(T) = ΔH − T * (ΔS / 1000)``. If all three are
    provided, ``(dh, ds)`` is returned without checking ``dg``.

    Values are kept at full precision: partition functions multiply many
    Boltzmann factors, so rounding here would accumulate.

    Parameters
    ----------
    dh : float or None
        Enthalpy change ΔH in kcal/mol, or ``None`` if unknown.
    ds : float or None
        Entropy change ΔS in cal/(K·mol), or ``None`` if unknown.
    dg : float or None
        Gibbs free energy change ΔG(T) in kcal/mol at ``temp_k``, or ``None``.
    temp_k : float
        Absolute temperature T in Kelvin used for conversions.
    entropic_default : bool
        If True and only ``dg`` is given, assume ``dh = 0`` (purely entropic term).

    Returns
    -------
    tuple[float, float]
        ``(ΔH, ΔS)`` in (kcal/mol, cal/(K·mol)).

    Raises
    ------
    ValueError
        If fewer than two of ``dh``, ``ds``, ``dg`` are provided (and the
        entropic default does not apply).
    """
    if entropic_default and dh is None and ds is None and dg is not None:
        dh = 0.0

    present: int = sum(v is not None for v in (dh, ds, dg))
    if present < 2:
        raise ValueError("Insufficient thermo terms; need two of (dh, ds, dg).")

    if dh is not None and ds is not None:
        return float(dh), float(ds)

    if dh is not None and dg is not None:
        # ds = 1000 * (dh − dg) / T
        return float(dh), 1000.0 * (float(dh) - float(dg)) / float(temp_k)

    # dh = dg + T * (ds / 1000)
    return float(dg) + float(temp_k) * (float(ds) / 1000.0), float(ds)
