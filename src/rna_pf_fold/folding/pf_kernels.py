import numpy as np
import numba as nb


# -------------------------
# Circular multiloop kernels
# -------------------------
@nb.njit(cache=False, fastmath=False)
def circular_qm2(qm1_data: np.ndarray, jindx: np.ndarray, n: int, turn: int) -> np.ndarray:
    """
    Builds ``qm2[k]``: two or more multiloop branches on ``[k, n]``.

    ``qm2[k] = Σ_{u=k+turn+1}^{n-turn-2} Qm1(k, u) * Qm1(u+1, n)`` for
    ``k = 1..n-turn-2``, read from the column-wise `qm1` matrix.

    Parameters
    ----------
    qm1_data : np.ndarray
        Flat column-wise `qm1` storage (offset ``jindx[j] + i``).
    jindx : np.ndarray
        Column-wise index table.
    n : int
        Sequence length.
    turn : int
        Minimum hairpin size.

    Returns
    -------
    np.ndarray
        Array of length ``n + 2``; entries outside ``1..n-turn-2`` are 0.
    """
    qm2 = np.zeros(n + 2, dtype=np.float64)
    for k in range(1, n - turn - 1):
        total = 0.0
        for u in range(k + turn + 1, n - turn - 1):
            total += qm1_data[jindx[u] + k] * qm1_data[jindx[n] + u + 1]
        qm2[k] = total

    return qm2


@nb.njit(cache=False, fastmath=False)
def circular_multiloop_sum(qm_data: np.ndarray, iindx: np.ndarray, qm2: np.ndarray, n: int, turn: int) -> float:
    """
    ``Σ_{k=turn+2}^{n-2turn-4} Qm(1, k) * qm2[k + 1]``: the exterior loop of
    a circular molecule read as a multiloop with at least three branches.
    """
    total = 0.0
    for k in range(turn + 2, n - 2 * turn - 3):
        total += qm_data[iindx[1] - k] * qm2[k + 1]

    return total
