"""
Root matching strategies.

Pole-zero cancellation and root-locus tracing both need to pair up two sets of
complex roots. The greedy heuristics below are kept behind plain function
signatures so that a stricter assignment can be passed in their place:

    pairing(zeros, poles) -> (canceled_zeros, canceled_poles)
    assignment(previous, current) -> row
"""

import numpy as np
from numba import njit

PAIRING_RTOL = 1.4901161193847656e-08


def roots_match(a, b, rtol=PAIRING_RTOL):
    """Symmetric relative closeness of two (possibly complex) roots."""
    return abs(a - b) <= rtol * max(abs(a), abs(b))


def greedy_pairing(zeros, poles, rtol=PAIRING_RTOL):
    """
    Greedily pairs each zero with the first unmatched pole equal to it.

    Ties between repeated roots are broken by encounter order, so the result is
    order-dependent when the same root appears several times.

    Args:
        zeros (array-like): Zeros, already rounded.
        poles (array-like): Poles, already rounded.
        rtol (float): Relative tolerance passed to `roots_match`.

    Returns:
        tuple: Boolean masks (canceled_zeros, canceled_poles).
    """
    zeros = np.asarray(zeros)
    poles = np.asarray(poles)

    canceled_zeros = np.zeros(zeros.size, dtype=bool)
    canceled_poles = np.zeros(poles.size, dtype=bool)

    for i_z, z in enumerate(zeros):
        for i_p, p in enumerate(poles):
            if not canceled_poles[i_p] and roots_match(p, z, rtol):
                canceled_zeros[i_z] = True
                canceled_poles[i_p] = True
                break

    return canceled_zeros, canceled_poles


@njit(cache=True)
def _nearest_neighbor_kernel(previous, current):
    n = previous.shape[0]
    row = np.empty(n, dtype=np.complex128)
    filled = np.zeros(n, dtype=np.bool_)
    for j in range(n):
        row[j] = np.nan

    for i in range(current.shape[0]):
        best = np.inf
        best_j = -1
        for j in range(n):
            if filled[j]:
                continue
            d = abs(previous[j] - current[i])
            if d < best:
                best = d
                best_j = j

        # branch had no previous root (NaN); take the first free slot
        if best_j == -1:
            for j in range(n):
                if not filled[j]:
                    best_j = j
                    break
        if best_j == -1:
            break

        filled[best_j] = True
        row[best_j] = current[i]

    return row


def nearest_neighbor_assignment(previous, current):
    """
    Assigns each new root to the closest not-yet-assigned previous root.

    Distance is Euclidean in the complex plane. Branches can be swapped when
    two loci cross at exactly the same gain step.

    Args:
        previous (array-like): Roots at the previous gain, one per branch (NaN allowed).
        current (array-like): Roots at the current gain, in any order.

    Returns:
        np.ndarray: Complex row aligned with `previous`; unfilled branches are NaN.
    """
    previous = np.asarray(previous, dtype=np.complex128)
    current = np.asarray(current, dtype=np.complex128)
    return _nearest_neighbor_kernel(previous, current)
