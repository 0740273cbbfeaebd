import logging
from typing import NamedTuple

import numpy as np

from config import MARGIN_PARAMS, ROOT_LOCUS_PARAMS
from core.exceptions import ConvergenceError, ImproperSystemError, InvalidParameterError
from core.matching import nearest_neighbor_assignment
from core.math_utils import Root, poly_degree, poly_roots

logger = logging.getLogger(__name__)


class Margins(NamedTuple):
    """
    Stability margins of an open-loop transfer function.

    Attributes:
        omega_c: Critical (phase crossover) frequency, where the phase is -180 deg.
        omega_g: Gain crossover frequency, where |g_ol(jw)| = 1.
        gain_margin: 1 / |g_ol(j omega_c)|.
        phase_margin: pi + angle(g_ol(j omega_g)), in radians.

    Quantities that could not be resolved are NaN.
    """

    omega_c: float
    omega_g: float
    gain_margin: float
    phase_margin: float


def _first_bracket(values, valid):
    """Index i of the first sign change values[i] -> values[i + 1] with both ends valid."""
    change = (values[:-1] * values[1:] <= 0.0) & valid[:-1] & valid[1:]
    idx = np.flatnonzero(change)
    if idx.size == 0:
        return None
    return int(idx[0])


def _refine(f, w, i, tol, maxiter, what):
    try:
        return Root().brent_root(f, w[i], w[i + 1], tol=tol, maxiter=maxiter)
    except (ValueError, ConvergenceError) as e:
        logger.info("could not resolve the %s frequency: %s", what, e)
        return np.nan


def gain_phase_margins(
    g_ol,
    omega_guess=MARGIN_PARAMS["omega_guess"],
    scan_decades=MARGIN_PARAMS["scan_decades"],
    scan_points=MARGIN_PARAMS["scan_points"],
    tol=MARGIN_PARAMS["tol"],
    maxiter=MARGIN_PARAMS["maxiter"],
):
    """
    Calculates Gain Margin and Phase Margin of an open-loop Transfer Function.

    Methods:
    - Critical frequency: first frequency above `omega_guess` where g_ol(jw)
      crosses the negative real axis (Im = 0 with Re < 0).
    - Gain crossover: first frequency above `omega_guess` where |g_ol(jw)| = 1.

    Each crossing is bracketed on a logarithmic scan of `scan_decades` decades
    and refined with Brent's method. A missing crossing is not an error; the
    frequency and its margin are reported as NaN.

    Args:
        g_ol: Open-loop TransferFunction.
        omega_guess: Lowest frequency of the scan.

    Returns:
        Margins: (omega_c, omega_g, gain_margin, phase_margin).
    """
    if not omega_guess > 0.0:
        raise InvalidParameterError(f"omega_guess must be positive, got {omega_guess}")

    start = np.log10(omega_guess)
    w = np.logspace(start, start + scan_decades, int(scan_points))
    resp = g_ol.frequency_response(w)
    finite = np.isfinite(resp)

    omega_c = np.nan
    i = _first_bracket(resp.imag, finite & (resp.real < 0.0))
    if i is not None:
        omega_c = _refine(
            lambda x: float(np.imag(g_ol.evaluate(1j * x))), w, i, tol, maxiter, "critical"
        )

    omega_g = np.nan
    i = _first_bracket(np.abs(resp) - 1.0, finite)
    if i is not None:
        omega_g = _refine(
            lambda x: float(abs(g_ol.evaluate(1j * x)) - 1.0), w, i, tol, maxiter, "gain crossover"
        )

    gain_margin = np.nan
    if np.isfinite(omega_c):
        gain_margin = 1.0 / abs(g_ol.evaluate(1j * omega_c))

    phase_margin = np.nan
    if np.isfinite(omega_g):
        phase_margin = np.pi + np.angle(g_ol.evaluate(1j * omega_g))

    return Margins(omega_c, omega_g, gain_margin, phase_margin)


def characteristic_polynomial(g_ol, Kc=1.0):
    """
    Denominator of the closed loop 1 + Kc * g_ol(s): den(s) + Kc * num(s).

    Raises:
        InvalidParameterError: If g_ol carries a time delay.
    """
    if g_ol.time_delay != 0.0:
        raise InvalidParameterError(
            f"characteristic polynomial is not defined with a time delay ({g_ol.time_delay})"
        )
    return g_ol.denominator + Kc * g_ol.numerator


def root_locus(
    g_ol,
    max_mag_Kc=ROOT_LOCUS_PARAMS["max_mag_Kc"],
    nb_pts=ROOT_LOCUS_PARAMS["nb_pts"],
    log10_min_Kc=ROOT_LOCUS_PARAMS["log10_min_Kc"],
    assignment=nearest_neighbor_assignment,
):
    """
    Roots of 1 + Kc * g_ol(s) as the controller gain Kc sweeps from 0.

    Kc takes the value 0 and then `nb_pts` logarithmically spaced magnitudes
    in [10^log10_min_Kc, max_mag_Kc], with the sign of g_ol's k-factor. Each
    row of roots is aligned with the previous one by `assignment`, so column
    j traces one branch of the locus starting at the j-th open-loop pole.

    Returns:
        tuple: (Kcs, rloc) with Kcs of shape (nb_pts + 1,) and the complex
        root array rloc of shape (nb_pts + 1, order).

    Raises:
        ImproperSystemError: If g_ol is not proper.
        InvalidParameterError: On a time delay or a bad gain range.
    """
    if not g_ol.proper():
        raise ImproperSystemError(f"root locus needs a proper open-loop transfer function: {g_ol!r}")
    if g_ol.time_delay != 0.0:
        raise InvalidParameterError("root locus is not defined with a time delay")
    if nb_pts < 1 or not max_mag_Kc > 10.0**log10_min_Kc:
        raise InvalidParameterError(
            f"need nb_pts >= 1 and max_mag_Kc > 10^{log10_min_Kc}, "
            f"got nb_pts={nb_pts}, max_mag_Kc={max_mag_Kc}"
        )

    sign = np.sign(g_ol.k_factor()) or 1.0
    Kcs = np.concatenate(
        ([0.0], sign * np.logspace(log10_min_Kc, np.log10(max_mag_Kc), int(nb_pts)))
    )

    order = poly_degree(g_ol.denominator)
    rloc = np.full((Kcs.size, order), np.nan, dtype=complex)
    rloc[0, :] = poly_roots(g_ol.denominator)

    for k in range(1, Kcs.size):
        roots = poly_roots(characteristic_polynomial(g_ol, Kcs[k]))
        rloc[k, :] = assignment(rloc[k - 1, :], roots)

    logger.debug("root locus traced over %d gains, %d branches", Kcs.size, order)
    return Kcs, rloc
