import math
import numbers
from typing import Callable

import numpy as np
from numpy.polynomial import Polynomial

from config import CANCELLATION_PARAMS
from core.exceptions import ConvergenceError, InvalidParameterError

TOL = 1e-12
ITER_MAX = 100
EPS = np.finfo(float).eps


def poly_degree(poly: Polynomial) -> int:
    """Degree of a polynomial, with -1 for the zero polynomial."""
    coef = poly.coef
    nonzero = np.nonzero(coef)[0]
    if nonzero.size == 0:
        return -1
    return int(nonzero[-1])


def poly_roots(poly: Polynomial) -> np.ndarray:
    """
    Roots of a polynomial.

    Roots at the origin are split off before the companion-matrix eigenvalue
    solve so that they come back as exact zeros.
    """
    coef = poly.coef
    nonzero = np.nonzero(coef)[0]
    if nonzero.size == 0:
        return np.array([], dtype=float)

    n_origin = int(nonzero[0])
    rest = coef[n_origin : int(nonzero[-1]) + 1]

    origin = np.zeros(n_origin)
    if rest.size < 2:
        return origin
    return np.concatenate((origin, Polynomial(rest).roots()))


def poly_from_roots(roots, imag_tol=CANCELLATION_PARAMS["imag_tol"]) -> Polynomial:
    """
    Builds the monic real polynomial with the given roots.

    Complex roots must come in conjugate pairs; the imaginary parts of the
    expanded coefficients may not exceed `imag_tol` relative to the largest
    coefficient.

    Raises:
        InvalidParameterError: If the expanded coefficients are not real.
    """
    roots = np.asarray(roots)
    if roots.size == 0:
        return Polynomial([1.0])

    coef = np.atleast_1d(Polynomial.fromroots(roots).coef)
    if np.iscomplexobj(coef):
        scale = max(1.0, float(np.max(np.abs(coef))))
        if np.max(np.abs(coef.imag)) > imag_tol * scale:
            raise InvalidParameterError(
                f"Roots {roots} do not form a real polynomial (complex roots need conjugates)"
            )
        coef = coef.real
    return Polynomial(np.asarray(coef, dtype=float))


class Root:
    def brent_root(
        self,
        f: Callable[[float], float],
        a: float,
        b: float,
        tol: float = TOL,
        f_tol: float = TOL,
        maxiter: int = ITER_MAX,
    ) -> float:
        """
        Brent's method on the bracket [a, b].

        `b` is the best estimate, `c` the contrapoint (f(b) and f(c) differ in
        sign) and `a` the previous estimate. Each iteration tries an inverse
        quadratic or secant step and falls back to bisection when that step
        leaves the bracket or shrinks too slowly.

        Raises:
            ValueError: If f is NaN at an endpoint or [a, b] does not bracket a root.
            ConvergenceError: If the iteration budget is exhausted.
        """
        fa = f(a)
        fb = f(b)

        if math.isnan(fa) or math.isnan(fb):
            raise ValueError("Function returned NaN at initial endpoints.")
        if fa * fb > 0:
            raise ValueError(f"Root is not bracketed: f({a})={fa}, f({b})={fb}")
        if abs(fa) <= f_tol:
            return a
        if abs(fb) <= f_tol:
            return b

        c, fc = b, fb
        step = last_step = b - a

        for _ in range(maxiter):
            if (fb > 0) == (fc > 0):
                c, fc = a, fa
                step = last_step = b - a
            if abs(fc) < abs(fb):
                a, b, c = b, c, b
                fa, fb, fc = fb, fc, fb

            tol_b = 2.0 * EPS * abs(b) + 0.5 * tol * max(1.0, abs(b))
            half = 0.5 * (c - b)
            if abs(half) <= tol_b or abs(fb) <= f_tol:
                return b

            if abs(last_step) >= tol_b and abs(fa) > abs(fb):
                ratio_ba = fb / fa
                if a == c:
                    p = 2.0 * half * ratio_ba
                    q = 1.0 - ratio_ba
                else:
                    ratio_ac = fa / fc
                    ratio_bc = fb / fc
                    p = ratio_ba * (
                        2.0 * half * ratio_ac * (ratio_ac - ratio_bc)
                        - (b - a) * (ratio_bc - 1.0)
                    )
                    q = (ratio_ac - 1.0) * (ratio_bc - 1.0) * (ratio_ba - 1.0)
                if p > 0:
                    q = -q
                p = abs(p)

                if 2.0 * p < min(3.0 * half * q - abs(tol_b * q), abs(last_step * q)):
                    last_step, step = step, p / q
                else:
                    step = last_step = half
            else:
                step = last_step = half

            a, fa = b, fb
            b += step if abs(step) > tol_b else math.copysign(tol_b, half)
            fb = f(b)
            if math.isnan(fb):
                raise ValueError(f"Function returned NaN at x={b}")

        raise ConvergenceError(
            f"Brent's method failed to converge after {maxiter} iterations"
        )


def is_scalar(x):
    """Real numbers (including numpy scalars) act as constant transfer functions."""
    return isinstance(x, numbers.Real)


def poly_to_string(poly: Polynomial, var: str = "s") -> str:
    """Renders a polynomial in descending powers, e.g. '2*s^2 - 3*s + 1'."""
    terms = []
    for power in range(len(poly.coef) - 1, -1, -1):
        c = poly.coef[power]
        if c == 0.0:
            continue
        mag = f"{abs(c):.6g}"
        if power == 0:
            body = mag
        elif power == 1:
            body = f"{mag}*{var}"
        else:
            body = f"{mag}*{var}^{power}"

        if not terms:
            terms.append(body if c > 0 else f"-{body}")
        else:
            terms.append(f"+ {body}" if c > 0 else f"- {body}")

    return " ".join(terms) if terms else "0"
