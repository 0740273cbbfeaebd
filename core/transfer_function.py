import logging
import numbers

import numpy as np
from numpy.polynomial import Polynomial

from config import APPROX_PARAMS, CANCELLATION_PARAMS
from core.exceptions import (
    DegenerateTransferFunctionError,
    ImproperSystemError,
    InvalidExponentialError,
    InvalidParameterError,
    TimeDelayMismatchError,
)
from core.matching import greedy_pairing
from core.math_utils import (
    is_scalar,
    poly_degree,
    poly_from_roots,
    poly_roots,
    poly_to_string,
)

logger = logging.getLogger(__name__)


def _as_polynomial(coeffs, name):
    """
    Converts highest-power-first coefficients (or a Polynomial) into a trimmed
    float Polynomial in ascending powers.
    """
    if isinstance(coeffs, Polynomial):
        coef = np.asarray(coeffs.coef, dtype=float)
    else:
        arr = np.atleast_1d(np.asarray(coeffs, dtype=float))
        if arr.ndim != 1:
            raise DegenerateTransferFunctionError(
                f"{name} coefficients must be a flat list, got shape {arr.shape}"
            )
        coef = arr[::-1]

    if coef.size == 0:
        raise DegenerateTransferFunctionError(f"{name} has no coefficients")
    if not np.all(np.isfinite(coef)):
        raise DegenerateTransferFunctionError(f"{name} has non-finite coefficients: {coef[::-1]}")

    return Polynomial(coef).trim()


def _vectors_close(x, y, rtol, atol):
    n = max(len(x), len(y))
    x = np.pad(np.asarray(x, dtype=float), (0, n - len(x)))
    y = np.pad(np.asarray(y, dtype=float), (0, n - len(y)))
    scale = max(np.linalg.norm(x), np.linalg.norm(y))
    return np.linalg.norm(x - y) <= max(atol, rtol * scale)


class TransferFunction:
    """
    Representation of a Single-Input Single-Output (SISO) Transfer Function
    with a pure time delay.

        G(s) = Num(s) / Den(s) * exp(-time_delay * s)

    Instances are immutable values. Every arithmetic operation returns a new
    transfer function and products, quotients and sums go through
    pole-zero cancellation.

    Args:
        num (array-like or Polynomial): Numerator coefficients, highest power first.
        den (array-like or Polynomial): Denominator coefficients, highest power first.
        time_delay (float, optional): Non-negative dead time. Defaults to 0.0.

    Raises:
        DegenerateTransferFunctionError: If a coefficient list is empty, has
            non-finite entries, or the denominator is the zero polynomial.
        InvalidParameterError: If the time delay is negative or not finite.
    """

    # let Python operators (and not numpy broadcasting) handle np.float64 * tf
    __array_ufunc__ = None

    def __init__(self, num, den, time_delay=0.0):
        numerator = _as_polynomial(num, "numerator")
        denominator = _as_polynomial(den, "denominator")

        if poly_degree(denominator) == -1:
            raise DegenerateTransferFunctionError("denominator is the zero polynomial")

        time_delay = float(time_delay)
        if not np.isfinite(time_delay) or time_delay < 0.0:
            raise InvalidParameterError(
                f"time delay must be finite and non-negative, got {time_delay}"
            )

        numerator.coef.setflags(write=False)
        denominator.coef.setflags(write=False)

        self._numerator = numerator
        self._denominator = denominator
        self._time_delay = time_delay

    @property
    def numerator(self):
        """Numerator polynomial in s (ascending powers)."""
        return self._numerator

    @property
    def denominator(self):
        """Denominator polynomial in s (ascending powers)."""
        return self._denominator

    @property
    def time_delay(self):
        return self._time_delay

    @property
    def num(self):
        """Numerator coefficients, highest power first."""
        return self._numerator.coef[::-1].copy()

    @property
    def den(self):
        """Denominator coefficients, highest power first."""
        return self._denominator.coef[::-1].copy()

    def __repr__(self):
        return (
            f"TransferFunction(num={self.num.tolist()}, den={self.den.tolist()}, "
            f"time_delay={self.time_delay})"
        )

    def __str__(self):
        top = poly_to_string(self.numerator)
        bottom = poly_to_string(self.denominator)
        width = max(len(top), len(bottom))

        bar = "-" * width
        if self.time_delay != 0.0:
            bar += f" e^(-{self.time_delay:g}*s)"

        return "\n".join(
            [
                " " * ((width - len(top)) // 2) + top,
                bar,
                " " * ((width - len(bottom)) // 2) + bottom,
            ]
        )

    def __eq__(self, other):
        if not isinstance(other, TransferFunction):
            return NotImplemented
        return (
            np.array_equal(self.numerator.coef, other.numerator.coef)
            and np.array_equal(self.denominator.coef, other.denominator.coef)
            and self.time_delay == other.time_delay
        )

    def __hash__(self):
        return hash(
            (
                tuple(self.numerator.coef),
                tuple(self.denominator.coef),
                self.time_delay,
            )
        )

    # algebra

    def __mul__(self, other):
        if isinstance(other, TransferFunction):
            g = TransferFunction(
                self.numerator * other.numerator,
                self.denominator * other.denominator,
                self.time_delay + other.time_delay,
            )
            return g.pole_zero_cancellation()
        if is_scalar(other):
            return TransferFunction(self.numerator * other, self.denominator, self.time_delay)
        return NotImplemented

    def __rmul__(self, other):
        if is_scalar(other):
            return self.__mul__(other)
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, TransferFunction):
            if poly_degree(other.numerator) == -1:
                raise ZeroDivisionError("division by a zero transfer function")
            time_delay = self.time_delay - other.time_delay
            if time_delay < 0.0:
                raise InvalidParameterError(
                    f"quotient has a negative (non-causal) time delay {time_delay}"
                )
            g = TransferFunction(
                self.numerator * other.denominator,
                self.denominator * other.numerator,
                time_delay,
            )
            return g.pole_zero_cancellation()
        if is_scalar(other):
            if other == 0:
                raise ZeroDivisionError("division of a transfer function by zero")
            return TransferFunction(self.numerator / other, self.denominator, self.time_delay)
        return NotImplemented

    def __rtruediv__(self, other):
        if is_scalar(other):
            return TransferFunction([other], [1.0]) / self
        return NotImplemented

    def __add__(self, other):
        if is_scalar(other):
            other = TransferFunction([other], [1.0])
        if not isinstance(other, TransferFunction):
            return NotImplemented

        if self.time_delay != other.time_delay:
            raise TimeDelayMismatchError(
                f"cannot add transfer functions with time delays {self.time_delay} "
                f"and {other.time_delay}. To build a closed loop with dead time, "
                "use ClosedLoopTransferFunction instead."
            )
        g = TransferFunction(
            self.numerator * other.denominator + self.denominator * other.numerator,
            self.denominator * other.denominator,
            self.time_delay,
        )
        return g.pole_zero_cancellation()

    def __radd__(self, other):
        return self.__add__(other)

    def __neg__(self):
        return -1.0 * self

    def __pos__(self):
        return self

    def __sub__(self, other):
        if is_scalar(other) or isinstance(other, TransferFunction):
            return self.__add__(-1.0 * other)
        return NotImplemented

    def __rsub__(self, other):
        if is_scalar(other):
            return (-1.0 * self).__add__(other)
        return NotImplemented

    def __pow__(self, exponent):
        if isinstance(exponent, bool) or not isinstance(exponent, numbers.Integral):
            raise InvalidParameterError(
                f"transfer functions only support non-negative integer powers, got {exponent!r}"
            )
        if exponent < 0:
            raise InvalidParameterError(f"negative power {exponent} is not supported")
        if exponent == 0:
            return TransferFunction([1.0], [1.0])

        result = self
        for _ in range(exponent - 1):
            result = result * self
        return result

    def exp(self):
        """
        exp(-theta * s): a unit-gain pure delay of theta.

        Only a bare monomial -theta * s (theta >= 0, no existing delay) is accepted.
        """
        if poly_degree(self.numerator) == -1:
            return TransferFunction([1.0], [1.0])

        if not (
            poly_degree(self.numerator) == 1
            and poly_degree(self.denominator) == 0
            and self.time_delay == 0.0
            and self.numerator.coef[0] == 0.0
        ):
            raise InvalidExponentialError(
                "exp only introduces time delays, e.g. exp(-3.0 * s); "
                f"got argument {self!r}"
            )

        theta = -self.numerator.coef[1] / self.denominator.coef[0]
        if theta < 0.0:
            raise InvalidExponentialError(
                f"exp(-theta * s) needs theta >= 0, got theta = {theta}"
            )
        return TransferFunction([1.0], [1.0], theta)

    # normal forms and comparison

    def zpk_form(self):
        """
        Rescales numerator and denominator so the highest power of s in the
        denominator has coefficient 1.
        """
        lead = self.denominator.coef[-1]
        return TransferFunction(
            self.numerator / lead, self.denominator / lead, self.time_delay
        )

    def isapprox(self, other, rtol=APPROX_PARAMS["rtol"], atol=APPROX_PARAMS["atol"]):
        """
        Approximate equality after both operands are put in zpk form.

        Coefficient vectors are compared in norm:
        ||a - b|| <= max(atol, rtol * max(||a||, ||b||)).
        """
        a = self.zpk_form()
        b = other.zpk_form()

        delay_scale = max(abs(a.time_delay), abs(b.time_delay))
        if abs(a.time_delay - b.time_delay) > max(atol, rtol * delay_scale):
            return False

        return _vectors_close(
            a.numerator.coef, b.numerator.coef, rtol, atol
        ) and _vectors_close(a.denominator.coef, b.denominator.coef, rtol, atol)

    # zeros, poles, gains

    def zeros(self):
        return poly_roots(self.numerator)

    def poles(self):
        return poly_roots(self.denominator)

    def k_factor(self):
        """
        k in G(s) = k * prod(s - z_j) / prod(s - p_j) * exp(-theta * s).
        Not the zero-frequency gain.
        """
        deg = poly_degree(self.numerator)
        if deg == -1:
            return 0.0
        return self.numerator.coef[deg] / self.denominator.coef[-1]

    def zeros_poles_k(self):
        return self.zeros(), self.poles(), self.k_factor()

    def zero_frequency_gain(self):
        """
        K = lim_{s -> 0} G(s), evaluated after pole-zero cancellation.

        Infinite when a pole sits at the origin and zero when a zero does.
        """
        return self.pole_zero_cancellation().evaluate(0.0)

    def zeros_poles_gain(self):
        return self.zeros(), self.poles(), self.zero_frequency_gain()

    def pole_zero_cancellation(self, digits=CANCELLATION_PARAMS["digits"], pairing=greedy_pairing):
        """
        Removes (zero, pole) pairs that coincide.

        Zeros and poles are rounded to `digits` digits for matching only; the
        surviving roots are used unrounded to rebuild the transfer function
        with the same k-factor and time delay.

        Args:
            digits (int): Rounding applied before matching.
            pairing (callable): Strategy returning boolean masks
                (canceled_zeros, canceled_poles). Defaults to greedy_pairing.

        Returns:
            TransferFunction: self when nothing cancels, otherwise a new instance.
        """
        zs, ps, k = self.zeros_poles_k()

        canceled_zeros, canceled_poles = pairing(np.round(zs, digits), np.round(ps, digits))
        canceled_zeros = np.asarray(canceled_zeros, dtype=bool)
        canceled_poles = np.asarray(canceled_poles, dtype=bool)

        if canceled_zeros.sum() != canceled_poles.sum():
            raise InvalidParameterError(
                f"pairing canceled {canceled_zeros.sum()} zeros but {canceled_poles.sum()} poles"
            )
        if not canceled_zeros.any():
            return self

        logger.debug("canceling poles and zeros: %s", ps[canceled_poles])
        return zeros_poles_k(
            zs[~canceled_zeros], ps[~canceled_poles], k, time_delay=self.time_delay
        )

    # evaluation

    def evaluate(self, z):
        """
        Evaluates G(z) = Num(z) / Den(z) * exp(-time_delay * z) at a (complex) number z.
        """
        n_val = self.numerator(z)
        d_val = self.denominator(z)
        if d_val == 0:
            if n_val == 0:
                return np.nan
            return np.copysign(np.inf, np.real(n_val))
        return n_val / d_val * np.exp(-self.time_delay * z)

    def frequency_response(self, omega_range):
        """Complex values G(jw) over an array of frequencies (rad/time)."""
        s_vals = 1j * np.asarray(omega_range, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            return (
                self.numerator(s_vals)
                / self.denominator(s_vals)
                * np.exp(-self.time_delay * s_vals)
            )

    def bode_response(self, omega_range):
        """Calculates Magnitude (dB) and unwrapped Phase (deg) over a frequency range."""
        resp = self.frequency_response(omega_range)
        mags = 20.0 * np.log10(np.abs(resp))
        phases = np.degrees(np.unwrap(np.angle(resp)))
        return mags, phases

    # structure

    def proper(self):
        return poly_degree(self.numerator) <= poly_degree(self.denominator)

    def strictly_proper(self):
        return poly_degree(self.numerator) < poly_degree(self.denominator)

    def system_order(self):
        """
        (numerator degree, denominator degree) as written; call
        pole_zero_cancellation first for the effective order.
        """
        return poly_degree(self.numerator), poly_degree(self.denominator)

    def to_state_space(self):
        """
        Converts the SISO Transfer Function to State-Space Control Canonical Form.

            dx/dt = A x + B u
            y     = C x + D u

        Returns:
            tuple: (A, B, C, D) matrices, with D the scalar feedthrough
            (ratio of leading numerator to leading denominator coefficient).

        Raises:
            ImproperSystemError: If the transfer function is not proper.
        """
        if not self.proper():
            raise ImproperSystemError(f"transfer function is not proper: {self!r}")

        den = self.den
        num = self.num
        norm = den[0]
        a = den / norm
        b = num / norm

        n = len(a) - 1
        if len(b) < len(a):
            b = np.pad(b, (len(a) - len(b), 0), "constant")

        A = np.zeros((n, n))
        for i in range(n - 1):
            A[i, i + 1] = 1
        if n > 0:
            A[n - 1, :] = -a[1:][::-1]

        B = np.zeros((n, 1))
        if n > 0:
            B[n - 1, 0] = 1

        C = (b[1:][::-1] - b[0] * a[1:][::-1]).reshape(1, n)
        D = b[0]

        return A, B, C, D


def zeros_poles_k(zeros, poles, k, time_delay=0.0):
    """
    Constructs k * prod(s - z_j) / prod(s - p_j) * exp(-time_delay * s).

    Complex zeros and poles must come in conjugate pairs.
    """
    top = poly_from_roots(zeros)
    bottom = poly_from_roots(poles)
    return TransferFunction(top * k, bottom, time_delay)


def exp(x):
    """
    exp(-theta * s) for a transfer function introduces a time delay of theta;
    numbers get the usual exponential.

    Example:
        g = 1 / (s + 1) * exp(-2.0 * s)
    """
    if isinstance(x, TransferFunction):
        return x.exp()
    return np.exp(x)


s = TransferFunction([1, 0], [1])
