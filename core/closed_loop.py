"""
Closed-loop transfer functions with independent dead times.

    Y      top
   --- = --------
    U    1 + g_ol

When top and g_ol carry different delays the ratio is no longer a rational
function times one exponential, so it is kept in the standard form

              p_a(s) e^{-theta s}
    ------------------------------------
      p_b(s) + p_c(s) e^{-phi s}

and simulated as a delay differential equation.
"""

import numpy as np

from core.exceptions import ImproperSystemError, InvalidParameterError
from core.math_utils import is_scalar, poly_degree, poly_to_string
from core.transfer_function import TransferFunction


class ClosedLoopStandardForm:
    """
    p_a(s) e^{-theta s} / (p_b(s) + p_c(s) e^{-phi s}).

    Attributes:
        p_a (Polynomial): Numerator polynomial.
        theta (float): Numerator (output) delay.
        p_b (Polynomial): Delay-free part of the denominator.
        p_c (Polynomial): Coefficient of the delayed denominator term.
        phi (float): Feedback-loop delay.
    """

    def __init__(self, p_a, theta, p_b, p_c, phi):
        self.p_a = p_a
        self.theta = float(theta)
        self.p_b = p_b
        self.p_c = p_c
        self.phi = float(phi)

    @classmethod
    def from_closed_loop(cls, cl):
        top, g_ol = cl.top, cl.g_ol
        return cls(
            p_a=top.numerator * g_ol.denominator,
            theta=top.time_delay,
            p_b=g_ol.denominator * top.denominator,
            p_c=g_ol.numerator * top.denominator,
            phi=g_ol.time_delay,
        )

    def __repr__(self):
        return (
            f"ClosedLoopStandardForm(p_a={poly_to_string(self.p_a)!r}, theta={self.theta}, "
            f"p_b={poly_to_string(self.p_b)!r}, p_c={poly_to_string(self.p_c)!r}, phi={self.phi})"
        )

    def order(self):
        return poly_degree(self.p_b)

    def strictly_proper(self):
        return poly_degree(self.p_b) > max(poly_degree(self.p_a), poly_degree(self.p_c))

    def to_state_space(self):
        """
        Controllable canonical form of the delay differential equation

            dx/dt = A x(t) + A_delay x(t - phi) + B u(t)
            y(t)  = D x(t - theta)

        Returns:
            tuple: (A, B, A_delay, D) matrices.

        Raises:
            ImproperSystemError: If the standard form is not strictly proper.
        """
        if not self.strictly_proper():
            raise ImproperSystemError(
                "closed-loop system is not strictly proper: "
                f"deg p_b = {poly_degree(self.p_b)}, deg p_a = {poly_degree(self.p_a)}, "
                f"deg p_c = {poly_degree(self.p_c)}"
            )

        n = self.order()
        b = self.p_b.coef
        b_n = b[n]

        def _padded(poly):
            c = np.zeros(n)
            deg = poly_degree(poly)
            if deg >= 0:
                c[: deg + 1] = poly.coef[: deg + 1]
            return c

        A = np.zeros((n, n))
        for i in range(n - 1):
            A[i, i + 1] = 1.0
        A[n - 1, :] = -b[:n] / b_n

        B = np.zeros((n, 1))
        B[n - 1, 0] = 1.0

        A_delay = np.zeros((n, n))
        A_delay[n - 1, :] = -_padded(self.p_c) / b_n

        D = (_padded(self.p_a) / b_n).reshape(1, n)

        return A, B, A_delay, D


class ClosedLoopTransferFunction:
    """
    A closed-loop transfer function relating an output Y and an input U in a
    feedback loop: Y / U = top / (1 + g_ol).

    Multiplying or dividing by a TransferFunction or a number only changes
    `top`; `g_ol` appears in the shared feedback denominator.

    Args:
        top (TransferFunction or number): Numerator factor.
        g_ol (TransferFunction): Open-loop transfer function.
    """

    __array_ufunc__ = None

    def __init__(self, top, g_ol):
        if is_scalar(top):
            top = TransferFunction([top], [1.0])
        if not isinstance(top, TransferFunction) or not isinstance(g_ol, TransferFunction):
            raise InvalidParameterError(
                "top and g_ol must be TransferFunction instances, got "
                f"{type(top).__name__} and {type(g_ol).__name__}"
            )
        self._top = top
        self._g_ol = g_ol

    @property
    def top(self):
        return self._top

    @property
    def g_ol(self):
        return self._g_ol

    def __repr__(self):
        return f"ClosedLoopTransferFunction(top={self.top!r}, g_ol={self.g_ol!r})"

    def __str__(self):
        return "\n".join(
            [
                "closed-loop transfer function.",
                "      top",
                "    -------",
                "    1 + g_ol",
                "",
                "  top =",
                str(self.top),
                "",
                "  g_ol =",
                str(self.g_ol),
            ]
        )

    def __eq__(self, other):
        if not isinstance(other, ClosedLoopTransferFunction):
            return NotImplemented
        return self.top == other.top and self.g_ol == other.g_ol

    def __hash__(self):
        return hash((self.top, self.g_ol))

    def __mul__(self, other):
        if isinstance(other, TransferFunction) or is_scalar(other):
            return ClosedLoopTransferFunction(self.top * other, self.g_ol)
        return NotImplemented

    def __rmul__(self, other):
        return self.__mul__(other)

    def __truediv__(self, other):
        if isinstance(other, TransferFunction) or is_scalar(other):
            return ClosedLoopTransferFunction(self.top / other, self.g_ol)
        return NotImplemented

    def standard_form(self):
        return ClosedLoopStandardForm.from_closed_loop(self)

    def order(self):
        return self.standard_form().order()

    def strictly_proper(self):
        return self.standard_form().strictly_proper()

    def to_state_space(self):
        return self.standard_form().to_state_space()

    def evaluate(self, z):
        """top(z) / (1 + g_ol(z)) at a (complex) number z."""
        return self.top.evaluate(z) / (1.0 + self.g_ol.evaluate(z))

    def frequency_response(self, omega_range):
        return self.top.frequency_response(omega_range) / (
            1.0 + self.g_ol.frequency_response(omega_range)
        )
