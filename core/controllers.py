"""
Controller Parameter Records.

Each controller is an immutable record of its tuning parameters; the transfer
function of the controller is built on demand.
"""

from dataclasses import dataclass

from core.exceptions import InvalidParameterError
from core.transfer_function import TransferFunction, s


@dataclass(frozen=True)
class PController:
    """Proportional controller, gc(s) = Kc."""

    Kc: float

    def transfer_function(self):
        return TransferFunction([self.Kc], [1.0])


@dataclass(frozen=True)
class PIController:
    """
    Proportional-Integral controller.

        gc(s) = Kc * (1 + 1 / (tau_I s))
    """

    Kc: float
    tau_I: float

    def __post_init__(self):
        if not self.tau_I > 0.0:
            raise InvalidParameterError(f"tau_I must be positive, got {self.tau_I}")

    def transfer_function(self):
        return self.Kc * (1 + 1 / (self.tau_I * s))


@dataclass(frozen=True)
class PIDController:
    """
    Proportional-Integral-Derivative controller with an optional filter on the
    derivative action.

        gc(s) = Kc * (1 + 1 / (tau_I s) + tau_D s / (alpha tau_D s + 1))

    alpha = 0 gives the ideal (unfiltered) derivative.
    """

    Kc: float
    tau_I: float
    tau_D: float
    alpha: float = 0.0

    def __post_init__(self):
        if not self.tau_I > 0.0:
            raise InvalidParameterError(f"tau_I must be positive, got {self.tau_I}")
        if self.tau_D < 0.0 or self.alpha < 0.0:
            raise InvalidParameterError(
                f"tau_D and alpha must be non-negative, got tau_D={self.tau_D}, alpha={self.alpha}"
            )

    def transfer_function(self):
        derivative = self.tau_D * s / (self.alpha * self.tau_D * s + 1)
        return self.Kc * (1 + 1 / (self.tau_I * s) + derivative)
