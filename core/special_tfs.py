from core.exceptions import InvalidParameterError
from core.transfer_function import TransferFunction


def first_order_system(K, tau):
    """K / (tau*s + 1)."""
    return TransferFunction([K], [tau, 1.0])


def second_order_system(K, tau, xi):
    """
    K / (tau^2 s^2 + 2 tau xi s + 1).

    Args:
        K (float): Zero-frequency gain.
        tau (float): Time constant (1 / natural frequency).
        xi (float): Damping coefficient.
    """
    return TransferFunction([K], [tau**2, 2.0 * tau * xi, 1.0])


def time_constant(g):
    """
    Time constant of a first-order (0, 1) or second-order (0, 2) transfer function.

        K / (a1 s + a0)           ->  tau = a1 / a0
        K / (a2 s^2 + a1 s + a0)  ->  tau = sqrt(a2 / a0)

    Raises:
        InvalidParameterError: For any other (numerator, denominator) order.
    """
    order = g.system_order()
    a = g.denominator.coef
    if order == (0, 1):
        return a[1] / a[0]
    if order == (0, 2):
        return (a[2] / a[0]) ** 0.5
    raise InvalidParameterError(
        f"time constant needs a system of order (0, 1) or (0, 2), got {order}"
    )


def damping_coefficient(g):
    """
    Damping coefficient xi of a second-order (0, 2) transfer function
    K / (a2 s^2 + a1 s + a0), with xi = a1 / (2 tau a0).
    """
    order = g.system_order()
    if order != (0, 2):
        raise InvalidParameterError(
            f"damping coefficient needs a system of order (0, 2), got {order}"
        )
    a = g.denominator.coef
    return a[1] / (2.0 * time_constant(g) * a[0])
