import bisect
import logging

import numpy as np
from numba import njit
from scipy import integrate
from scipy.integrate import solve_ivp

from config import SIM_PARAMS
from core.closed_loop import ClosedLoopTransferFunction
from core.exceptions import (
    ImproperSystemError,
    InterpolationRangeError,
    InvalidParameterError,
    SolverError,
)
from core.transfer_function import TransferFunction

logger = logging.getLogger(__name__)


class PiecewiseSolution:
    """
    Dense state trajectory stitched together from consecutive solver segments.

    Segment k covers [ends[k-1], ends[k]] (the first one starts at 0).
    Calling the object evaluates the state at one time or an array of times.
    Times past the last segment extrapolate it; with no segments at all the
    initial state is returned.
    """

    def __init__(self, x0):
        self.x0 = np.asarray(x0, dtype=float)
        self.n_states = self.x0.size
        self.segments = []
        self.ends = []

    def append(self, sol, t_end):
        self.segments.append(sol)
        self.ends.append(t_end)

    def at(self, t):
        """Fast path for one scalar time."""
        if not self.segments:
            return self.x0.copy()
        k = min(bisect.bisect_left(self.ends, t), len(self.segments) - 1)
        return self.segments[k](t)

    def __call__(self, t):
        if np.ndim(t) == 0:
            return self.at(float(t))

        t_arr = np.asarray(t, dtype=float)
        out = np.zeros((self.n_states, t_arr.size))
        if not self.segments:
            out[:] = self.x0[:, None]
            return out

        idx = np.searchsorted(self.ends, t_arr, side="left")
        idx = np.clip(idx, 0, len(self.segments) - 1)
        for k in np.unique(idx):
            mask = idx == k
            out[:, mask] = self.segments[k](t_arr[mask])
        return out


def _integrate(fun, t_start, t_end, x0):
    """One solve_ivp call with dense output, using the solver settings from config."""
    sol = solve_ivp(
        fun,
        (t_start, t_end),
        x0,
        method=SIM_PARAMS["method"],
        rtol=SIM_PARAMS["rtol"],
        atol=SIM_PARAMS["atol"],
        dense_output=True,
    )
    if not sol.success:
        raise SolverError(f"integration over [{t_start}, {t_end}] failed: {sol.message}")
    return sol.sol


def _time_grid(final_time, nb_time_points):
    """
    Two samples just before zero (to show the initial jump) followed by an
    even grid on [zero_offset, final_time].
    """
    offset = SIM_PARAMS["zero_offset"]
    return np.concatenate(
        (
            [-SIM_PARAMS["pre_zero_fraction"] * final_time, -offset],
            np.linspace(offset, final_time, nb_time_points - 2),
        )
    )


def _breakpoints(t_end, discontinuities):
    points = [0.0, t_end]
    points.extend(float(d) for d in discontinuities if 0.0 < d < t_end)
    return np.unique(points)


def _solve_ode(A, x0, t_end, u=None, B=None, discontinuities=()):
    """
    Integrates dx/dt = A x + B u(t) on [0, t_end], restarting the integrator
    at every breakpoint.
    """
    solution = PiecewiseSolution(x0)
    if t_end <= 0.0:
        return solution

    if u is None:

        def rhs(t, x):
            return A @ x

    else:
        b = B[:, 0]

        def rhs(t, x):
            return A @ x + b * u(t)

    x = solution.x0
    breaks = _breakpoints(t_end, discontinuities)
    for t_a, t_b in zip(breaks[:-1], breaks[1:]):
        sol = _integrate(rhs, t_a, t_b, x)
        solution.append(sol, t_b)
        x = sol(t_b)

    logger.debug("ODE integrated on %d segment(s) up to t = %g", len(breaks) - 1, t_end)
    return solution


def _dde_breakpoints(phi, t_end):
    """
    0, the first few multiples of phi where the derivative jumps, and t_end.

    A jump in x' at t = 0 reappears in the k-th derivative at t = k phi, so
    past the last listed multiple the solution is smooth enough to step over
    several delays at once.
    """
    nb_orders = max(SIM_PARAMS["dde_breakpoint_orders"], 1)
    margin = 1e-9 * max(1.0, t_end)
    points = [k * phi for k in range(nb_orders + 1) if k * phi < t_end - margin]
    points.append(t_end)
    return points


def _single_step(stepper):
    """Advances an OdeSolver by one accepted step and returns its interpolant."""
    message = stepper.step()
    if stepper.status == "failed":
        raise SolverError(f"integration failed at t = {stepper.t}: {message}")
    return stepper.dense_output(), stepper.t, stepper.y


def _solve_dde(A, A_delay, x0, phi, t_end):
    """
    Solves dx/dt = A x(t) + A_delay x(t - phi) with x(t) = 0 for t < 0 and
    x(0) = x0.

    Up to the last breakpoint each span is one delay long, so the delayed
    state always lies in what is already integrated (method of steps). Past
    it the error control picks the step length. When a step is longer than
    phi the delayed time falls inside the step itself: the step is first
    taken with the previous step extrapolated, then repeated on its own
    interpolant until the end state settles, and halved if it does not.
    """
    if phi == 0.0:
        return _solve_ode(A + A_delay, x0, t_end)

    solution = PiecewiseSolution(x0)
    if t_end <= 0.0:
        return solution

    stepper_class = getattr(integrate, SIM_PARAMS["method"])
    rtol, atol = SIM_PARAMS["rtol"], SIM_PARAMS["atol"]
    max_iterations = SIM_PARAMS["dde_max_iterations"]
    time_tol = 4 * np.finfo(float).eps

    def rhs_no_history(t, x):
        return A @ x

    def history_rhs(t_n, current):
        def rhs(t, x):
            lag = t - phi
            if current is not None and lag > t_n:
                return A @ x + A_delay @ current(lag)
            return A @ x + A_delay @ solution.at(lag)

        return rhs

    x = solution.x0
    nb_iterations = 0
    breaks = _dde_breakpoints(phi, t_end)
    for t_a, t_b in zip(breaks[:-1], breaks[1:]):
        t_n, h = t_a, None
        while t_n < t_b:
            # on the first span the delayed state is the zero pre-history
            fun = rhs_no_history if t_a == 0.0 else history_rhs(t_n, None)
            first_step = None if h is None else min(h, t_b - t_n)
            stepper = stepper_class(
                fun, t_n, x, t_b, first_step=first_step, rtol=rtol, atol=atol
            )
            dense, t_next, x_next = _single_step(stepper)
            h = stepper.h_abs

            settled = t_a == 0.0 or t_next - phi <= t_n
            attempts = 0
            while not settled and attempts < max_iterations:
                attempts += 1
                stepper = stepper_class(
                    history_rhs(t_n, dense),
                    t_n,
                    x,
                    t_next,
                    first_step=t_next - t_n,
                    rtol=rtol,
                    atol=atol,
                )
                new_dense, t_new, x_new = _single_step(stepper)
                if abs(t_new - t_next) > time_tol * max(1.0, abs(t_next)):
                    # rejected by the error control and taken shorter
                    dense, t_next, x_next = new_dense, t_new, x_new
                    continue
                settled = np.all(np.abs(x_new - x_next) <= atol + rtol * np.abs(x_new))
                dense, x_next = new_dense, x_new
            nb_iterations += attempts

            if not settled:
                h = 0.5 * (t_next - t_n)
                continue

            solution.append(dense, t_next)
            t_n, x = t_next, x_next

    logger.debug(
        "DDE with delay %g integrated in %d step(s) and %d correction(s) up to t = %g",
        phi,
        len(solution.segments),
        nb_iterations,
        t_end,
    )
    return solution


def _simulate_transfer_function(g, t, u, discontinuities):
    if not g.proper():
        raise ImproperSystemError(f"cannot simulate an improper transfer function: {g!r}")

    A, B, C, D = g.to_state_space()
    theta = g.time_delay
    t_end = t[-1] - theta
    y = np.zeros(t.size)
    active = t >= theta
    if A.shape[0] == 0 and u is None:
        logger.warning("constant transfer function is a pure impulse; returning zeros")
        return y

    if u is None:
        if D != 0.0:
            logger.warning("dropping impulse term D = %g of a biproper transfer function", D)
        x = _solve_ode(A, B[:, 0], t_end)
        if A.shape[0] > 0 and np.any(active):
            y[active] = (C @ x(t[active] - theta))[0]
        return y

    tau = t[active] - theta
    if A.shape[0] > 0:
        x0 = np.zeros(A.shape[0])
        x = _solve_ode(A, x0, t_end, u=u, B=B, discontinuities=discontinuities)
        if np.any(active):
            y[active] = (C @ x(tau))[0]
    y[active] += D * np.array([u(ti) for ti in tau], dtype=float)
    return y


def _simulate_closed_loop(cl, t):
    A, B, A_delay, D = cl.to_state_space()
    form = cl.standard_form()
    theta, phi = form.theta, form.phi

    t_end = t[-1] - theta
    y = np.zeros(t.size)
    x = _solve_dde(A, A_delay, B[:, 0], phi, t_end)

    active = t >= theta
    if np.any(active):
        y[active] = (D @ x(t[active] - theta))[0]
    return y


def simulate(system, final_time, nb_time_points=None, u=None, discontinuities=()):
    """
    Time-domain response of a transfer function or closed-loop transfer function.

    Without `u` the system is read as the Laplace transform of the output,
    Y(s) = system, and y(t) is its inverse transform (put the input in the
    system, e.g. g / s for a unit step). With a callable `u(t)` (zero for
    t < 0) the open-loop transfer function is driven by that input instead.

    Args:
        system (TransferFunction or ClosedLoopTransferFunction): System to simulate.
        final_time (float): End of the simulation window.
        nb_time_points (int, optional): Number of output samples. Defaults to
            SIM_PARAMS["nb_time_points"] for transfer functions and
            SIM_PARAMS["closed_loop_nb_time_points"] for closed loops.
        u (callable, optional): Input signal u(t) for transfer functions.
        discontinuities (iterable, optional): Times where u jumps; the
            integrator is restarted there.

    Returns:
        tuple: (t, y) arrays. Two samples before t = 0 are included, where y = 0.

    Raises:
        InvalidParameterError: On a bad time window, sample count or input.
        ImproperSystemError: If the system cannot be realized.
        SolverError: If the integrator fails.
    """
    final_time = float(final_time)
    if not np.isfinite(final_time) or final_time <= SIM_PARAMS["zero_offset"]:
        raise InvalidParameterError(f"final_time must be a positive number, got {final_time}")

    is_closed_loop = isinstance(system, ClosedLoopTransferFunction)
    if nb_time_points is None:
        key = "closed_loop_nb_time_points" if is_closed_loop else "nb_time_points"
        nb_time_points = SIM_PARAMS[key]
    if int(nb_time_points) != nb_time_points or nb_time_points < 3:
        raise InvalidParameterError(f"nb_time_points must be an integer >= 3, got {nb_time_points}")

    t = _time_grid(final_time, int(nb_time_points))

    if is_closed_loop:
        if u is not None:
            raise InvalidParameterError(
                "closed-loop systems are simulated with the input folded into top, "
                "e.g. cl / s for a step; u is not supported"
            )
        return t, _simulate_closed_loop(system, t)

    if not isinstance(system, TransferFunction):
        raise InvalidParameterError(
            f"cannot simulate an object of type {type(system).__name__}"
        )
    if u is not None and not callable(u):
        raise InvalidParameterError("u must be a callable u(t)")

    return t, _simulate_transfer_function(system, t, u, discontinuities)


@njit(cache=True)
def _interp_kernel(t, y, t_new):
    out = np.full(t_new.size, np.nan)
    for k in range(t_new.size):
        target = t_new[k]
        for i in range(t.size - 1):
            t1, t2 = t[i], t[i + 1]
            if t1 <= target <= t2:
                if t1 == t2:
                    out[k] = y[i]
                else:
                    out[k] = y[i] + (target - t1) * (y[i + 1] - y[i]) / (t2 - t1)
                break
    return out


def interpolate(t, y, t_new):
    """
    Linear interpolation of sampled data (t, y) at t_new (a number or an array).

    Raises:
        InterpolationRangeError: If any point of t_new is not finite or lies
            outside [min(t), max(t)].
    """
    t = np.asarray(t, dtype=float)
    y = np.asarray(y, dtype=float)
    if t.shape != y.shape or t.ndim != 1 or t.size < 2:
        raise InvalidParameterError("t and y must be 1-D arrays of the same length (>= 2)")

    order = np.argsort(t, kind="stable")
    t, y = t[order], y[order]

    points = np.atleast_1d(np.asarray(t_new, dtype=float))
    if not np.all(np.isfinite(points)):
        raise InterpolationRangeError(f"interpolation points must be finite, got {t_new}")
    if np.any(points < t[0]) or np.any(points > t[-1]):
        raise InterpolationRangeError(
            f"interpolation points must lie in [{t[0]}, {t[-1]}], got {t_new}"
        )

    values = _interp_kernel(t, y, points)
    if np.ndim(t_new) == 0:
        return float(values[0])
    return values
