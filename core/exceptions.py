class PyLTIError(Exception):
    """Base class for all exceptions in PyLTI."""

    pass


class DegenerateTransferFunctionError(ValueError, PyLTIError):
    """
    Raised when a transfer function cannot be built from the given coefficients
    (e.g., the denominator is empty or identically zero).
    Inherits from ValueError so callers may catch either.
    """

    pass


class TimeDelayMismatchError(ValueError, PyLTIError):
    """
    Raised when adding or subtracting transfer functions whose time delays differ.
    The sum is not a rational function times a single delay; build a
    ClosedLoopTransferFunction instead.
    """

    pass


class InvalidExponentialError(ValueError, PyLTIError):
    """
    Raised when exp() is applied to anything other than -theta * s.
    """

    pass


class ImproperSystemError(ValueError, PyLTIError):
    """
    Raised when an operation requires a proper (or strictly proper) system but
    the numerator degree is too high.
    """

    pass


class InvalidParameterError(ValueError, PyLTIError):
    """
    Raised when an argument is outside its valid domain (e.g., negative delay,
    negative exponent, too few time points).
    """

    pass


class InterpolationRangeError(ValueError, PyLTIError):
    """
    Raised when a time series is queried outside of the simulated time range.
    """

    pass


class ConvergenceError(RuntimeError, PyLTIError):
    """
    Raised when an iterative numerical method (e.g., Brent root finding)
    fails to converge within the maximum number of iterations or tolerances.
    """

    pass


class SolverError(RuntimeError, PyLTIError):
    """
    Raised when the numerical integrator reports a failure (e.g., step size underflow).
    """

    pass
