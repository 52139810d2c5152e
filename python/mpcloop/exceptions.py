"""
mpcloop Exception Classes
=========================

Custom exceptions for MPC loop error handling.
"""

from typing import Optional


class MpcError(Exception):
    """Base exception for all mpcloop errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DimensionError(MpcError):
    """
    Raised when vector/matrix dimensions are incompatible.

    Examples: a measured state that does not match the problem's state
    dimension, or a feedback gain array with the wrong shape.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Dimension mismatch: {message}")


class InvalidInputError(MpcError):
    """
    Raised when input data is invalid.

    Examples: NaN values, non-positive timesteps.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid input: {message}")


class ConfigurationError(MpcError):
    """
    Raised for invalid settings combinations.

    Examples: dt that does not divide the time horizon, or a warm-start
    policy sampled at a different dt than the controller.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Configuration error: {message}")


class OrderingViolationError(MpcError):
    """
    Raised when the control loop is fed a time earlier than the previous one.

    The run is considered corrupt; the controller's previous solution is left
    untouched.
    """

    def __init__(self, previous_time: float, current_time: float) -> None:
        self.previous_time = previous_time
        self.current_time = current_time
        super().__init__(
            f"Time moved backwards: {current_time:.6f} s < {previous_time:.6f} s"
        )


class TerminalStateError(MpcError):
    """
    Raised when run() is called after the time horizon has been reached.

    A terminated controller must be reset (or replaced) before reuse.
    """

    def __init__(self, message: str = "MPC run already terminated") -> None:
        super().__init__(message)


class OptimizerError(MpcError):
    """
    Raised by optimizer backends when a solve cannot be carried out.

    The MPC loop treats this as a recoverable failed cycle.
    """

    def __init__(
        self,
        message: str = "Trajectory optimization failed",
        iterations: Optional[int] = None,
    ) -> None:
        self.iterations = iterations
        super().__init__(message)


class NumericalError(OptimizerError):
    """
    Raised when numerical issues are encountered.

    This may indicate ill-conditioning, overflow, or an indefinite Hessian.
    """

    def __init__(
        self,
        message: str = "Numerical error encountered",
        iterations: Optional[int] = None,
    ) -> None:
        super().__init__(message, iterations=iterations)
