"""
Time Horizon Policies
=====================

Two horizon semantics are supported:

- FixedFinalTimeHorizon: the end time is set once at run start, so the
  remaining horizon shrinks to zero and the run terminates on its own.
- ConstantRecedingHorizon: the horizon length is constant and the end time
  moves with the clock; the run never terminates on time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..exceptions import ConfigurationError
from .settings import HorizonMode
from .timing import horizon_steps

# Relative tolerance (in steps) for dt dividing the horizon
_DIVISIBILITY_TOL = 1e-6


def validate_horizon(time_horizon: float, dt: float) -> None:
    """
    Check a horizon/timestep pair.

    Raises:
        ConfigurationError: If either is non-positive, or dt does not divide
            the horizon into an integer number of steps
    """
    if dt <= 0:
        raise ConfigurationError(f"dt must be positive, got {dt}")
    if time_horizon <= 0:
        raise ConfigurationError(f"time horizon must be positive, got {time_horizon}")

    ratio = time_horizon / dt
    remainder = abs(ratio - round(ratio))
    if remainder > _DIVISIBILITY_TOL:
        raise ConfigurationError(
            f"dt={dt:g} does not divide time horizon {time_horizon:g} "
            f"(remainder {remainder * dt:.3g} s)"
        )


class HorizonPolicy(ABC):
    """
    Remaining-horizon bookkeeping for the MPC loop.

    Args:
        time_horizon: Configured horizon length [s]
        dt: Policy timestep [s]
    """

    mode: HorizonMode

    def __init__(self, time_horizon: float, dt: float) -> None:
        validate_horizon(time_horizon, dt)
        self.time_horizon = float(time_horizon)
        self.dt = float(dt)

    @property
    def tolerance(self) -> float:
        """Remaining horizons at or below this count as zero."""
        return 1e-9 * self.dt

    def start(self, start_time: float) -> None:
        """Anchor the horizon at the start of a run."""

    @abstractmethod
    def remaining(self, current_time: float) -> float:
        """Remaining horizon length at current_time [s]."""

    @abstractmethod
    def final_time(self, current_time: float) -> float:
        """Absolute end time of the problem solved at current_time."""

    def is_reached(self, current_time: float) -> bool:
        """True when no horizon is left at current_time."""
        return self.remaining(current_time) <= self.tolerance

    def steps(self, duration: float) -> int:
        """Number of policy steps covering duration."""
        return horizon_steps(duration, self.dt)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(time_horizon={self.time_horizon:g}, dt={self.dt:g})"


class FixedFinalTimeHorizon(HorizonPolicy):
    """
    Horizon ending at a fixed absolute time.

    Args:
        time_horizon: Horizon length from the start time [s]
        dt: Policy timestep [s]
        start_time: Absolute start time (re-anchored by start())

    Example:
        >>> horizon = FixedFinalTimeHorizon(3.0, 0.001)
        >>> horizon.remaining(2.999)
        0.001...
        >>> horizon.is_reached(3.0)
        True
    """

    mode = HorizonMode.FIXED_FINAL_TIME

    def __init__(self, time_horizon: float, dt: float, start_time: float = 0.0) -> None:
        super().__init__(time_horizon, dt)
        self._start_time = float(start_time)

    def start(self, start_time: float) -> None:
        self._start_time = float(start_time)

    @property
    def start_time(self) -> float:
        return self._start_time

    def final_time(self, current_time: float = 0.0) -> float:
        return self._start_time + self.time_horizon

    def remaining(self, current_time: float) -> float:
        return self.final_time() - current_time


class ConstantRecedingHorizon(HorizonPolicy):
    """
    Horizon of constant length re-centered on the current time.

    The run has to be stopped externally; is_reached() is always False.
    """

    mode = HorizonMode.CONSTANT_RECEDING

    def final_time(self, current_time: float) -> float:
        return current_time + self.time_horizon

    def remaining(self, current_time: float) -> float:
        return self.time_horizon

    def is_reached(self, current_time: float) -> bool:
        return False


def make_horizon(mode: HorizonMode, time_horizon: float, dt: float) -> HorizonPolicy:
    """Create the horizon policy for a mode."""
    if mode is HorizonMode.FIXED_FINAL_TIME:
        return FixedFinalTimeHorizon(time_horizon, dt)
    if mode is HorizonMode.CONSTANT_RECEDING:
        return ConstantRecedingHorizon(time_horizon, dt)
    raise ConfigurationError(f"Unknown horizon mode '{mode}'")
