"""
Timing and Delay Compensation
=============================

Step arithmetic shared by the horizon, warm start and truncation logic, and
the estimate of the delay between receiving a state and applying the policy
computed from it.
"""

from __future__ import annotations

import math
from typing import Optional

from .settings import MpcSettings

# Slack for floor() on durations that sit on a grid point up to rounding
_STEP_EPS = 1e-9


def horizon_steps(duration: float, dt: float) -> int:
    """Number of dt steps covering duration (rounded, at least 0)."""
    return max(int(round(duration / dt)), 0)


def elapsed_steps(duration: float, dt: float) -> int:
    """Number of whole dt steps that fit into duration (at least 0)."""
    return max(int(math.floor(duration / dt + _STEP_EPS)), 0)


class DelayEstimator:
    """
    Estimate of the time between a state measurement and policy application.

        tau = multiplier * last_solve_time   (measure_delay, after first cycle)
            = fixed_delay                    (otherwise)
        tau += additional_delay

    Args:
        settings: MPC settings providing the delay options
    """

    def __init__(self, settings: MpcSettings) -> None:
        self.measure_delay = settings.measure_delay
        self.multiplier = settings.delay_measurement_multiplier
        self.fixed_delay = settings.fixed_delay
        self.additional_delay = settings.additional_delay

    def estimate(self, last_solve_time: Optional[float]) -> float:
        """
        Delay for the upcoming cycle [s].

        Args:
            last_solve_time: Duration of the previous optimizer call, None on
                the first cycle
        """
        if self.measure_delay and last_solve_time is not None:
            delay = self.multiplier * last_solve_time
        else:
            delay = self.fixed_delay
        return max(delay, 0.0) + self.additional_delay
