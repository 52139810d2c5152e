"""
Warm Starting
=============

Builds the optimizer's initial guess for a cycle from the previous cycle's
solution.

The previous policy and trajectory are shifted forward by the elapsed time
(rounded to whole steps), resized to the new horizon, and the newest state
estimate is spliced in as the first trajectory sample. How missing tail
steps are filled is an explicit setting (TailExtension):

- HOLD_LAST repeats the last feed-forward control and gain
- PROBLEM_DEFAULT appends zero feed-forward with the problem's default gain

Policies are never resampled; a previous policy at a different dt is a
configuration error.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional

import numpy as np

from ..exceptions import ConfigurationError, DimensionError
from ..policy import Policy
from ..system.dynamics import ContinuousLinearSystem, LinearSystem
from ..trajectory import Trajectory
from .settings import TailExtension
from .timing import horizon_steps

logger = logging.getLogger(__name__)

# Durations below this are treated as zero when integrating [s]
_TIME_EPS = 1e-12


class WarmStart(NamedTuple):
    """Initial guess for one optimizer call."""
    policy: Policy
    trajectory: Trajectory


class WarmStartTransformer:
    """
    Turns the previous solution into an initial guess.

    Args:
        dt: Policy timestep
        n_states: State dimension
        n_inputs: Control dimension
        default_feedback: Gain (n_u, n_x) for default guesses (default: zero)
        tail_extension: Rule for steps beyond the previous policy's end

    Example:
        >>> transformer = WarmStartTransformer(dt=0.001, n_states=2, n_inputs=1)
        >>> guess = transformer.transform(
        ...     previous_policy, previous_trajectory, x_now,
        ...     elapsed=0.004, n_steps=2996,
        ... )
    """

    def __init__(
        self,
        dt: float,
        n_states: int,
        n_inputs: int,
        default_feedback: Optional[np.ndarray] = None,
        tail_extension: TailExtension = TailExtension.HOLD_LAST,
    ) -> None:
        self.dt = float(dt)
        self.n_states = n_states
        self.n_inputs = n_inputs
        if default_feedback is None:
            default_feedback = np.zeros((n_inputs, n_states))
        self.default_feedback = np.asarray(default_feedback, dtype=np.float64)
        if self.default_feedback.shape != (n_inputs, n_states):
            raise DimensionError(
                f"default_feedback must be ({n_inputs}, {n_states}), "
                f"got {self.default_feedback.shape}"
            )
        self.tail_extension = tail_extension

    def default_guess(
        self,
        projected_state: np.ndarray,
        n_steps: int,
        t0: float = 0.0,
    ) -> WarmStart:
        """
        Trivial guess: zero feed-forward, default feedback, constant state.

        Args:
            projected_state: State at t0
            n_steps: Policy length
            t0: Start time of the guess
        """
        policy = Policy.zeros(
            n_steps,
            n_inputs=self.n_inputs,
            n_states=self.n_states,
            dt=self.dt,
            t0=t0,
            gain=self.default_feedback,
        )
        states = np.tile(np.asarray(projected_state, dtype=np.float64), (n_steps + 1, 1))
        return WarmStart(policy, Trajectory(states=states, dt=self.dt, t0=t0))

    def transform(
        self,
        previous_policy: Optional[Policy],
        previous_trajectory: Optional[Trajectory],
        projected_state: np.ndarray,
        elapsed: float,
        n_steps: int,
        start_time: Optional[float] = None,
    ) -> WarmStart:
        """
        Shift the previous solution into a guess for a new horizon.

        Args:
            previous_policy: Last successful policy, None if there is none
            previous_trajectory: State trajectory predicted with it, optional
            projected_state: Newest state estimate at the guess start time
            elapsed: Time from previous_policy.t0 to the guess start time [s]
            n_steps: Length of the new horizon
            start_time: Start time of a default guess (no previous policy)

        Returns:
            WarmStart with a policy of length n_steps and a trajectory of
            n_steps + 1 samples starting at projected_state
        """
        projected_state = np.asarray(projected_state, dtype=np.float64)

        if previous_policy is None or previous_policy.length == 0:
            t0 = start_time if start_time is not None else 0.0
            return self.default_guess(projected_state, n_steps, t0=t0)

        self._check_dt(previous_policy.dt, "policy")
        shift = horizon_steps(elapsed, self.dt)
        t0 = previous_policy.t0 + elapsed

        feedforward, feedback = self._shift_policy(previous_policy, shift, n_steps)
        policy = Policy(feedforward=feedforward, dt=self.dt, feedback=feedback, t0=t0)

        if previous_trajectory is None:
            states = np.tile(projected_state, (n_steps + 1, 1))
        else:
            self._check_dt(previous_trajectory.dt, "trajectory")
            states = previous_trajectory.get_window(shift, n_steps + 1).states
            states[0] = projected_state

        logger.debug(
            "warm start: shifted %d steps, %d -> %d steps (%s)",
            shift, previous_policy.length, n_steps, self.tail_extension,
        )
        return WarmStart(policy, Trajectory(states=states, dt=self.dt, t0=t0))

    def _shift_policy(self, policy: Policy, shift: int, n_steps: int):
        ff = policy.feedforward[shift:shift + n_steps]
        fb = None if policy.feedback is None else policy.feedback[shift:shift + n_steps]

        missing = n_steps - len(ff)
        if missing <= 0:
            return ff.copy(), None if fb is None else fb.copy()

        if self.tail_extension is TailExtension.HOLD_LAST:
            ff_tail = np.repeat(policy.feedforward[-1:], missing, axis=0)
            fb_tail = None if fb is None else np.repeat(policy.feedback[-1:], missing, axis=0)
        else:
            ff_tail = np.zeros((missing, self.n_inputs))
            fb_tail = None if fb is None else np.tile(self.default_feedback, (missing, 1, 1))

        ff = np.concatenate([ff, ff_tail], axis=0)
        if fb is not None:
            fb = np.concatenate([fb, fb_tail], axis=0)
        return ff, fb

    def _check_dt(self, dt: float, what: str) -> None:
        if not np.isclose(dt, self.dt, rtol=1e-9, atol=0.0):
            raise ConfigurationError(
                f"previous {what} sampled at dt={dt:g}, controller uses dt={self.dt:g}"
            )


def forward_integrate(
    system: ContinuousLinearSystem,
    policy: Policy,
    x0: np.ndarray,
    t_start: float,
    t_end: float,
) -> np.ndarray:
    """
    Predict the state at t_end under a policy.

    The feedback law is sampled at t_start and at every policy grid point in
    between, and held constant until the next one (zero-order hold). The
    plant is propagated exactly over each segment.

    Args:
        system: Continuous plant dynamics
        policy: Control law applied over [t_start, t_end]
        x0: State at t_start
        t_start: Integration start time
        t_end: Integration end time

    Returns:
        State at t_end
    """
    x = np.asarray(x0, dtype=np.float64).copy()
    if policy.length == 0:
        return x

    full_step: LinearSystem = system.discretize(policy.dt)
    t = t_start
    while t_end - t > _TIME_EPS:
        k = policy.index_at(t)
        u = policy.compute_control(x, t)

        if k < policy.length - 1:
            boundary = policy.t0 + (k + 1) * policy.dt
        else:
            boundary = t_end
        t_next = min(boundary, t_end)

        duration = t_next - t
        if np.isclose(duration, policy.dt, rtol=1e-9, atol=0.0):
            x = full_step.step(x, u)
        else:
            x = system.propagate(x, u, duration)
        t = t_next

    return x
