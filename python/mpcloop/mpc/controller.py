"""
MPC Controller
==============

Receding-horizon loop around a trajectory optimizer.

Each call to run(state, time) performs one cycle:

1. Horizon update (terminate once a fixed final time is reached)
2. Delay estimation tau (measured or assumed, plus additional delay)
3. State projection to time + tau under the previous policy
4. Warm start from the previous solution, shifted by the elapsed time
5. Optimization with the updated problem
6. Post truncation of the already elapsed policy prefix
7. Bookkeeping of statistics and of the previous solution

Optimizer failures never raise: the cycle reports success=False and hands
back the previous policy so the plant can keep executing it.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Callable, NamedTuple, Optional, Tuple

import numpy as np

from ..exceptions import (
    ConfigurationError,
    DimensionError,
    InvalidInputError,
    OptimizerError,
    OrderingViolationError,
    TerminalStateError,
)
from ..optimizers.base import TrajectoryOptimizer
from ..policy import Policy
from ..result import OptimizerResult, Status
from ..system.problem import OptConProblem
from ..trajectory import Trajectory
from ..utils.validation import check_finite, validate_state
from .horizon import HorizonPolicy, make_horizon
from .settings import MpcSettings
from .statistics import CycleRecord, MpcStatistics
from .timing import DelayEstimator, elapsed_steps
from .warm_start import WarmStartTransformer, forward_integrate

logger = logging.getLogger(__name__)


class MpcPhase(Enum):
    """Lifecycle of a controller run."""
    IDLE = "idle"
    RUNNING = "running"
    TERMINATED = "terminated"

    def __str__(self) -> str:
        return self.value


class CycleOutput(NamedTuple):
    """
    Result of one MPC cycle.

    Attributes:
        success: Whether a new policy was computed
        policy: New policy on success, previous policy on failure
            (None if no policy exists yet)
        timestamp: Start time t0 of the returned policy
    """
    success: bool
    policy: Optional[Policy]
    timestamp: Optional[float]


class MpcController:
    """
    Receding-horizon model predictive controller.

    Args:
        problem: Optimal control problem; the controller updates its initial
            state and time horizon every cycle
        optimizer: Trajectory optimizer backend
        settings: MPC settings (defaults if None)
        clock: Monotonic clock in seconds used to time the optimizer

    Example:
        >>> mpc = MpcController(problem, IterativeLQR(), MpcSettings(dt=0.001))
        >>> mpc.set_initial_guess(initial_policy)
        >>>
        >>> while True:
        ...     success, policy, t_policy = mpc.run(x_measured, t_now)
        ...     if mpc.time_horizon_reached() or not success:
        ...         break
        >>> mpc.print_mpc_summary()
    """

    def __init__(
        self,
        problem: OptConProblem,
        optimizer: TrajectoryOptimizer,
        settings: Optional[MpcSettings] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.settings = settings or MpcSettings()
        self.problem = problem
        self.optimizer = optimizer
        self._clock = clock or time.perf_counter

        dt = self.settings.dt
        if problem.dt is not None and not np.isclose(problem.dt, dt, rtol=1e-9, atol=0.0):
            raise ConfigurationError(
                f"problem dt={problem.dt:g} differs from settings dt={dt:g}"
            )

        self._time_horizon = problem.time_horizon
        self._horizon = make_horizon(self.settings.horizon_mode, self._time_horizon, dt)
        self._warm_start = WarmStartTransformer(
            dt=dt,
            n_states=problem.n_states,
            n_inputs=problem.n_inputs,
            default_feedback=problem.default_feedback,
            tail_extension=self.settings.tail_extension,
        )
        self._delay = DelayEstimator(self.settings)
        self._statistics = MpcStatistics()
        self._lock = threading.Lock()

        self._clear_run_state()

    def _clear_run_state(self) -> None:
        self._phase = MpcPhase.IDLE
        self._policy: Optional[Policy] = None
        self._trajectory: Optional[Trajectory] = None
        self._last_time: Optional[float] = None
        self._last_solve_time: Optional[float] = None
        self._horizon_reached = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def phase(self) -> MpcPhase:
        return self._phase

    @property
    def horizon(self) -> HorizonPolicy:
        return self._horizon

    @property
    def statistics(self) -> MpcStatistics:
        """Cycle statistics (read-only view)."""
        return self._statistics

    @property
    def policy(self) -> Optional[Policy]:
        """Copy of the latest successful policy."""
        with self._lock:
            return None if self._policy is None else self._policy.copy()

    @property
    def state_trajectory(self) -> Optional[Trajectory]:
        """Copy of the state trajectory predicted with the latest policy."""
        with self._lock:
            return None if self._trajectory is None else self._trajectory.copy()

    def time_horizon_reached(self) -> bool:
        """True once the fixed final time has been reached."""
        return self._horizon_reached

    def print_mpc_summary(self) -> None:
        """Print aggregate timing/delay/failure statistics."""
        summary = self._statistics.summary()
        logger.info("MPC summary\n%s", summary)
        print(summary)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def set_initial_guess(
        self,
        policy: Policy,
        trajectory: Optional[Trajectory] = None,
    ) -> None:
        """
        Seed the first warm start with an externally computed solution.

        Args:
            policy: Policy at the controller's dt, e.g. from a full solve
            trajectory: State trajectory predicted with it, optional

        Raises:
            ConfigurationError: If the controller is not idle or dt differs
            DimensionError: If dimensions disagree with the problem
        """
        dt = self.settings.dt
        if not np.isclose(policy.dt, dt, rtol=1e-9, atol=0.0):
            raise ConfigurationError(
                f"initial guess sampled at dt={policy.dt:g}, controller uses dt={dt:g}"
            )
        if policy.n_inputs != self.problem.n_inputs:
            raise DimensionError(
                f"initial guess has {policy.n_inputs} inputs, "
                f"problem has {self.problem.n_inputs}"
            )
        if policy.has_feedback and policy.n_states != self.problem.n_states:
            raise DimensionError(
                f"initial guess gains have {policy.n_states} states, "
                f"problem has {self.problem.n_states}"
            )
        if trajectory is not None:
            if trajectory.n_states != self.problem.n_states:
                raise DimensionError(
                    f"initial trajectory has {trajectory.n_states} states, "
                    f"problem has {self.problem.n_states}"
                )
            if not np.isclose(trajectory.dt, dt, rtol=1e-9, atol=0.0):
                raise ConfigurationError(
                    f"initial trajectory sampled at dt={trajectory.dt:g}, "
                    f"controller uses dt={dt:g}"
                )

        with self._lock:
            if self._phase is not MpcPhase.IDLE:
                raise ConfigurationError("initial guess can only be set before the first run")
            self._policy = policy.copy()
            self._trajectory = None if trajectory is None else trajectory.copy()

    def reset(self, time_horizon: Optional[float] = None) -> None:
        """
        Return to the idle state, discarding the previous solution.

        Statistics are kept for the lifetime of the controller.

        Args:
            time_horizon: New horizon length [s], optional
        """
        with self._lock:
            if time_horizon is not None:
                horizon = make_horizon(
                    self.settings.horizon_mode, time_horizon, self.settings.dt
                )
                self._time_horizon = float(time_horizon)
                self._horizon = horizon
            else:
                self._horizon = make_horizon(
                    self.settings.horizon_mode, self._time_horizon, self.settings.dt
                )
            self.problem.set_time_horizon(self._time_horizon)
            self._clear_run_state()
            logger.info("MPC reset (time horizon %.6g s)", self._time_horizon)

    # ------------------------------------------------------------------
    # Control cycle
    # ------------------------------------------------------------------

    def run(self, measured_state: np.ndarray, current_time: float) -> CycleOutput:
        """
        Run one MPC cycle.

        Args:
            measured_state: Measured plant state (n_x,)
            current_time: Time since run start [s], non-decreasing

        Returns:
            CycleOutput(success, policy, timestamp)

        Raises:
            TerminalStateError: If the time horizon was already reached
            DimensionError: If measured_state has the wrong size
            InvalidInputError: If inputs contain NaN/inf
            OrderingViolationError: If current_time moved backwards
        """
        with self._lock:
            return self._run_cycle(measured_state, current_time)

    def _run_cycle(self, measured_state: np.ndarray, current_time: float) -> CycleOutput:
        entry_clock = self._clock()
        if self._phase is MpcPhase.TERMINATED:
            raise TerminalStateError(
                f"time horizon reached at t={self._last_time:.6f} s; "
                "reset() before running again"
            )

        x = np.asarray(measured_state, dtype=np.float64)
        valid, msg = validate_state(x, self.problem.n_states)
        if not valid:
            raise DimensionError(msg)
        valid, msg = check_finite(x, "measured state")
        if not valid:
            raise InvalidInputError(msg)
        if not np.isfinite(current_time):
            raise InvalidInputError(f"current_time must be finite, got {current_time}")
        current_time = float(current_time)
        if self._last_time is not None and current_time < self._last_time:
            raise OrderingViolationError(self._last_time, current_time)

        if self._phase is MpcPhase.IDLE:
            self._horizon.start(current_time)
            self._phase = MpcPhase.RUNNING
            logger.info(
                "MPC run started at t=%.6f s (%s, horizon %.6g s, optimizer %s)",
                current_time, self.settings.horizon_mode, self._time_horizon,
                getattr(self.optimizer, "name", type(self.optimizer).__name__),
            )
        self._last_time = current_time

        if self._horizon.is_reached(current_time):
            return self._terminate(current_time)

        dt = self.settings.dt
        remaining = self._horizon.remaining(current_time)

        # Keep at least one step inside the horizon
        delay = self._delay.estimate(self._last_solve_time)
        delay = min(delay, max(remaining - dt, 0.0))
        start_time = current_time + delay
        n_steps = max(self._horizon.steps(self._horizon.remaining(start_time)), 1)

        x_start = x
        if self.settings.state_forward_integration and self._policy is not None and delay > 0:
            x_start = forward_integrate(
                self.problem.system, self._policy, x, current_time, start_time
            )

        warm_started = self._policy is not None and not self.settings.cold_start
        if warm_started:
            guess = self._warm_start.transform(
                self._policy,
                self._trajectory,
                x_start,
                elapsed=start_time - self._policy.t0,
                n_steps=n_steps,
            )
        else:
            guess = self._warm_start.default_guess(x_start, n_steps, t0=start_time)

        self.problem.set_initial_state(x_start)
        self.problem.set_time_horizon(n_steps * dt)

        result, solve_time = self._optimize(guess.policy)
        self._last_solve_time = solve_time

        truncated = 0
        if result.converged:
            policy = result.policy
            trajectory = result.trajectory
            policy.t0 = start_time
            if trajectory is not None:
                trajectory.t0 = start_time

            if self.settings.post_truncation:
                # Time since entry, including projection and warm start
                completion_time = current_time + max(self._clock() - entry_clock, 0.0)
                truncated = min(
                    elapsed_steps(completion_time - start_time, dt), policy.length - 1
                )
                if truncated > 0:
                    policy = policy.truncated(truncated)
                    if trajectory is not None:
                        trajectory = trajectory.truncated(truncated)

            self._policy = policy
            self._trajectory = trajectory
            output = CycleOutput(True, policy.copy(), policy.t0)
        else:
            logger.warning(
                "MPC cycle %d at t=%.6f s failed: %s after %d iterations "
                "(%s); keeping previous policy",
                self._statistics.num_cycles, current_time, result.status,
                result.iterations, result.info.get("reason", "no details"),
            )
            output = self._fallback()

        self._statistics._append(CycleRecord(
            index=self._statistics.num_cycles,
            time=current_time,
            solve_time=solve_time,
            delay=delay,
            warm_started=warm_started,
            success=output.success,
            status=str(result.status),
            iterations=result.iterations,
            horizon_steps=n_steps,
            truncated_steps=truncated,
        ))
        logger.debug(
            "cycle at t=%.6f s: tau=%.3g s, %d steps, warm=%s, %s in %.3g s "
            "(%d iterations), truncated %d",
            current_time, delay, n_steps, warm_started, result.status,
            solve_time, result.iterations, truncated,
        )
        return output

    def _optimize(self, guess: Policy) -> Tuple[OptimizerResult, float]:
        tic = self._clock()
        try:
            result = self.optimizer.solve(self.problem, guess, self.settings.max_iterations)
        except OptimizerError as e:
            result = OptimizerResult(
                status=Status.NUMERICAL_ERROR,
                iterations=e.iterations or 0,
                info={"reason": e.message},
            )
        solve_time = max(self._clock() - tic, 0.0)

        limit = self.settings.solve_time_limit
        if limit is not None and solve_time > limit and result.converged:
            # Deadline missed: the solution is already stale
            result.status = Status.TIME_LIMIT
            result.info["reason"] = f"solve took {solve_time:.3g} s > limit {limit:.3g} s"

        return result, solve_time

    def _fallback(self) -> CycleOutput:
        if self._policy is None:
            return CycleOutput(False, None, None)
        return CycleOutput(False, self._policy.copy(), self._policy.t0)

    def _terminate(self, current_time: float) -> CycleOutput:
        self._horizon_reached = True
        self._phase = MpcPhase.TERMINATED
        logger.info(
            "MPC time horizon reached at t=%.6f s after %d cycles",
            current_time, self._statistics.num_cycles,
        )
        empty = Policy(
            feedforward=np.zeros((0, self.problem.n_inputs)),
            dt=self.settings.dt,
            t0=current_time,
        )
        return CycleOutput(True, empty, current_time)
