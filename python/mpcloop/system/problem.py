"""
Optimal Control Problem
=======================

Container for dynamics, cost, bounds, initial state and time horizon.

The MPC loop only ever changes the initial state and the time horizon of a
problem; everything else is fixed at construction.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..exceptions import ConfigurationError, DimensionError, InvalidInputError
from ..utils.validation import check_finite, validate_state
from .constraints import BoxConstraints
from .cost import QuadraticCost
from .dynamics import ContinuousLinearSystem


class OptConProblem:
    """
    Finite-horizon optimal control problem.

    Args:
        system: Continuous-time plant dynamics
        cost: Quadratic intermediate/terminal cost
        time_horizon: Horizon length in seconds
        initial_state: Initial state (default: origin)
        state_bounds: Feasible region for states, optional
        input_bounds: Bounds on control inputs, optional
        dt: Discretization step the problem is meant to be solved at, optional
        default_feedback: Gain (n_u, n_x) used for default initial guesses

    Example:
        >>> system = second_order_system(w_n=0.1, zeta=5.0)
        >>> cost = QuadraticCost(Q=np.eye(2), R=np.eye(1))
        >>> problem = OptConProblem(system, cost, time_horizon=3.0)
        >>> problem.set_initial_state(np.array([1.0, 0.0]))
    """

    def __init__(
        self,
        system: ContinuousLinearSystem,
        cost: QuadraticCost,
        time_horizon: float,
        initial_state: Optional[np.ndarray] = None,
        state_bounds: Optional[BoxConstraints] = None,
        input_bounds: Optional[BoxConstraints] = None,
        dt: Optional[float] = None,
        default_feedback: Optional[np.ndarray] = None,
    ) -> None:
        self._system = system
        self._cost = cost

        if cost.n_states != system.n_states:
            raise DimensionError(
                f"cost has {cost.n_states} states, system has {system.n_states}"
            )
        if cost.n_inputs != system.n_inputs:
            raise DimensionError(
                f"cost has {cost.n_inputs} inputs, system has {system.n_inputs}"
            )

        self._state_bounds = state_bounds or BoxConstraints.unbounded(self.n_states)
        self._input_bounds = input_bounds or BoxConstraints.unbounded(self.n_inputs)
        if self._state_bounds.dim != self.n_states:
            raise DimensionError(
                f"state bounds have dim {self._state_bounds.dim}, expected {self.n_states}"
            )
        if self._input_bounds.dim != self.n_inputs:
            raise DimensionError(
                f"input bounds have dim {self._input_bounds.dim}, expected {self.n_inputs}"
            )

        if dt is not None and dt <= 0:
            raise ConfigurationError(f"dt must be positive, got {dt}")
        self._dt = dt

        if default_feedback is None:
            default_feedback = np.zeros((self.n_inputs, self.n_states))
        self._default_feedback = np.asarray(default_feedback, dtype=np.float64)
        if self._default_feedback.shape != (self.n_inputs, self.n_states):
            raise DimensionError(
                f"default_feedback must be ({self.n_inputs}, {self.n_states}), "
                f"got {self._default_feedback.shape}"
            )

        self._initial_state = np.zeros(self.n_states)
        if initial_state is not None:
            self.set_initial_state(initial_state)

        self._time_horizon = 0.0
        self.set_time_horizon(time_horizon)

    @property
    def system(self) -> ContinuousLinearSystem:
        return self._system

    @property
    def cost(self) -> QuadraticCost:
        return self._cost

    @property
    def n_states(self) -> int:
        """State dimension."""
        return self._system.n_states

    @property
    def n_inputs(self) -> int:
        """Control dimension."""
        return self._system.n_inputs

    @property
    def dt(self) -> Optional[float]:
        return self._dt

    @property
    def state_bounds(self) -> BoxConstraints:
        return self._state_bounds

    @property
    def input_bounds(self) -> BoxConstraints:
        return self._input_bounds

    @property
    def default_feedback(self) -> np.ndarray:
        return self._default_feedback.copy()

    @property
    def initial_state(self) -> np.ndarray:
        return self._initial_state.copy()

    @property
    def time_horizon(self) -> float:
        return self._time_horizon

    def set_initial_state(self, x0: np.ndarray) -> None:
        """
        Set the state the problem starts from.

        Raises:
            DimensionError: If x0 does not match the state dimension
            InvalidInputError: If x0 contains NaN/inf values
        """
        x0 = np.asarray(x0, dtype=np.float64)
        valid, msg = validate_state(x0, self.n_states)
        if not valid:
            raise DimensionError(msg)
        valid, msg = check_finite(x0, "initial state")
        if not valid:
            raise InvalidInputError(msg)
        self._initial_state = x0.copy()

    def set_time_horizon(self, time_horizon: float) -> None:
        """Set the horizon length in seconds."""
        if not np.isfinite(time_horizon) or time_horizon <= 0:
            raise ConfigurationError(
                f"time horizon must be positive, got {time_horizon}"
            )
        self._time_horizon = float(time_horizon)

    def is_feasible(self, x: np.ndarray, tol: float = 1e-6) -> bool:
        """Check x against the state bounds."""
        return self._state_bounds.is_satisfied(np.asarray(x, dtype=np.float64), tol=tol)

    def __repr__(self) -> str:
        return (
            f"OptConProblem(n_states={self.n_states}, n_inputs={self.n_inputs}, "
            f"time_horizon={self._time_horizon:g})"
        )
