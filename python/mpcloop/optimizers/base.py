"""
Trajectory Optimizer Interface
==============================

Any backend satisfying

    solve(problem, initial_guess, max_iterations) -> OptimizerResult

can drive the MPC loop. Backends register themselves under a name so the
loop can be configured without importing a concrete class.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple, Type

import numpy as np

from ..exceptions import ConfigurationError, InvalidInputError
from ..policy import Policy
from ..result import OptimizerResult, Status
from ..system.constraints import BoxConstraints
from ..system.dynamics import LinearSystem
from ..system.problem import OptConProblem

_OPTIMIZERS: Dict[str, Type["TrajectoryOptimizer"]] = {}


class TrajectoryOptimizer(ABC):
    """
    Base class for trajectory optimizer backends.

    Args:
        tolerance: Convergence tolerance (backend specific meaning)
        time_limit: Wall clock budget per solve in seconds, optional.
            Checked between iterations; a solve that runs over reports
            Status.TIME_LIMIT.
    """

    name: str = "base"

    def __init__(
        self,
        tolerance: float = 1e-6,
        time_limit: Optional[float] = None,
    ) -> None:
        if tolerance <= 0:
            raise InvalidInputError(f"tolerance must be positive, got {tolerance}")
        if time_limit is not None and time_limit <= 0:
            raise InvalidInputError(f"time_limit must be positive, got {time_limit}")
        self.tolerance = tolerance
        self.time_limit = time_limit

    @abstractmethod
    def solve(
        self,
        problem: OptConProblem,
        initial_guess: Policy,
        max_iterations: int,
    ) -> OptimizerResult:
        """
        Refine an initial guess into a locally optimal policy.

        Args:
            problem: Problem with current initial state and horizon
            initial_guess: Policy whose length and dt define the discretization
            max_iterations: Cap on refinement passes

        Returns:
            OptimizerResult (never raises on non-convergence)
        """

    def _check_problem(
        self,
        problem: OptConProblem,
        initial_guess: Policy,
        max_iterations: int,
    ) -> Optional[OptimizerResult]:
        """Return an INVALID_INPUT result if the problem cannot be solved."""
        reason = None
        if max_iterations < 1:
            reason = f"max_iterations must be >= 1, got {max_iterations}"
        elif initial_guess.length == 0:
            reason = "initial guess is empty"
        elif initial_guess.n_inputs != problem.n_inputs:
            reason = (
                f"guess has {initial_guess.n_inputs} inputs, "
                f"problem has {problem.n_inputs}"
            )
        elif initial_guess.has_feedback and initial_guess.n_states != problem.n_states:
            reason = (
                f"guess gains have {initial_guess.n_states} states, "
                f"problem has {problem.n_states}"
            )
        elif not problem.is_feasible(problem.initial_state):
            violation = problem.state_bounds.violation(problem.initial_state)
            reason = f"initial state violates state bounds by {violation:.3g}"

        if reason is None:
            return None
        return OptimizerResult(status=Status.INVALID_INPUT, info={"reason": reason})

    def _out_of_time(self, start_time: float) -> bool:
        if self.time_limit is None:
            return False
        return time.perf_counter() - start_time > self.time_limit

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(tolerance={self.tolerance:g}, "
            f"time_limit={self.time_limit})"
        )


def rollout(
    system: LinearSystem,
    x0: np.ndarray,
    policy: Policy,
    input_bounds: Optional[BoxConstraints] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Simulate a discrete system in closed loop with a policy.

    Args:
        system: Discrete dynamics at the policy's dt
        x0: Initial state (n_x,)
        policy: Control law, evaluated step by step
        input_bounds: Controls are clipped to these bounds, optional

    Returns:
        (states (K+1, n_x), controls (K, n_u)) tuple
    """
    K = policy.length
    states = np.zeros((K + 1, system.n_states))
    controls = np.zeros((K, system.n_inputs))
    states[0] = x0

    lb = ub = None
    if input_bounds is not None and input_bounds.is_bounded:
        lb, ub = input_bounds.lb, input_bounds.ub

    A, B = system.A, system.B
    ff, fb = policy.feedforward, policy.feedback
    for k in range(K):
        u = ff[k] if fb is None else ff[k] + fb[k] @ states[k]
        if lb is not None:
            u = np.clip(u, lb, ub)
        controls[k] = u
        states[k + 1] = A @ states[k] + B @ u

    return states, controls


def register_optimizer(name: str) -> Callable[[Type[TrajectoryOptimizer]], Type[TrajectoryOptimizer]]:
    """Class decorator registering a backend under a name."""

    def decorator(cls: Type[TrajectoryOptimizer]) -> Type[TrajectoryOptimizer]:
        cls.name = name
        _OPTIMIZERS[name] = cls
        return cls

    return decorator


def get_optimizer(name: str, **kwargs) -> TrajectoryOptimizer:
    """
    Instantiate a registered backend.

    Args:
        name: Registered backend name (e.g. 'ilqr', 'shooting')
        **kwargs: Backend constructor arguments

    Returns:
        TrajectoryOptimizer instance
    """
    try:
        cls = _OPTIMIZERS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown optimizer '{name}', available: {available_optimizers()}"
        ) from None
    return cls(**kwargs)


def available_optimizers() -> List[str]:
    """Names of all registered backends."""
    return sorted(_OPTIMIZERS)
