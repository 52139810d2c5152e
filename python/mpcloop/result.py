"""
mpcloop Result Classes
======================

Data classes for optimizer results and status.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .policy import Policy
from .trajectory import Trajectory


class Status(Enum):
    """
    Optimizer status codes.

    Attributes:
        OPTIMAL: Converged within tolerance
        MAX_ITERATIONS: Iteration budget exhausted before convergence
        TIME_LIMIT: Solve deadline exceeded
        NUMERICAL_ERROR: Numerical issues encountered
        INVALID_INPUT: Problem or initial guess is invalid
        UNSOLVED: Problem not yet solved
    """
    OPTIMAL = "optimal"
    MAX_ITERATIONS = "max_iterations"
    TIME_LIMIT = "time_limit"
    NUMERICAL_ERROR = "numerical_error"
    INVALID_INPUT = "invalid_input"
    UNSOLVED = "unsolved"

    def __str__(self) -> str:
        return self.value

    @property
    def is_successful(self) -> bool:
        """True if the optimizer converged."""
        return self == Status.OPTIMAL

    @property
    def has_solution(self) -> bool:
        """True if a (possibly unconverged) solution is available."""
        return self in (
            Status.OPTIMAL,
            Status.MAX_ITERATIONS,
            Status.TIME_LIMIT,
        )


@dataclass
class OptimizerResult:
    """
    Result of one trajectory optimization.

    Attributes:
        status: Optimizer status
        policy: Optimized policy (None when no solution is available)
        trajectory: Predicted state trajectory under the policy
        cost: Cost of the returned solution
        iterations: Number of refinement passes performed
        solve_time: Wall clock time in seconds
        info: Backend specific metadata

    Example:
        >>> result = optimizer.solve(problem, guess, max_iterations=5)
        >>> if result.converged:
        ...     u0 = result.policy.compute_control(x0, result.policy.t0)
    """

    status: Status
    policy: Optional[Policy] = None
    trajectory: Optional[Trajectory] = None
    cost: float = float("nan")
    iterations: int = 0
    solve_time: float = 0.0
    info: Dict[str, Any] = field(default_factory=dict)

    @property
    def converged(self) -> bool:
        """Whether the optimizer converged and produced a policy."""
        return self.status.is_successful and self.policy is not None

    def __repr__(self) -> str:
        horizon = self.policy.length if self.policy is not None else 0
        return (
            f"OptimizerResult(status={self.status}, "
            f"cost={self.cost:.6g}, "
            f"iterations={self.iterations}, "
            f"horizon={horizon}, "
            f"time={self.solve_time:.4f}s)"
        )

    def summary(self) -> str:
        """Return a formatted summary of the optimization."""
        horizon = self.policy.length if self.policy is not None else 0
        lines = [
            "=" * 50,
            "Trajectory Optimization Summary",
            "=" * 50,
            f"Status:           {self.status}",
            f"Cost:             {self.cost:.10g}",
            f"Iterations:       {self.iterations}",
            f"Horizon steps:    {horizon}",
            f"Solve time:       {self.solve_time:.4f} s",
            "=" * 50,
        ]
        return "\n".join(lines)
