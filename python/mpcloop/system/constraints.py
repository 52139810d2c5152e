"""
Bound Constraints
=================

Box constraints on states and inputs of the optimal control problem.

State bounds define the feasible region for the problem's initial state;
input bounds are enforced by the optimizers when rolling out a policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from ..exceptions import DimensionError, InvalidInputError


@dataclass
class BoxConstraints:
    """
    Box (bound) constraints.

    Represents: lb <= x <= ub

    Args:
        lower: Lower bound (scalar or vector)
        upper: Upper bound (scalar or vector)
        dim: Dimension (required if bounds are scalar)

    Example:
        >>> # Scalar bounds for a single input
        >>> box = BoxConstraints(-1.0, 1.0, dim=1)
        >>>
        >>> # Per-dimension bounds
        >>> box = BoxConstraints(
        ...     lower=np.array([-1, -2]),
        ...     upper=np.array([1, 2])
        ... )
    """
    lower: Union[float, np.ndarray]
    upper: Union[float, np.ndarray]
    dim: Optional[int] = None

    def __post_init__(self):
        """Process bounds."""
        if np.isscalar(self.lower):
            if self.dim is None:
                raise InvalidInputError("dim required when bounds are scalar")
            self.lower = np.full(self.dim, float(self.lower))
        else:
            self.lower = np.asarray(self.lower, dtype=np.float64)
            if self.dim is None:
                self.dim = len(self.lower)

        if np.isscalar(self.upper):
            self.upper = np.full(self.dim, float(self.upper))
        else:
            self.upper = np.asarray(self.upper, dtype=np.float64)

        if len(self.lower) != len(self.upper) or len(self.lower) != self.dim:
            raise DimensionError("lower and upper must have same length")
        if np.any(self.lower > self.upper):
            raise InvalidInputError("lower bound exceeds upper bound")

    @property
    def lb(self) -> np.ndarray:
        """Lower bounds."""
        return self.lower

    @property
    def ub(self) -> np.ndarray:
        """Upper bounds."""
        return self.upper

    @property
    def is_bounded(self) -> bool:
        """True if any bound is finite."""
        return bool(np.isfinite(self.lower).any() or np.isfinite(self.upper).any())

    def is_satisfied(self, x: np.ndarray, tol: float = 1e-6) -> bool:
        """Check if x satisfies constraints."""
        return bool((x >= self.lower - tol).all() and (x <= self.upper + tol).all())

    def violation(self, x: np.ndarray) -> float:
        """Compute maximum constraint violation."""
        lower_viol = np.maximum(self.lower - x, 0).max()
        upper_viol = np.maximum(x - self.upper, 0).max()
        return float(max(lower_viol, upper_viol))

    @classmethod
    def unbounded(cls, dim: int) -> "BoxConstraints":
        """Create unbounded constraints."""
        return cls(
            lower=np.full(dim, -np.inf),
            upper=np.full(dim, np.inf),
            dim=dim
        )
