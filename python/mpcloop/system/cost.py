"""
Quadratic Cost Functions
========================

Cost over a horizon of N steps at sampling time dt:

    J = sum_{k=0}^{N-1} dt * 0.5 [(x_k - x_ref)' Q (x_k - x_ref)
                                  + (u_k - u_ref)' R (u_k - u_ref)]
        + 0.5 (x_N - x_ref)' Qf (x_N - x_ref)

The intermediate term is integrated over dt so that the weighting does not
depend on how finely the horizon is sampled.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..exceptions import DimensionError, InvalidInputError


class QuadraticCost:
    """
    Quadratic intermediate and terminal cost.

    Args:
        Q: State cost matrix (n_x, n_x)
        R: Input cost matrix (n_u, n_u), positive definite
        Qf: Terminal cost matrix (default: Q)
        x_ref: State reference (default: origin)
        u_ref: Input reference (default: zero)

    Example:
        >>> cost = QuadraticCost(Q=np.diag([10, 1]), R=np.array([[0.1]]))
        >>> J = cost.evaluate(states, controls, dt=0.01)
    """

    def __init__(
        self,
        Q: np.ndarray,
        R: np.ndarray,
        Qf: Optional[np.ndarray] = None,
        x_ref: Optional[np.ndarray] = None,
        u_ref: Optional[np.ndarray] = None,
    ) -> None:
        self.Q = np.atleast_2d(np.asarray(Q, dtype=np.float64))
        self.R = np.atleast_2d(np.asarray(R, dtype=np.float64))
        self.Qf = np.atleast_2d(np.asarray(Qf, dtype=np.float64)) if Qf is not None else self.Q

        self.n_x = self.Q.shape[0]
        self.n_u = self.R.shape[0]

        self.x_ref = (
            np.zeros(self.n_x) if x_ref is None else np.asarray(x_ref, dtype=np.float64)
        )
        self.u_ref = (
            np.zeros(self.n_u) if u_ref is None else np.asarray(u_ref, dtype=np.float64)
        )

        self._validate()

    def _validate(self):
        """Validate cost matrix dimensions."""
        if self.Q.shape != (self.n_x, self.n_x):
            raise DimensionError(f"Q must be ({self.n_x}, {self.n_x})")
        if self.R.shape != (self.n_u, self.n_u):
            raise DimensionError(f"R must be ({self.n_u}, {self.n_u})")
        if self.Qf.shape != (self.n_x, self.n_x):
            raise DimensionError(f"Qf must be ({self.n_x}, {self.n_x})")
        if self.x_ref.shape != (self.n_x,):
            raise DimensionError(f"x_ref must have shape ({self.n_x},)")
        if self.u_ref.shape != (self.n_u,):
            raise DimensionError(f"u_ref must have shape ({self.n_u},)")

        # Riccati recursions need an invertible input Hessian
        if np.linalg.eigvalsh(0.5 * (self.R + self.R.T)).min() <= 0:
            raise InvalidInputError("R must be positive definite")

    @property
    def n_states(self) -> int:
        return self.n_x

    @property
    def n_inputs(self) -> int:
        return self.n_u

    def stage(self, x: np.ndarray, u: np.ndarray) -> float:
        """Intermediate cost rate at (x, u)."""
        dx = x - self.x_ref
        du = u - self.u_ref
        return 0.5 * float(dx @ self.Q @ dx + du @ self.R @ du)

    def terminal(self, x: np.ndarray) -> float:
        """Terminal cost at x."""
        dx = x - self.x_ref
        return 0.5 * float(dx @ self.Qf @ dx)

    def evaluate(self, states: np.ndarray, controls: np.ndarray, dt: float) -> float:
        """
        Total cost of a trajectory.

        Args:
            states: State trajectory (N+1, n_x)
            controls: Control sequence (N, n_u)
            dt: Sampling time

        Returns:
            Cost value
        """
        dx = states[:-1] - self.x_ref
        du = controls - self.u_ref
        running = np.einsum("ki,ij,kj->", dx, self.Q, dx) + np.einsum(
            "ki,ij,kj->", du, self.R, du
        )
        return 0.5 * dt * float(running) + self.terminal(states[-1])
