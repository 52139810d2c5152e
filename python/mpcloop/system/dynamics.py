"""
System Dynamics Models
======================

Plant models used by the optimal control problem and by the MPC loop's
state forward integration.

Supported models:
- Continuous linear time-invariant: dx/dt = Ac x + Bc u
- Discrete linear time-invariant: x_{k+1} = A x_k + B u_k

The optimizers work on the discretized system at the policy timestep; the
MPC loop propagates the continuous system over arbitrary delays.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np
from scipy.linalg import expm

from ..exceptions import DimensionError, InvalidInputError


@dataclass
class LinearSystem:
    """
    Linear Time-Invariant (LTI) discrete-time system.

    Dynamics: x_{k+1} = A @ x_k + B @ u_k

    Args:
        A: State transition matrix (n_x, n_x)
        B: Input matrix (n_x, n_u)
        dt: Sampling time

    Example:
        >>> dt = 0.1
        >>> A = np.array([[1, dt], [0, 1]])
        >>> B = np.array([[0.5*dt**2], [dt]])
        >>> system = LinearSystem(A, B, dt=dt)
        >>> x_next = system.step(np.array([0, 1]), np.array([0.5]))
    """
    A: np.ndarray
    B: np.ndarray
    dt: float = 1.0

    def __post_init__(self):
        """Validate dimensions."""
        self.A, self.B = _validate_matrices(self.A, self.B)

    @property
    def n_states(self) -> int:
        """Number of states."""
        return self.A.shape[0]

    @property
    def n_inputs(self) -> int:
        """Number of inputs."""
        return self.B.shape[1]

    def step(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        Simulate one time step.

        Args:
            x: Current state (n_x,)
            u: Control input (n_u,)

        Returns:
            Next state (n_x,)
        """
        return self.A @ x + self.B @ u

    def simulate(self, x0: np.ndarray, controls: np.ndarray) -> np.ndarray:
        """
        Open-loop state sequence under a control sequence.

        Args:
            x0: Initial state (n_x,)
            controls: Controls applied at each step (N, n_u)

        Returns:
            States (N+1, n_x), starting with x0
        """
        controls = np.asarray(controls, dtype=np.float64)
        states = np.empty((len(controls) + 1, self.n_states))
        states[0] = x0
        for k, u in enumerate(controls):
            states[k + 1] = self.step(states[k], u)
        return states

    @classmethod
    def from_continuous(cls, Ac: np.ndarray, Bc: np.ndarray, dt: float) -> "LinearSystem":
        """
        Exact zero-order-hold discretization of dx/dt = Ac x + Bc u.

        Uses the block exponential expm([[Ac, Bc], [0, 0]] * dt), whose top
        blocks are the discrete A and B.

        Raises:
            InvalidInputError: If dt is not positive
        """
        Ac, Bc = _validate_matrices(Ac, Bc)
        if not dt > 0:
            raise InvalidInputError(f"dt must be positive, got {dt}")

        n_x, n_u = Bc.shape
        block = np.zeros((n_x + n_u, n_x + n_u))
        block[:n_x, :n_x] = Ac
        block[:n_x, n_x:] = Bc
        phi = expm(block * dt)

        return cls(phi[:n_x, :n_x], phi[:n_x, n_x:], dt=dt)


@dataclass
class ContinuousLinearSystem:
    """
    Linear Time-Invariant (LTI) continuous-time system.

    Dynamics: dx/dt = Ac @ x + Bc @ u

    discretize() caches per dt, so repeated MPC cycles at the
    same timestep reuse the same matrices.

    Args:
        Ac: State matrix (n_x, n_x)
        Bc: Input matrix (n_x, n_u)

    Example:
        >>> system = second_order_system(w_n=0.1, zeta=5.0)
        >>> discrete = system.discretize(0.001)
        >>> x_later = system.propagate(np.array([1.0, 0.0]), np.array([0.0]), 0.0035)
    """
    Ac: np.ndarray
    Bc: np.ndarray
    _cache: Dict[float, LinearSystem] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        """Validate dimensions."""
        self.Ac, self.Bc = _validate_matrices(self.Ac, self.Bc)

    @property
    def n_states(self) -> int:
        """Number of states."""
        return self.Ac.shape[0]

    @property
    def n_inputs(self) -> int:
        """Number of inputs."""
        return self.Bc.shape[1]

    def derivative(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """State derivative dx/dt."""
        return self.Ac @ x + self.Bc @ u

    def discretize(self, dt: float) -> LinearSystem:
        """Discrete-time system at sampling time dt."""
        key = round(float(dt), 15)
        system = self._cache.get(key)
        if system is None:
            system = LinearSystem.from_continuous(self.Ac, self.Bc, dt)
            self._cache[key] = system
        return system

    def propagate(self, x: np.ndarray, u: np.ndarray, duration: float) -> np.ndarray:
        """
        Exact state after holding u constant for the given duration.

        Args:
            x: Initial state (n_x,)
            u: Constant control input (n_u,)
            duration: Propagation time (non-negative)

        Returns:
            State after duration (n_x,)
        """
        if duration < 0:
            raise InvalidInputError(f"duration must be non-negative, got {duration}")
        x = np.asarray(x, dtype=np.float64)
        if duration == 0:
            return x.copy()
        # Not cached: delays produce arbitrary durations
        step = LinearSystem.from_continuous(self.Ac, self.Bc, duration)
        return step.step(x, np.asarray(u, dtype=np.float64))


def _validate_matrices(A, B) -> Tuple[np.ndarray, np.ndarray]:
    A = np.asarray(A, dtype=np.float64)
    B = np.asarray(B, dtype=np.float64)

    if A.ndim != 2:
        raise DimensionError(f"A must be 2D, got shape {A.shape}")
    if B.ndim != 2:
        raise DimensionError(f"B must be 2D, got shape {B.shape}")

    n_x = A.shape[0]
    if A.shape != (n_x, n_x):
        raise DimensionError(f"A must be square, got shape {A.shape}")
    if B.shape[0] != n_x:
        raise DimensionError(f"B rows ({B.shape[0]}) must match A ({n_x})")

    return A, B


def second_order_system(
    w_n: float,
    zeta: float,
    g_dc: float = 1.0,
) -> ContinuousLinearSystem:
    """
    Create a damped oscillator.

    States: [position, velocity]
    Input: force (scaled by g_dc * w_n^2)

        x1' = x2
        x2' = -w_n^2 x1 - 2 zeta w_n x2 + g_dc w_n^2 u

    Args:
        w_n: Natural frequency (rad/s)
        zeta: Damping ratio
        g_dc: DC gain

    Returns:
        ContinuousLinearSystem for the oscillator
    """
    if w_n <= 0:
        raise InvalidInputError(f"w_n must be positive, got {w_n}")

    Ac = np.array([
        [0.0, 1.0],
        [-w_n**2, -2.0 * zeta * w_n],
    ])
    Bc = np.array([
        [0.0],
        [g_dc * w_n**2],
    ])
    return ContinuousLinearSystem(Ac, Bc)


def double_integrator() -> ContinuousLinearSystem:
    """
    Create a continuous double integrator (point mass).

    States: [position, velocity]
    Input: acceleration
    """
    Ac = np.array([
        [0.0, 1.0],
        [0.0, 0.0],
    ])
    Bc = np.array([
        [0.0],
        [1.0],
    ])
    return ContinuousLinearSystem(Ac, Bc)
