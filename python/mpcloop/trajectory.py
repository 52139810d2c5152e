"""
State Trajectories
==================

Predicted state trajectories produced by the trajectory optimizer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .exceptions import InvalidInputError


@dataclass(eq=False)
class Trajectory:
    """
    State trajectory sampled at a fixed timestep.

    Sample k is tagged with the offset k * dt from the start time t0.

    Args:
        states: State samples (N, n_x)
        dt: Sampling time
        t0: Absolute time of the first sample

    Example:
        >>> x = np.zeros((101, 2))
        >>> x[:, 0] = np.linspace(0, 1, 101)
        >>> traj = Trajectory(states=x, dt=0.01)
        >>>
        >>> # Interpolated state halfway between two samples
        >>> x_mid = traj.state_at(0.005)
    """
    states: np.ndarray
    dt: float
    t0: float = 0.0

    def __post_init__(self):
        """Validate trajectory."""
        self.states = np.asarray(self.states, dtype=np.float64)
        if self.states.ndim == 1:
            self.states = self.states.reshape(-1, 1)
        if not np.isfinite(self.dt) or self.dt <= 0:
            raise InvalidInputError(f"dt must be positive, got {self.dt}")
        self.dt = float(self.dt)
        self.t0 = float(self.t0)

    @property
    def horizon(self) -> int:
        """Number of samples."""
        return len(self.states)

    def __len__(self) -> int:
        return self.horizon

    @property
    def n_states(self) -> int:
        """Number of states."""
        return self.states.shape[1]

    @property
    def offsets(self) -> np.ndarray:
        """Offset of each sample from t0 (N,)."""
        return np.arange(self.horizon) * self.dt

    @property
    def times(self) -> np.ndarray:
        """Absolute time of each sample (N,)."""
        return self.t0 + self.offsets

    @property
    def initial_state(self) -> np.ndarray:
        return self.states[0].copy()

    @property
    def final_state(self) -> np.ndarray:
        return self.states[-1].copy()

    def get_state(self, k: int) -> np.ndarray:
        """Get state at sample k (clamped to bounds)."""
        k = min(max(k, 0), len(self.states) - 1)
        return self.states[k]

    def state_at(self, t: float) -> np.ndarray:
        """
        Linearly interpolated state at absolute time t.

        Outside the covered interval the first/last sample is held.
        """
        times = self.times
        return np.array(
            [np.interp(t, times, self.states[:, i]) for i in range(self.n_states)]
        )

    def get_window(
        self,
        start: int,
        length: int,
    ) -> "Trajectory":
        """
        Get trajectory window starting at sample 'start' with given length.

        If window extends beyond trajectory, the last sample is repeated.
        """
        end = start + length

        if end > len(self.states):
            states = np.zeros((length, self.n_states))
            available = max(min(len(self.states) - start, length), 0)
            states[:available] = self.states[start:start + available]
            states[available:] = self.states[-1]  # Repeat last
        else:
            states = self.states[start:end].copy()

        return Trajectory(states=states, dt=self.dt, t0=self.t0 + start * self.dt)

    def truncated(self, n_drop: int, min_length: Optional[int] = 1) -> "Trajectory":
        """Drop the first n_drop samples, keeping at least min_length."""
        if n_drop < 0:
            raise InvalidInputError(f"n_drop must be non-negative, got {n_drop}")
        if min_length is not None:
            n_drop = min(n_drop, max(self.horizon - min_length, 0))
        return Trajectory(
            states=self.states[n_drop:].copy(),
            dt=self.dt,
            t0=self.t0 + n_drop * self.dt,
        )

    def copy(self) -> "Trajectory":
        return Trajectory(states=self.states.copy(), dt=self.dt, t0=self.t0)
