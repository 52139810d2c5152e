"""
State Feedback Policies
=======================

Time-indexed control laws handed from the optimizer to the plant.

A policy holds K feed-forward controls and optional feedback gains sampled
at a fixed timestep dt, starting at absolute time t0:

    u(t, x) = u_ff[k] + K_fb[k] @ x,    k = floor((t - t0) / dt)

The index is clamped to [0, K-1], so the first entry applies before t0 and
the last entry is held after the end of the policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .exceptions import DimensionError, InvalidInputError

# Slack for floor() on times that sit on a grid point up to rounding
_GRID_EPS = 1e-9


@dataclass(eq=False)
class Policy:
    """
    Feed-forward plus optional linear feedback control law.

    Args:
        feedforward: Feed-forward controls (K, n_u)
        dt: Sampling time of the policy
        feedback: Feedback gains (K, n_u, n_x), optional
        t0: Absolute start time of the first entry

    Example:
        >>> policy = Policy.zeros(n_steps=100, n_inputs=1, n_states=2, dt=0.01)
        >>> u = policy.compute_control(np.array([1.0, 0.0]), t=0.5)
    """
    feedforward: np.ndarray
    dt: float
    feedback: Optional[np.ndarray] = None
    t0: float = 0.0

    def __post_init__(self):
        """Validate shapes."""
        self.feedforward = np.asarray(self.feedforward, dtype=np.float64)
        if self.feedforward.ndim == 1:
            self.feedforward = self.feedforward.reshape(-1, 1)
        if self.feedforward.ndim != 2:
            raise DimensionError(
                f"feedforward must be (K, n_u), got shape {self.feedforward.shape}"
            )

        if not np.isfinite(self.dt) or self.dt <= 0:
            raise InvalidInputError(f"dt must be positive, got {self.dt}")
        self.dt = float(self.dt)
        self.t0 = float(self.t0)

        if self.feedback is not None:
            self.feedback = np.asarray(self.feedback, dtype=np.float64)
            if self.feedback.ndim != 3:
                raise DimensionError(
                    f"feedback must be (K, n_u, n_x), got shape {self.feedback.shape}"
                )
            if self.feedback.shape[:2] != self.feedforward.shape:
                raise DimensionError(
                    f"feedback shape {self.feedback.shape} does not match "
                    f"feedforward shape {self.feedforward.shape}"
                )

    @property
    def length(self) -> int:
        """Number of steps K."""
        return self.feedforward.shape[0]

    def __len__(self) -> int:
        return self.length

    @property
    def n_inputs(self) -> int:
        """Control dimension."""
        return self.feedforward.shape[1]

    @property
    def n_states(self) -> Optional[int]:
        """State dimension implied by the gains (None without feedback)."""
        if self.feedback is None:
            return None
        return self.feedback.shape[2]

    @property
    def has_feedback(self) -> bool:
        return self.feedback is not None

    @property
    def duration(self) -> float:
        """Time covered by the policy."""
        return self.length * self.dt

    @property
    def end_time(self) -> float:
        """Absolute time at which the last entry expires."""
        return self.t0 + self.duration

    @property
    def time_grid(self) -> np.ndarray:
        """Absolute start time of each entry (K,)."""
        return self.t0 + np.arange(self.length) * self.dt

    def index_at(self, t: float) -> int:
        """Entry active at absolute time t (clamped to the policy)."""
        if self.length == 0:
            raise InvalidInputError("cannot index an empty policy")
        k = int(np.floor((t - self.t0) / self.dt + _GRID_EPS))
        return min(max(k, 0), self.length - 1)

    def compute_control(self, x: np.ndarray, t: float) -> np.ndarray:
        """
        Evaluate the control law.

        Args:
            x: Current state (n_x,)
            t: Absolute time

        Returns:
            Control action (n_u,)
        """
        k = self.index_at(t)
        u = self.feedforward[k].copy()
        if self.feedback is not None:
            u += self.feedback[k] @ np.asarray(x, dtype=np.float64)
        return u

    def truncated(self, n_drop: int) -> "Policy":
        """
        Drop the first n_drop entries and advance t0 accordingly.

        Args:
            n_drop: Number of leading entries to discard

        Returns:
            New Policy of length max(K - n_drop, 0)
        """
        if n_drop < 0:
            raise InvalidInputError(f"n_drop must be non-negative, got {n_drop}")
        n_drop = min(n_drop, self.length)
        feedback = None
        if self.feedback is not None:
            feedback = self.feedback[n_drop:].copy()
        return Policy(
            feedforward=self.feedforward[n_drop:].copy(),
            dt=self.dt,
            feedback=feedback,
            t0=self.t0 + n_drop * self.dt,
        )

    def copy(self) -> "Policy":
        """Deep copy of the policy."""
        return self.truncated(0)

    def allclose(self, other: "Policy", atol: float = 0.0) -> bool:
        """Check whether two policies describe the same control law."""
        if self.length != other.length or self.has_feedback != other.has_feedback:
            return False
        if not np.isclose(self.dt, other.dt) or not np.isclose(self.t0, other.t0):
            return False
        if not np.allclose(self.feedforward, other.feedforward, rtol=0.0, atol=atol):
            return False
        if self.feedback is not None:
            if self.feedback.shape != other.feedback.shape:
                return False
            return np.allclose(self.feedback, other.feedback, rtol=0.0, atol=atol)
        return True

    @classmethod
    def zeros(
        cls,
        n_steps: int,
        n_inputs: int,
        n_states: int,
        dt: float,
        t0: float = 0.0,
        gain: Optional[np.ndarray] = None,
    ) -> "Policy":
        """
        Create a trivial controller: zero feed-forward, constant gain.

        Args:
            n_steps: Number of steps K
            n_inputs: Control dimension
            n_states: State dimension
            dt: Sampling time
            t0: Start time
            gain: Gain (n_u, n_x) repeated over the horizon (default: zero)

        Returns:
            Policy with zero feed-forward and K copies of the gain
        """
        if gain is None:
            gain = np.zeros((n_inputs, n_states))
        gain = np.asarray(gain, dtype=np.float64)
        if gain.shape != (n_inputs, n_states):
            raise DimensionError(
                f"gain must be ({n_inputs}, {n_states}), got {gain.shape}"
            )
        return cls(
            feedforward=np.zeros((n_steps, n_inputs)),
            dt=dt,
            feedback=np.tile(gain, (n_steps, 1, 1)),
            t0=t0,
        )

    def __repr__(self) -> str:
        return (
            f"Policy(length={self.length}, dt={self.dt:g}, "
            f"t0={self.t0:.6f}, feedback={self.has_feedback})"
        )
