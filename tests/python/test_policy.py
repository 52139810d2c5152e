"""
Tests for policies, trajectories and optimizer results.
"""

import pytest
import numpy as np


class TestPolicy:
    """Test Policy class."""

    def test_creation(self):
        """Create policy with feedback."""
        from mpcloop.policy import Policy

        policy = Policy(
            feedforward=np.zeros((10, 1)),
            dt=0.1,
            feedback=np.zeros((10, 1, 2)),
            t0=2.0,
        )

        assert policy.length == 10
        assert len(policy) == 10
        assert policy.n_inputs == 1
        assert policy.n_states == 2
        assert policy.has_feedback
        assert policy.duration == pytest.approx(1.0)
        assert policy.end_time == pytest.approx(3.0)
        np.testing.assert_allclose(policy.time_grid[:3], [2.0, 2.1, 2.2])

    def test_vector_feedforward(self):
        """1D feed-forward is a single-input policy."""
        from mpcloop.policy import Policy

        policy = Policy(feedforward=np.arange(5.0), dt=0.1)

        assert policy.feedforward.shape == (5, 1)
        assert policy.n_states is None
        assert not policy.has_feedback

    def test_invalid(self):
        """Reject inconsistent shapes and timesteps."""
        from mpcloop.exceptions import DimensionError, InvalidInputError
        from mpcloop.policy import Policy

        with pytest.raises(DimensionError):
            Policy(feedforward=np.zeros((10, 1, 1)), dt=0.1)
        with pytest.raises(DimensionError):
            Policy(feedforward=np.zeros((10, 1)), dt=0.1, feedback=np.zeros((9, 1, 2)))
        with pytest.raises(DimensionError):
            Policy(feedforward=np.zeros((10, 1)), dt=0.1, feedback=np.zeros((10, 2)))
        with pytest.raises(InvalidInputError):
            Policy(feedforward=np.zeros((10, 1)), dt=0.0)

    def test_index_at(self):
        """Zero-order hold index is clamped to the policy."""
        from mpcloop.policy import Policy

        policy = Policy(feedforward=np.zeros(10), dt=0.1, t0=1.0)

        assert policy.index_at(1.0) == 0
        assert policy.index_at(1.05) == 0
        assert policy.index_at(1.3) == 3
        assert policy.index_at(0.0) == 0
        assert policy.index_at(5.0) == 9

    def test_index_at_empty(self):
        from mpcloop.exceptions import InvalidInputError
        from mpcloop.policy import Policy

        with pytest.raises(InvalidInputError):
            Policy(feedforward=np.zeros((0, 1)), dt=0.1).index_at(0.0)

    def test_compute_control(self):
        """u = u_ff + K x."""
        from mpcloop.policy import Policy

        feedforward = np.array([[1.0], [2.0]])
        feedback = np.array([[[1.0, 0.0]], [[0.0, -1.0]]])
        policy = Policy(feedforward=feedforward, dt=0.5, feedback=feedback)
        x = np.array([3.0, 4.0])

        np.testing.assert_allclose(policy.compute_control(x, 0.2), [4.0])
        np.testing.assert_allclose(policy.compute_control(x, 0.7), [-2.0])
        np.testing.assert_allclose(policy.compute_control(x, 9.0), [-2.0])

    def test_truncated(self):
        """Dropping entries advances t0."""
        from mpcloop.policy import Policy

        policy = Policy.zeros(10, n_inputs=1, n_states=2, dt=0.1, t0=1.0)
        policy.feedforward[:, 0] = np.arange(10.0)

        truncated = policy.truncated(3)

        assert truncated.length == 7
        assert truncated.t0 == pytest.approx(1.3)
        assert truncated.feedback.shape == (7, 1, 2)
        assert truncated.feedforward[0, 0] == 3.0
        assert policy.length == 10

    def test_truncated_all(self):
        from mpcloop.policy import Policy

        policy = Policy(feedforward=np.zeros(4), dt=0.1)

        assert policy.truncated(10).length == 0
        assert policy.truncated(10).t0 == pytest.approx(0.4)

    def test_truncated_negative(self):
        from mpcloop.exceptions import InvalidInputError
        from mpcloop.policy import Policy

        with pytest.raises(InvalidInputError):
            Policy(feedforward=np.zeros(4), dt=0.1).truncated(-1)

    def test_copy_is_deep(self):
        from mpcloop.policy import Policy

        policy = Policy.zeros(3, n_inputs=1, n_states=2, dt=0.1)
        copied = policy.copy()
        copied.feedback[:] = 1.0

        assert policy.allclose(Policy.zeros(3, n_inputs=1, n_states=2, dt=0.1))
        assert not policy.allclose(copied)

    def test_allclose(self):
        from mpcloop.policy import Policy

        a = Policy(feedforward=np.zeros(3), dt=0.1)

        assert a.allclose(Policy(feedforward=np.full(3, 1e-9), dt=0.1), atol=1e-8)
        assert not a.allclose(Policy(feedforward=np.zeros(3), dt=0.1, t0=0.5))
        assert not a.allclose(Policy(feedforward=np.zeros(4), dt=0.1))
        assert not a.allclose(Policy.zeros(3, n_inputs=1, n_states=2, dt=0.1))

    def test_zeros_gain(self):
        from mpcloop.exceptions import DimensionError
        from mpcloop.policy import Policy

        gain = np.array([[-1.0, -0.5]])
        policy = Policy.zeros(4, n_inputs=1, n_states=2, dt=0.1, gain=gain)

        np.testing.assert_allclose(policy.feedback[3], gain)
        with pytest.raises(DimensionError):
            Policy.zeros(4, n_inputs=1, n_states=2, dt=0.1, gain=np.zeros((2, 1)))


class TestTrajectory:
    """Test Trajectory class."""

    def test_basic(self):
        """Create trajectory."""
        from mpcloop.trajectory import Trajectory

        traj = Trajectory(states=np.zeros((11, 2)), dt=0.1, t0=1.0)

        assert traj.horizon == 11
        assert len(traj) == 11
        assert traj.n_states == 2
        assert traj.times[-1] == pytest.approx(2.0)
        assert traj.offsets[1] == pytest.approx(0.1)

    def test_state_at(self):
        """Linear interpolation between samples."""
        from mpcloop.trajectory import Trajectory

        states = np.column_stack([np.linspace(0, 1, 11), np.zeros(11)])
        traj = Trajectory(states=states, dt=0.1)

        np.testing.assert_allclose(traj.state_at(0.25), [0.25, 0.0])
        np.testing.assert_allclose(traj.state_at(-1.0), [0.0, 0.0])
        np.testing.assert_allclose(traj.state_at(5.0), [1.0, 0.0])

    def test_get_state_clamped(self):
        from mpcloop.trajectory import Trajectory

        traj = Trajectory(states=np.arange(5.0), dt=0.1)

        assert traj.get_state(-3)[0] == 0.0
        assert traj.get_state(100)[0] == 4.0

    def test_get_window(self):
        """Window beyond the end repeats the last sample."""
        from mpcloop.trajectory import Trajectory

        traj = Trajectory(states=np.arange(5.0), dt=0.1, t0=1.0)

        window = traj.get_window(start=3, length=4)

        assert window.horizon == 4
        np.testing.assert_allclose(window.states[:, 0], [3.0, 4.0, 4.0, 4.0])
        assert window.t0 == pytest.approx(1.3)

    def test_truncated_keeps_min_length(self):
        from mpcloop.trajectory import Trajectory

        traj = Trajectory(states=np.arange(5.0), dt=0.1)

        assert traj.truncated(2).horizon == 3
        assert traj.truncated(2).t0 == pytest.approx(0.2)
        assert traj.truncated(10).horizon == 1
        assert traj.truncated(10, min_length=None).horizon == 0


class TestOptimizerResult:
    """Test OptimizerResult and Status."""

    def test_status_properties(self):
        from mpcloop.result import Status

        assert Status.OPTIMAL.is_successful
        assert not Status.MAX_ITERATIONS.is_successful
        assert Status.MAX_ITERATIONS.has_solution
        assert not Status.NUMERICAL_ERROR.has_solution
        assert str(Status.TIME_LIMIT) == "time_limit"

    def test_converged_requires_policy(self):
        from mpcloop.policy import Policy
        from mpcloop.result import OptimizerResult, Status

        assert not OptimizerResult(status=Status.OPTIMAL).converged
        policy = Policy(feedforward=np.zeros(3), dt=0.1)
        assert OptimizerResult(status=Status.OPTIMAL, policy=policy).converged
        assert not OptimizerResult(status=Status.MAX_ITERATIONS, policy=policy).converged

    def test_summary(self):
        from mpcloop.result import OptimizerResult, Status

        result = OptimizerResult(status=Status.OPTIMAL, cost=1.5, iterations=3)

        assert "optimal" in result.summary()
        assert "iterations=3" in repr(result)
