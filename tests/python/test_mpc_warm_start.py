"""
Tests for warm starting and state forward integration.
"""

import numpy as np
import pytest


DT = 0.01


@pytest.fixture
def previous():
    """Previous policy (5 steps) with gains and its 6-sample trajectory."""
    from mpcloop.policy import Policy
    from mpcloop.trajectory import Trajectory

    feedforward = np.arange(5.0).reshape(-1, 1)
    feedback = np.stack([np.array([[k, -k]], dtype=float) for k in range(5)])
    states = np.column_stack([np.arange(6.0), -np.arange(6.0)])
    policy = Policy(feedforward=feedforward, dt=DT, feedback=feedback, t0=1.0)
    trajectory = Trajectory(states=states, dt=DT, t0=1.0)
    return policy, trajectory


def make_transformer(tail_extension="hold_last", default_feedback=None):
    from mpcloop.mpc import TailExtension, WarmStartTransformer

    return WarmStartTransformer(
        dt=DT,
        n_states=2,
        n_inputs=1,
        default_feedback=default_feedback,
        tail_extension=TailExtension(tail_extension),
    )


class TestTransform:
    """Test WarmStartTransformer.transform."""

    def test_identity(self, previous):
        policy, trajectory = previous
        transformer = make_transformer()
        x = np.array([0.0, 0.0])

        guess = transformer.transform(policy, trajectory, x, elapsed=0.0, n_steps=5)

        assert guess.policy.allclose(policy)
        np.testing.assert_allclose(guess.trajectory.states[1:], trajectory.states[1:])
        np.testing.assert_allclose(guess.trajectory.states[0], x)

    def test_identity_is_idempotent(self, previous):
        policy, trajectory = previous
        transformer = make_transformer()
        x = trajectory.initial_state

        once = transformer.transform(policy, trajectory, x, 0.0, 5)
        twice = transformer.transform(once.policy, once.trajectory, x, 0.0, 5)

        assert twice.policy.allclose(once.policy)
        np.testing.assert_allclose(twice.trajectory.states, once.trajectory.states)

    def test_does_not_mutate_previous(self, previous):
        policy, trajectory = previous
        before = policy.copy()
        transformer = make_transformer()

        guess = transformer.transform(policy, trajectory, np.ones(2), 0.0, 5)
        guess.policy.feedforward[:] = -1.0
        guess.trajectory.states[:] = -1.0

        assert policy.allclose(before)
        np.testing.assert_allclose(trajectory.states[0], [0.0, 0.0])

    def test_shift_hold_last(self, previous):
        policy, trajectory = previous
        transformer = make_transformer("hold_last")

        guess = transformer.transform(policy, trajectory, np.ones(2), elapsed=0.02, n_steps=5)

        np.testing.assert_allclose(guess.policy.feedforward[:, 0], [2, 3, 4, 4, 4])
        np.testing.assert_allclose(guess.policy.feedback[:, 0, 0], [2, 3, 4, 4, 4])
        np.testing.assert_allclose(guess.trajectory.states[1:, 0], [3, 4, 5, 5, 5])
        np.testing.assert_allclose(guess.trajectory.states[0], [1.0, 1.0])
        assert guess.policy.t0 == pytest.approx(1.02)
        assert guess.trajectory.t0 == pytest.approx(1.02)

    def test_shift_problem_default(self, previous):
        policy, trajectory = previous
        gain = np.array([[-1.0, -2.0]])
        transformer = make_transformer("problem_default", default_feedback=gain)

        guess = transformer.transform(policy, trajectory, np.ones(2), elapsed=0.03, n_steps=4)

        np.testing.assert_allclose(guess.policy.feedforward[:, 0], [3, 4, 0, 0])
        np.testing.assert_allclose(guess.policy.feedback[2], gain)
        np.testing.assert_allclose(guess.policy.feedback[3], gain)
        np.testing.assert_allclose(guess.policy.feedback[0], policy.feedback[3])

    def test_shorter_horizon_cuts_end(self, previous):
        policy, trajectory = previous
        transformer = make_transformer()

        guess = transformer.transform(policy, trajectory, np.zeros(2), elapsed=0.01, n_steps=2)

        np.testing.assert_allclose(guess.policy.feedforward[:, 0], [1, 2])
        assert guess.trajectory.horizon == 3

    def test_elapsed_rounded_to_steps(self, previous):
        policy, trajectory = previous
        transformer = make_transformer()

        guess = transformer.transform(policy, trajectory, np.zeros(2), elapsed=0.0104, n_steps=3)

        np.testing.assert_allclose(guess.policy.feedforward[:, 0], [1, 2, 3])
        assert guess.policy.t0 == pytest.approx(1.0104)

    def test_shift_past_end(self, previous):
        policy, trajectory = previous
        transformer = make_transformer()

        guess = transformer.transform(policy, trajectory, np.zeros(2), elapsed=0.5, n_steps=3)

        np.testing.assert_allclose(guess.policy.feedforward[:, 0], [4, 4, 4])

    def test_feedforward_only_policy(self):
        from mpcloop.policy import Policy

        policy = Policy(feedforward=np.arange(4.0), dt=DT)
        transformer = make_transformer()

        guess = transformer.transform(policy, None, np.array([2.0, 3.0]), elapsed=0.01, n_steps=4)

        assert not guess.policy.has_feedback
        np.testing.assert_allclose(guess.policy.feedforward[:, 0], [1, 2, 3, 3])
        np.testing.assert_allclose(guess.trajectory.states, np.tile([2.0, 3.0], (5, 1)))

    def test_no_previous_policy(self):
        gain = np.array([[0.5, 0.25]])
        transformer = make_transformer(default_feedback=gain)

        guess = transformer.transform(None, None, np.array([1.0, 2.0]), 0.0, 6, start_time=0.3)

        assert guess.policy.length == 6
        assert guess.policy.t0 == pytest.approx(0.3)
        np.testing.assert_allclose(guess.policy.feedforward, 0.0)
        np.testing.assert_allclose(guess.policy.feedback[4], gain)
        np.testing.assert_allclose(guess.trajectory.final_state, [1.0, 2.0])

    def test_dt_mismatch(self):
        from mpcloop.exceptions import ConfigurationError
        from mpcloop.policy import Policy

        transformer = make_transformer()
        policy = Policy(feedforward=np.zeros(4), dt=0.02)

        with pytest.raises(ConfigurationError):
            transformer.transform(policy, None, np.zeros(2), 0.0, 4)

    def test_wrong_default_feedback(self):
        from mpcloop.exceptions import DimensionError

        with pytest.raises(DimensionError):
            make_transformer(default_feedback=np.zeros((2, 2)))


class TestForwardIntegrate:
    """Test state projection under a policy."""

    def test_free_motion(self):
        from mpcloop.mpc import forward_integrate
        from mpcloop.policy import Policy
        from mpcloop.system import double_integrator

        policy = Policy.zeros(10, n_inputs=1, n_states=2, dt=DT)

        x = forward_integrate(double_integrator(), policy, np.array([0.0, 1.0]), 0.0, 0.0035)

        np.testing.assert_allclose(x, [0.0035, 1.0], atol=1e-12)

    def test_constant_input_across_grid_points(self):
        from mpcloop.mpc import forward_integrate
        from mpcloop.policy import Policy
        from mpcloop.system import double_integrator

        policy = Policy(feedforward=np.full(10, 2.0), dt=DT)
        t_start, t_end = 0.004, 0.037

        x = forward_integrate(double_integrator(), policy, np.zeros(2), t_start, t_end)

        duration = t_end - t_start
        np.testing.assert_allclose(x, [duration**2, 2.0 * duration], atol=1e-12)

    def test_feedback_sampled_at_grid_points(self):
        from mpcloop.mpc import forward_integrate
        from mpcloop.policy import Policy
        from mpcloop.system import double_integrator

        system = double_integrator()
        gain = np.array([[-4.0, -1.0]])
        policy = Policy.zeros(10, n_inputs=1, n_states=2, dt=DT, gain=gain)
        x0 = np.array([1.0, 0.0])

        x = forward_integrate(system, policy, x0, 0.0, 0.03)

        expected = x0.copy()
        step = system.discretize(DT)
        for _ in range(3):
            expected = step.step(expected, gain @ expected)
        np.testing.assert_allclose(x, expected, rtol=1e-12)

    def test_beyond_policy_end_holds_last(self):
        from mpcloop.mpc import forward_integrate
        from mpcloop.policy import Policy
        from mpcloop.system import double_integrator

        policy = Policy(feedforward=np.array([0.0, 1.0]), dt=DT)

        x = forward_integrate(double_integrator(), policy, np.zeros(2), 0.01, 0.05)

        np.testing.assert_allclose(x, [0.5 * 0.04**2, 0.04], atol=1e-12)

    def test_zero_duration(self):
        from mpcloop.mpc import forward_integrate
        from mpcloop.policy import Policy
        from mpcloop.system import double_integrator

        policy = Policy(feedforward=np.ones(3), dt=DT)
        x0 = np.array([1.0, 2.0])

        x = forward_integrate(double_integrator(), policy, x0, 0.02, 0.02)

        np.testing.assert_allclose(x, x0)
        assert x is not x0
