"""
pytest configuration and fixtures for mpcloop tests.
"""

import time

import numpy as np
import pytest

from mpcloop.exceptions import NumericalError
from mpcloop.optimizers import TrajectoryOptimizer
from mpcloop.result import OptimizerResult, Status
from mpcloop.trajectory import Trajectory


# ============================================================================
# Test doubles
# ============================================================================

class FakeClock:
    """Manually advanced clock, injected into MpcController."""

    def __init__(self, start=0.0):
        self.now = float(start)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeOptimizer(TrajectoryOptimizer):
    """
    Returns the initial guess as the converged solution.

    Each solve advances the injected clock by solve_duration, so delay and
    truncation logic can be tested deterministically. Calls listed in
    fail_on report MAX_ITERATIONS, calls listed in raise_on raise. With
    keep_calls=False only the call count is tracked.
    """

    name = "fake"

    def __init__(self, clock=None, solve_duration=0.0, fail_on=(), raise_on=(), sleep=0.0,
                 keep_calls=True):
        super().__init__()
        self.clock = clock
        self.solve_duration = solve_duration
        self.fail_on = set(fail_on)
        self.raise_on = set(raise_on)
        self.sleep = sleep
        self.keep_calls = keep_calls
        self.num_calls = 0
        self.calls = []
        self.active = False
        self.overlaps = 0

    def solve(self, problem, initial_guess, max_iterations):
        if self.active:
            self.overlaps += 1
        self.active = True
        try:
            call = self.num_calls
            self.num_calls += 1
            if self.keep_calls:
                self.calls.append({
                    "guess": initial_guess.copy(),
                    "initial_state": problem.initial_state,
                    "time_horizon": problem.time_horizon,
                    "max_iterations": max_iterations,
                })
            if self.sleep:
                time.sleep(self.sleep)
            if self.clock is not None:
                self.clock.advance(self.solve_duration)

            if call in self.raise_on:
                raise NumericalError("injected failure", iterations=1)
            if call in self.fail_on:
                return OptimizerResult(
                    status=Status.MAX_ITERATIONS,
                    iterations=max_iterations,
                    info={"reason": "injected failure"},
                )

            states = np.tile(problem.initial_state, (initial_guess.length + 1, 1))
            return OptimizerResult(
                status=Status.OPTIMAL,
                policy=initial_guess.copy(),
                trajectory=Trajectory(states=states, dt=initial_guess.dt, t0=initial_guess.t0),
                cost=0.0,
                iterations=1,
            )
        finally:
            self.active = False


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_clock():
    """Clock starting at zero."""
    return FakeClock()


@pytest.fixture
def make_fake_optimizer():
    """Factory for FakeOptimizer instances."""
    return FakeOptimizer


@pytest.fixture
def oscillator():
    """
    Heavily damped oscillator.

    w_n = 0.1 rad/s, zeta = 5.0, unit DC gain.
    """
    from mpcloop.system import second_order_system

    return second_order_system(w_n=0.1, zeta=5.0)


@pytest.fixture
def oscillator_cost():
    """Regulation cost for the oscillator."""
    from mpcloop.system import QuadraticCost

    return QuadraticCost(
        Q=np.diag([1.0, 0.1]),
        R=np.array([[0.01]]),
        Qf=np.diag([10.0, 1.0]),
    )


@pytest.fixture
def make_problem(oscillator, oscillator_cost):
    """Factory for oscillator problems with a given horizon."""
    from mpcloop.system import OptConProblem

    def _make(time_horizon=0.1, **kwargs):
        return OptConProblem(oscillator, oscillator_cost, time_horizon=time_horizon, **kwargs)

    return _make


@pytest.fixture
def double_integrator_problem():
    """
    Double integrator regulation problem, 2 s horizon.

    Small enough (20 steps at dt=0.1) to solve to optimality quickly.
    """
    from mpcloop.system import OptConProblem, QuadraticCost, double_integrator

    cost = QuadraticCost(
        Q=np.diag([1.0, 0.1]),
        R=np.array([[0.01]]),
        Qf=np.diag([10.0, 1.0]),
    )
    return OptConProblem(
        double_integrator(),
        cost,
        time_horizon=2.0,
        initial_state=np.array([1.0, 0.0]),
    )


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
