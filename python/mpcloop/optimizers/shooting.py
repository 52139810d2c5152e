"""
Single Shooting
===============

Optimizes the control sequence directly with SciPy's L-BFGS-B:

    minimize    J(u_0, ..., u_{N-1})      states eliminated by simulation
    subject to  u_min <= u_k <= u_max

Gradients come from the adjoint recursion

    lambda_N = Qf (x_N - x_ref)
    dJ/du_k  = dt R (u_k - u_ref) + B' lambda_{k+1}
    lambda_k = dt Q (x_k - x_ref) + A' lambda_{k+1}

The returned policy is feed-forward only (no feedback gains).
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import numpy as np
from scipy.optimize import minimize

from ..policy import Policy
from ..result import OptimizerResult, Status
from ..system.cost import QuadraticCost
from ..system.dynamics import LinearSystem
from ..system.problem import OptConProblem
from ..trajectory import Trajectory
from .base import TrajectoryOptimizer, register_optimizer, rollout

logger = logging.getLogger(__name__)


@register_optimizer("shooting")
class ShootingOptimizer(TrajectoryOptimizer):
    """
    Single-shooting optimizer using L-BFGS-B.

    Args:
        tolerance: Passed to L-BFGS-B as ftol and gtol
        time_limit: Wall clock budget per solve in seconds, optional

    Example:
        >>> optimizer = ShootingOptimizer(tolerance=1e-9)
        >>> result = optimizer.solve(problem, guess, max_iterations=200)
    """

    def __init__(
        self,
        tolerance: float = 1e-9,
        time_limit: Optional[float] = None,
    ) -> None:
        super().__init__(tolerance=tolerance, time_limit=time_limit)

    def solve(
        self,
        problem: OptConProblem,
        initial_guess: Policy,
        max_iterations: int,
    ) -> OptimizerResult:
        start_time = time.perf_counter()

        invalid = self._check_problem(problem, initial_guess, max_iterations)
        if invalid is not None:
            invalid.solve_time = time.perf_counter() - start_time
            return invalid

        dt = initial_guess.dt
        system = problem.system.discretize(dt)
        cost = problem.cost
        x0 = problem.initial_state
        input_bounds = problem.input_bounds

        _, us0 = rollout(system, x0, initial_guess, input_bounds)
        N, n_u = us0.shape

        bounds = None
        if input_bounds.is_bounded:
            lb = np.tile(input_bounds.lb, N)
            ub = np.tile(input_bounds.ub, N)
            bounds = [
                (l if np.isfinite(l) else None, u if np.isfinite(u) else None)
                for l, u in zip(lb, ub)
            ]

        def objective(z):
            us = z.reshape(N, n_u)
            xs = system.simulate(x0, us)
            J = cost.evaluate(xs, us, dt)
            grad = _adjoint_gradient(system, cost, xs, us, dt)
            return J, grad.ravel()

        res = minimize(
            objective,
            us0.ravel(),
            jac=True,
            method="L-BFGS-B",
            bounds=bounds,
            options={
                "maxiter": max_iterations,
                "ftol": self.tolerance,
                "gtol": self.tolerance,
            },
        )

        us = res.x.reshape(N, n_u)
        xs = system.simulate(x0, us)
        J = cost.evaluate(xs, us, dt)

        if not np.all(np.isfinite(xs)) or not np.isfinite(J):
            status = Status.NUMERICAL_ERROR
        elif self._out_of_time(start_time):
            status = Status.TIME_LIMIT
        elif res.success:
            status = Status.OPTIMAL
        elif res.status == 1:
            status = Status.MAX_ITERATIONS
        else:
            status = Status.NUMERICAL_ERROR

        logger.debug(
            "L-BFGS-B finished after %d iterations: %s (cost=%.6g)",
            res.nit, res.message, J,
        )

        return OptimizerResult(
            status=status,
            policy=Policy(feedforward=us, dt=dt, t0=initial_guess.t0),
            trajectory=Trajectory(states=xs, dt=dt, t0=initial_guess.t0),
            cost=J,
            iterations=int(res.nit),
            solve_time=time.perf_counter() - start_time,
            info={"message": str(res.message), "function_evaluations": int(res.nfev)},
        )


def _adjoint_gradient(
    system: LinearSystem,
    cost: QuadraticCost,
    xs: np.ndarray,
    us: np.ndarray,
    dt: float,
) -> np.ndarray:
    """Gradient of the cost with respect to the control sequence."""
    At, Bt = system.A.T, system.B.T
    Q = cost.Q * dt
    R = cost.R * dt

    N = len(us)
    grad = np.zeros_like(us)
    lam = cost.Qf @ (xs[N] - cost.x_ref)

    for k in range(N - 1, -1, -1):
        grad[k] = R @ (us[k] - cost.u_ref) + Bt @ lam
        lam = Q @ (xs[k] - cost.x_ref) + At @ lam

    return grad
