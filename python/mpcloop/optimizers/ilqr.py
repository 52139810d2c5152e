"""
Iterative LQR
=============

Iterative Linear-Quadratic Regulator backend.

Each iteration:

1. Backward pass: Riccati recursion around the nominal trajectory gives
   feed-forward corrections k_k and feedback gains K_k.
2. Forward pass: roll out u_k = u_bar_k + alpha k_k + K_k (x_k - x_bar_k)
   with a backtracking line search on alpha, clipping to input bounds.

Converges when an accepted step decreases the cost by less than
tolerance * max(1, |J|). For linear dynamics and quadratic cost the first
full step is already optimal, so a warm start close to the optimum converges
in a single iteration.

The returned policy uses the u = u_ff + K x convention:

    u_ff_k = u_k - K_k x_k
"""

from __future__ import annotations

import logging
import time
from typing import Optional, Sequence, Tuple

import numpy as np

from ..exceptions import InvalidInputError, NumericalError
from ..policy import Policy
from ..result import OptimizerResult, Status
from ..system.constraints import BoxConstraints
from ..system.cost import QuadraticCost
from ..system.dynamics import LinearSystem
from ..system.problem import OptConProblem
from ..trajectory import Trajectory
from .base import TrajectoryOptimizer, register_optimizer, rollout

logger = logging.getLogger(__name__)


@register_optimizer("ilqr")
class IterativeLQR(TrajectoryOptimizer):
    """
    Iterative LQR trajectory optimizer.

    Args:
        tolerance: Relative cost decrease below which the solve has converged
        time_limit: Wall clock budget per solve in seconds, optional
        regularization: Diagonal term added to the input Hessian
        line_search: Step sizes tried in order during the forward pass

    Example:
        >>> optimizer = IterativeLQR(tolerance=1e-6)
        >>> guess = Policy.zeros(3000, n_inputs=1, n_states=2, dt=0.001)
        >>> result = optimizer.solve(problem, guess, max_iterations=10)
        >>> result.converged
        True
    """

    def __init__(
        self,
        tolerance: float = 1e-6,
        time_limit: Optional[float] = None,
        regularization: float = 1e-9,
        line_search: Sequence[float] = (1.0, 0.5, 0.25, 0.1, 0.05),
    ) -> None:
        super().__init__(tolerance=tolerance, time_limit=time_limit)
        if regularization < 0:
            raise InvalidInputError(f"regularization must be non-negative, got {regularization}")
        if not line_search or any(a <= 0 or a > 1 for a in line_search):
            raise InvalidInputError(f"line_search steps must lie in (0, 1], got {line_search}")
        self.regularization = regularization
        self.line_search = tuple(line_search)

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
        bounds = problem.input_bounds if problem.input_bounds.is_bounded else None

        xs, us = rollout(system, problem.initial_state, initial_guess, bounds)
        J = cost.evaluate(xs, us, dt)
        if not np.isfinite(J):
            return OptimizerResult(
                status=Status.NUMERICAL_ERROR,
                iterations=0,
                solve_time=time.perf_counter() - start_time,
                info={"reason": "initial guess rollout diverged"},
            )

        status = Status.MAX_ITERATIONS
        gains = initial_guess.feedback
        iterations = 0

        for iteration in range(1, max_iterations + 1):
            if self._out_of_time(start_time):
                status = Status.TIME_LIMIT
                break
            iterations = iteration

            k_ff, K_fb = self._backward_pass(system, cost, xs, us, dt)
            gains = K_fb

            accepted = False
            for alpha in self.line_search:
                xs_new, us_new = self._forward_pass(system, xs, us, k_ff, K_fb, alpha, bounds)
                J_new = cost.evaluate(xs_new, us_new, dt)
                if np.isfinite(J_new) and J_new <= J:
                    accepted = True
                    break

            if not accepted:
                # No decrease along the Newton direction: stationary point up to rounding
                step = np.abs(k_ff).max() if k_ff.size else 0.0
                scale = max(1.0, np.abs(us).max() if us.size else 0.0)
                status = Status.OPTIMAL if step <= self.tolerance * scale else Status.NUMERICAL_ERROR
                logger.debug(
                    "iLQR line search failed at iteration %d (step %.3g)", iteration, step
                )
                break

            decrease = J - J_new
            xs, us, J = xs_new, us_new, J_new
            logger.debug(
                "iLQR iteration %d: cost=%.6g decrease=%.3g alpha=%g",
                iteration, J, decrease, alpha,
            )

            if decrease <= self.tolerance * max(1.0, abs(J)):
                status = Status.OPTIMAL
                break

        if gains is None:
            gains = np.zeros((len(us), problem.n_inputs, problem.n_states))

        feedforward = us - np.einsum("kij,kj->ki", gains, xs[:-1])
        policy = Policy(
            feedforward=feedforward,
            dt=dt,
            feedback=gains,
            t0=initial_guess.t0,
        )
        trajectory = Trajectory(states=xs, dt=dt, t0=initial_guess.t0)

        return OptimizerResult(
            status=status,
            policy=policy,
            trajectory=trajectory,
            cost=J,
            iterations=iterations,
            solve_time=time.perf_counter() - start_time,
        )

    def _backward_pass(
        self,
        system: LinearSystem,
        cost: QuadraticCost,
        xs: np.ndarray,
        us: np.ndarray,
        dt: float,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Riccati recursion around the nominal (xs, us)."""
        A, B = system.A, system.B
        At, Bt = A.T, B.T
        Q = cost.Q * dt
        R = cost.R * dt

        N, n_u = us.shape
        n_x = xs.shape[1]
        k_ff = np.zeros((N, n_u))
        K_fb = np.zeros((N, n_u, n_x))

        dx = xs - cost.x_ref
        du = us - cost.u_ref
        reg = self.regularization * np.eye(n_u)

        Vx = cost.Qf @ dx[N]
        Vxx = cost.Qf.copy()

        for k in range(N - 1, -1, -1):
            VxxA = Vxx @ A
            VxxB = Vxx @ B

            Qx = Q @ dx[k] + At @ Vx
            Qu = R @ du[k] + Bt @ Vx
            Qxx = Q + At @ VxxA
            Quu = R + Bt @ VxxB + reg
            Qux = Bt @ VxxA

            try:
                sol = np.linalg.solve(Quu, np.column_stack([Qu, Qux]))
            except np.linalg.LinAlgError as e:
                raise NumericalError(f"singular input Hessian at step {k}: {e}") from e

            kk = -sol[:, 0]
            KK = -sol[:, 1:]
            k_ff[k] = kk
            K_fb[k] = KK

            Vx = Qx + KK.T @ Quu @ kk + KK.T @ Qu + Qux.T @ kk
            Vxx = Qxx + KK.T @ Quu @ KK + KK.T @ Qux + Qux.T @ KK
            Vxx = 0.5 * (Vxx + Vxx.T)

        return k_ff, K_fb

    def _forward_pass(
        self,
        system: LinearSystem,
        xs: np.ndarray,
        us: np.ndarray,
        k_ff: np.ndarray,
        K_fb: np.ndarray,
        alpha: float,
        bounds: Optional[BoxConstraints],
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Closed-loop rollout around the nominal with step size alpha."""
        A, B = system.A, system.B
        xs_new = np.zeros_like(xs)
        us_new = np.zeros_like(us)
        xs_new[0] = xs[0]

        for k in range(len(us)):
            u = us[k] + alpha * k_ff[k] + K_fb[k] @ (xs_new[k] - xs[k])
            if bounds is not None:
                u = np.clip(u, bounds.lb, bounds.ub)
            us_new[k] = u
            xs_new[k + 1] = A @ xs_new[k] + B @ u

        return xs_new, us_new
