"""
mpcloop Receding-Horizon Loop
=============================

Wraps a trajectory optimizer into a model predictive control loop with
warm starting, delay compensation and fixed or receding time horizons.

Quick Start
-----------
>>> from mpcloop.mpc import MpcController, MpcSettings
>>> from mpcloop.optimizers import IterativeLQR
>>>
>>> settings = MpcSettings(dt=0.001, max_iterations=5)
>>> mpc = MpcController(problem, IterativeLQR(), settings)
>>> mpc.set_initial_guess(full_solution.policy, full_solution.trajectory)
>>>
>>> success, policy, t_policy = mpc.run(x_measured, t_now)
>>> u = policy.compute_control(x_measured, t_now)

Classes
-------
MpcController
    The loop manager; one run() call per control cycle
MpcSettings
    Immutable loop configuration
WarmStartTransformer
    Shifts a previous solution into the next initial guess
FixedFinalTimeHorizon, ConstantRecedingHorizon
    Time horizon semantics
MpcStatistics
    Per-cycle solve time and delay records

Cycle
-----
At wall time t with measured state x:

    tau      = delay estimate (measured solve time or fixed, plus additional)
    x(t+tau) = forward integration of x under the previous policy
    guess    = previous policy shifted by (t + tau - t0_prev)
    policy   = optimizer.solve(problem(x(t+tau), remaining horizon), guess)
    policy   = policy without the prefix elapsed during the solve
"""

from .settings import MpcSettings, HorizonMode, TailExtension
from .horizon import (
    HorizonPolicy,
    FixedFinalTimeHorizon,
    ConstantRecedingHorizon,
    make_horizon,
    validate_horizon,
)
from .timing import DelayEstimator, horizon_steps, elapsed_steps
from .warm_start import WarmStart, WarmStartTransformer, forward_integrate
from .statistics import CycleRecord, MpcStatistics
from .controller import MpcController, MpcPhase, CycleOutput

__all__ = [
    # Controller
    "MpcController",
    "MpcPhase",
    "CycleOutput",
    # Settings
    "MpcSettings",
    "HorizonMode",
    "TailExtension",
    # Horizon
    "HorizonPolicy",
    "FixedFinalTimeHorizon",
    "ConstantRecedingHorizon",
    "make_horizon",
    "validate_horizon",
    # Timing
    "DelayEstimator",
    "horizon_steps",
    "elapsed_steps",
    # Warm start
    "WarmStart",
    "WarmStartTransformer",
    "forward_integrate",
    # Statistics
    "CycleRecord",
    "MpcStatistics",
]
