"""
mpcloop: Receding-Horizon MPC Loop Manager
==========================================

mpcloop turns a finite-horizon trajectory optimizer into a model predictive
controller: every cycle it takes a measured state, compensates for the
computation delay, warm starts the optimizer from the previous solution and
hands back a time-stamped feedback policy.

Quick Start
-----------
>>> import numpy as np
>>> import mpcloop
>>>
>>> system = mpcloop.second_order_system(w_n=0.1, zeta=5.0)
>>> cost = mpcloop.QuadraticCost(Q=np.diag([1.0, 0.1]), R=np.array([[0.01]]))
>>> problem = mpcloop.OptConProblem(system, cost, time_horizon=3.0)
>>>
>>> mpc = mpcloop.MpcController(problem, mpcloop.get_optimizer("ilqr"))
>>> success, policy, t_policy = mpc.run(np.array([1.0, 0.0]), 0.0)
"""

__version__ = "0.1.0"
__author__ = "mpcloop Contributors"

from .policy import Policy
from .trajectory import Trajectory
from .result import OptimizerResult, Status
from .system import (
    LinearSystem,
    ContinuousLinearSystem,
    second_order_system,
    double_integrator,
    BoxConstraints,
    QuadraticCost,
    OptConProblem,
)
from .optimizers import (
    TrajectoryOptimizer,
    IterativeLQR,
    ShootingOptimizer,
    register_optimizer,
    get_optimizer,
    available_optimizers,
)
from .mpc import (
    MpcController,
    MpcPhase,
    CycleOutput,
    MpcSettings,
    HorizonMode,
    TailExtension,
    WarmStartTransformer,
    MpcStatistics,
)
from .exceptions import (
    MpcError,
    DimensionError,
    InvalidInputError,
    ConfigurationError,
    OrderingViolationError,
    TerminalStateError,
    OptimizerError,
    NumericalError,
)

__all__ = [
    # Version
    "__version__",

    # Data model
    "Policy",
    "Trajectory",
    "OptimizerResult",
    "Status",

    # Problem definition
    "LinearSystem",
    "ContinuousLinearSystem",
    "second_order_system",
    "double_integrator",
    "BoxConstraints",
    "QuadraticCost",
    "OptConProblem",

    # Optimizers
    "TrajectoryOptimizer",
    "IterativeLQR",
    "ShootingOptimizer",
    "register_optimizer",
    "get_optimizer",
    "available_optimizers",

    # MPC loop
    "MpcController",
    "MpcPhase",
    "CycleOutput",
    "MpcSettings",
    "HorizonMode",
    "TailExtension",
    "WarmStartTransformer",
    "MpcStatistics",

    # Exceptions
    "MpcError",
    "DimensionError",
    "InvalidInputError",
    "ConfigurationError",
    "OrderingViolationError",
    "TerminalStateError",
    "OptimizerError",
    "NumericalError",
]


def info() -> str:
    """Return information about the mpcloop installation."""
    import platform

    import numpy
    import scipy

    lines = [
        f"mpcloop version: {__version__}",
        f"Python version: {platform.python_version()}",
        f"Platform: {platform.platform()}",
        f"NumPy version: {numpy.__version__}",
        f"SciPy version: {scipy.__version__}",
        f"Optimizers: {', '.join(available_optimizers())}",
    ]
    return "\n".join(lines)
