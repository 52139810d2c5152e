"""
mpcloop Trajectory Optimizers
=============================

Pluggable backends that refine an initial-guess policy into a locally
optimal policy and predicted state trajectory.

Backends
--------
IterativeLQR ('ilqr')
    Riccati-based iterative LQR, returns feed-forward and feedback gains
ShootingOptimizer ('shooting')
    Single shooting with SciPy L-BFGS-B, feed-forward only

Custom backends subclass TrajectoryOptimizer and register a name:

>>> @register_optimizer("my_solver")
... class MySolver(TrajectoryOptimizer):
...     def solve(self, problem, initial_guess, max_iterations):
...         ...
>>> optimizer = get_optimizer("my_solver")
"""

from .base import (
    TrajectoryOptimizer,
    register_optimizer,
    get_optimizer,
    available_optimizers,
    rollout,
)
from .ilqr import IterativeLQR
from .shooting import ShootingOptimizer

__all__ = [
    "TrajectoryOptimizer",
    "register_optimizer",
    "get_optimizer",
    "available_optimizers",
    "rollout",
    "IterativeLQR",
    "ShootingOptimizer",
]
