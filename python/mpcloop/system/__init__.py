"""
mpcloop System Modeling
=======================

Plant dynamics, costs, bounds and the optimal control problem container
consumed by the trajectory optimizers.

Quick Start
-----------
>>> from mpcloop.system import (
...     OptConProblem, QuadraticCost, second_order_system
... )
>>>
>>> system = second_order_system(w_n=0.1, zeta=5.0)
>>> cost = QuadraticCost(Q=np.diag([10, 1]), R=np.array([[0.1]]))
>>> problem = OptConProblem(system, cost, time_horizon=3.0)
"""

from .dynamics import (
    LinearSystem,
    ContinuousLinearSystem,
    second_order_system,
    double_integrator,
)
from .constraints import BoxConstraints
from .cost import QuadraticCost
from .problem import OptConProblem

__all__ = [
    # Dynamics
    "LinearSystem",
    "ContinuousLinearSystem",
    "second_order_system",
    "double_integrator",
    # Constraints
    "BoxConstraints",
    # Cost
    "QuadraticCost",
    # Problem
    "OptConProblem",
]
