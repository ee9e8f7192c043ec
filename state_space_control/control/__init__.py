"""
State-space control core.

Provides the plant model container, the observer-based state-feedback
controller, an open-loop plant simulation, and scipy-based gain design.

Example usage:
    from state_space_control.control import (
        StateSpaceModel, StateSpaceController, Simulation, lqr, observer_gains,
    )

    A = np.array([[0, 1], [-10, -0.5]])
    B = np.array([[0], [1]])
    C = np.array([[1, 0]])
    model = StateSpaceModel(A, B, C)

    ctrl = StateSpaceController(model)
    ctrl.K, _, _ = lqr(A, B, np.diag([100, 1]), [[1]])
    ctrl.L = observer_gains(A, C, [-20, -25])
    ctrl.initialise()

    sim = Simulation(model)
    ctrl.r = [1.0]
    y = sim.output
    for _ in range(500):
        u = ctrl.update(y, 0.01)
        y = sim.step(u, 0.01)

See state_space_control.control.examples for more detailed examples.
"""

from .model import StateSpaceModel
from .controller import StateSpaceController
from .simulation import Simulation
from .design import (
    lqr,
    pole_placement,
    observer_gains,
    lqe,
    check_stability,
    integral_gain,
)

__all__ = [
    # Core
    "StateSpaceModel",
    "StateSpaceController",
    "Simulation",
    # Design
    "lqr",
    "lqe",
    "pole_placement",
    "observer_gains",
    "check_stability",
    "integral_gain",
]
