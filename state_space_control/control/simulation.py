"""
Open-loop plant simulation for exercising a controller without hardware.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.typing import ArrayLike

from .controller import _as_vector, _copy_into
from .model import StateSpaceModel


class Simulation:
    """
    Forward-Euler integration of dx/dt = Ax + Bu with output y = Cx.

    The state x is owned by the simulation and only changed by step() and
    reset(). The model is borrowed and must outlive the simulation.

    Example:
        sim = Simulation(model)
        y = sim.step(u, dt=0.01)
    """

    def __init__(self, model: StateSpaceModel, x0: Optional[ArrayLike] = None) -> None:
        self.model = model
        self._x = np.zeros(model.num_states)
        self._dx = np.zeros(model.num_states)
        self._bu = np.zeros(model.num_states)
        if x0 is not None:
            self.x = x0

    @property
    def x(self) -> np.ndarray:
        return self._x

    @x.setter
    def x(self, value: ArrayLike) -> None:
        _copy_into(self._x, value, "x")

    @property
    def output(self) -> np.ndarray:
        """Current output C*x, without advancing the state."""
        return self.model.C @ self._x

    def step(self, u: ArrayLike, dt: float) -> np.ndarray:
        """
        Advance the plant state by one Euler step and return the new output.

        Args:
            u: Control input (U)
            dt: Step length in seconds

        Returns:
            Output C*x after the step (Y)
        """
        u = _as_vector(u, self.model.inputs, "u")

        np.matmul(self.model.A, self._x, out=self._dx)
        np.matmul(self.model.B, u, out=self._bu)
        self._dx += self._bu
        self._dx *= dt
        self._x += self._dx

        return self.model.C @ self._x

    def reset(self, x0: Optional[ArrayLike] = None) -> None:
        """Return to x0, or to the zero state."""
        self._x.fill(0.0)
        if x0 is not None:
            self.x = x0
