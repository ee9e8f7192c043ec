# state_space_control/research/runner.py
"""
Closed-loop simulation runner.

Wires a StateSpaceController to a Simulation standing in for the plant, in
the order a real control loop runs: measure, update, actuate, wait dt.

Includes:
- Gaussian measurement noise for exercising the estimator
- A constant input disturbance for exercising integral action
- Per-tick history and optional JSONL recording
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
from numpy.typing import ArrayLike

from ..control.controller import StateSpaceController, _as_vector
from ..control.simulation import Simulation
from ..logger.logger import JsonlLogger
from .metrics import ControlMetrics, analyze_step_response

log = logging.getLogger(__name__)


@dataclass
class GaussianNoise:
    """Gaussian measurement noise model."""
    mean: float = 0.0
    std: float = 0.0
    seed: Optional[int] = None
    _rng: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._rng = np.random.default_rng(self.seed)

    def sample(self, size: int) -> np.ndarray:
        if self.std <= 0:
            return np.full(size, self.mean)
        return self._rng.normal(self.mean, self.std, size)

    def add_to(self, value: np.ndarray) -> np.ndarray:
        return value + self.sample(value.shape[0])


class ClosedLoopRunner:
    """
    Runs a controller against a simulated plant.

    Each step():
      1. measures y = C*x from the simulation (plus optional noise)
      2. calls controller.update(y, dt)
      3. applies u (plus optional disturbance) to simulation.step(u, dt)
      4. appends a history row and writes it to the recorder, if any

    A warning is logged on every tick where the plant state norm exceeds
    divergence_limit (None disables the check). Attach a RepeatFilter to the
    handlers, as LogBundle does, to see it once per run.
    """

    def __init__(
        self,
        controller: StateSpaceController,
        simulation: Simulation,
        dt: float = 0.01,
        recorder: Optional[JsonlLogger] = None,
        disturbance: Optional[ArrayLike] = None,
        measurement_noise: Optional[GaussianNoise] = None,
        divergence_limit: Optional[float] = 1e6,
    ):
        if not dt > 0:
            raise ValueError(f"dt must be positive, got {dt}")
        if controller.model is not simulation.model:
            log.warning("Controller and simulation use different model instances")

        self.controller = controller
        self.simulation = simulation
        self.dt = float(dt)
        self.recorder = recorder
        self.measurement_noise = measurement_noise
        self.divergence_limit = divergence_limit

        m = simulation.model.inputs
        self.disturbance = np.zeros(m) if disturbance is None else _as_vector(disturbance, m, "disturbance")

        self.time = 0.0
        self.history: List[Dict[str, Any]] = []
        self._y0 = simulation.output.copy()

    def measure(self) -> np.ndarray:
        y = self.simulation.output
        if self.measurement_noise is not None:
            y = self.measurement_noise.add_to(y)
        return y

    def prime(self) -> np.ndarray:
        """Compute the first control input without integrating (dt = 0)."""
        return self.controller.update(self.measure(), 0.0).copy()

    def step(self) -> Dict[str, Any]:
        """Run one control tick."""
        ctrl = self.controller

        y_meas = self.measure()
        u = ctrl.update(y_meas, self.dt)
        y = self.simulation.step(u + self.disturbance, self.dt)
        self.time += self.dt

        if self.divergence_limit is not None:
            norm = float(np.linalg.norm(self.simulation.x))
            # NaN fails the comparison too
            if not norm <= self.divergence_limit:
                log.warning("Plant state diverging: |x|=%.3g at t=%.3f s", norm, self.time)

        row = {
            "time": self.time,
            "y": y,
            "y_meas": y_meas,
            "u": u.copy(),
            "x": self.simulation.x.copy(),
            "x_hat": ctrl.x_hat.copy(),
            "w_hat": ctrl.w_hat.copy(),
            "r": ctrl.r.copy(),
        }
        self.history.append(row)

        if self.recorder is not None:
            self.recorder.write("tick", **row)

        return row

    def run(self, duration_s: float) -> List[Dict[str, Any]]:
        """Run the loop for the given simulated duration."""
        n_steps = int(round(duration_s / self.dt))
        log.info("Running closed loop: %d steps, dt=%.4g s", n_steps, self.dt)

        for _ in range(n_steps):
            self.step()

        if self.history:
            log.info("Finished at t=%.3f s, y=%s", self.time, self.history[-1]["y"].tolist())
        return self.history

    def reset(self, x0: Optional[ArrayLike] = None) -> None:
        """Reset plant, controller state, clock and history (gains are kept)."""
        self.simulation.reset(x0)
        self.controller.reset()
        self.time = 0.0
        self.history = []
        self._y0 = self.simulation.output.copy()

    def times(self) -> np.ndarray:
        return np.array([row["time"] for row in self.history])

    def outputs(self) -> np.ndarray:
        """Plant outputs, shape (steps, Y)."""
        if not self.history:
            return np.zeros((0, self.simulation.model.outputs))
        return np.vstack([row["y"] for row in self.history])

    def metrics(self) -> List[ControlMetrics]:
        """Step-response metrics per output channel against the current reference."""
        t = self.times()
        ys = self.outputs()
        r = self.controller.r
        return [
            analyze_step_response(t, ys[:, i], setpoint=float(r[i]), initial=float(self._y0[i]))
            for i in range(ys.shape[1])
        ]
