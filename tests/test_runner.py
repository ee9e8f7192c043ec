"""Tests for the closed-loop runner."""

import json
from pathlib import Path

import numpy as np
import pytest

from state_space_control.control import Simulation, StateSpaceController, integral_gain
from state_space_control.logger.logger import JsonlLogger
from state_space_control.research import ClosedLoopRunner, GaussianNoise


@pytest.fixture
def scalar_loop(scalar_model):
    ctrl = StateSpaceController(scalar_model, K=[[2.0]])
    ctrl.initialise()
    ctrl.r = [1.0]
    return ctrl, Simulation(scalar_model)


class TestClosedLoopRunner:
    """Tests for ClosedLoopRunner."""

    def test_run_tracks_reference(self, scalar_loop):
        """Test the runner reproduces the scalar tracking scenario."""
        ctrl, sim = scalar_loop
        runner = ClosedLoopRunner(ctrl, sim, dt=0.01)

        history = runner.run(5.0)

        assert len(history) == 500
        assert runner.time == pytest.approx(5.0)
        assert abs(runner.outputs()[-1, 0] - 1.0) < 1e-3

    def test_history_rows(self, scalar_loop):
        """Test each row carries the loop signals as copies."""
        ctrl, sim = scalar_loop
        runner = ClosedLoopRunner(ctrl, sim, dt=0.01)
        runner.run(0.05)

        first, last = runner.history[0], runner.history[-1]
        assert set(first) == {"time", "y", "y_meas", "u", "x", "x_hat", "w_hat", "r"}
        assert first["u"] is not ctrl.u
        assert not np.array_equal(first["x"], last["x"])
        assert np.allclose(runner.times(), [0.01, 0.02, 0.03, 0.04, 0.05])
        assert runner.outputs().shape == (5, 1)

    def test_prime_does_not_integrate(self, scalar_loop):
        """Test prime computes u from the current estimate only."""
        ctrl, sim = scalar_loop
        runner = ClosedLoopRunner(ctrl, sim, dt=0.01)

        u = runner.prime()

        assert np.allclose(u, [3.0])
        assert np.all(ctrl.x_hat == 0)
        assert runner.time == 0.0
        assert runner.history == []

    def test_disturbance_offset_without_integral(self, scalar_loop):
        """Test a constant input disturbance leaves a steady-state offset."""
        ctrl, sim = scalar_loop
        runner = ClosedLoopRunner(ctrl, sim, dt=0.01, disturbance=[0.5])
        runner.run(10.0)

        assert runner.outputs()[-1, 0] == pytest.approx(1.5, abs=1e-3)

    def test_integral_action_rejects_disturbance(self, scalar_loop):
        """Test integral action removes the offset."""
        ctrl, sim = scalar_loop
        ctrl.I = integral_gain(1, 1, 2.0)
        runner = ClosedLoopRunner(ctrl, sim, dt=0.01, disturbance=[0.5])
        runner.run(15.0)

        assert abs(runner.outputs()[-1, 0] - 1.0) < 1e-3
        # The integrator holds the correction the estimator cannot see
        assert ctrl.w_hat[0] == pytest.approx(-1.5, abs=1e-2)

    def test_measurement_noise_seeded(self, scalar_model):
        """Test that seeded noise gives repeatable runs."""
        outputs = []
        for _ in range(2):
            ctrl = StateSpaceController(scalar_model, K=[[2.0]], L=[[5.0]])
            ctrl.initialise()
            ctrl.r = [1.0]
            runner = ClosedLoopRunner(
                ctrl,
                Simulation(scalar_model),
                dt=0.01,
                measurement_noise=GaussianNoise(std=0.05, seed=3),
            )
            runner.run(1.0)
            outputs.append(runner.outputs())

        assert np.array_equal(outputs[0], outputs[1])
        assert not np.array_equal(runner.history[0]["y_meas"], runner.history[0]["y"])

    def test_reset(self, scalar_loop):
        """Test reset clears history and both states."""
        ctrl, sim = scalar_loop
        runner = ClosedLoopRunner(ctrl, sim, dt=0.01)
        runner.run(0.5)

        runner.reset()

        assert runner.history == []
        assert runner.time == 0.0
        assert np.all(sim.x == 0)
        assert np.all(ctrl.x_hat == 0)
        assert np.allclose(ctrl.r, [1.0])

    def test_metrics_per_output(self, scalar_loop):
        """Test metrics are computed against the reference."""
        ctrl, sim = scalar_loop
        runner = ClosedLoopRunner(ctrl, sim, dt=0.01)
        runner.run(5.0)

        metrics = runner.metrics()

        assert len(metrics) == 1
        # Closed-loop pole at -3: no overshoot, 2% settling near 1.3 s
        assert metrics[0].overshoot_percent == 0.0
        assert metrics[0].settling_time_s == pytest.approx(-np.log(0.02) / 3.0, abs=0.05)
        assert metrics[0].steady_state_error < 1e-3

    def test_recorder_writes_ticks(self, scalar_loop, tmp_path: Path):
        """Test every tick is written to the JSONL recorder."""
        ctrl, sim = scalar_loop
        path = tmp_path / "run.jsonl"

        with JsonlLogger(str(path)) as recorder:
            ClosedLoopRunner(ctrl, sim, dt=0.01, recorder=recorder).run(0.03)

        rows = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
        assert len(rows) == 3
        assert all(row["event"] == "tick" for row in rows)
        assert rows[0]["u"] == [pytest.approx(3.0)]
        assert rows[-1]["time"] == pytest.approx(0.03)

    def test_disturbance_shape_checked(self, scalar_loop):
        """Test the disturbance must match the input count."""
        ctrl, sim = scalar_loop
        with pytest.raises(ValueError):
            ClosedLoopRunner(ctrl, sim, disturbance=[1.0, 2.0])
