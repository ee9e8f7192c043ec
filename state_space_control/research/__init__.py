# state_space_control/research/__init__.py
"""
Offline tools for exercising controllers without hardware.

Modules:
- runner: closed-loop simulation of a controller against a simulated plant
- metrics: tracking error and step-response metrics

Example usage:
    from state_space_control.research import ClosedLoopRunner
    runner = ClosedLoopRunner(ctrl, Simulation(model), dt=0.01)
    runner.run(5.0)
    print(runner.metrics()[0].settling_time_s)
"""

from .metrics import (
    ControlMetrics,
    analyze_step_response,
    compute_tracking_error,
)
from .runner import ClosedLoopRunner, GaussianNoise

__all__ = [
    "ControlMetrics",
    "analyze_step_response",
    "compute_tracking_error",
    "ClosedLoopRunner",
    "GaussianNoise",
]
