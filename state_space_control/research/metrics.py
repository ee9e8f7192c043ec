# state_space_control/research/metrics.py
"""
Closed-loop performance metrics.

Summarizes a recorded output trace against its reference: tracking error
and step-response characteristics (rise time, settling time, overshoot,
steady-state error).
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np


@dataclass
class ControlMetrics:
    """Control loop performance metrics for one output channel."""
    # Tracking error
    rmse: float = 0.0
    mae: float = 0.0
    max_error: float = 0.0

    # Step response characteristics
    rise_time_s: Optional[float] = None  # 10% to 90%
    settling_time_s: Optional[float] = None
    overshoot_percent: Optional[float] = None
    steady_state_error: Optional[float] = None

    oscillation_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_tracking_error(
    setpoints: Sequence[float],
    actuals: Sequence[float],
) -> Tuple[float, float, float]:
    """
    Compute tracking error metrics.

    Returns: (rmse, mae, max_error)
    """
    if len(setpoints) != len(actuals) or len(setpoints) == 0:
        return (0.0, 0.0, 0.0)

    errors = np.asarray(setpoints, dtype=np.float64) - np.asarray(actuals, dtype=np.float64)
    rmse = float(np.sqrt(np.mean(errors ** 2)))
    mae = float(np.mean(np.abs(errors)))
    max_error = float(np.max(np.abs(errors)))

    return (rmse, mae, max_error)


def analyze_step_response(
    times_s: Sequence[float],
    values: Sequence[float],
    setpoint: float,
    initial: float = 0.0,
    settling_threshold: float = 0.02,  # 2% band
) -> ControlMetrics:
    """
    Analyze step response characteristics.

    Args:
        times_s: Time values in seconds
        values: Response values
        setpoint: Target value of the step
        initial: Value before the step
        settling_threshold: Settling band as a fraction of the step size

    Returns an empty ControlMetrics when the trace is too short or the step
    size is zero.
    """
    if len(times_s) < 2 or len(values) < 2:
        return ControlMetrics()

    t = np.asarray(times_s, dtype=np.float64)
    y = np.asarray(values, dtype=np.float64)
    step_size = setpoint - initial

    if abs(step_size) < 1e-9:
        return ControlMetrics()

    y_norm = (y - initial) / step_size

    rise_time_s = None
    above_10 = np.nonzero(y_norm >= 0.1)[0]
    above_90 = np.nonzero(y_norm >= 0.9)[0]
    if above_10.size and above_90.size:
        rise_time_s = float(t[above_90[0]] - t[above_10[0]])

    peak = float(np.max(y_norm))
    overshoot_percent = (peak - 1.0) * 100.0 if peak > 1.0 else 0.0

    # Last sample outside the band; settled from the next one on
    settling_time_s = None
    outside = np.nonzero(np.abs(y_norm - 1.0) > settling_threshold)[0]
    if outside.size == 0:
        settling_time_s = 0.0
    elif outside[-1] + 1 < len(t):
        settling_time_s = float(t[outside[-1] + 1] - t[0])

    tail = y_norm[-max(1, len(y_norm) // 10):]
    steady_state_error = abs(1.0 - float(np.mean(tail))) * abs(step_size)

    # Direction changes of the response, two per oscillation
    dy = np.diff(y_norm)
    sign_changes = int(np.sum(np.diff(np.sign(dy[dy != 0])) != 0))

    rmse, mae, max_error = compute_tracking_error(np.full_like(y, setpoint), y)

    return ControlMetrics(
        rmse=rmse,
        mae=mae,
        max_error=max_error,
        rise_time_s=rise_time_s,
        settling_time_s=settling_time_s,
        overshoot_percent=overshoot_percent,
        steady_state_error=steady_state_error,
        oscillation_count=sign_changes // 2,
    )
