# tests/conftest.py

from pathlib import Path

import numpy as np
import pytest

from state_space_control.control import (
    StateSpaceController,
    StateSpaceModel,
    lqr,
    observer_gains,
)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "configs"


# ============== Models ==============

@pytest.fixture
def scalar_model():
    """dx/dt = -x + u, y = x"""
    return StateSpaceModel([[-1.0]], [[1.0]], [[1.0]], [[0.0]])


@pytest.fixture
def msd_model():
    """Mass-spring-damper, position measured."""
    A = np.array([[0.0, 1.0], [-10.0, -0.5]])
    B = np.array([[0.0], [1.0]])
    C = np.array([[1.0, 0.0]])
    return StateSpaceModel(A, B, C)


# ============== Controllers ==============

@pytest.fixture
def msd_controller(msd_model):
    """LQR regulator with an observer 4-5x faster, initialised."""
    ctrl = StateSpaceController(msd_model)
    ctrl.K, _, _ = lqr(msd_model.A, msd_model.B, np.diag([100.0, 1.0]), [[0.1]])
    ctrl.L = observer_gains(msd_model.A, msd_model.C, [-20.0, -25.0])
    ctrl.initialise()
    return ctrl


@pytest.fixture
def config_dir() -> Path:
    return CONFIG_DIR
