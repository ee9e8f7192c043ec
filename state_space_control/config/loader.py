# state_space_control/config/loader.py
"""
Control configuration loader.

Load a plant model and its gains from YAML or JSON files and build the
controller, simulation and closed-loop runner from them.

Gains are either explicit matrices or design recipes resolved with
state_space_control.control.design:

    gains:
      K: {lqr: {Q: [[100, 0], [0, 1]], R: [[1]]}}   # or {poles: [-5, -6]}
      L: {poles: [-20, -25]}                        # or {lqe: {Q: ..., R: ...}}
      I: {ki: 5.0}

Example:
    cfg = ControlConfig.from_file("configs/mass_spring_damper.yaml")
    runner = cfg.create_runner()
    runner.run(cfg.duration_s)
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import yaml

from ..control.controller import StateSpaceController
from ..control.design import integral_gain, lqe, lqr, observer_gains, pole_placement
from ..control.model import StateSpaceModel
from ..control.simulation import Simulation
from ..logger.logger import JsonlLogger
from ..research.runner import ClosedLoopRunner, GaussianNoise

log = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a control configuration is malformed."""


# =============================================================================
# File I/O
# =============================================================================

def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a YAML configuration file."""
    with open(path, "r") as f:
        return yaml.safe_load(f)


def load_json(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a JSON configuration file."""
    with open(path, "r") as f:
        return json.load(f)


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration from YAML or JSON file."""
    path = Path(path)
    try:
        if path.suffix in (".yaml", ".yml"):
            data = load_yaml(path)
        elif path.suffix == ".json":
            data = load_json(path)
        else:
            # YAML is a superset of JSON
            data = load_yaml(path)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"{path}: cannot parse: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    return data


def save_config(data: Dict[str, Any], path: Union[str, Path]) -> None:
    """Save configuration as JSON or YAML depending on the suffix."""
    path = Path(path)
    with open(path, "w") as f:
        if path.suffix == ".json":
            json.dump(data, f, indent=2)
        else:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# =============================================================================
# Gain recipes
# =============================================================================

def _poles(values: Any) -> np.ndarray:
    # YAML has no complex literal, accept "-5+5j" strings
    return np.array([complex(v) if isinstance(v, str) else v for v in values], dtype=np.complex128)


def _recipe(spec: Dict[str, Any], key: str) -> Dict[str, Any]:
    params = spec[key]
    if not isinstance(params, dict):
        raise ConfigError(f"'{key}' recipe expects a mapping, got {type(params).__name__}")
    return params


def resolve_regulator_gain(spec: Any, model: StateSpaceModel) -> np.ndarray:
    """K from a matrix, {lqr: {Q, R}} or {poles: [...]}."""
    if not isinstance(spec, dict):
        return np.atleast_2d(np.asarray(spec, dtype=np.float64))
    if "lqr" in spec:
        params = _recipe(spec, "lqr")
        K, _, E = lqr(model.A, model.B, params["Q"], params["R"], params.get("N"))
        log.debug("LQR closed-loop poles: %s", E)
        return K
    if "poles" in spec:
        return pole_placement(model.A, model.B, _poles(spec["poles"]))
    raise ConfigError(f"Unknown regulator gain recipe: {sorted(spec)}")


def resolve_estimator_gain(spec: Any, model: StateSpaceModel) -> np.ndarray:
    """L from a matrix, {poles: [...]} or {lqe: {Q, R}}."""
    if not isinstance(spec, dict):
        return np.atleast_2d(np.asarray(spec, dtype=np.float64))
    if "poles" in spec:
        return observer_gains(model.A, model.C, _poles(spec["poles"]))
    if "lqe" in spec:
        params = _recipe(spec, "lqe")
        L, _, _ = lqe(model.A, model.C, params["Q"], params["R"])
        return L
    raise ConfigError(f"Unknown estimator gain recipe: {sorted(spec)}")


def resolve_integral_gain(spec: Any, model: StateSpaceModel) -> np.ndarray:
    """I from a matrix or {ki: scalar-or-list}."""
    if not isinstance(spec, dict):
        return np.atleast_2d(np.asarray(spec, dtype=np.float64))
    if "ki" in spec:
        return integral_gain(model.inputs, model.outputs, spec["ki"])
    raise ConfigError(f"Unknown integral gain recipe: {sorted(spec)}")


# =============================================================================
# Control configuration
# =============================================================================

class ControlConfig:
    """
    Complete control configuration.

    Attributes:
        name: Configuration name
        description: Free-form description
        model: Plant model
        K, L, I: Resolved gains (L and I may be None: left at zero)
        reference: Reference vector, or None
        initial_state: Initial plant state, or None
        dt: Control period in seconds
        duration_s: Default run length
        disturbance: Constant input disturbance for simulation, or None
        noise_std: Measurement noise standard deviation for simulation
        metadata: Additional metadata
    """

    def __init__(self, data: Dict[str, Any], path: Optional[Path] = None):
        self.path = path
        self.data = data

        default_name = path.stem if path is not None else "control"
        self.name = data.get("name", default_name)
        self.description = data.get("description", "")
        self.metadata = data.get("metadata", {})

        if "model" not in data:
            raise ConfigError(f"{self.name}: missing 'model' section")
        try:
            self.model = StateSpaceModel.from_dict(data["model"])
        except ValueError as e:
            raise ConfigError(f"{self.name}: invalid model: {e}") from e

        gains = self._section(data, "gains")
        if "K" not in gains:
            raise ConfigError(f"{self.name}: missing regulator gain 'gains.K'")
        try:
            self.K = resolve_regulator_gain(gains["K"], self.model)
            self.L = resolve_estimator_gain(gains["L"], self.model) if "L" in gains else None
            self.I = resolve_integral_gain(gains["I"], self.model) if "I" in gains else None
        except ConfigError as e:
            raise ConfigError(f"{self.name}: {e}") from e
        except KeyError as e:
            raise ConfigError(f"{self.name}: gain recipe is missing {e}") from e
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{self.name}: invalid gains: {e}") from e

        self.reference = data.get("reference")
        self.initial_state = data.get("initial_state")

        sim = self._section(data, "simulation")
        try:
            self.dt = float(sim.get("dt", 0.01))
            self.duration_s = float(sim.get("duration_s", 5.0))
            self.noise_std = float(sim.get("noise_std", 0.0))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{self.name}: invalid simulation settings: {e}") from e
        if not self.dt > 0:
            raise ConfigError(f"{self.name}: simulation.dt must be positive, got {self.dt}")
        self.disturbance = sim.get("disturbance")
        self.seed = sim.get("seed")

    def _section(self, data: Dict[str, Any], key: str) -> Dict[str, Any]:
        # An empty YAML section parses as None
        section = data.get(key) or {}
        if not isinstance(section, dict):
            raise ConfigError(f"{self.name}: '{key}' must be a mapping, got {type(section).__name__}")
        return section

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "ControlConfig":
        path = Path(config_path)
        return cls(load_config(path), path)

    def create_controller(self) -> StateSpaceController:
        """Build and initialise a controller for this configuration."""
        try:
            ctrl = StateSpaceController(self.model, K=self.K, L=self.L, I=self.I)
            if self.reference is not None:
                ctrl.r = self.reference
        except ValueError as e:
            raise ConfigError(f"{self.name}: {e}") from e

        ctrl.initialise()
        return ctrl

    def create_simulation(self) -> Simulation:
        """Build a plant simulation starting at the configured initial state."""
        try:
            return Simulation(self.model, x0=self.initial_state)
        except ValueError as e:
            raise ConfigError(f"{self.name}: {e}") from e

    def create_runner(self, recorder: Optional[JsonlLogger] = None) -> ClosedLoopRunner:
        """Build a closed-loop runner with a fresh controller and simulation."""
        noise = GaussianNoise(std=self.noise_std, seed=self.seed) if self.noise_std > 0 else None
        try:
            return ClosedLoopRunner(
                self.create_controller(),
                self.create_simulation(),
                dt=self.dt,
                recorder=recorder,
                disturbance=self.disturbance,
                measurement_noise=noise,
            )
        except ValueError as e:
            if isinstance(e, ConfigError):
                raise
            raise ConfigError(f"{self.name}: {e}") from e


def load_control_config(config_path: Union[str, Path]) -> ControlConfig:
    """
    Load a control configuration from a YAML or JSON file.

    Raises:
        ConfigError: if the file does not describe a valid model and gains
    """
    return ControlConfig.from_file(config_path)


# =============================================================================
# Config Templates
# =============================================================================

def create_default_config(name: str = "mass_spring_damper") -> Dict[str, Any]:
    """Default configuration: position control of a mass-spring-damper."""
    return {
        "name": name,
        "description": "Mass-spring-damper, position measured, force actuated",
        "model": {
            "A": [[0.0, 1.0], [-10.0, -0.5]],
            "B": [[0.0], [1.0]],
            "C": [[1.0, 0.0]],
            "D": [[0.0]],
        },
        "gains": {
            "K": {"lqr": {"Q": [[100.0, 0.0], [0.0, 1.0]], "R": [[0.1]]}},
            "L": {"poles": [-20.0, -25.0]},
        },
        "reference": [1.0],
        "initial_state": [0.0, 0.0],
        "simulation": {
            "dt": 0.001,
            "duration_s": 5.0,
        },
        "metadata": {
            "author": "",
            "version": "1.0",
        },
    }


def generate_config_template(output_path: Union[str, Path]) -> Dict[str, Any]:
    """Write the default configuration to output_path and return it."""
    config = create_default_config()
    save_config(config, output_path)
    return config
