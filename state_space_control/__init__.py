"""
Observer-based state-feedback control for linear time-invariant plants.

Packages:
- control: plant model, controller, plant simulation, gain design
- config: YAML/JSON configuration of a plant and its gains
- research: closed-loop runner and response metrics
- logger: rotating text log and JSONL tick recorder
"""

from .control import Simulation, StateSpaceController, StateSpaceModel

__version__ = "0.1.0"

__all__ = ["Simulation", "StateSpaceController", "StateSpaceModel", "__version__"]
