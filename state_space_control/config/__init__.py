from .loader import (
    ConfigError,
    ControlConfig,
    create_default_config,
    generate_config_template,
    load_config,
    load_control_config,
    save_config,
)

__all__ = [
    "ConfigError",
    "ControlConfig",
    "create_default_config",
    "generate_config_template",
    "load_config",
    "load_control_config",
    "save_config",
]
