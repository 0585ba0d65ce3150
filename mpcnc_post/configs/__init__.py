"""Run configuration loading and validation."""

from mpcnc_post.configs.loader import (
    ConfigError,
    MachineParameters,
    RunConfig,
    ToolChangePosition,
    Workpiece,
    load_config,
)

__all__ = [
    "ConfigError",
    "MachineParameters",
    "RunConfig",
    "ToolChangePosition",
    "Workpiece",
    "load_config",
]
