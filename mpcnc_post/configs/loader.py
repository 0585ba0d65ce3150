"""Configuration loader for the MPCNC post-processor.

Loads and validates ``defaults.yaml`` into typed, frozen dataclasses.
The installation defaults (safe height, rapid feed, probe-plate
thickness, tool-change position) come from the config and can be
overridden per run by the operator or the command line.

Feed rates are stored in **mm/min** throughout, the unit of the G-code
``F`` word.

Usage::

    from mpcnc_post.configs.loader import load_config
    cfg = load_config()                        # default path
    cfg = load_config("/custom/defaults.yaml") # explicit path
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from mpcnc_post.utils.fs import load_yaml

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# ---------------------------------------------------------------------------
# Dataclasses -- mirror the YAML structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MachineParameters:
    """Per-run machine settings shared by every generator.

    Parameters
    ----------
    safe_height : float
        Z height in mm that clears the workpiece and clamps.
    move_speed : float
        Rapid travel feed in mm/min.
    probe_offset : float
        Probe-plate thickness in mm.  Constant per installation.
    """

    safe_height: float
    move_speed: float
    probe_offset: float


@dataclass(frozen=True)
class ToolChangePosition:
    """Machine position (mm) the bit is parked at for a manual change."""

    x: float = 400.0
    y: float = 0.0
    z: float = 40.0


@dataclass(frozen=True)
class Workpiece:
    """Stock dimensions traced by the alignment outline (mm)."""

    width: float
    depth: float


@dataclass(frozen=True)
class RunConfig:
    """Complete configuration loaded from ``defaults.yaml``.

    All linear dimensions are in **millimetres**.
    """

    machine: MachineParameters
    workpiece: Workpiece
    tool_change: ToolChangePosition = field(default_factory=ToolChangePosition)
    output_prefix: str = "MPCNC-"

    def with_overrides(self, **overrides: float | None) -> RunConfig:
        """Return a copy with the non-``None`` overrides applied.

        Accepted keys: ``safe_height``, ``move_speed``, ``probe_offset``,
        ``width``, ``depth``, ``tool_x``, ``tool_y``, ``tool_z``.

        Raises
        ------
        ConfigError
            On an unknown key or if the result fails validation.
        """
        machine_keys = {"safe_height", "move_speed", "probe_offset"}
        workpiece_keys = {"width", "depth"}
        tool_keys = {"tool_x": "x", "tool_y": "y", "tool_z": "z"}

        unknown = set(overrides) - machine_keys - workpiece_keys - set(tool_keys)
        if unknown:
            raise ConfigError(f"Unknown override(s): {sorted(unknown)}")

        given = {k: float(v) for k, v in overrides.items() if v is not None}
        machine = replace(
            self.machine,
            **{k: v for k, v in given.items() if k in machine_keys},
        )
        workpiece = replace(
            self.workpiece,
            **{k: v for k, v in given.items() if k in workpiece_keys},
        )
        tool_change = replace(
            self.tool_change,
            **{tool_keys[k]: v for k, v in given.items() if k in tool_keys},
        )
        cfg = replace(
            self, machine=machine, workpiece=workpiece, tool_change=tool_change,
        )
        _validate_config(cfg)
        return cfg


# ---------------------------------------------------------------------------
# Internal parsing helpers
# ---------------------------------------------------------------------------


def _number(section: str, data: dict[str, Any], key: str) -> float:
    """Read a required numeric field, rejecting bools and strings."""
    if key not in data:
        raise ConfigError(f"{section}.{key} is required")
    raw = data[key]
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ConfigError(
            f"{section}.{key} must be a number, got {raw!r}"
        )
    return float(raw)


def _parse_machine(data: dict[str, Any]) -> MachineParameters:
    """Parse the ``machine`` section."""
    return MachineParameters(
        safe_height=_number("machine", data, "safe_height_mm"),
        move_speed=_number("machine", data, "move_speed_mm_min"),
        probe_offset=_number("machine", data, "probe_offset_mm"),
    )


def _parse_tool_change(data: dict[str, Any] | None) -> ToolChangePosition:
    """Parse the optional ``tool_change`` section.

    Missing keys fall back to the dataclass defaults.
    """
    if not data:
        return ToolChangePosition()
    defaults = ToolChangePosition()
    return ToolChangePosition(
        x=_number("tool_change", data, "x_mm") if "x_mm" in data else defaults.x,
        y=_number("tool_change", data, "y_mm") if "y_mm" in data else defaults.y,
        z=_number("tool_change", data, "z_mm") if "z_mm" in data else defaults.z,
    )


def _parse_workpiece(data: dict[str, Any]) -> Workpiece:
    """Parse the ``workpiece`` section."""
    return Workpiece(
        width=_number("workpiece", data, "width_mm"),
        depth=_number("workpiece", data, "depth_mm"),
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate_config(cfg: RunConfig) -> None:
    """Validate cross-field consistency.

    Raises
    ------
    ConfigError
        On any invalid combination.
    """
    numbers = {
        "safe_height": cfg.machine.safe_height,
        "move_speed": cfg.machine.move_speed,
        "probe_offset": cfg.machine.probe_offset,
        "width": cfg.workpiece.width,
        "depth": cfg.workpiece.depth,
        "tool_x": cfg.tool_change.x,
        "tool_y": cfg.tool_change.y,
        "tool_z": cfg.tool_change.z,
    }
    for name, value in numbers.items():
        if not math.isfinite(value):
            raise ConfigError(f"{name} must be a finite number, got {value}")

    m = cfg.machine
    if m.move_speed <= 0:
        raise ConfigError(f"move_speed must be > 0 mm/min, got {m.move_speed}")
    if m.probe_offset < 0:
        raise ConfigError(f"probe_offset must be >= 0 mm, got {m.probe_offset}")
    if m.safe_height <= m.probe_offset:
        raise ConfigError(
            f"safe_height ({m.safe_height}) must be above "
            f"probe_offset ({m.probe_offset})"
        )

    w = cfg.workpiece
    if w.width <= 0 or w.depth <= 0:
        raise ConfigError(
            f"Workpiece dimensions must be > 0, got {w.width} x {w.depth}"
        )

    tc = cfg.tool_change
    if tc.z <= m.probe_offset:
        logger.warning(
            "Tool-change height %.3f mm is not above the probe plate "
            "(%.3f mm); the bit may drag during the change",
            tc.z,
            m.probe_offset,
        )

    if not cfg.output_prefix or any(c in cfg.output_prefix for c in "/\\"):
        raise ConfigError(
            f"output.prefix must be a non-empty file-name prefix, "
            f"got {cfg.output_prefix!r}"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(path: str | Path | None = None) -> RunConfig:
    """Load and validate the run configuration from YAML.

    Parameters
    ----------
    path : str | Path | None
        Path to a YAML file.  ``None`` loads ``defaults.yaml`` shipped
        alongside this module.

    Returns
    -------
    RunConfig
        Fully validated, frozen configuration object.

    Raises
    ------
    ConfigError
        If any field is missing or fails validation.
    FileNotFoundError
        If *path* does not exist.
    """
    if path is None:
        path = Path(__file__).parent / "defaults.yaml"
    else:
        path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.debug("Loading configuration from %s", path)

    data: dict[str, Any] = load_yaml(path)
    if data is None:
        raise ConfigError(f"Empty configuration file: {path}")
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping: {path}")

    try:
        machine = _parse_machine(data["machine"])
        workpiece = _parse_workpiece(data["workpiece"])
        tool_change = _parse_tool_change(data.get("tool_change"))
        output = data.get("output") or {}
        prefix = str(output.get("prefix", "MPCNC-"))
    except KeyError as e:
        raise ConfigError(f"Missing configuration section: {e}") from e
    except (TypeError, AttributeError) as e:
        raise ConfigError(f"Malformed configuration in {path}: {e}") from e

    config = RunConfig(
        machine=machine,
        workpiece=workpiece,
        tool_change=tool_change,
        output_prefix=prefix,
    )
    _validate_config(config)
    return config
