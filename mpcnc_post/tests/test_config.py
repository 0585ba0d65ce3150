"""Tests for the run configuration loader.

Validates that the shipped ``defaults.yaml`` loads, that missing or
malformed fields raise ``ConfigError``, and that per-run overrides are
validated the same way as the file.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from mpcnc_post.configs.loader import (
    ConfigError,
    MachineParameters,
    RunConfig,
    ToolChangePosition,
    load_config,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> RunConfig:
    """Load the default config shipped with the package."""
    return load_config()


@pytest.fixture()
def raw() -> dict:
    return {
        "machine": {
            "safe_height_mm": 10.0,
            "move_speed_mm_min": 1200,
            "probe_offset_mm": 0.75,
        },
        "tool_change": {"x_mm": 300.0, "y_mm": 10.0, "z_mm": 50.0},
        "workpiece": {"width_mm": 150.0, "depth_mm": 75.0},
        "output": {"prefix": "OUT-"},
    }


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "cfg.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Shipped defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_loads(self, config: RunConfig) -> None:
        assert isinstance(config.machine, MachineParameters)

    def test_safe_height_above_probe(self, config: RunConfig) -> None:
        assert config.machine.safe_height > config.machine.probe_offset

    def test_tool_change_defaults(self, config: RunConfig) -> None:
        assert config.tool_change == ToolChangePosition(x=400.0, y=0.0, z=40.0)

    def test_frozen(self, config: RunConfig) -> None:
        with pytest.raises(AttributeError):
            config.machine.safe_height = 1.0  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Explicit files
# ---------------------------------------------------------------------------


class TestLoadFile:
    def test_values(self, tmp_path: Path, raw: dict) -> None:
        cfg = load_config(_write(tmp_path, raw))
        assert cfg.machine == MachineParameters(
            safe_height=10.0, move_speed=1200.0, probe_offset=0.75,
        )
        assert cfg.tool_change == ToolChangePosition(300.0, 10.0, 50.0)
        assert cfg.workpiece.width == 150.0
        assert cfg.output_prefix == "OUT-"

    def test_tool_change_optional(self, tmp_path: Path, raw: dict) -> None:
        del raw["tool_change"]
        del raw["output"]
        cfg = load_config(_write(tmp_path, raw))
        assert cfg.tool_change == ToolChangePosition()
        assert cfg.output_prefix == "MPCNC-"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ConfigError, match="Empty"):
            load_config(path)

    def test_missing_section(self, tmp_path: Path, raw: dict) -> None:
        del raw["workpiece"]
        with pytest.raises(ConfigError, match="workpiece"):
            load_config(_write(tmp_path, raw))

    def test_missing_key(self, tmp_path: Path, raw: dict) -> None:
        del raw["machine"]["move_speed_mm_min"]
        with pytest.raises(ConfigError, match="machine.move_speed_mm_min"):
            load_config(_write(tmp_path, raw))

    def test_non_numeric(self, tmp_path: Path, raw: dict) -> None:
        raw["machine"]["safe_height_mm"] = "high"
        with pytest.raises(ConfigError, match="must be a number"):
            load_config(_write(tmp_path, raw))

    def test_safe_height_below_probe(self, tmp_path: Path, raw: dict) -> None:
        raw["machine"]["safe_height_mm"] = 0.5
        with pytest.raises(ConfigError, match="safe_height"):
            load_config(_write(tmp_path, raw))

    def test_zero_move_speed(self, tmp_path: Path, raw: dict) -> None:
        raw["machine"]["move_speed_mm_min"] = 0
        with pytest.raises(ConfigError, match="move_speed"):
            load_config(_write(tmp_path, raw))

    def test_nan_in_file(self, tmp_path: Path, raw: dict) -> None:
        raw["machine"]["move_speed_mm_min"] = float("nan")
        with pytest.raises(ConfigError, match="finite"):
            load_config(_write(tmp_path, raw))

    def test_bad_prefix(self, tmp_path: Path, raw: dict) -> None:
        raw["output"]["prefix"] = "a/b"
        with pytest.raises(ConfigError, match="prefix"):
            load_config(_write(tmp_path, raw))


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------


class TestOverrides:
    def test_none_keeps_value(self, config: RunConfig) -> None:
        assert config.with_overrides(safe_height=None) == config

    def test_applies(self, config: RunConfig) -> None:
        cfg = config.with_overrides(move_speed=900, width=50, tool_z=60)
        assert cfg.machine.move_speed == 900.0
        assert cfg.workpiece.width == 50.0
        assert cfg.tool_change.z == 60.0
        assert cfg.machine.safe_height == config.machine.safe_height

    def test_original_untouched(self, config: RunConfig) -> None:
        before = config.machine.move_speed
        config.with_overrides(move_speed=before + 100)
        assert config.machine.move_speed == before

    def test_validated(self, config: RunConfig) -> None:
        with pytest.raises(ConfigError):
            config.with_overrides(probe_offset=-1)

    @pytest.mark.parametrize(
        "key", ["safe_height", "move_speed", "probe_offset", "width", "tool_x"],
    )
    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_rejected(
        self, config: RunConfig, key: str, value: float,
    ) -> None:
        with pytest.raises(ConfigError, match="finite"):
            config.with_overrides(**{key: value})

    def test_unknown_key(self, config: RunConfig) -> None:
        with pytest.raises(ConfigError, match="Unknown override"):
            config.with_overrides(spindle_rpm=10000)
