"""Tests for the three MPCNC programs.

Validates the converted program layout, the idempotence guard, the
outline corner order and pauses, and the tool-change re-zero block.
"""

from __future__ import annotations

import re

import pytest

from mpcnc_post.configs.loader import MachineParameters, ToolChangePosition, Workpiece
from mpcnc_post.gcode.errors import (
    AlreadyProcessedError,
    GCodeError,
    UnrecognizedUnitsError,
    WrongUnitsError,
)
from mpcnc_post.gcode.generator import (
    convert_program,
    generate_outline,
    generate_tool_change,
    outline_corners,
)
from mpcnc_post.gcode.preamble import MARKER, build_preamble, zero_block


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def machine() -> MachineParameters:
    return MachineParameters(safe_height=5.0, move_speed=1500.0, probe_offset=0.75)


@pytest.fixture()
def easel() -> list[str]:
    return [
        "G21",
        "G90",
        "(Easel job)",
        "G0 Z3.81",
        "G0 X12.7 Y6.35",
        "G1 Z-1 F228.6",
        "G1 X20 Y6.35 F762",
        "",
        "G0 Z3.81",
        "M5",
    ]


def _xy_moves(lines: list[str]) -> list[tuple[float, float]]:
    moves = []
    for line in lines:
        m = re.match(r"G00 X(\S+) Y(\S+)", line)
        if m:
            moves.append((float(m.group(1)), float(m.group(2))))
    return moves


def _pauses(lines: list[str]) -> int:
    return sum(1 for line in lines if line.split(";")[0].strip() == "M00")


# ---------------------------------------------------------------------------
# Converted program
# ---------------------------------------------------------------------------


class TestConvertProgram:
    def test_marker_on_line_zero(
        self, easel: list[str], machine: MachineParameters,
    ) -> None:
        assert convert_program(easel, machine)[0] == MARKER

    def test_preamble_then_source(
        self, easel: list[str], machine: MachineParameters,
    ) -> None:
        out = convert_program(easel, machine)
        preamble = build_preamble(machine.probe_offset, machine.safe_height)
        assert out[: len(preamble)] == preamble
        assert len(out) == len(preamble) + len(easel)

    def test_source_lines_patched_or_verbatim(
        self, easel: list[str], machine: MachineParameters,
    ) -> None:
        body = convert_program(easel, machine)[8:]
        assert body[3] == "G0 Z3.81 F1500"
        assert body[4] == "G0 X12.7 Y6.35 F1500"
        assert body[2] == "(Easel job)"
        assert body[7] == ""
        assert body[5] == "G1 Z-1 F228.6"

    def test_imperial_aborts(self, machine: MachineParameters) -> None:
        with pytest.raises(WrongUnitsError):
            convert_program(["G20", "G0 X1"], machine)

    def test_unknown_aborts(self, machine: MachineParameters) -> None:
        with pytest.raises(UnrecognizedUnitsError):
            convert_program(["G90", "G21"], machine)

    def test_second_pass_aborts(
        self, easel: list[str], machine: MachineParameters,
    ) -> None:
        once = convert_program(easel, machine)
        with pytest.raises(AlreadyProcessedError):
            convert_program(once, machine)


# ---------------------------------------------------------------------------
# Outline
# ---------------------------------------------------------------------------


class TestOutline:
    def test_corner_order(self, machine: MachineParameters) -> None:
        lines = generate_outline(machine, Workpiece(width=200.0, depth=100.0))
        assert _xy_moves(lines) == [
            (0.0, 100.0),
            (200.0, 100.0),
            (200.0, 0.0),
            (0.0, 0.0),
        ]

    def test_corner_moves_use_move_speed(self, machine: MachineParameters) -> None:
        lines = generate_outline(machine, Workpiece(width=200.0, depth=100.0))
        assert "G00 X0 Y100 F1500" in lines
        assert "G00 X200 Y100 F1500" in lines

    def test_pauses(self, machine: MachineParameters) -> None:
        lines = generate_outline(machine, Workpiece(width=200.0, depth=100.0))
        first_corner = next(i for i, l in enumerate(lines) if l.startswith("G00 X"))
        # one pause after setup, one at each of the first three corners
        assert _pauses(lines[:first_corner]) == 1
        assert _pauses(lines[first_corner:]) == 3

    def test_no_trailing_pause(self, machine: MachineParameters) -> None:
        lines = generate_outline(machine, Workpiece(width=200.0, depth=100.0))
        assert lines[-1] == "G00 X0 Y0 F1500"

    def test_retract_and_lower_around_corners(
        self, machine: MachineParameters,
    ) -> None:
        lines = generate_outline(machine, Workpiece(width=200.0, depth=100.0))
        i = lines.index("G00 X0 Y100 F1500")
        assert lines[i - 1] == "G00 Z5 F500"
        assert lines[i + 1].startswith("G00 Z0.75 F500")
        assert lines[i + 2].startswith("M00")

    def test_setup_zeroes_with_probe_offset(self, machine: MachineParameters) -> None:
        lines = generate_outline(machine, Workpiece(width=200.0, depth=100.0))
        for line in zero_block(machine.probe_offset):
            assert line in lines
        assert "G21 ; millimetres" in lines

    def test_not_marked_as_processed(self, machine: MachineParameters) -> None:
        lines = generate_outline(machine, Workpiece(width=200.0, depth=100.0))
        assert MARKER not in lines

    @pytest.mark.parametrize(
        "width, depth",
        [
            (0.0, 100.0),
            (200.0, -1.0),
            (float("nan"), 100.0),
            (200.0, float("inf")),
        ],
    )
    def test_rejects_bad_size(
        self, machine: MachineParameters, width: float, depth: float,
    ) -> None:
        with pytest.raises(GCodeError, match="positive finite size"):
            generate_outline(machine, Workpiece(width=width, depth=depth))

    def test_outline_corners(self) -> None:
        assert outline_corners(Workpiece(width=3.0, depth=2.0)) == [
            (0.0, 0.0), (0.0, 2.0), (3.0, 2.0), (3.0, 0.0), (0.0, 0.0),
        ]


# ---------------------------------------------------------------------------
# Tool change
# ---------------------------------------------------------------------------


class TestToolChange:
    def test_default_position(self, machine: MachineParameters) -> None:
        lines = generate_tool_change(machine)
        assert lines == generate_tool_change(machine, ToolChangePosition(400, 0, 40))

    def test_two_pauses(self, machine: MachineParameters) -> None:
        assert _pauses(generate_tool_change(machine)) == 2

    def test_ends_with_safe_retract(self, machine: MachineParameters) -> None:
        assert generate_tool_change(machine)[-1].startswith("G00 Z5 F500")

    def test_rezero_matches_preamble(self, machine: MachineParameters) -> None:
        lines = generate_tool_change(machine)
        preamble = build_preamble(machine.probe_offset, machine.safe_height)
        assert lines[-3:-1] == preamble[4:6]

    def test_sequence(self, machine: MachineParameters) -> None:
        commands = [
            line.split(";")[0].strip()
            for line in generate_tool_change(machine)
            if not line.startswith(";")
        ]
        assert commands == [
            "G21",
            "G90",
            "G00 Z40 F500",
            "G00 X400 Y0 F1500",
            "M00",
            "G00 X0 Y0 F1500",
            "M00",
            "G92 X0 Y0 Z0",
            "G92 Z0.75",
            "G00 Z5 F500",
        ]

    def test_custom_position(self, machine: MachineParameters) -> None:
        lines = generate_tool_change(machine, ToolChangePosition(x=10.5, y=20, z=60))
        assert any(l.startswith("G00 Z60 F500") for l in lines)
        assert "G00 X10.5 Y20 F1500" in lines
