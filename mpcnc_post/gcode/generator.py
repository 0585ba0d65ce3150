"""G-code programs produced for the MPCNC.

Three programs are built here, each as a fresh list of lines:

``convert_program``
    The Easel export with the MPCNC preamble in front and a feed on
    every bare ``G0`` rapid.
``generate_outline``
    Alignment check.  Visits the four workpiece corners just above the
    surface, pausing at each so the operator can check the stock
    against the toolpath envelope before cutting.
``generate_tool_change``
    Parks the spindle for a manual bit change, brings it back to the
    work origin and re-zeroes Z on the probe plate.

All coordinates are in mm relative to the work origin set by ``G92``.
Vertical moves use the fixed ``Z_FEED_MM_MIN``; horizontal travel uses
``MachineParameters.move_speed``.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from mpcnc_post.configs.loader import MachineParameters, ToolChangePosition, Workpiece
from mpcnc_post.gcode.errors import GCodeError
from mpcnc_post.gcode.preamble import (
    build_preamble,
    format_number,
    setup_block,
    z_move,
    zero_block,
)
from mpcnc_post.gcode.rewriter import add_rapid_feed_rates, count_rapid_rewrites
from mpcnc_post.gcode.units import check_units

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _travel(x: float, y: float, move_speed: float) -> str:
    return f"G00 X{format_number(x)} Y{format_number(y)} F{format_number(move_speed)}"


def outline_corners(workpiece: Workpiece) -> list[tuple[float, float]]:
    """Corners in visiting order, starting and ending at the origin."""
    w, d = workpiece.width, workpiece.depth
    return [(0.0, 0.0), (0.0, d), (w, d), (w, 0.0), (0.0, 0.0)]


# ---------------------------------------------------------------------------
# Programs
# ---------------------------------------------------------------------------


def convert_program(lines: Sequence[str], machine: MachineParameters) -> list[str]:
    """Convert an Easel export into an MPCNC program.

    Parameters
    ----------
    lines : Sequence[str]
        Source program; line 0 must be ``G21``.
    machine : MachineParameters
        Probe offset and safe height for the preamble, move speed for
        the rapids.

    Returns
    -------
    list[str]
        Preamble followed by the source lines, rapids patched.

    Raises
    ------
    WrongUnitsError, AlreadyProcessedError, UnrecognizedUnitsError
        From :func:`~mpcnc_post.gcode.units.check_units`.
    """
    check_units(lines)
    patched = count_rapid_rewrites(lines)
    logger.info(
        "Adding F%s to %d rapid move(s) of %d line(s)",
        format_number(machine.move_speed),
        patched,
        len(lines),
    )
    return [
        *build_preamble(machine.probe_offset, machine.safe_height),
        *add_rapid_feed_rates(lines, machine.move_speed),
    ]


def generate_outline(machine: MachineParameters, workpiece: Workpiece) -> list[str]:
    """Build the corner-by-corner alignment check.

    At every corner except the last the bit retracts, travels, lowers to
    ``probe_offset`` (just above the surface) and pauses.  The last move
    returns to the origin at safe height without a pause.

    Raises
    ------
    GCodeError
        If the workpiece width or depth is not a positive finite number.
    """
    size = (workpiece.width, workpiece.depth)
    if not all(math.isfinite(v) and v > 0 for v in size):
        raise GCodeError(
            f"Outline needs a positive finite size, got "
            f"{format_number(workpiece.width)} x {format_number(workpiece.depth)} mm"
        )

    lines = [
        f"; Alignment check: {format_number(workpiece.width)} x "
        f"{format_number(workpiece.depth)} mm outline",
        "; At each pause, check the bit sits over the workpiece corner",
        *setup_block(machine.probe_offset, machine.safe_height),
    ]

    corners = outline_corners(workpiece)[1:]
    for i, (x, y) in enumerate(corners):
        lines.append(z_move(machine.safe_height))
        lines.append(_travel(x, y, machine.move_speed))
        if i < len(corners) - 1:
            lines.append(f"{z_move(machine.probe_offset)} ; lower to just above the surface")
            lines.append("M00 ; check corner alignment, resume when ready")

    logger.debug("Outline program: %d lines", len(lines))
    return lines


def generate_tool_change(
    machine: MachineParameters,
    position: ToolChangePosition | None = None,
) -> list[str]:
    """Build the manual tool-change sequence.

    The first pause is for swapping the bit at *position*; the second,
    back at the origin, is for touching the new bit onto the probe plate
    before the coordinate system is re-zeroed.
    """
    if position is None:
        position = ToolChangePosition()

    lines = [
        "; Tool change",
        "G21 ; millimetres",
        "G90 ; absolute positioning",
        f"{z_move(position.z)} ; raise for tool change",
        _travel(position.x, position.y, machine.move_speed),
        "M00 ; change the bit, resume when done",
        f"{_travel(0, 0, machine.move_speed)} ; back to the work origin",
        "M00 ; touch the new bit onto the probe plate, resume when done",
        *zero_block(machine.probe_offset),
        f"{z_move(machine.safe_height)} ; retract to safe height",
    ]

    logger.debug("Tool-change program: %d lines", len(lines))
    return lines
