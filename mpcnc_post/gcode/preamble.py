"""Header block stamped at the top of every converted program.

The first line is a marker comment; :mod:`mpcnc_post.gcode.units`
refuses any input that already starts with it, so a file is never
converted twice.

Layout (one line each)::

    MARKER
    ; explanatory comment
    G21
    G90
    G92 X0 Y0 Z0
    G92 Z<probe_offset>
    G00 Z<safe_height> F500
    M00

``G92`` does not move the bit.  It redefines the current position, so
after touching off on the probe plate ``G92 Z<probe_offset>`` makes Z0
the top of the workpiece underneath the plate.
"""

from __future__ import annotations

MARKER = "; Processed for MPCNC by mpcnc-post"
"""First line of every converted program."""

Z_FEED_MM_MIN = 500
"""Fixed feed (mm/min) for vertical retract and plunge moves."""


def format_number(value: float) -> str:
    """Render a coordinate or feed without rounding.

    Integral values drop the decimal part (``5.0`` -> ``"5"``); anything
    else uses the shortest repr that round-trips (``0.75`` -> ``"0.75"``).
    """
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def zero_block(probe_offset: float) -> list[str]:
    """Zero all axes here, then shift Z by the probe-plate thickness."""
    return [
        "G92 X0 Y0 Z0 ; zero all axes at the current position",
        f"G92 Z{format_number(probe_offset)} ; offset Z by the probe plate thickness",
    ]


def z_move(z: float) -> str:
    """Vertical rapid to *z* at the fixed Z feed."""
    return f"G00 Z{format_number(z)} F{Z_FEED_MM_MIN}"


def setup_block(probe_offset: float, safe_height: float) -> list[str]:
    """Units, absolute mode, zeroing, retract and the first pause."""
    return [
        "G21 ; millimetres",
        "G90 ; absolute positioning",
        *zero_block(probe_offset),
        f"{z_move(safe_height)} ; retract to safe height",
        "M00 ; pause, resume when ready",
    ]


def build_preamble(probe_offset: float, safe_height: float) -> list[str]:
    """Return the eight-line header for a converted program.

    Parameters
    ----------
    probe_offset : float
        Probe-plate thickness in mm.
    safe_height : float
        Retract height in mm.

    Returns
    -------
    list[str]
        Marker, one comment, then the six setup commands.
    """
    return [
        MARKER,
        "; Touch the bit to the probe plate on the work origin before starting",
        *setup_block(probe_offset, safe_height),
    ]
