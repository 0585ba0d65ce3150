"""
G-code conversion and generation.

Checks the units of an Easel export, stamps the MPCNC preamble, patches
rapid feeds and builds the alignment-check and tool-change programs.
"""

from mpcnc_post.gcode.errors import (
    AlreadyProcessedError,
    GCodeError,
    ProcessingError,
    SaveCancelledError,
    UnrecognizedUnitsError,
    WrongUnitsError,
)
from mpcnc_post.gcode.generator import (
    convert_program,
    generate_outline,
    generate_tool_change,
)
from mpcnc_post.gcode.preamble import MARKER, build_preamble
from mpcnc_post.gcode.rewriter import add_rapid_feed_rates
from mpcnc_post.gcode.units import check_units, classify_units

__all__ = [
    "MARKER",
    "AlreadyProcessedError",
    "GCodeError",
    "ProcessingError",
    "SaveCancelledError",
    "UnrecognizedUnitsError",
    "WrongUnitsError",
    "add_rapid_feed_rates",
    "build_preamble",
    "check_units",
    "classify_units",
    "convert_program",
    "generate_outline",
    "generate_tool_change",
]
