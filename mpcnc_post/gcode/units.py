"""Units check on the first line of an Easel export.

Easel writes ``G21`` or ``G20`` as line 0.  Only metric programs are
converted; a program that already carries the post-processor marker is
refused so the preamble is never injected twice.
"""

from __future__ import annotations

import logging
from typing import Literal, Sequence

from mpcnc_post.gcode.errors import (
    AlreadyProcessedError,
    UnrecognizedUnitsError,
    WrongUnitsError,
)
from mpcnc_post.gcode.preamble import MARKER

logger = logging.getLogger(__name__)

Units = Literal["metric", "imperial", "processed", "unrecognized"]


def classify_units(lines: Sequence[str]) -> Units:
    """Classify a program by an exact, case-sensitive match on line 0."""
    if not lines:
        return "unrecognized"
    first = lines[0]
    if first == "G21":
        return "metric"
    if first == "G20":
        return "imperial"
    if first == MARKER:
        return "processed"
    return "unrecognized"


def check_units(lines: Sequence[str]) -> None:
    """Raise unless the program is a metric Easel export.

    Raises
    ------
    WrongUnitsError
        Line 0 is ``G20``.
    AlreadyProcessedError
        Line 0 is the marker comment.
    UnrecognizedUnitsError
        Anything else, including an empty program.
    """
    units = classify_units(lines)
    logger.debug("Input units: %s", units)
    if units == "metric":
        return
    if units == "imperial":
        raise WrongUnitsError(
            "File is in inches (G20). Export it from Easel in millimetres."
        )
    if units == "processed":
        raise AlreadyProcessedError(
            "File has already been processed for the MPCNC."
        )
    first = lines[0] if lines else "<empty file>"
    raise UnrecognizedUnitsError(
        f"Unrecognized first line {first!r}; expected 'G21' from an Easel export."
    )
