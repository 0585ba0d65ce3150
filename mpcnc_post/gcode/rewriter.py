"""Feed-rate patching for Easel rapid moves.

Easel emits ``G0`` rapids without an ``F`` word and leaves the travel
speed to the controller.  Marlin on the MPCNC would then travel at its
maximum rate, so every bare rapid gets an explicit feed appended.

Only the single-zero ``"G0 "`` prefix is matched; ``"G00 "`` lines pass
through unchanged.
"""

from __future__ import annotations

import re
from typing import Iterable

from mpcnc_post.gcode.preamble import format_number

RAPID_PREFIX = "G0 "

_COMMENT_START = re.compile(r"[;(]")
_FEED_WORD = re.compile(r"(?<![A-Za-z])[Ff][-+]?\.?\d")


def _code_part(line: str) -> str:
    """Text of *line* before any ``;`` or ``(`` comment."""
    match = _COMMENT_START.search(line)
    return line if match is None else line[:match.start()]


def needs_feed(line: str) -> bool:
    """True for a ``G0`` rapid that does not set its own feed."""
    if not line.lstrip().startswith(RAPID_PREFIX):
        return False
    return _FEED_WORD.search(_code_part(line)) is None


def add_feed(line: str, move_speed: float) -> str:
    """Append ``F<move_speed>`` to the very end of *line*.

    The line is otherwise untouched, trailing comment included.
    """
    return f"{line} F{format_number(move_speed)}"


def add_rapid_feed_rates(lines: Iterable[str], move_speed: float) -> list[str]:
    """Return a new program with a feed on every bare ``G0`` rapid.

    Parameters
    ----------
    lines : Iterable[str]
        Source program, one statement per line.
    move_speed : float
        Feed in mm/min for the patched rapids.

    Returns
    -------
    list[str]
        Same length and order as *lines*.  Untouched lines are the
        original strings.
    """
    return [add_feed(line, move_speed) if needs_feed(line) else line for line in lines]


def count_rapid_rewrites(lines: Iterable[str]) -> int:
    """Number of lines :func:`add_rapid_feed_rates` would change."""
    return sum(1 for line in lines if needs_feed(line))
