"""Operators: the I/O side of a conversion run.

The pipeline never touches the terminal or the filesystem itself.  It
asks an *operator* to read the source, answer questions and save each
output.  Two implementations live here:

``ConsoleOperator``
    Interactive.  Prompts with defaults, asks yes/no for each optional
    file and lets the operator confirm or change every save path.
``BatchOperator``
    Non-interactive.  Takes every default, says yes only to the
    optional files it was told to produce and saves to the suggested
    paths, refusing any that would overwrite an input.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable, Protocol

from mpcnc_post.gcode.errors import SaveCancelledError
from mpcnc_post.utils import fs

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Collaborator surface
# ---------------------------------------------------------------------------


class Operator(Protocol):
    """What the pipeline needs from the outside world."""

    def read_source(self, path: Path) -> list[str]:
        """Return the program at *path* as ordered lines."""
        ...

    def ask_value(self, key: str, prompt: str, default: float) -> float:
        """Return a number, *default* if the operator just accepts it."""
        ...

    def confirm(self, key: str, prompt: str, default: bool = True) -> bool:
        ...

    def save(self, key: str, suggested: Path, lines: list[str]) -> Path:
        """Write *lines* and return the path used.

        Raises ``SaveCancelledError`` if the operator declines.
        """
        ...

    def report(self, message: str) -> None:
        ...


# ---------------------------------------------------------------------------
# Prompt helpers
# ---------------------------------------------------------------------------


def get_float_input(prompt: str, default: float | None = None) -> float:
    """Prompt the user for a float value.

    Parameters
    ----------
    prompt : str
        Message displayed.
    default : float | None
        Value returned if the user presses Enter without typing.

    Returns
    -------
    float
        Validated user input, always finite.
    """
    suffix = f" [{default}]" if default is not None else ""
    while True:
        raw = input(f"{prompt}{suffix}: ").strip()
        if not raw and default is not None:
            return default
        try:
            value = float(raw)
        except ValueError:
            logger.warning("Invalid number: %r -- try again", raw)
            continue
        if math.isfinite(value):
            return value
        logger.warning("Not a finite number: %r -- try again", raw)


def get_yes_no(prompt: str, default: bool = True) -> bool:
    """Prompt for a yes/no answer.

    Parameters
    ----------
    prompt : str
        Question text.
    default : bool
        Default if Enter is pressed alone.

    Returns
    -------
    bool
    """
    hint = "Y/n" if default else "y/N"
    while True:
        raw = input(f"{prompt} [{hint}]: ").strip().lower()
        if not raw:
            return default
        if raw in ("y", "yes"):
            return True
        if raw in ("n", "no"):
            return False
        logger.warning("Please enter y or n")


def get_save_path(prompt: str, suggested: Path) -> Path | None:
    """Ask where to save; Enter accepts *suggested*, ``-`` cancels.

    End of input counts as a cancel.
    """
    try:
        raw = input(f"{prompt} [{suggested}] ('-' to cancel): ").strip()
    except EOFError:
        return None
    if raw == "-":
        return None
    return Path(raw).expanduser() if raw else suggested


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class ConsoleOperator:
    """Interactive operator on stdin/stdout."""

    def __init__(self) -> None:
        self._sources: set[Path] = set()

    def read_source(self, path: Path) -> list[str]:
        self._sources.add(Path(path).resolve())
        return fs.read_lines(path)

    def ask_value(self, key: str, prompt: str, default: float) -> float:
        return get_float_input(prompt, default=default)

    def confirm(self, key: str, prompt: str, default: bool = True) -> bool:
        return get_yes_no(prompt, default=default)

    def save(self, key: str, suggested: Path, lines: list[str]) -> Path:
        while True:
            path = get_save_path(f"Save {key.replace('_', ' ')} file to", suggested)
            if path is None:
                raise SaveCancelledError(f"Saving the {key.replace('_', ' ')} file was cancelled.")
            if path.resolve() in self._sources:
                logger.warning("Refusing to overwrite the input file %s", path)
                continue
            return fs.write_program(path, lines)

    def report(self, message: str) -> None:
        print(message)


class BatchOperator:
    """Non-interactive operator that accepts every default.

    Parameters
    ----------
    accept : Iterable[str]
        Keys of the yes/no questions to answer with yes (e.g.
        ``{"outline", "tool_change"}``).  Everything else is no.
    """

    def __init__(self, accept: Iterable[str] = ()) -> None:
        self.accept = frozenset(accept)
        self.messages: list[str] = []
        self._sources: set[Path] = set()

    def read_source(self, path: Path) -> list[str]:
        self._sources.add(Path(path).resolve())
        return fs.read_lines(path)

    def ask_value(self, key: str, prompt: str, default: float) -> float:
        return default

    def confirm(self, key: str, prompt: str, default: bool = True) -> bool:
        return key in self.accept

    def save(self, key: str, suggested: Path, lines: list[str]) -> Path:
        if Path(suggested).resolve() in self._sources:
            raise SaveCancelledError(
                f"Not saving the {key.replace('_', ' ')} file: "
                f"{suggested} is the input file."
            )
        return fs.write_program(suggested, lines)

    def report(self, message: str) -> None:
        self.messages.append(message)
        logger.info("%s", message)
