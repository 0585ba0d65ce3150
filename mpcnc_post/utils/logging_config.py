"""Logging setup for ``mpcnc-post``.

One call from the entry point configures the root logger:
    - stderr handler, plus an optional log file
    - human-readable lines or JSON lines (``--json-logs``), for every handler
    - run context (``app``, ``input``) attached to every record

Public API:
    setup_logging("INFO", "run.log", json=False, context={"app": "mpcnc-post"})
    push_context(input="part.gcode")

Format examples:
    Human: 2025-10-28T13:45:12.345Z | INFO     | app=mpcnc-post input=part.gcode | Saved ...
    JSON: {"t": "2025-10-28T13:45:12.345+00:00", "lvl": "INFO", "name": "...", "msg": "...", "input": "part.gcode"}
"""

import contextvars
import json as jsonlib
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


_context_var: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    'mpcnc_log_context', default={}
)

# Handlers added by the last setup_logging() call; replaced on the next one.
_installed: List[logging.Handler] = []


class ContextFormatter(logging.Formatter):
    """Render a record with the current run context, as text or JSON."""

    def __init__(self, as_json: bool = False):
        super().__init__()
        self.as_json = as_json

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        context = _context_var.get()

        if self.as_json:
            entry = {
                't': ts.isoformat(timespec='milliseconds'),
                'lvl': record.levelname,
                'name': record.name,
                'msg': record.getMessage(),
                **context,
            }
            if record.exc_info:
                entry['exc'] = self.formatException(record.exc_info)
            return jsonlib.dumps(entry, default=str)

        stamp = ts.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'
        fields = ' '.join(f"{k}={v}" for k, v in context.items())
        parts = [stamp, f"{record.levelname:8s}"]
        if fields:
            parts.append(fields)
        parts.append(record.getMessage())
        line = ' | '.join(parts)
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    context: Optional[Dict[str, Any]] = None,
) -> List[logging.Handler]:
    """Configure the root logger for one run.

    Calling it again replaces the handlers the previous call installed;
    handlers added by anyone else are left alone.

    Parameters
    ----------
    log_level : str
        "DEBUG", "INFO", "WARNING" or "ERROR"
    log_file : str, optional
        Also append records to this file (parent directories are created)
    json : bool
        Emit JSON lines instead of text, on stderr and in the log file alike
    context : dict, optional
        Fields attached to every record (e.g. ``{"app": "mpcnc-post"}``)

    Returns
    -------
    list[logging.Handler]
        Handlers attached to the root logger.
    """
    root = logging.getLogger()
    for handler in _installed:
        root.removeHandler(handler)
        handler.close()
    _installed.clear()

    root.setLevel(getattr(logging, log_level.upper()))
    formatter = ContextFormatter(as_json=json)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
        _installed.append(handler)

    if context:
        push_context(**context)
    return handlers


def push_context(**fields: Any) -> None:
    """Attach *fields* to every later record in this context.

    >>> push_context(input="part.gcode")
    >>> logger.info("Converted")  # "... | input=part.gcode | Converted"
    """
    _context_var.set({**_context_var.get(), **fields})
