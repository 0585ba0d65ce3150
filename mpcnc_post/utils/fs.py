"""Filesystem helpers for G-code programs and YAML configuration.

Provides:
    - Line-oriented reading of G-code files (line endings stripped)
    - Atomic writes: tmp file → fsync → rename (prevents half-written programs)
    - YAML loading with safe_load

All paths use pathlib.Path for cross-platform compatibility.

Usage:
    from mpcnc_post.utils import fs
    lines = fs.read_lines("part.gcode")
    fs.write_program("MPCNC-part.gcode", lines)
"""

import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

import yaml


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object.

    Parameters
    ----------
    p : Union[str, Path]
        Directory path

    Returns
    -------
    Path
        Path object (guaranteed to exist)
    """
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Notes
    -----
    The tmp file lives in the target directory so the rename stays on
    one filesystem.
    """
    path = Path(path)
    ensure_dir(path.parent)

    tmp_path = path.with_suffix(path.suffix + tmp_suffix)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename (overwrites existing file on POSIX)
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_write_text(
    path: Union[str, Path],
    text: str,
    encoding: str = "utf-8"
) -> None:
    """Write text to file atomically.

    Convenience wrapper around atomic_write_bytes.
    """
    atomic_write_bytes(path, text.encode(encoding))


def read_lines(path: Union[str, Path], encoding: str = "utf-8") -> List[str]:
    """Read a text file as an ordered list of lines.

    Parameters
    ----------
    path : Union[str, Path]
        File to read
    encoding : str
        Text encoding, default "utf-8"

    Returns
    -------
    List[str]
        Lines without their terminators (``\\n``, ``\\r\\n`` and ``\\r``
        are all accepted). Everything else, trailing blanks included, is
        kept verbatim.

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    UnicodeDecodeError
        If the content is not valid in *encoding*
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"G-code file not found: {path}")

    with open(path, 'r', encoding=encoding, newline='') as f:
        return f.read().splitlines()


def render_lines(lines: Iterable[str]) -> str:
    """Join program lines with ``\\n`` and terminate with a newline."""
    text = "\n".join(lines)
    return text + "\n" if text else ""


def write_program(path: Union[str, Path], lines: Iterable[str]) -> Path:
    """Write a G-code program atomically and return its path."""
    path = Path(path)
    atomic_write_text(path, render_lines(lines))
    return path


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e
