#!/usr/bin/env python3
"""
Convert Script.

Post-process an Easel G-code export for the MPCNC and optionally write
the alignment-check (CHCK-) and tool-change (CHNGE-) programs.

Usage:
    mpcnc-post part.gcode
    mpcnc-post part.gcode --batch --outline --tool-change
    mpcnc-post part.gcode --batch --safe-height 8 --move-speed 1200
    mpcnc-post part.gcode --dry-run > preview.gcode
    python -m mpcnc_post.scripts.convert part.gcode
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from mpcnc_post.configs.loader import ConfigError, load_config
from mpcnc_post.console import BatchOperator, ConsoleOperator
from mpcnc_post.gcode.errors import ProcessingError
from mpcnc_post.gcode.generator import convert_program
from mpcnc_post.pipeline import run_job
from mpcnc_post.utils.fs import read_lines, render_lines
from mpcnc_post.utils.logging_config import push_context, setup_logging

logger = logging.getLogger(__name__)


def _not_utf8(source: Path, e: UnicodeDecodeError) -> str:
    return f"Error: {source} is not UTF-8 text (byte {e.start}: {e.reason})"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mpcnc-post",
        description="Convert an Easel G-code export for a Marlin MPCNC",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Optional files are named CHCK-<output> and CHNGE-<output>.",
    )
    parser.add_argument("input", type=str, help="Easel G-code file (metric)")
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Configuration file path",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Converted file path (default: <prefix><input name>)",
    )

    # Execution mode
    parser.add_argument(
        "--batch",
        "-b",
        action="store_true",
        help="Don't prompt; use defaults and the flags below",
    )
    parser.add_argument(
        "--outline",
        action="store_true",
        help="Batch mode: also write the alignment-check file",
    )
    parser.add_argument(
        "--tool-change",
        action="store_true",
        help="Batch mode: also write the tool-change file",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the converted program to stdout, write nothing",
    )

    # Overrides
    overrides = parser.add_argument_group("overrides (mm, mm/min)")
    overrides.add_argument("--safe-height", type=float)
    overrides.add_argument("--move-speed", type=float)
    overrides.add_argument("--probe-offset", type=float)
    overrides.add_argument("--width", type=float, help="Workpiece X")
    overrides.add_argument("--depth", type=float, help="Workpiece Y")
    overrides.add_argument("--tool-x", type=float)
    overrides.add_argument("--tool-y", type=float)
    overrides.add_argument("--tool-z", type=float)

    # Logging
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    parser.add_argument("--log-file", type=str, help="Also log to this file")
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Log JSON lines instead of human-readable text",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(
        args.log_level,
        args.log_file,
        json=args.json_logs,
        context={"app": "mpcnc-post"},
    )
    source = Path(args.input)
    push_context(input=source.name)

    try:
        config = load_config(args.config).with_overrides(
            safe_height=args.safe_height,
            move_speed=args.move_speed,
            probe_offset=args.probe_offset,
            width=args.width,
            depth=args.depth,
            tool_x=args.tool_x,
            tool_y=args.tool_y,
            tool_z=args.tool_z,
        )
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    if args.dry_run:
        try:
            program = convert_program(read_lines(source), config.machine)
        except UnicodeDecodeError as e:
            print(_not_utf8(source, e), file=sys.stderr)
            return 1
        except (ProcessingError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        sys.stdout.write(render_lines(program))
        return 0

    if args.batch:
        accept = set()
        if args.outline:
            accept.add("outline")
        if args.tool_change:
            accept.add("tool_change")
        operator = BatchOperator(accept)
    else:
        operator = ConsoleOperator()

    output = Path(args.output) if args.output else None
    try:
        report = run_job(operator, config, source, output)
    except UnicodeDecodeError as e:
        print(_not_utf8(source, e), file=sys.stderr)
        return 1
    except (ConfigError, OSError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nCancelled", file=sys.stderr)
        return 1

    if not report.ok or "primary" not in report.written:
        return 1
    logger.info("Done: %d file(s) written", len(report.written))
    return 0


if __name__ == "__main__":
    sys.exit(main())
