"""Conversion run: units check, primary file, then the optional files.

State machine::

    IDLE -> UNITS_CHECKED -> PRIMARY_WRITTEN
         -> OUTLINE_OFFERED [-> OUTLINE_WRITTEN]
         -> TOOL_CHANGE_OFFERED [-> TOOL_CHANGE_WRITTEN]
         -> DONE

    IDLE -> ABORTED   (wrong units, already processed, unrecognized)

ABORTED writes nothing.  A cancelled save skips only that file; a
cancelled primary save ends the run because the optional files are
named after the primary one.

Each optional file is an :class:`OptionalStep`: ask, collect its
parameters, call a pure generator, save.  Steps share nothing but the
machine parameters chosen at the start of the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from mpcnc_post.configs.loader import (
    MachineParameters,
    RunConfig,
    ToolChangePosition,
    Workpiece,
)
from mpcnc_post.console import Operator
from mpcnc_post.gcode.errors import GCodeError, ProcessingError, SaveCancelledError
from mpcnc_post.gcode.generator import (
    convert_program,
    generate_outline,
    generate_tool_change,
)
from mpcnc_post.gcode.units import check_units

logger = logging.getLogger(__name__)

OUTLINE_PREFIX = "CHCK-"
TOOL_CHANGE_PREFIX = "CHNGE-"


class RunState(Enum):
    """Where a conversion run stands.

    ``DONE`` and ``ABORTED`` are final.  The ``*_OFFERED`` states are
    entered whether or not the operator accepts the optional file.
    """

    IDLE = "idle"
    UNITS_CHECKED = "units_checked"
    PRIMARY_WRITTEN = "primary_written"
    OUTLINE_OFFERED = "outline_offered"
    OUTLINE_WRITTEN = "outline_written"
    TOOL_CHANGE_OFFERED = "tool_change_offered"
    TOOL_CHANGE_WRITTEN = "tool_change_written"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class RunReport:
    """Outcome of :func:`run_job`.

    Parameters
    ----------
    state : RunState
        Final state, ``DONE`` or ``ABORTED``.
    history : list[RunState]
        Every state entered, in order.
    written : dict[str, Path]
        Output key (``"primary"``, ``"outline"``, ``"tool_change"``) to
        the path it was saved at.
    error : ProcessingError | None
        The error that aborted the run, if any.
    """

    state: RunState = RunState.IDLE
    history: list[RunState] = field(default_factory=lambda: [RunState.IDLE])
    written: dict[str, Path] = field(default_factory=dict)
    error: ProcessingError | None = None

    def enter(self, state: RunState) -> None:
        logger.debug("Run state: %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    @property
    def ok(self) -> bool:
        return self.state is RunState.DONE


# ---------------------------------------------------------------------------
# Output naming
# ---------------------------------------------------------------------------


def prefixed_path(path: Path, prefix: str) -> Path:
    """``<dir>/<prefix><name>`` beside *path*.

    The primary output is named after the source, each optional file
    after the primary output.
    """
    path = Path(path)
    return path.with_name(f"{prefix}{path.name}")


# ---------------------------------------------------------------------------
# Optional steps
# ---------------------------------------------------------------------------


def _build_outline(
    operator: Operator, machine: MachineParameters, config: RunConfig,
) -> list[str]:
    wp = config.workpiece
    workpiece = Workpiece(
        width=operator.ask_value("width", "Workpiece width X (mm)", wp.width),
        depth=operator.ask_value("depth", "Workpiece depth Y (mm)", wp.depth),
    )
    return generate_outline(machine, workpiece)


def _build_tool_change(
    operator: Operator, machine: MachineParameters, config: RunConfig,
) -> list[str]:
    tc = config.tool_change
    position = ToolChangePosition(
        x=operator.ask_value("tool_x", "Tool-change X (mm)", tc.x),
        y=operator.ask_value("tool_y", "Tool-change Y (mm)", tc.y),
        z=operator.ask_value("tool_z", "Tool-change Z (mm)", tc.z),
    )
    return generate_tool_change(machine, position)


@dataclass(frozen=True)
class OptionalStep:
    """One optional output file."""

    key: str
    question: str
    prefix: str
    offered: RunState
    written: RunState
    build: Callable[[Operator, MachineParameters, RunConfig], list[str]]


OPTIONAL_STEPS: tuple[OptionalStep, ...] = (
    OptionalStep(
        key="outline",
        question="Create an outline file to check workpiece alignment?",
        prefix=OUTLINE_PREFIX,
        offered=RunState.OUTLINE_OFFERED,
        written=RunState.OUTLINE_WRITTEN,
        build=_build_outline,
    ),
    OptionalStep(
        key="tool_change",
        question="Create a tool-change file?",
        prefix=TOOL_CHANGE_PREFIX,
        offered=RunState.TOOL_CHANGE_OFFERED,
        written=RunState.TOOL_CHANGE_WRITTEN,
        build=_build_tool_change,
    ),
)


def _run_optional_step(
    step: OptionalStep,
    operator: Operator,
    machine: MachineParameters,
    config: RunConfig,
    primary: Path,
    report: RunReport,
) -> None:
    report.enter(step.offered)
    if not operator.confirm(step.key, step.question, default=False):
        logger.info("Skipped %s file", step.key)
        return

    try:
        lines = step.build(operator, machine, config)
        path = operator.save(step.key, prefixed_path(primary, step.prefix), lines)
    except (GCodeError, SaveCancelledError) as e:
        operator.report(str(e))
        logger.warning("%s file not written: %s", step.key, e)
        return

    report.written[step.key] = path
    report.enter(step.written)
    operator.report(f"Saved {step.key.replace('_', ' ')} file: {path}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def ask_machine_parameters(operator: Operator, config: RunConfig) -> MachineParameters:
    """Let the operator confirm or override the machine defaults.

    Raises
    ------
    ConfigError
        If the answers fail validation (e.g. safe height below the
        probe plate).
    """
    m = config.machine
    return config.with_overrides(
        safe_height=operator.ask_value("safe_height", "Safe height (mm)", m.safe_height),
        move_speed=operator.ask_value("move_speed", "Move speed (mm/min)", m.move_speed),
        probe_offset=operator.ask_value(
            "probe_offset", "Probe plate thickness (mm)", m.probe_offset,
        ),
    ).machine


def run_job(
    operator: Operator,
    config: RunConfig,
    source: Path,
    output: Path | None = None,
    steps: tuple[OptionalStep, ...] = OPTIONAL_STEPS,
) -> RunReport:
    """Convert *source* and offer each optional file.

    Parameters
    ----------
    operator : Operator
        Reads, prompts and saves on behalf of the run.
    config : RunConfig
        Defaults offered at every prompt.
    source : Path
        Easel export to convert.
    output : Path | None
        Suggested primary path; ``<prefix><source name>`` if ``None``.
    steps : tuple[OptionalStep, ...]
        Optional files to offer, in order.

    Returns
    -------
    RunReport
        ``state`` is ``ABORTED`` (with ``error`` set) when the units
        check fails, ``DONE`` otherwise.
    """
    report = RunReport()
    source = Path(source)
    lines = tuple(operator.read_source(source))

    try:
        check_units(lines)
    except ProcessingError as e:
        report.error = e
        report.enter(RunState.ABORTED)
        operator.report(str(e))
        logger.error("Aborted %s: %s", source.name, e)
        return report
    report.enter(RunState.UNITS_CHECKED)

    machine = ask_machine_parameters(operator, config)
    program = convert_program(lines, machine)

    suggested = output if output is not None else prefixed_path(
        source, config.output_prefix,
    )
    try:
        primary = operator.save("primary", suggested, program)
    except SaveCancelledError as e:
        operator.report(str(e))
        logger.warning("Primary file not written, ending run: %s", e)
        report.enter(RunState.DONE)
        return report

    report.written["primary"] = primary
    report.enter(RunState.PRIMARY_WRITTEN)
    operator.report(f"Saved converted file: {primary}")

    for step in steps:
        _run_optional_step(step, operator, machine, config, primary, report)

    report.enter(RunState.DONE)
    return report
