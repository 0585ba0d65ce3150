"""
MPCNC Post-Processor Package.

Converts Easel G-code exports for a Marlin-based MPCNC: checks units,
injects the zeroing / probe-offset / safe-height preamble and adds feed
rates to bare rapids.  Can also write an alignment-check outline and a
manual tool-change program.

Subpackages:
    gcode: units check, preamble, feed rewriting, program generators
    configs: run configuration loading and validation
    utils: atomic file I/O and logging setup
    scripts: command-line entry points
"""

__all__ = ["configs", "console", "gcode", "pipeline", "scripts", "utils"]
