"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Atomic I/O and YAML loading (fs)
    - Run logging (logging_config)

No module in utils/ may import from upper layers (gcode, configs, pipeline).

Convenience imports:
    from mpcnc_post.utils import fs
    from mpcnc_post.utils.logging_config import setup_logging, push_context
"""

from . import fs
from . import logging_config

from .logging_config import push_context, setup_logging

__all__ = [
    'fs',
    'logging_config',
    'setup_logging',
    'push_context',
]
