"""
Logging Utilities for the call graph explorer

Engine modules log through ``logging.getLogger(__name__)``. This module only
installs a handler for command-line use and provides a timing helper so that
visibility operations can report how long they took at DEBUG level.

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import logging
import sys
import time
from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterator, Optional, Union


class LogLevel(str, Enum):
    """Log levels accepted in configuration files."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"

_HANDLER_NAME = "callgraph-console"


def parse_level(level: Union[str, LogLevel, None]) -> LogLevel:
    """
    Normalize a level name to a LogLevel.

    Unknown names fall back to INFO (with a warning), the same way
    configuration values are corrected rather than rejected.
    """
    if isinstance(level, LogLevel):
        return level
    if not level:
        return LogLevel.INFO
    try:
        return LogLevel(str(level).upper())
    except ValueError:
        logging.getLogger(__name__).warning(f"Unknown log level '{level}', using INFO")
        return LogLevel.INFO


def configure_logging(
    level: Union[str, LogLevel, None] = LogLevel.INFO,
    stream: Optional[Any] = None,
) -> logging.Logger:
    """
    Attach a console handler to the ``callgraph_core`` logger.

    Calling this more than once updates the level and the stream; the
    handler is installed a single time.

    Args:
        level: Minimum level to emit
        stream: Output stream (defaults to stderr)

    Returns:
        The package logger
    """
    root = logging.getLogger("callgraph_core")
    root.setLevel(parse_level(level).value)

    for handler in root.handlers:
        if handler.get_name() == _HANDLER_NAME:
            handler.setStream(stream or sys.stderr)
            return root

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    return root


@contextmanager
def log_duration(logger: logging.Logger, operation: str, **data: Any) -> Iterator[None]:
    """
    Log the wall-clock duration of a block at DEBUG level.

    Example:
        with log_duration(logger, "collapse", node="main"):
            engine.collapse("main")
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        if logger.isEnabledFor(logging.DEBUG):
            duration_ms = (time.perf_counter() - start) * 1000.0
            details = " ".join(f"{key}={value}" for key, value in data.items())
            logger.debug(f"{operation} completed in {duration_ms:.2f}ms {details}".rstrip())
