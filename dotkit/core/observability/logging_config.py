"""
Logging configuration: central setup for the CLI entrypoint.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  DOTKIT_LOG_LEVEL env var  >  WARNING (default)

Optional file output via DOTKIT_LOG_FILE / DOTKIT_LOG_FILE_LEVEL env vars.

The per-run raw action log is separate: it is the ``dotkit.runlog``
logger, attached to a file only while a run is in progress
(see ``attach_run_log``).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

RUN_LOGGER = "dotkit.runlog"

# Console format by level: bare messages at WARNING and above, timestamps
# and logger names at INFO, file:line at DEBUG.
_CONSOLE_FORMATS = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d - %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    logging.WARNING: ("%(message)s", None),
}
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d - %(message)s"
_FMT_RUNLOG = "%(asctime)s %(message)s"
_DATEFMT_FULL = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("urllib3", "filelock")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name. Unknown names fall back to WARNING.
        log_file: Optional extra file destination (DOTKIT_LOG_FILE).
        log_file_level: Level for ``log_file``; defaults to ``level``.
        quiet_third_party: Pin noisy third-party loggers to WARNING
            unless running at DEBUG.
    """
    console_level = _parse_level(level)
    fmt, datefmt = _console_format(console_level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    handlers: list[logging.Handler] = [console]
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FULL))
        handlers.append(file_handler)
        root_level = min(root_level, file_level)

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _console_format(level: int) -> tuple[str, str | None]:
    if level <= logging.DEBUG:
        return _CONSOLE_FORMATS[logging.DEBUG]
    if level <= logging.INFO:
        return _CONSOLE_FORMATS[logging.INFO]
    return _CONSOLE_FORMATS[logging.WARNING]


def attach_run_log(path: Path, truncate: bool = True) -> logging.Handler:
    """Route the ``dotkit.runlog`` logger to ``path`` for one run.

    The run log does not propagate to the root logger: raw command
    output belongs in the file, not on the console.

    Returns:
        The attached handler. Pass it to ``detach_run_log`` when the
        run ends.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="w" if truncate else "a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FMT_RUNLOG, datefmt=_DATEFMT_FULL))

    run_logger = logging.getLogger(RUN_LOGGER)
    run_logger.setLevel(logging.DEBUG)
    run_logger.propagate = False
    run_logger.addHandler(handler)
    return handler


def detach_run_log(handler: logging.Handler) -> None:
    """Remove and close a handler created by ``attach_run_log``."""
    logging.getLogger(RUN_LOGGER).removeHandler(handler)
    handler.close()


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
