"""Package logger setup for notelink.

Modules log through ``logging.getLogger(__name__)`` and never configure
handlers themselves. The CLI calls :func:`configure_logging` once; library
users who never call it get the standard ``logging`` defaults.

What goes where:
    DEBUG    per-file read failures, discovery fallbacks, skipped file names
    INFO     rebuild summaries, missing roots, file-count caps
    WARNING  watcher problems
    ERROR    failures surfaced to the CLI

``NOTELINK_LOG_LEVEL`` picks the level (INFO when unset or unknown).
"""

import logging
import os
import sys

PACKAGE_LOGGER = "notelink"
LOG_LEVEL_ENV = "NOTELINK_LOG_LEVEL"
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def _level_from_env() -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def _apply_level(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def configure_logging(level: int | None = None) -> logging.Logger:
    """Attach a stderr handler to the package logger, once.

    Args:
        level: Explicit level; defaults to the one named by NOTELINK_LOG_LEVEL.

    Returns:
        The package logger. A second call only updates the level when one is
        given.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if logger.handlers:
        if level is not None:
            _apply_level(logger, level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    _apply_level(logger, _level_from_env() if level is None else level)
    return logger


def set_quiet_mode(quiet: bool) -> None:
    """Keep only errors (CLI ``--quiet``); False restores the configured level."""
    configure_logging(logging.ERROR if quiet else _level_from_env())
