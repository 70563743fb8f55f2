"""
Opt-in logging setup for applications that do not configure logging
themselves. The library never calls this on its own.

Environment:
    DATABRICKS_LOG_LEVEL  DEBUG/TRACE, INFO, WARN/WARNING, ERROR/ERR, OFF/NONE (default INFO)
    DATABRICKS_LOG_FILE   write to this file instead of stderr
"""
import logging
import os
import sys
from typing import Optional

LOGGER_NAME = "databricks_client"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "TRACE": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "ERR": logging.ERROR,
    # Above CRITICAL: nothing gets through.
    "OFF": logging.CRITICAL + 10,
    "NONE": logging.CRITICAL + 10,
}


def resolve_level(name: Optional[str]) -> int:
    """Map a DATABRICKS_LOG_LEVEL value to a logging level; unknown values mean INFO."""
    if not name:
        return logging.INFO
    return _LEVELS.get(name.strip().upper(), logging.INFO)


def configure_logging(
    level: Optional[str] = None, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Attach a single handler to the package logger.

    Explicit arguments win over the environment. Calling this again
    replaces the handler installed by the previous call.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level_value = resolve_level(level or os.environ.get("DATABRICKS_LOG_LEVEL"))
    log_file = log_file or os.environ.get("DATABRICKS_LOG_FILE")

    handler: logging.Handler
    if log_file:
        try:
            handler = logging.FileHandler(log_file)
        except OSError as e:
            handler = logging.StreamHandler(sys.stderr)
            logger.warning(f"Cannot open log file {log_file} ({e}), logging to stderr")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._databricks_client_handler = True  # type: ignore[attr-defined]

    for existing in list(logger.handlers):
        if getattr(existing, "_databricks_client_handler", False):
            logger.removeHandler(existing)
            existing.close()

    logger.addHandler(handler)
    logger.setLevel(level_value)
    return logger
