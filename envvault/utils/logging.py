"""Logging configuration for envvault.

Logging is disabled unless ENVVAULT_LOG is set to a truthy value. When
enabled, messages go to ENVVAULT_LOG_FILE (default ``~/.envvault.log``).

Nothing in envvault passes a secret value to these functions; log lines
carry key names, counts, paths and exit codes only.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_ENABLED = os.environ.get("ENVVAULT_LOG", "false").lower() in ("true", "1", "yes")
LOG_FILE = Path(os.environ.get("ENVVAULT_LOG_FILE", str(Path.home() / ".envvault.log")))
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

_logger: logging.Logger | None = None
_logged_once_keys: set[str] = set()


def setup_logging() -> logging.Logger:
    """Create and configure the ``envvault`` logger.

    A file handler is attached only when logging is enabled; otherwise a
    NullHandler keeps the logger silent.
    """
    global _logger

    logger = logging.getLogger("envvault")
    logger.handlers.clear()
    logger.propagate = False

    if LOG_ENABLED:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
    else:
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.WARNING)

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Return the shared envvault logger, creating it on first use."""
    if _logger is None:
        return setup_logging()
    return _logger


def log_message(message: str) -> None:
    """Write an informational message to the log file (if enabled)."""
    if not LOG_ENABLED:
        return
    get_logger().info(message)


def log_command(command: str, exit_code: int) -> None:
    """Record an external command invocation and its exit code."""
    if not LOG_ENABLED:
        return
    logger = get_logger()
    logger.info(f"COMMAND: {command}")
    logger.info(f"EXIT_CODE: {exit_code}")


def log_once(key: str, message: str) -> None:
    """Log a message only the first time ``key`` is seen in this process."""
    if key in _logged_once_keys:
        return
    _logged_once_keys.add(key)
    log_message(message)


__all__ = [
    "LOG_ENABLED",
    "LOG_FILE",
    "setup_logging",
    "get_logger",
    "log_message",
    "log_command",
    "log_once",
]
