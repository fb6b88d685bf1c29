"""Logging helpers for applications embedding the session core.

sessionkit modules attach context such as the session id fingerprint, the
failing operation or a DynamoDB error code through ``extra={...}``. The
formatter installed by setup_logger() prints those fields after the message.
"""
import logging
import sys
from typing import IO, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


class ContextFormatter(logging.Formatter):
    """Formatter that appends ``extra`` fields as ``key=value`` pairs.

    Example output::

        2026-01-01 12:00:00 - sessionkit.session.manager - INFO - Session started [session_id=AbCdEfGh... session_name=SESSIONID]
    """

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = self.context_fields(record)
        if not context:
            return line

        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        # Keep tracebacks last so the context stays on the message line
        message, sep, rest = line.partition("\n")
        return f"{message} [{pairs}]{sep}{rest}"

    @staticmethod
    def context_fields(record: logging.LogRecord) -> dict:
        return {
            key: value
            for key, value in sorted(vars(record).items())
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        }


def setup_logger(
    name: str = "sessionkit",
    level: str = "INFO",
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """Configure console logging for the session core.

    Every sessionkit module logs through ``logging.getLogger(__name__)``, so
    configuring the ``sessionkit`` logger covers the whole package.

    Args:
        name: Logger name (defaults to the package logger)
        level: Log level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to INFO if an invalid level is provided
        stream: Output stream for the handler (defaults to stdout)

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger(level="DEBUG")
        >>> logger.debug("Session storage selected")
    """
    logger = logging.getLogger(name)

    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO
        print(f"Warning: Invalid log level '{level}', defaulting to INFO", file=sys.stderr)

    logger.setLevel(log_level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(ContextFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)

    # sessionkit output goes through this handler only
    logger.propagate = False

    return logger


def fingerprint(session_id: str) -> str:
    """Shorten a session id for log output."""
    if not session_id:
        return "-"
    return f"{session_id[:8]}..."
