"""Logging setup shared by the CLI and the orchestrator.

Three output modes:
- Human mode: [LEVEL] message (colored on a TTY)
- Verbose mode: [LEVEL][HH:MM:SS] message
- CI/JSON mode: {"level":"...","ts":"...","msg":"...", ...extra}
"""

import json
import logging
import sys
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TextIO

ROOT_LOGGER_NAME = "polyast"


class LogMode(Enum):
    """Logging output mode."""

    HUMAN = "human"
    VERBOSE = "verbose"
    JSON = "json"


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    GRAY = "\033[90m"


LEVEL_COLORS = {
    logging.DEBUG: Colors.GRAY,
    logging.INFO: Colors.GREEN,
    logging.WARNING: Colors.YELLOW,
    logging.ERROR: Colors.RED,
    logging.CRITICAL: Colors.RED,
}


def _is_tty(stream: TextIO | None = None) -> bool:
    """Check if the stream is a TTY (supports colors)."""
    if stream is None:
        stream = sys.stderr
    return hasattr(stream, "isatty") and stream.isatty()


class _LevelPrefixFormatter(logging.Formatter):
    """Base for the human-facing formatters.

    Renders ``[LEVEL]`` followed by an optional timestamp block, colouring the
    level tag when the output stream supports it.
    """

    with_timestamp = False

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        tag = f"[{record.levelname}]"
        if self.use_colors:
            color = LEVEL_COLORS.get(record.levelno, Colors.RESET)
            tag = f"{color}{tag}{Colors.RESET}"

        if self.with_timestamp:
            tag += f"[{datetime.now().strftime('%H:%M:%S')}]"

        message = f"{tag} {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


class HumanFormatter(_LevelPrefixFormatter):
    """Format: [LEVEL] message"""


class VerboseFormatter(_LevelPrefixFormatter):
    """Format: [LEVEL][HH:MM:SS] message"""

    with_timestamp = True


class JSONFormatter(logging.Formatter):
    """Formatter for JSON lines output.

    Format: {"level":"INFO","ts":"2026-01-31T19:45:23+00:00","msg":"..."}

    Structured fields attached through ``PolyastLogger.structured`` are merged
    into the top-level object.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "level": record.levelname,
            "ts": datetime.now(UTC).isoformat(),
            "logger": record.name,
            "msg": record.getMessage(),
        }

        extra = getattr(record, "extra_data", None)
        if extra:
            entry.update(extra)

        return json.dumps(entry, default=str)


class PolyastLogger(logging.Logger):
    """Logger with a helper for structured (key/value) records."""

    def structured(self, level: int, msg: str, **kwargs: Any) -> None:
        """Log ``msg`` with extra fields that JSON mode emits verbatim.

        Args:
            level: Log level
            msg: Log message
            **kwargs: Fields to include in JSON output
        """
        if not self.isEnabledFor(level):
            return
        record = self.makeRecord(self.name, level, "(structured)", 0, msg, (), None)
        if kwargs:
            record.extra_data = kwargs  # type: ignore[attr-defined]
        self.handle(record)


logging.setLoggerClass(PolyastLogger)


def get_logger(name: str = ROOT_LOGGER_NAME) -> PolyastLogger:
    """Get a polyast logger.

    Args:
        name: Logger name; dotted names below ``polyast`` inherit its handlers

    Returns:
        PolyastLogger instance
    """
    return logging.getLogger(name)  # type: ignore[return-value]


def setup_logging(
    mode: LogMode = LogMode.HUMAN,
    level: int = logging.INFO,
    stream: TextIO | None = None,
) -> None:
    """Install a single handler on the ``polyast`` logger.

    Args:
        mode: Output mode (human, verbose, json)
        level: Minimum log level
        stream: Output stream (default: stderr, so stdout stays machine-readable)
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    target = stream or sys.stderr
    use_colors = _is_tty(target)

    if mode == LogMode.JSON:
        formatter: logging.Formatter = JSONFormatter()
    elif mode == LogMode.VERBOSE:
        formatter = VerboseFormatter(use_colors=use_colors)
    else:
        formatter = HumanFormatter(use_colors=use_colors)

    handler = logging.StreamHandler(target)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def configure_from_cli(
    verbose: bool = False,
    quiet: bool = False,
    ci: bool = False,
) -> None:
    """Configure logging from the global CLI flags.

    Args:
        verbose: Timestamps and DEBUG level
        quiet: Warnings and errors only
        ci: JSON lines output
    """
    if ci:
        mode = LogMode.JSON
    elif verbose:
        mode = LogMode.VERBOSE
    else:
        mode = LogMode.HUMAN

    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    setup_logging(mode=mode, level=level)
