"""Logging configuration for loan_payoff.

The calculation engine is silent; the command-line and web front ends log
through the ``loan_payoff`` logger hierarchy configured here. Settings can
come from arguments or environment variables.
"""

import json
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ENV_LOG_LEVEL = "LOAN_PAYOFF_LOG_LEVEL"
ENV_LOG_FILE = "LOAN_PAYOFF_LOG_FILE"
ENV_STRUCTURED_LOGS = "LOAN_PAYOFF_STRUCTURED_LOGS"

ROOT_LOGGER = "loan_payoff"

_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message"}


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        # Anything passed through ``extra=``
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value
        return json.dumps(log_data, default=str)


def _resolve_level(level: Optional[str]) -> int:
    level_str = level or os.getenv(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL
    return getattr(logging, level_str.upper(), logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the ``loan_payoff`` hierarchy.

    Modules outside the package (the web app) get a child logger so that
    one call to :func:`configure_logging` covers them too.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Simulated payoff", extra={"periods_saved": 12})
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Attach handlers to the ``loan_payoff`` logger.

    Args:
        level: Logging level name. Defaults to ``LOAN_PAYOFF_LOG_LEVEL`` or INFO.
        log_file: Rotating log file path. Defaults to ``LOAN_PAYOFF_LOG_FILE``.
        console: Whether to log to stderr.
        structured: Emit JSON lines; also enabled by ``LOAN_PAYOFF_STRUCTURED_LOGS``.
        max_bytes: Size of the log file before rotation.
        backup_count: Rotated files to keep.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()

    log_level = _resolve_level(level)
    logger.setLevel(log_level)
    logger.propagate = False

    use_structured = structured or os.getenv(ENV_STRUCTURED_LOGS, "").lower() in ("true", "1", "yes")
    if use_structured:
        formatter: logging.Formatter = StructuredFormatter(datefmt=DEFAULT_DATE_FORMAT)
    else:
        formatter = logging.Formatter(DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    if console:
        # stderr keeps command output on stdout clean
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    log_file_path = log_file or os.getenv(ENV_LOG_FILE)
    if log_file_path:
        Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
