# clinic_dashboard/utils/logging_config.py
"""
Logging configuration for the Clinic Dashboard.

Every module logs under the ``clinic_dashboard`` logger. Streamlit re-executes
the page script on each interaction, so ``setup_logging`` is called many times
per session; it only rebuilds the handlers when the settings change.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from clinic_dashboard.utils.config import LOG_DIR, LOG_LEVEL, LOG_TO_FILE

ROOT_LOGGER_NAME = "clinic_dashboard"

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(funcName)s() - %(message)s"
)

# Settings the current handlers were built with
_configured: Optional[Tuple[int, bool, str]] = None


class SensitiveDataFilter(logging.Filter):
    """Mask bearer tokens and password values in emitted log lines."""

    _PATTERNS = (
        (re.compile(r"(Bearer\s+)[\w\-.~+/]+=*", re.IGNORECASE), r"\1***"),
        (
            re.compile(r"((?:password|token)\w*['\"]?\s*[:=]\s*['\"]?)[^\s'\",}]+", re.IGNORECASE),
            r"\1***",
        ),
    )

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = message
        for pattern, replacement in self._PATTERNS:
            masked = pattern.sub(replacement, masked)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _close_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(
    log_level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
    log_dir: Optional[str] = None,
    force: bool = False,
) -> logging.Logger:
    """
    Set up logging configuration for the application.

    Args:
        log_level: Logging level name (defaults to LOG_LEVEL)
        log_to_file: Also write a daily file under ``log_dir`` (defaults to LOG_TO_FILE)
        log_dir: Directory for log files (defaults to LOG_DIR)
        force: Rebuild the handlers even if the settings did not change

    Returns:
        The ``clinic_dashboard`` root logger
    """
    global _configured

    level_name = (log_level or LOG_LEVEL).upper()
    level = getattr(logging, level_name, logging.INFO)
    to_file = LOG_TO_FILE if log_to_file is None else log_to_file
    directory = log_dir or LOG_DIR

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    settings = (level, to_file, directory)
    if not force and _configured == settings and logger.handlers:
        return logger

    logger.setLevel(level)
    _close_handlers(logger)

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = [logging.StreamHandler()]

    if to_file:
        logs_dir = Path(directory)
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = logs_dir / f"clinic_dashboard_{datetime.now().strftime('%Y%m%d')}.log"
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(SensitiveDataFilter())
        logger.addHandler(handler)

    _configured = settings
    logger.info(f"Logging initialized - Level: {level_name}, File: {to_file}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger nested under the ``clinic_dashboard`` root.

    Args:
        name: Module name (usually __name__); package names are used as is

    Returns:
        Logger instance
    """
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_error_with_context(logger: logging.Logger, error: Exception, context: str = ""):
    """Log an unexpected error with its traceback, prefixed by what was happening."""
    error_msg = f"Error: {str(error)}"
    if context:
        error_msg = f"{context} - {error_msg}"

    logger.error(error_msg, exc_info=True)


setup_logging()
