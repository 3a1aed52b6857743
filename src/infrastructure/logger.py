"""
Logger Module

Provides a centralized logging system that outputs to both console and file.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

# Application log file path (relative to project root)
_LOG_FILE_NAME = "suivi_absences.log"

# Overrides the default log file for loggers created afterwards
_log_file_override: Optional[Path] = None

_FORMATTER = logging.Formatter(
    fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)


def _get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent


def set_log_file(path: Optional[Path]) -> None:
    """Set the log file used by loggers created from now on (None = default)."""
    global _log_file_override
    _log_file_override = Path(path) if path else None


def get_logger(name: str, log_file: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger with console and file handlers.

    Args:
        name: Logger name (typically component name like "HistoryStore")
        log_file: Optional custom log file path. If None, uses the default log file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    # Console handler - INFO level and above
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(_FORMATTER)
    logger.addHandler(console_handler)

    # File handler - DEBUG level and above
    if log_file:
        log_path = Path(log_file)
    else:
        log_path = _log_file_override or _get_project_root() / _LOG_FILE_NAME
    try:
        file_handler = logging.FileHandler(
            log_path,
            mode="a",
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(_FORMATTER)
        logger.addHandler(file_handler)
    except (OSError, PermissionError) as e:
        # If file logging fails, just log to console
        logger.warning(f"Impossible de créer le fichier de log {log_path}: {e}")

    return logger
