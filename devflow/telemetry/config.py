"""Logging configuration and initialization.

This module handles:
- Reading logging configuration from environment variables
- Setting up Python logging with appropriate levels
- Optional file output for long-running drivers
"""

import logging
import os
import sys
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Global state
_logging_initialized = False

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class LoggingConfig:
    """Configuration for logging.

    All values are read from environment variables with sensible defaults.
    """

    log_level: str = "WARNING"
    log_file: str | None = None

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Create config from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "WARNING").upper(),
            log_file=os.getenv("DEVFLOW_LOG_FILE") or None,
        )


def _resolve_level(name: str) -> int:
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(name.upper(), logging.WARNING)


def setup_logging(config: LoggingConfig | None = None, force: bool = False) -> None:
    """Configure the root and ``devflow`` loggers.

    Sets up a stderr handler with a structured format, plus a file handler
    when ``log_file`` is set. Calling it again is a no-op unless ``force``.
    """
    global _logging_initialized
    if _logging_initialized and not force:
        return

    config = config or LoggingConfig.from_env()
    level = _resolve_level(config.log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    # stdout is reserved for command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger("devflow").setLevel(level)

    _logging_initialized = True
    logger.debug(f"Logging configured: level={config.log_level}")
