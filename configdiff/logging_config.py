"""Logging configuration for the ConfigDiff service."""

import logging
import os
import sys
from typing import Optional, TextIO

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, fmt=None, datefmt=None, stream: Optional[TextIO] = None):
        super().__init__(fmt, datefmt=datefmt)
        # Colors only when the handler's own stream is a terminal
        self.stream = stream

    def format(self, record):
        stream = self.stream or sys.stdout
        if not (hasattr(stream, "isatty") and stream.isatty()):
            return super().format(record)

        # Color a copy so other handlers still see the plain record
        record = logging.makeLogRecord(record.__dict__)
        log_color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{log_color}{record.levelname}{self.RESET}"
        record.name = f"\033[34m{record.name}{self.RESET}"  # Blue for logger name
        return super().format(record)


def setup_logging(log_level: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    """Setup centralized logging configuration for the API server and CLI."""

    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    stream = stream or sys.stdout
    handler = logging.StreamHandler(stream)
    handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT, stream=stream))

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )

    configure_component_loggers(log_level)
    configure_external_loggers()


def configure_component_loggers(default_level: str = "INFO") -> None:
    """Configure logging for pipeline components."""
    # Component level can be tuned independently of the root level
    component_level = os.getenv("CONFIGDIFF_LOG_LEVEL", default_level)

    component_loggers = [
        'configdiff.parsers',
        'configdiff.rules',
        'configdiff.pipeline',
        'configdiff.sequencing',
        'configdiff.api',
    ]

    for logger_name in component_loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, component_level.upper(), logging.INFO))


def configure_external_loggers() -> None:
    """Configure logging levels for external libraries."""
    access_level = os.getenv("ACCESS_LOG_LEVEL", "WARNING")

    external_loggers = {
        'uvicorn.access': getattr(logging, access_level.upper(), logging.WARNING),
        'uvicorn.error': logging.INFO,
        'asyncio': logging.WARNING,
        'yaml': logging.WARNING,
    }

    for logger_name, level in external_loggers.items():
        logging.getLogger(logger_name).setLevel(level)


def get_component_logger(component_name: str) -> logging.Logger:
    """Get a properly configured logger for a pipeline component."""
    return logging.getLogger(f"configdiff.{component_name}")
