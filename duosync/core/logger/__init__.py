"""
Project logger: console + rotating JSON file.

Usage:
    from duosync.core.logger import configure, LoggerConfig

    configure()                                  # from LOG_* env vars, once at startup
    configure(LoggerConfig(level="DEBUG"))       # or explicitly

    logger = logging.getLogger(__name__)         # any duosync.* module
    logger.info("Timeline calculated", extra={"date": "2024-01-15", "segments": 3})
"""
from duosync.core.logger.config import LoggerConfig
from duosync.core.logger.formatters import JsonFormatter, PlainConsoleFormatter, record_extras
from duosync.core.logger.setup import (
    build_console_handler,
    build_rotating_file_handler,
    configure,
)

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "record_extras",
    "configure",
    "build_rotating_file_handler",
    "build_console_handler",
]
