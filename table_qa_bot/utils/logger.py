"""
Logging configuration for the table QA bot.

Log records go to stderr, so stdout carries only the chatbot's answers, and
to a file under ``logs/`` in the working directory (or ``LOG_FILE``).
"""

import logging
import sys
from typing import Dict

from table_qa_bot.config import settings

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler() -> logging.Handler:
    settings.paths.ensure_directories()
    handler = logging.FileHandler(settings.paths.log_file, delay=True)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


class LoggerFactory:
    """Factory for creating configured loggers."""

    _loggers: Dict[str, logging.Logger] = {}

    @classmethod
    def get_logger(cls, name: str = "table_qa_bot") -> logging.Logger:
        """
        Get or create a configured logger.

        Args:
            name: Logger name

        Returns:
            Configured logger instance
        """
        if name in cls._loggers:
            return cls._loggers[name]

        logger = logging.getLogger(name)
        level = _resolve_level(settings.logging.level)
        logger.setLevel(level)
        logger.handlers.clear()
        logger.addHandler(_console_handler(level))

        try:
            logger.addHandler(_file_handler())
        except OSError as e:
            logger.warning(f"Could not create file handler: {e}")

        cls._loggers[name] = logger
        return logger

    @classmethod
    def set_level(cls, level: str, name: str = "table_qa_bot") -> None:
        """Change the level of a logger and its console output; the file keeps DEBUG."""
        log_level = _resolve_level(level)
        logger = cls.get_logger(name)
        logger.setLevel(log_level)
        for handler in logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(log_level)


# Default logger instance
logger = LoggerFactory.get_logger()
