from __future__ import annotations

import logging
import logging.handlers
import os
import pathlib
import sys
from typing import Any, List, Optional, Union

import structlog
from pythonjsonlogger import jsonlogger


class LoggingManager:
    """Configures process-wide logging for a Netloy run.

    Python's logging module carries every record; structlog sits in front of it
    so that builders can attach key/value context (package type, paths, tool
    names) to their messages. Console output is either human-readable text or
    JSON, and a rotating log file can be added for CI machines.
    """

    # Mapping from string log levels to logging module constants
    LOG_LEVELS = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }

    def __init__(self) -> None:
        self._root_logger: Optional[logging.Logger] = None
        self._handlers: List[logging.Handler] = []
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(
            self,
            level: str = "info",
            log_format: str = "text",
            log_file: Optional[Union[str, pathlib.Path]] = None,
            stream: Any = None,
    ) -> None:
        """Set up handlers and the structlog processor chain.

        Args:
            level: Log level name (debug, info, warning, error, critical).
            log_format: Either ``text`` or ``json``.
            log_file: Optional path of a rotating log file.
            stream: Console stream, stderr by default.
        """
        log_level = self.LOG_LEVELS.get(level.lower(), logging.INFO)
        log_format = log_format.lower()

        self._root_logger = logging.getLogger()
        self._root_logger.setLevel(log_level)

        # Remove handlers installed by an earlier initialize call
        for handler in self._handlers:
            self._root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

        if log_format == "json":
            formatter = self._create_json_formatter()
        else:
            formatter = self._create_text_formatter()

        console_handler = logging.StreamHandler(stream or sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        self._add_handler(console_handler)

        if log_file:
            log_path = pathlib.Path(log_file)
            os.makedirs(log_path.parent, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(self._create_json_formatter())
            self._add_handler(file_handler)

        self._configure_structlog()
        self._initialized = True

    def _add_handler(self, handler: logging.Handler) -> None:
        self._root_logger.addHandler(handler)
        self._handlers.append(handler)

    def _create_json_formatter(self) -> logging.Formatter:
        """Create a JSON formatter for log records.

        Returns:
            logging.Formatter: A formatter that outputs logs in JSON format.
        """
        return jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
            json_ensure_ascii=False,
        )

    def _create_text_formatter(self) -> logging.Formatter:
        return structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
            foreign_pre_chain=[
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            ],
        )

    def _configure_structlog(self) -> None:
        """Configure structlog for structured logging."""
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def get_logger(self, name: str) -> Any:
        """Get a structured logger for the given component name."""
        return structlog.get_logger(name)

    def shutdown(self) -> None:
        if self._root_logger is not None:
            for handler in self._handlers:
                self._root_logger.removeHandler(handler)
                handler.close()
        self._handlers = []
        self._initialized = False


_manager = LoggingManager()


def configure_logging(
        level: str = "info",
        log_format: str = "text",
        log_file: Optional[Union[str, pathlib.Path]] = None,
        stream: Any = None,
) -> LoggingManager:
    """Initialize the shared LoggingManager and return it."""
    _manager.initialize(level=level, log_format=log_format, log_file=log_file, stream=stream)
    return _manager


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


# Route structlog through stdlib logging even before configure_logging runs
_manager._configure_structlog()
