"""Centralized structlog configuration for doctrack."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

import structlog
from pydantic import BaseModel

from doctrack.models.config import LoggingConfig

# Rotating log file: 10MB per file, 5 backups
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 5


def _loggable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return sorted((_loggable(item) for item in value), key=repr)
    if isinstance(value, (list, tuple)):
        return [_loggable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _loggable(item) for key, item in value.items()}
    return value


def render_tracking_values(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Make change pairs, update operations and sets renderable as JSON.

    Update operations become ``{"kind": ..., "value": ...}`` mappings, sets
    become sorted lists and ``(old, new)`` pairs become two-element lists.
    """
    return {key: _loggable(value) for key, value in event_dict.items()}


def build_processors(json_logs: bool) -> list[Any]:
    """
    Build the structlog processor chain.

    Args:
        json_logs: If True, render JSON. If False, render for the console.

    Returns:
        Ordered list of structlog processors ending with a renderer
    """
    processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        render_tracking_values,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ],
        ),
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    return processors


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    log_file: str | None = None,
) -> None:
    """
    Configure structured logging.

    Change-set commits and resets are logged at DEBUG, storage interactions
    at INFO and storage failures at ERROR.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON logs. If False, use console format.
        log_file: Optional path to a rotating log file

    Example:
        >>> configure_logging(log_level="DEBUG", json_logs=False)
        >>> log = structlog.stdlib.get_logger()
        >>> log.info("repository_initialized", bucket="default")
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        stream=sys.stdout,
    )

    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
        )
        file_handler.setLevel(numeric_level)
        logging.root.addHandler(file_handler)

    structlog.configure(
        processors=build_processors(json_logs),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_config(config: LoggingConfig) -> None:
    """Configure logging from the ``logging`` section of :class:`AppConfig`."""
    configure_logging(
        log_level=config.log_level,
        json_logs=config.json_logs,
        log_file=config.log_file,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Optional logger name. If None, uses the calling module's name.

    Returns:
        Configured structlog logger
    """
    return structlog.stdlib.get_logger(name)
