"""Shared utilities for configuration and logging"""

from doctrack.utils.config_loader import ConfigLoader
from doctrack.utils.logging_config import configure_logging, get_logger

__all__ = ["ConfigLoader", "configure_logging", "get_logger"]
