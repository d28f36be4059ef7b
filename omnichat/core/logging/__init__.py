"""Logging module for Omnichat."""

from .context import clear_processing_context, set_processing_context
from .logger import get_api_logger, get_app_logger, get_logger, setup_app_logging

__all__ = [
    "clear_processing_context",
    "get_api_logger",
    "get_app_logger",
    "get_logger",
    "set_processing_context",
    "setup_app_logging",
]
