"""
Rich-based logger with channel and participant context for Omnichat.

Context is added as a message prefix read from context variables, so the
console and file formats stay simple.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from omnichat.core.config.settings import settings

from .context import get_current_channel_context, get_current_participant_context


class CompactFormatter(logging.Formatter):
    """Shortens omnichat module names to their last two parts."""

    def format(self, record):
        if record.name.startswith("omnichat."):
            parts = record.name.split(".")
            if len(parts) > 2:
                record.name = ".".join(parts[-2:])

        return super().format(record)


_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "debug": "dim white",
    }
)
_console = Console(theme=_theme)


class ContextLogger:
    """Logger wrapper that prefixes messages with channel and participant context."""

    def __init__(
        self,
        logger: logging.Logger,
        channel_id: str | None = None,
        participant_id: str | None = None,
    ):
        self.logger = logger
        self.channel_id = channel_id or "---"
        self.participant_id = participant_id or "---"

    def _format_message(self, message: str) -> str:
        # Context is read on every call so long-lived loggers follow the task
        current_channel = get_current_channel_context() or self.channel_id
        current_participant = get_current_participant_context() or self.participant_id

        prefix = ""
        if current_channel and current_channel != "---":
            prefix += f"[C:{current_channel}]"
        if current_participant and current_participant != "---":
            prefix += f"[P:{current_participant}]"
        return f"{prefix} {message}" if prefix else message

    def debug(self, message: str, *args, **kwargs) -> None:
        self.logger.debug(self._format_message(message), *args, **kwargs)

    def info(self, message: str, *args, **kwargs) -> None:
        self.logger.info(self._format_message(message), *args, **kwargs)

    def warning(self, message: str, *args, **kwargs) -> None:
        self.logger.warning(self._format_message(message), *args, **kwargs)

    def error(self, message: str, *args, **kwargs) -> None:
        self.logger.error(self._format_message(message), *args, **kwargs)

    def critical(self, message: str, *args, **kwargs) -> None:
        self.logger.critical(self._format_message(message), *args, **kwargs)

    def exception(self, message: str, *args, **kwargs) -> None:
        self.logger.exception(self._format_message(message), *args, **kwargs)


def setup_logging(
    *,
    level: str = "INFO",
    mode: str = "PROD",
    log_dir: str | None = None,
    console_fmt: str | None = None,
    file_fmt: str | None = None,
) -> None:
    """
    Initialize the root logger with Rich formatting.

    Parameters
    ----------
    level : str
        Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
    mode : str
        "DEV" creates daily log files + console; anything else → console only
    log_dir : str, optional
        Directory for log files (DEV mode only)
    """
    lvl = level.upper()
    lvl = lvl if lvl in ("DEBUG", "INFO", "WARNING", "ERROR") else "INFO"

    console_format = console_fmt or "[%(name)s] %(message)s"
    file_format = file_fmt or "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

    rich_handler = RichHandler(
        console=_console,
        rich_tracebacks=True,
        show_time=True,
        show_level=True,
        markup=False,
    )
    rich_handler.setFormatter(CompactFormatter(console_format))

    handlers: list[logging.Handler] = [rich_handler]

    if mode.upper() == "DEV" and log_dir:
        os.makedirs(log_dir, exist_ok=True)
        logfile = os.path.join(log_dir, f"omnichat_{datetime.now():%Y%m%d}.log")
        file_handler = logging.FileHandler(logfile, encoding="utf-8")
        file_handler.setFormatter(CompactFormatter(file_format))
        handlers.append(file_handler)
        _console.print(f"[green]DEV mode:[/] console + file → {logfile}")
    else:
        _console.print(f"Logging configured for mode '{mode}'. Console only.")

    logging.basicConfig(level=lvl, handlers=handlers, force=True)

    logging.getLogger("OmnichatLoggerSetup").info(f"Logging initialized ({lvl})")


def setup_app_logging() -> None:
    """Initialize application logging once during startup."""
    setup_logging(
        level=settings.log_level,
        mode="DEV" if settings.is_development else "PROD",
        log_dir=settings.log_dir if settings.is_development else None,
    )


def get_logger(name: str) -> ContextLogger:
    """
    Get a logger that automatically uses processing context variables.

    Args:
        name: Logger name (usually __name__)

    Returns:
        ContextLogger instance with automatic context from context variables
    """
    return ContextLogger(
        logging.getLogger(name),
        channel_id=get_current_channel_context(),
        participant_id=get_current_participant_context(),
    )


def get_app_logger() -> ContextLogger:
    """Logger for application lifecycle events (startup, shutdown, etc.)."""
    return get_logger("omnichat.app")


def get_api_logger(name: str | None = None) -> ContextLogger:
    """Logger for HTTP endpoints and middleware."""
    return get_logger(name or "omnichat.api")
