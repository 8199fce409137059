"""
Application logging utilities.

Provides logging setup for the 'autolinks' logger hierarchy, with Rich console
output in dev mode and a plain stream handler otherwise.
"""

import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme


# Custom theme for log levels
_LOG_THEME = Theme({
    "logging.level.debug": "dim cyan",
    "logging.level.info": "green",
    "logging.level.warning": "yellow",
    "logging.level.error": "bold red",
    "logging.level.critical": "bold white on red",
    "log.time": "dim",
    "log.message": "default",
    "log.path": "dim",
})

# Shared console instance with custom theme
_console = Console(theme=_LOG_THEME, stderr=True)


# Root logger name for the engine
ROOT_LOGGER_NAME = 'autolinks'

# Module-level cache for logger instances
_loggers: dict[str, logging.Logger] = {}


def setup_logging(
    level: str = 'INFO',
    log_format: Optional[str] = None,
    include_console: bool = True,
    rich_tracebacks: bool = True,
    show_path: bool = False,
    show_time: bool = True,
    dev_mode: bool = False,
) -> None:
    """
    Setup logging for the autolinks package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format string for the plain handler. If None, uses default format.
        include_console: Whether to log to the console at all (default: True)
        rich_tracebacks: Whether to use rich for exception tracebacks (default: True)
        show_path: Whether to show file path in console logs (default: False)
        show_time: Whether to show timestamp in console logs (default: True)
        dev_mode: Whether to use rich console output (default: False)
    """
    if log_format is None:
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    level_value = getattr(logging, level.upper())

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level_value)
    logger.handlers.clear()

    if include_console:
        if dev_mode:
            console_handler: logging.Handler = RichHandler(
                console=_console,
                level=level_value,
                show_time=show_time,
                show_path=show_path,
                rich_tracebacks=rich_tracebacks,
                markup=False,
            )
        else:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(logging.Formatter(log_format))
        console_handler.setLevel(level_value)
        logger.addHandler(console_handler)
    else:
        logger.addHandler(logging.NullHandler())

    # Prevent propagation to root logger
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified component.

    Args:
        name: The name of the component (e.g., 'sources', 'renderer')
              Will be prefixed with 'autolinks.' automatically.

    Returns:
        A configured logging.Logger instance
    """
    full_name = f"{ROOT_LOGGER_NAME}.{name}" if name else ROOT_LOGGER_NAME

    if full_name not in _loggers:
        logger = logging.getLogger(full_name)

        # Add NullHandler to prevent "No handler found" warnings
        # when setup_logging hasn't been called
        if not logger.handlers:
            logger.addHandler(logging.NullHandler())

        _loggers[full_name] = logger

    return _loggers[full_name]


# Create root logger on module import with NullHandler
_root_logger = logging.getLogger(ROOT_LOGGER_NAME)
_root_logger.addHandler(logging.NullHandler())
