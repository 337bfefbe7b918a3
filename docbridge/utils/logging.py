"""Logging configuration for docbridge."""

import logging
from typing import Optional
from rich.logging import RichHandler
from rich.console import Console


def setup_logging(log_level: str = "INFO", rich_console: Optional[Console] = None) -> None:
    """
    Setup logging configuration with Rich handler for enhanced output.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        rich_console: Optional Rich console instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    if rich_console is None:
        rich_console = Console(stderr=True)

    rich_handler = RichHandler(
        console=rich_console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False
    )
    rich_handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Replace any previously installed handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.addHandler(rich_handler)

    logging.getLogger("docbridge").setLevel(numeric_level)

    # Driver loggers never go below WARNING
    for name in ("pymongo", "urllib3"):
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    if name == "docbridge" or name.startswith("docbridge."):
        return logging.getLogger(name)
    return logging.getLogger(f"docbridge.{name}")
