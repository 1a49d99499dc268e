"""
Logging configuration for blindrank.

Sets up loguru sinks. Library modules only bind named loggers;
setup_logging replaces loguru's default stderr handler.
"""

import sys
from pathlib import Path
from typing import Any

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}:{function}:{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}"


def setup_logging(level: str = "INFO", debug: bool = False, log_dir: str | Path | None = ".") -> None:
    """
    Configure loguru logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: If True, log DEBUG to stderr and to a dedicated debug file
        log_dir: Directory for blindrank.log (None disables file logging)
    """
    logger.remove()
    logger.configure(extra={"name": "blindrank"})

    logger.add(sys.stderr, level="DEBUG" if debug else level, format=CONSOLE_FORMAT)

    if log_dir is None:
        return

    directory = Path(log_dir)
    # Session summaries and warnings
    logger.add(
        directory / "blindrank.log",
        level="INFO",
        format=FILE_FORMAT,
        rotation="10 MB",
        retention="7 days",
        compression="zip",
    )
    if debug:
        logger.add(
            directory / "blindrank_debug.log",
            level="DEBUG",
            format=FILE_FORMAT,
            rotation="50 MB",
            retention="3 days",
            compression="zip",
        )


def get_logger(name: str | None = None) -> Any:
    """Get a loguru logger bound to name (defaults to "blindrank")."""
    return logger.bind(name=name or "blindrank")
