"""
Logging utilities for the methylation analysis pipeline.

Modules log through ``logging.getLogger(__name__)``; configuring the
package logger here makes every stage's messages share one set of handlers.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)


def setup_logger(
    name: str = "tumor_methylation",
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    console: bool = True
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        name: Logger name (the package name captures all stage loggers)
        level: Logging level (default: INFO)
        log_file: Optional path of a log file, created with its parents
        console: Whether to echo to stdout

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Re-running setup must not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        _attach(logger, logging.StreamHandler(sys.stdout), level)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _attach(logger, logging.FileHandler(log_path), level)

    return logger


def set_verbosity(logger: logging.Logger, verbose: bool) -> None:
    """Switch a configured logger and its handlers between INFO and DEBUG."""
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
