"""Logging setup for epub_reader.

Modules log through ``logging.getLogger(__name__)``. This module only
configures the ``epub_reader`` namespace logger they all propagate to.
Per-document problems (unsupported encoding, unreadable resource, anchor not
found) are warnings, so they stay visible with ``--quiet``.
"""

import logging
import sys

# Default format for log files
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
SIMPLE_FORMAT = "%(levelname)s: %(message)s"
# Anchor resolution decisions need the module name to be readable.
DEBUG_FORMAT = "%(levelname)s %(name)s: %(message)s"

ROOT_LOGGER_NAME = "epub_reader"


def level_for(verbose: bool = False, quiet: bool = False) -> int:
    """Map the command line verbosity flags to a level; ``verbose`` wins."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def setup_logging(
    level: int = logging.INFO,
    log_file: str | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """Configure the package logger.

    Args:
        level: Logging level (default: INFO)
        log_file: Path to a log file written in addition to stderr
        format_string: Console format; by default the module name is shown
            only at DEBUG level

    Returns:
        The configured ``epub_reader`` logger
    """
    if format_string is None:
        format_string = DEBUG_FORMAT if level <= logging.DEBUG else SIMPLE_FORMAT

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(format_string))
    package_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        package_logger.addHandler(file_handler)

    return package_logger


def set_level(level: int) -> None:
    """Change the level of the package logger and its handlers."""
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)
    for handler in package_logger.handlers:
        handler.setLevel(level)
