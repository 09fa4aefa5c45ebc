"""
logging_config.py — Centralized Logging Configuration for the Checkout Service

This module configures unified logging behavior for the entire application.
It ensures that all modules log messages consistently to the console and,
when configured, to a file.

Features:
    • Console output (stdout), optionally combined with a log file
    • Process ID tagging for multi-worker visibility
    • Standardized log format for all modules
    • Reduced verbosity for external dependencies (stripe, pymongo)
"""

import logging
import sys

QUIET_LOGGERS = ("stripe", "pymongo")


def setup_logging(level=logging.INFO, log_file=None):
    """
    Configures the global logging system for the application.

    Args:
        level (int): Root log level. Defaults to INFO.
        log_file (str | None): Optional path of a persistent log file. When empty,
            only the console handler is installed.
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s'

    # Console output (stdout, Docker-compatible)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=log_format, handlers=handlers)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name):
    """
    Returns a logger for a module or component name.

    Args:
        name (str): The logger name, typically the module's __name__.

    Returns:
        logging.Logger: A logger that follows the global format and handlers.
    """
    return logging.getLogger(name)
