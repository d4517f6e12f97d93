"""Logging setup for Branch-and-Price runs."""

import logging
import sys


def setup_logging(log_level="INFO"):
    """Send log records of ``log_level`` and above to stdout.

    Args:
        log_level: 'DEBUG', 'INFO', 'WARNING', 'ERROR' or 'CRITICAL'.

    Returns:
        The configured root logger.
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    return root_logger
