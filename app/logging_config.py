"""
Logging setup for the intake service.
"""
import logging
import os
import sys
from typing import Optional


def setup_logging(level: Optional[str] = None, name: str = "app") -> logging.Logger:
    """
    Attach one stdout handler to the package logger. Safe to call twice.
    """
    logger = logging.getLogger(name)
    logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | [%(name)s] | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger
