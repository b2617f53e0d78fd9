"""Logging configuration module"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Optional

from metro_commute.config import settings


# Package logger name
LOGGER_NAME = "metro_commute"


def setup_logger(name: str = LOGGER_NAME, level: Optional[int] = None) -> logging.Logger:
    """
    Configure the package logger

    Module loggers (logging.getLogger(__name__)) are children of this logger
    and inherit its handlers.

    Args:
        name: logger name
        level: log level (None -> settings.LOG_LEVEL)

    Returns:
        configured logger
    """
    logger = logging.getLogger(name)

    # Already configured
    if logger.handlers:
        return logger

    if level is None:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logger.setLevel(level)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        file_handler = logging.FileHandler(settings.LOG_FILE, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


@contextmanager
def log_timing(operation: str, logger: logging.Logger):
    """
    Log start/end and elapsed time of a block

    Usage:
        with log_timing("candidate search", logger):
            candidates = await find_candidates(...)
    """
    start_time = time.perf_counter()
    logger.debug(f"[START] {operation}")

    try:
        yield
    finally:
        elapsed = time.perf_counter() - start_time
        logger.debug(f"[END] {operation} ({elapsed:.2f}s)")


# ========== HTTP logging ==========

def log_http_response(
    logger: logging.Logger,
    url: str,
    status_code: int,
    elapsed_ms: float,
):
    """HTTP response logging"""
    level = logging.DEBUG if status_code == 200 else logging.WARNING
    logger.log(level, f"[HTTP] <- {status_code} {url} ({elapsed_ms:.0f}ms)")


def log_http_error(
    logger: logging.Logger,
    url: str,
    error: Exception,
):
    """HTTP error logging (no retries: the caller falls back)"""
    logger.warning(f"[HTTP] ERROR {url}: {type(error).__name__}: {error}")
