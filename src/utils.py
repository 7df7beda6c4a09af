"""
utils.py
--------
Logging, timing decorators, and shared helper functions.
"""

import os
import math
import logging
import time
import functools
from datetime import datetime
from pathlib import Path
from typing import Optional


_FORMAT = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def _file_handler(log_dir: str) -> logging.FileHandler:
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_file = os.path.join(
        log_dir, f"invest_engine_{datetime.now().strftime('%Y%m%d')}.log"
    )
    fh = logging.FileHandler(log_file)
    fh.setFormatter(_FORMAT)
    return fh


def get_logger(name: str,
               log_dir: Optional[str] = os.getenv("LOG_DIR") or None,
               level: str = os.getenv("LOG_LEVEL", "INFO")) -> logging.Logger:
    """
    Return a named logger writing to stdout and, optionally, a daily file.

    Parameters
    ----------
    name    : Logger name (typically the module __name__).
    log_dir : Directory for log files (LOG_DIR). None keeps the console only.
    level   : Logging level string (LOG_LEVEL, default "INFO").

    Returns
    -------
    logging.Logger
    """
    logger = logging.getLogger(name)

    if logger.handlers:          # avoid duplicate handlers on re-import
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Console handler
    ch = logging.StreamHandler()
    ch.setFormatter(_FORMAT)
    logger.addHandler(ch)

    # File handler
    if log_dir:
        logger.addHandler(_file_handler(log_dir))

    return logger


def configure_logging(level: str = "INFO", log_dir: Optional[str] = None,
                      prefix: str = "src") -> None:
    """
    Apply a level, and optionally a daily log file, to every logger already
    created under `prefix`. Module loggers are built at import time, so the
    runner calls this once the configuration has been loaded.
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    for name in list(logging.root.manager.loggerDict):
        if name != prefix and not name.startswith(prefix + "."):
            continue
        logger = logging.getLogger(name)
        logger.setLevel(numeric)
        if log_dir and not any(isinstance(h, logging.FileHandler)
                               for h in logger.handlers):
            logger.addHandler(_file_handler(log_dir))


def timeit(func):
    """Decorator that logs the execution time of any function."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__)
        t0 = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - t0
        logger.debug("%s completed in %.3f s", func.__qualname__, elapsed)
        return result
    return wrapper


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp value to [lo, hi] range."""
    return max(lo, min(value, hi))


def is_finite(*values: float) -> bool:
    """True when every value is a finite real number."""
    return all(math.isfinite(v) for v in values)


def format_millions(value: float, symbol: str = "₫") -> str:
    """Compact currency label used by the demo runner, e.g. '₫332M'."""
    return f"{symbol}{value / 1e6:,.0f}M"
