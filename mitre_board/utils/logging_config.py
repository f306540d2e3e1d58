"""
Logging setup for the board process.

The scanner, the taxonomy loader and the uvicorn server all log through the
root logger configured by ``setup_logging``: a console handler with optional
level colors and, when requested, a rotating log file. ``log_function_timing``
reports how long each startup phase took.
"""

import functools
import logging
import logging.handlers
import os
import sys
import time
from pathlib import Path
from typing import Optional

from ..config import LOG_DATE_FORMAT, LOG_FORMAT


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name on terminals."""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt=None, datefmt=None, use_colors=None):
        super().__init__(fmt, datefmt)
        self.use_colors = _stdout_supports_color() if use_colors is None else use_colors

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno)
        if not self.use_colors or color is None:
            return super().format(record)

        # Color a copy; the same record also reaches the plain file handler
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def _stdout_supports_color() -> bool:
    """NO_COLOR and FORCE_COLOR win over terminal detection."""
    if os.environ.get('NO_COLOR'):
        return False
    if os.environ.get('FORCE_COLOR'):
        return True
    if not sys.stdout.isatty():
        return False
    return os.environ.get('TERM', 'dumb') != 'dumb'


def setup_logging(log_level: str = 'INFO',
                  log_file: Optional[str] = None,
                  enable_colors: bool = True,
                  max_file_size: int = 10 * 1024 * 1024,
                  backup_count: int = 5) -> None:
    """
    Install the board's handlers on the root logger.

    Any handlers already present are removed first, so calling this twice
    does not duplicate output. The uvicorn server is started with
    ``log_config=None`` and logs through these handlers too.

    Args:
        log_level: Level name such as 'DEBUG' or 'WARNING'
        log_file: Rotating log file next to the console output, if given
        enable_colors: Color level names on the console when it is a terminal
        max_file_size: Bytes before the log file is rotated
        backup_count: Rotated files kept

    Raises:
        ValueError: If ``log_level`` is not a logging level name
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {log_level}')

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)

    root_logger.addHandler(_console_handler(numeric_level, enable_colors))
    destinations = ['console']

    if log_file:
        root_logger.addHandler(_file_handler(log_file, numeric_level, max_file_size, backup_count))
        destinations.append(f"{Path(log_file).absolute()} (rotating at "
                            f"{max_file_size // (1024 * 1024)}MB, {backup_count} backups)")

    _configure_third_party_loggers()

    logging.getLogger(__name__).info(
        f"Logging at {logging.getLevelName(numeric_level)} to {', '.join(destinations)}"
    )


def _console_handler(level: int, enable_colors: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if enable_colors:
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, LOG_DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    return handler


def _file_handler(log_file: str, level: int, max_file_size: int, backup_count: int) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=max_file_size,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT + ' - [PID:%(process)d]', LOG_DATE_FORMAT))
    return handler


def _configure_third_party_loggers():
    """Lower chatty third-party loggers so the board's own messages stand out."""
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('concurrent.futures').setLevel(logging.WARNING)


def log_function_timing(func):
    """
    Log how long ``func`` ran, at INFO when it returns and at ERROR when it raises.

    The exception itself is re-raised unchanged for the caller to report.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__)
        started = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{func.__name__} aborted after {time.perf_counter() - started:.2f}s: {e}")
            raise
        logger.info(f"{func.__name__} finished in {time.perf_counter() - started:.2f}s")
        return result

    return wrapper
