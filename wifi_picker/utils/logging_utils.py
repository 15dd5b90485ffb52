"""
Logging utilities with time-since-start tracking.

Log lines carry the elapsed time since the picker started, which makes the
interleaving of scan, connect and listener events easy to follow.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(app_time)s - %(name)s - %(levelname)s - %(message)s"


class AppTimeFormatter(logging.Formatter):
    """Formatter that adds an `app_time` field (mm:ss.mmm since start)."""

    def __init__(
        self, fmt: Optional[str] = None, datefmt: Optional[str] = None, app_start_time: Optional[float] = None
    ):
        super().__init__(fmt, datefmt)
        self.app_start_time = app_start_time or time.time()

    def format(self, record):
        elapsed_seconds = record.created - self.app_start_time
        minutes = int(elapsed_seconds // 60)
        seconds = elapsed_seconds % 60
        record.app_time = f"{minutes:02d}:{seconds:06.3f}"
        return super().format(record)


_app_start_time: Optional[float] = None


def get_app_start_time() -> float:
    global _app_start_time
    if _app_start_time is None:
        _app_start_time = time.time()
    return _app_start_time


def set_app_start_time(start_time: float) -> None:
    global _app_start_time
    _app_start_time = start_time


def create_app_time_formatter(fmt: Optional[str] = None, datefmt: Optional[str] = None) -> AppTimeFormatter:
    """
    Create a formatter anchored at the application start time.

    Args:
        fmt: Log format string. If None, uses the default with the app_time field.
        datefmt: Date format string

    Returns:
        AppTimeFormatter instance
    """
    return AppTimeFormatter(fmt=fmt or DEFAULT_FORMAT, datefmt=datefmt, app_start_time=get_app_start_time())


def configure_logging(debug: bool = False, log_file: Optional[Union[str, Path]] = None) -> None:
    """Install console and optional file handlers on the root logger.

    The console handler writes to stderr so stdout stays free for picker output.
    With a log file, the console only shows warnings and the file gets everything.
    """
    set_app_start_time(time.time())
    level = logging.DEBUG if debug else logging.INFO
    formatter = create_app_time_formatter()

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        console_handler.setLevel(logging.WARNING)

    # Reduce noise from the D-Bus library
    logging.getLogger("jeepney").setLevel(logging.WARNING)
