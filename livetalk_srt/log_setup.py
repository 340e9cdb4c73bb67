"""Logging configuration for the LiveTalk SubRip converter.

The console shows messages at the level chosen on the command line. The log
file, when enabled, also keeps the DEBUG status events of every conversion
("Read CSV File : SeqNo=n" and so on), so a failed run can be traced line by
line after the fact.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, TextIO

from .exceptions import FileSystemError
from .utils import ensure_dir_exists

LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _console_handler(level: int, stream: Optional[TextIO]) -> logging.Handler:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    return handler


def _file_handler(log_dir: str, log_file: str, level: int) -> logging.Handler:
    """Opens a rotating UTF-8 log file, creating `log_dir` first."""
    ensure_dir_exists(log_dir)
    handler = RotatingFileHandler(
        os.path.join(log_dir, log_file),
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding='utf-8'
    )
    handler.setLevel(level)
    return handler


def _replace_root_handlers(root: logging.Logger, handlers) -> None:
    for old in root.handlers[:]:
        root.removeHandler(old)
        old.close()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)


def setup_logging(
    log_level: int = logging.INFO,
    log_dir: Optional[str] = "logs",
    log_file: str = "livetalk_srt.log",
    file_log_level: int = logging.DEBUG,
    stream: Optional[TextIO] = None
) -> None:
    """
    Points the root logger at the console and, optionally, a rotating file.

    Calling this again replaces whatever handlers an earlier call installed,
    which lets the CLI start with console logging and add the file once the
    configuration has been read.

    Args:
        log_level: Minimum level shown on the console.
        log_dir: Directory for the log file. None or "" means console only.
        log_file: File name inside `log_dir`.
        file_log_level: Minimum level written to the file.
        stream: Console stream. Defaults to stdout.
    """
    root = logging.getLogger()
    handlers = [_console_handler(log_level, stream)]
    problem = None
    if log_dir:
        try:
            handlers.append(_file_handler(log_dir, log_file, file_log_level))
        except (OSError, FileSystemError) as e:
            problem = e

    root_level = log_level if len(handlers) == 1 else min(log_level, file_log_level)
    root.setLevel(root_level)
    _replace_root_handlers(root, handlers)

    if problem is not None:
        # Console logging still works; carry on without the file
        root.warning(f"Could not open log file {os.path.join(log_dir, log_file)}: {problem}")
    elif log_dir:
        root.info(f"Logging initialized. Log file: {os.path.join(log_dir, log_file)}")
