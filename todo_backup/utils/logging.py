"""
Logging setup for todo_backup.

One package logger ("todo_backup") feeds two handlers:
- stderr, at the chosen level, colored on terminals that support it
- a daily file in the log directory, always at DEBUG

Both handlers mask bearer token values.

Environment variables:
    TODO_BACKUP_LOG_LEVEL   DEBUG, INFO, WARNING, ERROR or CRITICAL
    TODO_BACKUP_DEBUG       1/true/yes forces DEBUG
    TODO_BACKUP_LOG_FILE    explicit log file, or none/disabled/"" for no file
"""

import logging
import os
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from todo_backup.utils.paths import resolve_config_dir

LOGGER_NAME = "todo_backup"

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Daily files are named todo_backup_YYYYMMDD.log
LOG_FILE_PREFIX = "todo_backup_"

ENV_LOG_LEVEL = "TODO_BACKUP_LOG_LEVEL"
ENV_DEBUG = "TODO_BACKUP_DEBUG"
ENV_LOG_FILE = "TODO_BACKUP_LOG_FILE"

LEVEL_NAMES = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_TRUTHY = ("1", "true", "yes")
_FILE_LOGGING_OFF = ("none", "disabled", "")

_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)


class TokenRedactionFilter(logging.Filter):
    """Replace bearer token values in log messages with '***'."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _BEARER_PATTERN.sub(r"\1***", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level name and message on a terminal.

    Colors are dropped when stderr is not a TTY, when NO_COLOR is set
    (https://no-color.org/) or when TERM is "dumb".
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and self._terminal_has_color()

    @staticmethod
    def _terminal_has_color() -> bool:
        isatty = getattr(sys.stderr, "isatty", None)
        if isatty is None or not isatty():
            return False
        if os.environ.get("NO_COLOR"):
            return False
        return os.environ.get("TERM", "") != "dumb"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname) if self.use_colors else None
        if color is None:
            return super().format(record)

        # Color a copy; the file handler formats the same record
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        colored.msg = f"{color}{record.msg}{self.RESET}"
        return super().format(colored)


def get_log_level_from_env() -> int:
    """Level from TODO_BACKUP_DEBUG, then TODO_BACKUP_LOG_LEVEL, else INFO."""
    if os.environ.get(ENV_DEBUG, "").lower() in _TRUTHY:
        return logging.DEBUG
    return LEVEL_NAMES.get(os.environ.get(ENV_LOG_LEVEL, "INFO").upper(), logging.INFO)


def get_default_log_dir() -> Path:
    return resolve_config_dir() / "logs"


def get_log_file_path(log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Path of today's log file.

    TODO_BACKUP_LOG_FILE, when set, names the file or turns file logging
    off. Otherwise the file lives in log_dir (default: <config dir>/logs).

    Returns:
        The log file path, or None when file logging is off
    """
    override = os.environ.get(ENV_LOG_FILE)
    if override is not None:
        if override.lower() in _FILE_LOGGING_OFF:
            return None
        return Path(override)

    day = datetime.now().strftime("%Y%m%d")
    return (log_dir or get_default_log_dir()) / f"{LOG_FILE_PREFIX}{day}.log"


def _console_handler(level: int, verbose: bool, use_colors: bool) -> logging.Handler:
    fmt = VERBOSE_FORMAT if verbose else CONSOLE_FORMAT
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(TokenRedactionFilter())
    if use_colors:
        handler.setFormatter(ColoredFormatter(fmt, DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(fmt, DATE_FORMAT))
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.addFilter(TokenRedactionFilter())
    handler.setFormatter(logging.Formatter(VERBOSE_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(
    level: Optional[int] = None,
    verbose: bool = False,
    log_dir: Optional[Path] = None,
    log_file: Optional[Path] = None,
    enable_file_logging: bool = True,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure the package logger.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: Console level. Defaults to the environment, see
            get_log_level_from_env().
        verbose: DEBUG level with file and line in each console message
        log_dir: Directory for the daily log file
        log_file: Explicit log file, takes precedence over log_dir
        enable_file_logging: False logs to the console only
        use_colors: Color console output when the terminal supports it

    Returns:
        The "todo_backup" logger
    """
    if verbose:
        level = logging.DEBUG
    elif level is None:
        level = get_log_level_from_env()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = False

    logger.addHandler(_console_handler(level, verbose, use_colors))

    file_path = None
    if enable_file_logging:
        file_path = log_file or get_log_file_path(log_dir)
    if file_path:
        try:
            logger.addHandler(_file_handler(file_path))
            logger.debug(f"Logging to {file_path}")
        except OSError as e:
            logger.warning(f"Could not open log file {file_path}: {e}")

    return logger


def cleanup_old_logs(log_dir: Optional[Path] = None, keep_count: int = 10) -> int:
    """
    Delete all but the keep_count most recent daily log files.

    A keep_count of 0 or less keeps everything.

    Returns:
        Number of files deleted
    """
    directory = log_dir or get_default_log_dir()
    if keep_count <= 0 or not directory.exists():
        return 0

    by_age = sorted(
        directory.glob(f"{LOG_FILE_PREFIX}*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )
    deleted = 0
    for stale in by_age[keep_count:]:
        try:
            stale.unlink()
        except OSError:
            continue
        deleted += 1
    return deleted


def get_logger(name: str) -> logging.Logger:
    """Logger under the "todo_backup" hierarchy for a module name."""
    if not name.startswith(LOGGER_NAME):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def set_log_level(level: int) -> None:
    """Change the console level at runtime. The log file stays at DEBUG."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)


__all__ = [
    "LOGGER_NAME",
    "CONSOLE_FORMAT",
    "VERBOSE_FORMAT",
    "DATE_FORMAT",
    "ColoredFormatter",
    "TokenRedactionFilter",
    "cleanup_old_logs",
    "get_default_log_dir",
    "get_log_file_path",
    "get_log_level_from_env",
    "get_logger",
    "set_log_level",
    "setup_logging",
]
