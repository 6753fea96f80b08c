"""
Logging configuration and utilities for lyricsearch

Console output is reserved for what a user of the CLI needs to see: warnings,
errors and records explicitly marked with console_info(). Everything else,
including per-source timings, goes to the optional rotating log file.
Console records are written through tqdm so they never tear the source
progress bar drawn while a search is running.
"""

import logging
import logging.handlers
import re
import sys
import time
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Style
from tqdm import tqdm


colorama.init()


# Libraries whose records are noise for lyricsearch users
QUIET_LOGGERS = ('aiohttp', 'asyncio', 'urllib3', 'requests', 'lyricsgenius')

FILE_FORMAT = '%(asctime)s | %(name)-36s | %(levelname)-8s | %(message)s'

_SIZE_UNITS = {'B': 1, 'KB': 1024, 'MB': 1024 ** 2, 'GB': 1024 ** 3}


class UserFacingFilter(logging.Filter):
    """Pass warnings and above, plus records flagged with console_output"""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.WARNING or bool(getattr(record, 'console_output', False))


class LevelColorFormatter(logging.Formatter):
    """
    Console formatter

    Plain console_info messages are printed as-is; warnings and errors get
    a colored level prefix.
    """

    PREFIXES = {
        logging.WARNING: Fore.YELLOW + "warning:",
        logging.ERROR: Fore.RED + "error:",
        logging.CRITICAL: Fore.RED + Style.BRIGHT + "critical:",
    }

    def __init__(self, use_colors: bool = True):
        super().__init__('%(message)s')
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        prefix = self.PREFIXES.get(record.levelno)
        if prefix is None:
            return message
        if not self.use_colors:
            return f"{record.levelname.lower()}: {message}"
        return f"{prefix}{Style.RESET_ALL} {message}"


class TqdmHandler(logging.Handler):
    """Console handler that prints above any active tqdm bar"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except Exception:
            self.handleError(record)


def parse_size(size: str) -> int:
    """
    Convert a size such as "10MB" or "512 KB" to bytes

    Raises:
        ValueError: The string is not a number followed by B, KB, MB or GB
    """
    match = re.fullmatch(r'\s*(\d+(?:\.\d+)?)\s*([KMG]?B)\s*', size.upper())
    if not match:
        raise ValueError(f"Invalid size format: {size}")
    return int(float(match.group(1)) * _SIZE_UNITS[match.group(2)])


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
    colored_output: bool = True,
    max_size: str = "10MB",
    backup_count: int = 3
) -> None:
    """
    Install lyricsearch's handlers on the root logger

    Args:
        level: Level for the log file; DEBUG also shows source timings on the console
        log_file: Rotating log file path (None disables file logging)
        console_output: Show user-facing records on stderr
        colored_output: Color warning and error prefixes
        max_size: Log size before rotation, e.g. "10MB"
        backup_count: Rotated files to keep
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    if console_output:
        console = TqdmHandler()
        if numeric_level > logging.DEBUG:
            console.addFilter(UserFacingFilter())
        console.setFormatter(LevelColorFormatter(use_colors=colored_output))
        root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=parse_size(max_size), backupCount=backup_count, encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.CRITICAL)
        noisy.propagate = False

    logging.getLogger('lyricsearch').debug(f"Logging ready (level={level}, file={log_file or 'none'})")


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger with a console_info() shortcut

    console_info(message) logs at INFO and marks the record for the console.
    """
    logger = logging.getLogger(name)

    def console_info(message: str) -> None:
        logger.info(message, extra={'console_output': True})

    logger.console_info = console_info
    return logger


def configure_from_settings(settings=None) -> None:
    """Apply the logging section of the settings; relative log files live in the config directory"""
    if settings is None:
        from ..config.settings import get_settings
        settings = get_settings()

    log_file = None
    if settings.logging.file:
        log_file = Path(settings.logging.file)
        if not log_file.is_absolute():
            log_file = settings.get_config_directory() / log_file

    setup_logging(
        level=settings.logging.level,
        log_file=str(log_file) if log_file else None,
        console_output=settings.logging.console_output,
        colored_output=settings.logging.colored_output,
        max_size=settings.logging.max_size,
        backup_count=settings.logging.backup_count,
    )


class SourceProgress:
    """
    Tracks sources settling during one search

    Draws a tqdm bar on stderr (unless disabled) and logs each finished
    source with its running count.
    """

    def __init__(self, logger: logging.Logger, total: int, show_bar: bool = True):
        self.logger = logger
        self.total = total
        self.show_bar = show_bar
        self.finished = 0
        self.bar: Optional[tqdm] = None
        self._started: Optional[float] = None

    def start(self, query: str) -> None:
        self._started = time.monotonic()
        self.logger.info(f"Searching {self.total} sources for '{query}'")
        if self.show_bar and self.total:
            self.bar = tqdm(
                total=self.total,
                desc="🔎 Sources",
                bar_format="{desc} {n}/{total} {bar} {postfix}",
                ncols=80,
                colour='cyan',
                leave=False,
            )

    def source_finished(self, display_name: str, finished: int) -> None:
        """Record that `finished` sources have settled, the latest being display_name"""
        self.finished = finished
        self.logger.info(f"{display_name} settled ({finished}/{self.total})")
        if self.bar is not None:
            self.bar.n = finished
            self.bar.set_postfix_str(display_name)
            self.bar.refresh()

    def close(self, failed: Optional[BaseException] = None) -> None:
        if self.bar is not None:
            self.bar.close()
            self.bar = None

        elapsed = time.monotonic() - self._started if self._started else 0.0
        if failed is not None:
            self.logger.error(f"Search failed after {elapsed:.2f}s: {failed}")
        else:
            self.logger.info(f"Search finished in {elapsed:.2f}s ({self.finished}/{self.total} sources)")
