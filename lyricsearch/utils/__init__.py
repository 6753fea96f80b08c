"""
Utility package for lyricsearch

- logger: console and rotating file logging, source progress tracking
- helpers: bounds, timing and display formatting
"""

from .logger import setup_logging, get_logger, configure_from_settings, SourceProgress
from .helpers import clamp, elapsed_ms, format_milliseconds, truncate_string

__all__ = [
    'setup_logging',
    'get_logger',
    'configure_from_settings',
    'SourceProgress',
    'clamp',
    'elapsed_ms',
    'format_milliseconds',
    'truncate_string',
]
