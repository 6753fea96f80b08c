"""
Utility functions and helpers for lyricsearch
Common functions for number bounds, timing and display formatting
"""

import time
from typing import Union


def clamp(value: Union[int, float], lower: Union[int, float], upper: Union[int, float]) -> Union[int, float]:
    """
    Bound a value to the inclusive range [lower, upper]

    Args:
        value: Value to bound
        lower: Smallest allowed value
        upper: Largest allowed value

    Returns:
        value limited to the range
    """
    return min(max(value, lower), upper)


def elapsed_ms(start: float) -> int:
    """Milliseconds elapsed since a time.monotonic() reading"""
    return int((time.monotonic() - start) * 1000)


def format_milliseconds(duration_ms: Union[int, float, None]) -> str:
    """
    Format a duration for display

    Args:
        duration_ms: Duration in milliseconds

    Returns:
        "850ms" below one second, "1.2s" above
    """
    if not duration_ms or duration_ms < 0:
        return "0ms"
    if duration_ms < 1000:
        return f"{int(duration_ms)}ms"
    return f"{duration_ms / 1000:.1f}s"


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate string to maximum length with suffix

    Args:
        text: Text to truncate
        max_length: Maximum length including suffix
        suffix: Suffix to add if truncated

    Returns:
        Truncated string
    """
    if not text or len(text) <= max_length:
        return text or ""

    return text[:max_length - len(suffix)] + suffix
