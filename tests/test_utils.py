# tests/test_utils.py
"""Test utilities and helpers"""

import logging

import pytest

from lyricsearch.utils.helpers import clamp, format_milliseconds, truncate_string
from lyricsearch.utils.logger import (
    LevelColorFormatter,
    SourceProgress,
    UserFacingFilter,
    get_logger,
    parse_size,
)


def make_record(level, **extra):
    record = logging.LogRecord('lyricsearch.test', level, __file__, 1, 'msg', None, None)
    record.__dict__.update(extra)
    return record


class TestHelpers:
    """Test helper functions"""

    def test_clamp(self):
        """Test value bounding"""
        assert clamp(2, 5, 15) == 5
        assert clamp(10, 5, 15) == 10
        assert clamp(50, 5, 15) == 15

    def test_format_milliseconds(self):
        """Test duration formatting"""
        assert format_milliseconds(850) == "850ms"
        assert format_milliseconds(1234) == "1.2s"
        assert format_milliseconds(0) == "0ms"
        assert format_milliseconds(None) == "0ms"

    def test_truncate_string(self):
        """Test string truncation"""
        assert truncate_string("Amazing Grace", 20) == "Amazing Grace"
        assert truncate_string("Amazing Grace", 10) == "Amazing..."
        assert truncate_string(None, 10) == ""


class TestLogger:
    """Test logging helpers"""

    def test_parse_size(self):
        """Test log file size parsing"""
        assert parse_size("10MB") == 10 * 1024 ** 2
        assert parse_size("512 kb") == 512 * 1024
        with pytest.raises(ValueError):
            parse_size("ten megabytes")

    def test_user_facing_filter(self):
        """Only warnings and marked messages reach the console"""
        console_filter = UserFacingFilter()
        assert console_filter.filter(make_record(logging.WARNING))
        assert console_filter.filter(make_record(logging.INFO, console_output=True))
        assert not console_filter.filter(make_record(logging.INFO))

    def test_formatter_prefixes(self):
        """Test level prefixes without colors"""
        formatter = LevelColorFormatter(use_colors=False)
        assert formatter.format(make_record(logging.INFO)) == "msg"
        assert formatter.format(make_record(logging.WARNING)) == "warning: msg"

    def test_get_logger_console_info(self):
        """Test console_info marks records for the console"""
        logger = get_logger('lyricsearch.test.console')
        records = []
        handler = logging.Handler()
        handler.emit = records.append
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        try:
            logger.console_info("3 results")
        finally:
            logger.removeHandler(handler)

        assert records[0].console_output is True

    def test_source_progress_without_bar(self):
        """Progress without a bar only counts and logs"""
        progress = SourceProgress(get_logger('lyricsearch.test'), total=3, show_bar=False)
        progress.start("hello")
        progress.source_finished("LRCLIB", 1)
        assert progress.bar is None
        assert progress.finished == 1
        progress.close()
