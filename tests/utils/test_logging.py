"""Tests for logging setup."""

import logging

import pytest
from pangea.utils.logging import get_logger, parse_level, set_log_level


@pytest.fixture
def restore_level():
    """Put the pangea logger back to INFO after the test."""
    yield
    set_log_level("INFO")


class TestLogLevels:
    """Test log level handling."""

    @pytest.mark.parametrize("level,expected", [
        ("debug", logging.DEBUG),
        ("WARNING", logging.WARNING),
        (logging.ERROR, logging.ERROR),
    ])
    def test_parse_level(self, level, expected):
        """Test level names and constants."""
        assert parse_level(level) == expected

    def test_unknown_level(self):
        """Test that unknown level names are rejected."""
        with pytest.raises(ValueError, match="Unknown log level 'verbose'"):
            parse_level("verbose")

    def test_set_log_level_applies_to_module_loggers(self, restore_level):
        """Test that module loggers inherit the pangea level."""
        set_log_level("ERROR")

        assert get_logger("loader.template_loader").getEffectiveLevel() == logging.ERROR
        assert not get_logger("graph").isEnabledFor(logging.WARNING)
