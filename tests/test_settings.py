"""
Tests for settings, logging and small utilities.
"""

import logging
from datetime import datetime, timezone

import pytest

from vecsearch.config.settings import Settings, get_settings, settings
from vecsearch.utils.array_utils import array_to_buffer, buffer_to_array
from vecsearch.utils.logger import LoggerMixin, get_logger, setup_logger
from vecsearch.utils.utils import (
    decode,
    denorm_cosine_distance,
    hashify,
    norm_cosine_distance,
    to_epoch_seconds,
    to_number
)


class TestSettings:
    """Test library settings."""

    def test_defaults(self):
        """Test default values."""
        assert get_settings() is settings
        assert settings.KEY_SEPARATOR == ":"
        assert settings.DEFAULT_DIALECT == 2
        assert settings.ROUTE_DISTANCE_THRESHOLD == 0.5

    def test_environment_override(self, monkeypatch):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("REDIS_URL", "redis://cache:6380")
        monkeypatch.setenv("DEFAULT_NUM_RESULTS", "25")

        overridden = Settings()

        assert overridden.REDIS_URL == "redis://cache:6380"
        assert overridden.DEFAULT_NUM_RESULTS == 25

    def test_invalid_environment_value(self, monkeypatch):
        """Test that invalid values are rejected."""
        monkeypatch.setenv("DEFAULT_NUM_RESULTS", "0")
        with pytest.raises(ValueError):
            Settings()


class TestLogger:
    """Test logging helpers."""

    def test_setup_logger_single_handler(self):
        """Test that repeated setup does not duplicate handlers."""
        logger = setup_logger("vecsearch.tests.single", level="DEBUG")
        setup_logger("vecsearch.tests.single", level="DEBUG")

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_unknown_level(self):
        """Test that unknown level names are rejected."""
        with pytest.raises(ValueError, match="Unknown log level"):
            setup_logger("vecsearch.tests.level", level="LOUD")

    def test_log_file(self, tmp_path, monkeypatch):
        """Test logging to a file in the logs directory."""
        monkeypatch.setattr(settings, "LOGS_DIR", tmp_path)

        logger = get_logger("vecsearch.tests.file", log_file="test.log")
        logger.info("written")
        for handler in logger.handlers:
            handler.flush()

        assert "written" in (tmp_path / "test.log").read_text()

    def test_logger_mixin(self):
        """Test the mixin logger name."""
        class Worker(LoggerMixin):
            pass

        worker = Worker()
        assert worker.logger.name.endswith(".Worker")
        assert worker.logger is worker.logger


class TestUtils:
    """Test utility functions."""

    def test_hashify(self):
        """Test that hashes are stable 16-character hex strings."""
        assert hashify("hello") == hashify("hello")
        assert hashify("hello") != hashify("hello!")
        assert len(hashify("hello")) == 16

    def test_cosine_normalization(self):
        """Test cosine distance normalization both ways."""
        assert norm_cosine_distance(0.0) == 1.0
        assert norm_cosine_distance(2.0) == 0.0
        assert denorm_cosine_distance(norm_cosine_distance(0.4)) == pytest.approx(0.4)

    def test_to_epoch_seconds(self):
        """Test datetime conversion."""
        assert to_epoch_seconds(datetime(1970, 1, 2, tzinfo=timezone.utc)) == 86400
        assert to_epoch_seconds(5) == 5
        with pytest.raises(TypeError):
            to_epoch_seconds("yesterday")

    def test_decode_and_to_number(self):
        """Test response decoding helpers."""
        assert decode({b"a": [b"b", 1]}) == {"a": ["b", 1]}
        assert to_number(b"3") == 3
        assert to_number("3.5") == 3.5
        assert to_number("abc") == "abc"

    def test_vector_buffers(self):
        """Test little-endian vector encoding."""
        buffer = array_to_buffer([1.0, 2.0], "float64")

        assert len(buffer) == 16
        assert buffer_to_array(buffer, "float64") == [1.0, 2.0]
        with pytest.raises(ValueError, match="Unsupported vector dtype"):
            array_to_buffer([1.0], "int8")
