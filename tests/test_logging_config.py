"""Tests for logging_config.py utility functions."""

import os
import logging
from unittest.mock import patch
from photo_pipeline.core.logging_config import setup_logger, get_logger


class TestSetupLogger:
    """Tests for setup_logger function."""

    def test_setup_logger_default_parameters(self):
        """Test setup_logger with default parameters."""
        with patch.dict(os.environ, {}, clear=True):
            test_logger = setup_logger()
        assert test_logger.name == "photo-pipeline"
        assert test_logger.level == logging.INFO
        assert len(test_logger.handlers) == 1
        assert not test_logger.propagate

    def test_setup_logger_custom_level_by_parameter(self):
        """Test setup_logger with custom level via parameter."""
        test_logger = setup_logger(name="test-param-level", level="DEBUG")
        assert test_logger.level == logging.DEBUG

    def test_setup_logger_custom_level_by_env_var(self):
        """Test setup_logger with custom level via environment variable."""
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}):
            test_logger = setup_logger(name="test-env-level")
            assert test_logger.level == logging.WARNING

    def test_setup_logger_invalid_level_defaults_to_info(self):
        """Test setup_logger with invalid level defaults to INFO."""
        test_logger = setup_logger(name="test-invalid-level", level="INVALID_LEVEL")
        assert test_logger.level == logging.INFO

    def test_setup_logger_structured_format(self):
        """Test setup_logger with structured format."""
        with patch.dict(os.environ, {}, clear=True):
            test_logger = setup_logger(name="test-structured", format_type="structured")
        format_string = test_logger.handlers[0].formatter._fmt
        assert "%(asctime)s" in format_string
        assert "%(levelname)" in format_string
        assert "%(funcName)s" in format_string

    def test_setup_logger_simple_format_from_env(self):
        """Test LOG_FORMAT selects the simple format."""
        with patch.dict(os.environ, {"LOG_FORMAT": "simple"}):
            test_logger = setup_logger(name="test-simple-env")
        format_string = test_logger.handlers[0].formatter._fmt
        assert format_string == "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def test_setup_logger_no_duplicate_handlers(self):
        """Test repeated setup keeps a single handler."""
        setup_logger(name="test-dup")
        test_logger = setup_logger(name="test-dup")
        assert len(test_logger.handlers) == 1


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger_returns_configured_logger(self):
        """Test get_logger configures the named logger."""
        test_logger = get_logger("test-get-logger")
        assert test_logger.name == "test-get-logger"
        assert test_logger.handlers
