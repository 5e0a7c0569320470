"""
Tests for logging utilities
"""

import logging

from mdbook_nadi.logging_utils import (
    LOGGER_NAME,
    LogLevel,
    _StderrHandler,
    configure_logging,
    log_command,
    mask_secrets,
    parse_level,
)


class TestMaskSecrets:
    """Tests for secret masking."""

    def test_key_value(self):
        """Test key=value secrets are masked."""
        masked = mask_secrets("API_KEY=abc123 nadi run")
        assert "abc123" not in masked
        assert "***" in masked

    def test_bearer(self):
        """Test bearer tokens are masked."""
        assert "xyz" not in mask_secrets("Authorization: Bearer xyz")

    def test_plain_text(self):
        """Test ordinary text is unchanged."""
        assert mask_secrets("nadi /tmp/script.tasks") == "nadi /tmp/script.tasks"


class TestConfigureLogging:
    """Tests for logger setup."""

    def test_parse_level(self):
        """Test level names are normalized."""
        assert parse_level("debug") == LogLevel.DEBUG
        assert parse_level(LogLevel.ERROR) == LogLevel.ERROR
        assert parse_level("chatty") == LogLevel.INFO

    def test_idempotent(self):
        """Test repeated setup installs a single stderr handler."""
        configure_logging("INFO")
        logger = configure_logging("DEBUG")
        assert sum(isinstance(h, _StderrHandler) for h in logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert logger.name == LOGGER_NAME

    def test_logs_go_to_stderr(self, capsys):
        """Test records are written to stderr, never stdout."""
        logger = configure_logging("DEBUG")
        log_command(logger, "nadi TOKEN=hunter2 x.tasks", "/book/src", 1, 12.5)
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "RC=1" in captured.err
        assert "hunter2" not in captured.err

