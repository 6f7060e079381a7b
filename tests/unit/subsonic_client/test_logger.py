"""Tests for logging setup and credential redaction."""

import logging
from logging.handlers import RotatingFileHandler

import colorlog
import pytest

from src.subsonic_client.logger import (
    CredentialRedactingFilter,
    redact_credentials,
    setup_logging,
)


@pytest.fixture
def bare_root_logger():
    """Temporarily strip the root logger so setup_logging installs its handlers."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = []
    try:
        yield root
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved_handlers
        root.setLevel(saved_level)


def make_record(msg, *args) -> logging.LogRecord:
    return logging.LogRecord("httpx", logging.INFO, __file__, 1, msg, args, None)


class TestRedaction:
    def test_token_and_salt_are_redacted(self):
        url = "https://music.example.com/rest/ping?u=admin&t=26719a1196d2a940705a59634eb18eab&s=c19b2d&v=1.16.1"

        redacted = redact_credentials(url)

        assert "26719a" not in redacted
        assert "c19b2d" not in redacted
        assert "t=***" in redacted and "s=***" in redacted
        assert "u=admin" in redacted
        assert "v=1.16.1" in redacted

    def test_password_is_redacted(self):
        assert redact_credentials("/rest/ping?p=sesame&u=admin") == "/rest/ping?p=***&u=admin"

    def test_similar_parameter_names_are_kept(self):
        text = "/rest/search3?query=test&songCount=5"
        assert redact_credentials(text) == text

    def test_filter_rewrites_formatted_message(self):
        record = make_record('HTTP Request: %s %s "%s"', "GET", "https://h/rest/ping?t=abc&s=def", "200 OK")

        assert CredentialRedactingFilter().filter(record) is True

        assert record.getMessage() == 'HTTP Request: GET https://h/rest/ping?t=***&s=*** "200 OK"'

    def test_filter_leaves_clean_records_untouched(self):
        record = make_record("Negotiated Subsonic API version %s", "1.16.1")

        CredentialRedactingFilter().filter(record)

        assert record.args == ("1.16.1",)


class TestSetupLogging:
    def test_console_handler(self, bare_root_logger, monkeypatch):
        monkeypatch.setenv("SUBSONIC_LOG_LEVEL", "debug")
        monkeypatch.delenv("SUBSONIC_LOG_FILE", raising=False)

        setup_logging()

        assert bare_root_logger.level == logging.DEBUG
        assert len(bare_root_logger.handlers) == 1
        handler = bare_root_logger.handlers[0]
        assert isinstance(handler.formatter, colorlog.ColoredFormatter)
        assert any(isinstance(f, CredentialRedactingFilter) for f in handler.filters)

    def test_file_handler(self, bare_root_logger, monkeypatch, tmp_path):
        log_file = tmp_path / "subsonic.log"
        monkeypatch.setenv("SUBSONIC_LOG_FILE", str(log_file))
        monkeypatch.setenv("LOG_FILE_MAX_BYTES", "1024")
        monkeypatch.setenv("LOG_FILE_BACKUP_COUNT", "2")

        setup_logging()
        logging.getLogger("httpx").warning("GET /rest/ping?u=admin&p=sesame")

        file_handlers = [h for h in bare_root_logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024
        assert file_handlers[0].backupCount == 2
        file_handlers[0].flush()
        contents = log_file.read_text()
        assert "p=***" in contents
        assert "sesame" not in contents

    def test_existing_handlers_are_kept(self, bare_root_logger, monkeypatch):
        monkeypatch.delenv("SUBSONIC_LOG_FILE", raising=False)
        existing = logging.NullHandler()
        bare_root_logger.addHandler(existing)

        setup_logging()

        assert bare_root_logger.handlers == [existing]
