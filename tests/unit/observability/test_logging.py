"""Tests for structured logging."""

import pytest

from nodevec.observability.logging import CredentialRedactor, get_logger, setup_logging


class TestSetupLogging:
    """Tests for setup_logging function."""

    @pytest.mark.parametrize("format", ["json", "console"])
    def test_formats(self, format: str) -> None:
        setup_logging(level="DEBUG", format=format, redact_credentials=False)
        get_logger("test").debug("test_message", table="docs")

    def test_with_redaction(self) -> None:
        setup_logging(level="INFO", format="json", redact_credentials=True)
        get_logger("test").info("test_message", dsn="postgresql://u:p@host/db")


class TestCredentialRedactor:
    """Tests for CredentialRedactor processor."""

    @pytest.fixture
    def redactor(self) -> CredentialRedactor:
        return CredentialRedactor()

    def test_redacts_sensitive_keys(self, redactor: CredentialRedactor) -> None:
        result = redactor(None, "info", {"event": "x", "password": "hunter2", "dsn": "postgresql://a"})
        assert result["password"] == "[REDACTED]"
        assert result["dsn"] == "[REDACTED]"
        assert result["event"] == "x"

    def test_masks_credentials_in_urls(self, redactor: CredentialRedactor) -> None:
        result = redactor(None, "error", {"error": "cannot reach postgresql://u:secret@db:5432/x"})
        assert result["error"] == "cannot reach postgresql://[REDACTED]@db:5432/x"

    def test_recurses_into_nested_values(self, redactor: CredentialRedactor) -> None:
        result = redactor(None, "info", {"context": {"token": "abc"}, "items": ["postgres://a:b@h/d"]})
        assert result["context"] == {"token": "[REDACTED]"}
        assert result["items"] == ["postgres://[REDACTED]@h/d"]

    def test_leaves_other_values(self, redactor: CredentialRedactor) -> None:
        result = redactor(None, "info", {"table": "docs", "count": 3})
        assert result == {"table": "docs", "count": 3}


class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_logger(self) -> None:
        assert get_logger("nodevec.test") is not None
