"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

from security_gateway.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    clear_request_id,
    hash_identifier,
    redact,
    set_request_id,
)


def _capture(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_sensitive_filter_redacts_credentials():
    """Ensure SensitiveDataFilter redacts API key and token fields."""

    logger, stream = _capture("test_redaction")

    logger.info(
        "test_event",
        extra={
            "api_key": "sk-secret-123",
            "authorization": "Bearer another-secret",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()

    assert "sk-secret-123" not in output
    assert "another-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_caller_input():
    """Ensure raw and sanitized caller input never reach the log output."""

    logger, stream = _capture("test_input_redaction")

    logger.info(
        "input_validation.flagged",
        extra={
            "input": "<script>document.cookie</script>",
            "sanitized": "SELECT password FROM users",
            "warnings": ["Input was sanitized"],
        },
    )

    output = stream.getvalue()

    assert "document.cookie" not in output
    assert "SELECT password" not in output
    assert "[REDACTED]" in output
    assert "Input was sanitized" in output


def test_sensitive_filter_allows_safe_fields():
    """Verify safe fields pass through unmodified."""

    logger, stream = _capture("test_safe_fields")

    logger.info(
        "safe_event",
        extra={
            "request_id": "req-123",
            "route": "/v1/security-utils",
            "status": 200,
            "duration_ms": 150.5,
        },
    )

    output = stream.getvalue()

    assert "req-123" in output
    assert "/v1/security-utils" in output
    assert "200" in output
    assert "[REDACTED]" not in output


def test_sensitive_filter_redacts_nested_dicts():
    """Ensure nested sensitive fields are redacted."""

    logger, stream = _capture("test_nested")

    logger.info(
        "nested_event",
        extra={
            "headers": {
                "apikey": "secret-key",
                "user-agent": "pytest",
            },
            "safe_data": {
                "count": 5,
                "type": "test",
            },
        },
    )

    output = stream.getvalue()

    assert "secret-key" not in output
    assert "[REDACTED]" in output
    assert "pytest" in output
    assert "test" in output


def test_json_formatter_includes_request_id_from_context():
    logger, stream = _capture("test_request_id")

    set_request_id("req-ctx-1")
    try:
        logger.warning("rate_limit.exceeded")
    finally:
        clear_request_id()

    record = json.loads(stream.getvalue())
    assert record["request_id"] == "req-ctx-1"
    assert record["level"] == "warning"
    assert record["message"] == "rate_limit.exceeded"


def test_hash_identifier_is_stable_and_opaque():
    digest = hash_identifier("login:203.0.113.9")

    assert digest == hash_identifier("login:203.0.113.9")
    assert digest != hash_identifier("login:203.0.113.10")
    assert len(digest) == 16
    assert "203.0.113.9" not in digest


def test_redact_descends_into_lists_and_ignores_key_case():
    value = {
        "attempts": [{"Password": "hunter2", "user": "u1"}, ("Authorization", "x")],
        "Database_URL": "postgresql://user:pw@db/gateway",
    }

    result = redact(value)

    assert result["attempts"][0] == {"Password": "[REDACTED]", "user": "u1"}
    assert result["attempts"][1] == ["Authorization", "x"]
    assert result["Database_URL"] == "[REDACTED]"
