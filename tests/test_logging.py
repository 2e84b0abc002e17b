"""Tests for log redaction and request context binding."""

import structlog

from repoguard.logging_config import REDACTED, bind_request_context, clear_request_context, redact_sensitive


def test_sensitive_keys_are_redacted():
    event_dict = {
        "event": "token_exchange",
        "token": "ghs_secret",
        "Authorization": "Bearer eyJ",
        "private_key": "-----BEGIN",
        "installation_id": "4242",
    }

    result = redact_sensitive(None, "info", event_dict)

    assert result["token"] == REDACTED
    assert result["Authorization"] == REDACTED
    assert result["private_key"] == REDACTED
    assert result["installation_id"] == "4242"
    assert result["event"] == "token_exchange"


def test_request_context_binding():
    bind_request_context("trc_0123456789abcdef", delivery_id="d-1", event_type="repository")
    try:
        bound = structlog.contextvars.get_contextvars()
        assert bound == {"trace_id": "trc_0123456789abcdef", "delivery_id": "d-1", "event_type": "repository"}
    finally:
        clear_request_context()
    assert structlog.contextvars.get_contextvars() == {}


def test_optional_context_is_omitted():
    bind_request_context("trc_0123456789abcdef")
    try:
        assert structlog.contextvars.get_contextvars() == {"trace_id": "trc_0123456789abcdef"}
    finally:
        clear_request_context()
