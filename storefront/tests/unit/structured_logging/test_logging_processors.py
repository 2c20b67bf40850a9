"""
Tests for log redaction processors.
"""

from storefront.structured_logging.logging_processors import (
    add_correlation_id,
    sanitize_sensitive_data,
    scrub_token_query,
)


def test_credentials_are_redacted():
    event = sanitize_sensitive_data(
        None,
        "info",
        {"event": "login", "password": "hunter2", "Authorization": "Bearer abc", "token_length": 120},
    )

    assert event["password"] == "[REDACTED]"
    assert event["Authorization"] == "[REDACTED]"
    assert event["token_length"] == 120
    assert event["event"] == "login"


def test_nested_context_is_redacted():
    event = sanitize_sensitive_data(None, "error", {"details": {"jwt_secret": "s", "operation": "append"}})
    assert event["details"] == {"jwt_secret": "[REDACTED]", "operation": "append"}


def test_token_query_is_scrubbed_from_paths():
    event = sanitize_sensitive_data(None, "info", {"path": "/api/ws?token=abc.def&x=1"})
    assert event["path"] == "/api/ws?token=[REDACTED]&x=1"


def test_scrub_leaves_other_parameters():
    assert scrub_token_query("/productos?page=2") == "/productos?page=2"


def test_correlation_id_added_once():
    event = add_correlation_id(None, "info", {"event": "x"})
    assert event["correlation_id"]
    assert add_correlation_id(None, "info", {"connection_id": "c-1"}) == {"connection_id": "c-1"}
