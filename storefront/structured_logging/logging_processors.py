"""
Logging processors for structlog event processing.

Redaction runs before any renderer: credential-like keys are masked, and
chat handshake URLs have their `token` query parameter scrubbed because
browser clients put the access token there.
"""

import re
import uuid
from typing import Any

# Key names are matched case-insensitively against these patterns
SENSITIVE_PATTERNS = [
    r"\bpassword\b",
    r"\bhashed_password\b",
    r"\btoken\b",
    r"\bsecret\b",
    r"\bjwt_secret\b",
    r"_key\b",
    r"^key$",
    r"\bcredentials?\b",
    r"\bbearer\b",
    r"\bauthorization\b",
]

# Match a pattern above but carry no secret
SAFE_FIELDS = {
    "token_length",
    "token_source",
    "primary_key",
}

# Keys whose string values may embed a URL with a query string
URL_FIELDS = {"url", "path", "query_string", "request_url"}

_TOKEN_QUERY = re.compile(r"([?&]token=)[^&#\s]*", re.IGNORECASE)


def _is_sensitive(key: str) -> bool:
    key_lower = key.lower()
    if key_lower in SAFE_FIELDS:
        return False
    return any(re.search(pattern, key_lower) for pattern in SENSITIVE_PATTERNS)


def scrub_token_query(value: str) -> str:
    """Mask the value of a `token` query parameter inside a URL string."""
    return _TOKEN_QUERY.sub(r"\1[REDACTED]", value)


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive data from log entries.

    Nested dicts (error contexts, details) are sanitized recursively.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to sanitize

    Returns:
        Sanitized event dictionary
    """

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            if isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
            elif isinstance(key, str) and _is_sensitive(key):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, str) and key in URL_FIELDS:
                sanitized[key] = scrub_token_query(value)
            else:
                sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


def add_correlation_id(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add a correlation ID unless one is bound (a WebSocket binds its connection_id instead)."""
    if "correlation_id" not in event_dict and "connection_id" not in event_dict:
        event_dict["correlation_id"] = str(uuid.uuid4())
    return event_dict
