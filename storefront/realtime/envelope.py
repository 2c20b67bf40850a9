"""
Event envelope utilities for storefront real-time messages.

Provides a single, consistent schema for events emitted over the WebSocket:
- event_type: str (the chat protocol event name, e.g. "chat message")
- timestamp: ISO 8601 UTC with 'Z'
- sequence_number: int (monotonic per-process)
- data: the event payload (list, int, str or dict)
"""

from __future__ import annotations

import json
import threading
import uuid
from datetime import UTC, datetime
from typing import Any


class UUIDEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles UUID objects."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, uuid.UUID):
            return str(obj)
        return super().default(obj)


_global_sequence_counter = 0
_sequence_lock = threading.Lock()


def _get_next_global_sequence() -> int:
    """Thread-safe global sequence number generation."""
    global _global_sequence_counter

    with _sequence_lock:
        _global_sequence_counter += 1
        return _global_sequence_counter


def utc_now_z() -> str:
    """Return current UTC time in ISO 8601 format with millisecond precision and 'Z' suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_event(
    event_type: str,
    data: Any = None,
    *,
    sequence_number: int | None = None,
) -> dict[str, Any]:
    """
    Create a normalized event envelope.

    Args:
        event_type: Protocol event name
        data: Event payload; None becomes an empty dict
        sequence_number: Optional explicit sequence number
    """
    seq = sequence_number if sequence_number is not None else _get_next_global_sequence()
    return {
        "event_type": event_type,
        "timestamp": utc_now_z(),
        "sequence_number": seq,
        "data": {} if data is None else data,
    }


def encode_event(event: dict[str, Any]) -> str:
    """Encode an event dict as a WebSocket text frame."""
    return json.dumps(event, cls=UUIDEncoder)
