"""
Presence tracking for the shared chat room.

Presence is keyed by display name, not by connection: a user with several
sockets open is present once. The tracker only keeps the set; the chat
coordinator decides what to broadcast after each change and serializes
access to it.
"""

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class PresenceTracker:
    """The set of display names currently present in the room."""

    def __init__(self) -> None:
        self._names: set[str] = set()

    def join(self, display_name: str) -> int:
        """Add a name (idempotent) and return the new cardinality."""
        if display_name not in self._names:
            self._names.add(display_name)
            logger.debug("Presence join", display_name=display_name, count=len(self._names))
        return len(self._names)

    def leave(self, display_name: str) -> int:
        """Remove a name if present and return the new cardinality."""
        if display_name in self._names:
            self._names.discard(display_name)
            logger.debug("Presence leave", display_name=display_name, count=len(self._names))
        return len(self._names)

    def count(self) -> int:
        return len(self._names)

    def is_present(self, display_name: str) -> bool:
        return display_name in self._names

    def names(self) -> list[str]:
        return sorted(self._names)

    def __contains__(self, display_name: object) -> bool:
        return display_name in self._names

    def __len__(self) -> int:
        return len(self._names)
