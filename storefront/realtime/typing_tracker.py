"""
Typing indicator tracking for the shared chat room.

Each typing name owns exactly one pending expiry task. A new typing signal
for a name cancels its task and schedules a fresh one; stop, disconnect and
expiry remove the entry. Every change except discard reports the full typing
list, in the order names started typing, through the on_change callback.

Callers of start_typing/stop_typing must hold the coordinator lock passed
in here; expiry tasks acquire that same lock before touching the registry.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TYPING_EXPIRY_SECONDS = 3.0

TypingChangeCallback = Callable[[list[str]], Awaitable[Any]]


class TypingTracker:
    """Registry of display name -> pending expiry task."""

    def __init__(
        self,
        on_change: TypingChangeCallback,
        lock: asyncio.Lock,
        expiry_seconds: float = DEFAULT_TYPING_EXPIRY_SECONDS,
    ) -> None:
        """
        Initialize the tracker.

        Args:
            on_change: Awaited with the current typing list after every change
            lock: Lock serializing registry mutations and their broadcasts
            expiry_seconds: Idle window after which a typing entry removes itself
        """
        self._on_change = on_change
        self._lock = lock
        self.expiry_seconds = expiry_seconds
        self._timers: dict[str, asyncio.Task[None]] = {}

    def names(self) -> list[str]:
        return list(self._timers)

    def is_typing(self, display_name: str) -> bool:
        return display_name in self._timers

    def pending_timer(self, display_name: str) -> asyncio.Task[None] | None:
        return self._timers.get(display_name)

    async def start_typing(self, display_name: str) -> list[str]:
        """Start or refresh the indicator for a name and report the typing list."""
        previous = self._timers.get(display_name)
        if previous is not None:
            previous.cancel()

        # Reassigning an existing key keeps the name's position in the list
        self._timers[display_name] = asyncio.create_task(
            self._expire_after_idle(display_name), name=f"typing-expiry:{display_name}"
        )
        typing = self.names()
        await self._on_change(typing)
        return typing

    def discard(self, display_name: str) -> bool:
        """Drop a name and cancel its timer without reporting. Returns False if it was not typing."""
        timer = self._timers.pop(display_name, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    async def stop_typing(self, display_name: str) -> bool:
        """
        Clear the indicator for a name.

        Returns:
            bool: False (and no report) if the name was not typing
        """
        if not self.discard(display_name):
            return False
        await self._on_change(self.names())
        return True

    async def _expire_after_idle(self, display_name: str) -> None:
        await asyncio.sleep(self.expiry_seconds)
        async with self._lock:
            # A replaced or stopped timer must not remove the current entry
            if self._timers.get(display_name) is not asyncio.current_task():
                return
            del self._timers[display_name]
            logger.debug("Typing indicator expired", display_name=display_name)
            try:
                await self._on_change(self.names())
            except Exception as e:
                logger.error("Typing expiry broadcast failed", display_name=display_name, error=str(e), exc_info=True)

    async def shutdown(self) -> None:
        """Cancel every pending expiry task without reporting."""
        timers = list(self._timers.values())
        self._timers.clear()
        for timer in timers:
            timer.cancel()
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)
