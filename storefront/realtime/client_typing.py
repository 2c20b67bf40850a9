"""
Client-side typing notifier.

Mirrors the browser client's emit policy for Python chat clients: `typing`
at most once per throttle window while the input has text, `stop typing`
after an idle window, immediately when the input is cleared, and on blur.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from . import events

DEFAULT_THROTTLE_SECONDS = 0.8
DEFAULT_STOP_AFTER_SECONDS = 1.5

EmitCallback = Callable[[str], Awaitable[Any]]


class TypingNotifier:
    """Decides when a client emits `typing` and `stop typing`."""

    def __init__(
        self,
        emit: EmitCallback,
        throttle_seconds: float = DEFAULT_THROTTLE_SECONDS,
        stop_after_seconds: float = DEFAULT_STOP_AFTER_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._emit = emit
        self.throttle_seconds = throttle_seconds
        self.stop_after_seconds = stop_after_seconds
        self._clock = clock
        self._last_typing_emit: float | None = None
        self._stop_task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(cls, emit: EmitCallback, settings: dict[str, Any]) -> "TypingNotifier":
        """Build a notifier from the /api/chat/settings response."""
        return cls(
            emit,
            throttle_seconds=settings["client_typing_throttle_ms"] / 1000,
            stop_after_seconds=settings["client_stop_typing_ms"] / 1000,
        )

    async def on_input(self, text: str) -> None:
        """Call on every change of the message input."""
        now = self._clock()
        has_text = bool(text.strip())
        if has_text and (self._last_typing_emit is None or now - self._last_typing_emit > self.throttle_seconds):
            await self._emit(events.TYPING)
            self._last_typing_emit = now

        self._cancel_pending_stop()
        self._stop_task = asyncio.create_task(self._stop_after_idle())
        if not has_text:
            await self._emit(events.STOP_TYPING)

    async def on_blur(self) -> None:
        await self._emit(events.STOP_TYPING)

    async def on_submit(self) -> None:
        """Call after a message was sent and the input cleared."""
        await self._emit(events.STOP_TYPING)

    async def close(self) -> None:
        self._cancel_pending_stop()

    @property
    def has_pending_stop(self) -> bool:
        return self._stop_task is not None and not self._stop_task.done()

    def _cancel_pending_stop(self) -> None:
        if self._stop_task is not None and not self._stop_task.done():
            self._stop_task.cancel()
        self._stop_task = None

    async def _stop_after_idle(self) -> None:
        await asyncio.sleep(self.stop_after_seconds)
        await self._emit(events.STOP_TYPING)
