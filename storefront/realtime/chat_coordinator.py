"""
Chat coordinator for the shared room.

The coordinator owns the presence set, the typing registry and the
connection registry. One asyncio.Lock serializes every presence or typing
mutation together with the broadcasts it triggers, so all connections see
broadcasts in processing order. Datastore reads and writes happen outside
the lock.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from fastapi import WebSocket
from pydantic import BaseModel

from ..auth.identity import UserIdentity
from ..exceptions import DatabaseError
from ..structured_logging.enhanced_logging_config import get_logger
from . import events
from .colors import pick_color
from .connection_manager import ConnectionManager
from .envelope import build_event
from .message_store import DEFAULT_HISTORY_LIMIT, ChatMessageStore
from .message_validator import MessageValidationError
from .presence_tracker import PresenceTracker
from .schemas import ChatMessagePayload, UserJoinedPayload
from .session import ChatSession
from .typing_tracker import DEFAULT_TYPING_EXPIRY_SECONDS, TypingTracker

logger = get_logger(__name__)

# Name used for sessions that never resolved or announced one
FALLBACK_DISPLAY_NAME = "Usuario"

EventHandler = Callable[[ChatSession, BaseModel | None], Awaitable[None]]


class ChatCoordinator:
    """Wires presence, typing and message history to the live connections."""

    def __init__(
        self,
        store: ChatMessageStore,
        connections: ConnectionManager | None = None,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        typing_expiry_seconds: float = DEFAULT_TYPING_EXPIRY_SECONDS,
        color_palette: Sequence[str] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.connections = connections or ConnectionManager()
        self.history_limit = history_limit
        self.color_palette = list(color_palette) if color_palette else None
        self._rng = rng
        self._lock = asyncio.Lock()
        self._announcements: set[asyncio.Task[None]] = set()
        self.presence = PresenceTracker()
        self.typing = TypingTracker(self._broadcast_typing, self._lock, expiry_seconds=typing_expiry_seconds)
        self._handlers: dict[str, EventHandler] = {
            events.USER_JOINED: self._handle_user_joined,
            events.GET_HISTORY: self._handle_get_history,
            events.CHAT_MESSAGE: self._handle_chat_message,
            events.TYPING: self._handle_typing,
            events.STOP_TYPING: self._handle_stop_typing,
        }

    @classmethod
    def from_config(cls, store: ChatMessageStore, chat_config: Any) -> "ChatCoordinator":
        return cls(
            store,
            history_limit=chat_config.history_limit,
            typing_expiry_seconds=chat_config.typing_expiry_seconds,
            color_palette=chat_config.color_palette,
        )

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    # Connection lifecycle

    async def connect(self, session: ChatSession, websocket: WebSocket, identity: UserIdentity) -> ChatSession:
        """
        Register an authenticated connection.

        Sends the history to the new connection, then announces the resolved
        display name (if any) to everyone.
        """
        session.register(identity, pick_color(self.color_palette, self._rng))
        self.connections.register(session.connection_id, websocket)
        logger.info(
            "Chat session registered",
            connection_id=session.connection_id,
            user_id=identity.id,
            display_name=session.display_name,
        )

        history = await self.store.recent_payloads(self.history_limit)
        await self.connections.send_personal_message(session.connection_id, build_event(events.CHAT_HISTORY, history))

        if session.display_name:
            async with self._lock:
                await self._announce_join(session.display_name)
        return session

    async def disconnect(self, session: ChatSession) -> None:
        """
        Tear down a session. Safe to call more than once.

        Presence and typing state are released before the first await, so a
        disconnect cancelled mid-way never leaves the name behind. The leave
        broadcasts run in their own task and finish even if the caller is
        cancelled.
        """
        if not session.close():
            return
        self.connections.unregister(session.connection_id)

        name = session.display_name
        was_typing = departed = False
        if name:
            was_typing = self.typing.discard(name)
            departed = self.presence.is_present(name)
            self.presence.leave(name)
        logger.info("Chat session closed", connection_id=session.connection_id, display_name=name)

        announcement = asyncio.create_task(
            self._announce_leave(name if departed else None, was_typing),
            name=f"chat-leave:{session.connection_id}",
        )
        self._announcements.add(announcement)
        announcement.add_done_callback(self._announcements.discard)
        await asyncio.shield(announcement)

    async def shutdown(self) -> None:
        """Finish pending leave broadcasts, cancel typing timers and forget all connections."""
        if self._announcements:
            await asyncio.gather(*self._announcements, return_exceptions=True)
        await self.typing.shutdown()
        self.connections.active_websockets.clear()

    # Event dispatch

    async def handle_event(self, session: ChatSession, event_type: str, payload: BaseModel | None) -> None:
        """
        Dispatch a validated client event.

        Raises:
            MessageValidationError: If the event is unknown or cannot be honored
        """
        if not session.is_registered:
            logger.warning("Event on unregistered session dropped", event_type=event_type, state=session.state.value)
            return
        handler = self._handlers.get(event_type)
        if handler is None:
            raise MessageValidationError(
                f"Unknown event type: {event_type}", error_type="unknown_event", event_type=event_type
            )
        await handler(session, payload)

    async def _handle_user_joined(self, session: ChatSession, payload: BaseModel | None) -> None:
        if session.display_name:
            logger.debug("Late name announcement ignored", connection_id=session.connection_id)
            return
        announced = payload.username if isinstance(payload, UserJoinedPayload) else None
        session.display_name = announced or FALLBACK_DISPLAY_NAME
        logger.info("Display name announced by client", connection_id=session.connection_id, name=session.display_name)
        async with self._lock:
            await self._announce_join(session.display_name)

    async def _handle_get_history(self, session: ChatSession, payload: BaseModel | None) -> None:
        history = await self.store.recent_payloads(self.history_limit)
        await self.connections.send_personal_message(
            session.connection_id, build_event(events.CHAT_HISTORY_DATA, history)
        )

    async def _handle_chat_message(self, session: ChatSession, payload: BaseModel | None) -> None:
        if not isinstance(payload, ChatMessagePayload):
            raise MessageValidationError("Chat message payload is required", error_type="schema_validation_failed")

        username = session.display_name or payload.username
        if not username:
            raise MessageValidationError(
                "A username is required before sending messages",
                error_type="missing_username",
                event_type=events.CHAT_MESSAGE,
            )
        color = payload.user_color or session.color or pick_color(self.color_palette, self._rng)

        try:
            record = await self.store.append(username, payload.message, color)
        except DatabaseError as e:
            # The sender is not notified; the message is simply not broadcast
            logger.error(
                "Chat message dropped", connection_id=session.connection_id, username=username, error=e.message
            )
            return

        async with self._lock:
            await self._broadcast(events.CHAT_MESSAGE, record.to_payload())

    async def _handle_typing(self, session: ChatSession, payload: BaseModel | None) -> None:
        async with self._lock:
            await self.typing.start_typing(session.display_name or FALLBACK_DISPLAY_NAME)

    async def _handle_stop_typing(self, session: ChatSession, payload: BaseModel | None) -> None:
        if not session.display_name:
            return
        async with self._lock:
            await self.typing.stop_typing(session.display_name)

    async def _announce_leave(self, departed: str | None, was_typing: bool) -> None:
        try:
            async with self._lock:
                if was_typing:
                    await self._broadcast_typing(self.typing.names())
                await self._broadcast(events.USER_COUNT, self.presence.count())
                if departed:
                    await self._broadcast(events.USER_LEFT, departed)
        except Exception as e:
            logger.error("Leave broadcast failed", display_name=departed, error=str(e), exc_info=True)

    # Broadcast helpers; callers hold the lock

    async def _announce_join(self, display_name: str) -> None:
        already_present = self.presence.is_present(display_name)
        count = self.presence.join(display_name)
        await self._broadcast(events.USER_COUNT, count)
        if not already_present:
            await self._broadcast(events.USER_JOINED, display_name)

    async def _broadcast_typing(self, typing: list[str]) -> None:
        await self._broadcast(events.TYPING_UPDATE, typing)

    async def _broadcast(self, event_type: str, data: Any) -> None:
        await self.connections.broadcast(build_event(event_type, data))

    # Read-only views

    def presence_count(self) -> int:
        return self.presence.count()

    async def history(self) -> list[dict[str, str]]:
        return await self.store.recent_payloads(self.history_limit)
