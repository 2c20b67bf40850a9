"""
Chat message persistence and history retrieval.

Append failures propagate as DatabaseError so the caller decides what the
sender sees; history reads return chronological order (oldest first).
"""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..exceptions import DatabaseError
from ..models.base import utc_now
from ..models.chat_message import ChatMessage
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import log_and_raise

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class ChatMessageStore:
    """Append-only message log backed by the chat_messages table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def append(self, username: str, message: str, user_color: str) -> ChatMessage:
        """
        Persist a message with a store-assigned creation time.

        Raises:
            DatabaseError: If the write fails
        """
        record = ChatMessage(username=username, message=message, user_color=user_color, created_at=utc_now())
        try:
            async with self._session_maker() as session:
                session.add(record)
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            log_and_raise(
                DatabaseError,
                f"Failed to persist chat message: {e}",
                details={"error_type": type(e).__name__, "username": username},
                user_friendly="Message could not be saved",
                operation="append",
                table=ChatMessage.__tablename__,
            )
        logger.info("Chat message persisted", message_id=record.id, username=username)
        return record

    async def recent(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[ChatMessage]:
        """
        Return up to `limit` of the most recent messages, oldest first.

        Raises:
            DatabaseError: If the read fails
        """
        if limit <= 0:
            return []
        stmt = select(ChatMessage).order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc()).limit(limit)
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                newest_first = list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            log_and_raise(
                DatabaseError,
                f"Failed to load chat history: {e}",
                details={"error_type": type(e).__name__, "limit": limit},
                user_friendly="Chat history is unavailable",
                operation="recent",
                table=ChatMessage.__tablename__,
            )
        newest_first.reverse()
        return newest_first

    async def recent_payloads(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict[str, str]]:
        """History in wire shape; an unreadable store yields an empty list."""
        try:
            messages = await self.recent(limit)
        except DatabaseError:
            return []
        return [m.to_payload() for m in messages]
