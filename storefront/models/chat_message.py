"""
Persisted chat message model.

Rows are append-only: the chat layer never updates or deletes them. The
creation timestamp is assigned by the store at write time and indexed for
most-recent-first queries.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utc_now

DEFAULT_USER_COLOR = "#4ECDC4"


class ChatMessage(Base):
    """One message posted to the shared chat room."""

    __tablename__ = "chat_messages"
    __table_args__ = (Index("ix_chat_messages_created_at_desc", "created_at", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(length=255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    user_color: Mapped[str] = mapped_column(String(length=7), nullable=False, default=DEFAULT_USER_COLOR)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utc_now, nullable=False)

    @property
    def timestamp(self) -> str:
        """Creation time as ISO-8601 UTC with millisecond precision and a 'Z' suffix."""
        return self.created_at.isoformat(timespec="milliseconds") + "Z"

    def to_payload(self) -> dict[str, str]:
        """Wire shape used by the chat history and chat message events."""
        return {
            "username": self.username,
            "message": self.message,
            "timestamp": self.timestamp,
            "userColor": self.user_color,
        }

    def __repr__(self) -> str:
        return f"<ChatMessage(id={self.id}, username={self.username!r}, created_at={self.created_at})>"
