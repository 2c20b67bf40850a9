"""
Tests for chat message persistence and history.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from storefront.exceptions import DatabaseError
from storefront.models.base import utc_now
from storefront.realtime.message_store import ChatMessageStore


@pytest.fixture
def store(session_maker):
    return ChatMessageStore(session_maker)


def broken_session_maker(error: Exception | None = None):
    return MagicMock(side_effect=error or OperationalError("INSERT", {}, Exception("disk I/O error")))


class TestAppend:
    @pytest.mark.asyncio
    async def test_assigns_server_timestamp(self, store):
        before = utc_now()
        record = await store.append("alice", "hi", "#FF6B6B")

        assert record.id is not None
        assert record.created_at >= before
        assert record.to_payload() == {
            "username": "alice",
            "message": "hi",
            "timestamp": record.timestamp,
            "userColor": "#FF6B6B",
        }
        assert record.timestamp.endswith("Z")

    @pytest.mark.asyncio
    async def test_failure_raises_database_error(self):
        store = ChatMessageStore(broken_session_maker())
        with pytest.raises(DatabaseError) as exc_info:
            await store.append("alice", "hi", "#FF6B6B")
        assert exc_info.value.operation == "append"
        assert exc_info.value.table == "chat_messages"


class TestRecent:
    @pytest.mark.asyncio
    async def test_returns_latest_in_chronological_order(self, store):
        for i in range(5):
            await store.append("alice", f"m{i}", "#FF6B6B")

        messages = await store.recent(3)

        assert [m.message for m in messages] == ["m2", "m3", "m4"]

    @pytest.mark.asyncio
    async def test_appended_message_is_in_recent(self, store):
        await store.append("bob", "older", "#FF6B6B")
        record = await store.append("alice", "newest", "#FF6B6B")

        recent = await store.recent(2)

        assert recent[-1].id == record.id

    @pytest.mark.asyncio
    async def test_orders_by_creation_time(self, store, session_maker):
        from storefront.models.chat_message import ChatMessage

        now = utc_now()
        async with session_maker() as session:
            session.add(ChatMessage(username="a", message="later", user_color="#FF6B6B", created_at=now))
            session.add(
                ChatMessage(username="a", message="earlier", user_color="#FF6B6B", created_at=now - timedelta(1))
            )
            await session.commit()

        assert [m.message for m in await store.recent(10)] == ["earlier", "later"]

    @pytest.mark.asyncio
    async def test_non_positive_limit(self, store):
        await store.append("alice", "hi", "#FF6B6B")
        assert await store.recent(0) == []

    @pytest.mark.asyncio
    async def test_empty_store(self, store):
        assert await store.recent_payloads() == []


@pytest.mark.asyncio
async def test_history_read_failure_yields_empty_list():
    store = ChatMessageStore(broken_session_maker())
    assert await store.recent_payloads(50) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [ConnectionRefusedError(111, "Connect call failed"), TimeoutError()])
async def test_unreachable_database_is_a_database_error(error):
    store = ChatMessageStore(broken_session_maker(error))

    with pytest.raises(DatabaseError) as exc_info:
        await store.append("alice", "hi", "#FF6B6B")
    assert exc_info.value.details["error_type"] == type(error).__name__

    assert await store.recent_payloads(50) == []
