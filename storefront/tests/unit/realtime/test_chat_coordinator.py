"""
Tests for the chat coordinator: presence, typing, history and message flow.
"""

import asyncio
import random
from unittest.mock import MagicMock

import pytest

from storefront.exceptions import DatabaseError
from storefront.realtime.chat_coordinator import FALLBACK_DISPLAY_NAME, ChatCoordinator
from storefront.realtime.message_store import ChatMessageStore
from storefront.realtime.message_validator import MessageValidationError
from storefront.realtime.schemas import ChatMessagePayload, UserJoinedPayload
from storefront.realtime.session import ChatSession

from .fakes import FakeWebSocket, make_identity


async def connect(coordinator, name: str | None, user_id: str = "user-1"):
    session, ws = ChatSession(), FakeWebSocket()
    await coordinator.connect(session, ws, make_identity(name, user_id))
    return session, ws


class TestConnect:
    @pytest.mark.asyncio
    async def test_new_connection_gets_history_then_join_broadcast(self, coordinator, store):
        history = [
            {"username": "bob", "message": "hey", "timestamp": "2024-01-01T00:00:00.000Z", "userColor": "#FF6B6B"}
        ]
        store.recent_payloads.return_value = history

        session, ws = await connect(coordinator, "alice")

        assert session.is_registered
        assert session.color is not None
        assert ws.events() == [("chat history", history), ("user count", 1), ("user joined", "alice")]

    @pytest.mark.asyncio
    async def test_join_is_broadcast_to_existing_connections(self, coordinator):
        _, alice_ws = await connect(coordinator, "alice")
        alice_ws.clear()

        await connect(coordinator, "bob", "user-2")

        assert alice_ws.events() == [("user count", 2), ("user joined", "bob")]

    @pytest.mark.asyncio
    async def test_same_name_second_connection_does_not_rejoin(self, coordinator):
        _, first_ws = await connect(coordinator, "alice")
        first_ws.clear()

        _, second_ws = await connect(coordinator, "alice")

        assert first_ws.events() == [("user count", 1)]
        assert second_ws.events("user joined") == []
        assert coordinator.presence_count() == 1

    @pytest.mark.asyncio
    async def test_unnamed_connection_is_not_announced(self, coordinator):
        _, ws = await connect(coordinator, None)

        assert ws.events() == [("chat history", [])]
        assert coordinator.presence_count() == 0


class TestUserJoined:
    @pytest.mark.asyncio
    async def test_unnamed_session_adopts_announced_name(self, coordinator):
        session, ws = await connect(coordinator, None)
        ws.clear()

        await coordinator.handle_event(session, "user joined", UserJoinedPayload(username="bob"))

        assert session.display_name == "bob"
        assert ws.events() == [("user count", 1), ("user joined", "bob")]

    @pytest.mark.asyncio
    async def test_blank_announcement_uses_fallback_name(self, coordinator):
        session, _ = await connect(coordinator, None)

        await coordinator.handle_event(session, "user joined", UserJoinedPayload(username=None))

        assert session.display_name == FALLBACK_DISPLAY_NAME

    @pytest.mark.asyncio
    async def test_resolved_name_is_not_overridden(self, coordinator):
        session, ws = await connect(coordinator, "alice")
        ws.clear()

        await coordinator.handle_event(session, "user joined", UserJoinedPayload(username="mallory"))

        assert session.display_name == "alice"
        assert ws.events() == []


class TestChatMessage:
    @pytest.mark.asyncio
    async def test_message_is_persisted_and_broadcast_to_all(self, coordinator, store):
        alice, alice_ws = await connect(coordinator, "alice")
        _, bob_ws = await connect(coordinator, "bob", "user-2")

        await coordinator.handle_event(alice, "chat message", ChatMessagePayload(message="hi"))

        store.append.assert_awaited_once_with("alice", "hi", alice.color)
        for ws in (alice_ws, bob_ws):
            [(_, payload)] = ws.events("chat message")
            assert payload["username"] == "alice"
            assert payload["message"] == "hi"
            assert payload["userColor"] == alice.color
            assert payload["timestamp"].endswith("Z")

    @pytest.mark.asyncio
    async def test_session_name_wins_over_payload_name(self, coordinator, store):
        alice, _ = await connect(coordinator, "alice")

        await coordinator.handle_event(alice, "chat message", ChatMessagePayload(username="mallory", message="hi"))

        assert store.append.await_args.args[0] == "alice"

    @pytest.mark.asyncio
    async def test_payload_color_is_used(self, coordinator, store):
        alice, _ = await connect(coordinator, "alice")

        await coordinator.handle_event(alice, "chat message", ChatMessagePayload(message="hi", userColor="#011627"))

        assert store.append.await_args.args[2] == "#011627"

    @pytest.mark.asyncio
    async def test_unnamed_session_uses_payload_name(self, coordinator, store):
        session, _ = await connect(coordinator, None)

        await coordinator.handle_event(session, "chat message", ChatMessagePayload(username="zoe", message="hi"))

        assert store.append.await_args.args[0] == "zoe"

    @pytest.mark.asyncio
    async def test_no_name_at_all_is_rejected(self, coordinator, store):
        session, _ = await connect(coordinator, None)

        with pytest.raises(MessageValidationError) as exc_info:
            await coordinator.handle_event(session, "chat message", ChatMessagePayload(message="hi"))

        assert exc_info.value.error_type == "missing_username"
        store.append.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persistence_failure_drops_message_silently(self, coordinator, store):
        alice, alice_ws = await connect(coordinator, "alice")
        alice_ws.clear()
        store.append.side_effect = DatabaseError("disk full", operation="append")

        await coordinator.handle_event(alice, "chat message", ChatMessagePayload(message="hi"))

        assert alice_ws.events() == []

    @pytest.mark.asyncio
    async def test_unreachable_database_drops_message_silently(self):
        session_maker = MagicMock(side_effect=ConnectionRefusedError(111, "Connect call failed"))
        coordinator = ChatCoordinator(ChatMessageStore(session_maker), rng=random.Random(7))

        alice, alice_ws = await connect(coordinator, "alice")
        assert alice_ws.events()[0] == ("chat history", [])
        alice_ws.clear()

        await coordinator.handle_event(alice, "chat message", ChatMessagePayload(message="hi"))

        assert alice_ws.events() == []


class TestTyping:
    @pytest.mark.asyncio
    async def test_typing_then_idle_broadcasts_twice(self, coordinator):
        alice, ws = await connect(coordinator, "alice")
        ws.clear()

        await coordinator.handle_event(alice, "typing", None)
        await asyncio.sleep(0.2)

        assert ws.events() == [("typing update", ["alice"]), ("typing update", [])]

    @pytest.mark.asyncio
    async def test_stop_typing_broadcasts_once(self, coordinator):
        alice, ws = await connect(coordinator, "alice")
        await coordinator.handle_event(alice, "typing", None)
        ws.clear()

        await coordinator.handle_event(alice, "stop typing", None)
        await coordinator.handle_event(alice, "stop typing", None)
        await asyncio.sleep(0.1)

        assert ws.events() == [("typing update", [])]

    @pytest.mark.asyncio
    async def test_unnamed_typing_uses_fallback_name(self, coordinator):
        session, ws = await connect(coordinator, None)

        await coordinator.handle_event(session, "typing", None)

        assert ws.events("typing update") == [("typing update", [FALLBACK_DISPLAY_NAME])]
        await coordinator.shutdown()

    @pytest.mark.asyncio
    async def test_unnamed_stop_typing_is_noop(self, coordinator):
        session, ws = await connect(coordinator, None)
        ws.clear()

        await coordinator.handle_event(session, "stop typing", None)

        assert ws.events() == []


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect_clears_typing_then_leaves(self, coordinator):
        alice, _ = await connect(coordinator, "alice")
        _, bob_ws = await connect(coordinator, "bob", "user-2")
        await coordinator.handle_event(alice, "typing", None)
        bob_ws.clear()

        await coordinator.disconnect(alice)

        assert bob_ws.events() == [("typing update", []), ("user count", 1), ("user left", "alice")]
        assert coordinator.typing.pending_timer("alice") is None
        assert coordinator.connections.connection_count() == 1

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self, coordinator):
        alice, _ = await connect(coordinator, "alice")
        _, bob_ws = await connect(coordinator, "bob", "user-2")
        bob_ws.clear()

        await coordinator.disconnect(alice)
        await coordinator.disconnect(alice)

        assert bob_ws.events() == [("user count", 1), ("user left", "alice")]

    @pytest.mark.asyncio
    async def test_second_socket_of_same_name_only_updates_count(self, coordinator):
        first, _ = await connect(coordinator, "alice")
        second, _ = await connect(coordinator, "alice")
        _, bob_ws = await connect(coordinator, "bob", "user-2")
        await coordinator.disconnect(first)
        bob_ws.clear()

        await coordinator.disconnect(second)

        assert bob_ws.events() == [("user count", 1)]

    @pytest.mark.asyncio
    async def test_unnamed_disconnect_broadcasts_count(self, coordinator):
        session, _ = await connect(coordinator, None)
        _, bob_ws = await connect(coordinator, "bob", "user-2")
        bob_ws.clear()

        await coordinator.disconnect(session)

        assert bob_ws.events() == [("user count", 1)]

    @pytest.mark.asyncio
    async def test_cancelled_disconnect_still_releases_the_name(self, coordinator):
        _, alice_ws = await connect(coordinator, "alice")
        bob, _ = await connect(coordinator, "bob", "user-2")
        await coordinator.handle_event(bob, "typing", None)
        alice_ws.clear()

        async with coordinator.lock:
            pending = asyncio.create_task(coordinator.disconnect(bob))
            await asyncio.sleep(0)
            pending.cancel()
            await asyncio.gather(pending, return_exceptions=True)

            assert not coordinator.presence.is_present("bob")
            assert not coordinator.typing.is_typing("bob")
            assert coordinator.presence_count() == 1
            await coordinator.disconnect(bob)
            assert alice_ws.events() == []

        await coordinator.shutdown()

        assert alice_ws.events() == [("typing update", []), ("user count", 1), ("user left", "bob")]


class TestDispatch:
    @pytest.mark.asyncio
    async def test_events_on_unregistered_session_are_dropped(self, coordinator, store):
        session = ChatSession()

        await coordinator.handle_event(session, "chat message", ChatMessagePayload(message="hi"))

        store.append.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_event(self, coordinator):
        session, _ = await connect(coordinator, "alice")
        with pytest.raises(MessageValidationError) as exc_info:
            await coordinator.handle_event(session, "dance", None)
        assert exc_info.value.error_type == "unknown_event"

    @pytest.mark.asyncio
    async def test_get_history_replies_to_requester_only(self, coordinator, store):
        alice, alice_ws = await connect(coordinator, "alice")
        _, bob_ws = await connect(coordinator, "bob", "user-2")
        alice_ws.clear()
        bob_ws.clear()

        await coordinator.handle_event(alice, "get history", None)

        assert alice_ws.events() == [("chat history data", [])]
        assert bob_ws.events() == []


@pytest.mark.asyncio
async def test_broadcast_order_is_consistent_across_connections(coordinator):
    alice, alice_ws = await connect(coordinator, "alice")
    bob, bob_ws = await connect(coordinator, "bob", "user-2")
    alice_ws.clear()
    bob_ws.clear()

    await asyncio.gather(
        coordinator.handle_event(alice, "typing", None),
        coordinator.handle_event(bob, "typing", None),
        coordinator.handle_event(alice, "chat message", ChatMessagePayload(message="one")),
        coordinator.handle_event(bob, "stop typing", None),
    )
    await coordinator.shutdown()

    assert [e["sequence_number"] for e in alice_ws.sent] == [e["sequence_number"] for e in bob_ws.sent]
