"""
Tests for connection registry and delivery.
"""

import pytest

from storefront.realtime.connection_manager import ConnectionManager
from storefront.realtime.envelope import build_event

from .fakes import FakeWebSocket


@pytest.mark.asyncio
async def test_broadcast_reaches_everyone():
    manager = ConnectionManager()
    sockets = {cid: FakeWebSocket() for cid in ("a", "b", "c")}
    for cid, ws in sockets.items():
        manager.register(cid, ws)

    stats = await manager.broadcast(build_event("user count", 3), exclude_connection="c")

    assert stats["successful_deliveries"] == 2
    assert sockets["a"].events() == [("user count", 3)]
    assert sockets["c"].events() == []


@pytest.mark.asyncio
async def test_failed_delivery_drops_connection():
    manager = ConnectionManager()
    good, bad = FakeWebSocket(), FakeWebSocket(fail=True)
    manager.register("good", good)
    manager.register("bad", bad)

    stats = await manager.broadcast(build_event("user count", 2))

    assert stats["failed_deliveries"] == 1
    assert good.events() == [("user count", 2)]
    assert manager.connection_count() == 1


@pytest.mark.asyncio
async def test_personal_message_to_unknown_connection():
    manager = ConnectionManager()
    result = await manager.send_personal_message("missing", build_event("chat history", []))
    assert result["success"] is False


def test_unregister_twice():
    manager = ConnectionManager()
    manager.register("a", FakeWebSocket())
    assert manager.unregister("a") is True
    assert manager.unregister("a") is False
