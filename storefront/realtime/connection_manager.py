"""
Connection registry and message delivery for the chat room.

Delivery is best-effort: a failed send is logged, the connection is dropped
from the registry, and the broadcast carries on for everyone else.
"""

import asyncio
from typing import Any

from fastapi import WebSocket

from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import encode_event

logger = get_logger(__name__)


class ConnectionManager:
    """Tracks live WebSocket connections by connection id."""

    def __init__(self) -> None:
        self.active_websockets: dict[str, WebSocket] = {}

    def register(self, connection_id: str, websocket: WebSocket) -> None:
        self.active_websockets[connection_id] = websocket
        logger.debug("Connection registered", connection_id=connection_id, total=len(self.active_websockets))

    def unregister(self, connection_id: str) -> bool:
        removed = self.active_websockets.pop(connection_id, None) is not None
        if removed:
            logger.debug("Connection unregistered", connection_id=connection_id, total=len(self.active_websockets))
        return removed

    def connection_count(self) -> int:
        return len(self.active_websockets)

    async def send_personal_message(self, connection_id: str, event: dict[str, Any]) -> dict[str, Any]:
        """
        Send an event to one connection.

        Returns:
            dict: Delivery status with 'success' and, on failure, 'error'
        """
        websocket = self.active_websockets.get(connection_id)
        if websocket is None:
            return {"success": False, "error": "connection not registered"}
        try:
            await websocket.send_text(encode_event(event))
            return {"success": True}
        except Exception as e:  # Any transport failure just drops this one connection
            logger.warning(
                "Failed to deliver event",
                connection_id=connection_id,
                event_type=event.get("event_type"),
                error=str(e),
                error_type=type(e).__name__,
            )
            self.unregister(connection_id)
            return {"success": False, "error": str(e)}

    async def broadcast(self, event: dict[str, Any], exclude_connection: str | None = None) -> dict[str, Any]:
        """
        Send an event to every registered connection concurrently.

        Returns:
            dict: Broadcast delivery statistics
        """
        targets = [cid for cid in list(self.active_websockets) if cid != exclude_connection]
        stats: dict[str, Any] = {
            "event_type": event.get("event_type"),
            "total_targets": len(targets),
            "successful_deliveries": 0,
            "failed_deliveries": 0,
        }
        if not targets:
            return stats

        results = await asyncio.gather(
            *[self.send_personal_message(cid, event) for cid in targets],
            return_exceptions=True,
        )
        for cid, result in zip(targets, results, strict=True):
            if isinstance(result, BaseException) or not result.get("success"):
                stats["failed_deliveries"] += 1
                if isinstance(result, BaseException):
                    logger.error("Error sending message in broadcast", connection_id=cid, error=str(result))
            else:
                stats["successful_deliveries"] += 1

        logger.debug("Broadcast delivered", **stats)
        return stats
