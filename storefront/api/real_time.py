"""
Real-time chat WebSocket endpoint.
"""

from fastapi import APIRouter, WebSocket

from ..realtime.websocket_handler import handle_websocket_connection
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(prefix="/api", tags=["realtime"])


@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for the shared chat room.

    The credential is read from the `token` query parameter, falling back to
    an `Authorization: Bearer` header.
    """
    state = websocket.app.state
    coordinator = getattr(state, "chat_coordinator", None)
    resolver = getattr(state, "identity_resolver", None)
    if coordinator is None or resolver is None:
        # Must accept before a close frame can carry an error
        await websocket.accept()
        await websocket.send_json({"type": "error", "message": "Service temporarily unavailable"})
        await websocket.close(code=1013)
        return

    try:
        await handle_websocket_connection(websocket, coordinator, resolver)
    except Exception as e:
        logger.error("Error in WebSocket endpoint", error=str(e), exc_info=True)
        raise
