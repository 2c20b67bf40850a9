"""
WebSocket handler for the shared chat room.

Runs the handshake (credential -> identity), registers the session with the
chat coordinator, and processes client frames until the socket closes.
Malformed frames are answered with an error event to the sender only; the
connection stays open.
"""

from fastapi import WebSocket, status

from ..auth.identity import IdentityResolver, extract_token
from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..exceptions import AuthError
from ..structured_logging.enhanced_logging_config import bind_request_context, clear_request_context, get_logger
from . import events
from .chat_coordinator import ChatCoordinator
from .envelope import build_event, encode_event
from .message_validator import MessageValidationError, WebSocketMessageValidator, get_message_validator
from .session import ChatSession

logger = get_logger(__name__)

VALIDATION_ERROR_TYPES = {
    "unknown_event": (ErrorType.UNKNOWN_EVENT, ErrorMessages.UNKNOWN_EVENT),
    "schema_validation_failed": (ErrorType.VALIDATION_ERROR, ErrorMessages.INVALID_INPUT),
    "missing_username": (ErrorType.VALIDATION_ERROR, ErrorMessages.MISSING_REQUIRED_FIELD),
}


async def send_error(websocket: WebSocket, error_type: ErrorType, message: str, user_friendly: str, details: dict):
    error_response = create_websocket_error_response(error_type, message, user_friendly, details)
    await websocket.send_text(encode_event(build_event(events.ERROR, error_response)))


async def reject_handshake(websocket: WebSocket, session: ChatSession, error: AuthError) -> None:
    """Deliver a single connect_error event and close with a policy-violation code."""
    session.close()
    await websocket.accept()
    try:
        await websocket.send_text(encode_event(build_event(events.CONNECT_ERROR, {"message": error.message})))
    finally:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
    logger.info("Chat handshake rejected", connection_id=session.connection_id, reason=error.reason.value)


async def _handle_websocket_message_loop(
    websocket: WebSocket,
    session: ChatSession,
    coordinator: ChatCoordinator,
    validator: WebSocketMessageValidator,
) -> None:
    """Handle the main WebSocket message loop."""
    connection_id = session.connection_id

    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            logger.info("WebSocket disconnected", connection_id=connection_id, code=message.get("code"))
            break

        data = message.get("text")
        try:
            if data is None:
                raise MessageValidationError("Binary frames are not supported", error_type="invalid_type")
            event_type, payload = validator.parse_and_validate(data, connection_id=connection_id)
            await coordinator.handle_event(session, event_type, payload)

        except MessageValidationError as e:
            logger.warning(
                "Message validation failed",
                connection_id=connection_id,
                error_type=e.error_type,
                error_message=e.message,
            )
            error_type, user_friendly = VALIDATION_ERROR_TYPES.get(
                e.error_type, (ErrorType.INVALID_FORMAT, ErrorMessages.INVALID_FORMAT)
            )
            await send_error(
                websocket,
                error_type,
                f"Message validation failed: {e.message}",
                user_friendly,
                {"connection_id": connection_id, "error_type": e.error_type, "event_type": e.event_type},
            )

        except RuntimeError as e:
            error_message = str(e)
            if "WebSocket is not connected" in error_message or 'Need to call "accept" first' in error_message:
                logger.warning("WebSocket connection lost (not connected)", connection_id=connection_id)
                break
            raise

        except Exception as e:
            logger.error(
                "Error handling WebSocket message",
                connection_id=connection_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            await send_error(
                websocket,
                ErrorType.MESSAGE_PROCESSING_ERROR,
                f"Internal server error: {e}",
                ErrorMessages.MESSAGE_PROCESSING_ERROR,
                {"connection_id": connection_id, "error_type": type(e).__name__},
            )


async def handle_websocket_connection(
    websocket: WebSocket,
    coordinator: ChatCoordinator,
    resolver: IdentityResolver,
    validator: WebSocketMessageValidator | None = None,
) -> None:
    """
    Handle one chat WebSocket from handshake to close.

    Args:
        websocket: The WebSocket connection (not yet accepted)
        coordinator: The process-wide chat coordinator
        resolver: Resolves the handshake credential to an identity
        validator: Frame validator (built from configuration when omitted)
    """
    session = ChatSession()
    bind_request_context(connection_id=session.connection_id)
    token = extract_token(websocket.query_params.get("token"), websocket.headers.get("authorization"))

    try:
        try:
            identity = await resolver.resolve(token)
        except AuthError as e:
            await reject_handshake(websocket, session, e)
            return

        bind_request_context(user_id=identity.id)
        await websocket.accept()
        validator = validator or get_message_validator()
        try:
            await coordinator.connect(session, websocket, identity)
            await _handle_websocket_message_loop(websocket, session, coordinator, validator)
        finally:
            await coordinator.disconnect(session)
    finally:
        clear_request_context()
