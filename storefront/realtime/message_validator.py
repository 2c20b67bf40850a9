"""
WebSocket message validation for the chat room.

This module validates incoming WebSocket frames: size limits, JSON parsing,
JSON depth limits, the outer frame shape, the event name, and the payload
schema of the named event.
"""

import json
from typing import Any

from pydantic import BaseModel, ValidationError

from ..structured_logging.enhanced_logging_config import get_logger
from . import events
from .schemas import ChatMessagePayload, ClientFrame, UserJoinedPayload

logger = get_logger(__name__)

# Events without an entry carry no payload; anything attached is ignored
PAYLOAD_SCHEMAS: dict[str, type[BaseModel]] = {
    events.USER_JOINED: UserJoinedPayload,
    events.CHAT_MESSAGE: ChatMessagePayload,
}


class MessageValidationError(Exception):
    """Raised when message validation fails."""

    def __init__(self, message: str, error_type: str = "validation_error", event_type: str | None = None):
        self.message = message
        self.error_type = error_type
        self.event_type = event_type
        super().__init__(self.message)


class WebSocketMessageValidator:
    """
    Validates WebSocket frames for safety and correctness.

    Implements:
    - Frame size limits
    - JSON depth limits
    - Frame and payload schema validation
    """

    MAX_MESSAGE_SIZE = 16 * 1024
    MAX_JSON_DEPTH = 10

    def __init__(
        self,
        max_message_size: int | None = None,
        max_json_depth: int | None = None,
        max_message_length: int | None = None,
    ):
        """
        Initialize the message validator.

        Args:
            max_message_size: Maximum frame size in bytes (default: 16KB)
            max_json_depth: Maximum JSON nesting depth (default: 10)
            max_message_length: Maximum chat message length in characters
        """
        self.max_message_size = max_message_size or self.MAX_MESSAGE_SIZE
        self.max_json_depth = max_json_depth or self.MAX_JSON_DEPTH
        self.max_message_length = max_message_length

    def validate_size(self, data: str) -> bool:
        """
        Validate frame size.

        Raises:
            MessageValidationError: If the frame exceeds the size limit
        """
        size = len(data.encode("utf-8"))
        if size > self.max_message_size:
            logger.warning(
                "Message size exceeds limit",
                size=size,
                max_size=self.max_message_size,
                size_exceeded_by=size - self.max_message_size,
            )
            raise MessageValidationError(
                f"Message size {size} bytes exceeds maximum {self.max_message_size} bytes",
                error_type="size_limit_exceeded",
            )
        return True

    def validate_json_structure(self, message: Any) -> bool:
        """
        Validate JSON nesting depth.

        Raises:
            MessageValidationError: If the structure is nested too deeply
        """
        depth = self._calculate_depth(message)
        if depth > self.max_json_depth:
            logger.warning("JSON depth exceeds limit", depth=depth, max_depth=self.max_json_depth)
            raise MessageValidationError(
                f"JSON depth {depth} exceeds maximum {self.max_json_depth}",
                error_type="depth_limit_exceeded",
            )
        return True

    def _calculate_depth(self, obj: Any, current_depth: int = 0) -> int:
        if current_depth > self.max_json_depth:
            return current_depth

        if isinstance(obj, dict):
            if not obj:
                return current_depth
            return max(self._calculate_depth(v, current_depth + 1) for v in obj.values())
        if isinstance(obj, list):
            if not obj:
                return current_depth
            return max(self._calculate_depth(item, current_depth + 1) for item in obj)
        return current_depth

    def validate_frame(self, message: Any) -> ClientFrame:
        """
        Validate the outer frame and its event name.

        Raises:
            MessageValidationError: If the frame is not an object with a known event_type
        """
        if not isinstance(message, dict):
            raise MessageValidationError("Message must be a JSON object", error_type="invalid_type")
        try:
            frame = ClientFrame.model_validate(message)
        except ValidationError as e:
            raise MessageValidationError(
                "Message must contain an 'event_type' field", error_type="missing_required_field"
            ) from e

        if frame.event_type not in events.CLIENT_EVENTS:
            logger.warning("Unknown event type", event_type=frame.event_type)
            raise MessageValidationError(
                f"Unknown event type: {frame.event_type}",
                error_type="unknown_event",
                event_type=frame.event_type,
            )
        return frame

    def validate_payload(self, event_type: str, data: Any) -> BaseModel | None:
        """
        Validate an event payload against the schema registered for its event.

        Returns:
            The parsed payload model, or None for events that carry no payload

        Raises:
            MessageValidationError: If the payload does not match its schema
        """
        schema = PAYLOAD_SCHEMAS.get(event_type)
        if schema is None:
            return None

        context = {}
        if self.max_message_length is not None:
            context["max_message_length"] = self.max_message_length
        try:
            return schema.model_validate(data, context=context)
        except ValidationError as e:
            logger.warning("Schema validation failed", event_type=event_type, errors=e.error_count())
            raise MessageValidationError(
                f"Schema validation failed: {e.errors(include_url=False, include_input=False)}",
                error_type="schema_validation_failed",
                event_type=event_type,
            ) from e

    def parse_and_validate(self, data: str, connection_id: str | None = None) -> tuple[str, BaseModel | None]:
        """
        Parse and validate a complete WebSocket frame.

        This is the main entry point for message validation.

        Returns:
            tuple: (event_type, parsed payload or None)

        Raises:
            MessageValidationError: If validation fails at any stage
        """
        self.validate_size(data)

        try:
            message = json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON in message", connection_id=connection_id, error=str(e))
            raise MessageValidationError(f"Invalid JSON: {e}", error_type="json_parse_error") from e

        self.validate_json_structure(message)
        frame = self.validate_frame(message)
        payload = self.validate_payload(frame.event_type, frame.data)

        logger.debug("Message validation successful", connection_id=connection_id, event_type=frame.event_type)
        return frame.event_type, payload


def get_message_validator() -> WebSocketMessageValidator:
    """Build a validator from the chat configuration."""
    from ..config import get_config

    chat = get_config().chat
    return WebSocketMessageValidator(
        max_message_size=chat.max_frame_bytes,
        max_message_length=chat.max_message_length,
    )
