"""
Pydantic schemas for chat event payloads.

Every client event with a payload has an explicit schema; events without
a payload ignore whatever data the client attaches.
"""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

DEFAULT_MAX_MESSAGE_LENGTH = 2000
HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _clean_name(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("username must be a string")
    return value.strip() or None


class ClientFrame(BaseModel):
    """Outer shape of every client -> server WebSocket frame."""

    model_config = ConfigDict(extra="ignore")

    event_type: str = Field(..., min_length=1, description="Protocol event name")
    data: Any = Field(None, description="Event payload")


class UserJoinedPayload(BaseModel):
    """Late display-name announcement. A bare JSON string is taken as the username."""

    model_config = ConfigDict(extra="ignore")

    username: str | None = Field(None, description="Announced display name")

    @model_validator(mode="before")
    @classmethod
    def accept_bare_string(cls, data: Any) -> Any:
        if data is None or isinstance(data, str):
            return {"username": data}
        return data

    @field_validator("username", mode="before")
    @classmethod
    def clean_username(cls, v: Any) -> str | None:
        return _clean_name(v)


class ChatMessagePayload(BaseModel):
    """A chat message sent by a client."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    username: str | None = Field(None, description="Client-supplied name, used only when the session has none")
    message: str = Field(..., description="Message text")
    user_color: str | None = Field(None, alias="userColor", description="Hex colour #RRGGBB")

    @field_validator("username", mode="before")
    @classmethod
    def clean_username(cls, v: Any) -> str | None:
        return _clean_name(v)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str, info: ValidationInfo) -> str:
        """Trim the text and enforce it is non-blank and within the configured length."""
        text = v.strip()
        if not text:
            raise ValueError("Message cannot be empty")
        max_length = (info.context or {}).get("max_message_length", DEFAULT_MAX_MESSAGE_LENGTH)
        if len(text) > max_length:
            raise ValueError(f"Message exceeds maximum length of {max_length} characters")
        return text

    @field_validator("user_color", mode="before")
    @classmethod
    def validate_color(cls, v: Any) -> str | None:
        if v is None or v == "":
            return None
        if not isinstance(v, str) or not HEX_COLOR_PATTERN.match(v):
            raise ValueError("userColor must be a hex colour like #4ECDC4")
        return v


class ChatMessageOut(BaseModel):
    """A persisted chat message as delivered to clients."""

    model_config = ConfigDict(populate_by_name=True)

    username: str
    message: str
    timestamp: str
    user_color: str = Field(..., alias="userColor")
