"""
Chat REST helpers: client timing settings and message history.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel

from ..auth.dependencies import get_current_user
from ..config import get_config
from ..exceptions import LoggedHTTPException
from ..models.user import User
from ..realtime.chat_coordinator import ChatCoordinator
from ..realtime.schemas import ChatMessageOut
from ..utils.error_logging import create_context_from_request

chat_router = APIRouter(prefix="/api/chat", tags=["chat"])


class ChatSettings(BaseModel):
    """Timing constants clients need to interoperate with the typing indicator."""

    typing_expiry_ms: int
    client_typing_throttle_ms: int
    client_stop_typing_ms: int
    history_limit: int
    max_message_length: int


def get_chat_coordinator(request: Request) -> ChatCoordinator:
    coordinator = getattr(request.app.state, "chat_coordinator", None)
    if coordinator is None:
        raise LoggedHTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable",
            context=create_context_from_request(request),
        )
    return coordinator


@chat_router.get("/settings", response_model=ChatSettings)
async def get_chat_settings() -> ChatSettings:
    chat = get_config().chat
    return ChatSettings(
        typing_expiry_ms=chat.typing_expiry_ms,
        client_typing_throttle_ms=chat.client_typing_throttle_ms,
        client_stop_typing_ms=chat.client_stop_typing_ms,
        history_limit=chat.history_limit,
        max_message_length=chat.max_message_length,
    )


@chat_router.get("/history", response_model=list[ChatMessageOut])
async def get_chat_history(
    current_user: User = Depends(get_current_user),
    coordinator: ChatCoordinator = Depends(get_chat_coordinator),
) -> list[dict[str, Any]]:
    """The same list a client receives as `chat history` on connect."""
    return await coordinator.history()
