"""Application lifecycle management for the storefront server.

Startup creates the schema and builds the chat services on app.state;
shutdown cancels pending typing timers and disposes the database engine.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..auth.identity import IdentityResolver
from ..auth.users import AccountDirectory
from ..config import get_config
from ..database import get_database_manager
from ..realtime.chat_coordinator import ChatCoordinator
from ..realtime.message_store import ChatMessageStore
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger("storefront.lifespan")


def build_chat_services(app: FastAPI) -> None:
    """Attach the identity resolver and chat coordinator to app.state."""
    config = get_config()
    session_maker = get_database_manager().get_session_maker()

    app.state.identity_resolver = IdentityResolver(AccountDirectory(session_maker))
    app.state.chat_coordinator = ChatCoordinator.from_config(ChatMessageStore(session_maker), config.chat)
    logger.info(
        "Chat services initialized",
        history_limit=config.chat.history_limit,
        typing_expiry_ms=config.chat.typing_expiry_ms,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting storefront server")
    database = get_database_manager()
    await database.create_schema()
    build_chat_services(app)

    try:
        yield
    finally:
        logger.info("Shutting down storefront server")
        coordinator = getattr(app.state, "chat_coordinator", None)
        if coordinator is not None:
            await coordinator.shutdown()
        await database.dispose()
        logger.info("Storefront server shutdown complete")
