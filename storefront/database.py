"""
Database configuration for the storefront server.

This module provides database connection, session management,
and schema initialization.

Initialization is LAZY: the engine is created from configuration the first
time it is needed, so importing this module never touches the database.
"""

import threading
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from .exceptions import DatabaseError
from .models import metadata
from .structured_logging.enhanced_logging_config import get_logger
from .utils.error_logging import create_error_context, log_and_raise

logger = get_logger(__name__)


class DatabaseManager:
    """
    Thread-safe singleton for database management.

    Manages the async engine and session maker with lazy initialization.
    """

    _instance: "DatabaseManager | None" = None
    _lock: threading.Lock = threading.Lock()

    def __init__(self, database_url: str | None = None) -> None:
        """
        Initialize the database manager.

        Args:
            database_url: Explicit URL; when None the URL is read from configuration
        """
        self.engine: AsyncEngine | None = None
        self.session_maker: async_sessionmaker[AsyncSession] | None = None
        self.database_url: str | None = database_url
        self._initialized: bool = False

    @classmethod
    def get_instance(cls) -> "DatabaseManager":
        """Get the singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def set_instance(cls, manager: "DatabaseManager | None") -> None:
        """Replace the singleton (tests install an in-memory manager here)."""
        with cls._lock:
            cls._instance = manager

    def _initialize_database(self) -> None:
        """
        Create the engine and session maker.

        Raises:
            DatabaseError: If the engine cannot be created
        """
        if self._initialized:
            return

        engine_kwargs: dict[str, Any] = {"echo": False}
        if self.database_url is None:
            from .config import get_config

            config = get_config()
            self.database_url = config.database.url
            if self.database_url.startswith("postgresql"):
                engine_kwargs.update(
                    {
                        "pool_size": config.database.pool_size,
                        "max_overflow": config.database.max_overflow,
                        "pool_timeout": config.database.pool_timeout,
                        "pool_pre_ping": True,
                    }
                )

        if self.database_url.startswith("sqlite") and ":memory:" in self.database_url:
            # One shared connection, otherwise every session would see a different empty database
            engine_kwargs.update({"poolclass": StaticPool, "connect_args": {"check_same_thread": False}})

        try:
            self.engine = create_async_engine(self.database_url, **engine_kwargs)
        except (SQLAlchemyError, ImportError, ValueError) as e:
            context = create_error_context()
            context.metadata["operation"] = "database_initialization"
            log_and_raise(
                DatabaseError,
                f"Failed to create database engine: {e}",
                context=context,
                details={"error_type": type(e).__name__},
                user_friendly="Database cannot be initialized",
                operation="initialize",
            )

        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._initialized = True
        logger.info("Database engine created", dialect=self.engine.dialect.name)

    def get_engine(self) -> AsyncEngine:
        """Get the database engine, initializing if necessary."""
        self._initialize_database()
        assert self.engine is not None
        return self.engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        """Get the session maker, initializing if necessary."""
        self._initialize_database()
        assert self.session_maker is not None
        return self.session_maker

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        engine = self.get_engine()
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Database schema ensured", tables=sorted(metadata.tables))

    async def check_connection(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            async with self.get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Database connectivity check failed", error=str(e), error_type=type(e).__name__)
            return False

    async def dispose(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database engine disposed")
        self.engine = None
        self.session_maker = None
        self._initialized = False


def get_database_manager() -> DatabaseManager:
    """Return the process-wide database manager."""
    return DatabaseManager.get_instance()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding an async session.

    The session is rolled back if the request handler raises.
    """
    session_maker = get_database_manager().get_session_maker()
    async with session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
