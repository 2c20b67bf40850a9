"""
Test configuration and fixtures for the storefront test suite.

Environment variables are set before any storefront module is imported so
that module-level configuration (Argon2 parameters, security settings) is
test-friendly.
"""

import os
import random
from collections.abc import AsyncGenerator, Generator

# Set critical environment variables immediately to prevent module-level config loading failures
os.environ.setdefault("STOREFRONT_JWT_SECRET", "test-jwt-secret-key-for-testing-only")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_DISABLE_LOGGING", "true")
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

# Imports must come after environment variables to prevent config loading failures
from storefront.config import reset_config  # noqa: E402
from storefront.database import DatabaseManager  # noqa: E402
from storefront.tests.helpers import register_and_login  # noqa: E402

IN_MEMORY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset config singleton before and after each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def deterministic_random_seed() -> Generator[None, None, None]:
    """Set deterministic random seed for reproducible tests."""
    random.seed(42)
    yield


@pytest_asyncio.fixture
async def db_manager() -> AsyncGenerator[DatabaseManager, None]:
    """A fresh in-memory database with the schema created."""
    manager = DatabaseManager(IN_MEMORY_DATABASE_URL)
    await manager.create_schema()
    yield manager
    await manager.dispose()


@pytest_asyncio.fixture
async def session_maker(db_manager: DatabaseManager) -> async_sessionmaker[AsyncSession]:
    return db_manager.get_session_maker()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """A TestClient running the full application against a private in-memory database."""
    from storefront.app.factory import create_app

    DatabaseManager.set_instance(DatabaseManager(IN_MEMORY_DATABASE_URL))
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
    DatabaseManager.set_instance(None)


@pytest.fixture
def user_token(client: TestClient) -> str:
    return register_and_login(client, "alice@example.com")


@pytest.fixture
def admin_token(client: TestClient) -> str:
    return register_and_login(client, "admin@example.com", role="admin")
