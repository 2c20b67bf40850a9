"""
Shared fixtures for chat room tests.
"""

import random
from unittest.mock import AsyncMock

import pytest

from storefront.realtime.chat_coordinator import ChatCoordinator

from .fakes import make_record


@pytest.fixture
def store():
    mock_store = AsyncMock()
    mock_store.recent_payloads = AsyncMock(return_value=[])

    async def append(username, message, user_color):
        return make_record(username, message, user_color)

    mock_store.append = AsyncMock(side_effect=append)
    return mock_store


@pytest.fixture
def coordinator(store):
    return ChatCoordinator(store, typing_expiry_seconds=0.05, rng=random.Random(7))
