"""
Tests for ORM model helpers.
"""

from datetime import datetime

from storefront.models.chat_message import ChatMessage
from storefront.models.user import User, UserRole


def test_chat_message_payload_uses_wire_names():
    record = ChatMessage(
        username="alice",
        message="hi",
        user_color="#FF6B6B",
        created_at=datetime(2024, 5, 1, 12, 30, 15, 123456),
    )

    assert record.to_payload() == {
        "username": "alice",
        "message": "hi",
        "timestamp": "2024-05-01T12:30:15.123Z",
        "userColor": "#FF6B6B",
    }


def test_user_display_name_and_role():
    user = User(email="ana.perez@example.com", hashed_password="x", role=UserRole.ADMIN)
    assert user.display_name == "ana.perez"
    assert user.is_admin
    assert not User(email="b@example.com", hashed_password="x", role=UserRole.USER).is_admin
