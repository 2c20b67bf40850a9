"""
Tests for chat REST helpers and the health check.
"""

from unittest.mock import AsyncMock, patch

from storefront.tests.helpers import auth_header


def test_chat_settings(client):
    response = client.get("/api/chat/settings")

    assert response.status_code == 200
    assert response.json() == {
        "typing_expiry_ms": 3000,
        "client_typing_throttle_ms": 800,
        "client_stop_typing_ms": 1500,
        "history_limit": 50,
        "max_message_length": 2000,
    }


def test_chat_settings_follow_environment(client, monkeypatch):
    monkeypatch.setenv("CHAT_TYPING_EXPIRY_MS", "5000")
    assert client.get("/api/chat/settings").json()["typing_expiry_ms"] == 5000


def test_history_empty(client, user_token):
    response = client.get("/api/chat/history", headers=auth_header(user_token))
    assert response.status_code == 200
    assert response.json() == []


def test_history_without_coordinator(client, user_token):
    del client.app.state.chat_coordinator
    response = client.get("/api/chat/history", headers=auth_header(user_token))
    assert response.status_code == 503


def test_health_reports_connected(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "database": "connected",
        "chat": {"connected_users": 0, "connections": 0},
    }


def test_health_degraded_when_database_unreachable(client):
    with patch("storefront.database.DatabaseManager.check_connection", new=AsyncMock(return_value=False)):
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


def test_websocket_unavailable_without_services(client):
    del client.app.state.identity_resolver
    with client.websocket_connect("/api/ws?token=x") as ws:
        assert ws.receive_json()["type"] == "error"
