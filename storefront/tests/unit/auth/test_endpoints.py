"""
Tests for the registration and login endpoints.
"""

import os

from jose import jwt

TEST_JWT_SECRET = os.environ["STOREFRONT_JWT_SECRET"]


class TestRegister:
    def test_register_returns_public_user(self, client):
        response = client.post("/auth/register", json={"email": "ana@example.com", "password": "pw-123"})

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["email"] == "ana@example.com"
        assert user["role"] == "user"
        assert "hashed_password" not in user
        assert "password" not in user

    def test_register_admin(self, client):
        response = client.post(
            "/auth/register", json={"email": "boss@example.com", "password": "pw-123", "role": "admin"}
        )
        assert response.status_code == 201
        assert response.json()["user"]["role"] == "admin"

    def test_duplicate_email_conflicts(self, client):
        client.post("/auth/register", json={"email": "ana@example.com", "password": "pw-123"})
        response = client.post("/auth/register", json={"email": "ANA@example.com", "password": "other"})

        assert response.status_code == 409
        assert response.json()["error"]["type"] == "resource_already_exists"

    def test_invalid_body_is_bad_request(self, client):
        response = client.post("/auth/register", json={"email": "not-an-email", "password": ""})

        assert response.status_code == 400
        body = response.json()["error"]
        assert body["type"] == "invalid_input"
        assert "email" in body["details"]["fields"]


class TestLogin:
    def test_login_returns_signed_token(self, client):
        client.post("/auth/register", json={"email": "ana@example.com", "password": "pw-123", "role": "admin"})

        response = client.post("/auth/login", json={"email": "ana@example.com", "password": "pw-123"})

        assert response.status_code == 200
        body = response.json()
        claims = jwt.decode(body["token"], TEST_JWT_SECRET, algorithms=["HS256"])
        assert claims["sub"] == body["user"]["id"]
        assert claims["role"] == "admin"

    def test_wrong_password(self, client):
        client.post("/auth/register", json={"email": "ana@example.com", "password": "pw-123"})

        response = client.post("/auth/login", json={"email": "ana@example.com", "password": "nope"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid email or password"

    def test_unknown_email(self, client):
        response = client.post("/auth/login", json={"email": "ghost@example.com", "password": "pw"})
        assert response.status_code == 401


class TestDependencies:
    def test_history_requires_token(self, client):
        response = client.get("/api/chat/history")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["error"]["message"] == "Unauthorized: token missing"

    def test_invalid_token_rejected(self, client):
        response = client.get("/api/chat/history", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Unauthorized: invalid token"

    def test_token_for_deleted_account_rejected(self, client):
        from storefront.auth.tokens import create_access_token

        token = create_access_token("00000000-0000-0000-0000-000000000000", "admin")
        response = client.get("/api/chat/history", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
