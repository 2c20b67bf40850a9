"""
Helpers shared by API and WebSocket tests.
"""

from fastapi.testclient import TestClient


def register_and_login(client: TestClient, email: str, password: str = "s3cret-pass", role: str = "user") -> str:
    """Register an account through the API and return a bearer token for it."""
    response = client.post("/auth/register", json={"email": email, "password": password, "role": role})
    assert response.status_code == 201, response.text
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
