"""Tests for the authentication token endpoint."""

from __future__ import annotations

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from app.infrastructure.models import UserModel
from app.infrastructure.security import get_password_hash
from conftest import create_test_user
from main import create_app


def _login(client: TestClient, email: str, password: str):
    return client.post(
        "/auth/token",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )


def test_login_returns_bearer_token(session) -> None:
    create_test_user(session, name="Bob", email="bob@example.com", password="StrongPass123")

    with TestClient(create_app()) as client:
        response = _login(client, "Bob@Example.com", "StrongPass123")

    assert response.status_code == 200
    payload = response.json()
    assert payload["token_type"] == "bearer"
    assert payload["access_token"]


def test_login_rejects_wrong_password(session) -> None:
    create_test_user(session, name="Bob", email="bob@example.com", password="StrongPass123")

    with TestClient(create_app()) as client:
        response = _login(client, "bob@example.com", "nope-nope")

    assert response.status_code == 401


def test_login_rejects_inactive_users(session) -> None:
    create_test_user(
        session,
        name="Bob",
        email="bob@example.com",
        password="StrongPass123",
        is_active=False,
    )

    with TestClient(create_app()) as client:
        response = _login(client, "bob@example.com", "StrongPass123")

    assert response.status_code == 403


def test_password_change_revokes_existing_tokens(session) -> None:
    user = create_test_user(
        session, name="Bob", email="bob@example.com", password="StrongPass123"
    )

    with TestClient(create_app()) as client:
        token = _login(client, "bob@example.com", "StrongPass123").json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}
        assert client.get("/notifications/unread-count", headers=headers).status_code == 200

        model = session.get(UserModel, user.id)
        model.password = get_password_hash("AnotherPass456")
        session.commit()

        response = client.get("/notifications/unread-count", headers=headers)

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"
