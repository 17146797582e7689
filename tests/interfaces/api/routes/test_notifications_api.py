"""Integration tests for the notification, preference and push endpoints."""

from __future__ import annotations

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.application.use_cases.notifications import create_notification
from app.domain.entities import NotificationType, PushDeliveryResult
from app.interfaces.api.dependencies import get_push_sender
from conftest import FakePushSender, create_test_subscription, create_test_user
from main import create_app

PASSWORD = "StrongPass123"


@pytest.fixture()
def bob(session):
    return create_test_user(session, name="Bob", email="bob@example.com", password=PASSWORD)


@pytest.fixture()
def push_sender():
    return FakePushSender()


@pytest.fixture()
def client(push_sender):
    app = create_app()
    app.dependency_overrides[get_push_sender] = lambda: push_sender
    with TestClient(app) as test_client:
        yield test_client


def _token(client: TestClient, email: str) -> str:
    response = client.post("/auth/token", data={"username": email, "password": PASSWORD})
    assert response.status_code == 200
    return response.json()["access_token"]


@pytest.fixture()
def headers(client, bob):
    return {"Authorization": f"Bearer {_token(client, bob.email)}"}


def _notify(session, user_id, **overrides):
    values = {
        "notification_type": NotificationType.SYSTEM,
        "title": "Maintenance",
        "message": "Tonight at 22:00",
        "recipients": [user_id],
    }
    values.update(overrides)
    return create_notification(session, **values)


def test_endpoints_require_authentication(client) -> None:
    assert client.get("/notifications/").status_code == 401
    assert client.get("/notifications/preferences/").status_code == 401
    assert client.post("/push/test").status_code == 401


def test_list_and_read_notifications(client, headers, session, bob) -> None:
    first = _notify(session, bob.id)
    second = _notify(session, bob.id, notification_type=NotificationType.DUE_DATE_REMINDER)

    listing = client.get("/notifications/", headers=headers)
    assert listing.status_code == 200
    body = listing.json()
    assert [item["id"] for item in body["items"]] == [second.id, first.id]
    assert body["unread_count"] == 2

    filtered = client.get("/notifications/", params={"type": "system"}, headers=headers)
    assert [item["id"] for item in filtered.json()["items"]] == [first.id]

    read = client.post(f"/notifications/{first.id}/read", headers=headers)
    assert read.status_code == 200
    assert read.json()["is_read"] is True

    count = client.get("/notifications/unread-count", headers=headers)
    assert count.json() == {"unread_count": 1}

    unread = client.get("/notifications/", params={"unread_only": True}, headers=headers)
    assert [item["id"] for item in unread.json()["items"]] == [second.id]

    assert client.post("/notifications/read-all", headers=headers).json() == {"updated": 1}
    assert client.post("/notifications/read-all", headers=headers).json() == {"updated": 0}


def test_reading_someone_elses_notification_is_not_found(client, headers, session) -> None:
    alice = create_test_user(session, name="Alice", email="alice@example.com")
    notification = _notify(session, alice.id)

    response = client.post(f"/notifications/{notification.id}/read", headers=headers)

    assert response.status_code == 404


def test_preferences_round_trip(client, headers) -> None:
    initial = client.get("/notifications/preferences/", headers=headers)
    assert initial.status_code == 200
    body = initial.json()
    assert body["settings"]["notifications_enabled"] is True
    assert len(body["preferences"]) == len(NotificationType)

    updated = client.put(
        "/notifications/preferences/task_assignment",
        json={"push_enabled": True},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json() == {
        "type": "task_assignment",
        "email_enabled": True,
        "push_enabled": True,
        "in_app_enabled": True,
    }

    settings = client.put(
        "/notifications/preferences/settings",
        json={
            "quiet_hours_enabled": True,
            "quiet_hours_start": "22:00:00",
            "quiet_hours_end": "07:00:00",
            "timezone": "Europe/Madrid",
        },
        headers=headers,
    )
    assert settings.status_code == 200
    assert settings.json()["quiet_hours_start"] == "22:00:00"
    assert settings.json()["timezone"] == "Europe/Madrid"


def test_invalid_settings_are_rejected(client, headers) -> None:
    bad_timezone = client.put(
        "/notifications/preferences/settings", json={"timezone": "Nowhere/Land"}, headers=headers
    )
    unknown_type = client.put(
        "/notifications/preferences/carrier_pigeon", json={"email_enabled": False}, headers=headers
    )

    assert bad_timezone.status_code == 400
    assert unknown_type.status_code == 422


def test_push_subscription_lifecycle(client, headers, push_sender) -> None:
    subscription = {
        "endpoint": "https://push.example.com/device-1",
        "keys": {"p256dh": "p256dh-key", "auth": "auth-key"},
        "user_agent": "Firefox",
    }

    created = client.post("/push/subscribe", json=subscription, headers=headers)
    assert created.status_code == 201
    assert created.json()["is_active"] is True

    listing = client.get("/push/subscriptions", headers=headers)
    assert [item["endpoint"] for item in listing.json()] == [subscription["endpoint"]]

    test_push = client.post("/push/test", headers=headers)
    assert test_push.json() == {"sent": 1, "failed": 0, "deactivated": 0}
    assert push_sender.calls[0][1]["title"] == "Test notification"

    removed = client.post(
        "/push/unsubscribe", json={"endpoint": subscription["endpoint"]}, headers=headers
    )
    assert removed.status_code == 204
    assert client.get("/push/subscriptions", headers=headers).json() == []
    assert client.post("/push/test", headers=headers).status_code == 400


def test_subscribe_requires_https_endpoint(client, headers) -> None:
    response = client.post(
        "/push/subscribe",
        json={"endpoint": "http://push.example.com/x", "keys": {"p256dh": "a", "auth": "b"}},
        headers=headers,
    )

    assert response.status_code == 400


def test_test_push_deactivates_expired_devices(client, headers, session, bob, push_sender) -> None:
    create_test_subscription(session, user_id=bob.id, endpoint="https://push.example.com/gone")
    push_sender.results = [PushDeliveryResult(success=False, error_code="expired")]

    response = client.post("/push/test", headers=headers)

    assert response.json() == {"sent": 0, "failed": 1, "deactivated": 1}
    deactivate_all = client.post("/push/subscriptions/deactivate-all", headers=headers)
    assert deactivate_all.json() == {"deactivated": 0}


def test_vapid_key_is_unavailable_without_configuration(client) -> None:
    assert client.get("/push/vapid-public-key").status_code == 503


def test_websocket_streams_pending_notifications(client, headers, session, bob) -> None:
    notification = _notify(session, bob.id)
    token = headers["Authorization"].split(" ", 1)[1]

    with client.websocket_connect(f"/notifications/ws?token={token}") as websocket:
        init = websocket.receive_json()
        assert init["type"] == "init"
        assert [item["id"] for item in init["data"]] == [notification.id]
        assert init["unread_count"] == 1

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

        websocket.send_json({"type": "ack", "ids": [notification.id]})
        assert websocket.receive_json() == {"type": "unread_count", "unread_count": 0}


def test_websocket_rejects_invalid_tokens(client) -> None:
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/notifications/ws?token=invalid") as websocket:
            websocket.receive_json()
