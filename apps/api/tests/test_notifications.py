"""
Tests for in-app notifications.
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from catering_ops.db.documents import utc_now
from catering_ops.models.notification import Notification, NotificationRead
from catering_ops.models.user import User
from catering_ops.services.notifications import NotificationService


def announcement(**overrides) -> dict:
    body = {
        "type": "announcement",
        "title": "New menu",
        "preview": "Spring menu goes live Monday",
        "content": "Full details of the spring menu rollout.",
    }
    body.update(overrides)
    return body


@pytest.fixture
def feed(db: Session, chef_user: User, station_user: User) -> dict:
    """One broadcast, one notification per user, one expired and one inactive."""
    service = NotificationService(db)
    broadcast = service.create(created_by="Amal", **announcement())
    for_chef = service.create(
        type="alert", title="Liked", preview="Someone liked your check", content="-", created_by="system",
        related_user_id=chef_user.id,
    )
    for_station = service.create(
        type="alert", title="Liked", preview="Someone liked your check", content="-", created_by="system",
        related_user_id=station_user.id,
    )
    expired = Notification(
        type="patch", priority="normal", title="Old", preview="Old", content="Old", is_active=True,
        created_at=utc_now() - timedelta(days=10), expires_at=utc_now() - timedelta(days=3),
    )
    inactive = service.create(created_by="Amal", **announcement(title="Withdrawn"))
    inactive.is_active = False
    db.add(expired)
    db.commit()
    return {"broadcast": broadcast, "for_chef": for_chef, "for_station": for_station}


class TestNotificationService:

    def test_feed_visibility(self, db: Session, chef_user: User, feed):
        notifications = NotificationService(db).feed(chef_user)

        assert [n["id"] for n in notifications] == [feed["for_chef"].id, feed["broadcast"].id]
        assert all(n["is_read"] is False for n in notifications)

    def test_defaults(self, db: Session):
        notification = NotificationService(db).create(created_by="", **announcement())

        assert notification.priority == "normal"
        assert notification.created_by == "admin"
        assert notification.expires_at - notification.created_at == timedelta(days=7)

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"title": ""}, "Missing required fields: type, title, preview, content"),
            ({"type": "memo"}, "Invalid type. Must be one of: feature, patch, alert, announcement, urgent"),
            ({"priority": "low"}, "Invalid priority. Must be one of: normal, urgent"),
        ],
    )
    def test_create_validation(self, client: TestClient, admin_headers: dict, overrides, message):
        response = client.post("/api/notifications", headers=admin_headers, json=announcement(**overrides))

        assert response.status_code == 400
        assert response.json()["error"] == message


class TestNotificationsApi:
    """Tests for /api/notifications."""

    def test_publish(self, client: TestClient, ops_headers: dict):
        response = client.post(
            "/api/notifications",
            headers=ops_headers,
            json=announcement(priority="urgent", expires_in_days=2),
        )

        assert response.status_code == 201
        notification = response.json()["notification"]
        assert notification["priority"] == "urgent"
        assert notification["created_by"] == "Omar"
        assert notification["is_active"] is True

    def test_publish_requires_publisher(self, client: TestClient, chef_headers: dict):
        response = client.post("/api/notifications", headers=chef_headers, json=announcement())

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden: insufficient permissions"}

    def test_feed(self, client: TestClient, station_headers: dict, feed):
        response = client.get("/api/notifications", headers=station_headers)

        ids = [n["id"] for n in response.json()["notifications"]]
        assert ids == [feed["for_station"].id, feed["broadcast"].id]

    def test_mark_read(self, client: TestClient, db: Session, chef_headers: dict, chef_user: User, feed):
        broadcast_id = feed["broadcast"].id

        first = client.post(f"/api/notifications/{broadcast_id}/read", headers=chef_headers)
        again = client.post(f"/api/notifications/{broadcast_id}/read", headers=chef_headers)

        assert first.json() == {"success": True}
        assert again.json() == {"success": True}
        assert db.query(NotificationRead).filter(NotificationRead.user_id == chef_user.id).count() == 1

        notifications = client.get("/api/notifications", headers=chef_headers).json()["notifications"]
        assert {n["id"]: n["is_read"] for n in notifications} == {feed["for_chef"].id: False, broadcast_id: True}

    def test_mark_read_missing(self, client: TestClient, chef_headers: dict):
        response = client.post("/api/notifications/999/read", headers=chef_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Notification not found"}

    def test_mark_all_read(self, client: TestClient, chef_headers: dict, feed):
        client.post(f"/api/notifications/{feed['broadcast'].id}/read", headers=chef_headers)

        response = client.post("/api/notifications/read-all", headers=chef_headers)

        assert response.json() == {"success": True, "marked": 1}
        notifications = client.get("/api/notifications", headers=chef_headers).json()["notifications"]
        assert all(n["is_read"] for n in notifications)

    def test_deactivate(self, client: TestClient, admin_headers: dict, chef_headers: dict, feed):
        broadcast_id = feed["broadcast"].id

        response = client.delete(f"/api/notifications/{broadcast_id}", headers=admin_headers)

        assert response.json() == {"success": True, "id": broadcast_id}
        notifications = client.get("/api/notifications", headers=chef_headers).json()["notifications"]
        assert broadcast_id not in [n["id"] for n in notifications]

    def test_deactivate_requires_admin(self, client: TestClient, ops_headers: dict, feed):
        response = client.delete(f"/api/notifications/{feed['broadcast'].id}", headers=ops_headers)

        assert response.status_code == 403
