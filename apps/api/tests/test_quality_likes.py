"""
Tests for quality-check submissions and reviewer likes.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from catering_ops.models.notification import Notification
from catering_ops.models.quality import QualityCheck, QualityLike
from catering_ops.models.user import User
from catering_ops.services.notifications import NotificationService


def submission(**overrides) -> dict:
    body = {
        "branch_slug": "marina",
        "product_name": "Chicken Shawarma",
        "meal_service": "lunch",
        "section": "Hot",
        "taste_score": 4,
        "appearance_score": 5,
        "portion_qty_gm": 250,
        "temp_celsius": 68.5,
    }
    body.update(overrides)
    return body


@pytest.fixture
def check(db: Session, branch_staff_user: User) -> QualityCheck:
    check = QualityCheck(
        branch_slug="marina",
        submitted_by=branch_staff_user.id,
        meal_service="lunch",
        product_name="Chicken Shawarma",
        section="Hot",
        taste_score=4,
        appearance_score=5,
    )
    db.add(check)
    db.commit()
    return check


class TestSubmit:
    """Tests for POST /api/quality-checks."""

    def test_member_submits_for_own_branch(self, client: TestClient, branch_staff_headers: dict):
        response = client.post("/api/quality-checks", headers=branch_staff_headers, json=submission())

        assert response.status_code == 201
        check = response.json()["quality_check"]
        assert check["branch_slug"] == "marina"
        assert check["portion_qty_gm"] == 250.0
        assert check["like_count"] == 0

    def test_member_cannot_submit_for_other_branch(self, client: TestClient, branch_staff_headers: dict):
        response = client.post("/api/quality-checks", headers=branch_staff_headers, json=submission(branch_slug="jbr"))

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden: not a member of this branch"}

    def test_regional_manager_submits_for_any_branch(self, client: TestClient, regional_headers: dict):
        response = client.post("/api/quality-checks", headers=regional_headers, json=submission(branch_slug="jbr"))

        assert response.status_code == 201

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"taste_score": 6}, "taste_score must be between 1 and 5"),
            ({"appearance_score": 0}, "appearance_score must be between 1 and 5"),
            ({"meal_service": "brunch"}, "meal_service must be one of: breakfast, lunch, dinner"),
            ({"section": ""}, "Missing required fields: section"),
        ],
    )
    def test_validation(self, client: TestClient, branch_staff_headers: dict, overrides, message):
        response = client.post("/api/quality-checks", headers=branch_staff_headers, json=submission(**overrides))

        assert response.status_code == 400
        assert response.json()["error"] == message

    def test_dinner_is_a_meal_service(self, client: TestClient, branch_staff_headers: dict):
        response = client.post(
            "/api/quality-checks", headers=branch_staff_headers, json=submission(meal_service="dinner")
        )

        assert response.status_code == 201


class TestLikes:
    """Tests for /api/quality-checks/{id}/like and /likes."""

    def test_like_notifies_submitter(
        self, client: TestClient, db: Session, regional_headers: dict, branch_staff_user: User, check
    ):
        response = client.post(
            f"/api/quality-checks/{check.id}/like",
            headers=regional_headers,
            json={"note": "Crisp and hot", "tags": ["Perfect Execution"]},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Like added successfully"
        assert body["like"]["given_by_name"] == "Hana"
        assert body["like"]["tags"] == ["Perfect Execution"]

        notification = db.query(Notification).one()
        assert notification.related_user_id == branch_staff_user.id
        assert notification.title == "Your submission was liked!"
        assert notification.preview == "Hana liked your Chicken Shawarma quality check"
        assert notification.extra["type"] == "quality_like"
        assert '"Crisp and hot"' in notification.content

    def test_like_survives_notification_failure(
        self, client: TestClient, db: Session, regional_headers: dict, check, monkeypatch
    ):
        def fail(*args, **kwargs):
            raise RuntimeError("notifications table is locked")

        monkeypatch.setattr(NotificationService, "create", fail)

        response = client.post(f"/api/quality-checks/{check.id}/like", headers=regional_headers, json={})

        assert response.status_code == 201
        assert db.query(QualityLike).count() == 1
        assert db.query(Notification).count() == 0

    def test_cannot_like_own_submission(self, client: TestClient, db: Session, regional_user: User, regional_headers: dict):
        own = QualityCheck(
            branch_slug="jbr", submitted_by=regional_user.id, meal_service="breakfast",
            product_name="Manakish", section="Bakery", taste_score=5, appearance_score=5,
        )
        db.add(own)
        db.commit()

        response = client.post(f"/api/quality-checks/{own.id}/like", headers=regional_headers, json={})

        assert response.status_code == 400
        assert response.json() == {"error": "You cannot like your own submission"}

    def test_cannot_like_twice(self, client: TestClient, regional_headers: dict, check):
        client.post(f"/api/quality-checks/{check.id}/like", headers=regional_headers, json={})

        response = client.post(f"/api/quality-checks/{check.id}/like", headers=regional_headers, json={})

        assert response.status_code == 400
        assert response.json() == {"error": "You have already liked this submission"}

    @pytest.mark.parametrize(
        "body,message",
        [
            ({"tags": ["Tasty"]}, "Invalid tags provided"),
            ({"note": "x" * 201}, "Note must be 200 characters or less"),
        ],
    )
    def test_like_validation(self, client: TestClient, regional_headers: dict, check, body, message):
        response = client.post(f"/api/quality-checks/{check.id}/like", headers=regional_headers, json=body)

        assert response.status_code == 400
        assert response.json()["error"] == message

    def test_like_requires_reviewer(self, client: TestClient, branch_manager_headers: dict, check):
        response = client.post(f"/api/quality-checks/{check.id}/like", headers=branch_manager_headers, json={})

        assert response.status_code == 403

    def test_like_missing_check(self, client: TestClient, regional_headers: dict):
        response = client.post("/api/quality-checks/999/like", headers=regional_headers, json={})

        assert response.status_code == 404
        assert response.json() == {"error": "Quality check not found"}

    def test_unlike(self, client: TestClient, regional_headers: dict, check):
        client.post(f"/api/quality-checks/{check.id}/like", headers=regional_headers, json={})

        first = client.delete(f"/api/quality-checks/{check.id}/like", headers=regional_headers)
        again = client.delete(f"/api/quality-checks/{check.id}/like", headers=regional_headers)

        assert first.json() == {"success": True, "message": "Like removed successfully"}
        assert again.status_code == 404

    def test_list_counts_likes(self, client: TestClient, regional_headers: dict, ops_headers: dict, check):
        client.post(f"/api/quality-checks/{check.id}/like", headers=regional_headers, json={})
        client.post(f"/api/quality-checks/{check.id}/like", headers=ops_headers, json={})

        response = client.get("/api/quality-checks?branch_slug=marina", headers=regional_headers)

        checks = response.json()["quality_checks"]
        assert [(c["id"], c["like_count"]) for c in checks] == [(check.id, 2)]
        assert client.get("/api/quality-checks?branch_slug=jbr", headers=regional_headers).json() == {
            "quality_checks": []
        }


class TestLikeVisibility:

    def test_submitter_sees_likes(self, client: TestClient, regional_headers: dict, branch_staff_headers: dict, check):
        like = client.post(f"/api/quality-checks/{check.id}/like", headers=regional_headers, json={}).json()["like"]

        response = client.get(f"/api/quality-checks/{check.id}/likes", headers=branch_staff_headers)

        body = response.json()
        assert body["total_likes"] == 1
        assert body["user_has_liked"] is False
        assert body["likes"][0]["id"] == like["id"]

    def test_reviewer_sees_own_like(self, client: TestClient, regional_headers: dict, check):
        like = client.post(f"/api/quality-checks/{check.id}/like", headers=regional_headers, json={}).json()["like"]

        body = client.get(f"/api/quality-checks/{check.id}/likes", headers=regional_headers).json()

        assert body["user_has_liked"] is True
        assert body["current_user_like_id"] == like["id"]

    def test_others_are_denied(self, client: TestClient, chef_headers: dict, check):
        response = client.get(f"/api/quality-checks/{check.id}/likes", headers=chef_headers)

        assert response.status_code == 403
        assert response.json() == {"error": "Access denied"}
