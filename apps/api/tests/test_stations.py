"""
Tests for the station task board.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from catering_ops.models.production import ProductionSchedule
from catering_ops.services.production_schedule import ProductionScheduleService, task_state


@pytest.fixture
def board(db: Session) -> ProductionSchedule:
    document = {
        "schedule_id": "schedule-2025-01-13",
        "week_start": "2025-01-13",
        "days": [
            {
                "date": "2025-01-13",
                "items": [
                    {"item_id": "done", "recipe_name": "Samosa", "assigned_to": "Hot Line",
                     "completed": True, "completed_at": "2025-01-13T08:00:00"},
                    {"item_id": "pending", "recipe_name": "Pakora", "assigned_to": "hot_line"},
                    {"item_id": "started", "recipe_name": "Biryani", "assigned_to": "HOT LINE",
                     "started_at": "2025-01-13T07:00:00"},
                    {"item_id": "other", "recipe_name": "Hummus", "assigned_to": "Cold Line"},
                    {"item_id": "free", "recipe_name": "Rice"},
                ],
            },
        ],
    }
    row = ProductionSchedule(schedule_id="schedule-2025-01-13", week_start="2025-01-13", schedule_data=document)
    db.add(row)
    db.commit()
    return row


class TestStationTasks:
    """Tests for GET /api/stations/{station}/tasks."""

    def test_orders_in_progress_then_pending_then_done(self, client: TestClient, chef_headers: dict, board):
        response = client.get("/api/stations/Hot Line/tasks", params={"date": "2025-01-13"}, headers=chef_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["schedule_id"] == "schedule-2025-01-13"
        assert [t["item_id"] for t in data["tasks"]] == ["started", "pending", "done"]
        assert data["tasks"][2]["completed"] is True
        assert data["tasks"][1]["completed"] is False

    def test_station_staff_sees_own_station(self, client: TestClient, station_headers: dict, board):
        response = client.get("/api/stations/hot-line/tasks", params={"date": "2025-01-13"}, headers=station_headers)

        assert response.status_code == 200
        assert len(response.json()["tasks"]) == 3

    def test_station_staff_blocked_from_other_station(self, client: TestClient, station_headers: dict, board):
        response = client.get("/api/stations/Cold Line/tasks", params={"date": "2025-01-13"}, headers=station_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden: You can only view tasks for your assigned station"

    def test_branch_staff_forbidden(self, client: TestClient, branch_staff_headers: dict, board):
        response = client.get("/api/stations/Hot Line/tasks", params={"date": "2025-01-13"}, headers=branch_staff_headers)

        assert response.status_code == 403

    def test_day_without_schedule(self, client: TestClient, chef_headers: dict, board):
        response = client.get("/api/stations/Hot Line/tasks", params={"date": "2025-06-01"}, headers=chef_headers)

        assert response.status_code == 200
        assert response.json()["tasks"] == []
        assert response.json()["schedule_id"] is None

    def test_missing_date(self, client: TestClient, chef_headers: dict, board):
        response = client.get("/api/stations/Hot Line/tasks", headers=chef_headers)

        assert response.status_code == 400


class TestTaskState:

    def test_task_state_order(self):
        assert task_state({"started_at": "x"}) < task_state({}) < task_state({"completed": True})

    def test_service_directly(self, db: Session, board):
        tasks = ProductionScheduleService(db).station_tasks("Cold Line", "2025-01-13")

        assert [t["item_id"] for t in tasks.tasks] == ["other"]
        assert tasks.tasks[0]["station"] == "Cold Line"
