"""
Tests for branch stock levels read from the ERP inventory snapshot.
"""
from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from catering_ops.core.exceptions import PermissionDeniedError
from catering_ops.models.inventory import BranchInventory
from catering_ops.models.user import User
from catering_ops.services.inventory import InventoryService

SYNCED = datetime(2025, 1, 15, 3, 0, tzinfo=timezone.utc)


def stock(day, branch, item, category, quantity, unit_cost) -> BranchInventory:
    return BranchInventory(
        inventory_date=day,
        branch=branch,
        item=item,
        category=category,
        quantity=quantity,
        unit="kg",
        unit_cost=unit_cost,
        total_cost=quantity * unit_cost,
        last_synced=SYNCED,
    )


@pytest.fixture
def snapshot(db: Session) -> None:
    db.add_all([
        # Superseded by the next day's snapshot
        stock(date(2025, 1, 14), "Marina", "Rice", "Dry Goods", 10, 5),
        stock(date(2025, 1, 15), "Marina", "Rice", "Dry Goods", 8, 5),
        stock(date(2025, 1, 15), "Marina", "Chicken", "Meat", 5, 20),
        stock(date(2025, 1, 15), "JBR", "Rice", "Dry Goods", 3, 5),
        stock(date(2025, 1, 15), "Central Kitchen", "Chicken", "Meat", 50, 20),
        # Deira stopped syncing earlier
        stock(date(2025, 1, 10), "Deira", "Lentils", "Dry Goods", 4, 6),
    ])
    db.commit()


class TestItems:

    def test_admin_sees_latest_snapshot_of_every_branch(self, db: Session, snapshot, admin_user: User):
        result = InventoryService(db).items(admin_user)

        assert result["total"] == 4
        assert [(i["item"], i["branch"]) for i in result["items"]] == [
            ("Chicken", "Central Kitchen"), ("Chicken", "Marina"), ("Rice", "JBR"), ("Rice", "Marina"),
        ]
        assert result["items"][3]["quantity"] == 8.0
        assert result["sync_info"]["data_date"] == "2025-01-15"

    def test_branch_staff_limited_to_own_branch(self, db: Session, snapshot, branch_staff_user: User):
        result = InventoryService(db).items(branch_staff_user)

        assert {i["branch"] for i in result["items"]} == {"Marina"}
        assert result["total"] == 2

    def test_branch_staff_cannot_read_another_branch(self, db: Session, snapshot, branch_staff_user: User):
        with pytest.raises(PermissionDeniedError, match="Access denied"):
            InventoryService(db).items(branch_staff_user, branch="jbr")

    def test_stale_branch_uses_its_own_latest_date(self, db: Session, snapshot, admin_user: User):
        result = InventoryService(db).items(admin_user, branch="deira")

        assert [i["item"] for i in result["items"]] == ["Lentils"]
        assert result["items"][0]["inventory_date"] == "2025-01-10"

    def test_central_kitchen_slug(self, db: Session, snapshot, ops_user: User):
        result = InventoryService(db).items(ops_user, branch="central-kitchen")

        assert [(i["item"], i["quantity"]) for i in result["items"]] == [("Chicken", 50.0)]

    def test_search_and_category(self, db: Session, snapshot, admin_user: User):
        service = InventoryService(db)

        assert service.items(admin_user, search="  RIC ")["total"] == 2
        assert service.items(admin_user, category="Meat")["total"] == 2

    def test_pagination_keeps_total(self, db: Session, snapshot, admin_user: User):
        result = InventoryService(db).items(admin_user, limit=1, offset=1)

        assert [(i["item"], i["branch"]) for i in result["items"]] == [("Chicken", "Marina")]
        assert result["total"] == 4

    def test_user_without_branches_sees_nothing(self, db: Session, snapshot, regional_user: User):
        result = InventoryService(db).items(regional_user)

        assert result["items"] == []
        assert result["total"] == 0

    def test_regional_manager_may_name_a_branch(self, db: Session, snapshot, regional_user: User):
        assert InventoryService(db).items(regional_user, branch="marina")["total"] == 2


class TestSummary:

    def test_admin_totals(self, db: Session, snapshot, admin_user: User):
        result = InventoryService(db).summary(admin_user)

        assert result["total_items"] == 2
        assert result["total_quantity"] == 66
        assert result["total_value"] == 1155
        assert [loc["location"] for loc in result["by_location"]] == ["Central Kitchen", "Marina", "JBR"]
        assert result["by_location"][1] == {
            "location": "Marina", "item_count": 2, "total_quantity": 13, "total_value": 140,
        }
        assert result["top_items"][0]["branch"] == "Central Kitchen"
        assert len(result["top_items"]) == 4

    def test_branch_manager_summary(self, db: Session, snapshot, branch_manager_user: User):
        result = InventoryService(db).summary(branch_manager_user)

        assert (result["total_items"], result["total_value"]) == (2, 140)
        assert [loc["location"] for loc in result["by_location"]] == ["Marina"]

    def test_empty_snapshot(self, db: Session, admin_user: User):
        result = InventoryService(db).summary(admin_user)

        assert result["total_items"] == 0
        assert result["by_location"] == []
        assert result["sync_info"] == {"last_synced": None, "data_date": None}


class TestInventoryApi:
    """Tests for GET /api/inventory and /api/inventory/summary."""

    def test_list(self, client: TestClient, branch_staff_headers: dict, snapshot):
        response = client.get("/api/inventory?search=chick", headers=branch_staff_headers)

        assert response.status_code == 200
        assert [i["item"] for i in response.json()["items"]] == ["Chicken"]

    def test_other_branch_forbidden(self, client: TestClient, branch_manager_headers: dict, snapshot):
        response = client.get("/api/inventory/summary?branch=jbr", headers=branch_manager_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "Access denied"

    def test_summary(self, client: TestClient, admin_headers: dict, snapshot):
        response = client.get("/api/inventory/summary", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["total_value"] == 1155

    def test_requires_auth(self, client: TestClient):
        assert client.get("/api/inventory").status_code == 401
