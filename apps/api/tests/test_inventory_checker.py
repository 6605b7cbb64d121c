"""
Tests for the automated inventory check.
"""
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from catering_ops.models.inventory import (
    BranchInventory,
    IngredientMapping,
    IngredientShortage,
    InventoryCheck,
)
from catering_ops.models.odoo import OdooRecipe
from catering_ops.models.production import ProductionSchedule
from catering_ops.services.inventory_checker import (
    InventoryChecker,
    classify_shortage,
    shortage_priority,
    to_base_unit,
)

SCHEDULE_ID = "schedule-2025-01-20"
TODAY = date(2025, 1, 18)


def bom(item: str, ingredient: str, quantity: float, unit: str, item_type: str = "ingredient") -> OdooRecipe:
    return OdooRecipe(item=item, ingredient_name=ingredient, item_type=item_type, quantity=quantity, unit=unit)


def stock(item: str, quantity: float, unit: str, inventory_date: date = date(2025, 1, 19)) -> BranchInventory:
    return BranchInventory(
        inventory_date=inventory_date, branch="Central Kitchen", item=item, quantity=quantity, unit=unit
    )


@pytest.fixture
def kitchen(db: Session) -> None:
    """Chicken Biryani x10 on 2025-01-20 against the Central Kitchen snapshot of 2025-01-19."""
    db.add_all([
        bom("Chicken Biryani", "Rice", 0.2, "KG"),
        bom("Chicken Biryani", "Chicken", 0.3, "KG"),
        bom("Chicken Biryani", "Biryani Masala", 0.05, "portion", item_type="subrecipe"),
        bom("Biryani Masala", "Chili Powder", 100, "GM"),
        bom("Biryani Masala", "Salt", 20, "GM"),
        stock("Basmati Rice", 5, "KG"),
        stock("Chicken Breast", 1, "KG"),
        stock("Sea Salt Fine", 5, "GM"),
        # Older snapshot is ignored
        stock("Chili Powder", 50, "KG", inventory_date=date(2025, 1, 10)),
        # Other branches are ignored
        BranchInventory(inventory_date=date(2025, 1, 19), branch="Marina", item="Chili Powder", quantity=9, unit="KG"),
        IngredientMapping(recipe_ingredient_name="Salt", inventory_item_name="Sea Salt Fine"),
        ProductionSchedule(
            schedule_id=SCHEDULE_ID,
            week_start="2025-01-20",
            schedule_data={
                "schedule_id": SCHEDULE_ID,
                "week_start": "2025-01-20",
                "days": [
                    {
                        "date": "2025-01-20",
                        "items": [
                            {"item_id": "i-1", "recipe_name": "Chicken Biryani", "quantity": 10, "unit": "portion"},
                            {"item_id": "i-2", "recipe_name": "Unknown Dish", "quantity": 3},
                        ],
                    },
                    {"date": "2025-01-21", "items": []},
                ],
            },
        ),
    ])
    db.commit()


class TestUnitConversion:

    @pytest.mark.parametrize(
        "quantity,unit,expected",
        [
            (2, "kg", (2000, "GM")),
            (3, "Tbsp", (45, "ML")),
            (1.5, "L", (1500, "ML")),
            (4, "pieces", (4, "PIECES")),
            (6, "ea", (6, "UNIT")),
        ],
    )
    def test_to_base_unit(self, quantity, unit, expected):
        assert to_base_unit(quantity, unit) == expected

    def test_absurd_quantities_are_capped(self):
        assert to_base_unit(10 ** 12, "KG") == (100_000_000_000, "GM")


class TestClassification:

    def test_classify(self):
        assert classify_shortage(100, 0) == "MISSING"
        assert classify_shortage(100, 100) == "SUFFICIENT"
        assert classify_shortage(100, 15) == "CRITICAL"
        assert classify_shortage(100, 60) == "PARTIAL"

    def test_priority(self):
        assert shortage_priority(1, "PARTIAL") == "HIGH"
        assert shortage_priority(10, "MISSING") == "HIGH"
        assert shortage_priority(3, "PARTIAL") == "MEDIUM"
        assert shortage_priority(10, "PARTIAL") == "MEDIUM"
        assert shortage_priority(10, "SUFFICIENT") == "LOW"


class TestRecipeExplosion:

    def test_sub_recipes_are_flattened(self, db: Session, kitchen):
        lines = InventoryChecker(db, today=TODAY).explode("Chicken Biryani", 10, "Chicken Biryani")

        by_name = {name: (qty, unit, source) for name, qty, unit, source, _ in lines}
        assert by_name["Chili Powder"] == (pytest.approx(50), "GM", "Chicken Biryani > Biryani Masala")
        assert by_name["Rice"][0] == pytest.approx(2000)
        assert "Biryani Masala" not in by_name

    def test_cycles_terminate(self, db: Session):
        db.add_all([
            bom("Sauce A", "Sauce B", 1, "portion", item_type="subrecipe"),
            bom("Sauce B", "Sauce A", 1, "portion", item_type="subrecipe"),
            bom("Sauce B", "Tomato", 100, "GM"),
        ])
        db.commit()

        lines = InventoryChecker(db, today=TODAY).explode("Sauce A", 2, "Sauce A")

        assert [(name, qty) for name, qty, *_ in lines] == [("Tomato", 200)]

    def test_aggregate_merges_case_insensitive_names(self):
        needs = InventoryChecker.aggregate([
            ("Rice", 100, "GM", "Biryani", "Biryani"),
            ("rice", 50, "GM", "Pulao", "Pulao"),
            ("Rice", 1, "ML", "Kheer", "Kheer"),
        ])

        assert [(n.name, n.base_quantity, n.base_unit) for n in needs] == [("Rice", 150, "GM"), ("Rice", 1, "ML")]
        assert needs[0].recipes == ["Biryani", "Pulao"]


class TestRunCheck:

    def test_run_classifies_shortages(self, db: Session, kitchen):
        result = InventoryChecker(db, today=TODAY).run(SCHEDULE_ID, user_id="7")

        assert result.overall == "CRITICAL_SHORTAGE"
        assert result.production_dates == ["2025-01-20", "2025-01-21"]
        assert result.total_ingredients == 4
        assert (result.missing, result.partial, result.sufficient) == (1, 2, 1)
        assert result.inventory_date == "2025-01-19"

        shortages = {s.ingredient: s for s in result.shortages}
        assert set(shortages) == {"Chicken", "Chili Powder", "Salt"}
        assert shortages["Chili Powder"].status == "MISSING"
        assert shortages["Chili Powder"].priority == "HIGH"
        assert shortages["Chicken"].status == "PARTIAL"
        assert shortages["Chicken"].inventory_item == "Chicken Breast"
        assert shortages["Chicken"].shortfall == 2000
        assert shortages["Chicken"].priority == "MEDIUM"
        assert shortages["Salt"].inventory_item == "Sea Salt Fine"
        assert shortages["Salt"].available == 5

    def test_run_stores_check_and_shortages(self, db: Session, kitchen):
        result = InventoryChecker(db, today=TODAY).run(SCHEDULE_ID, user_id="7")

        check = db.get(InventoryCheck, result.check_id)
        assert check.checked_by == "7"
        assert check.check_type == "MANUAL"
        assert len(check.shortages) == 3
        assert all(s.resolution_status == "PENDING" for s in check.shortages)

    def test_run_without_user_is_automatic(self, db: Session, kitchen):
        result = InventoryChecker(db, today=TODAY).run(SCHEDULE_ID)

        assert db.get(InventoryCheck, result.check_id).check_type == "AUTOMATIC"

    def test_all_good_without_shortages(self, db: Session):
        db.add_all([
            bom("Plain Rice", "Rice", 0.1, "KG"),
            stock("Rice", 10, "KG"),
            ProductionSchedule(
                schedule_id="s-ok",
                week_start="2025-01-20",
                schedule_data={"days": [{"date": "2025-01-20", "items": [{"recipe_name": "Plain Rice", "quantity": 5}]}]},
            ),
        ])
        db.commit()

        result = InventoryChecker(db, today=TODAY).run("s-ok")

        assert result.overall == "ALL_GOOD"
        assert result.shortages == []

    def test_adjusted_quantity_wins(self, db: Session):
        db.add_all([
            bom("Plain Rice", "Rice", 1, "KG"),
            stock("Rice", 10, "KG"),
            ProductionSchedule(
                schedule_id="s-adj",
                week_start="2025-01-20",
                schedule_data={"days": [{"date": "2025-01-20", "items": [
                    {"recipe_name": "Plain Rice", "quantity": 5, "adjusted_quantity": 12},
                ]}]},
            ),
        ])
        db.commit()

        result = InventoryChecker(db, today=TODAY).run("s-adj")

        assert result.shortages[0].required == 12000

    def test_days_without_iso_date_are_skipped(self, db: Session):
        db.add_all([
            bom("Plain Rice", "Rice", 1, "KG"),
            stock("Rice", 1, "KG"),
            ProductionSchedule(
                schedule_id="s-legacy",
                week_start="2025-01-20",
                schedule_data={"days": [
                    {"date": "20/01/2025", "items": [{"recipe_name": "Plain Rice", "quantity": 5}]},
                    {"items": [{"recipe_name": "Plain Rice", "quantity": 5}]},
                    {"date": "2025-01-21", "items": [{"recipe_name": "Plain Rice", "quantity": 3}]},
                ]},
            ),
        ])
        db.commit()

        result = InventoryChecker(db, today=TODAY).run("s-legacy")

        assert result.production_dates == ["2025-01-21"]
        assert [s.production_date for s in result.shortages] == ["2025-01-21"]


class TestInventoryCheckApi:
    """Tests for /api/inventory-check."""

    def test_run_endpoint(self, client: TestClient, chef_headers: dict, kitchen):
        response = client.post("/api/inventory-check/run", headers=chef_headers, json={"schedule_id": SCHEDULE_ID})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["result"]["overall"] == "CRITICAL_SHORTAGE"
        assert len(body["result"]["shortages"]) == 3

    def test_run_unknown_schedule(self, client: TestClient, chef_headers: dict):
        response = client.post("/api/inventory-check/run", headers=chef_headers, json={"schedule_id": "nope"})

        assert response.status_code == 404
        assert response.json()["error"] == "Production schedule not found: nope"

    def test_latest_sorted_by_urgency(self, client: TestClient, db: Session, chef_headers: dict, kitchen):
        InventoryChecker(db, today=TODAY).run(SCHEDULE_ID)

        response = client.get(f"/api/inventory-check/{SCHEDULE_ID}", headers=chef_headers)

        assert response.status_code == 200
        names = [s["ingredient_name"] for s in response.json()["result"]["shortages"]]
        assert names == ["Chili Powder", "Chicken", "Salt"]

    def test_latest_without_check(self, client: TestClient, chef_headers: dict):
        response = client.get(f"/api/inventory-check/{SCHEDULE_ID}", headers=chef_headers)

        assert response.status_code == 404

    def test_delete_for_schedule(self, client: TestClient, db: Session, chef_headers: dict, kitchen):
        InventoryChecker(db, today=TODAY).run(SCHEDULE_ID)

        response = client.delete(f"/api/inventory-check/{SCHEDULE_ID}", headers=chef_headers)

        assert response.json() == {"success": True, "deleted_checks": 1, "deleted_shortages": 3}
        assert db.query(IngredientShortage).count() == 0

    def test_admin_clears_everything(self, client: TestClient, db: Session, admin_headers: dict, kitchen):
        InventoryChecker(db, today=TODAY).run(SCHEDULE_ID)

        response = client.delete("/api/admin/inventory-checks", headers=admin_headers)

        assert response.json()["deleted_checks"] == 1
        assert db.query(InventoryCheck).count() == 0

    def test_clear_requires_admin(self, client: TestClient, chef_headers: dict):
        assert client.delete("/api/admin/inventory-checks", headers=chef_headers).status_code == 403
