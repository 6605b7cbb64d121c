"""
Tests for the read-only ERP recipe lookup.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from catering_ops.models.odoo import OdooRecipe
from catering_ops.models.recipe import Recipe


def line(item, ingredient, quantity, unit, cost=1.0, item_type="ingredient", total=None) -> OdooRecipe:
    return OdooRecipe(
        item=item,
        ingredient_name=ingredient,
        item_type=item_type,
        quantity=quantity,
        unit=unit,
        ingredient_cost=cost,
        recipe_total_cost=total,
    )


@pytest.fixture
def boms(db: Session) -> None:
    db.add_all([
        line("Chicken Biryani", "Rice", 0.2, "KG", total=12.5),
        line("Chicken Biryani", "Chicken", 0.3, "KG", total=12.5),
        line("Chicken Biryani", "Biryani Masala", 0.05, "portion", item_type="subrecipe", total=12.5),
        line("Biryani Masala", "Chili Powder", 100, "GM"),
        line("Biryani Masala", "Garam Masala Base", 1, "portion", item_type="subrecipe"),
        line("Garam Masala Base", "Cardamom", 10, "GM"),
        line("Hummus", "Chickpeas", 0.5, "KG", total=3),
        Recipe(recipe_id="chicken-biryani-large", name="Chicken Biryani Large", recipe_data={}),
        Recipe(recipe_id="chicken-biryani", name="Chicken  Biryani", recipe_data={}),
    ])
    db.commit()


class TestOdooRecipesApi:
    """Tests for /api/odoo-recipes."""

    def test_list(self, client: TestClient, station_headers: dict, boms):
        response = client.get("/api/odoo-recipes", headers=station_headers)

        body = response.json()
        assert body["total"] == 4
        assert body["recipes"][0] == {"item": "Biryani Masala", "ingredient_count": 2, "recipe_total_cost": 0.0}
        biryani = next(r for r in body["recipes"] if r["item"] == "Chicken Biryani")
        assert biryani == {"item": "Chicken Biryani", "ingredient_count": 3, "recipe_total_cost": 12.5}

    def test_list_search(self, client: TestClient, station_headers: dict, boms):
        response = client.get("/api/odoo-recipes?search=hum", headers=station_headers)

        assert [r["item"] for r in response.json()["recipes"]] == ["Hummus"]

    def test_detail_expands_sub_recipes(self, client: TestClient, station_headers: dict, boms):
        response = client.get("/api/odoo-recipes/Chicken Biryani", headers=station_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["recipe_total_cost"] == 12.5
        # Sub-recipes first, then ingredients alphabetically
        assert [i["ingredient_name"] for i in body["ingredients"]] == ["Biryani Masala", "Chicken", "Rice"]

        masala = body["ingredients"][0]
        assert masala["item_type"] == "subrecipe"
        assert [i["ingredient_name"] for i in masala["subrecipe_ingredients"]] == ["Garam Masala Base", "Chili Powder"]
        base = masala["subrecipe_ingredients"][0]
        assert base["subrecipe_ingredients"] == [
            {"ingredient_name": "Cardamom", "item_type": "ingredient", "quantity": 10.0, "unit": "GM", "ingredient_cost": 1.0},
        ]
        assert "subrecipe_ingredients" not in body["ingredients"][1]

    def test_detail_links_recipe_document(self, client: TestClient, station_headers: dict, boms):
        body = client.get("/api/odoo-recipes/Chicken Biryani", headers=station_headers).json()

        assert body["linked_recipe"] == {"recipe_id": "chicken-biryani", "name": "Chicken  Biryani"}

    def test_detail_falls_back_to_shortest_containing_name(self, client: TestClient, db: Session, station_headers: dict):
        db.add_all([
            line("Hummus", "Chickpeas", 0.5, "KG"),
            Recipe(recipe_id="hummus-beiruti-large", name="Hummus Beiruti Large", recipe_data={}),
            Recipe(recipe_id="hummus-beiruti", name="Hummus Beiruti", recipe_data={}),
        ])
        db.commit()

        body = client.get("/api/odoo-recipes/Hummus", headers=station_headers).json()

        assert body["linked_recipe"]["recipe_id"] == "hummus-beiruti"

    def test_cycles_stop(self, client: TestClient, db: Session, station_headers: dict):
        db.add_all([
            line("Sauce A", "Sauce B", 1, "portion", item_type="subrecipe"),
            line("Sauce B", "Sauce A", 1, "portion", item_type="subrecipe"),
        ])
        db.commit()

        body = client.get("/api/odoo-recipes/Sauce A", headers=station_headers).json()

        sauce_b = body["ingredients"][0]
        assert sauce_b["subrecipe_ingredients"][0]["ingredient_name"] == "Sauce A"
        assert sauce_b["subrecipe_ingredients"][0]["subrecipe_ingredients"] == []
        assert body["linked_recipe"] is None

    def test_detail_missing(self, client: TestClient, station_headers: dict):
        response = client.get("/api/odoo-recipes/Unknown Dish", headers=station_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Recipe not found"}
