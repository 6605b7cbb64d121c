"""
Tests for recipe and recipe-instruction documents.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from catering_ops.models.recipe import Recipe, RecipeInstruction
from catering_ops.services.recipes import RecipeService


def biryani() -> dict:
    return {
        "recipe_id": "chicken-biryani",
        "name": "Chicken Biryani",
        "yield": {"quantity": 10, "unit": "portion"},
        "ingredients": [{"name": "Basmati Rice", "quantity": 2, "unit": "KG"}],
    }


@pytest.fixture
def stored_recipe(db: Session) -> Recipe:
    recipe = Recipe(recipe_id="chicken-biryani", name="Chicken Biryani", recipe_data=biryani())
    db.add(recipe)
    db.commit()
    return recipe


class TestRecipesApi:
    """Tests for /api/recipes."""

    def test_create(self, client: TestClient, db: Session, chef_headers: dict):
        response = client.post("/api/recipes", headers=chef_headers, json=biryani())

        assert response.status_code == 201
        assert response.json()["name"] == "Chicken Biryani"
        assert db.get(Recipe, "chicken-biryani").recipe_data["ingredients"][0]["name"] == "Basmati Rice"

    def test_create_duplicate(self, client: TestClient, chef_headers: dict, stored_recipe):
        response = client.post("/api/recipes", headers=chef_headers, json=biryani())

        assert response.status_code == 409
        assert response.json() == {"error": "Recipe chicken-biryani already exists"}

    def test_create_missing_fields(self, client: TestClient, chef_headers: dict):
        response = client.post("/api/recipes", headers=chef_headers, json={"name": "No Id"})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: recipe_id, name"

    def test_create_requires_planner(self, client: TestClient, station_headers: dict):
        response = client.post("/api/recipes", headers=station_headers, json=biryani())

        assert response.status_code == 403

    def test_list_sorted_by_name(self, client: TestClient, db: Session, station_headers: dict, stored_recipe):
        db.add(Recipe(recipe_id="baba-ganoush", name="Baba Ganoush", recipe_data={"recipe_id": "baba-ganoush", "name": "Baba Ganoush"}))
        db.commit()

        response = client.get("/api/recipes", headers=station_headers)

        assert [r["name"] for r in response.json()] == ["Baba Ganoush", "Chicken Biryani"]

    def test_get(self, client: TestClient, station_headers: dict, stored_recipe):
        response = client.get("/api/recipes/chicken-biryani", headers=station_headers)

        assert response.status_code == 200
        assert response.json()["yield"] == {"quantity": 10, "unit": "portion"}

    def test_get_missing(self, client: TestClient, station_headers: dict):
        response = client.get("/api/recipes/nope", headers=station_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Recipe not found"}

    def test_replace(self, client: TestClient, db: Session, chef_headers: dict, stored_recipe):
        document = {**biryani(), "name": "Chicken Biryani (Large)", "ingredients": []}

        response = client.put("/api/recipes/chicken-biryani", headers=chef_headers, json=document)

        assert response.status_code == 200
        db.expire_all()
        recipe = db.get(Recipe, "chicken-biryani")
        assert recipe.name == "Chicken Biryani (Large)"
        assert recipe.recipe_data["ingredients"] == []
        assert recipe.version == 2

    def test_delete(self, client: TestClient, db: Session, chef_headers: dict, stored_recipe):
        response = client.delete("/api/recipes/chicken-biryani", headers=chef_headers)

        assert response.json() == {"success": True}
        db.expire_all()
        assert db.get(Recipe, "chicken-biryani") is None

    def test_fix_ids_requires_admin(self, client: TestClient, chef_headers: dict):
        assert client.post("/api/recipes/fix-ids", headers=chef_headers).status_code == 403


class TestFixIds:

    def test_rows_are_rekeyed_to_name_slug(self, db: Session, stored_recipe):
        db.add_all([
            Recipe(recipe_id="Hummus_1", name="Classic Hummus", recipe_data={"recipe_id": "Hummus_1", "name": "Classic Hummus"}),
            Recipe(recipe_id="lentil-soup", name="Lentil Soup", recipe_data={"recipe_id": "old-id", "name": "Lentil Soup"}),
        ])
        db.commit()

        result = RecipeService(db).fix_ids()

        assert (result["fixed"], result["skipped"]) == (2, 1)
        assert result["details"]["skipped"] == ["Chicken Biryani"]
        assert "Classic Hummus (Hummus_1 → classic-hummus)" in result["details"]["fixed"]

        db.expire_all()
        rows = db.query(Recipe).all()
        assert sorted(r.recipe_id for r in rows) == ["chicken-biryani", "classic-hummus", "lentil-soup"]
        assert all(r.recipe_data["recipe_id"] == r.recipe_id for r in rows)

    def test_second_run_is_a_no_op(self, db: Session):
        db.add(Recipe(recipe_id="x1", name="Fattoush Salad", recipe_data={"recipe_id": "x1", "name": "Fattoush Salad"}))
        db.commit()

        RecipeService(db).fix_ids()
        result = RecipeService(db).fix_ids()

        assert (result["fixed"], result["skipped"]) == (0, 1)

    def test_endpoint(self, client: TestClient, admin_headers: dict, stored_recipe):
        response = client.post("/api/recipes/fix-ids", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["skipped"] == 1


class TestRecipeInstructionsApi:
    """Tests for /api/recipe-instructions."""

    @pytest.fixture
    def stored_instruction(self, db: Session) -> RecipeInstruction:
        instruction = RecipeInstruction(
            instruction_id="inst-biryani",
            recipe_name="Chicken Biryani",
            instruction_data={"instruction_id": "inst-biryani", "recipe_name": "Chicken Biryani", "steps": ["Soak rice"]},
        )
        db.add(instruction)
        db.commit()
        return instruction

    def test_create(self, client: TestClient, chef_headers: dict):
        response = client.post(
            "/api/recipe-instructions",
            headers=chef_headers,
            json={"instruction_id": "inst-hummus", "recipe_name": "Hummus", "steps": ["Blend"]},
        )

        assert response.status_code == 201
        assert response.json()["created"] is True

    def test_create_missing_fields(self, client: TestClient, chef_headers: dict):
        response = client.post("/api/recipe-instructions", headers=chef_headers, json={"steps": []})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: instruction_id, recipe_name"

    def test_create_existing_is_rejected(self, client: TestClient, chef_headers: dict, stored_instruction):
        response = client.post(
            "/api/recipe-instructions",
            headers=chef_headers,
            json={"instruction_id": "inst-biryani", "recipe_name": "Chicken Biryani"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Instruction with this ID already exists"

    def test_create_existing_with_update(self, client: TestClient, db: Session, chef_headers: dict, stored_instruction):
        response = client.post(
            "/api/recipe-instructions?update_if_exists=true",
            headers=chef_headers,
            json={"instruction_id": "inst-biryani", "recipe_name": "Chicken Biryani", "steps": ["Wash rice"]},
        )

        assert response.status_code == 200
        assert response.json()["updated"] is True
        db.expire_all()
        assert db.get(RecipeInstruction, "inst-biryani").instruction_data["steps"] == ["Wash rice"]

    def test_create_existing_with_skip(self, client: TestClient, db: Session, chef_headers: dict, stored_instruction):
        response = client.post(
            "/api/recipe-instructions?skip_if_exists=true",
            headers=chef_headers,
            json={"instruction_id": "inst-biryani", "recipe_name": "Chicken Biryani", "steps": ["Wash rice"]},
        )

        assert response.status_code == 200
        assert response.json()["skipped"] is True
        assert response.json()["steps"] == ["Soak rice"]

    def test_merge(self, client: TestClient, chef_headers: dict, stored_instruction):
        response = client.put(
            "/api/recipe-instructions/inst-biryani",
            headers=chef_headers,
            json={"prep_minutes": 30},
        )

        assert response.status_code == 200
        assert response.json()["steps"] == ["Soak rice"]
        assert response.json()["prep_minutes"] == 30

    def test_get_and_delete(self, client: TestClient, db: Session, chef_headers: dict, stored_instruction):
        assert client.get("/api/recipe-instructions/inst-biryani", headers=chef_headers).json()["steps"] == ["Soak rice"]

        response = client.delete("/api/recipe-instructions/inst-biryani", headers=chef_headers)

        assert response.json()["instruction_id"] == "inst-biryani"
        assert client.get("/api/recipe-instructions/inst-biryani", headers=chef_headers).status_code == 404

    def test_list(self, client: TestClient, station_headers: dict, stored_instruction):
        response = client.get("/api/recipe-instructions", headers=station_headers)

        assert [i["instruction_id"] for i in response.json()] == ["inst-biryani"]
