"""
Read-only lookup over the ERP bill-of-materials mirror (``odoo_recipe``).
"""
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from catering_ops.core.exceptions import NotFoundError
from catering_ops.models.odoo import OdooRecipe
from catering_ops.models.recipe import Recipe

MAX_DEPTH = 10
SUBRECIPE = "subrecipe"


class OdooRecipeService:

    def __init__(self, db: Session):
        self.db = db

    def list_recipes(self, search: Optional[str] = None) -> dict:
        """Distinct finished items with their ingredient count and cost."""
        stmt = (
            select(
                OdooRecipe.item,
                func.count(OdooRecipe.id).label("ingredient_count"),
                func.max(OdooRecipe.recipe_total_cost).label("recipe_total_cost"),
            )
            .group_by(OdooRecipe.item)
            .order_by(OdooRecipe.item)
        )
        if search:
            stmt = stmt.where(OdooRecipe.item.ilike(f"%{search}%"))

        recipes = [
            {
                "item": row.item,
                "ingredient_count": int(row.ingredient_count),
                "recipe_total_cost": float(row.recipe_total_cost or 0),
            }
            for row in self.db.execute(stmt).all()
        ]
        return {"recipes": recipes, "total": len(recipes)}

    def detail(self, item: str) -> dict:
        rows = self.db.query(OdooRecipe).filter(OdooRecipe.item == item).all()
        if not rows:
            raise NotFoundError("Recipe not found")

        total_cost = max((float(r.recipe_total_cost) for r in rows if r.recipe_total_cost is not None), default=0)
        return {
            "item": item,
            "recipe_total_cost": total_cost,
            "ingredients": self._ingredients(item, rows=rows),
            "linked_recipe": self._linked_recipe(item),
        }

    def _ingredients(
        self,
        item: str,
        depth: int = 0,
        visited: frozenset = frozenset(),
        rows: Optional[list[OdooRecipe]] = None,
    ) -> list[dict]:
        """
        Ingredient rows of ``item``, with sub-recipes expanded in place.

        Each branch of the tree tracks its own ancestors, so a sub-recipe used
        twice is expanded twice but a cycle stops at the repeat.
        """
        if depth >= MAX_DEPTH or item in visited:
            return []
        visited = visited | {item}
        if rows is None:
            rows = self.db.query(OdooRecipe).filter(OdooRecipe.item == item).all()

        # Sub-recipes first, then ingredients, alphabetical within each
        rows = sorted(rows, key=lambda r: (r.item_type != SUBRECIPE, r.ingredient_name or ""))

        ingredients = []
        for row in rows:
            entry = {
                "ingredient_name": row.ingredient_name,
                "item_type": row.item_type or "ingredient",
                "quantity": float(row.quantity or 0),
                "unit": row.unit or "",
                "ingredient_cost": float(row.ingredient_cost or 0),
            }
            if row.item_type == SUBRECIPE:
                entry["subrecipe_ingredients"] = self._ingredients(row.ingredient_name, depth + 1, visited)
            ingredients.append(entry)
        return ingredients

    def _linked_recipe(self, item: str) -> Optional[dict]:
        """The recipe document for this item: exact name match, else the shortest containing match."""
        wanted = " ".join(item.lower().split())
        candidates = []
        for recipe in self.db.query(Recipe).all():
            name = " ".join((recipe.name or "").lower().split())
            if not name:
                continue
            if name == wanted:
                return {"recipe_id": recipe.recipe_id, "name": recipe.name}
            if wanted in name or name in wanted:
                candidates.append(recipe)
        if not candidates:
            return None
        best = min(candidates, key=lambda r: len(r.name))
        return {"recipe_id": best.recipe_id, "name": best.name}
