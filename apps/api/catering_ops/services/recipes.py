"""
Recipe and recipe-instruction documents.

A recipe row is keyed by the slug of the recipe's name, and the document's own
``recipe_id`` must equal that key. ``fix_ids`` repairs rows where either has
drifted (renamed recipes, hand-edited imports).
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from catering_ops.core.exceptions import ConflictError, NotFoundError, ValidationError
from catering_ops.core.naming import slugify
from catering_ops.models.recipe import Recipe, RecipeInstruction

logger = logging.getLogger(__name__)


@dataclass
class FixIdsResult:
    fixed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "success": True,
            "fixed": len(self.fixed),
            "skipped": len(self.skipped),
            "details": {"fixed": self.fixed, "skipped": self.skipped},
        }


class RecipeService:

    def __init__(self, db: Session):
        self.db = db

    def list_recipes(self) -> list[dict]:
        rows = self.db.query(Recipe).order_by(Recipe.name).all()
        return [row.recipe_data for row in rows]

    def get(self, recipe_id: str) -> Recipe:
        recipe = self.db.get(Recipe, recipe_id)
        if recipe is None:
            raise NotFoundError("Recipe not found")
        return recipe

    def create(self, document: dict) -> dict:
        recipe_id, name = document.get("recipe_id"), document.get("name")
        if not recipe_id or not name:
            raise ValidationError("Missing required fields: recipe_id, name")
        if self.db.get(Recipe, recipe_id) is not None:
            raise ConflictError(f"Recipe {recipe_id} already exists")

        self.db.add(Recipe(recipe_id=recipe_id, name=name, recipe_data=document))
        self.db.commit()
        return document

    def replace(self, recipe_id: str, document: dict) -> dict:
        """Replace the whole document; the row key does not change."""
        recipe = self.get(recipe_id)
        recipe.recipe_data = document
        recipe.name = document.get("name") or recipe.name
        self.db.commit()
        return recipe.recipe_data

    def delete(self, recipe_id: str) -> dict:
        recipe = self.get(recipe_id)
        self.db.delete(recipe)
        self.db.commit()
        return {"success": True}

    def fix_ids(self) -> dict:
        """
        Re-key every recipe whose row key or ``recipe_id`` is not the slug of
        its name.

        When the slug already belongs to another row, that row's document is
        overwritten by the one being fixed.
        """
        result = FixIdsResult()
        for recipe in self.db.query(Recipe).order_by(Recipe.recipe_id).all():
            document = dict(recipe.recipe_data or {})
            name = document.get("name") or recipe.name
            slug = slugify(name)

            if recipe.recipe_id == slug and document.get("recipe_id") == slug:
                result.skipped.append(name)
                continue

            document["recipe_id"] = slug
            current_id = recipe.recipe_id
            if current_id == slug:
                recipe.recipe_data = document
            else:
                self.db.delete(recipe)
                self.db.flush()
                target = self.db.get(Recipe, slug)
                if target is None:
                    self.db.add(Recipe(recipe_id=slug, name=name, recipe_data=document))
                else:
                    target.name = name
                    target.recipe_data = document
            self.db.flush()
            result.fixed.append(f"{name} ({current_id} → {slug})")

        self.db.commit()
        logger.info(f"Recipe id repair: {len(result.fixed)} fixed, {len(result.skipped)} already correct")
        return result.as_dict()


class RecipeInstructionService:

    def __init__(self, db: Session):
        self.db = db

    def list_instructions(self) -> list[dict]:
        rows = self.db.query(RecipeInstruction).order_by(RecipeInstruction.recipe_name).all()
        return [row.instruction_data for row in rows]

    def get(self, instruction_id: str) -> RecipeInstruction:
        instruction = self.db.get(RecipeInstruction, instruction_id)
        if instruction is None:
            raise NotFoundError("Instruction not found")
        return instruction

    def create(
        self,
        document: dict,
        update_if_exists: bool = False,
        skip_if_exists: bool = False,
    ) -> tuple[dict, bool]:
        """
        Insert an instruction document.

        Returns the stored document and whether a new row was created. An
        existing id is replaced with ``update_if_exists``, left untouched with
        ``skip_if_exists``, and otherwise rejected.
        """
        instruction_id, recipe_name = document.get("instruction_id"), document.get("recipe_name")
        if not instruction_id or not recipe_name:
            raise ValidationError("Missing required fields: instruction_id, recipe_name")

        existing = self.db.get(RecipeInstruction, instruction_id)
        if existing is not None:
            if update_if_exists:
                existing.instruction_data = document
                existing.recipe_name = recipe_name
                self.db.commit()
                return {**document, "updated": True}, False
            if skip_if_exists:
                return {**existing.instruction_data, "skipped": True}, False
            raise ValidationError("Instruction with this ID already exists")

        self.db.add(RecipeInstruction(
            instruction_id=instruction_id,
            recipe_name=recipe_name,
            instruction_data=document,
        ))
        self.db.commit()
        return {**document, "created": True}, True

    def merge(self, instruction_id: str, updates: dict) -> dict:
        instruction = self.get(instruction_id)
        merged = {**(instruction.instruction_data or {}), **updates}
        instruction.instruction_data = merged
        instruction.recipe_name = merged.get("recipe_name") or instruction.recipe_name
        self.db.commit()
        return merged

    def delete(self, instruction_id: str) -> dict:
        instruction = self.get(instruction_id)
        document = instruction.instruction_data
        self.db.delete(instruction)
        self.db.commit()
        return document
