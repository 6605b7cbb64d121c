"""
Recipe document router.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.deps import get_current_user, require_roles
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.recipes import RecipeService

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.get("")
def list_recipes(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    return RecipeService(db).list_recipes()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_recipe(
    document: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return RecipeService(db).create(document)


@router.post("/fix-ids")
def fix_recipe_ids(
    current_user: User = Depends(require_roles(roles.ADMIN)),
    db: Session = Depends(get_db),
):
    """Re-key recipes so every ``recipe_id`` is the slug of the recipe name."""
    return RecipeService(db).fix_ids()


@router.get("/{recipe_id}")
def get_recipe(
    recipe_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return RecipeService(db).get(recipe_id).recipe_data


@router.put("/{recipe_id}")
def replace_recipe(
    recipe_id: str,
    document: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return RecipeService(db).replace(recipe_id, document)


@router.delete("/{recipe_id}")
def delete_recipe(
    recipe_id: str,
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
):
    return RecipeService(db).delete(recipe_id)
