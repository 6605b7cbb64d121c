"""
Read-only ERP recipe lookup.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from catering_ops.core.deps import get_current_user
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.odoo_recipes import OdooRecipeService

router = APIRouter(prefix="/odoo-recipes", tags=["recipes"])


@router.get("")
def list_odoo_recipes(
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return OdooRecipeService(db).list_recipes(search)


@router.get("/{item}")
def get_odoo_recipe(
    item: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """One finished item with its ingredients and expanded sub-recipes."""
    return OdooRecipeService(db).detail(item)
