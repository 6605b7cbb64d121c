"""
Branch inventory router: stock levels from the latest ERP snapshot.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from catering_ops.core.deps import get_current_user
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.inventory import InventoryService

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("")
def list_inventory(
    branch: Optional[str] = Query(None, description="Branch slug"),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return InventoryService(db).items(
        current_user, branch=branch, category=category, search=search, limit=limit, offset=offset
    )


@router.get("/summary")
def inventory_summary(
    branch: Optional[str] = Query(None, description="Branch slug"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return InventoryService(db).summary(current_user, branch=branch)
