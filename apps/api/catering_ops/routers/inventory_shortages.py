"""
Inventory shortage router for the Central Kitchen dashboard.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from catering_ops.core.deps import get_current_user
from catering_ops.db.session import get_db
from catering_ops.models.inventory import PENDING
from catering_ops.models.user import User
from catering_ops.services.shortages import ShortageService

router = APIRouter(prefix="/inventory-shortages", tags=["inventory"])


class ResolveShortage(BaseModel):
    resolution_status: Optional[str] = None
    resolution_action: Optional[str] = None
    resolution_notes: Optional[str] = None
    resolved_by: Optional[str] = None


@router.get("")
def list_shortages(
    schedule_id: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    status: str = Query(PENDING, description="PENDING (default), ALL, or an exact resolution status"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shortages = ShortageService(db).list_shortages(status=status, schedule_id=schedule_id, priority=priority)
    return {"success": True, "shortages": shortages}


@router.patch("/{shortage_id}/resolve")
def resolve_shortage(
    shortage_id: str,
    body: ResolveShortage,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shortage = ShortageService(db).resolve(
        shortage_id,
        resolution_status=body.resolution_status,
        resolved_by=body.resolved_by,
        resolution_action=body.resolution_action,
        resolution_notes=body.resolution_notes,
    )
    return {"success": True, "shortage": shortage}
