"""
Inventory check router: run a schedule against Central Kitchen stock and
read or clear the stored results.
"""
from dataclasses import asdict

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.deps import get_current_user, require_roles
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.inventory_checker import InventoryChecker

router = APIRouter(prefix="/inventory-check", tags=["inventory"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


class RunCheckRequest(BaseModel):
    schedule_id: str


@router.post("/run")
def run_check(
    body: RunCheckRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = InventoryChecker(db).run(body.schedule_id, user_id=str(current_user.id))
    return {"success": True, "result": asdict(result)}


@router.get("/{schedule_id}")
def latest_check(
    schedule_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Most recent check for the schedule, shortages most urgent first."""
    return {"success": True, "result": InventoryChecker(db).latest(schedule_id)}


@router.delete("/{schedule_id}")
def delete_checks(
    schedule_id: str,
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
):
    return InventoryChecker(db).delete_for_schedule(schedule_id)


@admin_router.delete("/inventory-checks")
def delete_all_checks(
    current_user: User = Depends(require_roles(roles.ADMIN)),
    db: Session = Depends(get_db),
):
    return InventoryChecker(db).delete_all()
