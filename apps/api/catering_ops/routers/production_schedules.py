"""
Production schedule router.

Any signed-in user can read schedules. Saving, merging, deleting and item
assignment are limited to kitchen planners; the PATCH toggle, completion and
sub-recipe progress are also open to station staff for their own station.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.deps import get_current_user, require_roles
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.schemas.production import (
    AdjustQuantity,
    AssignItems,
    CompleteItem,
    ReassignItem,
    RescheduleItem,
    SubRecipeProgressUpdate,
)
from catering_ops.services.production_schedule import ProductionScheduleService

router = APIRouter(prefix="/production-schedules", tags=["production-schedules"])


@router.get("")
def list_schedules(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """All schedule documents, newest week first."""
    return ProductionScheduleService(db).list_schedules()


@router.post("", status_code=status.HTTP_201_CREATED)
def save_schedule(
    document: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Insert a schedule, or replace it if ``schedule_id`` already exists."""
    return ProductionScheduleService(db).upsert(document)


@router.get("/{schedule_id}")
def get_schedule(
    schedule_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return ProductionScheduleService(db).get(schedule_id).schedule_data


@router.put("/{schedule_id}")
def update_schedule(
    schedule_id: str,
    updates: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return ProductionScheduleService(db).merge(schedule_id, updates)


@router.patch("/{schedule_id}")
def patch_schedule(
    schedule_id: str,
    body: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_roles(*roles.KITCHEN_ROLES)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Toggle one item's ``completed`` flag, or shallow-merge the body."""
    return ProductionScheduleService(db).patch(schedule_id, body, current_user)


@router.delete("/{schedule_id}")
def delete_schedule(
    schedule_id: str,
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return ProductionScheduleService(db).delete(schedule_id)


@router.post("/{schedule_id}/assign")
def assign_items(
    schedule_id: str,
    body: AssignItems,
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
):
    return ProductionScheduleService(db).assign(
        schedule_id,
        date=body.date,
        item_ids=body.item_ids,
        station=body.station,
        user=current_user,
        assigned_by=body.assigned_by,
    )


@router.patch("/{schedule_id}/items/{item_id}/reassign")
def reassign_item(
    schedule_id: str,
    item_id: str,
    body: ReassignItem,
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
):
    return ProductionScheduleService(db).reassign(
        schedule_id,
        item_id,
        date=body.date,
        new_station=body.new_station,
        user=current_user,
        reassigned_by=body.reassigned_by,
    )


@router.patch("/{schedule_id}/items/{item_id}/complete")
def complete_item(
    schedule_id: str,
    item_id: str,
    body: CompleteItem,
    current_user: User = Depends(require_roles(*roles.KITCHEN_ROLES)),
    db: Session = Depends(get_db),
):
    return ProductionScheduleService(db).complete(
        schedule_id,
        item_id,
        date=body.date,
        user=current_user,
        completed=body.completed,
        actual_quantity=body.actual_quantity,
        actual_unit=body.actual_unit,
        completed_at=body.completed_at,
    )


@router.post("/{schedule_id}/items/{item_id}/adjust-quantity")
def adjust_quantity(
    schedule_id: str,
    item_id: str,
    body: AdjustQuantity,
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
):
    return ProductionScheduleService(db).adjust_quantity(
        schedule_id,
        item_id,
        date=body.date,
        adjusted_quantity=body.adjusted_quantity,
        reason=body.reason,
        user=current_user,
        inventory_offset=body.inventory_offset,
    )


@router.post("/{schedule_id}/items/{item_id}/reschedule")
def reschedule_item(
    schedule_id: str,
    item_id: str,
    body: RescheduleItem,
    current_user: User = Depends(require_roles(*roles.SCHEDULE_PLANNERS)),
    db: Session = Depends(get_db),
):
    return ProductionScheduleService(db).reschedule(
        schedule_id,
        item_id,
        current_date=body.current_date,
        new_date=body.new_date,
        reason=body.reason,
        user=current_user,
    )


@router.patch("/{schedule_id}/items/{item_id}/sub-recipe-progress")
def update_sub_recipe_progress(
    schedule_id: str,
    item_id: str,
    body: SubRecipeProgressUpdate,
    current_user: User = Depends(require_roles(*roles.KITCHEN_ROLES)),
    db: Session = Depends(get_db),
):
    return ProductionScheduleService(db).set_sub_recipe_progress(
        schedule_id,
        item_id,
        date=body.date,
        sub_recipe_id=body.sub_recipe_id,
        user=current_user,
        completed=body.completed,
        completed_at=body.completed_at,
    )


@router.get("/{schedule_id}/items/{item_id}/sub-recipe-progress")
def get_sub_recipe_progress(
    schedule_id: str,
    item_id: str,
    date: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ProductionScheduleService(db).get_sub_recipe_progress(schedule_id, item_id, date)
