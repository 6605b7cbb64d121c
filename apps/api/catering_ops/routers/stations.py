"""
Station task board for kitchen tablets.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.deps import require_roles
from catering_ops.core.naming import same_name
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.production_schedule import ProductionScheduleService

router = APIRouter(prefix="/stations", tags=["stations"])


@router.get("/{station}/tasks")
def station_tasks(
    station: str,
    date: Optional[str] = Query(None, description="Production day, YYYY-MM-DD"),
    current_user: User = Depends(require_roles(*roles.KITCHEN_ROLES)),
    db: Session = Depends(get_db),
):
    """
    Items assigned to ``station`` on ``date``.

    Station staff can only open their own station's board.
    """
    if current_user.role == roles.STATION_STAFF and not same_name(station, current_user.station_assignment):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: You can only view tasks for your assigned station",
        )
    return ProductionScheduleService(db).station_tasks(station, date).as_dict()
