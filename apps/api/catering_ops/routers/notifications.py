"""
Notification router: feed, read receipts and admin publishing.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.deps import get_current_user, require_roles
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.notifications import NotificationService, notification_to_dict

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationCreate(BaseModel):
    type: Optional[str] = None
    priority: Optional[str] = None
    title: Optional[str] = None
    preview: Optional[str] = None
    content: Optional[str] = None
    expires_in_days: Optional[int] = Field(None, ge=1)


@router.get("")
def list_notifications(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"notifications": NotificationService(db).feed(current_user)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_notification(
    body: NotificationCreate,
    current_user: User = Depends(require_roles(*roles.NOTIFICATION_PUBLISHERS)),
    db: Session = Depends(get_db),
):
    notification = NotificationService(db).create(
        type=body.type,
        title=body.title,
        preview=body.preview,
        content=body.content,
        created_by=current_user.full_name,
        priority=body.priority,
        expires_in_days=body.expires_in_days,
    )
    return {"notification": notification_to_dict(notification)}


# Declared before /{notification_id}/read so "read-all" is not taken for an id
@router.post("/read-all")
def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NotificationService(db).mark_all_read(current_user)


@router.post("/{notification_id}/read")
def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NotificationService(db).mark_read(notification_id, current_user)


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: int,
    current_user: User = Depends(require_roles(roles.ADMIN)),
    db: Session = Depends(get_db),
):
    """Deactivate; read receipts are kept."""
    return NotificationService(db).deactivate(notification_id)
