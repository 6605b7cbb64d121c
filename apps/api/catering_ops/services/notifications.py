"""
In-app notifications: admin broadcasts and targeted per-user messages.
"""
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from catering_ops.core.exceptions import NotFoundError, ValidationError
from catering_ops.db.documents import utc_now
from catering_ops.models.notification import (
    NOTIFICATION_PRIORITIES,
    NOTIFICATION_TYPES,
    Notification,
    NotificationRead,
)
from catering_ops.models.user import User

logger = logging.getLogger(__name__)

FEED_LIMIT = 50
DEFAULT_EXPIRY_DAYS = 7


def notification_to_dict(notification: Notification, is_read: bool = False) -> dict:
    return {
        "id": notification.id,
        "type": notification.type,
        "priority": notification.priority,
        "title": notification.title,
        "preview": notification.preview,
        "content": notification.content,
        "created_by": notification.created_by,
        "related_user_id": notification.related_user_id,
        "metadata": notification.extra,
        "is_active": notification.is_active,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
        "expires_at": notification.expires_at.isoformat() if notification.expires_at else None,
        "is_read": is_read,
    }


class NotificationService:

    def __init__(self, db: Session):
        self.db = db

    def _visible_to(self, user: User):
        return (
            self.db.query(Notification)
            .filter(
                Notification.is_active.is_(True),
                Notification.expires_at > utc_now(),
                or_(Notification.related_user_id.is_(None), Notification.related_user_id == user.id),
            )
        )

    def feed(self, user: User) -> list[dict]:
        """Active, unexpired notifications for ``user``, newest first."""
        notifications = (
            self._visible_to(user)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(FEED_LIMIT)
            .all()
        )
        read_ids = {
            row.notification_id
            for row in self.db.query(NotificationRead.notification_id).filter(NotificationRead.user_id == user.id)
        }
        return [notification_to_dict(n, n.id in read_ids) for n in notifications]

    def create(
        self,
        type: str,
        title: str,
        preview: str,
        content: str,
        created_by: str,
        priority: Optional[str] = None,
        expires_in_days: Optional[int] = None,
        related_user_id: Optional[int] = None,
        metadata: Optional[dict] = None,
        commit: bool = True,
    ) -> Notification:
        if not type or not title or not preview or not content:
            raise ValidationError("Missing required fields: type, title, preview, content")
        if type not in NOTIFICATION_TYPES:
            raise ValidationError(f"Invalid type. Must be one of: {', '.join(NOTIFICATION_TYPES)}")
        priority = priority or "normal"
        if priority not in NOTIFICATION_PRIORITIES:
            raise ValidationError(f"Invalid priority. Must be one of: {', '.join(NOTIFICATION_PRIORITIES)}")
        days = expires_in_days or DEFAULT_EXPIRY_DAYS
        if days < 1:
            raise ValidationError("expires_in_days must be at least 1")

        now = utc_now()
        notification = Notification(
            type=type,
            priority=priority,
            title=title,
            preview=preview,
            content=content,
            created_by=created_by or "admin",
            related_user_id=related_user_id,
            extra=metadata,
            is_active=True,
            created_at=now,
            expires_at=now + timedelta(days=days),
        )
        self.db.add(notification)
        if commit:
            self.db.commit()
        else:
            self.db.flush()
        return notification

    def _get(self, notification_id: int) -> Notification:
        notification = self.db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        return notification

    def _already_read(self, notification_id: int, user_id: int) -> bool:
        return self.db.query(NotificationRead).filter(
            NotificationRead.notification_id == notification_id,
            NotificationRead.user_id == user_id,
        ).first() is not None

    def mark_read(self, notification_id: int, user: User) -> dict:
        self._get(notification_id)
        if not self._already_read(notification_id, user.id):
            self.db.add(NotificationRead(notification_id=notification_id, user_id=user.id))
            self.db.commit()
        return {"success": True}

    def mark_all_read(self, user: User) -> dict:
        marked = 0
        for notification in self._visible_to(user).all():
            if not self._already_read(notification.id, user.id):
                self.db.add(NotificationRead(notification_id=notification.id, user_id=user.id))
                marked += 1
        self.db.commit()
        return {"success": True, "marked": marked}

    def deactivate(self, notification_id: int) -> dict:
        notification = self._get(notification_id)
        notification.is_active = False
        self.db.commit()
        logger.info(f"Notification {notification_id} deactivated")
        return {"success": True, "id": notification_id}
