"""
In-app notifications with per-user read receipts.

Broadcast notifications (``related_user_id`` NULL) are visible to everyone;
targeted notifications, such as "your submission was liked", only to the
related user.
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from catering_ops.db.base import Base, JSONDocument

NOTIFICATION_TYPES = ("feature", "patch", "alert", "announcement", "urgent")
NOTIFICATION_PRIORITIES = ("normal", "urgent")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(20), nullable=False)
    priority = Column(String(10), nullable=False, default="normal")
    title = Column(String(255), nullable=False)
    preview = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    created_by = Column(String(255), default="admin")
    related_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    extra = Column("metadata", JSONDocument)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    expires_at = Column(DateTime(timezone=True))

    reads = relationship("NotificationRead", back_populates="notification", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_notifications_active', 'is_active', 'expires_at'),
    )


class NotificationRead(Base):
    __tablename__ = "notification_reads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    notification_id = Column(Integer, ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    read_at = Column(DateTime(timezone=True), server_default=func.now())

    notification = relationship("Notification", back_populates="reads")

    __table_args__ = (
        UniqueConstraint('notification_id', 'user_id', name='uq_notification_read'),
    )
