"""
Dispatches: delivery batches from the Central Kitchen to branches.

Each dispatch holds a JSON list of branch sub-documents, each with its own
status and items. Items with receiving issues can be re-sent in a follow-up
dispatch, which links back to its parent through ``parent_dispatch_id`` and
per-item ``original_item_id`` references.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index
from sqlalchemy.sql import func

from catering_ops.db.base import Base, JSONDocument

PRIMARY = "primary"
FOLLOW_UP = "follow_up"

BRANCH_STATUSES = ("pending", "packing", "dispatched", "receiving", "completed")
EDITABLE_BRANCH_STATUSES = ("pending", "packing")


class Dispatch(Base):
    __tablename__ = "dispatches"

    id = Column(String(150), primary_key=True)
    created_date = Column(String(40), nullable=False)
    delivery_date = Column(String(10), nullable=False)
    created_by = Column(String(255))
    branch_dispatches = Column(JSONDocument, nullable=False, default=list)

    type = Column(String(20), nullable=False, default=PRIMARY)
    parent_dispatch_id = Column(String(150))
    follow_up_dispatch_ids = Column(JSONDocument, nullable=False, default=list)

    is_archived = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True))
    deleted_by = Column(String(255))

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index('idx_dispatches_delivery_date', 'delivery_date'),
        Index('idx_dispatches_parent', 'parent_dispatch_id'),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created_date": self.created_date,
            "delivery_date": self.delivery_date,
            "created_by": self.created_by,
            "branch_dispatches": self.branch_dispatches or [],
            "type": self.type,
            "parent_dispatch_id": self.parent_dispatch_id,
            "follow_up_dispatch_ids": self.follow_up_dispatch_ids or [],
            "version": self.version,
        }
