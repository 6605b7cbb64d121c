"""
Weekly production schedules.

A schedule is one JSON document per week:

    {schedule_id, week_start, week_end,
     days: [{date, day_name, items: [ProductionItem, ...]}, ...]}

Production items are edited in place inside the document (assignment,
completion, quantity adjustment, rescheduling). ``version`` guards every
rewrite of the document against concurrent edits.
"""
from sqlalchemy import Column, Integer, String, DateTime, Index
from sqlalchemy.sql import func

from catering_ops.db.base import Base, JSONDocument


class ProductionSchedule(Base):
    __tablename__ = "production_schedules"

    schedule_id = Column(String(100), primary_key=True)
    week_start = Column(String(10), nullable=False)  # YYYY-MM-DD
    schedule_data = Column(JSONDocument, nullable=False)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index('idx_production_schedules_week_start', 'week_start'),
    )
