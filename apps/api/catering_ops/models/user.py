"""
Staff user accounts.

Every staff member signs in with email and password. ``role`` decides which
endpoints they may call; kitchen station staff are additionally pinned to one
station, and branch roles to the branches listed in ``branch_slugs``.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func

from catering_ops.core import roles
from catering_ops.db.base import Base, JSONDocument


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    role = Column(String(50), nullable=False, default=roles.BRANCH_STAFF)
    station_assignment = Column(String(100))  # Only meaningful for station_staff
    branch_slugs = Column(JSONDocument, default=list)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def full_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email

    def has_role(self, *allowed: str) -> bool:
        return self.role in allowed
