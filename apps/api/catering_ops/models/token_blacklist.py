"""
Revoked staff tokens.

A refresh token lands here the moment it is exchanged (rotation), an access
token when its holder logs out. Rows only need to outlive the token itself.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from catering_ops.db.base import Base


class TokenBlacklist(Base):
    __tablename__ = "token_blacklist"

    token_hash = Column(String(64), primary_key=True)  # sha256 hex
    token_type = Column(String(10), nullable=False, default="access")  # access / refresh
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    blacklisted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_token_blacklist_expires', 'expires_at'),
    )
