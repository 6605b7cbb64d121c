"""
Branch product quality checks, reviewer likes and feedback, and the
configurable fields of the submission form.
"""
from sqlalchemy import (
    Boolean, CheckConstraint, Column, Integer, String, Text, Numeric, DateTime, ForeignKey, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from catering_ops.db.base import Base, JSONDocument

LIKE_TAGS = (
    "Excellent Presentation",
    "Great Consistency",
    "Perfect Execution",
    "Outstanding Quality",
    "Attention to Detail",
)
MAX_LIKE_NOTE_LENGTH = 200


class QualityCheck(Base):
    __tablename__ = "quality_checks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    branch_slug = Column(String(100), nullable=False)
    submitted_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    submission_date = Column(DateTime(timezone=True), server_default=func.now())

    meal_service = Column(String(20), nullable=False)  # breakfast / lunch / dinner
    product_name = Column(String(255), nullable=False)
    section = Column(String(50), nullable=False)  # Bakery, Hot, Cold, Beverages

    # 1-5 scale
    taste_score = Column(Integer, nullable=False)
    appearance_score = Column(Integer, nullable=False)

    portion_qty_gm = Column(Numeric(10, 2))
    temp_celsius = Column(Numeric(5, 2))
    remarks = Column(Text)
    custom_fields = Column(JSONDocument, default=dict)  # Answers to admin-defined form fields, by field_key

    submitter = relationship("User")
    likes = relationship("QualityLike", back_populates="quality_check", cascade="all, delete-orphan")
    feedback = relationship("QualityFeedback", back_populates="quality_check", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_quality_checks_branch', 'branch_slug'),
        CheckConstraint('taste_score BETWEEN 1 AND 5', name='ck_quality_taste_score'),
        CheckConstraint('appearance_score BETWEEN 1 AND 5', name='ck_quality_appearance_score'),
    )


class QualityLike(Base):
    __tablename__ = "quality_likes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quality_check_id = Column(Integer, ForeignKey("quality_checks.id", ondelete="CASCADE"), nullable=False)
    given_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    note = Column(String(MAX_LIKE_NOTE_LENGTH))
    tags = Column(JSONDocument, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    quality_check = relationship("QualityCheck", back_populates="likes")
    giver = relationship("User")

    __table_args__ = (
        UniqueConstraint('quality_check_id', 'given_by', name='uq_quality_like_per_user'),
        Index('idx_quality_likes_check_id', 'quality_check_id'),
    )


class QualityFeedback(Base):
    """Written feedback from a reviewer on one submission, acknowledged by the submitter."""
    __tablename__ = "quality_feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quality_check_id = Column(Integer, ForeignKey("quality_checks.id", ondelete="CASCADE"), nullable=False)
    feedback_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    feedback_text = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    quality_check = relationship("QualityCheck", back_populates="feedback")
    author = relationship("User")

    __table_args__ = (
        Index('idx_quality_feedback_by', 'feedback_by'),
        Index('idx_quality_feedback_check_id', 'quality_check_id'),
    )


FIELD_TYPES = ("rating", "number", "text", "textarea", "checkbox", "select")
FIELD_SECTIONS = ("core", "custom")


class QualityFieldConfig(Base):
    """
    One field of the quality-check form.

    Core fields map onto QualityCheck columns and can only be disabled; custom
    fields are stored in ``QualityCheck.custom_fields`` under ``field_key``.
    """
    __tablename__ = "quality_check_field_config"

    id = Column(Integer, primary_key=True, autoincrement=True)
    field_key = Column(String(50), unique=True, nullable=False)
    label = Column(String(255), nullable=False)
    field_type = Column(String(20), nullable=False)
    is_required = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    options = Column(JSONDocument)  # {"options": [...]} for select fields
    min_value = Column(Numeric(10, 2))
    max_value = Column(Numeric(10, 2))
    placeholder = Column(String(255))
    notes_enabled = Column(Boolean, default=False, nullable=False)
    section = Column(String(20), default="custom", nullable=False)
    icon = Column(String(50))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_quality_field_config_sort', 'sort_order'),
    )
