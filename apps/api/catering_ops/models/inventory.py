"""
Inventory availability and shortage tracking.

BranchInventory: daily stock snapshot per branch, synced from the ERP
IngredientMapping: recipe ingredient name -> inventory item name overrides
InventoryCheck: one run of the shortage detector against a production schedule
IngredientShortage: one ingredient found short by a check (normalized rows,
    resolved individually by the Central Kitchen)
IngredientAlert: a chef's report that ingredients are missing for a production item
"""
from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Date, DateTime, ForeignKey, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from catering_ops.db.base import Base, JSONDocument

# Overall check status
ALL_GOOD = "ALL_GOOD"
PARTIAL_SHORTAGE = "PARTIAL_SHORTAGE"
CRITICAL_SHORTAGE = "CRITICAL_SHORTAGE"

# Shortage status
MISSING = "MISSING"
CRITICAL = "CRITICAL"
PARTIAL = "PARTIAL"
SUFFICIENT = "SUFFICIENT"

# Priorities, in display order
PRIORITIES = ("HIGH", "MEDIUM", "LOW")

# Resolution status shared by shortages and alerts
PENDING = "PENDING"
ACKNOWLEDGED = "ACKNOWLEDGED"
RESOLVED = "RESOLVED"
CANNOT_FULFILL = "CANNOT_FULFILL"


class BranchInventory(Base):
    __tablename__ = "branch_inventory"

    id = Column(Integer, primary_key=True, autoincrement=True)
    inventory_date = Column(Date, nullable=False)
    branch = Column(String(100), nullable=False)
    item = Column(String(255), nullable=False)
    category = Column(String(100))
    quantity = Column(Numeric(12, 3))
    unit = Column(String(50))
    unit_cost = Column(Numeric(10, 2))
    total_cost = Column(Numeric(12, 2))
    last_synced = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('inventory_date', 'branch', 'item', name='uq_branch_inventory'),
        Index('idx_branch_inventory_branch', 'branch'),
    )


class IngredientMapping(Base):
    __tablename__ = "ingredient_mappings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipe_ingredient_name = Column(String(255), nullable=False, unique=True)
    inventory_item_name = Column(String(255), nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class InventoryCheck(Base):
    __tablename__ = "inventory_checks"

    check_id = Column(String(150), primary_key=True)
    schedule_id = Column(String(100), nullable=False)
    check_date = Column(DateTime(timezone=True), server_default=func.now())
    production_dates = Column(JSONDocument, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="COMPLETED")
    total_ingredients_required = Column(Integer, default=0)
    missing_ingredients_count = Column(Integer, default=0)
    partial_ingredients_count = Column(Integer, default=0)
    sufficient_ingredients_count = Column(Integer, default=0)
    overall_status = Column(String(30), nullable=False)
    checked_by = Column(String(255))
    check_type = Column(String(20), default="MANUAL")

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    shortages = relationship(
        "IngredientShortage", back_populates="check", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index('idx_inventory_checks_schedule', 'schedule_id'),
    )


class IngredientShortage(Base):
    __tablename__ = "ingredient_shortages"

    shortage_id = Column(String(200), primary_key=True)
    check_id = Column(String(150), ForeignKey("inventory_checks.check_id", ondelete="CASCADE"), nullable=False)
    schedule_id = Column(String(100), nullable=False)
    production_date = Column(String(10), nullable=False)
    ingredient_name = Column(String(255), nullable=False)
    inventory_item_name = Column(String(255))
    required_quantity = Column(Numeric(14, 2), nullable=False)
    available_quantity = Column(Numeric(14, 2), nullable=False, default=0)
    shortfall_amount = Column(Numeric(14, 2), nullable=False)
    unit = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False)
    priority = Column(String(10), nullable=False)
    affected_recipes = Column(JSONDocument, default=list)
    affected_production_items = Column(JSONDocument, default=list)

    resolution_status = Column(String(20), default=PENDING)
    resolution_action = Column(String(30))
    resolution_notes = Column(Text)
    resolved_by = Column(String(255))
    resolved_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    check = relationship("InventoryCheck", back_populates="shortages")

    __table_args__ = (
        Index('idx_shortages_check', 'check_id'),
        Index('idx_shortages_resolution_status', 'resolution_status'),
        Index('idx_shortages_schedule', 'schedule_id'),
    )


class IngredientAlert(Base):
    __tablename__ = "ingredient_alerts"

    alert_id = Column(String(100), primary_key=True)
    production_item_id = Column(String(150), nullable=False)
    schedule_id = Column(String(100), nullable=False)
    recipe_id = Column(String(150))
    recipe_name = Column(String(255), nullable=False)
    scheduled_date = Column(String(10), nullable=False)

    reported_by = Column(String(255), nullable=False)
    reported_by_name = Column(String(255))
    reported_at = Column(DateTime(timezone=True), server_default=func.now())

    priority = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False, default=PENDING)
    missing_ingredients = Column(JSONDocument, nullable=False, default=list)
    notes = Column(Text)

    acknowledged_by = Column(String(255))
    acknowledged_at = Column(DateTime(timezone=True))
    resolved_by = Column(String(255))
    resolved_at = Column(DateTime(timezone=True))
    resolution_notes = Column(Text)

    __table_args__ = (
        Index('idx_ingredient_alerts_schedule', 'schedule_id'),
        Index('idx_ingredient_alerts_status', 'status'),
    )
