"""
Tables mirrored from the Odoo ERP export.

These are written by the nightly ERP sync job and only read by this API.
Branch names are stored exactly as the ERP spells them; analytics normalize
them before joining across tables.
"""
from sqlalchemy import Column, Integer, String, Text, Numeric, Date, DateTime, Index
from sqlalchemy.sql import func

from catering_ops.db.base import Base

SUBSCRIPTION_ORDER = "Sales Order"
COUNTER_ORDER = "POS Order"


class OdooSale(Base):
    __tablename__ = "odoo_sales"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_number = Column(String(100))
    order_type = Column(String(50))  # "Sales Order" (subscription) or "POS Order" (counter)
    branch = Column(String(100))
    date = Column(Date)
    client = Column(String(255))
    items = Column(Text)
    category = Column(String(100))
    product_group = Column(String(100))
    barcode = Column(String(100))
    unit_of_measure = Column(String(50))
    qty = Column(Numeric(12, 3))
    unit_price = Column(Numeric(12, 2))
    price_subtotal = Column(Numeric(12, 2))
    price_subtotal_with_tax = Column(Numeric(12, 2))
    synced_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_odoo_sales_date', 'date'),
        Index('idx_odoo_sales_branch', 'branch'),
    )


class OdooWaste(Base):
    __tablename__ = "odoo_waste"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date)
    branch = Column(String(100))
    item = Column(String(255))
    qty = Column(Numeric(12, 3))
    unit = Column(String(50))
    cost = Column(Numeric(12, 2))
    reason = Column(String(255))
    synced_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_odoo_waste_date', 'date'),
    )


class OdooTransfer(Base):
    __tablename__ = "odoo_transfer"

    id = Column(Integer, primary_key=True, autoincrement=True)
    effective_date = Column(Date)
    from_branch = Column(String(255))
    to_branch = Column(String(255))
    item = Column(String(255))
    quantity = Column(Numeric(12, 3))
    unit = Column(String(50))
    cost = Column(Numeric(12, 2))
    synced_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_odoo_transfer_date', 'effective_date'),
    )


class OdooRecipe(Base):
    """One ingredient line of an ERP bill of materials."""
    __tablename__ = "odoo_recipe"

    id = Column(Integer, primary_key=True, autoincrement=True)
    item = Column(String(255), nullable=False)  # Finished product / sub-recipe name
    ingredient_name = Column(String(255), nullable=False)
    item_type = Column(String(20))  # "ingredient" or "subrecipe"
    quantity = Column(Numeric(14, 4))
    unit = Column(String(50))
    ingredient_cost = Column(Numeric(12, 4))
    recipe_total_cost = Column(Numeric(12, 4))
    synced_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_odoo_recipe_item', 'item'),
    )


class OdooManufacturing(Base):
    __tablename__ = "odoo_manufacturing"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scheduled_date = Column(Date)
    product = Column(String(255))
    quantity_to_produce = Column(Numeric(12, 3))
    state = Column(String(30))
    synced_at = Column(DateTime(timezone=True), server_default=func.now())
