"""
Request bodies for production schedule item actions.

Fields are optional at the schema level so that a missing field produces the
service's own "Missing required fields" message.
"""
from typing import List, Optional

from pydantic import BaseModel


class AssignItems(BaseModel):
    date: Optional[str] = None
    item_ids: List[str] = []
    station: Optional[str] = None
    assigned_by: Optional[str] = None


class ReassignItem(BaseModel):
    date: Optional[str] = None
    new_station: Optional[str] = None
    reassigned_by: Optional[str] = None


class CompleteItem(BaseModel):
    date: Optional[str] = None
    completed: bool = True
    actual_quantity: Optional[float] = None
    actual_unit: Optional[str] = None
    completed_at: Optional[str] = None


class AdjustQuantity(BaseModel):
    date: Optional[str] = None
    adjusted_quantity: Optional[float] = None
    reason: Optional[str] = None
    inventory_offset: Optional[float] = None


class RescheduleItem(BaseModel):
    current_date: Optional[str] = None
    new_date: Optional[str] = None
    reason: Optional[str] = None


class SubRecipeProgressUpdate(BaseModel):
    date: Optional[str] = None
    sub_recipe_id: Optional[str] = None
    completed: bool = True
    completed_at: Optional[str] = None
