"""
Ingredient shortage listing and resolution for the Central Kitchen.
"""
import logging
from typing import Optional

from sqlalchemy import case, or_
from sqlalchemy.orm import Session

from catering_ops.core.exceptions import NotFoundError, ValidationError
from catering_ops.db.documents import utc_now
from catering_ops.models.inventory import IngredientShortage, InventoryCheck, PENDING

logger = logging.getLogger(__name__)

ALL_STATUSES = "ALL"

PRIORITY_ORDER = case(
    (IngredientShortage.priority == "HIGH", 1),
    (IngredientShortage.priority == "MEDIUM", 2),
    (IngredientShortage.priority == "LOW", 3),
    else_=4,
)


def shortage_to_dict(shortage: IngredientShortage, check: Optional[InventoryCheck] = None) -> dict:
    data = {
        "shortage_id": shortage.shortage_id,
        "check_id": shortage.check_id,
        "schedule_id": shortage.schedule_id,
        "production_date": shortage.production_date,
        "ingredient_name": shortage.ingredient_name,
        "inventory_item_name": shortage.inventory_item_name,
        "required_quantity": float(shortage.required_quantity or 0),
        "available_quantity": float(shortage.available_quantity or 0),
        "shortfall_amount": float(shortage.shortfall_amount or 0),
        "unit": shortage.unit,
        "status": shortage.status,
        "priority": shortage.priority,
        "affected_recipes": shortage.affected_recipes or [],
        "affected_production_items": shortage.affected_production_items or [],
        "resolution_status": shortage.resolution_status,
        "resolution_action": shortage.resolution_action,
        "resolution_notes": shortage.resolution_notes,
        "resolved_by": shortage.resolved_by,
        "resolved_at": shortage.resolved_at.isoformat() if shortage.resolved_at else None,
        "created_at": shortage.created_at.isoformat() if shortage.created_at else None,
    }
    if check is not None:
        data["check_date"] = check.check_date.isoformat() if check.check_date else None
        data["overall_status"] = check.overall_status
    return data


class ShortageService:

    def __init__(self, db: Session):
        self.db = db

    def list_shortages(
        self,
        status: Optional[str] = PENDING,
        schedule_id: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> list[dict]:
        """
        Shortages with their parent check, most urgent first.

        ``status`` PENDING also matches rows with no resolution status yet;
        ALL disables the status filter; anything else is an exact match.
        """
        status = status or PENDING
        query = (
            self.db.query(IngredientShortage, InventoryCheck)
            .join(InventoryCheck, IngredientShortage.check_id == InventoryCheck.check_id)
        )
        if status == PENDING:
            query = query.filter(or_(
                IngredientShortage.resolution_status == PENDING,
                IngredientShortage.resolution_status.is_(None),
            ))
        elif status != ALL_STATUSES:
            query = query.filter(IngredientShortage.resolution_status == status)
        if schedule_id:
            query = query.filter(IngredientShortage.schedule_id == schedule_id)
        if priority:
            query = query.filter(IngredientShortage.priority == priority)

        rows = query.order_by(PRIORITY_ORDER, IngredientShortage.created_at.desc()).all()
        return [shortage_to_dict(shortage, check) for shortage, check in rows]

    def resolve(
        self,
        shortage_id: str,
        resolution_status: Optional[str],
        resolved_by: Optional[str],
        resolution_action: Optional[str] = None,
        resolution_notes: Optional[str] = None,
    ) -> dict:
        if not resolution_status or not resolved_by:
            raise ValidationError("resolution_status and resolved_by are required")
        shortage = self.db.get(IngredientShortage, shortage_id)
        if shortage is None:
            raise NotFoundError("Shortage not found")

        now = utc_now()
        shortage.resolution_status = resolution_status
        shortage.resolution_action = resolution_action or None
        shortage.resolution_notes = resolution_notes or None
        shortage.resolved_by = resolved_by
        shortage.resolved_at = now
        shortage.updated_at = now
        self.db.commit()

        logger.info(f"Shortage {shortage_id} marked {resolution_status} by {resolved_by}")
        return shortage_to_dict(shortage)
