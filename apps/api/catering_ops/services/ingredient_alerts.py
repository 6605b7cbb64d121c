"""
Chef-reported missing ingredient alerts.

A head chef flags that a production item cannot be made because ingredients
are missing; the Central Kitchen acknowledges the alert and then resolves it
or marks it as impossible to fulfil.
"""
import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from catering_ops.core.config import get_settings
from catering_ops.core.exceptions import NotFoundError, ValidationError
from catering_ops.core.reporting import business_today
from catering_ops.db.documents import utc_now
from catering_ops.models.inventory import (
    ACKNOWLEDGED,
    CANNOT_FULFILL,
    IngredientAlert,
    PENDING,
    RESOLVED,
)
from catering_ops.models.user import User

logger = logging.getLogger(__name__)
settings = get_settings()

ALERT_STATUSES = (PENDING, ACKNOWLEDGED, RESOLVED, CANNOT_FULFILL)

# Five or more missing ingredients is urgent regardless of the date
MANY_MISSING = 5


def alert_priority(scheduled_date: date, today: date, missing_count: int) -> str:
    days_until = (scheduled_date - today).days
    if days_until <= 1 or missing_count >= MANY_MISSING:
        return "HIGH"
    if days_until <= 3:
        return "MEDIUM"
    return "LOW"


def alert_to_dict(alert: IngredientAlert) -> dict:
    def iso(value):
        return value.isoformat() if value else None

    return {
        "alert_id": alert.alert_id,
        "production_item_id": alert.production_item_id,
        "schedule_id": alert.schedule_id,
        "recipe_id": alert.recipe_id,
        "recipe_name": alert.recipe_name,
        "scheduled_date": alert.scheduled_date,
        "reported_by": alert.reported_by,
        "reported_by_name": alert.reported_by_name,
        "reported_at": iso(alert.reported_at),
        "priority": alert.priority,
        "status": alert.status,
        "missing_ingredients": alert.missing_ingredients or [],
        "notes": alert.notes,
        "acknowledged_by": alert.acknowledged_by,
        "acknowledged_at": iso(alert.acknowledged_at),
        "resolved_by": alert.resolved_by,
        "resolved_at": iso(alert.resolved_at),
        "resolution_notes": alert.resolution_notes,
    }


class IngredientAlertService:

    def __init__(self, db: Session, today: Optional[date] = None):
        self.db = db
        self.today = today or business_today(settings.BUSINESS_TIMEZONE)

    def list_alerts(self, status: Optional[str] = None, schedule_id: Optional[str] = None) -> list[dict]:
        query = self.db.query(IngredientAlert)
        if status:
            query = query.filter(IngredientAlert.status == status)
        if schedule_id:
            query = query.filter(IngredientAlert.schedule_id == schedule_id)
        priority_order = case(
            (IngredientAlert.priority == "HIGH", 1),
            (IngredientAlert.priority == "MEDIUM", 2),
            else_=3,
        )
        alerts = query.order_by(priority_order, IngredientAlert.reported_at.desc()).all()
        return [alert_to_dict(a) for a in alerts]

    def get(self, alert_id: str) -> IngredientAlert:
        alert = self.db.get(IngredientAlert, alert_id)
        if alert is None:
            raise NotFoundError("Alert not found")
        return alert

    def create(self, data: dict, user: User) -> dict:
        required = ("production_item_id", "schedule_id", "recipe_name", "scheduled_date")
        if any(not data.get(key) for key in required) or not data.get("missing_ingredients"):
            raise ValidationError("Missing required fields")
        try:
            scheduled = date.fromisoformat(data["scheduled_date"])
        except ValueError:
            raise ValidationError("scheduled_date must be YYYY-MM-DD")

        alert = IngredientAlert(
            alert_id=f"alert-{uuid.uuid4().hex[:12]}",
            production_item_id=data["production_item_id"],
            schedule_id=data["schedule_id"],
            recipe_id=data.get("recipe_id"),
            recipe_name=data["recipe_name"],
            scheduled_date=data["scheduled_date"],
            reported_by=str(user.id),
            reported_by_name=user.full_name,
            reported_at=utc_now(),
            priority=alert_priority(scheduled, self.today, len(data["missing_ingredients"])),
            status=PENDING,
            missing_ingredients=data["missing_ingredients"],
            notes=data.get("notes"),
        )
        self.db.add(alert)
        self.db.commit()
        logger.info(
            f"Ingredient alert {alert.alert_id} raised for {alert.recipe_name} on {alert.scheduled_date} "
            f"({len(alert.missing_ingredients)} missing, {alert.priority})"
        )
        return alert_to_dict(alert)

    def update(self, alert_id: str, data: dict, user: User) -> dict:
        alert = self.get(alert_id)
        status = data.get("status")
        if status is not None and status not in ALERT_STATUSES:
            raise ValidationError(f"Invalid status: {status}")

        now = utc_now()
        if status in (RESOLVED, CANNOT_FULFILL):
            alert.resolved_by = user.full_name
            alert.resolved_at = now
            alert.resolution_notes = data.get("resolution_notes")
        elif status == ACKNOWLEDGED:
            alert.acknowledged_by = user.full_name
            alert.acknowledged_at = now
        if status is not None:
            alert.status = status
        if "missing_ingredients" in data:
            alert.missing_ingredients = data["missing_ingredients"]
        if "notes" in data:
            alert.notes = data["notes"]
        self.db.commit()
        return alert_to_dict(alert)

    def delete(self, alert_id: str) -> None:
        self.db.delete(self.get(alert_id))
        self.db.commit()
