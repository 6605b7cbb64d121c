"""
Ingredient alert router: chefs report missing ingredients, the Central
Kitchen acknowledges and resolves them.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.deps import get_current_user, require_roles
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.ingredient_alerts import IngredientAlertService, alert_to_dict

router = APIRouter(prefix="/ingredient-alerts", tags=["ingredient-alerts"])


@router.get("")
def list_alerts(
    status: Optional[str] = Query(None),
    schedule_id: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "alerts": IngredientAlertService(db).list_alerts(status, schedule_id)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_alert(
    data: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_roles(*roles.ALERT_REPORTERS)),
    db: Session = Depends(get_db),
):
    return {"success": True, "alert": IngredientAlertService(db).create(data, current_user)}


@router.get("/{alert_id}")
def get_alert(
    alert_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "alert": alert_to_dict(IngredientAlertService(db).get(alert_id))}


@router.patch("/{alert_id}")
def update_alert(
    alert_id: str,
    data: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_roles(*roles.ALERT_RESOLVERS)),
    db: Session = Depends(get_db),
):
    return {"success": True, "alert": IngredientAlertService(db).update(alert_id, data, current_user)}


@router.delete("/{alert_id}")
def delete_alert(
    alert_id: str,
    current_user: User = Depends(require_roles(*roles.ALERT_DELETERS)),
    db: Session = Depends(get_db),
):
    IngredientAlertService(db).delete(alert_id)
    return {"success": True, "message": "Alert deleted"}
