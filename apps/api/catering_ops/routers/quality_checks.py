"""
Quality check router: branch submissions, manager likes and feedback,
dashboard reports and the form field configuration.
"""
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.deps import get_current_user, require_roles
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.quality import QualityCheckService
from catering_ops.services.quality_fields import QualityFieldService, field_to_dict

router = APIRouter(prefix="/quality-checks", tags=["quality"])


class QualityCheckCreate(BaseModel):
    branch_slug: Optional[str] = None
    product_name: Optional[str] = None
    meal_service: Optional[str] = None
    section: Optional[str] = None
    taste_score: Optional[int] = None
    appearance_score: Optional[int] = None
    portion_qty_gm: Optional[float] = None
    temp_celsius: Optional[float] = None
    remarks: Optional[str] = None
    custom_fields: Optional[dict[str, Any]] = None


class LikeCreate(BaseModel):
    note: Optional[str] = None
    tags: List[str] = []


class FeedbackCreate(BaseModel):
    feedback_text: Optional[str] = None


class FieldCreate(BaseModel):
    field_key: Optional[str] = None
    label: Optional[str] = None
    field_type: Optional[str] = None
    is_required: Optional[bool] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    options: Optional[dict[str, Any]] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    placeholder: Optional[str] = None
    notes_enabled: Optional[bool] = None
    icon: Optional[str] = None


class FieldUpdate(BaseModel):
    label: Optional[str] = None
    is_required: Optional[bool] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    options: Optional[dict[str, Any]] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    placeholder: Optional[str] = None
    notes_enabled: Optional[bool] = None
    icon: Optional[str] = None


class FieldOrder(BaseModel):
    fields: List[Any] = []


@router.post("", status_code=status.HTTP_201_CREATED)
def submit_quality_check(
    body: QualityCheckCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "quality_check": QualityCheckService(db).submit(body.model_dump(), current_user)}


@router.get("")
def list_quality_checks(
    branch_slug: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"quality_checks": QualityCheckService(db).list_checks(branch_slug)}


# Reports and form configuration are declared before the /{check_id} routes

@router.get("/summary")
def quality_summary(
    period: str = Query("today", description="today, week or month"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityCheckService(db).summary(current_user, period)


@router.get("/likes-analytics")
def likes_analytics(
    period: str = Query("month", description="week or month"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityCheckService(db).likes_analytics(current_user, period)


@router.get("/my-feedback")
def my_feedback(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityCheckService(db).my_feedback(current_user, limit=limit, offset=offset)


@router.post("/feedback/{feedback_id}/acknowledge")
def acknowledge_feedback(
    feedback_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityCheckService(db).acknowledge_feedback(feedback_id, current_user)


@router.get("/products")
def quality_products(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityCheckService(db).products(search=search, category=category, limit=limit)


@router.get("/fields")
def list_fields(
    active_only: bool = Query(True),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"fields": [field_to_dict(field) for field in QualityFieldService(db).list_fields(active_only)]}


@router.post("/fields", status_code=status.HTTP_201_CREATED)
def create_field(
    body: FieldCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityFieldService(db).create(body.model_dump(exclude_none=True), current_user)


@router.post("/fields/reorder")
def reorder_fields(
    body: FieldOrder,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityFieldService(db).reorder(body.fields, current_user)


@router.get("/fields/{field_id}")
def get_field(
    field_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityFieldService(db).get(field_id)


@router.put("/fields/{field_id}")
def update_field(
    field_id: int,
    body: FieldUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityFieldService(db).update(field_id, body.model_dump(exclude_unset=True), current_user)


@router.delete("/fields/{field_id}")
def delete_field(
    field_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityFieldService(db).delete(field_id, current_user)


@router.post("/{check_id}/like", status_code=status.HTTP_201_CREATED)
def like_quality_check(
    check_id: int,
    body: LikeCreate,
    current_user: User = Depends(require_roles(*roles.QUALITY_REVIEWERS)),
    db: Session = Depends(get_db),
):
    return QualityCheckService(db).like(check_id, current_user, note=body.note, tags=body.tags)


@router.delete("/{check_id}/like")
def unlike_quality_check(
    check_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityCheckService(db).unlike(check_id, current_user)


@router.get("/{check_id}/likes")
def list_likes(
    check_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return QualityCheckService(db).likes(check_id, current_user)


@router.post("/{check_id}/feedback", status_code=status.HTTP_201_CREATED)
def give_feedback(
    check_id: int,
    body: FeedbackCreate,
    current_user: User = Depends(require_roles(*roles.QUALITY_REVIEWERS)),
    db: Session = Depends(get_db),
):
    return QualityCheckService(db).give_feedback(check_id, body.feedback_text, current_user)
