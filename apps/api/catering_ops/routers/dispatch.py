"""
Dispatch router: delivery batches to branches and their follow-ups.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.deps import get_current_user, require_roles
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.services.dispatch import DispatchService

router = APIRouter(prefix="/dispatch", tags=["dispatch"])


# ============ Schemas ============

class FollowUpItem(BaseModel):
    branch_slug: str
    branch_name: Optional[str] = None
    item_id: str
    item_name: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    original_issue: Optional[str] = None


class FollowUpCreate(BaseModel):
    parent_dispatch_id: Optional[str] = None
    delivery_date: Optional[str] = None
    items: List[FollowUpItem] = []


class DismissIssues(BaseModel):
    branch_slug: Optional[str] = None
    item_ids: List[str] = []


class RemoveItem(BaseModel):
    branch_slug: Optional[str] = None
    item_id: Optional[str] = None
    reason: Optional[str] = None


# ============ Endpoints ============

@router.get("")
def list_dispatches(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    return DispatchService(db).list_active()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_dispatch(
    document: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return DispatchService(db).create(document).to_dict()


@router.post("/follow-up", status_code=status.HTTP_201_CREATED)
def create_follow_up(
    body: FollowUpCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Re-deliver flagged items from a parent dispatch, one branch sub-document per branch."""
    return DispatchService(db).create_follow_up(
        body.parent_dispatch_id,
        body.delivery_date,
        [item.model_dump() for item in body.items],
    )


@router.get("/{dispatch_id}")
def get_dispatch(
    dispatch_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return DispatchService(db).get_active(dispatch_id).to_dict()


@router.patch("/{dispatch_id}")
def update_branch_dispatch(
    dispatch_id: str,
    updates: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Merge fields into one branch of the dispatch, selected by ``branch_slug``."""
    DispatchService(db).update_branch(dispatch_id, updates)
    return {"success": True}


@router.delete("/{dispatch_id}")
def archive_dispatch(
    dispatch_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return DispatchService(db).archive(dispatch_id, current_user)


@router.post("/{dispatch_id}/dismiss-issues")
def dismiss_issues(
    dispatch_id: str,
    body: DismissIssues,
    current_user: User = Depends(require_roles(*roles.ISSUE_DISMISSERS)),
    db: Session = Depends(get_db),
):
    return DispatchService(db).dismiss_issues(dispatch_id, body.branch_slug, body.item_ids, current_user)


@router.post("/{dispatch_id}/remove-item")
def remove_item(
    dispatch_id: str,
    body: RemoveItem,
    current_user: User = Depends(require_roles(*roles.ITEM_REMOVERS)),
    db: Session = Depends(get_db),
):
    return DispatchService(db).remove_item(
        dispatch_id,
        body.branch_slug,
        body.item_id,
        current_user,
        reason=body.reason,
    )
