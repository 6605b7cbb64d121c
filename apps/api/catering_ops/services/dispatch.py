"""
Dispatch service: delivery batches, follow-up re-deliveries and issue handling.

Follow-up lifecycle for an item that arrived short or damaged:

1. Branch receiving flags an ``issue`` on a parent dispatch item.
2. ``create_follow_up`` builds a new ``follow_up`` dispatch with one fresh item
   per flagged item (grouped into one branch sub-document per branch) and
   marks the parent items ``resolution_status = "scheduled"``.
3. When a branch of the follow-up is marked ``completed`` via
   ``update_branch``, the parent items it references become ``resolved``.
"""
import logging
import time
from typing import Optional

from sqlalchemy.orm import Session

from catering_ops.core.exceptions import NotFoundError, ValidationError
from catering_ops.db.documents import edit_document, now_iso, utc_now
from catering_ops.models.dispatch import (
    Dispatch,
    EDITABLE_BRANCH_STATUSES,
    FOLLOW_UP,
    PRIMARY,
)
from catering_ops.models.user import User

logger = logging.getLogger(__name__)

FOLLOW_UP_CREATOR = "System (Follow-Up)"


def find_branch(branch_dispatches: list[dict], branch_slug: str, missing_message: str) -> dict:
    for branch in branch_dispatches:
        if branch.get("branch_slug") == branch_slug:
            branch.setdefault("items", [])
            return branch
    raise NotFoundError(missing_message)


def epoch_millis() -> int:
    return int(time.time() * 1000)


def build_follow_up_branches(items: list[dict], parent_dispatch_id: str, stamp: int) -> list[dict]:
    """
    Group flagged items by branch into pending branch sub-documents.

    Branch order follows the first appearance of each branch in ``items``.
    """
    grouped: dict[str, list[dict]] = {}
    for item in items:
        grouped.setdefault(item["branch_slug"], []).append(item)

    branches = []
    for branch_slug, branch_items in grouped.items():
        branches.append({
            "branch_slug": branch_slug,
            "branch_name": branch_items[0].get("branch_name"),
            "status": "pending",
            "items": [
                {
                    "id": f"{branch_slug}-followup-{index}-{stamp}",
                    "name": item.get("item_name"),
                    "ordered_qty": item.get("quantity"),
                    "packed_qty": None,
                    "received_qty": None,
                    "unit": item.get("unit"),
                    "packed_checked": False,
                    "received_checked": False,
                    "notes": "",
                    "issue": None,
                    "original_dispatch_id": parent_dispatch_id,
                    "original_item_id": item.get("item_id"),
                    "original_issue": item.get("original_issue"),
                }
                for index, item in enumerate(branch_items)
            ],
            # Packing checkpoint
            "packed_by": None,
            "packing_started_at": None,
            "packing_completed_at": None,
            # Receiving checkpoint
            "received_by": None,
            "receiving_started_at": None,
            "received_at": None,
            "completed_at": None,
            "overall_notes": "",
        })
    return branches


class DispatchService:
    """Reads and writes dispatch documents."""

    def __init__(self, db: Session):
        self.db = db

    def list_active(self) -> list[dict]:
        rows = (
            self.db.query(Dispatch)
            .filter(Dispatch.is_archived.is_(False))
            .order_by(Dispatch.delivery_date.desc())
            .all()
        )
        return [row.to_dict() for row in rows]

    def get_active(self, dispatch_id: str, missing_message: str = "Dispatch not found") -> Dispatch:
        dispatch = self.db.get(Dispatch, dispatch_id)
        if dispatch is None or dispatch.is_archived:
            raise NotFoundError(missing_message)
        return dispatch

    def create(self, document: dict) -> Dispatch:
        dispatch_id = document.get("id")
        if not dispatch_id or not document.get("delivery_date"):
            raise ValidationError("Missing required fields: id, delivery_date")
        if self.db.get(Dispatch, dispatch_id) is not None:
            raise ValidationError(f"Dispatch {dispatch_id} already exists")

        dispatch = Dispatch(
            id=dispatch_id,
            created_date=document.get("created_date") or now_iso(),
            delivery_date=document["delivery_date"],
            created_by=document.get("created_by"),
            branch_dispatches=document.get("branch_dispatches") or [],
            type=document.get("type") or PRIMARY,
            parent_dispatch_id=document.get("parent_dispatch_id"),
            follow_up_dispatch_ids=document.get("follow_up_dispatch_ids") or [],
        )
        self.db.add(dispatch)
        self.db.commit()
        return dispatch

    def update_branch(self, dispatch_id: str, updates: dict) -> None:
        """
        Merge ``updates`` into one branch sub-document.

        Completing a branch of a follow-up dispatch also resolves the parent
        items it re-delivered. That second write is best effort: if it fails
        it is logged and the branch update still stands.
        """
        branch_slug = updates.get("branch_slug")
        if not branch_slug:
            raise ValidationError("Branch slug is required")
        dispatch = self.get_active(dispatch_id)

        def apply(branches: list[dict]) -> dict:
            branch = find_branch(branches, branch_slug, "Branch dispatch not found")
            branch.update(updates)
            return dict(branch)

        branch = edit_document(dispatch, "branch_dispatches", apply)
        self.db.commit()

        if dispatch.type == FOLLOW_UP and dispatch.parent_dispatch_id and updates.get("status") == "completed":
            try:
                self._resolve_parent_items(dispatch.parent_dispatch_id, branch_slug, branch.get("items") or [])
            except Exception as e:
                self.db.rollback()
                logger.error(
                    f"Error updating parent dispatch {dispatch.parent_dispatch_id} resolution status: {e}",
                    exc_info=True,
                )

    def _resolve_parent_items(self, parent_id: str, branch_slug: str, follow_up_items: list[dict]) -> int:
        parent = self.db.get(Dispatch, parent_id)
        if parent is None or parent.is_archived:
            return 0
        original_ids = {i.get("original_item_id") for i in follow_up_items if i.get("original_item_id")}
        if not original_ids:
            return 0

        def apply(branches: list[dict]) -> int:
            resolved = 0
            timestamp = now_iso()
            for branch in branches:
                if branch.get("branch_slug") != branch_slug:
                    continue
                for item in branch.get("items") or []:
                    if item.get("id") in original_ids:
                        item["resolution_status"] = "resolved"
                        item["resolved_at"] = timestamp
                        resolved += 1
            return resolved

        resolved = edit_document(parent, "branch_dispatches", apply)
        self.db.commit()
        logger.info(f"Resolved {resolved} item(s) on parent dispatch {parent_id} for {branch_slug}")
        return resolved

    def archive(self, dispatch_id: str, user: User) -> dict:
        dispatch = self.get_active(dispatch_id)
        dispatch.is_archived = True
        dispatch.deleted_at = utc_now()
        dispatch.deleted_by = user.full_name
        self.db.commit()
        return {"success": True, "message": "Dispatch archived successfully", "archived_id": dispatch_id}

    def create_follow_up(self, parent_dispatch_id: str, delivery_date: str, items: list[dict]) -> dict:
        if not parent_dispatch_id or not delivery_date or not items:
            raise ValidationError("Missing required fields")
        parent = self.get_active(parent_dispatch_id, "Parent dispatch not found")

        stamp = epoch_millis()
        follow_up_id = f"followup-{parent_dispatch_id.replace('dispatch-', '')}-{stamp}"
        branches = build_follow_up_branches(items, parent_dispatch_id, stamp)

        self.db.add(Dispatch(
            id=follow_up_id,
            created_date=now_iso(),
            delivery_date=delivery_date,
            created_by=FOLLOW_UP_CREATOR,
            branch_dispatches=branches,
            type=FOLLOW_UP,
            parent_dispatch_id=parent_dispatch_id,
            follow_up_dispatch_ids=[],
        ))

        def mark_scheduled(parent_branches: list[dict]) -> None:
            for flagged in items:
                branch = next(
                    (b for b in parent_branches if b.get("branch_slug") == flagged["branch_slug"]),
                    None,
                )
                if branch is None:
                    continue
                for item in branch.get("items") or []:
                    if item.get("id") == flagged.get("item_id"):
                        item["resolution_status"] = "scheduled"
                        item["resolved_by_dispatch_id"] = follow_up_id

        edit_document(parent, "branch_dispatches", mark_scheduled)
        parent.follow_up_dispatch_ids = list(parent.follow_up_dispatch_ids or []) + [follow_up_id]
        self.db.commit()

        logger.info(f"Created follow-up dispatch {follow_up_id} for {parent_dispatch_id}")
        return {
            "success": True,
            "id": follow_up_id,
            "message": f"Follow-up dispatch created with {len(items)} items for {len(branches)} branches",
        }

    def dismiss_issues(self, dispatch_id: str, branch_slug: str, item_ids: list[str], user: User) -> dict:
        if not (branch_slug or "").strip():
            raise ValidationError("Branch slug is required")
        if not item_ids:
            raise ValidationError("At least one item ID is required")
        dispatch = self.get_active(dispatch_id)
        wanted = set(item_ids)

        def apply(branches: list[dict]) -> tuple[str, list[str]]:
            branch = find_branch(branches, branch_slug, "Branch not found")
            dismissed = []
            for item in branch["items"]:
                if item.get("id") in wanted and item.get("issue") is not None:
                    item["issue"] = None
                    item["expected_variance"] = False
                    dismissed.append(item.get("name"))
            if not dismissed:
                raise ValidationError("No items with issues found to dismiss")
            return branch.get("branch_name"), dismissed

        branch_name, dismissed = edit_document(dispatch, "branch_dispatches", apply)
        self.db.commit()

        logger.info(
            f"Issues dismissed for {len(dismissed)} items in {branch_name} by {user.full_name}: "
            f"{', '.join(str(name) for name in dismissed)}"
        )
        return {
            "success": True,
            "message": f"Dismissed issues for {len(dismissed)} item(s)",
            "dismissed_items": dismissed,
            "branch_name": branch_name,
        }

    def remove_item(
        self,
        dispatch_id: str,
        branch_slug: str,
        item_id: str,
        user: User,
        reason: Optional[str] = None,
    ) -> dict:
        if not (branch_slug or "").strip():
            raise ValidationError("Branch slug is required")
        if not (item_id or "").strip():
            raise ValidationError("Item ID is required")
        dispatch = self.get_active(dispatch_id)

        def apply(branches: list[dict]) -> tuple[str, dict]:
            branch = find_branch(branches, branch_slug, "Branch not found")
            if branch.get("status") not in EDITABLE_BRANCH_STATUSES:
                raise ValidationError(
                    "Cannot remove items from a dispatch that is already dispatched or completed"
                )
            item = next((i for i in branch["items"] if i.get("id") == item_id), None)
            if item is None:
                raise NotFoundError("Item not found")
            branch["items"] = [i for i in branch["items"] if i is not item]
            return branch.get("branch_name"), item

        branch_name, removed = edit_document(dispatch, "branch_dispatches", apply)
        self.db.commit()

        logger.info(
            f'Item "{removed.get("name")}" removed from {branch_name} by {user.full_name}. '
            f"Reason: {reason or 'Not specified'}"
        )
        return {
            "success": True,
            "message": f'Item "{removed.get("name")}" removed from {branch_name}',
            "removed_item": {"id": removed.get("id"), "name": removed.get("name"), "branch_name": branch_name},
        }
