"""
Branch stock levels from the latest ERP inventory snapshot.

Staff accounts name branches by slug ("dubai-hills") while the ERP snapshot
spells them its own way ("Dubai_Hills", "DUBAI HILLS"); a slug covers every
snapshot branch with the same normalized name. The central-kitchen slug covers
every spelling of the central kitchen.
"""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.exceptions import PermissionDeniedError
from catering_ops.core.naming import is_central_kitchen, normalize_name
from catering_ops.models.inventory import BranchInventory
from catering_ops.models.user import User

logger = logging.getLogger(__name__)

# Roles that see every branch's stock
ALL_BRANCH_ROLES = (roles.ADMIN, roles.OPERATIONS_LEAD)
# Roles confined to the branches in their branch_slugs
BRANCH_BOUND_ROLES = (roles.BRANCH_MANAGER, roles.BRANCH_STAFF)
TOP_ITEMS = 10


def _number(value) -> float:
    return float(value) if value is not None else 0.0


def item_to_dict(row: BranchInventory) -> dict:
    return {
        "id": row.id,
        "item": row.item,
        "branch": row.branch,
        "category": row.category,
        "quantity": _number(row.quantity),
        "unit": row.unit,
        "unit_cost": _number(row.unit_cost),
        "total_cost": _number(row.total_cost),
        "inventory_date": row.inventory_date.isoformat() if row.inventory_date else None,
    }


class InventoryService:

    def __init__(self, db: Session):
        self.db = db

    def _branches_for(self, slugs: list[str]) -> list[str]:
        """Snapshot branch spellings covered by the given slugs."""
        wanted = {normalize_name(slug) for slug in slugs}
        central = any(is_central_kitchen(slug) for slug in slugs)
        known = [branch for (branch,) in self.db.query(BranchInventory.branch).distinct()]
        return [
            branch for branch in known
            if normalize_name(branch) in wanted or (central and is_central_kitchen(branch))
        ]

    def _visible_branches(self, user: User, branch: Optional[str]) -> Optional[list[str]]:
        """
        Snapshot branches the user may see, or None for every branch.

        Raises PermissionDeniedError when a branch-bound user asks for a
        branch outside their own.
        """
        sees_all = user.has_role(*ALL_BRANCH_ROLES)
        own = user.branch_slugs or []
        if branch:
            if not sees_all and user.has_role(*BRANCH_BOUND_ROLES) and branch not in own:
                raise PermissionDeniedError("Access denied")
            return self._branches_for([branch])
        if sees_all:
            return None
        return self._branches_for(own)

    def _latest(self, branches: Optional[list[str]]):
        """Rows of the most recent snapshot date among ``branches``."""
        query = self.db.query(BranchInventory)
        if branches is not None:
            query = query.filter(BranchInventory.branch.in_(branches))
        latest = query.with_entities(func.max(BranchInventory.inventory_date)).scalar()
        if latest is None:
            return None, None
        return query.filter(BranchInventory.inventory_date == latest), latest

    def _sync_info(self) -> dict:
        last_synced, data_date = self.db.query(
            func.max(BranchInventory.last_synced), func.max(BranchInventory.inventory_date)
        ).one()
        return {
            "last_synced": last_synced.isoformat() if last_synced else None,
            "data_date": data_date.isoformat() if data_date else None,
        }

    def items(
        self,
        user: User,
        branch: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> dict:
        branches = self._visible_branches(user, branch)
        query, _ = self._latest(branches) if branches != [] else (None, None)
        if query is None:
            return {"items": [], "total": 0, "sync_info": self._sync_info()}

        if category:
            query = query.filter(BranchInventory.category == category)
        if search and search.strip():
            query = query.filter(func.lower(BranchInventory.item).like(f"%{search.strip().lower()}%"))

        rows = (
            query.order_by(BranchInventory.item.asc(), BranchInventory.branch.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {"items": [item_to_dict(row) for row in rows], "total": query.count(), "sync_info": self._sync_info()}

    def summary(self, user: User, branch: Optional[str] = None) -> dict:
        """Item count, quantity and value of the latest snapshot, by branch and top items by value."""
        branches = self._visible_branches(user, branch)
        query, _ = self._latest(branches) if branches != [] else (None, None)
        if query is None:
            return {
                "total_items": 0,
                "total_quantity": 0,
                "total_value": 0,
                "by_location": [],
                "top_items": [],
                "sync_info": self._sync_info(),
            }

        items, quantity, value = query.with_entities(
            func.count(func.distinct(BranchInventory.item)),
            func.sum(BranchInventory.quantity),
            func.sum(BranchInventory.total_cost),
        ).one()

        location_value = func.coalesce(func.sum(BranchInventory.total_cost), 0)
        locations = (
            query.with_entities(
                BranchInventory.branch,
                func.count(func.distinct(BranchInventory.item)),
                func.sum(BranchInventory.quantity),
                location_value,
            )
            .group_by(BranchInventory.branch)
            .order_by(location_value.desc())
            .all()
        )
        top = (
            query.filter(BranchInventory.total_cost.isnot(None))
            .order_by(BranchInventory.total_cost.desc())
            .limit(TOP_ITEMS)
            .all()
        )

        return {
            "total_items": int(items or 0),
            "total_quantity": round(_number(quantity), 3),
            "total_value": round(_number(value), 2),
            "by_location": [
                {
                    "location": location,
                    "item_count": int(count),
                    "total_quantity": round(_number(qty), 3),
                    "total_value": round(_number(total), 2),
                }
                for location, count, qty, total in locations
            ],
            "top_items": [item_to_dict(row) for row in top],
            "sync_info": self._sync_info(),
        }
