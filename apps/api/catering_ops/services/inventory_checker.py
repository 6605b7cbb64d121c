"""
Automated inventory check for a production schedule.

For every day of a schedule the checker explodes each production item into raw
ingredients using the ERP bill of materials (``odoo_recipe``), recursing into
sub-recipes. It then aggregates the ingredients per day and compares them with
the latest Central Kitchen stock snapshot. Every ingredient that falls short
is stored as an ``IngredientShortage`` row for the kitchen to resolve.

Mathematical Model:
    required_j(day) = sum_i (qty_i(day) * bom_ij)      (recursing through sub-recipes)
    shortfall_j     = required_j - available_j          (both in base units)
"""
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from catering_ops.core.config import get_settings
from catering_ops.core.exceptions import NotFoundError
from catering_ops.core.reporting import business_today, parse_iso_date
from catering_ops.models.inventory import (
    ALL_GOOD,
    BranchInventory,
    CRITICAL,
    CRITICAL_SHORTAGE,
    IngredientMapping,
    IngredientShortage,
    InventoryCheck,
    MISSING,
    PARTIAL,
    PARTIAL_SHORTAGE,
    PENDING,
    PRIORITIES,
    SUFFICIENT,
)
from catering_ops.models.odoo import OdooRecipe
from catering_ops.models.production import ProductionSchedule

logger = logging.getLogger(__name__)
settings = get_settings()

# Multiplier to base unit, and the base unit (GM for weight, ML for volume)
UNIT_CONVERSIONS = {
    "GM": (1, "GM"),
    "G": (1, "GM"),
    "KG": (1000, "GM"),
    "LB": (453.592, "GM"),
    "OZ": (28.3495, "GM"),
    "ML": (1, "ML"),
    "L": (1000, "ML"),
    "LITER": (1000, "ML"),
    "LITRE": (1000, "ML"),
    "CUP": (240, "ML"),
    "TBSP": (15, "ML"),
    "TSP": (5, "ML"),
    "UNIT": (1, "UNIT"),
    "PIECE": (1, "UNIT"),
    "EA": (1, "UNIT"),
    "UNITS": (1, "UNIT"),
}

# Keeps absurd ERP quantities from overflowing the numeric columns
MAX_BASE_QUANTITY = 100_000_000_000

MAX_RECIPE_DEPTH = 10
CRITICAL_SHORTFALL_PCT = 80


def to_base_unit(quantity: float, unit: Optional[str]) -> tuple[float, str]:
    """
    Convert a quantity to its base unit.

    Unknown units are passed through unchanged (upper-cased).

    Examples:
        >>> to_base_unit(2, "kg")
        (2000, 'GM')
        >>> to_base_unit(3, "Tbsp")
        (45, 'ML')
        >>> to_base_unit(4, "bunch")
        (4, 'BUNCH')
    """
    normalized = (unit or "").strip().upper()
    conversion = UNIT_CONVERSIONS.get(normalized)
    if conversion is None:
        logger.warning(f"Unknown unit: {unit}, keeping original")
        return quantity, normalized

    factor, base_unit = conversion
    base_quantity = quantity * factor
    if base_quantity > MAX_BASE_QUANTITY:
        logger.warning(f"Extremely large quantity detected: {base_quantity} {base_unit}, capping")
        return MAX_BASE_QUANTITY, base_unit
    return base_quantity, base_unit


def classify_shortage(required: float, available: float) -> str:
    """Shortage status for one ingredient, both quantities in the same base unit."""
    if available == 0:
        return MISSING
    shortfall = required - available
    if shortfall <= 0:
        return SUFFICIENT
    if shortfall / required * 100 >= CRITICAL_SHORTFALL_PCT:
        return CRITICAL
    return PARTIAL


def shortage_priority(days_until_production: int, status: str) -> str:
    if days_until_production <= 1 or status in (MISSING, CRITICAL):
        return "HIGH"
    if days_until_production <= 3 or status == PARTIAL:
        return "MEDIUM"
    return "LOW"


def overall_status(shortages: list["Shortage"]) -> str:
    if any(s.status in (MISSING, CRITICAL) for s in shortages):
        return CRITICAL_SHORTAGE
    if any(s.status == PARTIAL for s in shortages):
        return PARTIAL_SHORTAGE
    return ALL_GOOD


@dataclass
class IngredientNeed:
    """One raw ingredient requirement, aggregated per day."""
    name: str
    base_quantity: float
    base_unit: str
    recipes: list[str] = field(default_factory=list)
    production_items: list[str] = field(default_factory=list)


@dataclass
class Shortage:
    ingredient: str
    inventory_item: Optional[str]
    required: float
    available: float
    shortfall: float
    unit: str
    status: str
    priority: str
    affected_recipes: list[str]
    affected_items: list[str]
    production_date: str


@dataclass
class CheckResult:
    check_id: str
    schedule_id: str
    production_dates: list[str]
    overall: str
    total_ingredients: int
    missing: int
    partial: int
    sufficient: int
    shortages: list[Shortage]
    inventory_date: Optional[str]


class InventoryChecker:
    """Runs and stores inventory checks against Central Kitchen stock."""

    def __init__(self, db: Session, today: Optional[date] = None):
        self.db = db
        self.today = today or business_today(settings.BUSINESS_TIMEZONE)
        self._bom_cache: dict[str, list[OdooRecipe]] = {}

    # ------------------------------------------------------------------
    # Recipe explosion
    # ------------------------------------------------------------------

    def _bom(self, recipe_name: str) -> list[OdooRecipe]:
        if recipe_name not in self._bom_cache:
            self._bom_cache[recipe_name] = (
                self.db.query(OdooRecipe)
                .filter(OdooRecipe.item == recipe_name)
                .order_by(OdooRecipe.item_type.desc(), OdooRecipe.ingredient_name)
                .all()
            )
        return self._bom_cache[recipe_name]

    def explode(
        self,
        recipe_name: str,
        quantity: float,
        production_item: str,
        depth: int = 0,
        visited: frozenset = frozenset(),
    ) -> list[tuple[str, float, str, str, str]]:
        """
        Flatten a recipe into raw ingredient lines.

        Returns (ingredient, base_quantity, base_unit, source_recipe, production_item)
        tuples. Recursion stops at ``MAX_RECIPE_DEPTH`` and on cycles; the
        visited set is per path so two branches may share a sub-recipe.
        """
        if depth >= MAX_RECIPE_DEPTH or recipe_name in visited:
            return []
        visited = visited | {recipe_name}

        lines = []
        for row in self._bom(recipe_name):
            scaled = float(row.quantity or 0) * quantity
            if row.item_type == "subrecipe":
                for name, base_qty, base_unit, source, item in self.explode(
                    row.ingredient_name, scaled, production_item, depth + 1, visited
                ):
                    lines.append((name, base_qty, base_unit, f"{recipe_name} > {source}", item))
            else:
                base_qty, base_unit = to_base_unit(scaled, row.unit)
                lines.append((row.ingredient_name, base_qty, base_unit, recipe_name, production_item))
        return lines

    @staticmethod
    def aggregate(lines: list[tuple[str, float, str, str, str]]) -> list[IngredientNeed]:
        """Sum lines by (lower-cased name, base unit), keeping first-seen order."""
        needs: dict[tuple[str, str], IngredientNeed] = {}
        for name, base_qty, base_unit, source, item in lines:
            key = (name.lower(), base_unit)
            need = needs.get(key)
            if need is None:
                need = needs[key] = IngredientNeed(name=name, base_quantity=0, base_unit=base_unit)
            need.base_quantity += base_qty
            if source not in need.recipes:
                need.recipes.append(source)
            if item not in need.production_items:
                need.production_items.append(item)
        return list(needs.values())

    # ------------------------------------------------------------------
    # Inventory matching
    # ------------------------------------------------------------------

    def latest_central_kitchen_stock(self) -> tuple[list[BranchInventory], Optional[date]]:
        branch = settings.CENTRAL_KITCHEN_BRANCH
        latest = (
            self.db.query(func.max(BranchInventory.inventory_date))
            .filter(BranchInventory.branch == branch)
            .scalar()
        )
        if latest is None:
            return [], None
        rows = (
            self.db.query(BranchInventory)
            .filter(BranchInventory.branch == branch, BranchInventory.inventory_date == latest)
            .all()
        )
        return rows, latest

    def _mappings(self) -> dict[str, str]:
        return {
            m.recipe_ingredient_name.strip().lower(): m.inventory_item_name
            for m in self.db.query(IngredientMapping).all()
        }

    @staticmethod
    def match_inventory(
        ingredient: str,
        stock: list[BranchInventory],
        mappings: dict[str, str],
    ) -> Optional[BranchInventory]:
        """Exact name, then an explicit mapping, then substring match either way."""
        wanted = ingredient.strip().lower()

        for row in stock:
            if row.item.strip().lower() == wanted:
                return row

        mapped = mappings.get(wanted)
        if mapped:
            mapped = mapped.strip().lower()
            for row in stock:
                if row.item.strip().lower() == mapped:
                    return row

        for row in stock:
            name = row.item.strip().lower()
            if name and (name in wanted or wanted in name):
                return row
        return None

    def compare(
        self,
        needs: list[IngredientNeed],
        production_date: str,
        stock: list[BranchInventory],
        mappings: dict[str, str],
    ) -> list[Shortage]:
        days_until = (date.fromisoformat(production_date) - self.today).days
        shortages = []
        for need in needs:
            if need.base_quantity <= 0:
                continue
            match = self.match_inventory(need.name, stock, mappings)
            available = 0.0
            if match is not None:
                available, _ = to_base_unit(float(match.quantity or 0), match.unit)

            status = classify_shortage(need.base_quantity, available)
            if status == SUFFICIENT:
                continue
            shortages.append(Shortage(
                ingredient=need.name,
                inventory_item=match.item if match is not None else None,
                required=round(need.base_quantity, 2),
                available=round(available, 2),
                shortfall=round(need.base_quantity - available, 2),
                unit=need.base_unit,
                status=status,
                priority=shortage_priority(days_until, status),
                affected_recipes=need.recipes,
                affected_items=need.production_items,
                production_date=production_date,
            ))
        return shortages

    # ------------------------------------------------------------------
    # Check lifecycle
    # ------------------------------------------------------------------

    def run(self, schedule_id: str, user_id: Optional[str] = None) -> CheckResult:
        schedule = self.db.get(ProductionSchedule, schedule_id)
        if schedule is None:
            raise NotFoundError(f"Production schedule not found: {schedule_id}")
        logger.info(f"Running inventory check for schedule: {schedule_id}")

        stock, inventory_date = self.latest_central_kitchen_stock()
        mappings = self._mappings()

        production_dates: list[str] = []
        shortages: list[Shortage] = []
        total_ingredients = 0

        for day in schedule.schedule_data.get("days") or []:
            production_date = day.get("date")
            if parse_iso_date(production_date) is None:
                logger.warning(f"Skipping day with invalid date {production_date!r} in schedule {schedule_id}")
                continue
            production_dates.append(production_date)
            lines = []
            for item in day.get("items") or []:
                recipe_name = item.get("recipe_name")
                if not recipe_name or not self._bom(recipe_name):
                    logger.warning(f"Recipe not found: {recipe_name}")
                    continue
                quantity = float(item.get("adjusted_quantity") or item.get("quantity") or 0)
                lines.extend(self.explode(recipe_name, quantity, recipe_name))

            needs = self.aggregate(lines)
            total_ingredients += len(needs)
            shortages.extend(self.compare(needs, production_date, stock, mappings))

        missing = sum(1 for s in shortages if s.status in (MISSING, CRITICAL))
        partial = sum(1 for s in shortages if s.status == PARTIAL)
        sufficient = total_ingredients - len(shortages)
        status = overall_status(shortages)
        check_id = f"check-{schedule_id}-{int(time.time() * 1000)}"

        check = InventoryCheck(
            check_id=check_id,
            schedule_id=schedule_id,
            production_dates=production_dates,
            status="COMPLETED",
            total_ingredients_required=total_ingredients,
            missing_ingredients_count=missing,
            partial_ingredients_count=partial,
            sufficient_ingredients_count=sufficient,
            overall_status=status,
            checked_by=user_id or "system",
            check_type="MANUAL" if user_id else "AUTOMATIC",
        )
        for shortage in shortages:
            check.shortages.append(IngredientShortage(
                shortage_id=f"shortage-{check_id}-{uuid.uuid4().hex[:9]}",
                schedule_id=schedule_id,
                production_date=shortage.production_date,
                ingredient_name=shortage.ingredient,
                inventory_item_name=shortage.inventory_item,
                required_quantity=shortage.required,
                available_quantity=shortage.available,
                shortfall_amount=shortage.shortfall,
                unit=shortage.unit,
                status=shortage.status,
                priority=shortage.priority,
                affected_recipes=shortage.affected_recipes,
                affected_production_items=shortage.affected_items,
                resolution_status=PENDING,
            ))
        self.db.add(check)
        self.db.commit()

        logger.info(
            f"Check complete: {status} ({missing} missing, {partial} partial, {sufficient} sufficient)"
        )
        return CheckResult(
            check_id=check_id,
            schedule_id=schedule_id,
            production_dates=production_dates,
            overall=status,
            total_ingredients=total_ingredients,
            missing=missing,
            partial=partial,
            sufficient=sufficient,
            shortages=shortages,
            inventory_date=inventory_date.isoformat() if inventory_date else None,
        )

    def latest(self, schedule_id: str) -> dict:
        check = (
            self.db.query(InventoryCheck)
            .filter(InventoryCheck.schedule_id == schedule_id)
            .order_by(InventoryCheck.check_date.desc(), InventoryCheck.check_id.desc())
            .first()
        )
        if check is None:
            raise NotFoundError("No inventory check found for this schedule")

        rank = {p: i for i, p in enumerate(PRIORITIES)}
        shortages = sorted(
            check.shortages,
            key=lambda s: (rank.get(s.priority, len(rank)), -float(s.shortfall_amount or 0)),
        )
        return {
            "check_id": check.check_id,
            "schedule_id": check.schedule_id,
            "production_dates": check.production_dates,
            "overall": check.overall_status,
            "total_ingredients": check.total_ingredients_required,
            "missing": check.missing_ingredients_count,
            "partial": check.partial_ingredients_count,
            "sufficient": check.sufficient_ingredients_count,
            "check_date": check.check_date.isoformat() if check.check_date else None,
            "shortages": [
                {
                    "shortage_id": s.shortage_id,
                    "ingredient_name": s.ingredient_name,
                    "inventory_item_name": s.inventory_item_name,
                    "required_quantity": float(s.required_quantity or 0),
                    "available_quantity": float(s.available_quantity or 0),
                    "shortfall_amount": float(s.shortfall_amount or 0),
                    "unit": s.unit,
                    "status": s.status,
                    "priority": s.priority,
                    "affected_recipes": s.affected_recipes,
                    "affected_production_items": s.affected_production_items,
                    "production_date": s.production_date,
                    "resolution_status": s.resolution_status,
                }
                for s in shortages
            ],
        }

    def delete_for_schedule(self, schedule_id: str) -> dict:
        shortages = (
            self.db.query(IngredientShortage)
            .filter(IngredientShortage.schedule_id == schedule_id)
            .delete(synchronize_session=False)
        )
        checks = (
            self.db.query(InventoryCheck)
            .filter(InventoryCheck.schedule_id == schedule_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Deleted {checks} check(s) and {shortages} shortage(s) for {schedule_id}")
        return {"success": True, "deleted_checks": checks, "deleted_shortages": shortages}

    def delete_all(self) -> dict:
        shortages = self.db.query(IngredientShortage).delete(synchronize_session=False)
        checks = self.db.query(InventoryCheck).delete(synchronize_session=False)
        self.db.commit()
        logger.info(f"Cleared all inventory checks ({checks}) and shortages ({shortages})")
        return {"success": True, "deleted_checks": checks, "deleted_shortages": shortages}
