"""
Production schedule service.

Owns every read and write of the weekly production schedule documents:
whole-document CRUD, the per-item kitchen workflow (assign, reassign,
complete, adjust quantity, reschedule, sub-recipe progress) and the
per-station task board.

Every mutation loads the schedule row, edits a copy of its document and
writes it back under the row's version check (see ``db.documents``).
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from catering_ops.core.naming import normalize_name, same_name
from catering_ops.core.reporting import parse_iso_date
from catering_ops.db.documents import edit_document, now_iso
from catering_ops.models.production import ProductionSchedule
from catering_ops.models.user import User

logger = logging.getLogger(__name__)

# Fields copied from a schedule item onto a station task
TASK_FIELDS = (
    "item_id",
    "recipe_name",
    "recipe_id",
    "quantity",
    "unit",
    "notes",
    "assigned_at",
    "started_at",
    "completed_at",
    "actual_quantity",
    "actual_unit",
    "sub_recipe_progress",
)


@dataclass
class StationTasks:
    """Items assigned to one station on one production day."""
    station: str
    date: str
    schedule_id: Optional[str]
    tasks: list[dict]

    def as_dict(self) -> dict:
        return {
            "station": self.station,
            "date": self.date,
            "schedule_id": self.schedule_id,
            "tasks": self.tasks,
        }


def find_day(document: dict, date: str, missing_message: str = "Day not found in schedule") -> dict:
    for day in document.get("days") or []:
        if day.get("date") == date:
            day.setdefault("items", [])
            return day
    raise NotFoundError(missing_message)


def find_item(day: dict, item_id: str) -> dict:
    for item in day.get("items") or []:
        if item.get("item_id") == item_id:
            return item
    raise NotFoundError("Item not found")


def check_days(days: Any) -> None:
    """Every production day needs an ISO ``date``; the inventory check keys on it."""
    if not isinstance(days, list):
        raise ValidationError("days must be a list")
    for day in days:
        value = day.get("date") if isinstance(day, dict) else None
        if parse_iso_date(value) is None:
            raise ValidationError(f"Invalid day date {value!r}, expected YYYY-MM-DD")


def task_state(item: dict) -> int:
    """Sort key for the task board: in progress, then pending, then completed."""
    done = bool(item.get("completed") or item.get("completed_at"))
    if done:
        return 2
    if item.get("started_at"):
        return 0
    return 1


class ProductionScheduleService:
    """Schedule document store and kitchen item workflow."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Whole documents
    # ------------------------------------------------------------------

    def list_schedules(self) -> list[dict]:
        rows = (
            self.db.query(ProductionSchedule)
            .order_by(ProductionSchedule.week_start.desc())
            .all()
        )
        return [row.schedule_data for row in rows]

    def get(self, schedule_id: str) -> ProductionSchedule:
        schedule = self.db.get(ProductionSchedule, schedule_id)
        if schedule is None:
            raise NotFoundError("Schedule not found")
        return schedule

    def upsert(self, document: dict) -> dict:
        """Insert a schedule, or replace the stored document if the id exists."""
        schedule_id = document.get("schedule_id")
        week_start = document.get("week_start")
        if not schedule_id or not week_start:
            raise ValidationError("Missing required fields: schedule_id, week_start")
        document.setdefault("days", [])
        check_days(document["days"])

        schedule = self.db.get(ProductionSchedule, schedule_id)
        if schedule is None:
            schedule = ProductionSchedule(
                schedule_id=schedule_id,
                week_start=week_start,
                schedule_data=document,
            )
            self.db.add(schedule)
        else:
            schedule.week_start = week_start
            schedule.schedule_data = document

        self.db.commit()
        logger.info(f"Saved production schedule {schedule_id}")
        return schedule.schedule_data

    def merge(self, schedule_id: str, updates: dict) -> dict:
        """Shallow-merge ``updates`` into the document. The id cannot change."""
        if "days" in updates:
            check_days(updates["days"])
        schedule = self.get(schedule_id)

        def apply(document: dict) -> None:
            document.update(updates)
            document["schedule_id"] = schedule_id

        edit_document(schedule, "schedule_data", apply)
        if updates.get("week_start"):
            schedule.week_start = updates["week_start"]
        self.db.commit()
        return schedule.schedule_data

    def patch(self, schedule_id: str, body: dict, user: User) -> dict:
        """
        Either toggle one item's completion or shallow-merge the body.

        A body carrying ``item_id`` and a boolean ``completed`` (plus ``date``)
        is an item toggle and follows the station rule; anything else is a
        document merge, which only planners may do.
        """
        if "item_id" in body and isinstance(body.get("completed"), bool):
            date = body.get("date")
            if not date:
                raise ValidationError("Missing date field")
            completed = body["completed"]

            def toggle(item: dict) -> None:
                item["completed"] = completed
                item["completed_at"] = now_iso() if completed else None

            self._edit_item(schedule_id, date, body["item_id"], user, toggle)
            return self.get(schedule_id).schedule_data

        if user.role not in roles.SCHEDULE_PLANNERS:
            raise PermissionDeniedError("Forbidden: insufficient permissions")
        return self.merge(schedule_id, body)

    def delete(self, schedule_id: str) -> dict:
        schedule = self.get(schedule_id)
        document = schedule.schedule_data
        self.db.delete(schedule)
        self.db.commit()
        logger.info(f"Deleted production schedule {schedule_id}")
        return document

    # ------------------------------------------------------------------
    # Item workflow
    # ------------------------------------------------------------------

    def _edit_item(
        self,
        schedule_id: str,
        date: str,
        item_id: str,
        user: User,
        change: Callable[[dict], Any],
    ) -> Any:
        """Locate one item, enforce the station rule, apply ``change`` and commit."""
        schedule = self.get(schedule_id)

        def apply(document: dict) -> Any:
            item = find_item(find_day(document, date), item_id)
            self._check_station(user, item)
            return change(item)

        result = edit_document(schedule, "schedule_data", apply)
        self.db.commit()
        return result

    @staticmethod
    def _check_station(user: User, item: dict) -> None:
        """Station staff may only touch items assigned to their own station."""
        if user.role != roles.STATION_STAFF or not user.station_assignment:
            return
        if not same_name(item.get("assigned_to"), user.station_assignment):
            raise PermissionDeniedError("Forbidden: Item not assigned to your station")

    def assign(
        self,
        schedule_id: str,
        date: str,
        item_ids: list[str],
        station: str,
        user: User,
        assigned_by: Optional[str] = None,
    ) -> dict:
        """Assign every listed item on ``date`` to ``station``. Unknown ids are skipped."""
        if not date or not item_ids or not station:
            raise ValidationError("Missing required fields")
        schedule = self.get(schedule_id)
        wanted = set(item_ids)
        actor = assigned_by or user.full_name

        def apply(document: dict) -> int:
            timestamp = now_iso()
            assigned = 0
            for item in find_day(document, date)["items"]:
                if item.get("item_id") in wanted:
                    item["assigned_to"] = station
                    item["assigned_by"] = actor
                    item["assigned_at"] = timestamp
                    assigned += 1
            return assigned

        assigned = edit_document(schedule, "schedule_data", apply)
        self.db.commit()
        logger.info(f"Assigned {assigned} item(s) on {date} of {schedule_id} to {station}")
        return {"success": True, "assigned": assigned, "station": station}

    def reassign(
        self,
        schedule_id: str,
        item_id: str,
        date: str,
        new_station: Optional[str],
        user: User,
        reassigned_by: Optional[str] = None,
    ) -> dict:
        """Move an item to another station, or unassign it when ``new_station`` is None."""
        if not date:
            raise ValidationError("Missing date field")
        actor = reassigned_by or user.full_name

        def change(item: dict) -> dict:
            if new_station is not None:
                item["assigned_to"] = new_station
                item["assigned_by"] = actor
                item["assigned_at"] = now_iso()
            else:
                item["assigned_to"] = None
                item["assigned_by"] = None
                item["assigned_at"] = None
            return dict(item)

        item = self._edit_item(schedule_id, date, item_id, user, change)
        return {"success": True, "item": item}

    def complete(
        self,
        schedule_id: str,
        item_id: str,
        date: str,
        user: User,
        completed: bool = True,
        actual_quantity: Optional[float] = None,
        actual_unit: Optional[str] = None,
        completed_at: Optional[str] = None,
    ) -> dict:
        if not date:
            raise ValidationError("Missing date field")

        def change(item: dict) -> dict:
            item["completed"] = completed
            if actual_quantity is not None:
                item["actual_quantity"] = actual_quantity
            item["actual_unit"] = actual_unit or item.get("actual_unit") or item.get("unit")
            item["completed_at"] = (completed_at or now_iso()) if completed else None
            return dict(item)

        item = self._edit_item(schedule_id, date, item_id, user, change)
        return {"success": True, "item": item}

    def adjust_quantity(
        self,
        schedule_id: str,
        item_id: str,
        date: str,
        adjusted_quantity: Optional[float],
        reason: Optional[str],
        user: User,
        inventory_offset: Optional[float] = None,
    ) -> dict:
        """
        Change the planned quantity, keeping the first planned quantity on record.

        ``inventory_offset`` records how much of the change is covered by
        existing stock rather than new production.
        """
        if not date or adjusted_quantity is None or not reason:
            raise ValidationError("Missing required fields")
        if adjusted_quantity < 0:
            raise ValidationError("Adjusted quantity cannot be negative")

        def change(item: dict) -> dict:
            if item.get("original_quantity") is None:
                item["original_quantity"] = item.get("quantity")
            item["adjusted_quantity"] = adjusted_quantity
            item["quantity"] = adjusted_quantity
            item["adjustment_reason"] = reason
            item["inventory_offset"] = inventory_offset or 0
            item["adjusted_by"] = str(user.id)
            item["adjusted_at"] = now_iso()
            return dict(item)

        schedule = self.get(schedule_id)

        def apply(document: dict) -> dict:
            day = find_day(document, date, missing_message="Date not found in schedule")
            return change(find_item(day, item_id))

        item = edit_document(schedule, "schedule_data", apply)
        self.db.commit()
        return {"success": True, "item": item}

    def reschedule(
        self,
        schedule_id: str,
        item_id: str,
        current_date: str,
        new_date: str,
        reason: str,
        user: User,
    ) -> dict:
        """Move an item to another day of the same schedule, with audit fields."""
        if not current_date or not new_date or not reason:
            raise ValidationError("Missing required fields")
        schedule = self.get(schedule_id)

        def apply(document: dict) -> dict:
            current_day = find_day(document, current_date, "Current date not found in schedule")
            item = find_item(current_day, item_id)
            target_day = find_day(document, new_date, "Target date not found in schedule")

            item["original_scheduled_date"] = item.get("original_scheduled_date") or current_date
            item["rescheduled_date"] = new_date
            item["reschedule_reason"] = reason
            item["rescheduled_by"] = str(user.id)
            item["rescheduled_at"] = now_iso()

            current_day["items"] = [i for i in current_day["items"] if i is not item]
            target_day["items"].append(item)
            return dict(item)

        item = edit_document(schedule, "schedule_data", apply)
        self.db.commit()
        logger.info(f"Rescheduled {item_id} in {schedule_id} from {current_date} to {new_date}")
        return {"success": True, "item": item, "moved_from": current_date, "moved_to": new_date}

    def set_sub_recipe_progress(
        self,
        schedule_id: str,
        item_id: str,
        date: str,
        sub_recipe_id: str,
        user: User,
        completed: bool = True,
        completed_at: Optional[str] = None,
    ) -> dict:
        if not date or not sub_recipe_id:
            raise ValidationError("Missing required fields")

        def change(item: dict) -> dict:
            progress = item.get("sub_recipe_progress") or {}
            progress[sub_recipe_id] = {
                "completed": completed,
                "completed_at": (completed_at or now_iso()) if completed else None,
            }
            item["sub_recipe_progress"] = progress
            return dict(progress)

        progress = self._edit_item(schedule_id, date, item_id, user, change)
        return {"success": True, "sub_recipe_progress": progress}

    def get_sub_recipe_progress(self, schedule_id: str, item_id: str, date: str) -> dict:
        if not date:
            raise ValidationError("Missing date parameter")
        document = self.get(schedule_id).schedule_data
        item = find_item(find_day(document, date, "Day not found"), item_id)
        return {"item_id": item_id, "sub_recipe_progress": item.get("sub_recipe_progress") or {}}

    # ------------------------------------------------------------------
    # Station task board
    # ------------------------------------------------------------------

    def station_tasks(self, station: str, date: str) -> StationTasks:
        """
        Items assigned to ``station`` on ``date``, in progress first.

        Uses the first schedule (newest week first) that has a day matching
        ``date``. Station names are compared normalized, so "Hot_Line" and
        "hot line" are the same station.
        """
        if not date:
            raise ValidationError("Missing date parameter")
        target = normalize_name(station)

        for document in self.list_schedules():
            day = next((d for d in document.get("days") or [] if d.get("date") == date), None)
            if day is None:
                continue

            items = [
                item for item in day.get("items") or []
                if target and normalize_name(item.get("assigned_to")) == target
            ]
            items.sort(key=task_state)
            tasks = []
            for item in items:
                task = {field: item.get(field) for field in TASK_FIELDS}
                task["station"] = item.get("assigned_to")
                task["completed"] = bool(item.get("completed"))
                tasks.append(task)
            return StationTasks(station=station, date=date, schedule_id=document.get("schedule_id"), tasks=tasks)

        return StationTasks(station=station, date=date, schedule_id=None, tasks=[])
