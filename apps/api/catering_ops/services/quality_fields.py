"""
Admin-configurable fields of the quality-check form.

Core fields map onto QualityCheck columns and may be disabled but never
deleted. Custom fields are added by administrators and their answers are
stored in ``QualityCheck.custom_fields``.
"""
import logging
import re
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from catering_ops.models.quality import FIELD_TYPES, QualityFieldConfig
from catering_ops.models.user import User

logger = logging.getLogger(__name__)

FIELD_KEY_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
UPDATABLE = (
    "label", "is_required", "is_active", "sort_order", "options",
    "min_value", "max_value", "placeholder", "notes_enabled", "icon",
)

CORE_FIELDS = [
    dict(field_key="taste_score", label="Taste", field_type="rating", is_required=True,
         min_value=1, max_value=5, icon="utensils"),
    dict(field_key="appearance_score", label="Appearance", field_type="rating", is_required=True,
         min_value=1, max_value=5, icon="eye"),
    dict(field_key="portion_qty_gm", label="Portion (g)", field_type="number", placeholder="e.g. 250",
         icon="scale"),
    dict(field_key="temp_celsius", label="Temperature (°C)", field_type="number", placeholder="e.g. 65",
         icon="thermometer"),
]


def _number(value) -> Optional[float]:
    return float(value) if value is not None else None


def field_to_dict(field: QualityFieldConfig) -> dict:
    return {
        "id": field.id,
        "field_key": field.field_key,
        "label": field.label,
        "field_type": field.field_type,
        "is_required": field.is_required,
        "is_active": field.is_active,
        "sort_order": field.sort_order,
        "options": field.options,
        "min_value": _number(field.min_value),
        "max_value": _number(field.max_value),
        "placeholder": field.placeholder,
        "notes_enabled": field.notes_enabled,
        "section": field.section,
        "icon": field.icon,
        "created_at": field.created_at.isoformat() if field.created_at else None,
        "updated_at": field.updated_at.isoformat() if field.updated_at else None,
    }


def core_field_rows() -> list[QualityFieldConfig]:
    """The default core fields, in form order."""
    return [
        QualityFieldConfig(section="core", sort_order=index, **values)
        for index, values in enumerate(CORE_FIELDS, start=1)
    ]


def _require_admin(user: User, action: str = "modify") -> None:
    if not user.has_role(roles.ADMIN):
        raise PermissionDeniedError(f"Only administrators can {action} form fields")


class QualityFieldService:

    def __init__(self, db: Session):
        self.db = db

    def _get(self, field_id: int) -> QualityFieldConfig:
        field = self.db.get(QualityFieldConfig, field_id)
        if field is None:
            raise NotFoundError("Field not found")
        return field

    def list_fields(self, active_only: bool = True) -> list[QualityFieldConfig]:
        query = self.db.query(QualityFieldConfig)
        if active_only:
            query = query.filter(QualityFieldConfig.is_active.is_(True))
        return query.order_by(QualityFieldConfig.sort_order.asc(), QualityFieldConfig.id.asc()).all()

    def get(self, field_id: int) -> dict:
        return field_to_dict(self._get(field_id))

    def create(self, data: dict, user: User) -> dict:
        _require_admin(user)
        if not data.get("field_key") or not data.get("label") or not data.get("field_type"):
            raise ValidationError("Missing required fields: field_key, label, field_type")
        if not FIELD_KEY_PATTERN.match(data["field_key"]):
            raise ValidationError(
                "Field key must start with a lowercase letter and contain only lowercase letters, "
                "numbers, and underscores"
            )
        if data["field_type"] not in FIELD_TYPES:
            raise ValidationError(f"Invalid field type. Must be one of: {', '.join(FIELD_TYPES)}")
        if self.db.query(QualityFieldConfig).filter(QualityFieldConfig.field_key == data["field_key"]).count():
            raise ValidationError("A field with this key already exists")

        min_value, max_value = data.get("min_value"), data.get("max_value")
        if data["field_type"] == "rating":
            min_value = 1 if min_value is None else min_value
            max_value = 5 if max_value is None else max_value

        sort_order = data.get("sort_order")
        if sort_order is None:
            sort_order = (self.db.query(func.max(QualityFieldConfig.sort_order)).scalar() or 0) + 1

        field = QualityFieldConfig(
            field_key=data["field_key"],
            label=data["label"],
            field_type=data["field_type"],
            is_required=bool(data.get("is_required") or False),
            is_active=data.get("is_active", True) is not False,
            sort_order=sort_order,
            options=data.get("options"),
            min_value=min_value,
            max_value=max_value,
            placeholder=data.get("placeholder"),
            notes_enabled=bool(data.get("notes_enabled") or False),
            section="custom",
            icon=data.get("icon"),
        )
        self.db.add(field)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError("A field with this key already exists")
        logger.info(f"Quality form field {field.field_key} created by user {user.id}")
        return {"success": True, "id": field.id, "message": "Field configuration created successfully"}

    def update(self, field_id: int, data: dict, user: User) -> dict:
        """Apply the keys present in ``data``; ``field_key``, type and section are fixed."""
        _require_admin(user)
        field = self._get(field_id)
        changes = {key: data[key] for key in UPDATABLE if key in data}
        if not changes:
            raise ValidationError("No fields to update")
        for key, value in changes.items():
            setattr(field, key, value)
        self.db.commit()
        return {"success": True, "message": "Field configuration updated successfully"}

    def delete(self, field_id: int, user: User) -> dict:
        _require_admin(user, action="delete")
        field = self._get(field_id)
        if field.section == "core":
            raise ValidationError("Cannot delete core fields. You can disable them instead.")
        label = field.label
        self.db.delete(field)
        self.db.commit()
        return {"success": True, "message": f'Field "{label}" deleted successfully'}

    def reorder(self, order: list, user: User) -> dict:
        """Set ``sort_order`` from ``[{"id": ..., "sort_order": ...}]``, skipping malformed entries."""
        _require_admin(user)
        if not isinstance(order, list):
            raise ValidationError("Invalid request: fields array required")

        fields = {field.id: field for field in self.db.query(QualityFieldConfig).all()}
        updated = 0
        for entry in order:
            if not isinstance(entry, dict):
                continue
            field_id, sort_order = entry.get("id"), entry.get("sort_order")
            if not isinstance(field_id, int) or not isinstance(sort_order, int) or field_id not in fields:
                continue
            fields[field_id].sort_order = sort_order
            updated += 1
        self.db.commit()
        return {"success": True, "message": f"Updated order for {updated} fields"}

    def validate_answers(self, answers: Optional[dict]) -> dict:
        """
        Check submitted custom-field answers against the active custom fields.

        Required fields must be answered, ratings and numbers must fall within
        the configured bounds and select answers must be one of the options.
        Keys that match no active custom field are dropped.
        """
        answers = answers or {}
        if not isinstance(answers, dict):
            raise ValidationError("custom_fields must be an object")

        accepted = {}
        custom = [f for f in self.list_fields(active_only=True) if f.section == "custom"]
        for field in custom:
            value = answers.get(field.field_key)
            if value in (None, ""):
                if field.is_required:
                    raise ValidationError(f"{field.label} is required")
                continue

            if field.field_type in ("rating", "number"):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ValidationError(f"{field.label} must be a number")
                low, high = _number(field.min_value), _number(field.max_value)
                if low is not None and value < low:
                    raise ValidationError(f"{field.label} must be at least {low:g}")
                if high is not None and value > high:
                    raise ValidationError(f"{field.label} must be at most {high:g}")
            elif field.field_type == "checkbox":
                if not isinstance(value, bool):
                    raise ValidationError(f"{field.label} must be true or false")
            elif field.field_type == "select":
                options = (field.options or {}).get("options") or []
                if value not in options:
                    raise ValidationError(f"{field.label} must be one of: {', '.join(options)}")
            elif not isinstance(value, str):
                raise ValidationError(f"{field.label} must be text")
            accepted[field.field_key] = value
        return accepted
