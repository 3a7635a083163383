from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .time_utils import parse_iso_date, parse_iso_datetime

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
MIN_PASSWORD_LENGTH = 6
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
# Day-window query args are clamped here so date arithmetic stays in range
MAX_DAYS_WINDOW = 36500
MAX_PAGE_NUMBER = 1_000_000


class ValidationError(ValueError):
    """400-level input problem. errors holds per-field messages."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate email)."""


class NotFoundError(LookupError):
    """404-level: row missing or owned by another shop."""


class _FieldErrors:
    """Collects field-level messages so a response can list them all at once."""

    def __init__(self):
        self.items: list[dict] = []

    def add(self, field_name: str, message: str) -> None:
        self.items.append({"field": field_name, "message": message})

    def raise_if_any(self, message: str = "Validation failed") -> None:
        if self.items:
            raise ValidationError(message, self.items)


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - fields: payload key -> model column key (what clients are allowed to set)
    - required_on_create: payload keys required for POST
    """
    fields: dict[str, str]
    required_on_create: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(name: str, col, value: Any):
    coltype = col.type

    # Integers - strict validation to reject floats and booleans
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
            return int(value.strip())
        raise ValidationError(f"{name} must be an integer")

    # Numeric: accept finite numbers and numeric strings, never booleans
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{name} must be a number")
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                raise ValidationError(f"{name} must be a number")
        if not isinstance(value, (int, float)) or (isinstance(value, float) and not math.isfinite(value)):
            raise ValidationError(f"{name} must be a number")
        if coltype.precision is not None:
            limit = 10 ** (coltype.precision - (coltype.scale or 0))
            if abs(value) >= limit:
                raise ValidationError(f"{name} must be less than {limit}")
        return value

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValidationError(f"{name} must be a boolean")

    # DateTime is checked before Date; the two are unrelated types in SQLAlchemy
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        try:
            dt = parse_iso_datetime(str(value))
        except ValueError:
            dt = None
        if dt is None:
            raise ValidationError(f"{name} must be an ISO-8601 datetime")
        return dt

    if isinstance(coltype, Date):
        if isinstance(value, date) and not isinstance(value, datetime):
            return value
        try:
            d = parse_iso_date(str(value))
        except ValueError:
            d = None
        if d is None:
            raise ValidationError(f"{name} must be a valid ISO-8601 date")
        return d

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{name} must be a string")
        return str(value).strip()

    # JSON and anything else: shape is checked by the enforce_rules_* functions
    if isinstance(coltype, JSON):
        return value

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - the policy allowlist (unknown keys are rejected)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors = _FieldErrors()

    if not partial:
        for key in sorted(policy.required_on_create):
            if payload.get(key) is None:
                errors.add(key, f"{key} is required")

    cols = _columns_by_key(model)
    patch: dict = {}

    for key, raw in payload.items():
        column_key = policy.fields.get(key)
        if column_key is None:
            errors.add(key, f"Field not allowed: {key}")
            continue
        col = cols[column_key]

        if raw is None:
            if col.nullable:
                patch[column_key] = None
            elif partial or key not in policy.required_on_create:
                # create already reported "is required" for this key
                errors.add(key, f"{key} cannot be null")
            continue

        try:
            val = _coerce_value(key, col, raw)
        except ValidationError as e:
            errors.add(key, str(e))
            continue

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable and val == "":
            errors.add(key, f"{key} cannot be blank")
            continue

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                errors.add(key, f"{key} exceeds max length {col.type.length}")
                continue

        patch[column_key] = val

    errors.raise_if_any()
    return patch


def _check_lead_times(key: str, value, errors: _FieldErrors) -> list[int] | None:
    if not isinstance(value, list):
        errors.add(key, f"{key} must be an array")
        return None
    cleaned = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int) or item < 0:
            errors.add(key, f"{key} must contain non-negative integers")
            return None
        if item > MAX_DAYS_WINDOW:
            errors.add(key, f"{key} values must be at most {MAX_DAYS_WINDOW}")
            return None
        cleaned.append(item)
    return cleaned


def enforce_rules_product(
    patch: dict,
    *,
    existing_expiry: date | None = None,
    existing_manufacture: date | None = None,
) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    from .models.inventory import PRODUCT_STATUSES

    errors = _FieldErrors()

    if "status" in patch and patch["status"] not in PRODUCT_STATUSES:
        errors.add("status", f"status must be one of: {', '.join(PRODUCT_STATUSES)}")

    if patch.get("quantity") is not None and patch["quantity"] < 0:
        errors.add("quantity", "quantity must be >= 0")

    expiry = patch.get("expiry_date", existing_expiry)
    manufactured = patch.get("manufacture_date", existing_manufacture)
    if manufactured is not None and expiry is not None and manufactured > expiry:
        errors.add("manufactureDate", "manufactureDate cannot be after expiryDate")

    if patch.get("notification_days") is not None:
        cleaned = _check_lead_times("notificationDays", patch["notification_days"], errors)
        if cleaned is not None:
            patch["notification_days"] = cleaned

    if "custom_fields" in patch and patch["custom_fields"] is not None:
        if not isinstance(patch["custom_fields"], dict):
            errors.add("customFields", "customFields must be an object")

    errors.raise_if_any()


def enforce_rules_shop_settings(patch: dict) -> None:
    errors = _FieldErrors()

    if "default_notification_days" in patch:
        value = patch["default_notification_days"]
        if value is None:
            errors.add("defaultNotificationDays", "defaultNotificationDays cannot be null")
        else:
            cleaned = _check_lead_times("defaultNotificationDays", value, errors)
            if cleaned is not None:
                # Sweep order is furthest-out first; duplicates would only collide
                patch["default_notification_days"] = sorted(set(cleaned), reverse=True)

    if patch.get("notification_time") is not None:
        if not TIME_OF_DAY_RE.match(patch["notification_time"]):
            errors.add("notificationTime", "Invalid time format (HH:mm)")

    if patch.get("email"):
        if not EMAIL_RE.match(patch["email"]):
            errors.add("email", "email must be a valid email address")

    errors.raise_if_any()


def enforce_rules_custom_field(patch: dict, *, existing=None) -> None:
    """
    Field definitions: type must be known, select fields need options and a
    default value must be valid for the (possibly updated) type.
    """
    from .models.inventory import CUSTOM_FIELD_TYPES

    errors = _FieldErrors()

    field_type = patch.get("field_type", existing.field_type if existing else None)
    options = patch.get("select_options", existing.select_options if existing else None)

    if "field_type" in patch and field_type not in CUSTOM_FIELD_TYPES:
        errors.add("fieldType", f"fieldType must be one of: {', '.join(CUSTOM_FIELD_TYPES)}")
        errors.raise_if_any()

    if "select_options" in patch and options is not None:
        if not isinstance(options, list) or not all(isinstance(o, str) and o.strip() for o in options):
            errors.add("selectOptions", "selectOptions must be an array of non-empty strings")
            errors.raise_if_any()
        patch["select_options"] = [o.strip() for o in options]
        options = patch["select_options"]

    if field_type == "select" and not options:
        errors.add("selectOptions", "selectOptions is required for select fields")

    default = patch.get("default_value", existing.default_value if existing else None)
    if default is not None and not errors.items:
        try:
            coerced = coerce_custom_value(field_type, options, default)
        except ValidationError as e:
            errors.add("defaultValue", str(e))
        else:
            if "default_value" in patch:
                patch["default_value"] = custom_value_to_text(coerced)

    errors.raise_if_any()


def coerce_custom_value(field_type: str, options: list[str] | None, value: Any):
    """Check a custom field value against its type; return the normalized value."""
    if field_type == "text":
        if isinstance(value, (dict, list, bool)):
            raise ValidationError("value must be text")
        return str(value)

    if field_type == "number":
        if isinstance(value, bool):
            raise ValidationError("value must be a number")
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            number = value
        else:
            try:
                number = float(str(value).strip())
            except ValueError:
                raise ValidationError("value must be a number")
        # NaN and infinities cannot be stored or serialized as JSON
        if not math.isfinite(number):
            raise ValidationError("value must be a finite number")
        return int(number) if number.is_integer() else number

    if field_type == "date":
        try:
            parsed = parse_iso_date(str(value))
        except ValueError:
            parsed = None
        if parsed is None:
            raise ValidationError("value must be an ISO-8601 date")
        return parsed.isoformat()

    if field_type == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValidationError("value must be a boolean")

    if field_type == "select":
        if not isinstance(value, str) or value not in (options or []):
            raise ValidationError(f"value must be one of: {', '.join(options or [])}")
        return value

    raise ValidationError(f"Unknown field type: {field_type}")


def custom_value_to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def coerce_custom_field_values(values: dict, definitions: list, *, creating: bool) -> dict:
    """
    Validate product custom-field values against the shop's definitions.

    Keys must name an existing definition. On create, defaults fill missing
    values and required fields must end up present. A null value removes the
    key unless the field is required.
    """
    if not isinstance(values, dict):
        raise ValidationError("customFields must be an object")

    by_name = {d.name: d for d in definitions}
    errors = _FieldErrors()
    cleaned: dict = {}

    for name, value in values.items():
        definition = by_name.get(name)
        if definition is None:
            errors.add(f"customFields.{name}", f"Unknown custom field: {name}")
            continue
        if value is None:
            if definition.required:
                errors.add(f"customFields.{name}", f"{name} is required")
            else:
                cleaned[name] = None
            continue
        try:
            cleaned[name] = coerce_custom_value(definition.field_type, definition.select_options, value)
        except ValidationError as e:
            errors.add(f"customFields.{name}", f"{name}: {e}")

    if creating:
        for definition in definitions:
            if definition.name in cleaned:
                continue
            if definition.default_value is not None:
                cleaned[definition.name] = coerce_custom_value(
                    definition.field_type, definition.select_options, definition.default_value
                )
            elif definition.required:
                errors.add(f"customFields.{definition.name}", f"{definition.name} is required")
        cleaned = {name: value for name, value in cleaned.items() if value is not None}

    errors.raise_if_any()
    return cleaned


def validate_signup(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors = _FieldErrors()
    email = str(payload.get("email") or "").strip().lower()
    password = payload.get("password")
    name = str(payload.get("name") or "").strip()

    if not EMAIL_RE.match(email):
        errors.add("email", "Valid email is required")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        errors.add("password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not name:
        errors.add("name", "Name is required")
    errors.raise_if_any()

    def _optional(key: str) -> str | None:
        value = payload.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    return {
        "email": email,
        "password": password,
        "name": name,
        "phone": _optional("phone"),
        "shop_name": _optional("shopName"),
        "shop_description": _optional("shopDescription"),
    }


def validate_login(payload: dict) -> tuple[str, str]:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors = _FieldErrors()
    email = str(payload.get("email") or "").strip().lower()
    password = payload.get("password")
    if not EMAIL_RE.match(email):
        errors.add("email", "Valid email is required")
    if not isinstance(password, str) or not password:
        errors.add("password", "Password is required")
    errors.raise_if_any()
    return email, password


def parse_int_arg(args, name: str, default: int | None = None, *, minimum: int | None = None,
                  maximum: int | None = None) -> int | None:
    raw = args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", [{"field": name, "message": f"{name} must be an integer"}])
    if minimum is not None and value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}", [{"field": name, "message": f"{name} must be >= {minimum}"}])
    if maximum is not None and value > maximum:
        value = maximum
    return value


def parse_date_arg(args, name: str) -> date | None:
    raw = args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date", [{"field": name, "message": f"{name} must be an ISO-8601 date"}])


def parse_bool_arg(args, name: str, default: bool = False) -> bool:
    raw = args.get(name)
    if raw is None or raw == "":
        return default
    return str(raw).strip().lower() in ("1", "true", "yes")
