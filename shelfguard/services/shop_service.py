# Overview: Service-layer operations for shop settings and custom field definitions.

"""
Shop Settings Service

MULTI-TENANT: shop_id always comes from the authenticated caller. Custom field
names are unique per shop; renaming a field does not rewrite values already
stored on products.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CustomField, Shop
from ..validation import ConflictError, enforce_rules_custom_field, enforce_rules_shop_settings
from .tenant_service import TenantAccessError, get_in_shop, scoped_query

SHOP_MUTABLE_FIELDS = {
    "name", "description", "address", "phone", "email",
    "default_notification_days", "notification_time", "notifications_enabled",
}

CUSTOM_FIELD_MUTABLE_FIELDS = {
    "name", "field_type", "required", "select_options", "default_value", "sort_order",
}


def get_shop(shop_id: int) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if shop is None:
        raise TenantAccessError("Shop not found")
    return shop


def update_shop_settings(shop_id: int, patch: dict) -> Shop:
    shop = get_shop(shop_id)
    enforce_rules_shop_settings(patch)

    for k, v in patch.items():
        if k in SHOP_MUTABLE_FIELDS:
            setattr(shop, k, v)

    db.session.commit()
    return shop


def list_custom_fields(shop_id: int) -> list[CustomField]:
    return (
        scoped_query(CustomField, shop_id)
        .order_by(CustomField.sort_order.asc(), CustomField.id.asc())
        .all()
    )


def _ensure_name_available(shop_id: int, name: str, exclude_id: int | None = None) -> None:
    query = scoped_query(CustomField, shop_id).filter(CustomField.name == name)
    if exclude_id is not None:
        query = query.filter(CustomField.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Custom field '{name}' already exists")


def _commit_or_conflict(name: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Custom field '{name}' already exists")


def create_custom_field(shop_id: int, patch: dict) -> CustomField:
    enforce_rules_custom_field(patch)
    _ensure_name_available(shop_id, patch["name"])

    field = CustomField(shop_id=shop_id)
    for k, v in patch.items():
        if k in CUSTOM_FIELD_MUTABLE_FIELDS:
            setattr(field, k, v)
    db.session.add(field)
    _commit_or_conflict(patch["name"])
    return field


def update_custom_field(shop_id: int, field_id: int, patch: dict) -> CustomField:
    field = get_in_shop(CustomField, field_id, shop_id, label="Custom field")
    enforce_rules_custom_field(patch, existing=field)
    if "name" in patch:
        _ensure_name_available(shop_id, patch["name"], exclude_id=field.id)

    for k, v in patch.items():
        if k in CUSTOM_FIELD_MUTABLE_FIELDS:
            setattr(field, k, v)
    _commit_or_conflict(field.name)
    return field


def delete_custom_field(shop_id: int, field_id: int) -> None:
    field = get_in_shop(CustomField, field_id, shop_id, label="Custom field")
    db.session.delete(field)
    db.session.commit()
