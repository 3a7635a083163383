# Overview: Service-layer operations for products; encapsulates business logic and database work.

"""
Products Service with Shop Tenancy

MULTI-TENANT: Every function takes shop_id explicitly and filters on it.
- reads and writes on another shop's product raise TenantAccessError (404)
- create always stamps the caller's shop_id, never one from the payload

daysToExpiry is computed against the server's calendar date on every read.
"""
from __future__ import annotations

import math
from datetime import date, timedelta

from sqlalchemy import or_

from ..extensions import db
from ..models import CustomField, Product
from ..validation import (
    DEFAULT_PAGE_SIZE,
    MAX_DAYS_WINDOW,
    MAX_PAGE_SIZE,
    ValidationError,
    coerce_custom_field_values,
    enforce_rules_product,
)
from .tenant_service import get_in_shop, scoped_query
from ..time_utils import today as server_today

DEFAULT_EXPIRING_SOON_DAYS = 7

SORTABLE_COLUMNS = {
    "expiryDate": Product.expiry_date,
    "name": Product.name,
    "createdAt": Product.created_at,
    "updatedAt": Product.updated_at,
    "quantity": Product.quantity,
    "status": Product.status,
}

PRODUCT_MUTABLE_FIELDS = {
    "barcode", "name", "description", "quantity", "unit", "batch_number",
    "manufacture_date", "expiry_date", "location", "notes", "image_url",
    "status", "custom_fields", "notification_days",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _custom_field_definitions(shop_id: int) -> list[CustomField]:
    return scoped_query(CustomField, shop_id).order_by(CustomField.sort_order.asc(), CustomField.id.asc()).all()


def list_products(
    shop_id: int,
    *,
    search: str | None = None,
    status: str | None = None,
    expiry_from: date | None = None,
    expiry_to: date | None = None,
    days_to_expiry: int | None = None,
    sort_by: str = "expiryDate",
    order: str = "ASC",
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    today: date | None = None,
) -> dict:
    """
    Filtered, sorted, paginated product listing for one shop.

    days_to_expiry N restricts to today..today+N inclusive and replaces any
    expiry_from/expiry_to range. Unknown sort_by values are rejected rather
    than passed to the database.

    Returns:
        {"products": [...], "pagination": {total, page, limit, totalPages}}
    """
    today = today or server_today()

    if sort_by not in SORTABLE_COLUMNS:
        raise ValidationError(
            "Invalid sortBy",
            [{"field": "sortBy", "message": f"sortBy must be one of: {', '.join(SORTABLE_COLUMNS)}"}],
        )
    direction = (order or "ASC").upper()
    if direction not in ("ASC", "DESC"):
        raise ValidationError("Invalid order", [{"field": "order", "message": "order must be ASC or DESC"}])

    query = scoped_query(Product, shop_id)

    if status:
        query = query.filter(Product.status == status)

    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Product.name.ilike(pattern),
            Product.barcode.ilike(pattern),
            Product.description.ilike(pattern),
        ))

    if days_to_expiry is not None:
        days_to_expiry = min(days_to_expiry, MAX_DAYS_WINDOW)
        query = query.filter(
            Product.expiry_date >= today,
            Product.expiry_date <= today + timedelta(days=days_to_expiry),
        )
    else:
        if expiry_from is not None:
            query = query.filter(Product.expiry_date >= expiry_from)
        if expiry_to is not None:
            query = query.filter(Product.expiry_date <= expiry_to)

    column = SORTABLE_COLUMNS[sort_by]
    ordering = column.desc() if direction == "DESC" else column.asc()
    query = query.order_by(ordering, Product.id.asc())

    limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)
    page = max(page or 1, 1)

    total = query.count()
    products = query.offset((page - 1) * limit).limit(limit).all()

    return {
        "products": [p.to_dict(today) for p in products],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
        },
    }


def list_expiring_soon(shop_id: int, days: int = DEFAULT_EXPIRING_SOON_DAYS, today: date | None = None) -> dict:
    """Active products expiring between today and today+days, soonest first."""
    today = today or server_today()
    days = min(days, MAX_DAYS_WINDOW)
    products = (
        scoped_query(Product, shop_id)
        .filter(
            Product.status == "active",
            Product.expiry_date >= today,
            Product.expiry_date <= today + timedelta(days=days),
        )
        .order_by(Product.expiry_date.asc(), Product.id.asc())
        .all()
    )
    return {"products": [p.to_dict(today) for p in products], "count": len(products)}


def list_expired(shop_id: int, today: date | None = None) -> dict:
    """Products whose expiry date has passed, any status, most recent first."""
    today = today or server_today()
    products = (
        scoped_query(Product, shop_id)
        .filter(Product.expiry_date < today)
        .order_by(Product.expiry_date.desc(), Product.id.desc())
        .all()
    )
    return {"products": [p.to_dict(today) for p in products], "count": len(products)}


def get_dashboard_stats(shop_id: int, today: date | None = None) -> dict:
    today = today or server_today()
    base = scoped_query(Product, shop_id)

    def _active_within(days: int) -> int:
        return base.filter(
            Product.status == "active",
            Product.expiry_date >= today,
            Product.expiry_date <= today + timedelta(days=days),
        ).count()

    return {
        "totalActive": base.filter(Product.status == "active").count(),
        "expired": base.filter(Product.expiry_date < today).count(),
        "expiring7Days": _active_within(7),
        "expiring3Days": _active_within(3),
    }


def get_product(shop_id: int, product_id: int) -> Product:
    return get_in_shop(Product, product_id, shop_id, label="Product")


def create_product(shop_id: int, patch: dict) -> Product:
    """
    Create a product from a validated patch dict.

    customFields is checked against the shop's definitions: defaults are
    filled in and required fields must be present.
    """
    enforce_rules_product(patch)
    patch["custom_fields"] = coerce_custom_field_values(
        patch.get("custom_fields") or {},
        _custom_field_definitions(shop_id),
        creating=True,
    )

    product = Product(shop_id=shop_id)
    apply_product_patch(product, patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(shop_id: int, product_id: int, patch: dict) -> Product:
    """
    Apply a validated partial patch.

    customFields merges into the stored values; a null value for an optional
    field removes the key.
    """
    product = get_product(shop_id, product_id)
    enforce_rules_product(
        patch,
        existing_expiry=product.expiry_date,
        existing_manufacture=product.manufacture_date,
    )

    if "custom_fields" in patch:
        changes = coerce_custom_field_values(
            patch["custom_fields"] or {},
            _custom_field_definitions(shop_id),
            creating=False,
        )
        merged = dict(product.custom_fields or {})
        for name, value in changes.items():
            if value is None:
                merged.pop(name, None)
            else:
                merged[name] = value
        # New dict so the JSON column registers the change
        patch["custom_fields"] = merged

    apply_product_patch(product, patch)
    db.session.commit()
    return product


def delete_product(shop_id: int, product_id: int) -> None:
    """Delete a product; its notification logs go with it."""
    product = get_product(shop_id, product_id)
    db.session.delete(product)
    db.session.commit()
