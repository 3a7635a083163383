# Overview: Tenant scoping helpers shared by the shop-owned services.

"""
Multi-Tenant Service: Shop Scoping Helpers

SECURITY INVARIANTS:
1. Every shop-owned row (Product, CustomField, NotificationLog) carries shop_id
2. Services receive shop_id as an explicit argument; nothing reads g here
3. A row owned by another shop is reported exactly like a missing row

USAGE:
    from shelfguard.services.tenant_service import scoped_query, get_in_shop

    products = scoped_query(Product, shop_id).filter_by(status="active").all()
    product = get_in_shop(Product, product_id, shop_id, label="Product")
"""

import logging

from ..extensions import db
from ..validation import NotFoundError

logger = logging.getLogger(__name__)


class TenantAccessError(NotFoundError):
    """Raised when a row is missing or belongs to another shop."""


def scoped_query(model, shop_id: int):
    """Base query filtered to one shop. model must have a shop_id column."""
    if shop_id is None:
        raise TenantAccessError("Tenant context not established")
    return db.session.query(model).filter(model.shop_id == shop_id)


def get_in_shop(model, row_id: int, shop_id: int, *, label: str = "Resource"):
    """
    Load one row by id, only if it belongs to shop_id.

    Raises:
        TenantAccessError: row missing or owned by another shop (same message)
    """
    row = db.session.get(model, row_id)
    if row is None:
        raise TenantAccessError(f"{label} not found")

    if row.shop_id != shop_id:
        # Don't reveal it exists in another shop
        logger.warning(
            "Cross-shop access denied: %s %s belongs to shop %s, requested by shop %s",
            model.__name__, row_id, row.shop_id, shop_id,
        )
        raise TenantAccessError(f"{label} not found")

    return row
