# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes with shop tenancy.

MULTI-TENANT: All product operations are scoped to the caller's shop.
The shop_id is taken from g.shop_id (set by @require_auth), never from the
request body or query string.

SECURITY: All routes require authentication and shop membership.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_shop
from ..models import Product
from ..responses import fail, ok
from ..services import products_service
from ..services.tenant_service import TenantAccessError
from ..validation import (
    DEFAULT_PAGE_SIZE,
    MAX_DAYS_WINDOW,
    MAX_PAGE_NUMBER,
    MAX_PAGE_SIZE,
    ModelValidationPolicy,
    ValidationError,
    parse_date_arg,
    parse_int_arg,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    fields={
        "barcode": "barcode",
        "name": "name",
        "description": "description",
        "quantity": "quantity",
        "unit": "unit",
        "batchNumber": "batch_number",
        "manufactureDate": "manufacture_date",
        "expiryDate": "expiry_date",
        "location": "location",
        "notes": "notes",
        "imageUrl": "image_url",
        "status": "status",
        "customFields": "custom_fields",
        "notificationDays": "notification_days",
    },
    required_on_create={"name", "expiryDate"},
)

products_bp = Blueprint("products", __name__, url_prefix="/products")


@products_bp.get("")
@require_auth
@require_shop
def list_products_route():
    """
    List the caller's products.

    Query params:
    - search: case-insensitive match on name, barcode or description
    - status: active | disposed | sold | expired
    - expiryFrom / expiryTo: ISO dates (inclusive)
    - daysToExpiry: int N, today..today+N inclusive (overrides the range)
    - sortBy: expiryDate | name | createdAt | updatedAt | quantity | status
    - order: ASC | DESC
    - page (default 1), limit (default 20, max 100)
    """
    args = request.args
    try:
        result = products_service.list_products(
            g.shop_id,
            search=(args.get("search") or "").strip() or None,
            status=args.get("status") or None,
            expiry_from=parse_date_arg(args, "expiryFrom"),
            expiry_to=parse_date_arg(args, "expiryTo"),
            days_to_expiry=parse_int_arg(args, "daysToExpiry", minimum=0, maximum=MAX_DAYS_WINDOW),
            sort_by=args.get("sortBy") or "expiryDate",
            order=args.get("order") or "ASC",
            page=parse_int_arg(args, "page", 1, minimum=1, maximum=MAX_PAGE_NUMBER),
            limit=parse_int_arg(args, "limit", DEFAULT_PAGE_SIZE, minimum=1, maximum=MAX_PAGE_SIZE),
        )
    except ValidationError as e:
        return fail(str(e), 400, e.errors)
    return ok(result)


@products_bp.get("/expiring-soon")
@require_auth
@require_shop
def expiring_soon_route():
    try:
        days = parse_int_arg(
            request.args, "days", products_service.DEFAULT_EXPIRING_SOON_DAYS, minimum=0, maximum=MAX_DAYS_WINDOW
        )
    except ValidationError as e:
        return fail(str(e), 400, e.errors)
    return ok(products_service.list_expiring_soon(g.shop_id, days))


@products_bp.get("/expired")
@require_auth
@require_shop
def expired_route():
    return ok(products_service.list_expired(g.shop_id))


@products_bp.get("/dashboard-stats")
@require_auth
@require_shop
def dashboard_stats_route():
    return ok(products_service.get_dashboard_stats(g.shop_id))


@products_bp.get("/<int:product_id>")
@require_auth
@require_shop
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(g.shop_id, product_id)
    except TenantAccessError:
        return fail("Product not found", 404)
    return ok({"product": product.to_dict()})


@products_bp.post("")
@require_auth
@require_shop
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        product = products_service.create_product(g.shop_id, patch)
    except ValidationError as e:
        return fail(str(e), 400, e.errors)

    current_app.logger.info("Product created: %s by user %s", product.id, g.user_id)
    return ok({"product": product.to_dict()}, message="Product created successfully", status=201)


@products_bp.put("/<int:product_id>")
@require_auth
@require_shop
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        product = products_service.update_product(g.shop_id, product_id, patch)
    except TenantAccessError:
        return fail("Product not found", 404)
    except ValidationError as e:
        return fail(str(e), 400, e.errors)

    current_app.logger.info("Product updated: %s by user %s", product_id, g.user_id)
    return ok({"product": product.to_dict()}, message="Product updated successfully")


@products_bp.delete("/<int:product_id>")
@require_auth
@require_shop
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(g.shop_id, product_id)
    except TenantAccessError:
        return fail("Product not found", 404)

    current_app.logger.info("Product deleted: %s by user %s", product_id, g.user_id)
    return ok(message="Product deleted successfully")
