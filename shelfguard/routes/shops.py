# Overview: Flask API routes for shop settings and custom fields; parses input and returns JSON responses.

"""
Shop settings and custom field definitions.

MULTI-TENANT: The shop is always the caller's own (g.shop_id).
SECURITY: Reads are open to any member of the shop; writes are owner-only.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_role, require_shop
from ..models import CustomField, Shop
from ..models.auth import ROLE_OWNER
from ..responses import fail, ok
from ..services import shop_service
from ..services.tenant_service import TenantAccessError
from ..validation import ConflictError, ModelValidationPolicy, ValidationError, validate_payload

SHOP_SETTINGS_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "description": "description",
        "address": "address",
        "phone": "phone",
        "email": "email",
        "defaultNotificationDays": "default_notification_days",
        "notificationTime": "notification_time",
        "notificationsEnabled": "notifications_enabled",
    },
)

CUSTOM_FIELD_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "fieldType": "field_type",
        "required": "required",
        "selectOptions": "select_options",
        "defaultValue": "default_value",
        "sortOrder": "sort_order",
    },
    required_on_create={"name", "fieldType"},
)

shops_bp = Blueprint("shops", __name__, url_prefix="/shops")


@shops_bp.get("/settings")
@require_auth
@require_shop
def get_settings_route():
    try:
        shop = shop_service.get_shop(g.shop_id)
    except TenantAccessError:
        return fail("Shop not found", 404)
    return ok({"shop": shop.to_dict()})


@shops_bp.put("/settings")
@require_auth
@require_shop
@require_role(ROLE_OWNER)
def update_settings_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Shop, payload=payload, policy=SHOP_SETTINGS_POLICY, partial=True)
        shop = shop_service.update_shop_settings(g.shop_id, patch)
    except ValidationError as e:
        return fail(str(e), 400, e.errors)
    except TenantAccessError:
        return fail("Shop not found", 404)

    current_app.logger.info("Shop settings updated: %s by user %s", g.shop_id, g.user_id)
    return ok({"shop": shop.to_dict()}, message="Shop settings updated successfully")


@shops_bp.get("/custom-fields")
@require_auth
@require_shop
def list_custom_fields_route():
    fields = shop_service.list_custom_fields(g.shop_id)
    return ok({"customFields": [f.to_dict() for f in fields], "count": len(fields)})


@shops_bp.post("/custom-fields")
@require_auth
@require_shop
@require_role(ROLE_OWNER)
def create_custom_field_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=CustomField, payload=payload, policy=CUSTOM_FIELD_POLICY, partial=False)
        field = shop_service.create_custom_field(g.shop_id, patch)
    except ValidationError as e:
        return fail(str(e), 400, e.errors)
    except ConflictError as e:
        return fail(str(e), 409)

    current_app.logger.info("Custom field created: %s by user %s", field.id, g.user_id)
    return ok({"customField": field.to_dict()}, message="Custom field created successfully", status=201)


@shops_bp.put("/custom-fields/<int:field_id>")
@require_auth
@require_shop
@require_role(ROLE_OWNER)
def update_custom_field_route(field_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=CustomField, payload=payload, policy=CUSTOM_FIELD_POLICY, partial=True)
        field = shop_service.update_custom_field(g.shop_id, field_id, patch)
    except TenantAccessError:
        return fail("Custom field not found", 404)
    except ValidationError as e:
        return fail(str(e), 400, e.errors)
    except ConflictError as e:
        return fail(str(e), 409)

    current_app.logger.info("Custom field updated: %s by user %s", field_id, g.user_id)
    return ok({"customField": field.to_dict()}, message="Custom field updated successfully")


@shops_bp.delete("/custom-fields/<int:field_id>")
@require_auth
@require_shop
@require_role(ROLE_OWNER)
def delete_custom_field_route(field_id: int):
    try:
        shop_service.delete_custom_field(g.shop_id, field_id)
    except TenantAccessError:
        return fail("Custom field not found", 404)

    current_app.logger.info("Custom field deleted: %s by user %s", field_id, g.user_id)
    return ok(message="Custom field deleted successfully")
