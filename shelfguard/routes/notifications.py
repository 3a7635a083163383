# Overview: Flask API routes for the notification inbox and push device registration.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_shop
from ..responses import fail, ok
from ..services import notifications_service
from ..services.tenant_service import TenantAccessError
from ..validation import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_NUMBER,
    MAX_PAGE_SIZE,
    ValidationError,
    parse_bool_arg,
    parse_int_arg,
)

notifications_bp = Blueprint("notifications", __name__, url_prefix="/notifications")


def _notifier():
    return current_app.extensions["push_notifier"]


@notifications_bp.get("")
@require_auth
@require_shop
def list_notifications_route():
    """Newest first. Query params: page, limit, unreadOnly=true."""
    try:
        result = notifications_service.list_notifications(
            g.shop_id,
            page=parse_int_arg(request.args, "page", 1, minimum=1, maximum=MAX_PAGE_NUMBER),
            limit=parse_int_arg(request.args, "limit", DEFAULT_PAGE_SIZE, minimum=1, maximum=MAX_PAGE_SIZE),
            unread_only=parse_bool_arg(request.args, "unreadOnly"),
        )
    except ValidationError as e:
        return fail(str(e), 400, e.errors)
    return ok(result)


@notifications_bp.get("/unread-count")
@require_auth
@require_shop
def unread_count_route():
    return ok({"count": notifications_service.unread_count(g.shop_id)})


@notifications_bp.put("/<int:notification_id>/read")
@require_auth
@require_shop
def mark_read_route(notification_id: int):
    try:
        log = notifications_service.mark_read(g.shop_id, notification_id)
    except TenantAccessError:
        return fail("Notification not found", 404)
    return ok({"notification": log.to_dict()}, message="Notification marked as read")


@notifications_bp.put("/read-all")
@require_auth
@require_shop
def mark_all_read_route():
    updated = notifications_service.mark_all_read(g.shop_id)
    return ok({"updated": updated}, message="All notifications marked as read")


@notifications_bp.post("/devices")
@require_auth
def subscribe_device_route():
    payload = request.get_json(silent=True) or {}
    try:
        notifications_service.subscribe_device(_notifier(), g.user_id, payload.get("token"))
    except ValidationError as e:
        return fail(str(e), 400, e.errors)
    return ok(message="Device subscribed to notifications")


@notifications_bp.delete("/devices")
@require_auth
def unsubscribe_device_route():
    payload = request.get_json(silent=True) or {}
    try:
        notifications_service.unsubscribe_device(_notifier(), g.user_id, payload.get("token"))
    except ValidationError as e:
        return fail(str(e), 400, e.errors)
    return ok(message="Device unsubscribed from notifications")
