# Overview: Service-layer operations for notification logs and device subscriptions.

"""
Notification Inbox Service

MULTI-TENANT: logs are read and marked read only within the caller's shop.
Logs are created by the expiry sweep (see expiry_sweep.py); this module only
reads them and sets read_at.
"""
from __future__ import annotations

import math

from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import NotificationLog
from ..validation import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, ValidationError
from .tenant_service import get_in_shop, scoped_query
from ..time_utils import utcnow


def list_notifications(shop_id: int, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE,
                       unread_only: bool = False) -> dict:
    """Newest first. Each entry embeds a short product summary."""
    query = scoped_query(NotificationLog, shop_id)
    if unread_only:
        query = query.filter(NotificationLog.read_at.is_(None))

    limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)
    page = max(page or 1, 1)

    total = query.count()
    logs = (
        query.options(joinedload(NotificationLog.product))
        .order_by(NotificationLog.sent_at.desc(), NotificationLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "notifications": [log.to_dict() for log in logs],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
        },
    }


def unread_count(shop_id: int) -> int:
    return scoped_query(NotificationLog, shop_id).filter(NotificationLog.read_at.is_(None)).count()


def mark_read(shop_id: int, notification_id: int) -> NotificationLog:
    """Set read_at on one log. Already-read logs keep their first read time."""
    log = get_in_shop(NotificationLog, notification_id, shop_id, label="Notification")
    if log.read_at is None:
        log.read_at = utcnow()
        db.session.commit()
    return log


def mark_all_read(shop_id: int) -> int:
    """Mark every unread log of this shop as read. Returns the number updated."""
    updated = (
        scoped_query(NotificationLog, shop_id)
        .filter(NotificationLog.read_at.is_(None))
        .update({NotificationLog.read_at: utcnow()}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def _require_device_token(token) -> str:
    if not isinstance(token, str) or not token.strip():
        raise ValidationError("Device token is required", [{"field": "token", "message": "Device token is required"}])
    return token.strip()


def subscribe_device(notifier, user_id: int, token) -> str | None:
    """Subscribe an FCM device token to the user's push topic."""
    return notifier.subscribe(_require_device_token(token), user_id)


def unsubscribe_device(notifier, user_id: int, token) -> str | None:
    return notifier.unsubscribe(_require_device_token(token), user_id)
