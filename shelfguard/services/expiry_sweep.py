# Overview: Expiry notification sweep; writes notification logs and fans out push messages.

"""
Expiry Notification Sweep

For every shop with notifications enabled and every configured lead time d,
active products expiring exactly on today + d get one NotificationLog for the
day, then a push to every user of the shop.

Idempotency: a lookup skips (product, d, today) combinations already logged.
The unique constraint on (product_id, days_to_expiry, sent_on) backs this up
when two sweeps race; the losing insert is rolled back and counted as a
duplicate. Pushes are sent only after the log row is committed.

Delivery is best-effort: a failed push for one user is logged and the next
user is tried. Any other error ends the run early with a rollback; the next
scheduled run starts from scratch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import NotificationLog, Product, Shop, User
from ..time_utils import today as server_today, utcnow

logger = logging.getLogger(__name__)

CRITICAL_THRESHOLD_DAYS = 3


@dataclass(frozen=True)
class ExpiryMessage:
    notification_type: str
    title: str
    body: str


@dataclass
class SweepResult:
    run_date: date
    shops_scanned: int = 0
    logs_created: int = 0
    duplicates_skipped: int = 0
    pushes_sent: int = 0
    pushes_failed: int = 0
    completed: bool = False

    def to_dict(self) -> dict:
        return {
            "runDate": self.run_date.isoformat(),
            "shopsScanned": self.shops_scanned,
            "logsCreated": self.logs_created,
            "duplicatesSkipped": self.duplicates_skipped,
            "pushesSent": self.pushes_sent,
            "pushesFailed": self.pushes_failed,
            "completed": self.completed,
        }


def _days_label(days: int) -> str:
    return "1 day" if days == 1 else f"{days} days"


def classify_lead_time(days: int, product_name: str) -> ExpiryMessage:
    """
    0 -> expired, 1..3 -> expiry_critical, >3 -> expiry_warning.
    """
    if days == 0:
        return ExpiryMessage(
            "expired",
            "Product Expiring Today",
            f"{product_name} is expiring today!",
        )

    body = f"{product_name} will expire in {_days_label(days)}"
    if days <= CRITICAL_THRESHOLD_DAYS:
        return ExpiryMessage(
            "expiry_critical",
            f"Critical: {_days_label(days).title()} to Expiry",
            body,
        )
    return ExpiryMessage("expiry_warning", f"{_days_label(days).title()} to Expiry", body)


def _already_logged(product_id: int, days: int, run_date: date) -> bool:
    return (
        db.session.query(NotificationLog.id)
        .filter_by(product_id=product_id, days_to_expiry=days, sent_on=run_date)
        .first()
        is not None
    )


def _record(product: Product, days: int, run_date: date, message: ExpiryMessage) -> bool:
    """Insert and commit one log. False when another run already wrote it."""
    db.session.add(NotificationLog(
        product_id=product.id,
        shop_id=product.shop_id,
        notification_type=message.notification_type,
        days_to_expiry=days,
        sent_at=utcnow(),
        sent_on=run_date,
        title=message.title,
        body=message.body,
    ))
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return False
    return True


def _fan_out(notifier, user_ids: list[int], product: Product, days: int,
             message: ExpiryMessage, result: SweepResult) -> None:
    data = {
        "productId": product.id,
        "daysToExpiry": days,
        "type": message.notification_type,
    }
    for user_id in user_ids:
        try:
            notifier.send(user_id, message.title, message.body, data)
            result.pushes_sent += 1
        except Exception:
            result.pushes_failed += 1
            logger.exception("Failed to send notification to user %s for product %s", user_id, product.id)


def run_expiry_sweep(notifier, *, today: date | None = None) -> SweepResult:
    """
    Run one sweep for `today` (server-local date by default).

    Must be called inside an application context. Never raises; the returned
    result has completed=False when the run ended early.
    """
    run_date = today or server_today()
    result = SweepResult(run_date=run_date)
    logger.info("Starting expiry sweep for %s", run_date.isoformat())

    try:
        shops = (
            db.session.query(Shop)
            .filter(Shop.notifications_enabled.is_(True))
            .order_by(Shop.id.asc())
            .all()
        )

        for shop in shops:
            result.shops_scanned += 1
            # Snapshot ids up front; commits below expire loaded instances
            shop_id = shop.id
            lead_times = shop.lead_times()
            user_ids = [uid for (uid,) in db.session.query(User.id).filter(User.shop_id == shop_id).all()]

            for days in lead_times:
                target = run_date + timedelta(days=days)
                products = (
                    db.session.query(Product)
                    .filter(
                        Product.shop_id == shop_id,
                        Product.status == "active",
                        Product.expiry_date == target,
                    )
                    .order_by(Product.id.asc())
                    .all()
                )

                for product in products:
                    if _already_logged(product.id, days, run_date):
                        result.duplicates_skipped += 1
                        continue

                    message = classify_lead_time(days, product.name)
                    if not _record(product, days, run_date, message):
                        result.duplicates_skipped += 1
                        continue
                    result.logs_created += 1

                    _fan_out(notifier, user_ids, product, days, message, result)
                    logger.info("Notification sent for product %s (%s days)", product.id, days)

        result.completed = True
    except Exception:
        db.session.rollback()
        logger.exception("Expiry sweep aborted")

    logger.info(
        "Expiry sweep finished: shops=%s created=%s duplicates=%s pushes_sent=%s pushes_failed=%s",
        result.shops_scanned, result.logs_created, result.duplicates_skipped,
        result.pushes_sent, result.pushes_failed,
    )
    return result
