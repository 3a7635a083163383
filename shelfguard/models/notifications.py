from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z

NOTIFICATION_TYPES = ("expiry_warning", "expiry_critical", "expired")


class NotificationLog(db.Model):
    """
    One expiry notification emitted by the sweep, plus its read state.

    Rows are created only by the sweep and mutated only to set read_at.

    sent_on is the sweep's calendar day. The unique constraint on
    (product_id, days_to_expiry, sent_on) makes a second insert for the same
    product, lead time and day fail, which the sweep treats as already sent.
    """
    __tablename__ = "notification_logs"
    __table_args__ = (
        db.UniqueConstraint(
            "product_id", "days_to_expiry", "sent_on",
            name="uq_notification_logs_product_days_day",
        ),
        db.Index("ix_notification_logs_shop_read", "shop_id", "read_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    notification_type = db.Column(db.String(32), nullable=False)
    days_to_expiry = db.Column(db.Integer, nullable=False)

    sent_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    sent_on = db.Column(db.Date, nullable=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    title = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=False)

    product = db.relationship(
        "Product",
        backref=db.backref("notification_logs", lazy=True, cascade="all, delete-orphan"),
    )

    def __repr__(self) -> str:
        return (
            f"<NotificationLog id={self.id} product_id={self.product_id} "
            f"days={self.days_to_expiry} type={self.notification_type}>"
        )

    def to_dict(self) -> dict:
        product = self.product
        return {
            "id": self.id,
            "productId": self.product_id,
            "shopId": self.shop_id,
            "userId": self.user_id,
            "notificationType": self.notification_type,
            "daysToExpiry": self.days_to_expiry,
            "sentAt": to_utc_z(self.sent_at),
            "readAt": to_utc_z(self.read_at),
            "title": self.title,
            "body": self.body,
            "product": {
                "id": product.id,
                "name": product.name,
                "barcode": product.barcode,
                "expiryDate": to_iso_date(product.expiry_date),
            } if product else None,
        }
