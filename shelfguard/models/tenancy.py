from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

DEFAULT_NOTIFICATION_DAYS = [7, 3, 0]


class Shop(db.Model):
    """
    Tenant root: every product, custom field and notification belongs to one shop.

    MULTI-TENANT: Services take shop_id as an explicit argument and filter on it.
    No data may cross shop boundaries.

    default_notification_days holds the lead times (days before expiry) at which
    the expiry sweep notifies the shop's users.
    """
    __tablename__ = "shops"
    __table_args__ = (
        db.Index("ix_shops_notifications_enabled", "notifications_enabled"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    default_notification_days = db.Column(
        db.JSON, nullable=False, default=lambda: list(DEFAULT_NOTIFICATION_DAYS)
    )
    notification_time = db.Column(db.String(5), nullable=True)  # HH:mm
    notifications_enabled = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", foreign_keys=[owner_id])

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r}>"

    def lead_times(self) -> list[int]:
        """
        Configured lead times. An empty list is a valid setting and means no
        expiry notifications; the defaults apply only to a row never given a value.
        """
        if self.default_notification_days is None:
            return list(DEFAULT_NOTIFICATION_DAYS)
        return list(self.default_notification_days)

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
        }

    def to_dict(self) -> dict:
        return {
            **self.to_summary(),
            "ownerId": self.owner_id,
            "defaultNotificationDays": self.lead_times(),
            "notificationTime": self.notification_time,
            "notificationsEnabled": self.notifications_enabled,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
