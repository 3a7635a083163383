from __future__ import annotations

from ..extensions import db
from ..time_utils import days_until, to_iso_date, to_utc_z

PRODUCT_STATUSES = ("active", "disposed", "sold", "expired")
CUSTOM_FIELD_TYPES = ("text", "number", "date", "boolean", "select")


class Product(db.Model):
    """
    Inventory item tracked for expiry.

    MULTI-TENANT: shop_id is set from the authenticated caller, never from input.

    custom_fields holds values keyed by the shop's CustomField names.
    notification_days is a per-product lead-time override; it is stored and
    returned but the expiry sweep only reads the shop-level lead times.
    daysToExpiry is derived on read and never persisted.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_shop_expiry", "shop_id", "expiry_date"),
        db.Index("ix_products_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)

    barcode = db.Column(db.String(128), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    quantity = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=1)
    unit = db.Column(db.String(32), nullable=False, default="pcs")
    batch_number = db.Column(db.String(128), nullable=True)
    manufacture_date = db.Column(db.Date, nullable=True)
    expiry_date = db.Column(db.Date, nullable=False)
    location = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")
    custom_fields = db.Column(db.JSON, nullable=False, default=dict)
    notification_days = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship(
        "Shop",
        backref=db.backref("products", lazy=True, cascade="all, delete-orphan"),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} expiry={self.expiry_date}>"

    def get_days_to_expiry(self, today=None) -> int:
        return days_until(self.expiry_date, today)

    def to_dict(self, today=None) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "barcode": self.barcode,
            "name": self.name,
            "description": self.description,
            "quantity": self.quantity,
            "unit": self.unit,
            "batchNumber": self.batch_number,
            "manufactureDate": to_iso_date(self.manufacture_date),
            "expiryDate": to_iso_date(self.expiry_date),
            "location": self.location,
            "notes": self.notes,
            "imageUrl": self.image_url,
            "status": self.status,
            "customFields": dict(self.custom_fields or {}),
            "notificationDays": self.notification_days,
            "daysToExpiry": self.get_days_to_expiry(today),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class CustomField(db.Model):
    """Per-shop schema extension for product records."""
    __tablename__ = "custom_fields"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "name", name="uq_custom_fields_shop_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    field_type = db.Column(db.String(16), nullable=False)
    required = db.Column(db.Boolean, nullable=False, default=False)
    select_options = db.Column(db.JSON, nullable=True)
    default_value = db.Column(db.Text, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship(
        "Shop",
        backref=db.backref("custom_field_definitions", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "name": self.name,
            "fieldType": self.field_type,
            "required": self.required,
            "selectOptions": self.select_options,
            "defaultValue": self.default_value,
            "sortOrder": self.sort_order,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
