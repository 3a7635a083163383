from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

ROLE_OWNER = "owner"
ROLE_MANAGER = "manager"
USER_ROLES = (ROLE_OWNER, ROLE_MANAGER)


class User(db.Model):
    """
    User accounts for authentication and attribution.

    MULTI-TENANT: A user belongs to at most one shop (shop_id). Signup creates
    the owner together with the shop; managers are added to an existing shop.
    Email is globally unique and stored lower-case.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_shop_id", "shop_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_OWNER)

    # users.shop_id and shops.owner_id reference each other
    shop_id = db.Column(
        db.Integer,
        db.ForeignKey("shops.id", use_alter=True, name="fk_users_shop_id"),
        nullable=True,
    )

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", foreign_keys=[shop_id], backref=db.backref("users", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self, include_shop: bool = False) -> dict:
        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "role": self.role,
            "shopId": self.shop_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_shop:
            data["shop"] = self.shop.to_summary() if self.shop else None
        return data


class RefreshToken(db.Model):
    """
    Server-side record of an issued refresh token.

    The signed token is only honoured while its row exists and expires_at has
    not passed. Logout deletes the row; an expired row is deleted when used.
    """
    __tablename__ = "refresh_tokens"
    __table_args__ = (
        db.Index("ix_refresh_tokens_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = db.Column(db.String(500), nullable=False, unique=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship(
        "User",
        backref=db.backref("refresh_tokens", lazy=True, cascade="all, delete-orphan"),
    )

    def is_expired(self, now=None) -> bool:
        return (now or utcnow()) > self.expires_at.replace(tzinfo=None)
