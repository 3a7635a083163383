# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service with Shop Tenancy

Signup creates the owner account and its shop in one transaction. Managers
are attached to an existing shop (CLI only). Passwords are hashed with bcrypt;
the cost factor comes from BCRYPT_ROUNDS.

SECURITY NOTES:
- Email is normalized to lower-case and globally unique
- Unknown email and wrong password are indistinguishable to the caller
- Tokens are handled separately (see token_service.py)
"""

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Shop, User
from ..models.auth import ROLE_MANAGER, ROLE_OWNER
from ..validation import ConflictError, MIN_PASSWORD_LENGTH, NotFoundError, ValidationError


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            [{"field": "password", "message": f"Password must be at least {MIN_PASSWORD_LENGTH} characters"}],
        )


def hash_password(password: str) -> str:
    """Hash password using bcrypt. Password is validated for strength before hashing."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=email.strip().lower()).first()


def register_owner(
    email: str,
    password: str,
    name: str,
    phone: str | None = None,
    shop_name: str | None = None,
    shop_description: str | None = None,
) -> tuple[User, Shop]:
    """
    Create an owner and their shop atomically.

    The user row is flushed first so the shop can reference owner_id, then
    user.shop_id is pointed at the new shop. Nothing is written when the email
    is taken.

    Raises:
        ConflictError: email already registered
        PasswordValidationError: password too short
    """
    email = email.strip().lower()
    if get_user_by_email(email) is not None:
        raise ConflictError("User with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        phone=phone,
        role=ROLE_OWNER,
    )
    db.session.add(user)

    try:
        db.session.flush()

        shop = Shop(
            name=shop_name or f"{name}'s Shop",
            description=shop_description,
            owner_id=user.id,
        )
        db.session.add(shop)
        db.session.flush()

        user.shop_id = shop.id
        db.session.commit()
    except IntegrityError:
        # Concurrent signup with the same email won the unique index
        db.session.rollback()
        raise ConflictError("User with this email already exists")

    return user, shop


def authenticate(email: str, password: str) -> User | None:
    """Returns the user for valid credentials, None otherwise."""
    user = get_user_by_email(email)
    if not user:
        return None
    if verify_password(password, user.password_hash):
        return user
    return None


def create_manager(shop_id: int, email: str, name: str, password: str, phone: str | None = None) -> User:
    """Attach a manager account to an existing shop."""
    shop = db.session.get(Shop, shop_id)
    if shop is None:
        raise NotFoundError("Shop not found")

    email = email.strip().lower()
    if get_user_by_email(email) is not None:
        raise ConflictError("User with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name.strip(),
        phone=phone,
        role=ROLE_MANAGER,
        shop_id=shop.id,
    )
    db.session.add(user)
    db.session.commit()
    return user


def update_profile(user: User, payload: dict) -> User:
    """Update name/phone on the caller's own account; other keys are rejected."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    allowed = {"name", "phone"}
    unknown = sorted(set(payload) - allowed)
    if unknown:
        raise ValidationError(
            "Validation failed",
            [{"field": key, "message": f"Field not allowed: {key}"} for key in unknown],
        )

    if "name" in payload:
        name = str(payload["name"] or "").strip()
        if not name:
            raise ValidationError("Validation failed", [{"field": "name", "message": "Name cannot be empty"}])
        user.name = name

    if "phone" in payload:
        phone = payload["phone"]
        if phone is not None:
            phone = str(phone).strip() or None
        user.phone = phone

    db.session.commit()
    return user
