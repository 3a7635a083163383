# Overview: Service-layer operations for access/refresh tokens; signs, verifies and revokes JWTs.

"""
Token lifecycle.

Access tokens are short-lived HS256 JWTs signed with JWT_SECRET and are never
stored. Refresh tokens are signed with REFRESH_TOKEN_SECRET and also
persisted: a refresh token is only honoured while its row exists and has not
passed expires_at, so logout (row deleted) revokes it immediately.

Refreshing issues a new access token only. The refresh token itself is not
rotated.

Claims: userId, type ("access" | "refresh"), iat, exp, jti. The random jti
keeps two tokens minted for the same user in the same second distinct
(refresh_tokens.token is unique).
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone

import jwt
from flask import current_app

from ..config import parse_duration
from ..extensions import db
from ..models import RefreshToken
from ..time_utils import utcnow

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"


class AuthError(Exception):
    """Base for every 401-level token/auth failure."""


class InvalidTokenError(AuthError):
    pass


class TokenExpiredError(AuthError):
    pass


def _encode(user_id: int, token_type: str, secret: str, lifetime) -> tuple[str, datetime]:
    now = datetime.now(timezone.utc)
    expires = now + parse_duration(lifetime)
    claims = {
        "userId": user_id,
        "type": token_type,
        "iat": now,
        "exp": expires,
        "jti": secrets.token_hex(8),
    }
    token = jwt.encode(claims, secret, algorithm=ALGORITHM)
    return token, expires.replace(tzinfo=None)


def _decode(token: str, secret: str, token_type: str) -> dict:
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token expired")
    except jwt.InvalidTokenError:
        raise InvalidTokenError("Invalid token")

    if claims.get("type") != token_type or not isinstance(claims.get("userId"), int):
        raise InvalidTokenError("Invalid token")
    return claims


def issue_access_token(user_id: int) -> str:
    cfg = current_app.config
    token, _ = _encode(user_id, ACCESS, cfg["JWT_SECRET"], cfg["JWT_EXPIRES_IN"])
    return token


def issue_refresh_token(user_id: int) -> str:
    """Sign a refresh token and persist it. Caller commits."""
    cfg = current_app.config
    token, expires_at = _encode(user_id, REFRESH, cfg["REFRESH_TOKEN_SECRET"], cfg["REFRESH_TOKEN_EXPIRES_IN"])
    db.session.add(RefreshToken(user_id=user_id, token=token, expires_at=expires_at))
    return token


def issue_token_pair(user_id: int) -> dict:
    """Issue one access token and one persisted refresh token, then commit."""
    access_token = issue_access_token(user_id)
    refresh_token = issue_refresh_token(user_id)
    db.session.commit()
    return {"accessToken": access_token, "refreshToken": refresh_token}


def verify_access_token(token: str) -> int:
    """Return the user id carried by a valid access token."""
    claims = _decode(token, current_app.config["JWT_SECRET"], ACCESS)
    return claims["userId"]


def refresh_access_token(token: str) -> str:
    """
    Exchange a refresh token for a new access token.

    Raises:
        TokenExpiredError: signature or stored row past expiry (row is deleted)
        InvalidTokenError: bad signature, wrong type, or no stored row
    """
    try:
        claims = _decode(token, current_app.config["REFRESH_TOKEN_SECRET"], REFRESH)
    except TokenExpiredError:
        _delete_row(token)
        raise

    row = db.session.query(RefreshToken).filter_by(token=token, user_id=claims["userId"]).first()
    if row is None:
        raise InvalidTokenError("Invalid refresh token")

    if row.is_expired():
        db.session.delete(row)
        db.session.commit()
        raise TokenExpiredError("Refresh token expired")

    return issue_access_token(claims["userId"])


def revoke_refresh_token(token: str) -> bool:
    """Delete the stored row for token. Returns False when nothing was stored."""
    return _delete_row(token)


def _delete_row(token: str) -> bool:
    deleted = db.session.query(RefreshToken).filter_by(token=token).delete(synchronize_session=False)
    db.session.commit()
    return bool(deleted)


def cleanup_expired_refresh_tokens(now: datetime | None = None) -> int:
    """Delete refresh tokens past expires_at. Returns the number removed."""
    cutoff = now or utcnow()
    deleted = (
        db.session.query(RefreshToken)
        .filter(RefreshToken.expires_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
