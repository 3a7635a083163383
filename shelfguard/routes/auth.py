# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- signup creates an owner and their shop, then issues a token pair
- login returns the same 401 body for an unknown email and a wrong password
- refresh exchanges a stored refresh token for a new access token
- logout deletes the stored refresh token
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..responses import fail, ok
from ..services import auth_service, token_service
from ..validation import ConflictError, ValidationError, validate_login, validate_signup

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.post("/signup")
def signup_route():
    """Register an owner account together with a new shop."""
    payload = request.get_json(silent=True) or {}

    try:
        data = validate_signup(payload)
        user, shop = auth_service.register_owner(**data)
    except ValidationError as e:
        return fail(str(e), 400, e.errors)
    except ConflictError as e:
        return fail(str(e), 409)

    tokens = token_service.issue_token_pair(user.id)
    current_app.logger.info("New user registered: %s", user.email)

    return ok(
        {"user": user.to_dict(), "shop": shop.to_dict(), **tokens},
        message="User registered successfully",
        status=201,
    )


@auth_bp.post("/login")
def login_route():
    payload = request.get_json(silent=True) or {}

    try:
        email, password = validate_login(payload)
    except ValidationError as e:
        return fail(str(e), 400, e.errors)

    user = auth_service.authenticate(email, password)
    if not user:
        return fail("Invalid credentials", 401)

    tokens = token_service.issue_token_pair(user.id)
    current_app.logger.info("User logged in: %s", user.email)

    return ok({"user": user.to_dict(), **tokens}, message="Login successful")


@auth_bp.post("/refresh")
def refresh_route():
    payload = request.get_json(silent=True) or {}
    token = payload.get("refreshToken")
    if not token or not isinstance(token, str):
        return fail("Refresh token is required", 400, [{"field": "refreshToken", "message": "Refresh token is required"}])

    try:
        access_token = token_service.refresh_access_token(token)
    except token_service.TokenExpiredError:
        return fail("Refresh token expired", 401)
    except token_service.AuthError:
        return fail("Invalid refresh token", 401)

    return ok({"accessToken": access_token}, message="Token refreshed successfully")


@auth_bp.post("/logout")
def logout_route():
    """Revoke the given refresh token. Always succeeds."""
    payload = request.get_json(silent=True) or {}
    token = payload.get("refreshToken")
    if token and isinstance(token, str):
        token_service.revoke_refresh_token(token)
    return ok(message="Logged out successfully")


@auth_bp.get("/profile")
@require_auth
def profile_route():
    return ok({"user": g.current_user.to_dict(include_shop=True)})


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    payload = request.get_json(silent=True) or {}

    try:
        user = auth_service.update_profile(g.current_user, payload)
    except ValidationError as e:
        return fail(str(e), 400, e.errors)

    return ok({"user": user.to_dict(include_shop=True)}, message="Profile updated successfully")
