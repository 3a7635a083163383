# Overview: Request decorators for authentication, shop membership and role checks.

from functools import wraps

from flask import g, request

from .extensions import db
from .models import User
from .responses import fail
from .services import token_service
from .services.token_service import TokenExpiredError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid access token and establish shop context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.user_id: The user's id
    - g.shop_id: The user's shop (None until the user belongs to one)

    SECURITY: Returns 401 if:
    - No Authorization header, or not a Bearer token
    - Invalid signature / wrong token type
    - Expired token
    - User no longer exists
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return fail("No token provided", 401)

        token = auth_header.split(" ", 1)[1].strip()
        if not token:
            return fail("No token provided", 401)

        try:
            user_id = token_service.verify_access_token(token)
        except TokenExpiredError:
            return fail("Token expired", 401)
        except token_service.AuthError:
            return fail("Invalid token", 401)

        user = db.session.get(User, user_id)
        if user is None:
            return fail("User not found", 401)

        g.current_user = user
        g.user_id = user.id
        g.shop_id = user.shop_id

        return f(*args, **kwargs)

    return decorated_function


def require_shop(f):
    """Reject callers that are not attached to a shop. Use after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return fail("Authentication required", 401)
        if getattr(g, 'shop_id', None) is None:
            return fail("User is not associated with a shop", 403)
        return f(*args, **kwargs)
    return decorated_function


def require_role(*roles):
    """Allow only users whose role is in roles. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return fail("Authentication required", 401)
            if g.current_user.role not in roles:
                return fail("Insufficient permissions", 403)
            return f(*args, **kwargs)
        return decorated_function
    return decorator
