# shelfguard/routes/system.py
"""
System health endpoint.

Mounted at /health outside the versioned API prefix, so load balancers can
poll it without a token and without counting against the rate limit.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Round-trip a trivial query and report latency."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200 {"status": "OK", ...} when the database answers
    - 503 {"status": "ERROR", ...} otherwise
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "OK" if healthy else "ERROR",
        "timestamp": to_utc_z(utcnow()),
        "environment": current_app.config["ENV_NAME"],
        "checks": {"database": database_health},
    }
    return response, 200 if healthy else 503
