# backend/backoffice/routes/system.py
"""System health endpoint."""

import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a trivial round trip.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "response_time_ms": round(elapsed_ms, 2)}
    except Exception as e:
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "error": type(e).__name__}


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    status = 200 if database["status"] == "healthy" else 503
    return {
        "status": "ok" if status == 200 else "degraded",
        "time": to_utc_z(utcnow()),
        "database": database,
    }, status
