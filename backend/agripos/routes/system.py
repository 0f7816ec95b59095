# backend/agripos/routes/system.py
"""
System health endpoint.

Reports database reachability and the pending online order backlog, which
the order polling client also uses.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..models import OnlineOrder, PosSession
from agripos.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        open_sessions = db.session.query(PosSession).filter_by(status="open").count()
        pending_orders = db.session.query(OnlineOrder).filter_by(status="pending_confirmation").count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "open_sessions": open_sessions,
                "pending_orders": pending_orders,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "notifier": current_app.config.get("NOTIFIER", "log"),
        "checks": {
            "database": database_health,
        }
    }

    return response, 200 if healthy else 503
