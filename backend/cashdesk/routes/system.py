# backend/cashdesk/routes/system.py
"""
System health endpoint.

Checks database connectivity and reports whether an administrator account
exists, so a fresh install can be told apart from a broken one.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import CashRegisterSession, SessionStatus, User, UserRole
from cashdesk.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Run a few cheap queries and time them."""
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        open_sessions = db.session.query(CashRegisterSession).filter_by(status=SessionStatus.OPEN).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "open_sessions": open_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_admin_health() -> dict:
    start_time = time.time()
    try:
        admins = db.session.query(User).filter_by(role=UserRole.ADMIN, active=True).count()
        elapsed_ms = (time.time() - start_time) * 1000
        if admins == 0:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "No active administrator; run `flask system init`",
            }
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"active_admins": admins},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Admin account check failed")
        db.session.rollback()
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
    - 200: healthy or degraded (still operational)
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    admin_health = check_admin_health()

    all_checks = [database_health, admin_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "admin_account": admin_health,
        }
    }

    return response, http_status
