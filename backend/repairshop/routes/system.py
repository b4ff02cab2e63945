# backend/repairshop/routes/system.py
"""
System health endpoint.

Reports database reachability and whether the notification gateway is
configured.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Shop, SubscriptionPlan, User
from ..services.notification_service import NullNotifier
from repairshop.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        shop_count = db.session.query(Shop).count()
        user_count = db.session.query(User).count()
        plan_count = db.session.query(SubscriptionPlan).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "shops": shop_count,
                "users": user_count,
                "plans": plan_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_notifier_health() -> dict:
    notifier = current_app.extensions.get("notifier")
    if notifier is None or isinstance(notifier, NullNotifier):
        return {"status": "degraded", "warning": "Notification gateway not configured"}
    return {"status": "healthy", "details": {"transport": type(notifier).__name__}}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (notifications off)
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    notifier_health = check_notifier_health()

    all_checks = [database_health, notifier_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "notifier": notifier_health,
        }
    }

    return response, http_status
