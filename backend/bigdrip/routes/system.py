# backend/bigdrip/routes/system.py
"""
System health endpoint.

Liveness plus a database round trip; used by the deployment's probes.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..models import Product, SaleSequence
from ..services.alert_service import count_unacknowledged_alerts
from ..services.sequence_service import SALE_SEQUENCE
from bigdrip.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and the tables the sale engine needs.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        product_count = db.session.query(Product).count()
        sequence_ready = (
            db.session.query(SaleSequence).filter_by(name=SALE_SEQUENCE).first() is not None
        )
        open_alerts = count_unacknowledged_alerts()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            # The sequence row is created lazily on first sale, so its absence only degrades
            "status": "healthy" if sequence_ready else "degraded",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "sale_sequence_initialized": sequence_ready,
                "unacknowledged_alerts": open_alerts,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (still operational)
    - 503: database unreachable
    """
    database_health = check_database_health()

    if database_health["status"] == "unhealthy":
        overall_status, http_status = "unhealthy", 503
    else:
        overall_status, http_status = database_health["status"], 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }
    return response, http_status
