# Overview: Flask API routes for low-stock alerts.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor, require_role
from ..errors import AlertError, SaleError
from ..models.users import ROLE_ADMIN, ROLE_STAFF
from ..services import alert_service

alerts_bp = Blueprint("alerts", __name__, url_prefix="/api/alerts")


@alerts_bp.get("")
@require_actor
@require_role(ROLE_ADMIN, ROLE_STAFF)
def list_alerts_route():
    """
    Unacknowledged alerts by default (the dashboard badge list).

    Query params:
        all: 1 to include acknowledged alerts (history)
        include_resolved: 1 to also include resolved alerts (with all=1)
    """
    if request.args.get("all") in {"1", "true"}:
        include_resolved = request.args.get("include_resolved") in {"1", "true"}
        alerts = alert_service.list_alerts(include_resolved=include_resolved)
    else:
        alerts = alert_service.list_unacknowledged_alerts()

    return jsonify({
        "items": [a.to_dict() for a in alerts],
        "count": len(alerts),
        "unacknowledged": alert_service.count_unacknowledged_alerts(),
    }), 200


@alerts_bp.post("/<int:alert_id>/acknowledge")
@require_actor
@require_role(ROLE_ADMIN, ROLE_STAFF)
def acknowledge_alert_route(alert_id: int):
    try:
        alert = alert_service.acknowledge_alert(alert_id, g.current_user.id)
        return jsonify({"alert": alert.to_dict()}), 200

    except AlertError as e:
        return jsonify({"error": str(e), "code": e.code}), e.http_status
    except SaleError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to acknowledge alert")
        return jsonify({"error": "Internal server error"}), 500
