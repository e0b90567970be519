# Overview: Flask API route for browsing the audit log.

from flask import Blueprint, jsonify, request

from ..decorators import require_actor, require_role
from ..models.users import ROLE_ADMIN
from ..services.audit_service import list_audit_entries
from bigdrip.time_utils import parse_iso_datetime, to_utc_z

"""
Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- end_date filtering is inclusive: created_at <= end_date.
"""

audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit-logs")


@audit_bp.get("")
@require_actor
@require_role(ROLE_ADMIN)
def list_audit_logs_route():
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))

    try:
        start_dt = parse_iso_datetime(request.args.get("start_date"))
        end_dt = parse_iso_datetime(request.args.get("end_date"))
    except ValueError:
        return jsonify({"error": "start_date and end_date must be ISO-8601 datetimes"}), 400

    cursor = None
    cursor_raw = request.args.get("cursor")
    if cursor_raw:
        try:
            cursor_parts = cursor_raw.split("|")
            cursor_dt = parse_iso_datetime(cursor_parts[0])
            cursor_id = int(cursor_parts[1])
        except (ValueError, IndexError):
            return jsonify({"error": "cursor must be in format <ISO-8601>|<id>"}), 400
        if cursor_dt is None:
            return jsonify({"error": "cursor must be in format <ISO-8601>|<id>"}), 400
        cursor = (cursor_dt, cursor_id)

    rows = list_audit_entries(
        entity_type=request.args.get("entity_type") or None,
        entity_id=request.args.get("entity_id", type=int),
        actor_user_id=request.args.get("actor_user_id", type=int),
        action=request.args.get("action") or None,
        start=start_dt,
        end=end_dt,
        cursor=cursor,
        limit=limit,
    )

    next_cursor = None
    if len(rows) == limit:
        last = rows[-1]
        next_cursor = f"{to_utc_z(last.created_at)}|{last.id}"

    return jsonify({
        "items": [r.to_dict() for r in rows],
        "next_cursor": next_cursor,
        "limit": limit,
    }), 200
