# Overview: Flask API routes for dashboard read models.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_actor, require_permission
from ..permissions import VIEW_DASHBOARD
from ..services import activity_service
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, parse_limit


activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity")


@activity_bp.get("/feed")
@require_actor
@require_permission(VIEW_DASHBOARD)
def feed_route():
    """Recent sales and manual movements, newest first."""
    try:
        limit = parse_limit(
            request.args.get("limit"),
            default=current_app.config.get("ACTIVITY_FEED_DEFAULT_LIMIT", 20),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    entries = activity_service.feed(limit)
    return jsonify({"feed": [entry.to_dict() for entry in entries]}), 200


@activity_bp.get("/summary")
@require_actor
@require_permission(VIEW_DASHBOARD)
def summary_route():
    """Dashboard headline figures. Optional ?as_of=ISO-8601 for reproducible windows."""
    try:
        as_of = parse_iso_datetime(request.args.get("as_of"))
    except ValueError:
        return jsonify({"error": "as_of must be an ISO-8601 datetime"}), 400

    return jsonify({"summary": activity_service.dashboard_summary(now=as_of)}), 200
