# backend/stockpos/routes/system.py
"""System health and identity endpoints."""

import time
from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_actor
from ..extensions import db
from ..models import Product, Sale
from ..services import permission_service
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        sale_count = db.session.query(Sale).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "sales": sale_count,
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


@system_bp.get("/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return jsonify({
        "status": database["status"],
        "checked_at": to_utc_z(utcnow()),
        "database": database,
    }), status_code


@system_bp.get("/me")
@require_actor
def me():
    """Acting user and the actions they may perform; the UI hides the rest."""
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "actions": permission_service.get_user_actions(user),
    }), 200
