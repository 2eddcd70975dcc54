# Overview: Flask API routes for the movement log; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor, require_permission
from ..permissions import REGISTER_MOVEMENT, VIEW_MOVEMENTS
from ..services import movement_service
from ..services.movement_service import MovementError
from ..services.permission_service import PermissionDeniedError
from ..services.stock_ledger_service import LedgerError, StockNotFound
from ..validation import ValidationError, coerce_int, optional_text, parse_limit


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/movements")
@require_actor
@require_permission(VIEW_MOVEMENTS)
def list_movements_route():
    """Movement log, newest first. Optional ?product_id= and ?limit=."""
    try:
        product_id = request.args.get("product_id")
        product_id = coerce_int(product_id, "product_id") if product_id else None
        limit = parse_limit(request.args.get("limit"), default=200)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    movements = movement_service.list_movements(product_id=product_id, limit=limit)
    return jsonify({"movements": [m.to_dict() for m in movements]}), 200


@inventory_bp.post("/movements")
@require_actor
@require_permission(REGISTER_MOVEMENT)
def register_movement_route():
    """
    Register a manual stock movement.

    Body: {"product_id": 1, "direction": "in"|"out", "quantity": 5, "reason": "..."}
    """
    try:
        data = request.get_json(silent=True) or {}
        product_id = coerce_int(data.get("product_id"), "product_id")
        quantity = coerce_int(data.get("quantity"), "quantity", minimum=1)
        direction = data.get("direction")
        reason = optional_text(data.get("reason"), "reason")

        movement = movement_service.register_movement(
            product_id=product_id,
            direction=direction,
            quantity=quantity,
            actor_id=g.current_user.id,
            reason=reason,
        )
        return jsonify({"movement": movement.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockNotFound as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except (LedgerError, MovementError) as e:
        return jsonify({"error": str(e), "code": type(e).__name__, "details": e.details}), 400
    except PermissionDeniedError as e:
        return jsonify({"error": "Permission denied", "message": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to register movement")
        return jsonify({"error": "Internal server error"}), 500
