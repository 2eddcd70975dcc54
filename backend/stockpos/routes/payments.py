# Overview: Flask API routes for payment reconciliation; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_actor, require_permission
from ..permissions import COMMIT_SALE
from ..services import payment_service
from ..services.payment_service import PaymentError
from ..validation import ValidationError, coerce_bool, coerce_int


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("/reconcile")
@require_actor
@require_permission(COMMIT_SALE)
def reconcile_route():
    """
    Speculative reconciliation for the checkout screen.

    Body: {"total_cents": 10000, "payment_methods": [...], "is_credit": false}
    Nothing is written; the same check runs again when the sale is committed.
    """
    try:
        data = request.get_json(silent=True) or {}
        total_cents = coerce_int(data.get("total_cents"), "total_cents", minimum=0)
        is_credit = coerce_bool(data.get("is_credit"), "is_credit")
        methods = payment_service.parse_payment_methods(data.get("payment_methods") or [])

        result = payment_service.reconcile(total_cents, methods, is_credit)
        return jsonify({
            "reconciliation": result.to_dict(),
            "tender_summary": payment_service.get_tender_summary(methods),
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PaymentError as e:
        return jsonify({"error": str(e), "code": type(e).__name__, "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to reconcile payment")
        return jsonify({"error": "Internal server error"}), 500
