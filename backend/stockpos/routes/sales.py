# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stockpos/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, Response, current_app, g, jsonify, request

from ..decorators import require_actor, require_permission
from ..permissions import COMMIT_SALE, VIEW_SALES
from ..services import sales_service
from ..services.payment_service import PaymentError
from ..services.permission_service import PermissionDeniedError
from ..services.sales_service import ProductNotFound, SaleError, SaleNotFound
from ..validation import ValidationError, coerce_bool, optional_text, parse_limit


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
@require_actor
@require_permission(COMMIT_SALE)
def commit_sale_route():
    """
    Commit a sale from the checkout screen.

    Body:
        {
          "items": [{"product_id": 1, "quantity": 2}],
          "document_type": "receipt" | "invoice",
          "payment_methods": [{"kind": "cash", "amount_cents": 6000}, ...],
          "is_credit": false,
          "observations": "...",
          "idempotency_key": "..."      (or Idempotency-Key header)
        }

    Requires: commit_sale
    Available to: admin, sales
    """
    try:
        data = request.get_json(silent=True) or {}
        idempotency_key = optional_text(
            data.get("idempotency_key") or request.headers.get("Idempotency-Key"),
            "idempotency_key",
            max_length=128,
        )

        sale = sales_service.commit_sale(
            items=data.get("items"),
            document_type=data.get("document_type", "receipt"),
            actor_id=g.current_user.id,
            payment_methods=data.get("payment_methods") or [],
            is_credit=coerce_bool(data.get("is_credit"), "is_credit"),
            observations=optional_text(data.get("observations"), "observations", max_length=2000),
            idempotency_key=idempotency_key,
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProductNotFound as e:
        return jsonify({"error": str(e), "code": type(e).__name__, "details": e.details}), 404
    except (SaleError, PaymentError) as e:
        return jsonify({"error": str(e), "code": type(e).__name__, "details": e.details}), 400
    except PermissionDeniedError as e:
        return jsonify({"error": "Permission denied", "message": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to commit sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
@require_actor
@require_permission(VIEW_SALES)
def list_sales_route():
    try:
        limit = parse_limit(request.args.get("limit"), default=100)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    sales = sales_service.list_sales(limit=limit)
    return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200


@sales_bp.get("/<sale_id>")
@require_actor
@require_permission(VIEW_SALES)
def get_sale_route(sale_id: str):
    try:
        sale = sales_service.get_sale(sale_id)
    except SaleNotFound:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.get("/<sale_id>/receipt")
@require_actor
@require_permission(VIEW_SALES)
def sale_receipt_route(sale_id: str):
    """Printable plain-text receipt or invoice."""
    try:
        sale = sales_service.get_sale(sale_id)
    except SaleNotFound:
        return jsonify({"error": "Sale not found"}), 404
    return Response(sales_service.render_receipt(sale), mimetype="text/plain")
