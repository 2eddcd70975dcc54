# Overview: Flask API routes for product stock reads; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_actor, require_permission
from ..extensions import db
from ..models import Product
from ..permissions import VIEW_PRODUCTS
from ..services import stock_ledger_service
from ..services.stock_ledger_service import StockNotFound
from ..validation import ValidationError, coerce_bool, parse_limit


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("/")
@require_actor
@require_permission(VIEW_PRODUCTS)
def list_products_route():
    """
    List products with current stock.

    Query: active_only=true to hide inactive products (POS product grid).
    """
    try:
        active_only = coerce_bool(request.args.get("active_only"), "active_only")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    query = db.session.query(Product)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    products = query.order_by(Product.name.asc(), Product.id.asc()).all()
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.get("/low-stock")
@require_actor
@require_permission(VIEW_PRODUCTS)
def low_stock_route():
    try:
        limit = parse_limit(request.args.get("limit"), default=100)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    products = stock_ledger_service.list_low_stock(limit=limit)
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.get("/<int:product_id>/stock")
@require_actor
@require_permission(VIEW_PRODUCTS)
def get_stock_route(product_id: int):
    try:
        stock = stock_ledger_service.get_stock(product_id)
        return jsonify({"product_id": product_id, "stock": stock}), 200
    except StockNotFound as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except Exception:
        current_app.logger.exception("Failed to read stock")
        return jsonify({"error": "Internal server error"}), 500
