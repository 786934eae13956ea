# Overview: Flask API routes for product lookups and scan-to-deduct.

# backend/stockledger/routes/products.py
"""Product routes used by the scanner"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import LedgerError
from ..services import inventory_service
from ..validation import ValidationError, parse_deduct_request
from ..decorators import require_session


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("/<int:product_id>")
@require_session
def get_product_route(product_id: int):
    """Get one product of the current business."""
    try:
        product = inventory_service.get_product(product_id, g.business_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify({"product": product.to_dict()}), 200


@products_bp.post("/deduct-stock")
@require_session
def deduct_stock_route():
    """
    Deduct scanned units from stock (no sale is recorded).

    Body: {"productId": 1, "quantity": 1}
    """
    try:
        req = parse_deduct_request(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = inventory_service.deduct_stock(g.business_id, req.product_id, req.quantity)
        return jsonify(result.to_dict()), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to deduct stock")
        return jsonify({"error": "Internal server error"}), 500
