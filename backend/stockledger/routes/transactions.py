# Overview: Flask API routes for checkout and transaction history.

# backend/stockledger/routes/transactions.py
"""Transaction API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import LedgerError
from ..services import sales_service
from ..time_utils import parse_date_range
from ..validation import ValidationError, coerce_positive_int, parse_checkout_request
from ..decorators import require_session


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_session
def checkout_route():
    """
    Check out a cart.

    Body: {"items": [{"productId": 1, "quantity": 2}], "discount": 10,
           "paymentMethod": "CASH", "notes": "..."}
    """
    try:
        req = parse_checkout_request(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        txn = sales_service.checkout(
            business_id=g.business_id,
            staff_id=g.staff_id,
            items=req.items,
            discount_percent=req.discount_percent,
            payment_method=req.payment_method,
            notes=req.notes,
        )
        return jsonify({"transaction": txn.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("")
@require_session
def list_transactions_route():
    """
    List transactions, newest first.

    Query: startDate, endDate (ISO-8601, inclusive, both required to filter),
    limit (default 50, max 200).
    """
    try:
        start, end = parse_date_range(request.args.get("startDate"), request.args.get("endDate"))
    except ValueError as e:
        return jsonify({"error": f"Invalid date range: {e}"}), 400

    try:
        limit = coerce_positive_int(
            "limit", request.args.get("limit", sales_service.DEFAULT_LIST_LIMIT)
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    transactions = sales_service.list_transactions(g.business_id, start=start, end=end, limit=limit)
    return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200


@transactions_bp.get("/<int:transaction_id>")
@require_session
def get_transaction_route(transaction_id: int):
    txn = sales_service.get_transaction(transaction_id, g.business_id)
    if txn is None:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify({"transaction": txn.to_dict()}), 200
