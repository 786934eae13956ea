# Overview: Typed failures raised by the stock ledger services.

"""
Ledger error taxonomy.

Every error carries a stable ``code`` and a ``details`` dict with the
structured fields a caller needs to render an actionable message (which
product, how much was available). ``stage`` records where a checkout was
when it failed, when known.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger operation errors."""
    code = "LEDGER_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}
        self.stage: str | None = None

    def to_dict(self) -> dict:
        return {"error": self.code, "message": str(self), "details": self.details}


class EmptyCartError(LedgerError):
    """Raised when a checkout is submitted with no line items."""
    code = "EMPTY_CART"

    def __init__(self):
        super().__init__("Cart has no items")


class ProductNotFoundError(LedgerError):
    """Raised when a product does not exist in the given business."""
    code = "PRODUCT_NOT_FOUND"
    http_status = 404

    def __init__(self, product_id: int):
        super().__init__(f"Product not found: {product_id}", details={"product_id": product_id})
        self.product_id = product_id


class InsufficientStockError(LedgerError):
    """Raised when the requested quantity exceeds the stock on hand."""
    code = "INSUFFICIENT_STOCK"
    http_status = 409

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}",
            details={"product_id": product_id, "requested": requested, "available": available},
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class PersistenceError(LedgerError):
    """Raised when the store fails to commit (connection loss, timeout, constraint)."""
    code = "PERSISTENCE_ERROR"
    http_status = 503

    def __init__(self, message: str = "Failed to persist changes"):
        super().__init__(message)
