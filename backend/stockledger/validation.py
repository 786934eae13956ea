from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from .models import PAYMENT_METHODS
from .services.sales_service import LineItem


# Hard ceiling on units per line; keeps quantity * price far from integer overflow
MAX_LINE_QUANTITY = 100_000
MAX_CART_LINES = 500
MAX_NOTES_LENGTH = 1000


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class CheckoutRequest:
    items: list[LineItem]
    discount_percent: Decimal
    payment_method: str
    notes: str | None


@dataclass(frozen=True)
class DeductRequest:
    product_id: int
    quantity: int


def _pick(payload: dict, *keys: str, default: Any = None) -> Any:
    """First present key wins (camelCase from the Mini App, snake_case aliases)."""
    for key in keys:
        if key in payload:
            return payload[key]
    return default


def coerce_int(name: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def coerce_positive_int(name: str, value: Any, *, maximum: int | None = None) -> int:
    n = coerce_int(name, value)
    if n < 1:
        raise ValidationError(f"{name} must be >= 1")
    if maximum is not None and n > maximum:
        raise ValidationError(f"{name} cannot exceed {maximum}")
    return n


def coerce_percent(name: str, value: Any) -> Decimal:
    """
    Parse a percentage as Decimal. Range is NOT enforced here: the pricing
    calculator clamps discounts into [0, 100].
    """
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"{name} must be a finite number")
        return Decimal(str(value))
    if isinstance(value, (int, str)):
        try:
            pct = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{name} must be a number")
        if not pct.is_finite():
            raise ValidationError(f"{name} must be a finite number")
        return pct
    raise ValidationError(f"{name} must be a number")


def parse_checkout_request(payload: Any) -> CheckoutRequest:
    """
    Validate a checkout body:

        {"items": [{"productId": 1, "quantity": 2}, ...],
         "discount": 10, "paymentMethod": "CASH", "notes": "..."}

    An empty items list is NOT a validation error; the engine reports it as
    EmptyCartError.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    raw_items = _pick(payload, "items", default=[])
    if raw_items is None:
        raw_items = []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    if len(raw_items) > MAX_CART_LINES:
        raise ValidationError(f"items cannot exceed {MAX_CART_LINES} lines")

    items: list[LineItem] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = _pick(raw, "productId", "product_id")
        if product_id is None:
            raise ValidationError(f"items[{index}].productId is required")
        quantity = _pick(raw, "quantity")
        if quantity is None:
            raise ValidationError(f"items[{index}].quantity is required")
        items.append(
            LineItem(
                product_id=coerce_int(f"items[{index}].productId", product_id),
                quantity=coerce_positive_int(
                    f"items[{index}].quantity", quantity, maximum=MAX_LINE_QUANTITY
                ),
            )
        )

    discount = coerce_percent("discount", _pick(payload, "discount", "discountPercent", "discount_percent"))

    payment_method = _pick(payload, "paymentMethod", "payment_method", default="CASH")
    if payment_method is None:
        payment_method = "CASH"
    if not isinstance(payment_method, str):
        raise ValidationError("paymentMethod must be a string")
    payment_method = payment_method.strip().upper()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"paymentMethod must be one of {', '.join(PAYMENT_METHODS)}")

    notes = _pick(payload, "notes")
    if notes is not None:
        notes = str(notes).strip() or None
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes exceeds max length {MAX_NOTES_LENGTH}")

    return CheckoutRequest(
        items=items,
        discount_percent=discount,
        payment_method=payment_method,
        notes=notes,
    )


def parse_deduct_request(payload: Any) -> DeductRequest:
    """
    Validate a scan-to-deduct body: {"productId": 1, "quantity": 1}.

    quantity defaults to 1, as a single scan deducts one unit.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    product_id = _pick(payload, "productId", "product_id")
    if product_id is None or product_id == "":
        raise ValidationError("Product ID is required")

    quantity = _pick(payload, "quantity", default=1)
    if quantity is None:
        quantity = 1

    return DeductRequest(
        product_id=coerce_int("productId", product_id),
        quantity=coerce_positive_int("quantity", quantity, maximum=MAX_LINE_QUANTITY),
    )
