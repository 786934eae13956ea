"""
Sales Service - atomic checkout against the stock ledger

A checkout validates the cart, snapshots prices, persists the Transaction
with its items, decrements stock for every product and raises low-stock
alerts as ONE unit of work. If any decrement loses a race, or the database
fails at any point, everything rolls back: no transaction row, no stock
change, no alert.

Checkout stages (logged at debug level, attached to errors as .stage):
RECEIVED -> VALIDATING -> PRICING -> PERSISTING -> STOCK_ADJUSTING
-> ALERT_CHECKING -> COMMITTED
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from ..errors import EmptyCartError, InsufficientStockError, LedgerError
from ..extensions import db
from ..models import PAYMENT_METHODS, Product, Transaction, TransactionItem
from . import alert_service, business_service, inventory_service
from .concurrency import run_atomic
from .pricing import PricedLine, calculate_totals


RECEIVED = "RECEIVED"
VALIDATING = "VALIDATING"
PRICING = "PRICING"
PERSISTING = "PERSISTING"
STOCK_ADJUSTING = "STOCK_ADJUSTING"
ALERT_CHECKING = "ALERT_CHECKING"
COMMITTED = "COMMITTED"

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200


@dataclass(frozen=True)
class LineItem:
    product_id: int
    quantity: int


class _Progress:
    """Tracks which stage a single checkout attempt has reached."""

    def __init__(self, business_id: int):
        self.business_id = business_id
        self.stage = RECEIVED

    def advance(self, stage: str) -> None:
        self.stage = stage
        current_app.logger.debug("Checkout for business %s: %s", self.business_id, stage)


def _requested_by_product(items: list[LineItem]) -> dict[int, int]:
    totals: dict[int, int] = {}
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


def _validate_lines(business_id: int, items: list[LineItem]) -> dict[int, Product]:
    """
    Advisory pre-check: every product exists in the business and has enough
    stock for the quantity requested across all of its lines.

    The authoritative guard is try_decrement; this closes the common case
    early with a precise error.
    """
    products: dict[int, Product] = {}
    for product_id, requested in _requested_by_product(items).items():
        product = inventory_service.get_product(product_id, business_id)
        if product.stock < requested:
            raise InsufficientStockError(product_id, requested=requested, available=product.stock)
        products[product_id] = product
    return products


def _build_transaction(
    *,
    business_id: int,
    staff_id: int | None,
    items: list[LineItem],
    products: dict[int, Product],
    discount_percent,
    payment_method: str,
    notes: str | None,
    progress: _Progress,
) -> Transaction:
    progress.advance(PRICING)
    priced = [
        PricedLine(
            unit_price_cents=products[item.product_id].sale_price_cents,
            cost_price_cents=products[item.product_id].cost_price_cents,
            quantity=item.quantity,
        )
        for item in items
    ]
    totals = calculate_totals(
        priced,
        discount_percent=discount_percent,
        tax_rate_percent=business_service.get_tax_rate_percent(business_id),
    )

    txn = Transaction(
        business_id=business_id,
        staff_id=staff_id,
        subtotal_cents=totals.subtotal_cents,
        discount_bps=totals.discount_bps,
        discount_cents=totals.discount_cents,
        tax_cents=totals.tax_cents,
        total_cents=totals.total_cents,
        profit_cents=totals.profit_cents,
        payment_method=payment_method,
        notes=notes,
    )
    for position, (item, line) in enumerate(zip(items, priced), start=1):
        txn.items.append(
            TransactionItem(
                product_id=item.product_id,
                position=position,
                product_name=products[item.product_id].name,
                quantity=item.quantity,
                unit_price_cents=line.unit_price_cents,
                cost_price_cents=line.cost_price_cents,
                line_total_cents=line.unit_price_cents * line.quantity,
            )
        )
    return txn


def checkout(
    business_id: int,
    staff_id: int | None,
    items: list[LineItem],
    discount_percent=0,
    payment_method: str = "CASH",
    notes: str | None = None,
) -> Transaction:
    """
    Sell a cart: validate, price, persist and decrement stock atomically.

    Raises EmptyCartError, ProductNotFoundError, InsufficientStockError or
    PersistenceError. On any error nothing is written.
    """
    payment_method = (payment_method or "CASH").upper()
    if payment_method not in PAYMENT_METHODS:
        raise ValueError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
    for item in items:
        if item.quantity < 1:
            raise ValueError("quantity must be >= 1")

    progress = _Progress(business_id)

    def _op() -> Transaction:
        progress.advance(VALIDATING)
        if not items:
            raise EmptyCartError()
        products = _validate_lines(business_id, items)

        txn = _build_transaction(
            business_id=business_id,
            staff_id=staff_id,
            items=items,
            products=products,
            discount_percent=discount_percent,
            payment_method=payment_method,
            notes=notes,
            progress=progress,
        )

        progress.advance(PERSISTING)
        db.session.add(txn)
        db.session.flush()

        # Ascending product id keeps lock order stable across concurrent carts
        progress.advance(STOCK_ADJUSTING)
        new_stock: dict[int, int] = {}
        for product_id, requested in sorted(_requested_by_product(items).items()):
            new_stock[product_id] = inventory_service.try_decrement(product_id, business_id, requested)

        progress.advance(ALERT_CHECKING)
        for product_id, stock in new_stock.items():
            alert_service.check_and_raise(product_id, stock, products[product_id].low_stock_threshold)

        db.session.flush()
        return txn

    try:
        txn = run_atomic(_op, label="Checkout")
    except LedgerError as exc:
        exc.stage = progress.stage
        current_app.logger.warning(
            "Checkout for business %s failed at %s: %s", business_id, progress.stage, exc
        )
        raise

    progress.advance(COMMITTED)
    current_app.logger.info(
        "Transaction %s committed for business %s: %s line(s), total_cents=%s",
        txn.id, business_id, len(items), txn.total_cents,
    )
    return txn


def get_transaction(transaction_id: int, business_id: int) -> Transaction | None:
    return (
        db.session.query(Transaction)
        .filter_by(id=transaction_id, business_id=business_id)
        .first()
    )


def list_transactions(
    business_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = DEFAULT_LIST_LIMIT,
) -> list[Transaction]:
    """
    Newest-first transactions for a business.

    start/end are inclusive and only applied when both are given.
    """
    limit = max(1, min(limit, MAX_LIST_LIMIT))
    q = db.session.query(Transaction).filter(Transaction.business_id == business_id)
    if start is not None and end is not None:
        q = q.filter(Transaction.created_at >= start, Transaction.created_at <= end)
    return q.order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit).all()
