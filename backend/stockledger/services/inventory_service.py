# Overview: Service-layer operations for inventory; owns the stock counter and its only mutation path.

"""
Inventory Invariants (authoritative)

Stock model:
- Product.stock is the on-hand count for one product in one business.
- stock never goes negative as an effect of the ledger.

Mutation:
- try_decrement is the ONLY code path that lowers stock. It is a single
  conditional UPDATE (stock = stock - :qty WHERE ... AND stock >= :qty), so
  the check and the write are one indivisible statement. Two concurrent
  sales for the last unit cannot both succeed.
- Read-then-write on Product.stock is forbidden.
- try_decrement never commits; callers run it inside run_atomic.

Alerts:
- No alert logic here; callers hand the resulting stock to alert_service.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import update

from ..errors import InsufficientStockError, ProductNotFoundError
from ..extensions import db
from ..models import LowStockAlert, Product
from . import alert_service
from .concurrency import run_atomic


@dataclass
class DeductResult:
    product: Product
    deducted: int
    new_stock: int
    alert: LowStockAlert | None = None

    def to_dict(self) -> dict:
        return {
            "product": self.product.to_dict(),
            "deducted": self.deducted,
            "newStock": self.new_stock,
            "alert": self.alert.to_dict() if self.alert else None,
        }


def get_product(product_id: int, business_id: int) -> Product:
    """Fetch a product scoped to its business, or raise ProductNotFoundError."""
    product = (
        db.session.query(Product)
        .filter_by(id=product_id, business_id=business_id)
        .first()
    )
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def get_stock(product_id: int, business_id: int) -> int | None:
    """Current stock straight from the database (bypasses the identity map)."""
    return (
        db.session.query(Product.stock)
        .filter_by(id=product_id, business_id=business_id)
        .scalar()
    )


def try_decrement(product_id: int, business_id: int, quantity: int) -> int:
    """
    Atomically lower stock by quantity if enough is on hand.

    Returns the new stock. Raises ProductNotFoundError or
    InsufficientStockError (with the stock seen after the failed update).
    Does not commit.
    """
    if quantity < 1:
        raise ValueError("quantity must be >= 1")

    stmt = (
        update(Product)
        .where(
            Product.id == product_id,
            Product.business_id == business_id,
            Product.stock >= quantity,
        )
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    new_stock = get_stock(product_id, business_id)
    if result.rowcount != 1:
        if new_stock is None:
            raise ProductNotFoundError(product_id)
        raise InsufficientStockError(product_id, requested=quantity, available=new_stock)
    return new_stock


def deduct_stock(business_id: int, product_id: int, quantity: int) -> DeductResult:
    """
    Scan-to-deduct: remove quantity units without recording a sale.

    Used by the scanner for stock corrections. Shares try_decrement and the
    alert check with checkout; creates no Transaction.
    """
    if quantity < 1:
        raise ValueError("quantity must be >= 1")

    def _op() -> DeductResult:
        product = get_product(product_id, business_id)
        if product.stock < quantity:
            raise InsufficientStockError(product_id, requested=quantity, available=product.stock)

        new_stock = try_decrement(product_id, business_id, quantity)
        alert = alert_service.check_and_raise(product_id, new_stock, product.low_stock_threshold)

        db.session.flush()
        return DeductResult(product=product, deducted=quantity, new_stock=new_stock, alert=alert)

    result = run_atomic(_op, label="Stock deduction")
    db.session.refresh(result.product)
    current_app.logger.info(
        "Deducted %s unit(s) of product %s (business %s); stock now %s",
        quantity, product_id, business_id, result.new_stock,
    )
    return result


def create_product(
    *,
    business_id: int,
    name: str,
    cost_price_cents: int = 0,
    sale_price_cents: int = 0,
    stock: int = 0,
    low_stock_threshold: int = 5,
) -> Product:
    """
    Register a product with its opening stock.

    A product that starts at or below its threshold raises its alert
    immediately.
    """
    if not name or not name.strip():
        raise ValueError("name is required")
    for field, value in (
        ("cost_price_cents", cost_price_cents),
        ("sale_price_cents", sale_price_cents),
        ("stock", stock),
        ("low_stock_threshold", low_stock_threshold),
    ):
        if value < 0:
            raise ValueError(f"{field} must be >= 0")

    def _op() -> Product:
        product = Product(
            business_id=business_id,
            name=name.strip(),
            cost_price_cents=cost_price_cents,
            sale_price_cents=sale_price_cents,
            stock=stock,
            low_stock_threshold=low_stock_threshold,
        )
        db.session.add(product)
        db.session.flush()
        alert_service.check_and_raise(product.id, product.stock, product.low_stock_threshold)
        return product

    return run_atomic(_op, label="Product creation")
