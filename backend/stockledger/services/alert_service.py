# Overview: Low-stock alert monitor; raises at most one open alert per product.

"""
Low-stock alert rules:

- A product is low when current_stock <= threshold (inclusive).
- At most one open (non-dismissed) alert exists per product. While one is
  open, further low-stock events are no-ops; once staff dismiss it, the next
  low-stock event raises a fresh alert.
- Alerts are written inside the caller's unit of work, together with the
  stock change they describe.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import LowStockAlert, Product
from ..time_utils import utcnow
from .concurrency import run_atomic


class AlertNotFoundError(Exception):
    """Raised when an alert does not exist in the caller's business."""
    pass


def get_open_alert(product_id: int) -> LowStockAlert | None:
    return (
        db.session.query(LowStockAlert)
        .filter_by(product_id=product_id, dismissed=False)
        .first()
    )


def check_and_raise(product_id: int, current_stock: int, threshold: int) -> LowStockAlert | None:
    """
    Raise a low-stock alert if stock is at or below threshold and none is open.

    Returns the open alert for the product (new or existing), or None when
    stock is above threshold. Idempotent. Does not commit.
    """
    if current_stock > threshold:
        return None

    existing = get_open_alert(product_id)
    if existing is not None:
        return existing

    alert = LowStockAlert(
        product_id=product_id,
        current_stock=current_stock,
        threshold=threshold,
        dismissed=False,
    )
    try:
        with db.session.begin_nested():
            db.session.add(alert)
    except IntegrityError:
        # A concurrent writer opened the alert first (partial unique index)
        return get_open_alert(product_id)
    return alert


def list_open_alerts(business_id: int) -> list[LowStockAlert]:
    return (
        db.session.query(LowStockAlert)
        .join(Product, Product.id == LowStockAlert.product_id)
        .filter(Product.business_id == business_id, LowStockAlert.dismissed.is_(False))
        .order_by(LowStockAlert.created_at.desc(), LowStockAlert.id.desc())
        .all()
    )


def dismiss_alert(alert_id: int, business_id: int) -> LowStockAlert:
    """Mark an alert dismissed so the next low-stock event can raise a new one."""
    def _op() -> LowStockAlert:
        alert = (
            db.session.query(LowStockAlert)
            .join(Product, Product.id == LowStockAlert.product_id)
            .filter(LowStockAlert.id == alert_id, Product.business_id == business_id)
            .first()
        )
        if alert is None:
            raise AlertNotFoundError(f"Alert not found: {alert_id}")

        if not alert.dismissed:
            alert.dismissed = True
            alert.dismissed_at = utcnow()
        return alert

    return run_atomic(_op, label="Alert dismissal")
