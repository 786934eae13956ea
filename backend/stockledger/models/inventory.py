from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data with its on-hand stock count.

    MULTI-TENANT: Products are scoped to a business via business_id.

    STOCK INVARIANT:
    stock is never negative. The ledger mutates it only through
    inventory_service.try_decrement (a single conditional UPDATE); the check
    constraint below is the database's last line of defence.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("low_stock_threshold >= 0", name="ck_products_threshold_non_negative"),
        db.CheckConstraint("cost_price_cents >= 0", name="ck_products_cost_non_negative"),
        db.CheckConstraint("sale_price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_business_name", "business_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=5)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock} business_id={self.business_id}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.low_stock_threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "cost_price_cents": self.cost_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "stock": self.stock,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class LowStockAlert(db.Model):
    """
    Standing notification that a product fell to or below its threshold.

    current_stock and threshold are snapshots taken when the alert was raised.

    INVARIANT: at most one open (dismissed = false) alert per product.
    Enforced in alert_service.check_and_raise and by the partial unique index.
    """
    __tablename__ = "low_stock_alerts"
    __table_args__ = (
        db.Index(
            "uq_low_stock_alerts_open_product",
            "product_id",
            unique=True,
            sqlite_where=db.text("dismissed = 0"),
            postgresql_where=db.text("NOT dismissed"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    current_stock = db.Column(db.Integer, nullable=False)
    threshold = db.Column(db.Integer, nullable=False)

    dismissed = db.Column(db.Boolean, nullable=False, default=False, index=True)
    dismissed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("low_stock_alerts", lazy=True))

    def __repr__(self) -> str:
        return (
            f"<LowStockAlert id={self.id} product_id={self.product_id} "
            f"current_stock={self.current_stock} dismissed={self.dismissed}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "current_stock": self.current_stock,
            "threshold": self.threshold,
            "dismissed": self.dismissed,
            "dismissed_at": to_utc_z(self.dismissed_at) if self.dismissed_at else None,
            "created_at": to_utc_z(self.created_at),
        }
