from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Business(db.Model):
    """
    Tenant root: every product and transaction belongs to one business.

    Membership (owners, staff, invites) lives outside the ledger; the ledger
    only needs the business row for scoping and its configured tax rate.
    """
    __tablename__ = "businesses"
    __table_args__ = (
        db.CheckConstraint("tax_rate_bps >= 0", name="ck_businesses_tax_rate_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    currency = db.Column(db.String(8), nullable=False, default="USD")

    # Basis points (e.g., 825 = 8.25%)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Business id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "currency": self.currency,
            "tax_rate_bps": self.tax_rate_bps,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
