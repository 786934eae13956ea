# Overview: Business configuration lookups consumed by the ledger.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Business


def get_tax_rate_percent(business_id: int) -> Decimal:
    """
    Tax rate for a business as a percent (825 bps -> Decimal('8.25')).

    A missing business prices with no tax.
    """
    bps = db.session.query(Business.tax_rate_bps).filter_by(id=business_id).scalar()
    if not bps:
        return Decimal(0)
    return Decimal(bps) / Decimal(100)


def create_business(name: str, tax_rate_bps: int = 0, currency: str = "USD") -> Business:
    if not name or not name.strip():
        raise ValueError("name is required")
    if tax_rate_bps < 0:
        raise ValueError("tax_rate_bps must be >= 0")

    business = Business(name=name.strip(), tax_rate_bps=tax_rate_bps, currency=currency)
    db.session.add(business)
    db.session.commit()
    return business
