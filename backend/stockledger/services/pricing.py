# Overview: Pure pricing arithmetic for checkout totals; no I/O.

"""
Totals calculator.

All amounts are integer cents. Percentages are Decimals (10 = 10%).

Rounding policy:
- subtotal and raw profit are exact sums of integer cents.
- discount and tax are each rounded once, half-up, to whole cents.
- total and profit are derived from the rounded amounts, so
  total == subtotal - discount + tax and profit == raw_profit - discount
  hold exactly.

Discount percentages outside [0, 100] are clamped, never rejected.
Negative tax rates are treated as 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple, Union

Number = Union[int, float, str, Decimal]

HUNDRED = Decimal(100)


class PricedLine(NamedTuple):
    unit_price_cents: int
    cost_price_cents: int
    quantity: int


@dataclass(frozen=True)
class Totals:
    subtotal_cents: int
    discount_percent: Decimal
    discount_cents: int
    taxable_cents: int
    tax_rate_percent: Decimal
    tax_cents: int
    total_cents: int
    raw_profit_cents: int
    profit_cents: int

    @property
    def discount_bps(self) -> int:
        return int((self.discount_percent * HUNDRED).to_integral_value(rounding=ROUND_HALF_UP))

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "discount_percent": str(self.discount_percent),
            "discount_cents": self.discount_cents,
            "taxable_cents": self.taxable_cents,
            "tax_rate_percent": str(self.tax_rate_percent),
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "raw_profit_cents": self.raw_profit_cents,
            "profit_cents": self.profit_cents,
        }


def to_decimal(value: Number | None) -> Decimal:
    """Convert user-supplied numbers without float artifacts (0.1 -> Decimal('0.1'))."""
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def clamp_percent(value: Number | None) -> Decimal:
    pct = to_decimal(value)
    if pct < 0:
        return Decimal(0)
    if pct > HUNDRED:
        return HUNDRED
    return pct


def round_cents(amount: Decimal) -> int:
    """Round a fractional cent amount half-up to whole cents."""
    return int(amount.to_integral_value(rounding=ROUND_HALF_UP))


def calculate_totals(
    lines: Iterable[PricedLine],
    discount_percent: Number | None = 0,
    tax_rate_percent: Number | None = 0,
) -> Totals:
    """Compute subtotal, discount, tax, total and profit for a set of lines."""
    subtotal = 0
    raw_profit = 0
    for line in lines:
        subtotal += line.unit_price_cents * line.quantity
        raw_profit += (line.unit_price_cents - line.cost_price_cents) * line.quantity

    discount_pct = clamp_percent(discount_percent)
    tax_pct = to_decimal(tax_rate_percent)
    if tax_pct < 0:
        tax_pct = Decimal(0)

    discount = round_cents(Decimal(subtotal) * discount_pct / HUNDRED)
    taxable = subtotal - discount
    tax = round_cents(Decimal(taxable) * tax_pct / HUNDRED)

    return Totals(
        subtotal_cents=subtotal,
        discount_percent=discount_pct,
        discount_cents=discount,
        taxable_cents=taxable,
        tax_rate_percent=tax_pct,
        tax_cents=tax,
        total_cents=taxable + tax,
        raw_profit_cents=raw_profit,
        profit_cents=raw_profit - discount,
    )
