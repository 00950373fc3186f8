# Overview: Invoice totals arithmetic (pure; no database access).

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..numbers import round_cents

"""
Ledger arithmetic rules (authoritative)

- line gross      = unit_price_cents * quantity, rounded half-up to the cent
- line discount   = gross * discount_percentage / 100 when a percentage is set
                    (0 included); otherwise discount_amount_cents, applied ONCE
                    per line regardless of quantity
- line discount is capped at the line gross
- taxable         = subtotal - total_discount
- tax             = taxable * tax_rate_bps / 10000, rounded half-up
- total           = taxable + tax

The same function backs the preview endpoint and persisted invoices, so a
preview always matches what gets stored.
"""

BPS_DENOMINATOR = Decimal(10000)


@dataclass(frozen=True)
class LineInput:
    unit_price_cents: int
    quantity: Decimal
    discount_percentage: Decimal | None = None
    discount_amount_cents: int | None = None


@dataclass(frozen=True)
class LineTotals:
    subtotal_cents: int
    discount_cents: int
    total_cents: int


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal_cents: int
    total_discount_cents: int
    tax_cents: int
    total_cents: int
    lines: tuple[LineTotals, ...]

    @property
    def taxable_cents(self) -> int:
        return self.subtotal_cents - self.total_discount_cents

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "total_discount_cents": self.total_discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "lines": [
                {
                    "line_subtotal_cents": line.subtotal_cents,
                    "line_discount_cents": line.discount_cents,
                    "line_total_cents": line.total_cents,
                }
                for line in self.lines
            ],
        }


def compute_line(item) -> LineTotals:
    """
    Totals for one line. `item` is duck typed: an InvoiceItem row or a LineInput.
    """
    quantity = Decimal(item.quantity)
    gross = round_cents(Decimal(item.unit_price_cents) * quantity)

    if item.discount_percentage is not None:
        discount = round_cents(Decimal(gross) * Decimal(item.discount_percentage) / Decimal(100))
    elif item.discount_amount_cents:
        discount = int(item.discount_amount_cents)
    else:
        discount = 0

    discount = max(0, min(discount, gross))
    return LineTotals(subtotal_cents=gross, discount_cents=discount, total_cents=gross - discount)


def compute_totals(items, tax_rate_bps: int) -> InvoiceTotals:
    """Compute invoice totals. Pure and deterministic."""
    lines = tuple(compute_line(item) for item in items)

    subtotal = sum(line.subtotal_cents for line in lines)
    total_discount = sum(line.discount_cents for line in lines)
    taxable = subtotal - total_discount

    tax = round_cents(Decimal(taxable) * Decimal(tax_rate_bps or 0) / BPS_DENOMINATOR)
    if tax < 0:
        tax = 0

    return InvoiceTotals(
        subtotal_cents=subtotal,
        total_discount_cents=total_discount,
        tax_cents=tax,
        total_cents=taxable + tax,
        lines=lines,
    )
