# Overview: Pytest coverage for invoice totals arithmetic.

"""
Totals arithmetic tests.

compute_totals is pure, so these run without a database.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from vetclinic.services.billing_math import LineInput, compute_line, compute_totals


def line(price, qty, pct=None, amount=None):
    return LineInput(
        unit_price_cents=price,
        quantity=Decimal(str(qty)),
        discount_percentage=Decimal(str(pct)) if pct is not None else None,
        discount_amount_cents=amount,
    )


class TestLineDiscounts:
    def test_percentage_discount_applies_to_gross(self):
        result = compute_line(line(1000, 2, pct=10))
        assert result.subtotal_cents == 2000
        assert result.discount_cents == 200
        assert result.total_cents == 1800

    def test_zero_percentage_takes_precedence_over_flat_amount(self):
        result = compute_line(line(1000, 1, pct=0, amount=500))
        assert result.discount_cents == 0
        assert result.total_cents == 1000

    def test_flat_amount_applies_once_per_line(self):
        result = compute_line(line(1000, 3, amount=250))
        assert result.subtotal_cents == 3000
        assert result.discount_cents == 250
        assert result.total_cents == 2750

    def test_discount_capped_at_gross(self):
        result = compute_line(line(100, 1, amount=500))
        assert result.discount_cents == 100
        assert result.total_cents == 0

    def test_fractional_quantity_rounds_half_up(self):
        result = compute_line(line(333, 1.5))
        assert result.subtotal_cents == 500

    def test_accepts_invoice_item_like_objects(self):
        item = SimpleNamespace(
            unit_price_cents=1250,
            quantity=Decimal("2.000"),
            discount_percentage=None,
            discount_amount_cents=None,
        )
        assert compute_line(item).total_cents == 2500


class TestInvoiceTotals:
    def test_tax_on_taxable_amount_rounds_half_up(self):
        totals = compute_totals([line(1005, 1)], 1000)
        assert totals.subtotal_cents == 1005
        assert totals.tax_cents == 101
        assert totals.total_cents == 1106

    def test_zero_rate(self):
        totals = compute_totals([line(1000, 2, pct=50)], 0)
        assert totals.tax_cents == 0
        assert totals.total_cents == 1000

    def test_empty_items(self):
        totals = compute_totals([], 1200)
        assert totals.subtotal_cents == 0
        assert totals.total_cents == 0
        assert totals.lines == ()

    def test_line_breakdown_sums_to_header(self):
        items = [line(1000, 2, pct=10), line(450, 3, amount=100), line(999, 0.5)]
        totals = compute_totals(items, 1600)
        assert totals.subtotal_cents == sum(l.subtotal_cents for l in totals.lines)
        assert totals.total_discount_cents == sum(l.discount_cents for l in totals.lines)
        assert totals.taxable_cents + totals.tax_cents == totals.total_cents

    @pytest.mark.parametrize("tax_rate_bps", [0, 500, 1000, 1250, 1600, 2100])
    def test_totals_invariant(self, tax_rate_bps):
        """total == (subtotal - discount) * (1 + rate) within half a cent; never negative."""
        cases = [
            [line(1000, 1)],
            [line(1999, 3, pct=12.5), line(250, 7, amount=300)],
            [line(1, 1), line(3, 2, pct=33)],
            [line(12345, 1.25, pct=7), line(800, 2, amount=5000), line(75, 10)],
        ]
        for items in cases:
            totals = compute_totals(items, tax_rate_bps)
            exact = Decimal(totals.subtotal_cents - totals.total_discount_cents) * (
                1 + Decimal(tax_rate_bps) / Decimal(10000)
            )
            assert abs(Decimal(totals.total_cents) - exact) <= Decimal("0.5")
            assert totals.total_cents >= 0

    def test_totals_are_idempotent(self):
        items = [line(1999, 3, pct=12.5), line(250, 7, amount=300)]
        first = compute_totals(items, 1000)
        second = compute_totals(items, 1000)
        assert first == second
        assert first.to_dict() == second.to_dict()
