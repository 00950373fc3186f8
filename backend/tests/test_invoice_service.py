# Overview: Pytest coverage for the invoice lifecycle.

"""
Invoice Lifecycle Tests

Counter sales, gap-free numbering, all-or-nothing stock deduction, item
edits (restore-then-deduct) and payments.
"""

from datetime import date
from decimal import Decimal

import pytest

from vetclinic.errors import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from vetclinic.models import Client, Company, Invoice, ProductLot
from vetclinic.services import invoice_service, product_service


def _on_hand(company_id, product_id):
    return product_service.get_product(company_id, product_id).on_hand


def _lot_quantity(db_session, lot_id):
    lot = db_session.get(ProductLot, lot_id)
    return None if lot is None else Decimal(lot.quantity)


class TestCounterSale:
    def test_sale_snapshots_lines_and_deducts_stock(self, db_session, company_a, client_a, pet_a, make_product):
        food = make_product(company_a.id, initial_stock=10)

        invoice = invoice_service.create_sale(
            company_a.id,
            client_a.id,
            [
                {"product_id": food.id, "quantity": 2},
                {"name": "Consultation", "unit_price_cents": 3000, "quantity": 1},
            ],
            pet_id=pet_a.id,
        )

        assert invoice.invoice_number == "1"
        assert invoice.status == "UNPAID"
        assert invoice.source == "counter"
        assert invoice.client_name == "Laura Gomez"
        assert invoice.pet_name == "Toby"
        assert invoice.tax_rate_bps == 1000
        assert invoice.subtotal_cents == 5000
        assert invoice.tax_cents == 500
        assert invoice.total_cents == 5500
        assert invoice.amount_paid_cents == 0
        assert invoice.balance_due_cents == 5500

        food_line, service_line = invoice.items
        assert food_line.name == "Dog Food 2kg"
        assert food_line.unit_price_cents == 1000
        assert food_line.lot_id is None
        assert food_line.lot_number is None
        assert service_line.product_id is None

        assert _on_hand(company_a.id, food.id) == Decimal("8")

    def test_price_and_discount_default_from_product(self, db_session, company_a, client_a, make_product):
        collar = make_product(
            company_a.id,
            name="Flea collar",
            category="ACCESSORY",
            sale_price_cents=2000,
            discount_percentage=10,
            initial_stock=3,
        )

        invoice = invoice_service.create_sale(company_a.id, client_a.id, [{"product_id": collar.id, "quantity": 1}])

        item = invoice.items[0]
        assert item.unit_price_cents == 2000
        assert Decimal(item.discount_percentage) == Decimal("10")
        assert item.line_discount_cents == 200
        assert invoice.total_cents == 1980

    def test_explicit_flat_discount_overrides_product_percentage(self, db_session, company_a, client_a, make_product):
        collar = make_product(company_a.id, sale_price_cents=2000, discount_percentage=10, initial_stock=3)

        invoice = invoice_service.create_sale(
            company_a.id,
            client_a.id,
            [{"product_id": collar.id, "quantity": 2, "discount_amount_cents": 500}],
        )

        item = invoice.items[0]
        assert item.discount_percentage is None
        assert item.line_discount_cents == 500
        assert invoice.subtotal_cents == 4000

    def test_sale_from_named_lot_snapshots_lot(self, db_session, company_a, client_a, make_product, make_lot):
        vaccine = make_product(company_a.id, name="Vaccine", category="MEDICINE", uses_lot_tracking=True)
        l1 = make_lot(company_a.id, vaccine.id, 10, "L1", "2024-01-01")
        l2 = make_lot(company_a.id, vaccine.id, 5, "L2", "2024-06-01")

        invoice = invoice_service.create_sale(
            company_a.id, client_a.id, [{"product_id": vaccine.id, "quantity": 3, "lot_id": l1}]
        )

        item = invoice.items[0]
        assert item.lot_id == l1
        assert item.lot_number == "L1"
        assert item.lot_expiration_date == date(2024, 1, 1)
        assert _lot_quantity(db_session, l1) == Decimal("7")
        assert _lot_quantity(db_session, l2) == Decimal("5")

    def test_failed_line_rolls_back_every_line(self, db_session, company_a, client_a, make_product):
        food = make_product(company_a.id, name="Food", initial_stock=10)
        treats = make_product(company_a.id, name="Treats", initial_stock=1)

        with pytest.raises(InsufficientStockError):
            invoice_service.create_sale(
                company_a.id,
                client_a.id,
                [
                    {"product_id": food.id, "quantity": 4},
                    {"product_id": treats.id, "quantity": 2},
                ],
            )

        assert _on_hand(company_a.id, food.id) == Decimal("10")
        assert _on_hand(company_a.id, treats.id) == Decimal("1")
        assert db_session.query(Invoice).count() == 0

        # The failed sale did not consume a number
        invoice = invoice_service.create_sale(company_a.id, client_a.id, [{"product_id": food.id, "quantity": 1}])
        assert invoice.invoice_number == "1"

    def test_skip_stock_deduction(self, db_session, company_a, client_a, make_product):
        food = make_product(company_a.id, initial_stock=1)
        invoice_service.create_sale(
            company_a.id,
            client_a.id,
            [{"product_id": food.id, "quantity": 5}],
            skip_stock_deduction=True,
        )
        assert _on_hand(company_a.id, food.id) == Decimal("1")

    def test_empty_items_rejected(self, db_session, company_a, client_a):
        with pytest.raises(ValidationError):
            invoice_service.create_sale(company_a.id, client_a.id, [])

    def test_pet_must_belong_to_client(self, db_session, company_a, client_a, pet_a):
        other = Client(company_id=company_a.id, name="Someone Else")
        db_session.add(other)
        db_session.commit()

        with pytest.raises(ValidationError):
            invoice_service.create_sale(
                company_a.id,
                other.id,
                [{"name": "Bath", "unit_price_cents": 1500, "quantity": 1}],
                pet_id=pet_a.id,
            )

    def test_unknown_client(self, db_session, company_a):
        with pytest.raises(NotFoundError):
            invoice_service.create_sale(
                company_a.id, 424242, [{"name": "Bath", "unit_price_cents": 1500, "quantity": 1}]
            )

    def test_preview_matches_stored_totals(self, db_session, company_a, client_a, make_product):
        food = make_product(company_a.id, sale_price_cents=1999, discount_percentage=5, initial_stock=10)
        items = [
            {"product_id": food.id, "quantity": 3},
            {"name": "Nail trim", "unit_price_cents": 850, "quantity": 1, "discount_amount_cents": 100},
        ]

        preview = invoice_service.preview_totals(company_a.id, items)
        assert _on_hand(company_a.id, food.id) == Decimal("10")

        invoice = invoice_service.create_sale(company_a.id, client_a.id, items)
        assert preview.subtotal_cents == invoice.subtotal_cents
        assert preview.total_discount_cents == invoice.total_discount_cents
        assert preview.tax_cents == invoice.tax_cents
        assert preview.total_cents == invoice.total_cents


class TestNumbering:
    def test_independent_company_sequences(self, db_session, company_a, company_b, client_a, client_b):
        line = [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 1}]

        numbers_a = [invoice_service.create_sale(company_a.id, client_a.id, line).invoice_number for _ in range(3)]
        numbers_b = [invoice_service.create_sale(company_b.id, client_b.id, line).invoice_number for _ in range(2)]

        assert numbers_a == ["1", "2", "3"]
        assert numbers_b == ["1", "2"]

    def test_sequence_seeds_after_existing_numbers(self, db_session, company_a, client_a):
        legacy = Invoice(
            company_id=company_a.id,
            invoice_number="41",
            client_id=client_a.id,
            client_name=client_a.name,
            invoice_date=date(2024, 5, 1),
        )
        db_session.add(legacy)
        db_session.commit()

        invoice = invoice_service.create_sale(
            company_a.id, client_a.id, [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 1}]
        )
        assert invoice.invoice_number == "42"


class TestEditItems:
    def test_edit_nets_the_difference(self, db_session, company_a, client_a, make_product, make_lot):
        vaccine = make_product(company_a.id, category="MEDICINE", uses_lot_tracking=True, sale_price_cents=1500)
        lot_id = make_lot(company_a.id, vaccine.id, 10, "E1")

        invoice = invoice_service.create_sale(
            company_a.id, client_a.id, [{"product_id": vaccine.id, "quantity": 2, "lot_id": lot_id}]
        )
        assert _lot_quantity(db_session, lot_id) == Decimal("8")

        invoice = invoice_service.update_invoice_items(
            company_a.id, invoice.id, [{"product_id": vaccine.id, "quantity": 5, "lot_id": lot_id}]
        )

        assert _lot_quantity(db_session, lot_id) == Decimal("5")
        assert len(invoice.items) == 1
        assert invoice.subtotal_cents == 7500
        assert invoice.balance_due_cents == invoice.total_cents

    def test_edit_uses_stored_tax_rate(self, db_session, company_a, client_a):
        line = [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 1}]
        invoice = invoice_service.create_sale(company_a.id, client_a.id, line)

        company = db_session.get(Company, company_a.id)
        company.tax_rate_bps = 2000
        db_session.commit()

        invoice = invoice_service.update_invoice_items(
            company_a.id, invoice.id, [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 2}]
        )
        assert invoice.tax_rate_bps == 1000
        assert invoice.tax_cents == 600
        assert invoice.total_cents == 6600

    def test_edit_recreates_pruned_lot(self, db_session, company_a, client_a, make_product, make_lot):
        vaccine = make_product(company_a.id, category="MEDICINE", uses_lot_tracking=True)
        lot_id = make_lot(company_a.id, vaccine.id, 5, "P1", "2027-02-28")

        invoice = invoice_service.create_sale(
            company_a.id, client_a.id, [{"product_id": vaccine.id, "quantity": 5, "lot_id": lot_id}]
        )
        assert _lot_quantity(db_session, lot_id) is None

        invoice_service.update_invoice_items(
            company_a.id, invoice.id, [{"product_id": vaccine.id, "quantity": 2, "lot_id": lot_id}]
        )

        lot = db_session.get(ProductLot, lot_id)
        assert lot.lot_number == "P1"
        assert lot.expiration_date == date(2027, 2, 28)
        assert Decimal(lot.quantity) == Decimal("3")

    def test_failed_edit_keeps_original_items_and_stock(self, db_session, company_a, client_a, make_product):
        food = make_product(company_a.id, initial_stock=5)
        invoice = invoice_service.create_sale(company_a.id, client_a.id, [{"product_id": food.id, "quantity": 2}])

        with pytest.raises(InsufficientStockError):
            invoice_service.update_invoice_items(
                company_a.id, invoice.id, [{"product_id": food.id, "quantity": 6}]
            )

        invoice = invoice_service.get_invoice(company_a.id, invoice.id)
        assert [Decimal(item.quantity) for item in invoice.items] == [Decimal("2")]
        assert _on_hand(company_a.id, food.id) == Decimal("3")

    def test_edit_after_payment_rejected(self, db_session, company_a, client_a):
        invoice = invoice_service.create_sale(
            company_a.id, client_a.id, [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 1}]
        )
        invoice_service.record_payment(company_a.id, invoice.id, 1000, "CARD")

        with pytest.raises(InvalidStateError):
            invoice_service.update_invoice_items(
                company_a.id, invoice.id, [{"name": "Consultation", "unit_price_cents": 1000, "quantity": 1}]
            )


class TestPayments:
    @pytest.fixture
    def invoice(self, db_session, company_a, client_a):
        # 3000 + 10% tax = 3300
        return invoice_service.create_sale(
            company_a.id, client_a.id, [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 1}]
        )

    def test_partial_then_full_payment(self, db_session, company_a, invoice):
        invoice = invoice_service.record_payment(company_a.id, invoice.id, 1300, "card")
        assert invoice.status == "UNPAID"
        assert invoice.amount_paid_cents == 1300
        assert invoice.balance_due_cents == 2000

        invoice = invoice_service.record_payment(company_a.id, invoice.id, 2000, "CASH")
        assert invoice.status == "PAID"
        assert invoice.balance_due_cents == 0
        assert [p.method for p in invoice.payments] == ["CARD", "CASH"]

    def test_overpayment_rejected(self, db_session, company_a, invoice):
        with pytest.raises(ValidationError):
            invoice_service.record_payment(company_a.id, invoice.id, 3301, "CASH")

        invoice = invoice_service.get_invoice(company_a.id, invoice.id)
        assert invoice.amount_paid_cents == 0
        assert invoice.payments == []

    def test_paid_invoice_rejects_payments(self, db_session, company_a, invoice):
        invoice_service.record_payment(company_a.id, invoice.id, 3300, "TRANSFER")
        with pytest.raises(InvalidStateError):
            invoice_service.record_payment(company_a.id, invoice.id, 1, "CASH")

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_rejected(self, db_session, company_a, invoice, amount):
        with pytest.raises(ValidationError):
            invoice_service.record_payment(company_a.id, invoice.id, amount, "CASH")

    def test_unknown_method_rejected(self, db_session, company_a, invoice):
        with pytest.raises(ValidationError):
            invoice_service.record_payment(company_a.id, invoice.id, 100, "BITCOIN")

    def test_overdue_invoice_is_still_payable(self, db_session, company_a, invoice):
        row = db_session.get(Invoice, invoice.id)
        row.status = "OVERDUE"
        db_session.commit()

        invoice = invoice_service.record_payment(company_a.id, invoice.id, 3300, "CASH")
        assert invoice.status == "PAID"


class TestZeroTotal:
    """An invoice with nothing to collect is settled when it is stored."""

    def test_full_discount_sale_is_paid(self, db_session, company_a, client_a, make_product):
        food = make_product(company_a.id, initial_stock=3)

        invoice = invoice_service.create_sale(
            company_a.id, client_a.id, [{"product_id": food.id, "quantity": 1, "discount_percentage": 100}]
        )

        assert invoice.total_cents == 0
        assert invoice.balance_due_cents == 0
        assert invoice.status == "PAID"
        assert _on_hand(company_a.id, food.id) == Decimal("2")
        with pytest.raises(InvalidStateError):
            invoice_service.record_payment(company_a.id, invoice.id, 1, "CASH")

    def test_zero_priced_line_is_paid(self, db_session, company_a, client_a):
        invoice = invoice_service.create_sale(
            company_a.id, client_a.id, [{"name": "Courtesy check", "unit_price_cents": 0, "quantity": 1}]
        )
        assert invoice.status == "PAID"
        assert invoice.payments == []

    def test_edit_down_to_zero_settles_invoice(self, db_session, company_a, client_a):
        invoice = invoice_service.create_sale(
            company_a.id, client_a.id, [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 1}]
        )
        assert invoice.status == "UNPAID"

        invoice = invoice_service.update_invoice_items(
            company_a.id,
            invoice.id,
            [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 1, "discount_percentage": 100}],
        )
        assert invoice.balance_due_cents == 0
        assert invoice.status == "PAID"
