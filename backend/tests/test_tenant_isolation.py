# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that a company can never read or mutate another
company's rows.

These tests create two clinics with their own clients, pets, products,
invoices and shifts, then verify that:
1. Passing a foreign id is reported as "not found" (existence is not revealed)
2. Failed cross-tenant writes leave the foreign rows untouched
3. Listings only return the caller's rows
4. Document numbering is independent per company
"""

from decimal import Decimal

import pytest

from vetclinic.errors import NotFoundError
from vetclinic.services import (
    appointment_service,
    cashier_service,
    client_service,
    hospitalization_service,
    invoice_service,
    ledger_service,
    medical_record_service,
    prescription_service,
    product_service,
)


@pytest.fixture
def product_b(db_session, company_b, make_product):
    return make_product(company_b.id, name="Clinic B Food", initial_stock=10)


@pytest.fixture
def invoice_b(db_session, company_b, client_b):
    return invoice_service.create_sale(
        company_b.id, client_b.id, [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 1}]
    )


class TestProductIsolation:
    """Catalog and stock are scoped by company."""

    def test_cross_tenant_product_read_blocked(self, db_session, company_a, product_b):
        with pytest.raises(NotFoundError):
            product_service.get_product(company_a.id, product_b.id)

    def test_cross_tenant_product_update_blocked(self, db_session, company_a, company_b, product_b):
        with pytest.raises(NotFoundError):
            product_service.update_product(company_a.id, product_b.id, {"sale_price_cents": 1})
        assert product_service.get_product(company_b.id, product_b.id).sale_price_cents == 1000

    def test_cross_tenant_product_cannot_be_sold(self, db_session, company_a, company_b, client_a, product_b):
        with pytest.raises(NotFoundError):
            invoice_service.create_sale(company_a.id, client_a.id, [{"product_id": product_b.id, "quantity": 1}])
        assert product_service.get_product(company_b.id, product_b.id).on_hand == Decimal("10")

    def test_product_listing_is_scoped(self, db_session, company_a, company_b, product_b, make_product):
        make_product(company_a.id, name="Clinic A Food")
        assert [p.name for p in product_service.list_products(company_a.id)] == ["Clinic A Food"]
        assert [p.name for p in product_service.list_products(company_b.id)] == ["Clinic B Food"]


class TestClinicalIsolation:
    """Clients, pets, records and stays are scoped by company."""

    def test_cross_tenant_client_read_blocked(self, db_session, company_a, client_b):
        with pytest.raises(NotFoundError):
            client_service.get_client(company_a.id, client_b.id)

    def test_cross_tenant_client_cannot_be_billed(self, db_session, company_a, client_b):
        with pytest.raises(NotFoundError):
            invoice_service.create_sale(
                company_a.id, client_b.id, [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 1}]
            )

    def test_cross_tenant_pet_blocked(self, db_session, company_a, pet_b):
        with pytest.raises(NotFoundError):
            client_service.get_pet(company_a.id, pet_b.id)
        with pytest.raises(NotFoundError):
            medical_record_service.list_medical_records(company_a.id, pet_b.id)

    def test_cross_tenant_hospitalization_blocked(self, db_session, company_a, company_b, pet_b):
        stay = hospitalization_service.admit_patient(company_b.id, pet_b.id, {"reason": "Surgery recovery"})

        with pytest.raises(NotFoundError):
            hospitalization_service.get_hospitalization(company_a.id, stay.id)
        with pytest.raises(NotFoundError):
            hospitalization_service.discharge_patient(company_a.id, stay.id, {})
        assert hospitalization_service.get_hospitalization(company_b.id, stay.id).status == "ACTIVE"

    def test_cross_tenant_record_edit_blocked(self, db_session, company_a, company_b, pet_b):
        record, _ = medical_record_service.add_medical_record(company_b.id, pet_b.id, {"reason": "Limping"})

        with pytest.raises(NotFoundError):
            medical_record_service.update_medical_record(company_a.id, record.id, {"plan": "Rest"})
        with pytest.raises(NotFoundError):
            medical_record_service.delete_medical_record(company_a.id, record.id)
        assert medical_record_service.get_medical_record(company_b.id, record.id).plan != "Rest"

    def test_cross_tenant_appointment_and_prescription_blocked(self, db_session, company_a, company_b, pet_b):
        appointment = appointment_service.create_appointment(company_b.id, {
            "pet_id": pet_b.id,
            "appointment_date": "2026-11-02",
            "appointment_time": "10:00",
            "reason": "Check-up",
        })
        prescription = prescription_service.add_prescription(
            company_b.id, pet_b.id, {"items": [{"medication": "Meloxicam"}]}
        )

        with pytest.raises(NotFoundError):
            appointment_service.get_appointment(company_a.id, appointment.id)
        with pytest.raises(NotFoundError):
            prescription_service.get_prescription(company_a.id, prescription.id)
        with pytest.raises(NotFoundError):
            prescription_service.add_prescription(company_a.id, pet_b.id, {"items": [{"medication": "X"}]})
        assert appointment_service.list_appointments(company_a.id) == []
        assert len(prescription_service.list_prescriptions(company_b.id, pet_b.id)) == 1


class TestInvoiceIsolation:
    """Invoices, payments and shifts are scoped by company."""

    def test_cross_tenant_invoice_read_blocked(self, db_session, company_a, invoice_b):
        with pytest.raises(NotFoundError):
            invoice_service.get_invoice(company_a.id, invoice_b.id)

    def test_cross_tenant_payment_blocked(self, db_session, company_a, company_b, invoice_b):
        with pytest.raises(NotFoundError):
            invoice_service.record_payment(company_a.id, invoice_b.id, 100, "CASH")
        assert invoice_service.get_invoice(company_b.id, invoice_b.id).amount_paid_cents == 0

    def test_cross_tenant_edit_blocked(self, db_session, company_a, invoice_b):
        with pytest.raises(NotFoundError):
            invoice_service.update_invoice_items(
                company_a.id, invoice_b.id, [{"name": "Free", "unit_price_cents": 0, "quantity": 1}]
            )

    def test_foreign_shift_cannot_take_payment(self, db_session, company_a, company_b, client_a):
        pos_b = cashier_service.create_point_of_sale(company_b.id, "Clinic B Desk")
        shift_b = cashier_service.open_shift(company_b.id, pos_b.id, 0)
        invoice = invoice_service.create_sale(
            company_a.id, client_a.id, [{"name": "Consultation", "unit_price_cents": 1000, "quantity": 1}]
        )

        with pytest.raises(NotFoundError):
            invoice_service.record_payment(company_a.id, invoice.id, 1100, "CASH", cashier_shift_id=shift_b.id)
        assert cashier_service.get_shift(company_b.id, shift_b.id).calculated_cash_total_cents == 0

    def test_invoice_listing_is_scoped(self, db_session, company_a, invoice_b):
        assert invoice_service.list_invoices(company_a.id) == []

    def test_ledger_is_scoped(self, db_session, company_a, company_b, invoice_b):
        assert ledger_service.list_ledger_events(company_a.id) == []
        events = ledger_service.list_ledger_events(company_b.id)
        assert {event.event_type for event in events} == {"invoice.created"}
