# Overview: Pytest coverage for the HTTP API surface.

"""
API Tests

Exercises the blueprints through the Flask test client: status codes,
error mapping and an end-to-end counter sale.
"""

import pytest


def _url(company_id, path):
    return f"/api/companies/{company_id}{path}"


class TestHealth:
    def test_health_ok(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "ok"
        assert body["checks"]["database"]["status"] == "healthy"


class TestCounterSaleFlow:
    def test_sale_preview_and_payment(self, client, db_session, company_a, client_a, pet_a):
        response = client.post(_url(company_a.id, "/products"), json={
            "name": "Cat Food 1kg",
            "category": "FOOD",
            "sale_price_cents": 1200,
            "initial_stock": 5,
        })
        assert response.status_code == 201
        product_id = response.get_json()["product"]["id"]

        items = [{"product_id": product_id, "quantity": 2}]
        preview = client.post(_url(company_a.id, "/invoices/preview"), json={"items": items})
        assert preview.status_code == 200
        assert preview.get_json()["totals"]["total_cents"] == 2640

        response = client.post(_url(company_a.id, "/counter-sales"), json={
            "client_id": client_a.id,
            "pet_id": pet_a.id,
            "items": items,
        })
        assert response.status_code == 201
        invoice = response.get_json()["invoice"]
        assert invoice["invoice_number"] == "1"
        assert invoice["total_cents"] == 2640
        assert invoice["items"][0]["name"] == "Cat Food 1kg"

        product = client.get(_url(company_a.id, f"/products/{product_id}")).get_json()["product"]
        assert product["on_hand"] == 3

        response = client.post(
            _url(company_a.id, f"/invoices/{invoice['id']}/payments"),
            json={"amount_cents": 2640, "method": "CARD"},
        )
        assert response.status_code == 201
        assert response.get_json()["invoice"]["status"] == "PAID"

        listing = client.get(_url(company_a.id, "/invoices?status=PAID")).get_json()["invoices"]
        assert [row["id"] for row in listing] == [invoice["id"]]

    def test_discharge_endpoint(self, client, db_session, company_a, pet_a):
        product = client.post(_url(company_a.id, "/products"), json={
            "name": "Meloxicam",
            "category": "MEDICINE",
            "sale_price_cents": 600,
            "initial_stock": 4,
        }).get_json()["product"]

        stay = client.post(
            _url(company_a.id, "/hospitalizations"), json={"pet_id": pet_a.id, "reason": "Post-op"}
        )
        assert stay.status_code == 201
        stay_id = stay.get_json()["hospitalization"]["id"]

        entry = client.post(
            _url(company_a.id, f"/hospitalizations/{stay_id}/logs"),
            json={"log_type": "med", "product_id": product["id"], "quantity": 1},
        )
        assert entry.status_code == 201

        response = client.post(
            _url(company_a.id, f"/hospitalizations/{stay_id}/discharge"),
            json={"discharge_outcome": "STABLE"},
        )
        assert response.status_code == 200
        body = response.get_json()
        assert body["hospitalization"]["status"] == "DISCHARGED"
        assert body["invoice"]["source"] == "hospitalization"
        assert body["invoice"]["subtotal_cents"] == 600


class TestClinicFlow:
    def test_appointment_lifecycle(self, client, db_session, company_a, pet_a):
        response = client.post(_url(company_a.id, "/appointments"), json={
            "pet_id": pet_a.id,
            "appointment_date": "2026-11-02",
            "appointment_time": "09:30",
            "reason": "Vaccine booster",
        })
        assert response.status_code == 201
        appointment = response.get_json()["appointment"]
        assert appointment["pet_name"] == "Toby"
        assert appointment["status"] == "CONFIRMED"

        path = f"/appointments/{appointment['id']}"
        response = client.patch(_url(company_a.id, path), json={"status": "IN_PROGRESS"})
        assert response.status_code == 200
        assert response.get_json()["appointment"]["status"] == "IN_PROGRESS"

        agenda = client.get(_url(company_a.id, "/appointments?date=2026-11-02")).get_json()["appointments"]
        assert [row["id"] for row in agenda] == [appointment["id"]]

        assert client.patch(_url(company_a.id, path), json={"appointment_time": "25:00"}).status_code == 400
        assert client.delete(_url(company_a.id, path)).status_code == 204
        assert client.get(_url(company_a.id, path)).status_code == 404

    def test_prescription_and_record_edit(self, client, db_session, company_a, pet_a):
        response = client.post(_url(company_a.id, f"/pets/{pet_a.id}/prescriptions"), json={
            "vet": "Dr. Silva",
            "items": [{"medication": "Amoxicillin 250mg", "dosage": "1 tab", "frequency": "every 12h"}],
        })
        assert response.status_code == 201
        prescription = response.get_json()["prescription"]
        assert prescription["items"][0]["duration"] == ""

        listing = client.get(_url(company_a.id, f"/pets/{pet_a.id}/prescriptions")).get_json()["prescriptions"]
        assert [row["id"] for row in listing] == [prescription["id"]]

        record = client.post(
            _url(company_a.id, f"/pets/{pet_a.id}/medical-records"), json={"reason": "Otitis"}
        ).get_json()["record"]

        path = f"/medical-records/{record['id']}"
        response = client.patch(_url(company_a.id, path), json={"plan": "Ear drops"})
        assert response.status_code == 200
        assert response.get_json()["record"]["plan"] == "Ear drops"
        assert client.delete(_url(company_a.id, path)).status_code == 204
        assert client.get(_url(company_a.id, path)).status_code == 404


class TestErrorMapping:
    def test_missing_client_id_is_400(self, client, db_session, company_a):
        response = client.post(_url(company_a.id, "/counter-sales"), json={"items": []})
        assert response.status_code == 400
        assert "client_id" in response.get_json()["error"]

    def test_foreign_invoice_is_404(self, client, db_session, company_a, company_b, client_b):
        sale = client.post(_url(company_b.id, "/counter-sales"), json={
            "client_id": client_b.id,
            "items": [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 1}],
        }).get_json()["invoice"]

        response = client.get(_url(company_a.id, f"/invoices/{sale['id']}"))
        assert response.status_code == 404
        assert response.get_json()["details"]["entity"] == "Invoice"

    def test_insufficient_stock_is_409(self, client, db_session, company_a, client_a):
        product = client.post(_url(company_a.id, "/products"), json={
            "name": "Shampoo",
            "category": "ACCESSORY",
            "sale_price_cents": 900,
            "initial_stock": 1,
        }).get_json()["product"]

        response = client.post(_url(company_a.id, "/counter-sales"), json={
            "client_id": client_a.id,
            "items": [{"product_id": product["id"], "quantity": 2}],
        })
        assert response.status_code == 409
        body = response.get_json()
        assert body["details"]["product_name"] == "Shampoo"

    def test_closing_twice_is_409(self, client, db_session, company_a, pos_a):
        shift = client.post(
            _url(company_a.id, "/cashier-shifts/open"),
            json={"point_of_sale_id": pos_a.id, "opening_balance_cents": 0},
        ).get_json()["shift"]

        close_url = _url(company_a.id, f"/cashier-shifts/{shift['id']}/close")
        assert client.post(close_url, json={"closing_balance_cents": 0}).status_code == 200
        assert client.post(close_url, json={"closing_balance_cents": 0}).status_code == 409


class TestPermissions:
    @pytest.fixture
    def deny_all(self, app):
        original = app.config["PERMISSION_CHECKER"]
        app.config["PERMISSION_CHECKER"] = lambda code: False
        yield
        app.config["PERMISSION_CHECKER"] = original

    def test_denied_request_is_403(self, client, db_session, company_a, deny_all):
        response = client.get(_url(company_a.id, "/invoices"))
        assert response.status_code == 403
        assert response.get_json()["required_permission"] == "VIEW_BILLING"

    def test_health_needs_no_permission(self, client, db_session, deny_all):
        assert client.get("/api/health").status_code == 200
