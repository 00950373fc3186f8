"""
Authorization tests.

Verifies:
- Every protected endpoint returns 403 when the auth layer denies its permission
- The 403 body names the permission the endpoint requires
- Without a configured checker, g.permissions set by the auth layer decides
- Unknown permission codes are always denied
"""

import pytest
from flask import g

from vetclinic.permissions import get_all_permission_codes, has_permission


@pytest.fixture
def checker(app):
    """Swap the permission checker for one test; restores the permissive default."""
    original = app.config["PERMISSION_CHECKER"]

    def _set(func):
        app.config["PERMISSION_CHECKER"] = func

    yield _set
    app.config["PERMISSION_CHECKER"] = original


# =============================================================================
# DENIED ACCESS (403)
# =============================================================================


class TestDeniedAccess:
    """Protected endpoints refuse callers lacking the permission."""

    @pytest.mark.parametrize(
        "method,path,permission",
        [
            ("GET", "/clients", "VIEW_CLIENTS"),
            ("POST", "/clients", "MANAGE_CLIENTS"),
            ("DELETE", "/clients/1", "MANAGE_CLIENTS"),
            ("GET", "/pets/1/medical-records", "VIEW_PET_MEDICAL_RECORDS"),
            ("POST", "/pets/1/medical-records", "MANAGE_PET_MEDICAL_RECORDS"),
            ("PATCH", "/medical-records/1", "MANAGE_PET_MEDICAL_RECORDS"),
            ("DELETE", "/medical-records/1", "MANAGE_PET_MEDICAL_RECORDS"),
            ("GET", "/pets/1/prescriptions", "VIEW_PET_MEDICAL_RECORDS"),
            ("POST", "/pets/1/prescriptions", "MANAGE_PET_MEDICAL_RECORDS"),
            ("GET", "/appointments", "VIEW_APPOINTMENTS"),
            ("POST", "/appointments", "MANAGE_APPOINTMENTS"),
            ("PATCH", "/appointments/1", "MANAGE_APPOINTMENTS"),
            ("DELETE", "/appointments/1", "MANAGE_APPOINTMENTS"),
            ("GET", "/invoices", "VIEW_BILLING"),
            ("POST", "/counter-sales", "MANAGE_BILLING"),
            ("PUT", "/invoices/1/items", "MANAGE_BILLING"),
            ("POST", "/invoices/1/payments", "MANAGE_BILLING"),
            ("GET", "/products", "VIEW_INVENTORY"),
            ("POST", "/products", "MANAGE_INVENTORY"),
            ("POST", "/consumptions", "MANAGE_INTERNAL_CONSUMPTION"),
            ("POST", "/purchases", "MANAGE_PURCHASES"),
            ("POST", "/expenses", "MANAGE_EXPENSES"),
            ("GET", "/cashier-shifts", "VIEW_CASHIER"),
            ("POST", "/cashier-shifts/open", "MANAGE_CASHIER_SHIFTS"),
            ("POST", "/points-of-sale", "MANAGE_POINTS_OF_SALE"),
            ("GET", "/hospitalizations", "VIEW_HOSPITALIZATIONS"),
            ("POST", "/hospitalizations/1/discharge", "MANAGE_HOSPITALIZATIONS"),
            ("GET", "/ledger", "VIEW_SETTINGS"),
        ],
    )
    def test_requires_permission(self, client, db_session, company_a, checker, method, path, permission):
        checker(lambda code: code != permission)
        resp = getattr(client, method.lower())(f"/api/companies/{company_a.id}{path}", json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["required_permission"] == permission

    def test_denied_write_has_no_side_effects(self, client, db_session, company_a, client_a, checker):
        checker(lambda code: code != "MANAGE_CLIENTS")
        resp = client.delete(f"/api/companies/{company_a.id}/clients/{client_a.id}")
        assert resp.status_code == 403

        checker(lambda code: True)
        resp = client.get(f"/api/companies/{company_a.id}/clients/{client_a.id}")
        assert resp.status_code == 200


# =============================================================================
# AUTH LAYER CONTRACT
# =============================================================================


class TestPermissionContract:
    """has_permission delegates to the upstream auth layer."""

    def test_g_permissions_used_without_checker(self, app, checker):
        checker(None)
        with app.test_request_context("/"):
            g.permissions = {"VIEW_BILLING"}
            assert has_permission("VIEW_BILLING") is True
            assert has_permission("MANAGE_BILLING") is False

    def test_no_permissions_means_denied(self, app, checker):
        checker(None)
        with app.test_request_context("/"):
            assert has_permission("VIEW_BILLING") is False

    def test_unknown_code_denied_even_when_checker_allows(self, app, checker):
        checker(lambda code: True)
        with app.test_request_context("/"):
            assert has_permission("LAUNCH_ROCKETS") is False

    def test_catalog_endpoint_lists_every_code(self, client, db_session):
        resp = client.get("/api/permissions")
        assert resp.status_code == 200
        categories = resp.get_json()["categories"]
        listed = {perm["code"] for perms in categories.values() for perm in perms}
        assert listed == set(get_all_permission_codes())
        assert {p["code"] for p in categories["BILLING"]} == {"VIEW_BILLING", "MANAGE_BILLING"}
