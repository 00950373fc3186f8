"""
Pytest fixtures for vetclinic backend tests.

Provides the test app (in-memory SQLite), a per-test table wipe, tenant
fixtures and small factories for stocked products.
"""

import pytest

from vetclinic import create_app
from vetclinic.extensions import db
from vetclinic.models import Client, Company, Pet, PointOfSale
from vetclinic.services import product_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        # Route tests exercise behavior, not the upstream auth layer
        'PERMISSION_CHECKER': lambda code: True,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def company_a(db_session):
    """Clinic A, 10% tax."""
    company = Company(name="Clinic A - Northside Vets", tax_rate_bps=1000, is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def company_b(db_session):
    """Clinic B, 15% tax."""
    company = Company(name="Clinic B - Harbor Animal Hospital", tax_rate_bps=1500, is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def pos_a(db_session, company_a):
    pos = PointOfSale(company_id=company_a.id, name="Front Desk", is_active=True)
    db_session.add(pos)
    db_session.commit()
    return pos


@pytest.fixture(scope='function')
def client_a(db_session, company_a):
    owner = Client(company_id=company_a.id, name="Laura Gomez", phone="555-0101")
    db_session.add(owner)
    db_session.commit()
    return owner


@pytest.fixture(scope='function')
def pet_a(db_session, client_a):
    pet = Pet(company_id=client_a.company_id, owner_id=client_a.id, name="Toby", species="Dog")
    db_session.add(pet)
    db_session.commit()
    return pet


@pytest.fixture(scope='function')
def client_b(db_session, company_b):
    owner = Client(company_id=company_b.id, name="Marco Ruiz")
    db_session.add(owner)
    db_session.commit()
    return owner


@pytest.fixture(scope='function')
def pet_b(db_session, client_b):
    pet = Pet(company_id=client_b.company_id, owner_id=client_b.id, name="Misha", species="Cat")
    db_session.add(pet)
    db_session.commit()
    return pet


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: product_service.create_product with sensible defaults."""

    def _make(company_id, **overrides):
        data = {
            "name": "Dog Food 2kg",
            "category": "FOOD",
            "sale_price_cents": 1000,
        }
        data.update(overrides)
        return product_service.create_product(company_id, data)

    return _make


@pytest.fixture(scope='function')
def make_lot(db_session):
    """Factory: stock a lot-tracked product through a purchase; returns the lot id."""
    suppliers = {}

    def _make(company_id, product_id, quantity, lot_number, expiration_date=None):
        if company_id not in suppliers:
            suppliers[company_id] = product_service.create_supplier(company_id, {"name": "VetPharma"}).id
        purchase = product_service.receive_purchase(company_id, {
            "product_id": product_id,
            "supplier_id": suppliers[company_id],
            "quantity": quantity,
            "purchase_price_cents": 500,
            "lot_number": lot_number,
            "expiration_date": expiration_date,
        })
        return purchase.lot_id

    return _make
