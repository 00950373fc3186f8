# Overview: Pytest coverage for the lot inventory manager.

"""
Lot Inventory Tests

Covers bucket vs lot-tracked stock, pruning and recreation of lots,
quantity rules, FEFO ordering and the movement journal.
"""

from datetime import date
from decimal import Decimal

import pytest

from vetclinic.errors import InsufficientStockError, InvalidStateError, ValidationError
from vetclinic.models import ProductLot, StockMovement
from vetclinic.services import consumption_service, product_service, stock_service


def _lot_quantity(db_session, lot_id):
    lot = db_session.get(ProductLot, lot_id)
    return None if lot is None else Decimal(lot.quantity)


class TestBucketStock:
    def test_initial_stock_goes_into_bucket(self, db_session, company_a, make_product):
        product = make_product(company_a.id, initial_stock=10)

        assert len(product.lots) == 1
        bucket = product.lots[0]
        assert bucket.is_bucket is True
        assert bucket.lot_number == "N/A"
        assert product.on_hand == Decimal("10")

        movement = db_session.query(StockMovement).filter_by(product_id=product.id).one()
        assert movement.reason == "INITIAL"
        assert Decimal(movement.quantity_delta) == Decimal("10")

    def test_bucket_exists_even_without_initial_stock(self, db_session, company_a, make_product):
        product = make_product(company_a.id)
        assert product.bucket_lot is not None
        assert product.on_hand == Decimal("0")

    def test_deduct_restore_round_trip(self, db_session, company_a, make_product):
        product = make_product(company_a.id, initial_stock=10)
        bucket_id = product.bucket_lot.id

        product = stock_service.lock_product(company_a.id, product.id)
        stock_service.deduct_stock(product, 4)
        db_session.commit()
        assert _lot_quantity(db_session, bucket_id) == Decimal("6")

        product = stock_service.lock_product(company_a.id, product.id)
        stock_service.restore_stock(product, 4)
        db_session.commit()
        assert _lot_quantity(db_session, bucket_id) == Decimal("10")

    def test_bucket_persists_at_zero(self, db_session, company_a, make_product):
        product = make_product(company_a.id, initial_stock=2)
        bucket_id = product.bucket_lot.id

        product = stock_service.lock_product(company_a.id, product.id)
        stock_service.deduct_stock(product, 2)
        db_session.commit()

        assert _lot_quantity(db_session, bucket_id) == Decimal("0")

    def test_lot_id_is_ignored_for_bucket_products(self, db_session, company_a, make_product):
        product = make_product(company_a.id, initial_stock=5)
        product = stock_service.lock_product(company_a.id, product.id)
        lot = stock_service.deduct_stock(product, 1, lot_id=987654)
        db_session.commit()
        assert lot.is_bucket is True

    def test_insufficient_bucket_stock(self, db_session, company_a, make_product):
        product = make_product(company_a.id, initial_stock=3)
        bucket_id = product.bucket_lot.id

        product = stock_service.lock_product(company_a.id, product.id)
        with pytest.raises(InsufficientStockError) as exc_info:
            stock_service.deduct_stock(product, 4)
        db_session.rollback()

        assert Decimal(exc_info.value.details["available"]) == Decimal("3")
        assert _lot_quantity(db_session, bucket_id) == Decimal("3")


class TestLotTrackedStock:
    def test_sale_from_named_lot(self, db_session, company_a, make_product, make_lot):
        product = make_product(company_a.id, name="Rabies vaccine", category="MEDICINE", uses_lot_tracking=True)
        l1 = make_lot(company_a.id, product.id, 10, "L1", "2024-01-01")
        l2 = make_lot(company_a.id, product.id, 5, "L2", "2024-06-01")

        product = stock_service.lock_product(company_a.id, product.id)
        lot = stock_service.deduct_stock(product, 3, l1)
        db_session.commit()

        assert lot.lot_number == "L1"
        assert _lot_quantity(db_session, l1) == Decimal("7")
        assert _lot_quantity(db_session, l2) == Decimal("5")

    def test_tracked_product_requires_lot(self, db_session, company_a, make_product, make_lot):
        product = make_product(company_a.id, category="MEDICINE", uses_lot_tracking=True)
        make_lot(company_a.id, product.id, 10, "L1")

        product = stock_service.lock_product(company_a.id, product.id)
        with pytest.raises(ValidationError):
            stock_service.deduct_stock(product, 1)
        db_session.rollback()

    def test_unknown_lot_reports_zero_available(self, db_session, company_a, make_product, make_lot):
        product = make_product(company_a.id, category="MEDICINE", uses_lot_tracking=True)
        make_lot(company_a.id, product.id, 10, "L1")

        product = stock_service.lock_product(company_a.id, product.id)
        with pytest.raises(InsufficientStockError) as exc_info:
            stock_service.deduct_stock(product, 1, 999999)
        db_session.rollback()
        assert Decimal(exc_info.value.details["available"]) == Decimal("0")

    def test_exceeding_lot_leaves_lots_unchanged(self, db_session, company_a, make_product, make_lot):
        product = make_product(company_a.id, category="MEDICINE", uses_lot_tracking=True)
        l1 = make_lot(company_a.id, product.id, 5, "L1")
        l2 = make_lot(company_a.id, product.id, 20, "L2")

        product = stock_service.lock_product(company_a.id, product.id)
        with pytest.raises(InsufficientStockError) as exc_info:
            stock_service.deduct_stock(product, 6, l1)
        db_session.rollback()

        assert exc_info.value.details["lot_number"] == "L1"
        assert _lot_quantity(db_session, l1) == Decimal("5")
        assert _lot_quantity(db_session, l2) == Decimal("20")

    def test_lot_pruned_at_zero_and_recreated_on_restore(self, db_session, company_a, make_product, make_lot):
        product = make_product(company_a.id, category="MEDICINE", uses_lot_tracking=True)
        lot_id = make_lot(company_a.id, product.id, 5, "L-77", "2026-12-31")

        product = stock_service.lock_product(company_a.id, product.id)
        stock_service.deduct_stock(product, 5, lot_id)
        db_session.commit()
        assert db_session.get(ProductLot, lot_id) is None

        product = stock_service.lock_product(company_a.id, product.id)
        stock_service.restore_stock(product, 5, lot_id, "L-77", date(2026, 12, 31))
        db_session.commit()

        lot = db_session.get(ProductLot, lot_id)
        assert lot is not None
        assert lot.product_id == product.id
        assert lot.lot_number == "L-77"
        assert lot.expiration_date == date(2026, 12, 31)
        assert Decimal(lot.quantity) == Decimal("5")

    def test_restore_into_foreign_lot_rejected(self, db_session, company_a, make_product, make_lot):
        vaccine = make_product(company_a.id, name="Vaccine", category="MEDICINE", uses_lot_tracking=True)
        serum = make_product(company_a.id, name="Serum", category="MEDICINE", uses_lot_tracking=True)
        serum_lot = make_lot(company_a.id, serum.id, 3, "S1")

        vaccine = stock_service.lock_product(company_a.id, vaccine.id)
        with pytest.raises(InvalidStateError):
            stock_service.restore_stock(vaccine, 1, serum_lot, "S1")
        db_session.rollback()

    def test_purchase_requires_lot_number(self, db_session, company_a, make_product):
        product = make_product(company_a.id, category="MEDICINE", uses_lot_tracking=True)
        supplier = product_service.create_supplier(company_a.id, {"name": "VetPharma"})

        with pytest.raises(ValidationError):
            product_service.receive_purchase(company_a.id, {
                "product_id": product.id,
                "supplier_id": supplier.id,
                "quantity": 5,
            })

    def test_available_lots_fefo(self, db_session, company_a, make_product, make_lot):
        product = make_product(company_a.id, category="MEDICINE", uses_lot_tracking=True)
        late = make_lot(company_a.id, product.id, 1, "LATE", "2027-06-01")
        undated = make_lot(company_a.id, product.id, 1, "UNDATED")
        early = make_lot(company_a.id, product.id, 1, "EARLY", "2026-01-15")

        product = product_service.get_product(company_a.id, product.id)
        ordered = [lot.id for lot in stock_service.available_lots(product)]
        assert ordered == [early, late, undated]


class TestQuantityRules:
    def test_zero_quantity_rejected(self, db_session, company_a, make_product):
        product = make_product(company_a.id, initial_stock=5)
        product = stock_service.lock_product(company_a.id, product.id)
        with pytest.raises(ValidationError):
            stock_service.deduct_stock(product, 0)
        db_session.rollback()

    def test_fraction_rejected_for_non_divisible(self, db_session, company_a, make_product):
        product = make_product(company_a.id, initial_stock=5)
        product = stock_service.lock_product(company_a.id, product.id)
        with pytest.raises(ValidationError):
            stock_service.deduct_stock(product, "0.5")
        db_session.rollback()

    def test_fraction_allowed_for_divisible(self, db_session, company_a, make_product):
        product = make_product(
            company_a.id,
            name="Antibiotic suspension",
            category="MEDICINE",
            is_divisible=True,
            total_volume=100,
            volume_unit="mL",
            initial_stock=2,
        )
        product = stock_service.lock_product(company_a.id, product.id)
        stock_service.deduct_stock(product, "0.25")
        db_session.commit()

        product = product_service.get_product(company_a.id, product.id)
        assert product.on_hand == Decimal("1.75")

    def test_service_products_are_not_stock_checked(self, db_session, company_a, make_product):
        service = make_product(company_a.id, name="Consultation", category="SERVICE", sale_price_cents=3000)
        service = stock_service.lock_product(company_a.id, service.id)

        assert stock_service.deduct_stock(service, 50) is None
        assert stock_service.restore_stock(service, 50) is None
        assert service.lots == []


class TestCatalogRules:
    def test_lot_tracked_product_rejects_initial_stock(self, db_session, company_a, make_product):
        with pytest.raises(ValidationError):
            make_product(company_a.id, uses_lot_tracking=True, initial_stock=5)

    def test_cannot_toggle_tracking_with_stock_on_hand(self, db_session, company_a, make_product):
        product = make_product(company_a.id, initial_stock=5)
        with pytest.raises(InvalidStateError):
            product_service.update_product(company_a.id, product.id, {"uses_lot_tracking": True})

    def test_toggle_tracking_when_empty(self, db_session, company_a, make_product):
        product = make_product(company_a.id)
        updated = product_service.update_product(company_a.id, product.id, {"uses_lot_tracking": True})
        assert updated.uses_lot_tracking is True
        assert updated.bucket_lot is None

    def test_low_stock_listing(self, db_session, company_a, make_product):
        low = make_product(company_a.id, name="Cat litter", initial_stock=2, low_stock_threshold=5)
        make_product(company_a.id, name="Leash", category="ACCESSORY", initial_stock=20, low_stock_threshold=5)
        make_product(company_a.id, name="Grooming", category="SERVICE")

        names = [p.name for p in product_service.list_low_stock(company_a.id)]
        assert names == [low.name]

    def test_movement_journal_explains_on_hand(self, db_session, company_a, make_product, make_lot):
        product = make_product(company_a.id, category="MEDICINE", uses_lot_tracking=True)
        lot_id = make_lot(company_a.id, product.id, 8, "J1")

        product = stock_service.lock_product(company_a.id, product.id)
        stock_service.deduct_stock(product, 3, lot_id, reference_type="test", reference_id=1)
        db_session.commit()

        movements = stock_service.list_movements(company_a.id, product.id)
        assert [m.reason for m in movements] == ["PURCHASE", "SALE"]
        assert sum(Decimal(m.quantity_delta) for m in movements) == Decimal("5")


class TestInternalConsumption:
    def test_consumption_deducts_from_lot(self, db_session, company_a, make_product, make_lot):
        product = make_product(company_a.id, category="SUPPLY", uses_lot_tracking=True)
        lot_id = make_lot(company_a.id, product.id, 10, "C1")

        record = consumption_service.record_internal_consumption(company_a.id, {
            "product_id": product.id,
            "quantity": 4,
            "lot_id": lot_id,
            "reason": "Expired",
        })

        assert record.lot_number == "C1"
        assert _lot_quantity(db_session, lot_id) == Decimal("6")

    def test_consumption_requires_reason(self, db_session, company_a, make_product):
        product = make_product(company_a.id, initial_stock=5)
        with pytest.raises(ValidationError):
            consumption_service.record_internal_consumption(company_a.id, {
                "product_id": product.id,
                "quantity": 1,
            })

    def test_consumption_beyond_stock_stores_nothing(self, db_session, company_a, make_product):
        product = make_product(company_a.id, initial_stock=1)
        with pytest.raises(InsufficientStockError):
            consumption_service.record_internal_consumption(company_a.id, {
                "product_id": product.id,
                "quantity": 2,
                "reason": "Damaged",
            })
        assert consumption_service.list_internal_consumptions(company_a.id) == []
