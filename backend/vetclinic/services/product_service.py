# backend/vetclinic/services/product_service.py
"""
Catalog and purchasing.

MULTI-TENANT: All product operations are company-scoped through
TenantRepository; a product id of another company is "not found".

STOCK: Initial stock and purchases go through stock_service.receive_stock,
so every unit on hand is explained by a StockMovement row.
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import InvalidStateError, ValidationError
from ..models import Product, Supplier, Purchase
from ..numbers import ZERO, to_quantity
from ..repository import TenantRepository, require_company
from ..time_utils import parse_iso_date
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    enforce_cents,
)
from . import stock_service
from .concurrency import run_in_transaction
from .ledger_service import append_ledger_event

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "category",
        "uses_lot_tracking",
        "is_divisible",
        "total_volume",
        "volume_unit",
        "sale_price_cents",
        "discount_percentage",
        "taxable",
        "low_stock_threshold",
    },
    required_on_create={"name", "category", "sale_price_cents"},
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_person", "phone", "email", "address"},
    required_on_create={"name"},
)


def products_of(company_id: int):
    return TenantRepository(Product).for_company(company_id)


def suppliers_of(company_id: int):
    return TenantRepository(Supplier).for_company(company_id)


def _apply_product_rules(product: Product) -> None:
    if product.is_service:
        product.uses_lot_tracking = False
    if product.is_divisible and product.total_volume is None:
        raise ValidationError("total_volume is required for divisible products")


def create_product(company_id: int, data: dict) -> Product:
    """
    Create a product.

    `initial_stock` (optional) goes into the bucket of a non-tracked
    product. Lot-tracked products start empty and are stocked through
    purchases. SERVICE products never hold stock.
    """
    data = dict(data or {})
    initial_stock = data.pop("initial_stock", None)

    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    initial_qty = ZERO
    if initial_stock not in (None, "", 0):
        initial_qty = to_quantity(initial_stock, "initial_stock")
        if initial_qty < ZERO:
            raise ValidationError("initial_stock must be >= 0")

    def _op() -> Product:
        require_company(company_id)
        product = Product(company_id=company_id, **patch)
        _apply_product_rules(product)

        if initial_qty > ZERO and product.is_service:
            raise ValidationError("Service products hold no stock")
        if initial_qty > ZERO and product.uses_lot_tracking:
            raise ValidationError("Lot-tracked products are stocked through purchases")

        db.session.add(product)
        db.session.flush()

        if not product.is_service and not product.uses_lot_tracking:
            if initial_qty > ZERO:
                stock_service.receive_stock(
                    product,
                    initial_qty,
                    reason=stock_service.REASON_INITIAL,
                    reference_type="product",
                    reference_id=product.id,
                )
            else:
                stock_service.ensure_bucket(product)

        append_ledger_event(
            company_id=company_id,
            event_type="product.created",
            entity_type="product",
            entity_id=product.id,
            note=product.name,
        )
        return product

    product = run_in_transaction(_op)
    current_app.logger.info("Product %s created for company %s", product.id, company_id)
    return product


def update_product(company_id: int, product_id: int, data: dict) -> Product:
    """
    Patch a product.

    Lot tracking cannot be toggled (and a product cannot become a SERVICE)
    while it has stock on hand.
    """
    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    def _op() -> Product:
        product = stock_service.lock_product(company_id, product_id)
        on_hand = product.on_hand

        toggles_tracking = (
            "uses_lot_tracking" in patch and patch["uses_lot_tracking"] != product.uses_lot_tracking
        )
        becomes_service = patch.get("category") == "SERVICE" and not product.is_service
        if (toggles_tracking or becomes_service) and on_hand > ZERO:
            raise InvalidStateError(
                f"{product.name} still has stock on hand",
                {"product_id": product.id, "on_hand": str(on_hand)},
            )

        for key, value in patch.items():
            setattr(product, key, value)
        _apply_product_rules(product)

        # Stock holders follow the tracking mode; all of them are empty here
        if product.is_service or product.uses_lot_tracking:
            bucket = product.bucket_lot
            if bucket is not None:
                product.lots.remove(bucket)
        else:
            for lot in [lot for lot in product.lots if not lot.is_bucket]:
                product.lots.remove(lot)
            stock_service.ensure_bucket(product)

        db.session.flush()
        append_ledger_event(
            company_id=company_id,
            event_type="product.updated",
            entity_type="product",
            entity_id=product.id,
            payload={"fields": sorted(patch.keys())},
        )
        return product

    return run_in_transaction(_op)


def get_product(company_id: int, product_id: int) -> Product:
    return products_of(company_id).get(product_id)


def list_products(company_id: int, *, category: str | None = None, search: str | None = None) -> list[Product]:
    filters = []
    if category:
        filters.append(Product.category == category)
    if search:
        filters.append(func.lower(Product.name).contains(search.strip().lower()))
    return products_of(company_id).list(*filters, order_by=Product.name.asc())


def list_low_stock(company_id: int) -> list[Product]:
    """Stock-bearing products at or below their low-stock threshold."""
    products = products_of(company_id).list(Product.category != "SERVICE", order_by=Product.name.asc())
    return [p for p in products if p.on_hand <= Decimal(p.low_stock_threshold or 0)]


def create_supplier(company_id: int, data: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=data, policy=SUPPLIER_POLICY, partial=False)

    def _op() -> Supplier:
        require_company(company_id)
        supplier = Supplier(company_id=company_id, **patch)
        db.session.add(supplier)
        db.session.flush()
        return supplier

    return run_in_transaction(_op)


def list_suppliers(company_id: int) -> list[Supplier]:
    return suppliers_of(company_id).list(order_by=Supplier.name.asc())


def receive_purchase(company_id: int, data: dict) -> Purchase:
    """
    Receive stock from a supplier.

    data: product_id, supplier_id, quantity, purchase_price_cents,
    lot_number (required for lot-tracked products), expiration_date.
    """
    data = data or {}
    if data.get("product_id") is None or data.get("supplier_id") is None:
        raise ValidationError("product_id and supplier_id are required")
    quantity = to_quantity(data.get("quantity"), "quantity")
    price_cents = enforce_cents("purchase_price_cents", data.get("purchase_price_cents", 0))
    try:
        expiration_date = parse_iso_date(data.get("expiration_date"))
    except ValueError:
        raise ValidationError("expiration_date must be an ISO-8601 date")

    def _op() -> Purchase:
        product = stock_service.lock_product(company_id, data["product_id"])
        supplier = suppliers_of(company_id).get(data["supplier_id"])

        purchase = Purchase(
            company_id=company_id,
            product_id=product.id,
            supplier_id=supplier.id,
            product_name=product.name,
            supplier_name=supplier.name,
            quantity=quantity,
            purchase_price_cents=price_cents,
            expiration_date=expiration_date,
        )
        db.session.add(purchase)
        db.session.flush()

        lot = stock_service.receive_stock(
            product,
            quantity,
            data.get("lot_number"),
            expiration_date,
            reason=stock_service.REASON_PURCHASE,
            reference_type="purchase",
            reference_id=purchase.id,
        )
        purchase.lot_id = lot.id
        purchase.lot_number = lot.lot_number
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="purchase.received",
            entity_type="purchase",
            entity_id=purchase.id,
            payload={"product_id": product.id, "quantity": str(quantity), "lot_id": lot.id},
        )
        return purchase

    purchase = run_in_transaction(_op)
    current_app.logger.info(
        "Purchase %s received: product %s qty %s", purchase.id, purchase.product_id, purchase.quantity
    )
    return purchase


def list_purchases(company_id: int) -> list[Purchase]:
    return TenantRepository(Purchase).for_company(company_id).list(order_by=Purchase.id.desc())
