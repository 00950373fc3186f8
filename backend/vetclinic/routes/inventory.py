# Overview: Flask API routes for catalog, lots, purchases, suppliers and internal consumption.

# backend/vetclinic/routes/inventory.py
"""
Inventory routes.

MULTI-TENANT: Every route is nested under /api/companies/<company_id>;
the services resolve ids through the company scope, so another company's
product is a 404.

SECURITY:
- Reads require VIEW_INVENTORY / VIEW_PURCHASES
- Catalog writes require MANAGE_INVENTORY
- Purchases require MANAGE_PURCHASES
- Internal consumption requires MANAGE_INTERNAL_CONSUMPTION
"""
from flask import Blueprint, request, jsonify

from ..decorators import require_permission
from ..services import consumption_service, product_service, stock_service

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/companies/<int:company_id>")


@inventory_bp.get("/products")
@require_permission("VIEW_INVENTORY")
def list_products_route(company_id: int):
    """
    List products.

    Query params:
    - category: MEDICINE | FOOD | ACCESSORY | SUPPLY | SERVICE (optional)
    - search: case-insensitive name filter (optional)
    """
    products = product_service.list_products(
        company_id,
        category=request.args.get("category"),
        search=request.args.get("search"),
    )
    return jsonify({"products": [p.to_dict() for p in products]})


@inventory_bp.post("/products")
@require_permission("MANAGE_INVENTORY")
def create_product_route(company_id: int):
    """
    Create a product.

    Request body:
    {
        "name": "Amoxicillin 250mg",
        "category": "MEDICINE",
        "sale_price_cents": 1250,
        "uses_lot_tracking": true,
        "initial_stock": 10          (non-tracked products only)
    }
    """
    payload = request.get_json(silent=True) or {}
    product = product_service.create_product(company_id, payload)
    return jsonify({"product": product.to_dict()}), 201


@inventory_bp.get("/products/low-stock")
@require_permission("VIEW_INVENTORY")
def low_stock_route(company_id: int):
    products = product_service.list_low_stock(company_id)
    return jsonify({"products": [p.to_dict() for p in products]})


@inventory_bp.get("/products/<int:product_id>")
@require_permission("VIEW_INVENTORY")
def get_product_route(company_id: int, product_id: int):
    product = product_service.get_product(company_id, product_id)
    return jsonify({"product": product.to_dict()})


@inventory_bp.patch("/products/<int:product_id>")
@require_permission("MANAGE_INVENTORY")
def update_product_route(company_id: int, product_id: int):
    payload = request.get_json(silent=True) or {}
    product = product_service.update_product(company_id, product_id, payload)
    return jsonify({"product": product.to_dict()})


@inventory_bp.get("/products/<int:product_id>/lots")
@require_permission("VIEW_INVENTORY")
def list_lots_route(company_id: int, product_id: int):
    """Lots with stock, soonest expiration first."""
    product = product_service.get_product(company_id, product_id)
    lots = stock_service.available_lots(product)
    return jsonify({"product_id": product.id, "lots": [lot.to_dict() for lot in lots]})


@inventory_bp.get("/products/<int:product_id>/movements")
@require_permission("VIEW_INVENTORY")
def list_movements_route(company_id: int, product_id: int):
    product = product_service.get_product(company_id, product_id)
    movements = stock_service.list_movements(
        company_id,
        product.id,
        limit=request.args.get("limit", default=200, type=int),
    )
    return jsonify({"movements": [m.to_dict() for m in movements]})


# =============================================================================
# SUPPLIERS & PURCHASES
# =============================================================================

@inventory_bp.get("/suppliers")
@require_permission("VIEW_PURCHASES")
def list_suppliers_route(company_id: int):
    suppliers = product_service.list_suppliers(company_id)
    return jsonify({"suppliers": [s.to_dict() for s in suppliers]})


@inventory_bp.post("/suppliers")
@require_permission("MANAGE_PURCHASES")
def create_supplier_route(company_id: int):
    payload = request.get_json(silent=True) or {}
    supplier = product_service.create_supplier(company_id, payload)
    return jsonify({"supplier": supplier.to_dict()}), 201


@inventory_bp.get("/purchases")
@require_permission("VIEW_PURCHASES")
def list_purchases_route(company_id: int):
    purchases = product_service.list_purchases(company_id)
    return jsonify({"purchases": [p.to_dict() for p in purchases]})


@inventory_bp.post("/purchases")
@require_permission("MANAGE_PURCHASES")
def receive_purchase_route(company_id: int):
    """
    Receive stock from a supplier.

    Request body:
    {
        "product_id": 1,
        "supplier_id": 2,
        "quantity": 24,
        "purchase_price_cents": 800,
        "lot_number": "L-2291",          (lot-tracked products)
        "expiration_date": "2027-03-31"  (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    purchase = product_service.receive_purchase(company_id, payload)
    return jsonify({"purchase": purchase.to_dict()}), 201


# =============================================================================
# INTERNAL CONSUMPTION
# =============================================================================

@inventory_bp.get("/consumptions")
@require_permission("VIEW_INVENTORY")
def list_consumptions_route(company_id: int):
    records = consumption_service.list_internal_consumptions(company_id)
    return jsonify({"consumptions": [r.to_dict() for r in records]})


@inventory_bp.post("/consumptions")
@require_permission("MANAGE_INTERNAL_CONSUMPTION")
def record_consumption_route(company_id: int):
    payload = request.get_json(silent=True) or {}
    record = consumption_service.record_internal_consumption(company_id, payload)
    return jsonify({"consumption": record.to_dict()}), 201
