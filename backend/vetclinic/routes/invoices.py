# Overview: Flask API routes for invoices: counter sales, previews, item edits and payments.

# backend/vetclinic/routes/invoices.py
"""
Invoice routes.

DESIGN:
- Counter sale creates, numbers and stocks an invoice in one transaction
- Items are editable until the first payment
- Payments may be linked to an open cashier shift (cash drawer accountability)

SECURITY:
- VIEW_BILLING for reads and previews
- MANAGE_BILLING for sales, edits and payments
"""
from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_permission
from ..errors import ClinicError, ValidationError
from ..services import invoice_service
from ..validation import optional_int

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/companies/<int:company_id>")


@invoices_bp.get("/invoices")
@require_permission("VIEW_BILLING")
def list_invoices_route(company_id: int):
    """
    Query params:
    - status: UNPAID | PAID | OVERDUE (optional)
    - client_id: int (optional)
    """
    invoices = invoice_service.list_invoices(
        company_id,
        status=request.args.get("status"),
        client_id=request.args.get("client_id", type=int),
    )
    return jsonify({"invoices": [inv.to_dict(include_items=False) for inv in invoices]})


@invoices_bp.get("/invoices/<int:invoice_id>")
@require_permission("VIEW_BILLING")
def get_invoice_route(company_id: int, invoice_id: int):
    invoice = invoice_service.get_invoice(company_id, invoice_id)
    return jsonify({"invoice": invoice.to_dict()})


@invoices_bp.post("/counter-sales")
@require_permission("MANAGE_BILLING")
def create_counter_sale_route(company_id: int):
    """
    Create a counter sale.

    Request body:
    {
        "client_id": 3,
        "pet_id": 7,                                   (optional)
        "items": [
            {"product_id": 1, "quantity": 2, "lot_id": 12},
            {"name": "Consultation", "unit_price_cents": 3000, "quantity": 1}
        ]
    }
    """
    payload = request.get_json(silent=True) or {}
    client_id = optional_int(payload, "client_id")
    if client_id is None:
        raise ValidationError("client_id is required")

    try:
        invoice = invoice_service.create_sale(
            company_id,
            client_id,
            payload.get("items"),
            pet_id=optional_int(payload, "pet_id"),
        )
    except ClinicError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create counter sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"invoice": invoice.to_dict()}), 201


@invoices_bp.post("/invoices/preview")
@require_permission("VIEW_BILLING")
def preview_invoice_route(company_id: int):
    """Totals for prospective items; no stock or numbering side effects."""
    payload = request.get_json(silent=True) or {}
    totals = invoice_service.preview_totals(company_id, payload.get("items"))
    return jsonify({"totals": totals.to_dict()})


@invoices_bp.put("/invoices/<int:invoice_id>/items")
@require_permission("MANAGE_BILLING")
def update_invoice_items_route(company_id: int, invoice_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        invoice = invoice_service.update_invoice_items(company_id, invoice_id, payload.get("items"))
    except ClinicError:
        raise
    except Exception:
        current_app.logger.exception("Failed to update invoice %s items", invoice_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"invoice": invoice.to_dict()})


@invoices_bp.post("/invoices/<int:invoice_id>/payments")
@require_permission("MANAGE_BILLING")
def record_payment_route(company_id: int, invoice_id: int):
    """
    Record a payment.

    Request body:
    {
        "amount_cents": 5000,
        "method": "CASH",           (CASH | CARD | TRANSFER | OTHER)
        "cashier_shift_id": 4       (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    if payload.get("amount_cents") is None:
        raise ValidationError("amount_cents is required")

    try:
        invoice = invoice_service.record_payment(
            company_id,
            invoice_id,
            payload.get("amount_cents"),
            payload.get("method"),
            cashier_shift_id=optional_int(payload, "cashier_shift_id"),
        )
    except ClinicError:
        raise
    except Exception:
        current_app.logger.exception("Failed to record payment on invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"invoice": invoice.to_dict()}), 201
