# Overview: Flask API routes for points of sale, cashier shifts and expenses.

# backend/vetclinic/routes/cashier.py
"""
Cashier Routes

WHY: Cash accountability per point of sale.

DESIGN:
- Shift lifecycle: open -> close (immutable once closed)
- One open shift per point of sale
- Expenses may be paid from an open shift's drawer

SECURITY:
- VIEW_CASHIER for shift reads
- MANAGE_CASHIER_SHIFTS to open/close
- MANAGE_POINTS_OF_SALE for point of sale setup
- VIEW_EXPENSES / MANAGE_EXPENSES for expenses
"""
from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_permission
from ..errors import ClinicError, ValidationError
from ..services import cashier_service
from ..validation import optional_int

cashier_bp = Blueprint("cashier", __name__, url_prefix="/api/companies/<int:company_id>")


# =============================================================================
# POINTS OF SALE
# =============================================================================

@cashier_bp.get("/points-of-sale")
@require_permission("VIEW_CASHIER")
def list_points_of_sale_route(company_id: int):
    active_only = request.args.get("active_only", "false").lower() == "true"
    points = cashier_service.list_points_of_sale(company_id, active_only=active_only)
    return jsonify({"points_of_sale": [p.to_dict() for p in points]})


@cashier_bp.post("/points-of-sale")
@require_permission("MANAGE_POINTS_OF_SALE")
def create_point_of_sale_route(company_id: int):
    payload = request.get_json(silent=True) or {}
    pos = cashier_service.create_point_of_sale(company_id, payload.get("name"), payload.get("description"))
    return jsonify({"point_of_sale": pos.to_dict()}), 201


# =============================================================================
# SHIFTS
# =============================================================================

@cashier_bp.get("/cashier-shifts")
@require_permission("VIEW_CASHIER")
def list_shifts_route(company_id: int):
    """
    Query params:
    - status: OPEN | CLOSED (optional)
    - point_of_sale_id: int (optional)
    """
    shifts = cashier_service.list_shifts(
        company_id,
        status=request.args.get("status"),
        point_of_sale_id=request.args.get("point_of_sale_id", type=int),
    )
    return jsonify({"shifts": [s.to_dict() for s in shifts]})


@cashier_bp.get("/cashier-shifts/<int:shift_id>")
@require_permission("VIEW_CASHIER")
def get_shift_route(company_id: int, shift_id: int):
    """Shift with linked cash payments, expenses and the recomputed breakdown."""
    return jsonify({"shift": cashier_service.get_shift_summary(company_id, shift_id)})


@cashier_bp.post("/cashier-shifts/open")
@require_permission("MANAGE_CASHIER_SHIFTS")
def open_shift_route(company_id: int):
    """
    Open a shift.

    Request body:
    {
        "point_of_sale_id": 1,
        "opening_balance_cents": 10000,
        "opened_by": "Ana"              (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    point_of_sale_id = optional_int(payload, "point_of_sale_id")
    if point_of_sale_id is None:
        raise ValidationError("point_of_sale_id is required")

    try:
        shift = cashier_service.open_shift(
            company_id,
            point_of_sale_id,
            payload.get("opening_balance_cents", 0),
            opened_by=payload.get("opened_by"),
        )
    except ClinicError:
        raise
    except Exception:
        current_app.logger.exception("Failed to open shift")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"shift": shift.to_dict()}), 201


@cashier_bp.post("/cashier-shifts/<int:shift_id>/close")
@require_permission("MANAGE_CASHIER_SHIFTS")
def close_shift_route(company_id: int, shift_id: int):
    """
    Close a shift with the counted cash.

    Request body:
    {
        "closing_balance_cents": 14500,
        "notes": "...",                 (optional)
        "closed_by": "Ana"              (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    if payload.get("closing_balance_cents") is None:
        raise ValidationError("closing_balance_cents is required")

    try:
        shift = cashier_service.close_shift(
            company_id,
            shift_id,
            payload.get("closing_balance_cents"),
            notes=payload.get("notes"),
            closed_by=payload.get("closed_by"),
        )
    except ClinicError:
        raise
    except Exception:
        current_app.logger.exception("Failed to close shift %s", shift_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"shift": shift.to_dict()})


# =============================================================================
# EXPENSES
# =============================================================================

@cashier_bp.get("/expense-categories")
@require_permission("VIEW_EXPENSES")
def list_expense_categories_route(company_id: int):
    categories = cashier_service.list_expense_categories(company_id)
    return jsonify({"categories": [c.to_dict() for c in categories]})


@cashier_bp.post("/expense-categories")
@require_permission("MANAGE_EXPENSES")
def create_expense_category_route(company_id: int):
    payload = request.get_json(silent=True) or {}
    category = cashier_service.create_expense_category(company_id, payload.get("name"))
    return jsonify({"category": category.to_dict()}), 201


@cashier_bp.get("/expenses")
@require_permission("VIEW_EXPENSES")
def list_expenses_route(company_id: int):
    expenses = cashier_service.list_expenses(
        company_id,
        cashier_shift_id=request.args.get("cashier_shift_id", type=int),
    )
    return jsonify({"expenses": [e.to_dict() for e in expenses]})


@cashier_bp.post("/expenses")
@require_permission("MANAGE_EXPENSES")
def add_expense_route(company_id: int):
    payload = request.get_json(silent=True) or {}
    expense = cashier_service.add_expense(company_id, payload)
    return jsonify({"expense": expense.to_dict()}), 201
