"""
Cashier Shift Reconciliation Service

WHY: Cash accountability per point of sale. Every cash payment and every
expense paid from the drawer moves the shift's running total, so closing
a shift compares the counted cash against a number the system already
knows.

DESIGN PRINCIPLES:
- One OPEN shift per point of sale at a time
- Shifts are immutable once closed
- calculated_cash_total_cents is maintained incrementally in the same
  transaction as the payment/expense it reflects
- Closing: expected = opening + calculated; difference = counted - expected
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, InvalidStateError, ValidationError
from ..models import CashierShift, Expense, ExpenseCategory, InvoicePayment, PointOfSale
from ..models.registers import SHIFT_STATUS_OPEN, SHIFT_STATUS_CLOSED
from ..repository import TenantRepository, require_company
from ..time_utils import utcnow
from ..validation import enforce_cents
from .concurrency import run_in_transaction
from .ledger_service import append_ledger_event


def shifts_of(company_id: int):
    return TenantRepository(CashierShift, "Cashier shift").for_company(company_id)


def points_of_sale_of(company_id: int):
    return TenantRepository(PointOfSale, "Point of sale").for_company(company_id)


def lock_shift(company_id: int, shift_id: int) -> CashierShift:
    return shifts_of(company_id).get(shift_id, lock=True)


# =============================================================================
# POINTS OF SALE
# =============================================================================

def create_point_of_sale(company_id: int, name: str, description: str | None = None) -> PointOfSale:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")

    def _op() -> PointOfSale:
        require_company(company_id)
        existing = points_of_sale_of(company_id).query().filter(PointOfSale.name == name).first()
        if existing:
            raise ConflictError(f"Point of sale '{name}' already exists")
        pos = PointOfSale(company_id=company_id, name=name, description=description, is_active=True)
        db.session.add(pos)
        try:
            db.session.flush()
        except IntegrityError:
            raise ConflictError(f"Point of sale '{name}' already exists")
        return pos

    return run_in_transaction(_op)


def list_points_of_sale(company_id: int, active_only: bool = False) -> list[PointOfSale]:
    filters = [PointOfSale.is_active.is_(True)] if active_only else []
    return points_of_sale_of(company_id).list(*filters, order_by=PointOfSale.name.asc())


# =============================================================================
# SHIFT MANAGEMENT
# =============================================================================

def open_shift(
    company_id: int,
    point_of_sale_id: int,
    opening_balance_cents: int,
    opened_by: str | None = None,
) -> CashierShift:
    """
    Open a shift at a point of sale.

    Raises:
        NotFoundError: unknown point of sale
        InvalidStateError: point of sale inactive, or it already has an open shift
        ValidationError: negative opening balance
    """
    opening = enforce_cents("opening_balance_cents", opening_balance_cents)

    def _op() -> CashierShift:
        # Locking the POS row serializes concurrent opens on engines with row locks
        pos = points_of_sale_of(company_id).get(point_of_sale_id, lock=True)
        if not pos.is_active:
            raise InvalidStateError(f"Point of sale '{pos.name}' is inactive")

        open_shift_row = (
            shifts_of(company_id)
            .query()
            .filter(
                CashierShift.point_of_sale_id == pos.id,
                CashierShift.status == SHIFT_STATUS_OPEN,
            )
            .first()
        )
        if open_shift_row:
            raise InvalidStateError(
                f"Point of sale '{pos.name}' already has an open shift",
                {"cashier_shift_id": open_shift_row.id},
            )

        shift = CashierShift(
            company_id=company_id,
            point_of_sale_id=pos.id,
            point_of_sale_name=pos.name,
            status=SHIFT_STATUS_OPEN,
            opening_balance_cents=opening,
            calculated_cash_total_cents=0,
            opening_time=utcnow(),
            opened_by=opened_by,
        )
        db.session.add(shift)
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="shift.opened",
            entity_type="cashier_shift",
            entity_id=shift.id,
            payload={"point_of_sale_id": pos.id, "opening_balance_cents": opening},
        )
        return shift

    shift = run_in_transaction(_op)
    current_app.logger.info(
        "Shift %s opened at point of sale %s (opening %s)",
        shift.id,
        shift.point_of_sale_id,
        shift.opening_balance_cents,
    )
    return shift


def record_cash_payment(shift: CashierShift, payment: InvoicePayment) -> None:
    """
    Link a cash payment to an open shift and add it to the running total.

    Runs inside the caller's unit of work (record_payment).
    """
    if not shift.is_open:
        raise InvalidStateError(
            f"Cashier shift {shift.id} is closed",
            {"cashier_shift_id": shift.id},
        )
    payment.cashier_shift_id = shift.id
    shift.calculated_cash_total_cents = (shift.calculated_cash_total_cents or 0) + payment.amount_cents


def record_cash_expense(shift: CashierShift, expense: Expense) -> None:
    """Link an expense paid from the drawer and subtract it from the running total."""
    if not shift.is_open:
        raise InvalidStateError(
            f"Cashier shift {shift.id} is closed",
            {"cashier_shift_id": shift.id},
        )
    expense.cashier_shift = shift
    shift.calculated_cash_total_cents = (shift.calculated_cash_total_cents or 0) - expense.amount_cents


def close_shift(
    company_id: int,
    shift_id: int,
    counted_closing_balance_cents: int,
    notes: str | None = None,
    closed_by: str | None = None,
) -> CashierShift:
    """
    Close a shift with the counted cash.

    expected   = opening_balance + calculated_cash_total
    difference = counted - expected   (negative: cash missing)
    """
    counted = enforce_cents("closing_balance_cents", counted_closing_balance_cents)

    def _op() -> CashierShift:
        shift = lock_shift(company_id, shift_id)
        if shift.status == SHIFT_STATUS_CLOSED:
            raise InvalidStateError(
                f"Cashier shift {shift.id} is already closed",
                {"cashier_shift_id": shift.id},
            )

        expected = shift.opening_balance_cents + shift.calculated_cash_total_cents
        shift.closing_balance_cents = counted
        shift.expected_balance_cents = expected
        shift.difference_cents = counted - expected
        shift.closing_time = utcnow()
        shift.closed_by = closed_by
        shift.notes = notes
        shift.status = SHIFT_STATUS_CLOSED
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="shift.closed",
            entity_type="cashier_shift",
            entity_id=shift.id,
            payload={
                "expected_balance_cents": expected,
                "closing_balance_cents": counted,
                "difference_cents": shift.difference_cents,
            },
        )
        return shift

    shift = run_in_transaction(_op)
    if shift.difference_cents:
        current_app.logger.warning(
            "Shift %s closed with difference %s cents", shift.id, shift.difference_cents
        )
    else:
        current_app.logger.info("Shift %s closed balanced", shift.id)
    return shift


def get_shift(company_id: int, shift_id: int) -> CashierShift:
    return shifts_of(company_id).get(shift_id)


def get_open_shift(company_id: int, point_of_sale_id: int) -> CashierShift | None:
    return (
        shifts_of(company_id)
        .query()
        .filter(
            CashierShift.point_of_sale_id == point_of_sale_id,
            CashierShift.status == SHIFT_STATUS_OPEN,
        )
        .first()
    )


def list_shifts(
    company_id: int,
    status: str | None = None,
    point_of_sale_id: int | None = None,
) -> list[CashierShift]:
    filters = []
    if status:
        filters.append(CashierShift.status == status.upper())
    if point_of_sale_id is not None:
        filters.append(CashierShift.point_of_sale_id == point_of_sale_id)
    return shifts_of(company_id).list(*filters, order_by=CashierShift.id.desc())


def get_shift_summary(company_id: int, shift_id: int) -> dict:
    """
    Shift with its linked movements and a recomputed breakdown.

    cash_payments_cents - expenses_cents always equals
    calculated_cash_total_cents; the breakdown is recomputed from the
    linked rows so the two can be compared.
    """
    shift = get_shift(company_id, shift_id)
    cash_payments = sum(p.amount_cents for p in shift.payments)
    expenses = sum(e.amount_cents for e in shift.expenses)

    summary = shift.to_dict(include_movements=True)
    summary["cash_payments_cents"] = cash_payments
    summary["expenses_cents"] = expenses
    summary["expected_balance_cents"] = shift.opening_balance_cents + shift.calculated_cash_total_cents
    return summary


# =============================================================================
# EXPENSES
# =============================================================================

def create_expense_category(company_id: int, name: str) -> ExpenseCategory:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")

    def _op() -> ExpenseCategory:
        require_company(company_id)
        existing = (
            TenantRepository(ExpenseCategory).for_company(company_id)
            .query()
            .filter(ExpenseCategory.name == name)
            .first()
        )
        if existing:
            raise ConflictError(f"Expense category '{name}' already exists")
        category = ExpenseCategory(company_id=company_id, name=name)
        db.session.add(category)
        db.session.flush()
        return category

    return run_in_transaction(_op)


def list_expense_categories(company_id: int) -> list[ExpenseCategory]:
    return TenantRepository(ExpenseCategory).for_company(company_id).list(order_by=ExpenseCategory.name.asc())


def add_expense(company_id: int, data: dict) -> Expense:
    """
    Record an expense.

    data: category_id, amount_cents (> 0), description, recorded_by,
    cashier_shift_id (optional; when given the expense is paid from that
    open shift's drawer).
    """
    data = data or {}
    amount = enforce_cents("amount_cents", data.get("amount_cents"), allow_zero=False)
    if data.get("category_id") is None:
        raise ValidationError("category_id is required")

    def _op() -> Expense:
        category = (
            TenantRepository(ExpenseCategory, "Expense category")
            .for_company(company_id)
            .get(data["category_id"])
        )
        expense = Expense(
            company_id=company_id,
            category_id=category.id,
            category_name=category.name,
            amount_cents=amount,
            description=data.get("description"),
            recorded_by=data.get("recorded_by"),
        )
        if data.get("cashier_shift_id") is not None:
            shift = lock_shift(company_id, data["cashier_shift_id"])
            record_cash_expense(shift, expense)
        db.session.add(expense)
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="expense.recorded",
            entity_type="expense",
            entity_id=expense.id,
            payload={"amount_cents": amount, "cashier_shift_id": expense.cashier_shift_id},
        )
        return expense

    return run_in_transaction(_op)


def list_expenses(company_id: int, cashier_shift_id: int | None = None) -> list[Expense]:
    filters = []
    if cashier_shift_id is not None:
        filters.append(Expense.cashier_shift_id == cashier_shift_id)
    return TenantRepository(Expense).for_company(company_id).list(*filters, order_by=Expense.id.desc())
