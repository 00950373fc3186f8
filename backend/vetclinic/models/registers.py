from __future__ import annotations

from ..extensions import db
from vetclinic.time_utils import to_utc_z


SHIFT_STATUS_OPEN = "OPEN"
SHIFT_STATUS_CLOSED = "CLOSED"


class CashierShift(db.Model):
    """
    Cashier shift at a point of sale.

    WHY: Cash accountability. Each shift has an opening count, a running
    calculated cash total and a counted closing balance.

    LIFECYCLE:
    - OPEN: accepts cash payments and cash expenses
    - CLOSED: difference computed; never reopened

    INVARIANT: calculated_cash_total_cents equals the sum of linked cash
    payments minus the sum of linked expenses. It is maintained
    incrementally in the same transaction as each linked row.
    """
    __tablename__ = "cashier_shifts"
    __table_args__ = (
        db.Index("ix_cashier_shifts_pos_status", "point_of_sale_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    point_of_sale_id = db.Column(db.Integer, db.ForeignKey("points_of_sale.id"), nullable=False, index=True)
    point_of_sale_name = db.Column(db.String(128), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SHIFT_STATUS_OPEN, index=True)  # OPEN, CLOSED

    # Cash tracking (all amounts in cents)
    opening_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    calculated_cash_total_cents = db.Column(db.Integer, nullable=False, default=0)
    closing_balance_cents = db.Column(db.Integer, nullable=True)
    expected_balance_cents = db.Column(db.Integer, nullable=True)  # opening + calculated
    difference_cents = db.Column(db.Integer, nullable=True)  # counted - expected

    opening_time = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    closing_time = db.Column(db.DateTime(timezone=True), nullable=True)

    opened_by = db.Column(db.String(255), nullable=True)
    closed_by = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    point_of_sale = db.relationship("PointOfSale", backref=db.backref("shifts", lazy=True))
    payments = db.relationship(
        "InvoicePayment",
        primaryjoin="and_(CashierShift.id == foreign(InvoicePayment.cashier_shift_id), "
        "InvoicePayment.method == 'CASH')",
        order_by="InvoicePayment.id",
        viewonly=True,
    )
    expenses = db.relationship("Expense", back_populates="cashier_shift", order_by="Expense.id")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_open(self) -> bool:
        return self.status == SHIFT_STATUS_OPEN

    def to_dict(self, include_movements: bool = False) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "point_of_sale_id": self.point_of_sale_id,
            "point_of_sale_name": self.point_of_sale_name,
            "status": self.status,
            "opening_balance_cents": self.opening_balance_cents,
            "calculated_cash_total_cents": self.calculated_cash_total_cents,
            "closing_balance_cents": self.closing_balance_cents,
            "expected_balance_cents": self.expected_balance_cents,
            "difference_cents": self.difference_cents,
            "opening_time": to_utc_z(self.opening_time),
            "closing_time": to_utc_z(self.closing_time) if self.closing_time else None,
            "opened_by": self.opened_by,
            "closed_by": self.closed_by,
            "notes": self.notes,
            "version_id": self.version_id,
        }
        if include_movements:
            data["payments"] = [payment.to_dict() for payment in self.payments]
            data["expenses"] = [expense.to_dict() for expense in self.expenses]
        return data


class ExpenseCategory(db.Model):
    __tablename__ = "expense_categories"
    __table_args__ = (
        db.UniqueConstraint("company_id", "name", name="uq_expense_categories_company_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "company_id": self.company_id, "name": self.name}


class Expense(db.Model):
    """
    Clinic expense. When paid from a cashier shift the shift's running cash
    total is reduced by amount_cents.
    """
    __tablename__ = "expenses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("expense_categories.id"), nullable=False, index=True)
    category_name = db.Column(db.String(128), nullable=False)

    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    cashier_shift_id = db.Column(db.Integer, db.ForeignKey("cashier_shifts.id"), nullable=True, index=True)
    recorded_by = db.Column(db.String(255), nullable=True)

    spent_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    category = db.relationship("ExpenseCategory")
    cashier_shift = db.relationship("CashierShift", back_populates="expenses")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "category_id": self.category_id,
            "category_name": self.category_name,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "cashier_shift_id": self.cashier_shift_id,
            "recorded_by": self.recorded_by,
            "spent_at": to_utc_z(self.spent_at),
        }
