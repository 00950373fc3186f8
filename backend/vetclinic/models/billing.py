from __future__ import annotations

from ..extensions import db
from vetclinic.numbers import quantity_to_json
from vetclinic.time_utils import to_utc_z, to_iso_date


INVOICE_STATUS_UNPAID = "UNPAID"
INVOICE_STATUS_PAID = "PAID"
INVOICE_STATUS_OVERDUE = "OVERDUE"

INVOICE_SOURCES = ("counter", "medical_record", "hospitalization")

PAYMENT_METHOD_CASH = "CASH"
PAYMENT_METHODS = ("CASH", "CARD", "TRANSFER", "OTHER")


class Invoice(db.Model):
    """
    Client invoice.

    LIFECYCLE:
    - UNPAID: created with amount_paid_cents=0, balance_due_cents=total_cents
    - PAID: balance_due_cents <= 0 (after a payment, or at once when
      the invoice totals zero)
    - OVERDUE: set externally (time-based); still payable

    INVARIANTS:
    - balance_due_cents = total_cents - amount_paid_cents
    - items are immutable once amount_paid_cents > 0
    - tax_rate_bps is snapshotted at creation; edits recompute with it,
      never with the company's current rate
    - stock_deducted=False invoices never touch stock, on creation or edit
    - invoices are never deleted
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("company_id", "invoice_number", name="uq_invoices_company_number"),
        db.Index("ix_invoices_company_status_date", "company_id", "status", "invoice_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    # Numeric string, gap-free per company ("1", "2", ...)
    invoice_number = db.Column(db.String(32), nullable=False)

    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    pet_id = db.Column(db.Integer, db.ForeignKey("pets.id"), nullable=True, index=True)
    client_name = db.Column(db.String(255), nullable=False)
    pet_name = db.Column(db.String(255), nullable=True)

    invoice_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=INVOICE_STATUS_UNPAID, index=True)
    source = db.Column(db.String(32), nullable=False, default="counter")
    # False when the stock was taken elsewhere (medication logged during a stay)
    stock_deducted = db.Column(db.Boolean, nullable=False, default=True)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    total_discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_due_cents = db.Column(db.Integer, nullable=False, default=0)

    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )
    payments = db.relationship(
        "InvoicePayment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoicePayment.id",
    )
    client = db.relationship("Client")
    pet = db.relationship("Pet")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number!r} company_id={self.company_id}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "invoice_number": self.invoice_number,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "pet_id": self.pet_id,
            "pet_name": self.pet_name,
            "invoice_date": to_iso_date(self.invoice_date),
            "status": self.status,
            "source": self.source,
            "stock_deducted": self.stock_deducted,
            "subtotal_cents": self.subtotal_cents,
            "total_discount_cents": self.total_discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "balance_due_cents": self.balance_due_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class InvoiceItem(db.Model):
    """
    Invoice line: an immutable snapshot of what was sold.

    Name, price and lot data are copied at sale time so later catalog edits
    (price changes, pruned lots) never alter a historical invoice.
    """
    __tablename__ = "invoice_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)

    # Nullable for ad-hoc service lines
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    # Lot snapshot (no FK: the lot row may be pruned at zero)
    lot_id = db.Column(db.Integer, nullable=True)
    lot_number = db.Column(db.String(64), nullable=True)
    lot_expiration_date = db.Column(db.Date, nullable=True)

    # Percentage takes precedence when set; the flat amount applies once per line
    discount_percentage = db.Column(db.Numeric(5, 2), nullable=True)
    discount_amount_cents = db.Column(db.Integer, nullable=True)

    line_subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    line_discount_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    invoice = db.relationship("Invoice", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "product_id": self.product_id,
            "name": self.name,
            "description": self.description,
            "quantity": quantity_to_json(self.quantity),
            "unit_price_cents": self.unit_price_cents,
            "lot_id": self.lot_id,
            "lot_number": self.lot_number,
            "lot_expiration_date": to_iso_date(self.lot_expiration_date),
            "discount_percentage": quantity_to_json(self.discount_percentage),
            "discount_amount_cents": self.discount_amount_cents,
            "line_subtotal_cents": self.line_subtotal_cents,
            "line_discount_cents": self.line_discount_cents,
            "line_total_cents": self.line_total_cents,
        }


class InvoicePayment(db.Model):
    """
    Payment applied to an invoice.

    Cash payments taken at a register carry cashier_shift_id; the shift's
    calculated_cash_total_cents is adjusted in the same transaction.
    """
    __tablename__ = "invoice_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)

    paid_on = db.Column(db.Date, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False, index=True)  # CASH, CARD, TRANSFER, OTHER

    cashier_shift_id = db.Column(db.Integer, db.ForeignKey("cashier_shifts.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    invoice = db.relationship("Invoice", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "paid_on": to_iso_date(self.paid_on),
            "amount_cents": self.amount_cents,
            "method": self.method,
            "cashier_shift_id": self.cashier_shift_id,
            "created_at": to_utc_z(self.created_at),
        }
