# Overview: Invoice lifecycle: counter sales, item edits, payments and numbering.

from __future__ import annotations

from dataclasses import replace
from datetime import date

from flask import current_app

from ..extensions import db
from ..errors import InvalidStateError, ValidationError
from ..models import Client, Invoice, InvoiceItem, InvoicePayment, Pet, Product
from ..models.billing import (
    INVOICE_SOURCES,
    INVOICE_STATUS_PAID,
    INVOICE_STATUS_UNPAID,
    PAYMENT_METHOD_CASH,
    PAYMENT_METHODS,
)
from ..repository import TenantRepository, require_company
from ..time_utils import utcnow
from ..validation import LineRequest, enforce_cents, parse_line_items
from . import cashier_service, stock_service
from .billing_math import InvoiceTotals, LineInput, compute_totals
from .concurrency import run_in_transaction
from .document_service import next_invoice_number
from .ledger_service import append_ledger_event
"""
Invoice Invariants (authoritative)

- Totals always come from billing_math.compute_totals over the stored items.
- balance_due_cents = total_cents - amount_paid_cents at all times.
- Status becomes PAID whenever balance_due_cents <= 0: after a payment, or
  as soon as the totals come to zero (full discount, zero-priced lines).
- Items are immutable once amount_paid_cents > 0.
- tax_rate_bps is the company's rate at creation; edits reuse the stored rate.
- Invoice numbers come from a per-company counter incremented inside the
  same transaction as the invoice (gap-free, monotonic).
- A sale either applies every line's stock deduction or none of them.
- Invoices created with skip_stock_deduction (discharge billing) keep
  stock_deducted=False; editing them re-prices lines and never moves stock.
"""

STOCK_REFERENCE = "invoice"


def invoices_of(company_id: int):
    return TenantRepository(Invoice).for_company(company_id)


def _as_line_requests(items) -> list[LineRequest]:
    items = list(items or [])
    if items and all(isinstance(item, LineRequest) for item in items):
        return items
    return parse_line_items(items)


def _line_pricing(line: LineRequest, product: Product | None) -> dict:
    """
    Snapshot fields for one line. Price and discount default to the
    product's current values when the caller omits them.
    """
    if product is None:
        return {
            "name": line.name,
            "description": line.description,
            "unit_price_cents": line.unit_price_cents,
            "discount_percentage": line.discount_percentage,
            "discount_amount_cents": line.discount_amount_cents,
        }

    discount_percentage = line.discount_percentage
    discount_amount_cents = line.discount_amount_cents
    if discount_percentage is None and discount_amount_cents is None:
        discount_percentage = product.discount_percentage

    return {
        "name": line.name or product.name,
        "description": line.description if line.description is not None else product.description,
        "unit_price_cents": (
            line.unit_price_cents if line.unit_price_cents is not None else product.sale_price_cents
        ),
        "discount_percentage": discount_percentage,
        "discount_amount_cents": discount_amount_cents,
    }


def _lot_snapshot_from_product(product: Product, line: LineRequest) -> dict:
    """Lot snapshot for lines whose stock was already taken (discharge billing)."""
    if not product.uses_lot_tracking or line.lot_id is None:
        return {"lot_id": None, "lot_number": None, "lot_expiration_date": None}
    lot_number = line.lot_number
    expiration = line.lot_expiration_date
    if lot_number is None:
        for lot in product.lots:
            if lot.id == line.lot_id:
                lot_number = lot.lot_number
                expiration = lot.expiration_date
                break
    return {"lot_id": line.lot_id, "lot_number": lot_number, "lot_expiration_date": expiration}


def _carry_lot_snapshots(invoice: Invoice, lines: list[LineRequest]) -> list[LineRequest]:
    """Keep the lot recorded on the original line when an edit names none."""
    previous = {}
    for item in invoice.items:
        if item.product_id is not None and item.lot_id is not None:
            previous.setdefault(item.product_id, item)

    carried = []
    for line in lines:
        item = previous.get(line.product_id)
        if item is not None and line.lot_id is None:
            line = replace(
                line,
                lot_id=item.lot_id,
                lot_number=item.lot_number,
                lot_expiration_date=item.lot_expiration_date,
            )
        carried.append(line)
    return carried


def _append_lines(
    company_id: int,
    invoice: Invoice,
    lines: list[LineRequest],
    *,
    skip_stock_deduction: bool,
) -> None:
    for line in lines:
        product = None
        if line.product_id is not None:
            product = stock_service.lock_product(company_id, line.product_id)

        lot_fields = {"lot_id": None, "lot_number": None, "lot_expiration_date": None}
        if product is not None and not skip_stock_deduction:
            lot = stock_service.deduct_stock(
                product,
                line.quantity,
                line.lot_id,
                reason=stock_service.REASON_SALE,
                reference_type=STOCK_REFERENCE,
                reference_id=invoice.id,
            )
            if lot is not None and not lot.is_bucket:
                lot_fields = {
                    "lot_id": lot.id,
                    "lot_number": lot.lot_number,
                    "lot_expiration_date": lot.expiration_date,
                }
        elif product is not None:
            lot_fields = _lot_snapshot_from_product(product, line)

        invoice.items.append(
            InvoiceItem(
                product_id=product.id if product is not None else None,
                quantity=line.quantity,
                **_line_pricing(line, product),
                **lot_fields,
            )
        )
    db.session.flush()


def _apply_totals(invoice: Invoice) -> InvoiceTotals:
    totals = compute_totals(invoice.items, invoice.tax_rate_bps)
    for item, line in zip(invoice.items, totals.lines):
        item.line_subtotal_cents = line.subtotal_cents
        item.line_discount_cents = line.discount_cents
        item.line_total_cents = line.total_cents

    invoice.subtotal_cents = totals.subtotal_cents
    invoice.total_discount_cents = totals.total_discount_cents
    invoice.tax_cents = totals.tax_cents
    invoice.total_cents = totals.total_cents
    invoice.balance_due_cents = totals.total_cents - (invoice.amount_paid_cents or 0)
    if invoice.balance_due_cents <= 0:
        invoice.status = INVOICE_STATUS_PAID
    return totals


def create_sale_locked(
    company_id: int,
    client_id: int,
    items,
    pet_id: int | None = None,
    *,
    skip_stock_deduction: bool = False,
    source: str = "counter",
    invoice_date: date | None = None,
) -> Invoice:
    """
    Create an invoice inside the caller's unit of work (no commit).

    Used directly by the medical-record and discharge bridges so the
    invoice commits or rolls back together with their own rows.
    """
    if source not in INVOICE_SOURCES:
        raise ValidationError(f"source must be one of: {', '.join(INVOICE_SOURCES)}")
    lines = _as_line_requests(items)

    company = require_company(company_id)
    client = TenantRepository(Client).for_company(company_id).get(client_id)
    pet = None
    if pet_id is not None:
        pet = TenantRepository(Pet).for_company(company_id).get(pet_id)
        if pet.owner_id != client.id:
            raise ValidationError(
                f"Pet {pet.id} does not belong to client {client.id}",
                {"pet_id": pet.id, "client_id": client.id},
            )

    invoice = Invoice(
        company_id=company_id,
        invoice_number=next_invoice_number(company_id),
        client_id=client.id,
        client_name=client.name,
        pet_id=pet.id if pet else None,
        pet_name=pet.name if pet else None,
        invoice_date=invoice_date or utcnow().date(),
        status=INVOICE_STATUS_UNPAID,
        source=source,
        stock_deducted=not skip_stock_deduction,
        tax_rate_bps=company.tax_rate_bps or 0,
        amount_paid_cents=0,
    )
    db.session.add(invoice)
    # Stock movements reference the invoice id
    db.session.flush()

    _append_lines(company_id, invoice, lines, skip_stock_deduction=skip_stock_deduction)
    _apply_totals(invoice)
    db.session.flush()

    append_ledger_event(
        company_id=company_id,
        event_type="invoice.created",
        entity_type="invoice",
        entity_id=invoice.id,
        payload={
            "invoice_number": invoice.invoice_number,
            "source": source,
            "total_cents": invoice.total_cents,
            "skip_stock_deduction": skip_stock_deduction,
        },
    )
    return invoice


def create_sale(
    company_id: int,
    client_id: int,
    items,
    pet_id: int | None = None,
    skip_stock_deduction: bool = False,
    source: str = "counter",
) -> Invoice:
    """
    Counter sale: one transaction that numbers the invoice, snapshots the
    lines, deducts stock for every stock-bearing line and stores totals.

    Raises:
        NotFoundError: company, client, pet or product missing (or foreign)
        ValidationError: malformed lines, missing lot on a tracked product
        InsufficientStockError: any line exceeds its lot; nothing is applied
    """
    lines = _as_line_requests(items)

    def _op() -> Invoice:
        return create_sale_locked(
            company_id,
            client_id,
            lines,
            pet_id,
            skip_stock_deduction=skip_stock_deduction,
            source=source,
        )

    invoice = run_in_transaction(_op)
    current_app.logger.info(
        "Invoice %s (#%s) created for company %s: total %s",
        invoice.id,
        invoice.invoice_number,
        company_id,
        invoice.total_cents,
    )
    return invoice


def update_invoice_items(company_id: int, invoice_id: int, items) -> Invoice:
    """
    Replace the items of an unpaid invoice.

    Restores stock for every original line, then deducts for every new
    line, so the net stock change equals the difference between the two
    item lists. Totals are recomputed with the invoice's stored tax rate.
    Invoices whose stock was taken elsewhere (stock_deducted=False) are
    re-priced only; stock stays where it is.
    """
    lines = _as_line_requests(items)

    def _op() -> Invoice:
        invoice = invoices_of(company_id).get(invoice_id, lock=True)
        if (invoice.amount_paid_cents or 0) > 0:
            raise InvalidStateError(
                f"Invoice {invoice.invoice_number} has payments and cannot be edited",
                {"invoice_id": invoice.id, "amount_paid_cents": invoice.amount_paid_cents},
            )
        if invoice.status == INVOICE_STATUS_PAID:
            raise InvalidStateError(f"Invoice {invoice.invoice_number} is already paid")

        new_lines = lines
        if invoice.stock_deducted:
            for item in list(invoice.items):
                if item.product_id is None:
                    continue
                product = stock_service.lock_product(company_id, item.product_id)
                stock_service.restore_stock(
                    product,
                    item.quantity,
                    item.lot_id,
                    item.lot_number,
                    item.lot_expiration_date,
                    reason=stock_service.REASON_SALE_RESTORE,
                    reference_type=STOCK_REFERENCE,
                    reference_id=invoice.id,
                )
        else:
            new_lines = _carry_lot_snapshots(invoice, lines)

        invoice.items.clear()
        db.session.flush()

        _append_lines(company_id, invoice, new_lines, skip_stock_deduction=not invoice.stock_deducted)
        _apply_totals(invoice)
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="invoice.items_updated",
            entity_type="invoice",
            entity_id=invoice.id,
            payload={"item_count": len(lines), "total_cents": invoice.total_cents},
        )
        return invoice

    invoice = run_in_transaction(_op)
    current_app.logger.info("Invoice %s items updated: total %s", invoice.id, invoice.total_cents)
    return invoice


def record_payment(
    company_id: int,
    invoice_id: int,
    amount_cents: int,
    method: str,
    cashier_shift_id: int | None = None,
) -> Invoice:
    """
    Apply a payment to an invoice.

    - amount must be > 0 and may not exceed the balance due
    - a PAID invoice accepts no further payments
    - CASH with a shift id: the shift must be OPEN; the payment is linked
      and the shift's running cash total grows in the same transaction
    """
    amount = enforce_cents("amount_cents", amount_cents, allow_zero=False)
    method = (method or "").strip().upper()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"method must be one of: {', '.join(PAYMENT_METHODS)}")

    def _op() -> Invoice:
        invoice = invoices_of(company_id).get(invoice_id, lock=True)
        if invoice.status == INVOICE_STATUS_PAID:
            raise InvalidStateError(
                f"Invoice {invoice.invoice_number} is already paid",
                {"invoice_id": invoice.id},
            )
        if amount > invoice.balance_due_cents:
            raise ValidationError(
                "Payment exceeds the balance due",
                {"amount_cents": amount, "balance_due_cents": invoice.balance_due_cents},
            )

        payment = InvoicePayment(paid_on=utcnow().date(), amount_cents=amount, method=method)

        if cashier_shift_id is not None:
            shift = cashier_service.lock_shift(company_id, cashier_shift_id)
            if method == PAYMENT_METHOD_CASH:
                cashier_service.record_cash_payment(shift, payment)
            else:
                payment.cashier_shift_id = shift.id

        invoice.payments.append(payment)
        invoice.amount_paid_cents = (invoice.amount_paid_cents or 0) + amount
        invoice.balance_due_cents = invoice.total_cents - invoice.amount_paid_cents
        if invoice.balance_due_cents <= 0:
            invoice.status = INVOICE_STATUS_PAID
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="invoice.payment_recorded",
            entity_type="invoice",
            entity_id=invoice.id,
            payload={
                "payment_id": payment.id,
                "amount_cents": amount,
                "method": method,
                "cashier_shift_id": payment.cashier_shift_id,
            },
        )
        return invoice

    invoice = run_in_transaction(_op)
    current_app.logger.info(
        "Payment of %s (%s) recorded on invoice %s; balance %s",
        amount,
        method,
        invoice.id,
        invoice.balance_due_cents,
    )
    return invoice


def get_invoice(company_id: int, invoice_id: int) -> Invoice:
    return invoices_of(company_id).get(invoice_id)


def list_invoices(
    company_id: int,
    status: str | None = None,
    client_id: int | None = None,
) -> list[Invoice]:
    filters = []
    if status:
        filters.append(Invoice.status == status.upper())
    if client_id is not None:
        filters.append(Invoice.client_id == client_id)
    return invoices_of(company_id).list(*filters, order_by=Invoice.id.desc())


def preview_totals(company_id: int, items) -> InvoiceTotals:
    """
    Totals for a prospective sale with the company's current tax rate.

    Touches no stock and allocates no number; prices and discounts default
    from the catalog exactly as create_sale does.
    """
    lines = _as_line_requests(items)
    company = require_company(company_id)
    products = TenantRepository(Product).for_company(company_id)

    inputs = []
    for line in lines:
        product = products.get(line.product_id) if line.product_id is not None else None
        pricing = _line_pricing(line, product)
        inputs.append(
            LineInput(
                unit_price_cents=pricing["unit_price_cents"],
                quantity=line.quantity,
                discount_percentage=pricing["discount_percentage"],
                discount_amount_cents=pricing["discount_amount_cents"],
            )
        )
    return compute_totals(inputs, company.tax_rate_bps or 0)
