# Overview: Internal consumption (non-sale stock removal: internal use, waste, expired, damaged).

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import ValidationError
from ..models import InternalConsumption
from ..numbers import to_quantity
from ..repository import TenantRepository
from ..validation import optional_int
from . import stock_service
from .concurrency import run_in_transaction
from .ledger_service import append_ledger_event


def record_internal_consumption(company_id: int, data: dict) -> InternalConsumption:
    """
    Remove stock without an invoice.

    data: product_id, quantity, lot_id (required for lot-tracked products),
    reason, recorded_by.
    """
    data = data or {}
    if data.get("product_id") is None:
        raise ValidationError("product_id is required")
    reason = (data.get("reason") or "").strip()
    if not reason:
        raise ValidationError("reason is required")
    quantity = to_quantity(data.get("quantity"), "quantity")

    def _op() -> InternalConsumption:
        product = stock_service.lock_product(company_id, data["product_id"])
        if product.is_service:
            raise ValidationError(f"{product.name} is a service and holds no stock")

        record = InternalConsumption(
            company_id=company_id,
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            reason=reason,
            recorded_by=data.get("recorded_by"),
        )
        db.session.add(record)
        db.session.flush()

        lot = stock_service.consume_for_reason(
            product,
            quantity,
            optional_int(data, "lot_id"),
            reason=stock_service.REASON_CONSUMPTION,
            reference_type="internal_consumption",
            reference_id=record.id,
        )
        record.lot_id = lot.id
        record.lot_number = lot.lot_number
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="inventory.consumed",
            entity_type="internal_consumption",
            entity_id=record.id,
            note=reason[:255],
        )
        return record

    record = run_in_transaction(_op)
    current_app.logger.info(
        "Internal consumption %s: product %s qty %s (%s)",
        record.id,
        record.product_id,
        record.quantity,
        record.reason,
    )
    return record


def list_internal_consumptions(company_id: int) -> list[InternalConsumption]:
    return (
        TenantRepository(InternalConsumption)
        .for_company(company_id)
        .list(order_by=InternalConsumption.id.desc())
    )
