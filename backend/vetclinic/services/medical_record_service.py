# Overview: Medical records; a consultation can bill its line items in the same step.

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..errors import InvalidStateError, ValidationError
from ..models import MedicalRecord, Pet, Reminder, WeightEntry
from ..models.clinic import RECORD_CATEGORIES, REMINDER_STATUS_PENDING
from ..numbers import ZERO, to_decimal
from ..repository import TenantRepository
from ..time_utils import parse_iso_date, utcnow
from ..validation import optional_int, parse_line_items
from . import invoice_service
from .concurrency import run_in_transaction
from .ledger_service import append_ledger_event
"""
Medical Record Invariants (authoritative)

- Record, weight entry, reminder and invoice are written in ONE transaction.
  A stock failure while billing leaves none of them behind.
- Billing happens only when action == "bill" and invoice_items is non-empty;
  it deducts stock like a counter sale (source "medical_record").
- A reminder is created only when reminder_days > 0; it is due
  record_date + reminder_days and starts PENDING.
- Updates edit the clinical fields only and never bill. Once a record is
  billed its invoice_items are frozen and the record cannot be deleted
  (invoices are never deleted, and the record is where the invoice came from).
- Deleting a record keeps its reminders; they just lose the back-reference.
"""

ACTION_BILL = "bill"


def records_of(company_id: int):
    return TenantRepository(MedicalRecord, "Medical record").for_company(company_id)


def _record_date(data: dict):
    raw = data.get("record_date", data.get("date"))
    if raw in (None, ""):
        return utcnow().date()
    if not isinstance(raw, str):
        raise ValidationError("record_date must be an ISO-8601 date")
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError("record_date must be an ISO-8601 date")


def add_medical_record(company_id: int, pet_id: int, data: dict):
    """
    Store a consultation and its side effects.

    data: reason (required), record_date, vet, category, subjective,
    objective, assessment, plan, weight, reminder_days, invoice_items,
    action ("bill" to invoice the items now).

    Returns (record, invoice or None).
    """
    data = data or {}
    reason = (data.get("reason") or "").strip()
    if not reason:
        raise ValidationError("reason is required")

    category = (data.get("category") or "OTHER").strip().upper()
    if category not in RECORD_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(RECORD_CATEGORIES)}")

    record_date = _record_date(data)

    weight = None
    if data.get("weight") not in (None, ""):
        weight = to_decimal(data["weight"], "weight")
        if weight <= ZERO:
            raise ValidationError("weight must be > 0")

    reminder_days = optional_int(data, "reminder_days") or 0

    raw_items = data.get("invoice_items") or []
    if not isinstance(raw_items, list):
        raise ValidationError("invoice_items must be a list")
    bill = data.get("action") == ACTION_BILL and len(raw_items) > 0
    lines = parse_line_items(raw_items) if bill else []

    def _op():
        pet = TenantRepository(Pet).for_company(company_id).get(pet_id)

        record = MedicalRecord(
            company_id=company_id,
            pet_id=pet.id,
            record_date=record_date,
            vet=data.get("vet"),
            reason=reason,
            category=category,
            subjective=data.get("subjective"),
            objective=data.get("objective"),
            assessment=data.get("assessment"),
            plan=data.get("plan"),
            invoice_items=raw_items,
        )
        db.session.add(record)
        db.session.flush()

        if weight is not None:
            db.session.add(WeightEntry(pet_id=pet.id, recorded_on=record_date, weight=weight))

        if reminder_days > 0:
            db.session.add(
                Reminder(
                    company_id=company_id,
                    pet_id=pet.id,
                    client_id=pet.owner_id,
                    pet_name=pet.name,
                    client_name=pet.owner.name,
                    due_date=record_date + timedelta(days=reminder_days),
                    message=f"Follow-up for: {reason}"[:255],
                    category=category,
                    status=REMINDER_STATUS_PENDING,
                    related_record_id=record.id,
                )
            )

        invoice = None
        if bill:
            invoice = invoice_service.create_sale_locked(
                company_id,
                pet.owner_id,
                lines,
                pet.id,
                source="medical_record",
            )
            record.invoice_id = invoice.id

        db.session.flush()
        append_ledger_event(
            company_id=company_id,
            event_type="medical_record.created",
            entity_type="medical_record",
            entity_id=record.id,
            payload={"pet_id": pet.id, "invoice_id": record.invoice_id},
        )
        return record, invoice

    record, invoice = run_in_transaction(_op)
    current_app.logger.info(
        "Medical record %s added for pet %s (invoice %s)",
        record.id,
        pet_id,
        invoice.id if invoice else None,
    )
    return record, invoice


def get_medical_record(company_id: int, record_id: int) -> MedicalRecord:
    return records_of(company_id).get(record_id)


def list_medical_records(company_id: int, pet_id: int) -> list[MedicalRecord]:
    TenantRepository(Pet).for_company(company_id).get(pet_id)
    return records_of(company_id).list(
        MedicalRecord.pet_id == pet_id,
        order_by=MedicalRecord.record_date.desc(),
    )


_TEXT_FIELDS = ("vet", "subjective", "objective", "assessment", "plan")
_UPDATABLE_FIELDS = set(_TEXT_FIELDS) | {"reason", "category", "record_date", "date", "invoice_items"}


def update_medical_record(company_id: int, record_id: int, data: dict) -> MedicalRecord:
    """
    Edit a record's clinical content.

    Raises:
        ValidationError: unknown fields, blank reason, bad category or date
        InvalidStateError: invoice_items changed on an already billed record
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = sorted(set(data) - _UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    patch = {}
    if "reason" in data:
        reason = (data.get("reason") or "").strip()
        if not reason:
            raise ValidationError("reason is required")
        patch["reason"] = reason[:255]
    if "category" in data:
        category = (data.get("category") or "").strip().upper()
        if category not in RECORD_CATEGORIES:
            raise ValidationError(f"category must be one of: {', '.join(RECORD_CATEGORIES)}")
        patch["category"] = category
    if "record_date" in data or "date" in data:
        patch["record_date"] = _record_date(data)
    for field in _TEXT_FIELDS:
        if field in data:
            value = data[field]
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{field} must be a string")
            patch[field] = value
    if "invoice_items" in data:
        raw_items = data["invoice_items"] or []
        if not isinstance(raw_items, list):
            raise ValidationError("invoice_items must be a list")
        if raw_items:
            parse_line_items(raw_items)
        patch["invoice_items"] = raw_items

    def _op() -> MedicalRecord:
        record = records_of(company_id).get(record_id)
        if "invoice_items" in patch and record.invoice_id is not None:
            raise InvalidStateError(
                "The record was billed; its invoice items can no longer change",
                {"record_id": record.id, "invoice_id": record.invoice_id},
            )
        for key, value in patch.items():
            setattr(record, key, value)
        db.session.flush()
        return record

    return run_in_transaction(_op)


def delete_medical_record(company_id: int, record_id: int) -> None:
    """
    Remove an unbilled record. Its reminders stay, detached from it.

    Raises:
        NotFoundError: unknown record (or another company's)
        InvalidStateError: the record produced an invoice
    """

    def _op() -> None:
        record = records_of(company_id).get(record_id)
        if record.invoice_id is not None:
            raise InvalidStateError(
                "A billed medical record cannot be deleted",
                {"record_id": record.id, "invoice_id": record.invoice_id},
            )
        db.session.query(Reminder).filter(
            Reminder.company_id == company_id, Reminder.related_record_id == record.id
        ).update({Reminder.related_record_id: None}, synchronize_session=False)
        pet_id = record.pet_id
        db.session.delete(record)
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="medical_record.deleted",
            entity_type="medical_record",
            entity_id=record_id,
            payload={"pet_id": pet_id},
        )

    run_in_transaction(_op)
    current_app.logger.info("Medical record %s deleted from company %s", record_id, company_id)
