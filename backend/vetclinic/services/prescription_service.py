# Overview: Prescriptions written for a pet.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import ValidationError
from ..models import Pet, Prescription
from ..repository import TenantRepository
from ..time_utils import parse_iso_date, utcnow
from .concurrency import run_in_transaction
from .ledger_service import append_ledger_event

ITEM_FIELDS = ("medication", "dosage", "frequency", "duration", "instructions")
MAX_FIELD_LENGTH = 500


def prescriptions_of(company_id: int):
    return TenantRepository(Prescription).for_company(company_id)


def _parse_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        unknown = sorted(set(raw) - set(ITEM_FIELDS))
        if unknown:
            raise ValidationError(f"items[{index}] has unknown fields: {', '.join(unknown)}")

        item = {}
        for field in ITEM_FIELDS:
            value = raw.get(field)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"items[{index}].{field} must be a string")
            value = (value or "").strip()
            if len(value) > MAX_FIELD_LENGTH:
                raise ValidationError(f"items[{index}].{field} exceeds max length {MAX_FIELD_LENGTH}")
            item[field] = value
        if not item["medication"]:
            raise ValidationError(f"items[{index}].medication is required")
        items.append(item)
    return items


def add_prescription(company_id: int, pet_id: int, data: dict) -> Prescription:
    """
    Write a prescription for a pet.

    data: items (required; medication, dosage, frequency, duration,
    instructions), prescribed_on (defaults to today), vet.
    Prescribing never moves stock.
    """
    data = data or {}
    items = _parse_items(data.get("items"))

    raw_date = data.get("prescribed_on", data.get("date"))
    if raw_date in (None, ""):
        prescribed_on = utcnow().date()
    else:
        if not isinstance(raw_date, str):
            raise ValidationError("prescribed_on must be an ISO-8601 date")
        try:
            prescribed_on = parse_iso_date(raw_date)
        except ValueError:
            raise ValidationError("prescribed_on must be an ISO-8601 date")

    vet = data.get("vet")
    if vet is not None and not isinstance(vet, str):
        raise ValidationError("vet must be a string")

    def _op() -> Prescription:
        pet = TenantRepository(Pet).for_company(company_id).get(pet_id)
        prescription = Prescription(
            company_id=company_id,
            pet_id=pet.id,
            prescribed_on=prescribed_on,
            vet=vet.strip()[:255] if vet else None,
            items=items,
        )
        db.session.add(prescription)
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="prescription.created",
            entity_type="prescription",
            entity_id=prescription.id,
            payload={"pet_id": pet.id, "medications": [item["medication"] for item in items]},
        )
        return prescription

    prescription = run_in_transaction(_op)
    current_app.logger.info("Prescription %s written for pet %s", prescription.id, pet_id)
    return prescription


def get_prescription(company_id: int, prescription_id: int) -> Prescription:
    return prescriptions_of(company_id).get(prescription_id)


def list_prescriptions(company_id: int, pet_id: int) -> list[Prescription]:
    TenantRepository(Pet).for_company(company_id).get(pet_id)
    return prescriptions_of(company_id).list(
        Prescription.pet_id == pet_id,
        order_by=(Prescription.prescribed_on.desc(), Prescription.id.desc()),
    )
