"""
Hospitalization Billing Bridge

WHY: Medication given to an in-patient leaves the shelf when it is given,
but the owner pays at discharge. Stock is consumed when the entry is
logged; discharge bills the unbilled entries without touching stock again.

DESIGN PRINCIPLES:
- Logs are appended only while the stay is ACTIVE
- A medication entry with a product and quantity > 0 consumes stock in the
  same transaction that stores it (insufficient stock -> nothing stored)
- Discharge bills at the product's CURRENT sale price and discount
- Entries already carrying an invoice_id are never billed twice
- Discharge (invoice, entry marks, status) is one transaction
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import InvalidStateError, ValidationError
from ..models import (
    Hospitalization,
    MedicationLogEntry,
    Pet,
    Product,
    ProgressNote,
    VitalSignEntry,
)
from ..models.hospitalization import (
    DISCHARGE_OUTCOMES,
    HOSPITALIZATION_ACTIVE,
    HOSPITALIZATION_DISCHARGED,
)
from ..numbers import ZERO, to_decimal, to_quantity
from ..repository import TenantRepository, require_company
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import LineRequest, optional_int
from . import invoice_service, stock_service
from .concurrency import run_in_transaction
from .ledger_service import append_ledger_event


def hospitalizations_of(company_id: int):
    return TenantRepository(Hospitalization).for_company(company_id)


def _lock_active(company_id: int, hosp_id: int) -> Hospitalization:
    hosp = hospitalizations_of(company_id).get(hosp_id, lock=True)
    if not hosp.is_active:
        raise InvalidStateError(
            f"Hospitalization {hosp.id} is discharged",
            {"hospitalization_id": hosp.id, "status": hosp.status},
        )
    return hosp


def _timestamp(data: dict, key: str):
    raw = data.get(key)
    if raw in (None, ""):
        return utcnow()
    if not isinstance(raw, str):
        raise ValidationError(f"{key} must be an ISO-8601 datetime")
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")


def _text(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def admit_patient(company_id: int, pet_id: int, data: dict) -> Hospitalization:
    """
    Open an ACTIVE stay for a pet.

    data: reason (required), initial_diagnosis, vet_in_charge,
    treatment_plan, admission_date (defaults to now).
    """
    data = data or {}
    reason = _text(data, "reason")
    if not reason:
        raise ValidationError("reason is required")
    admission_date = _timestamp(data, "admission_date")

    def _op() -> Hospitalization:
        require_company(company_id)
        pet = TenantRepository(Pet).for_company(company_id).get(pet_id)
        already_admitted = (
            hospitalizations_of(company_id)
            .query()
            .filter(
                Hospitalization.pet_id == pet.id,
                Hospitalization.status == HOSPITALIZATION_ACTIVE,
            )
            .first()
        )
        if already_admitted:
            raise InvalidStateError(
                f"{pet.name} is already hospitalized",
                {"hospitalization_id": already_admitted.id},
            )

        hosp = Hospitalization(
            company_id=company_id,
            pet_id=pet.id,
            client_id=pet.owner_id,
            pet_name=pet.name,
            client_name=pet.owner.name,
            status=HOSPITALIZATION_ACTIVE,
            admission_date=admission_date,
            reason=reason,
            initial_diagnosis=_text(data, "initial_diagnosis"),
            vet_in_charge=_text(data, "vet_in_charge"),
            treatment_plan=_text(data, "treatment_plan"),
        )
        db.session.add(hosp)
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="hospitalization.admitted",
            entity_type="hospitalization",
            entity_id=hosp.id,
            note=reason[:255],
        )
        return hosp

    hosp = run_in_transaction(_op)
    current_app.logger.info("Pet %s admitted (hospitalization %s)", pet_id, hosp.id)
    return hosp


def log_medication(company_id: int, hosp_id: int, entry: dict) -> MedicationLogEntry:
    """
    Append a medication entry; consumes stock when a product is given.

    entry: product_id, quantity, lot_id (tracked products), dosage, route,
    administered_by, notes, administered_at.
    """
    entry = entry or {}
    product_id = optional_int(entry, "product_id")
    quantity = ZERO
    if entry.get("quantity") not in (None, ""):
        quantity = to_quantity(entry.get("quantity"), "quantity")
        if quantity < ZERO:
            raise ValidationError("quantity must be >= 0")
    administered_at = _timestamp(entry, "administered_at")

    def _op() -> MedicationLogEntry:
        hosp = _lock_active(company_id, hosp_id)

        log_entry = MedicationLogEntry(
            administered_at=administered_at,
            administered_by=_text(entry, "administered_by"),
            quantity=quantity,
            dosage=_text(entry, "dosage"),
            route=_text(entry, "route"),
            notes=_text(entry, "notes"),
        )
        hosp.medication_log.append(log_entry)
        db.session.flush()

        if product_id is not None:
            product = stock_service.lock_product(company_id, product_id)
            log_entry.product_id = product.id
            log_entry.product_name = product.name
            if quantity > ZERO:
                lot = stock_service.consume_for_reason(
                    product,
                    quantity,
                    optional_int(entry, "lot_id"),
                    reason=stock_service.REASON_MEDICATION,
                    reference_type="medication_log",
                    reference_id=log_entry.id,
                )
                if lot is not None and not lot.is_bucket:
                    log_entry.lot_id = lot.id
                    log_entry.lot_number = lot.lot_number
                    log_entry.lot_expiration_date = lot.expiration_date
        else:
            log_entry.product_name = _text(entry, "product_name")

        db.session.flush()
        return log_entry

    log_entry = run_in_transaction(_op)
    current_app.logger.info(
        "Medication logged on hospitalization %s: product %s qty %s",
        hosp_id,
        log_entry.product_id,
        log_entry.quantity,
    )
    return log_entry


def log_vital_signs(company_id: int, hosp_id: int, data: dict) -> VitalSignEntry:
    data = data or {}
    temperature = data.get("temperature")
    if temperature not in (None, ""):
        temperature = to_decimal(temperature, "temperature")
    else:
        temperature = None
    heart_rate = optional_int(data, "heart_rate")
    respiratory_rate = optional_int(data, "respiratory_rate")
    recorded_at = _timestamp(data, "recorded_at")

    def _op() -> VitalSignEntry:
        hosp = _lock_active(company_id, hosp_id)
        vital = VitalSignEntry(
            recorded_at=recorded_at,
            recorded_by=_text(data, "recorded_by"),
            temperature=temperature,
            heart_rate=heart_rate,
            respiratory_rate=respiratory_rate,
            blood_pressure=_text(data, "blood_pressure"),
            notes=_text(data, "notes"),
        )
        hosp.vital_signs_log.append(vital)
        db.session.flush()
        return vital

    return run_in_transaction(_op)


def add_progress_note(company_id: int, hosp_id: int, data: dict) -> ProgressNote:
    data = data or {}
    text = _text(data, "note")
    if not text:
        raise ValidationError("note is required")

    def _op() -> ProgressNote:
        hosp = _lock_active(company_id, hosp_id)
        note = ProgressNote(written_at=utcnow(), author=_text(data, "author"), note=text)
        hosp.progress_notes.append(note)
        db.session.flush()
        return note

    return run_in_transaction(_op)


def update_treatment_plan(company_id: int, hosp_id: int, plan: str | None) -> Hospitalization:
    def _op() -> Hospitalization:
        hosp = _lock_active(company_id, hosp_id)
        hosp.treatment_plan = plan
        db.session.flush()
        return hosp

    return run_in_transaction(_op)


def _billable_lines(company_id: int, hosp: Hospitalization) -> tuple[list[LineRequest], list[MedicationLogEntry]]:
    """
    Unbilled entries whose product still exists, priced from the catalog now.

    Entries without a product or quantity stay unbilled.
    """
    products = TenantRepository(Product).for_company(company_id)
    lines: list[LineRequest] = []
    billed: list[MedicationLogEntry] = []

    for log_entry in hosp.medication_log:
        if log_entry.invoice_id is not None or log_entry.product_id is None:
            continue
        if to_quantity(log_entry.quantity) <= ZERO:
            continue
        product = products.find(log_entry.product_id)
        if product is None:
            current_app.logger.warning(
                "Medication entry %s references missing product %s; not billed",
                log_entry.id,
                log_entry.product_id,
            )
            continue

        lines.append(
            LineRequest(
                product_id=product.id,
                quantity=to_quantity(log_entry.quantity),
                name=log_entry.product_name or product.name,
                description=(
                    "Administered during hospitalization on "
                    f"{log_entry.administered_at.date().isoformat()}"
                ),
                unit_price_cents=product.sale_price_cents,
                lot_id=log_entry.lot_id,
                discount_percentage=to_decimal(product.discount_percentage or 0),
                lot_number=log_entry.lot_number,
                lot_expiration_date=log_entry.lot_expiration_date,
            )
        )
        billed.append(log_entry)
    return lines, billed


def discharge_patient(company_id: int, hosp_id: int, data: dict):
    """
    Discharge a stay and bill its unbilled medication.

    Returns (hospitalization, invoice or None). The invoice is created with
    skip_stock_deduction because stock left the shelf when each entry was
    logged.
    """
    data = data or {}
    outcome = _text(data, "discharge_outcome") or _text(data, "outcome")
    if outcome is not None:
        outcome = outcome.upper()
        if outcome not in DISCHARGE_OUTCOMES:
            raise ValidationError(f"discharge_outcome must be one of: {', '.join(DISCHARGE_OUTCOMES)}")
    recommendations = _text(data, "discharge_recommendations") or _text(data, "recommendations")

    def _op():
        hosp = _lock_active(company_id, hosp_id)
        lines, billed = _billable_lines(company_id, hosp)

        invoice = None
        if lines:
            invoice = invoice_service.create_sale_locked(
                company_id,
                hosp.client_id,
                lines,
                hosp.pet_id,
                skip_stock_deduction=True,
                source="hospitalization",
            )
            for log_entry in billed:
                log_entry.invoice_id = invoice.id
            hosp.invoice_id = invoice.id

        hosp.status = HOSPITALIZATION_DISCHARGED
        hosp.discharge_date = utcnow()
        hosp.discharge_outcome = outcome
        hosp.discharge_recommendations = recommendations
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="hospitalization.discharged",
            entity_type="hospitalization",
            entity_id=hosp.id,
            payload={
                "invoice_id": invoice.id if invoice else None,
                "billed_entries": [entry.id for entry in billed],
            },
        )
        return hosp, invoice

    hosp, invoice = run_in_transaction(_op)
    current_app.logger.info(
        "Hospitalization %s discharged; invoice %s",
        hosp.id,
        invoice.invoice_number if invoice else None,
    )
    return hosp, invoice


def get_hospitalization(company_id: int, hosp_id: int) -> Hospitalization:
    return hospitalizations_of(company_id).get(hosp_id)


def list_hospitalizations(company_id: int, status: str | None = None) -> list[Hospitalization]:
    filters = []
    if status:
        filters.append(Hospitalization.status == status.upper())
    return hospitalizations_of(company_id).list(*filters, order_by=Hospitalization.id.desc())
