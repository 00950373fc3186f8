# backend/vetclinic/services/appointment_service.py
"""
Appointment agenda.

Appointments are plain scheduling rows: they bill nothing and move no
stock. The client always comes from the pet's owner; a client_id that
disagrees with the pet is rejected the same way counter sales reject it.
"""
from __future__ import annotations

import re
from datetime import date

from flask import current_app

from ..extensions import db
from ..errors import ValidationError
from ..models import Appointment, Pet
from ..models.clinic import APPOINTMENT_STATUSES
from ..repository import TenantRepository
from ..time_utils import parse_iso_date
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import run_in_transaction
from .ledger_service import append_ledger_event

APPOINTMENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "client_id",
        "pet_id",
        "appointment_date",
        "appointment_time",
        "reason",
        "vet",
        "status",
    },
    required_on_create={"pet_id", "appointment_date", "appointment_time", "reason"},
)

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def appointments_of(company_id: int):
    return TenantRepository(Appointment).for_company(company_id)


def _normalize(patch: dict) -> dict:
    if "appointment_time" in patch and not _TIME_RE.match(patch["appointment_time"] or ""):
        raise ValidationError("appointment_time must be HH:MM (24h)")
    if "status" in patch:
        status = (patch["status"] or "").upper()
        if status not in APPOINTMENT_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(APPOINTMENT_STATUSES)}")
        patch["status"] = status
    return patch


def _attach_pet(company_id: int, appointment: Appointment, pet_id: int, client_id: int | None) -> None:
    pet = TenantRepository(Pet).for_company(company_id).get(pet_id)
    if client_id is not None and client_id != pet.owner_id:
        raise ValidationError(
            f"Pet {pet.id} does not belong to client {client_id}",
            {"pet_id": pet.id, "client_id": client_id},
        )
    appointment.pet_id = pet.id
    appointment.pet_name = pet.name
    appointment.client_id = pet.owner_id
    appointment.client_name = pet.owner.name


def create_appointment(company_id: int, data: dict) -> Appointment:
    patch = _normalize(validate_payload(model=Appointment, payload=data, policy=APPOINTMENT_POLICY, partial=False))

    def _op() -> Appointment:
        appointment = Appointment(
            company_id=company_id,
            appointment_date=patch["appointment_date"],
            appointment_time=patch["appointment_time"],
            reason=patch["reason"],
            vet=patch.get("vet"),
        )
        if patch.get("status"):
            appointment.status = patch["status"]
        _attach_pet(company_id, appointment, patch["pet_id"], patch.get("client_id"))
        db.session.add(appointment)
        db.session.flush()

        append_ledger_event(
            company_id=company_id,
            event_type="appointment.created",
            entity_type="appointment",
            entity_id=appointment.id,
            payload={"pet_id": appointment.pet_id, "date": patch["appointment_date"].isoformat()},
        )
        return appointment

    appointment = run_in_transaction(_op)
    current_app.logger.info(
        "Appointment %s booked for pet %s on %s %s",
        appointment.id,
        appointment.pet_id,
        appointment.appointment_date,
        appointment.appointment_time,
    )
    return appointment


def update_appointment(company_id: int, appointment_id: int, data: dict) -> Appointment:
    patch = _normalize(validate_payload(model=Appointment, payload=data, policy=APPOINTMENT_POLICY, partial=True))

    def _op() -> Appointment:
        appointment = appointments_of(company_id).get(appointment_id)
        if "pet_id" in patch or "client_id" in patch:
            _attach_pet(
                company_id,
                appointment,
                patch.get("pet_id", appointment.pet_id),
                patch.get("client_id"),
            )
        for key in ("appointment_date", "appointment_time", "reason", "vet", "status"):
            if key in patch:
                setattr(appointment, key, patch[key])
        db.session.flush()
        return appointment

    return run_in_transaction(_op)


def delete_appointment(company_id: int, appointment_id: int) -> None:
    def _op() -> None:
        appointment = appointments_of(company_id).get(appointment_id)
        db.session.delete(appointment)
        db.session.flush()
        append_ledger_event(
            company_id=company_id,
            event_type="appointment.deleted",
            entity_type="appointment",
            entity_id=appointment_id,
            payload={"pet_id": appointment.pet_id},
        )

    run_in_transaction(_op)
    current_app.logger.info("Appointment %s deleted from company %s", appointment_id, company_id)


def get_appointment(company_id: int, appointment_id: int) -> Appointment:
    return appointments_of(company_id).get(appointment_id)


def list_appointments(
    company_id: int,
    on_date: str | date | None = None,
    status: str | None = None,
    pet_id: int | None = None,
) -> list[Appointment]:
    filters = []
    if on_date:
        if isinstance(on_date, str):
            try:
                on_date = parse_iso_date(on_date)
            except ValueError:
                raise ValidationError("date must be an ISO-8601 date")
        filters.append(Appointment.appointment_date == on_date)
    if status:
        filters.append(Appointment.status == status.upper())
    if pet_id is not None:
        filters.append(Appointment.pet_id == pet_id)
    return appointments_of(company_id).list(
        *filters,
        order_by=(Appointment.appointment_date.asc(), Appointment.appointment_time.asc()),
    )
