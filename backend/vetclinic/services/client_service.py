# backend/vetclinic/services/client_service.py
"""
Clients, pets and reminders.

DELETION: Clients are removed with an application-level cascade over
their pets, weight entries, medical records, prescriptions, reminders,
appointments and hospitalizations. Invoices are never deleted, so a
client with invoices cannot be removed.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import InvalidStateError, ValidationError
from ..models import (
    Appointment,
    Client,
    Hospitalization,
    Invoice,
    MedicalRecord,
    MedicationLogEntry,
    Pet,
    Prescription,
    ProgressNote,
    Reminder,
    VitalSignEntry,
    WeightEntry,
)
from ..models.clinic import REMINDER_STATUSES
from ..repository import TenantRepository, require_company
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import run_in_transaction
from .ledger_service import append_ledger_event

CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "email",
        "phone",
        "address",
        "identification_number",
        "billing_address",
        "member_since",
    },
    required_on_create={"name"},
)

PET_POLICY = ModelValidationPolicy(
    writable_fields={"name", "species", "breed", "sex", "color", "birth_date", "medical_alerts"},
    required_on_create={"name"},
)


def clients_of(company_id: int):
    return TenantRepository(Client).for_company(company_id)


def pets_of(company_id: int):
    return TenantRepository(Pet).for_company(company_id)


def reminders_of(company_id: int):
    return TenantRepository(Reminder).for_company(company_id)


def create_client(company_id: int, data: dict) -> Client:
    patch = validate_payload(model=Client, payload=data, policy=CLIENT_POLICY, partial=False)

    def _op() -> Client:
        require_company(company_id)
        client = Client(company_id=company_id, **patch)
        db.session.add(client)
        db.session.flush()
        return client

    client = run_in_transaction(_op)
    current_app.logger.info("Client %s created for company %s", client.id, company_id)
    return client


def update_client(company_id: int, client_id: int, data: dict) -> Client:
    patch = validate_payload(model=Client, payload=data, policy=CLIENT_POLICY, partial=True)

    def _op() -> Client:
        client = clients_of(company_id).get(client_id)
        for key, value in patch.items():
            setattr(client, key, value)
        db.session.flush()
        return client

    return run_in_transaction(_op)


def get_client(company_id: int, client_id: int) -> Client:
    return clients_of(company_id).get(client_id)


def list_clients(company_id: int, search: str | None = None) -> list[Client]:
    filters = []
    if search:
        filters.append(func.lower(Client.name).contains(search.strip().lower()))
    return clients_of(company_id).list(*filters, order_by=Client.name.asc())


def create_pet(company_id: int, client_id: int, data: dict) -> Pet:
    patch = validate_payload(model=Pet, payload=data, policy=PET_POLICY, partial=False)
    alerts = patch.get("medical_alerts")
    if alerts is not None and not isinstance(alerts, list):
        raise ValidationError("medical_alerts must be a list")

    def _op() -> Pet:
        client = clients_of(company_id).get(client_id)
        pet = Pet(company_id=company_id, owner_id=client.id, **patch)
        db.session.add(pet)
        db.session.flush()
        return pet

    return run_in_transaction(_op)


def get_pet(company_id: int, pet_id: int) -> Pet:
    return pets_of(company_id).get(pet_id)


def list_pets(company_id: int, client_id: int | None = None) -> list[Pet]:
    filters = []
    if client_id is not None:
        filters.append(Pet.owner_id == client_id)
    return pets_of(company_id).list(*filters, order_by=Pet.name.asc())


def delete_client(company_id: int, client_id: int) -> None:
    """
    Delete a client and everything clinical hanging off it.

    Raises:
        NotFoundError: unknown client (or another company's)
        InvalidStateError: the client has invoices
    """

    def _op() -> None:
        client = clients_of(company_id).get(client_id)

        invoice_count = (
            db.session.query(func.count(Invoice.id))
            .filter(Invoice.company_id == company_id, Invoice.client_id == client.id)
            .scalar()
        )
        if invoice_count:
            raise InvalidStateError(
                f"Client {client.name} has invoices and cannot be deleted",
                {"client_id": client.id, "invoice_count": invoice_count},
            )

        pet_ids = [pet.id for pet in client.pets]
        hosp_ids = [
            row.id
            for row in db.session.query(Hospitalization.id).filter(
                Hospitalization.company_id == company_id,
                Hospitalization.client_id == client.id,
            )
        ]

        # Children before parents: reminders reference medical records
        db.session.query(Reminder).filter(
            Reminder.company_id == company_id, Reminder.client_id == client.id
        ).delete(synchronize_session=False)
        db.session.query(Appointment).filter(
            Appointment.company_id == company_id, Appointment.client_id == client.id
        ).delete(synchronize_session=False)

        if hosp_ids:
            for model in (MedicationLogEntry, VitalSignEntry, ProgressNote):
                db.session.query(model).filter(model.hospitalization_id.in_(hosp_ids)).delete(
                    synchronize_session=False
                )
            db.session.query(Hospitalization).filter(Hospitalization.id.in_(hosp_ids)).delete(
                synchronize_session=False
            )

        if pet_ids:
            db.session.query(WeightEntry).filter(WeightEntry.pet_id.in_(pet_ids)).delete(
                synchronize_session=False
            )
            db.session.query(Prescription).filter(
                Prescription.company_id == company_id, Prescription.pet_id.in_(pet_ids)
            ).delete(synchronize_session=False)
            db.session.query(MedicalRecord).filter(
                MedicalRecord.company_id == company_id, MedicalRecord.pet_id.in_(pet_ids)
            ).delete(synchronize_session=False)
            db.session.query(Pet).filter(Pet.id.in_(pet_ids)).delete(synchronize_session=False)

        db.session.query(Client).filter(Client.id == client.id).delete(synchronize_session=False)
        # Bulk deletes bypass the identity map
        db.session.expire_all()

        append_ledger_event(
            company_id=company_id,
            event_type="client.deleted",
            entity_type="client",
            entity_id=client_id,
            payload={"pet_ids": pet_ids},
        )

    run_in_transaction(_op)
    current_app.logger.info("Client %s deleted from company %s", client_id, company_id)


def list_reminders(company_id: int, status: str | None = None) -> list[Reminder]:
    filters = []
    if status:
        filters.append(Reminder.status == status.upper())
    return reminders_of(company_id).list(*filters, order_by=Reminder.due_date.asc())


def update_reminder_status(company_id: int, reminder_id: int, status: str) -> Reminder:
    status = (status or "").strip().upper()
    if status not in REMINDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(REMINDER_STATUSES)}")

    def _op() -> Reminder:
        reminder = reminders_of(company_id).get(reminder_id)
        reminder.status = status
        db.session.flush()
        return reminder

    return run_in_transaction(_op)
