from __future__ import annotations

from ..extensions import db
from vetclinic.numbers import quantity_to_json
from vetclinic.time_utils import to_utc_z, to_iso_date


RECORD_CATEGORIES = (
    "VACCINE",
    "ANTIPARASITIC",
    "SURGERY",
    "TREATMENT",
    "EXAM",
    "LAB",
    "OTHER",
)

REMINDER_STATUS_PENDING = "PENDING"
REMINDER_STATUSES = ("PENDING", "COMPLETED", "DISMISSED")

APPOINTMENT_STATUS_CONFIRMED = "CONFIRMED"
APPOINTMENT_STATUSES = ("CONFIRMED", "WAITING", "IN_PROGRESS", "COMPLETED", "CANCELLED")


class Client(db.Model):
    """
    Pet owner. Invoices snapshot the client's name at sale time.

    Deleting a client cascades (application-level) over pets, weight
    entries, medical records, reminders and hospitalizations.
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_company_name", "company_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    identification_number = db.Column(db.String(64), nullable=True)
    billing_address = db.Column(db.String(255), nullable=True)
    member_since = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    pets = db.relationship("Pet", back_populates="owner", order_by="Pet.id")

    def to_dict(self, include_pets: bool = False) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "identification_number": self.identification_number,
            "billing_address": self.billing_address,
            "member_since": to_iso_date(self.member_since),
            "created_at": to_utc_z(self.created_at),
        }
        if include_pets:
            data["pets"] = [pet.to_dict() for pet in self.pets]
        return data


class Pet(db.Model):
    __tablename__ = "pets"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    species = db.Column(db.String(64), nullable=True)
    breed = db.Column(db.String(128), nullable=True)
    sex = db.Column(db.String(32), nullable=True)
    color = db.Column(db.String(64), nullable=True)
    birth_date = db.Column(db.Date, nullable=True)
    medical_alerts = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    owner = db.relationship("Client", back_populates="pets")
    weight_history = db.relationship("WeightEntry", back_populates="pet", order_by="WeightEntry.id")

    def to_dict(self, include_weights: bool = False) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "owner_id": self.owner_id,
            "name": self.name,
            "species": self.species,
            "breed": self.breed,
            "sex": self.sex,
            "color": self.color,
            "birth_date": to_iso_date(self.birth_date),
            "medical_alerts": self.medical_alerts or [],
            "created_at": to_utc_z(self.created_at),
        }
        if include_weights:
            data["weight_history"] = [entry.to_dict() for entry in self.weight_history]
        return data


class WeightEntry(db.Model):
    __tablename__ = "weight_entries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    pet_id = db.Column(db.Integer, db.ForeignKey("pets.id"), nullable=False, index=True)
    recorded_on = db.Column(db.Date, nullable=False)
    weight = db.Column(db.Numeric(8, 3), nullable=False)  # kg

    pet = db.relationship("Pet", back_populates="weight_history")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pet_id": self.pet_id,
            "recorded_on": to_iso_date(self.recorded_on),
            "weight": quantity_to_json(self.weight),
        }


class MedicalRecord(db.Model):
    """
    Consultation record in SOAP form.

    invoice_items keeps the line payload the vet entered; when the record is
    billed, invoice_id points at the invoice created from those lines.
    """
    __tablename__ = "medical_records"
    __table_args__ = (
        db.Index("ix_medical_records_pet_date", "pet_id", "record_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    pet_id = db.Column(db.Integer, db.ForeignKey("pets.id"), nullable=False, index=True)

    record_date = db.Column(db.Date, nullable=False)
    vet = db.Column(db.String(255), nullable=True)
    reason = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False, default="OTHER")

    subjective = db.Column(db.Text, nullable=True)
    objective = db.Column(db.Text, nullable=True)
    assessment = db.Column(db.Text, nullable=True)
    plan = db.Column(db.Text, nullable=True)

    invoice_items = db.Column(db.JSON, nullable=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    pet = db.relationship("Pet", backref=db.backref("medical_records", lazy=True, order_by="MedicalRecord.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "pet_id": self.pet_id,
            "record_date": to_iso_date(self.record_date),
            "vet": self.vet,
            "reason": self.reason,
            "category": self.category,
            "subjective": self.subjective,
            "objective": self.objective,
            "assessment": self.assessment,
            "plan": self.plan,
            "invoice_items": self.invoice_items or [],
            "invoice_id": self.invoice_id,
            "created_at": to_utc_z(self.created_at),
        }


class Reminder(db.Model):
    __tablename__ = "reminders"
    __table_args__ = (
        db.Index("ix_reminders_company_status_due", "company_id", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    pet_id = db.Column(db.Integer, db.ForeignKey("pets.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    pet_name = db.Column(db.String(255), nullable=False)
    client_name = db.Column(db.String(255), nullable=False)

    due_date = db.Column(db.Date, nullable=False)
    message = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False, default="OTHER")
    status = db.Column(db.String(16), nullable=False, default=REMINDER_STATUS_PENDING, index=True)
    related_record_id = db.Column(db.Integer, db.ForeignKey("medical_records.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "pet_id": self.pet_id,
            "client_id": self.client_id,
            "pet_name": self.pet_name,
            "client_name": self.client_name,
            "due_date": to_iso_date(self.due_date),
            "message": self.message,
            "category": self.category,
            "status": self.status,
            "related_record_id": self.related_record_id,
        }


class Appointment(db.Model):
    """
    Scheduled visit for a pet.

    Client and pet names are snapshotted like on invoices so the agenda
    keeps reading correctly after a rename.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        db.Index("ix_appointments_company_date_time", "company_id", "appointment_date", "appointment_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    pet_id = db.Column(db.Integer, db.ForeignKey("pets.id"), nullable=False, index=True)
    client_name = db.Column(db.String(255), nullable=False)
    pet_name = db.Column(db.String(255), nullable=False)

    appointment_date = db.Column(db.Date, nullable=False)
    appointment_time = db.Column(db.String(5), nullable=False)  # "HH:MM"
    reason = db.Column(db.String(255), nullable=False)
    vet = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=APPOINTMENT_STATUS_CONFIRMED, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "client_id": self.client_id,
            "pet_id": self.pet_id,
            "client_name": self.client_name,
            "pet_name": self.pet_name,
            "appointment_date": to_iso_date(self.appointment_date),
            "appointment_time": self.appointment_time,
            "reason": self.reason,
            "vet": self.vet,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Prescription(db.Model):
    """
    Prescription written for a pet.

    items: [{"medication", "dosage", "frequency", "duration", "instructions"}].
    Prescribing never touches stock; the owner fills it elsewhere.
    """
    __tablename__ = "prescriptions"
    __table_args__ = (
        db.Index("ix_prescriptions_pet_date", "pet_id", "prescribed_on"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    pet_id = db.Column(db.Integer, db.ForeignKey("pets.id"), nullable=False, index=True)

    prescribed_on = db.Column(db.Date, nullable=False)
    vet = db.Column(db.String(255), nullable=True)
    items = db.Column(db.JSON, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    pet = db.relationship("Pet", backref=db.backref("prescriptions", lazy=True, order_by="Prescription.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "pet_id": self.pet_id,
            "prescribed_on": to_iso_date(self.prescribed_on),
            "vet": self.vet,
            "items": self.items or [],
            "created_at": to_utc_z(self.created_at),
        }
