from __future__ import annotations

from ..extensions import db
from vetclinic.numbers import quantity_to_json
from vetclinic.time_utils import to_utc_z, to_iso_date


HOSPITALIZATION_ACTIVE = "ACTIVE"
HOSPITALIZATION_DISCHARGED = "DISCHARGED"

DISCHARGE_OUTCOMES = ("STABLE", "IMPROVED", "GUARDED", "DECEASED", "TRANSFERRED")


class Hospitalization(db.Model):
    """
    In-patient stay.

    LIFECYCLE:
    - ACTIVE: logs (medication, vitals, notes) may be appended
    - DISCHARGED: terminal; unbilled medication entries were invoiced

    Medication stock is deducted when an entry is logged. Discharge bills
    only entries without invoice_id and never deducts stock again.
    """
    __tablename__ = "hospitalizations"
    __table_args__ = (
        db.Index("ix_hospitalizations_company_status", "company_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    pet_id = db.Column(db.Integer, db.ForeignKey("pets.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    pet_name = db.Column(db.String(255), nullable=False)
    client_name = db.Column(db.String(255), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=HOSPITALIZATION_ACTIVE, index=True)
    admission_date = db.Column(db.DateTime(timezone=True), nullable=False)
    discharge_date = db.Column(db.DateTime(timezone=True), nullable=True)

    reason = db.Column(db.String(255), nullable=False)
    initial_diagnosis = db.Column(db.Text, nullable=True)
    vet_in_charge = db.Column(db.String(255), nullable=True)
    treatment_plan = db.Column(db.Text, nullable=True)

    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True, index=True)

    discharge_outcome = db.Column(db.String(16), nullable=True)
    discharge_recommendations = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    medication_log = db.relationship(
        "MedicationLogEntry",
        back_populates="hospitalization",
        cascade="all, delete-orphan",
        order_by="MedicationLogEntry.id",
    )
    vital_signs_log = db.relationship(
        "VitalSignEntry",
        back_populates="hospitalization",
        cascade="all, delete-orphan",
        order_by="VitalSignEntry.id",
    )
    progress_notes = db.relationship(
        "ProgressNote",
        back_populates="hospitalization",
        cascade="all, delete-orphan",
        order_by="ProgressNote.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_active(self) -> bool:
        return self.status == HOSPITALIZATION_ACTIVE

    def to_dict(self, include_logs: bool = True) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "pet_id": self.pet_id,
            "client_id": self.client_id,
            "pet_name": self.pet_name,
            "client_name": self.client_name,
            "status": self.status,
            "admission_date": to_utc_z(self.admission_date),
            "discharge_date": to_utc_z(self.discharge_date) if self.discharge_date else None,
            "reason": self.reason,
            "initial_diagnosis": self.initial_diagnosis,
            "vet_in_charge": self.vet_in_charge,
            "treatment_plan": self.treatment_plan,
            "invoice_id": self.invoice_id,
            "discharge_outcome": self.discharge_outcome,
            "discharge_recommendations": self.discharge_recommendations,
            "version_id": self.version_id,
        }
        if include_logs:
            data["medication_log"] = [entry.to_dict() for entry in self.medication_log]
            data["vital_signs_log"] = [entry.to_dict() for entry in self.vital_signs_log]
            data["progress_notes"] = [note.to_dict() for note in self.progress_notes]
        return data


class MedicationLogEntry(db.Model):
    __tablename__ = "medication_log_entries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    hospitalization_id = db.Column(db.Integer, db.ForeignKey("hospitalizations.id"), nullable=False, index=True)

    administered_at = db.Column(db.DateTime(timezone=True), nullable=False)
    administered_by = db.Column(db.String(255), nullable=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=True)
    lot_id = db.Column(db.Integer, nullable=True)
    lot_number = db.Column(db.String(64), nullable=True)
    lot_expiration_date = db.Column(db.Date, nullable=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    dosage = db.Column(db.String(128), nullable=True)
    route = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Set once the entry has been billed
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True, index=True)

    hospitalization = db.relationship("Hospitalization", back_populates="medication_log")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "hospitalization_id": self.hospitalization_id,
            "administered_at": to_utc_z(self.administered_at),
            "administered_by": self.administered_by,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "lot_id": self.lot_id,
            "lot_number": self.lot_number,
            "lot_expiration_date": to_iso_date(self.lot_expiration_date),
            "quantity": quantity_to_json(self.quantity),
            "dosage": self.dosage,
            "route": self.route,
            "notes": self.notes,
            "invoice_id": self.invoice_id,
        }


class VitalSignEntry(db.Model):
    __tablename__ = "vital_sign_entries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    hospitalization_id = db.Column(db.Integer, db.ForeignKey("hospitalizations.id"), nullable=False, index=True)

    recorded_at = db.Column(db.DateTime(timezone=True), nullable=False)
    recorded_by = db.Column(db.String(255), nullable=True)
    temperature = db.Column(db.Numeric(5, 2), nullable=True)  # Celsius
    heart_rate = db.Column(db.Integer, nullable=True)  # bpm
    respiratory_rate = db.Column(db.Integer, nullable=True)  # breaths/min
    blood_pressure = db.Column(db.String(16), nullable=True)  # "120/80"
    notes = db.Column(db.Text, nullable=True)

    hospitalization = db.relationship("Hospitalization", back_populates="vital_signs_log")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "hospitalization_id": self.hospitalization_id,
            "recorded_at": to_utc_z(self.recorded_at),
            "recorded_by": self.recorded_by,
            "temperature": quantity_to_json(self.temperature),
            "heart_rate": self.heart_rate,
            "respiratory_rate": self.respiratory_rate,
            "blood_pressure": self.blood_pressure,
            "notes": self.notes,
        }


class ProgressNote(db.Model):
    __tablename__ = "progress_notes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    hospitalization_id = db.Column(db.Integer, db.ForeignKey("hospitalizations.id"), nullable=False, index=True)
    written_at = db.Column(db.DateTime(timezone=True), nullable=False)
    author = db.Column(db.String(255), nullable=True)
    note = db.Column(db.Text, nullable=False)

    hospitalization = db.relationship("Hospitalization", back_populates="progress_notes")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "hospitalization_id": self.hospitalization_id,
            "written_at": to_utc_z(self.written_at),
            "author": self.author,
            "note": self.note,
        }
