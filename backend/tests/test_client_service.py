# Overview: Pytest coverage for clients, pets and client deletion.

import pytest

from vetclinic.errors import InvalidStateError, NotFoundError, ValidationError
from vetclinic.models import (
    Appointment,
    Hospitalization,
    MedicalRecord,
    MedicationLogEntry,
    Pet,
    Prescription,
    Reminder,
)
from vetclinic.services import (
    appointment_service,
    client_service,
    hospitalization_service,
    invoice_service,
    medical_record_service,
    prescription_service,
)


class TestClientsAndPets:
    def test_create_client_and_pet(self, db_session, company_a):
        owner = client_service.create_client(company_a.id, {
            "name": "Ines Duarte",
            "email": "ines@example.com",
            "member_since": "2025-09-01",
        })
        pet = client_service.create_pet(company_a.id, owner.id, {
            "name": "Luna",
            "species": "Cat",
            "medical_alerts": ["Allergic to penicillin"],
        })

        assert owner.member_since.isoformat() == "2025-09-01"
        assert pet.owner_id == owner.id
        assert pet.medical_alerts == ["Allergic to penicillin"]
        assert [p.name for p in client_service.list_pets(company_a.id, owner.id)] == ["Luna"]

    def test_name_required(self, db_session, company_a):
        with pytest.raises(ValidationError):
            client_service.create_client(company_a.id, {"email": "nobody@example.com"})

    def test_unknown_field_rejected(self, db_session, company_a):
        with pytest.raises(ValidationError):
            client_service.create_client(company_a.id, {"name": "X", "company_id": 99})

    def test_medical_alerts_must_be_a_list(self, db_session, company_a, client_a):
        with pytest.raises(ValidationError):
            client_service.create_pet(company_a.id, client_a.id, {"name": "Rex", "medical_alerts": "none"})

    def test_search_is_case_insensitive(self, db_session, company_a, client_a):
        client_service.create_client(company_a.id, {"name": "Pedro Alves"})
        found = client_service.list_clients(company_a.id, "gomez")
        assert [c.name for c in found] == ["Laura Gomez"]

    def test_update_client(self, db_session, company_a, client_a):
        updated = client_service.update_client(company_a.id, client_a.id, {"phone": "555-0199"})
        assert updated.phone == "555-0199"
        assert updated.name == "Laura Gomez"


class TestDeleteClient:
    def test_delete_removes_clinical_history(self, db_session, company_a, client_a, pet_a):
        medical_record_service.add_medical_record(
            company_a.id, pet_a.id, {"reason": "Exam", "weight": 10, "reminder_days": 7}
        )
        stay = hospitalization_service.admit_patient(company_a.id, pet_a.id, {"reason": "Observation"})
        hospitalization_service.log_medication(company_a.id, stay.id, {"product_name": "Saline flush"})
        hospitalization_service.add_progress_note(company_a.id, stay.id, {"note": "Resting"})
        appointment_service.create_appointment(company_a.id, {
            "pet_id": pet_a.id,
            "appointment_date": "2026-11-02",
            "appointment_time": "09:30",
            "reason": "Recheck",
        })
        prescription_service.add_prescription(company_a.id, pet_a.id, {"items": [{"medication": "Meloxicam"}]})

        client_service.delete_client(company_a.id, client_a.id)

        with pytest.raises(NotFoundError):
            client_service.get_client(company_a.id, client_a.id)
        assert db_session.query(Pet).count() == 0
        assert db_session.query(MedicalRecord).count() == 0
        assert db_session.query(Reminder).count() == 0
        assert db_session.query(Hospitalization).count() == 0
        assert db_session.query(MedicationLogEntry).count() == 0
        assert db_session.query(Appointment).count() == 0
        assert db_session.query(Prescription).count() == 0

    def test_client_with_invoices_cannot_be_deleted(self, db_session, company_a, client_a, pet_a):
        invoice_service.create_sale(
            company_a.id, client_a.id, [{"name": "Consultation", "unit_price_cents": 3000, "quantity": 1}]
        )

        with pytest.raises(InvalidStateError):
            client_service.delete_client(company_a.id, client_a.id)
        assert client_service.get_client(company_a.id, client_a.id).name == "Laura Gomez"
        assert client_service.get_pet(company_a.id, pet_a.id).name == "Toby"

    def test_delete_is_tenant_scoped(self, db_session, company_a, client_b):
        with pytest.raises(NotFoundError):
            client_service.delete_client(company_a.id, client_b.id)
