# Overview: Flask API routes for clients, pets, medical records, prescriptions and reminders.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_permission
from ..errors import ClinicError
from ..services import client_service, medical_record_service, prescription_service

clients_bp = Blueprint("clients", __name__, url_prefix="/api/companies/<int:company_id>")


@clients_bp.get("/clients")
@require_permission("VIEW_CLIENTS")
def list_clients_route(company_id: int):
    clients = client_service.list_clients(company_id, search=request.args.get("search"))
    return jsonify({"clients": [c.to_dict() for c in clients]})


@clients_bp.post("/clients")
@require_permission("MANAGE_CLIENTS")
def create_client_route(company_id: int):
    payload = request.get_json(silent=True) or {}
    client = client_service.create_client(company_id, payload)
    return jsonify({"client": client.to_dict()}), 201


@clients_bp.get("/clients/<int:client_id>")
@require_permission("VIEW_CLIENTS")
def get_client_route(company_id: int, client_id: int):
    client = client_service.get_client(company_id, client_id)
    return jsonify({"client": client.to_dict(include_pets=True)})


@clients_bp.patch("/clients/<int:client_id>")
@require_permission("MANAGE_CLIENTS")
def update_client_route(company_id: int, client_id: int):
    payload = request.get_json(silent=True) or {}
    client = client_service.update_client(company_id, client_id, payload)
    return jsonify({"client": client.to_dict()})


@clients_bp.delete("/clients/<int:client_id>")
@require_permission("MANAGE_CLIENTS")
def delete_client_route(company_id: int, client_id: int):
    client_service.delete_client(company_id, client_id)
    return "", 204


@clients_bp.post("/clients/<int:client_id>/pets")
@require_permission("MANAGE_CLIENTS")
def create_pet_route(company_id: int, client_id: int):
    payload = request.get_json(silent=True) or {}
    pet = client_service.create_pet(company_id, client_id, payload)
    return jsonify({"pet": pet.to_dict()}), 201


@clients_bp.get("/pets")
@require_permission("VIEW_CLIENTS")
def list_pets_route(company_id: int):
    pets = client_service.list_pets(company_id, client_id=request.args.get("client_id", type=int))
    return jsonify({"pets": [p.to_dict() for p in pets]})


@clients_bp.get("/pets/<int:pet_id>")
@require_permission("VIEW_CLIENTS")
def get_pet_route(company_id: int, pet_id: int):
    pet = client_service.get_pet(company_id, pet_id)
    return jsonify({"pet": pet.to_dict(include_weights=True)})


# =============================================================================
# MEDICAL RECORDS
# =============================================================================

@clients_bp.get("/pets/<int:pet_id>/medical-records")
@require_permission("VIEW_PET_MEDICAL_RECORDS")
def list_medical_records_route(company_id: int, pet_id: int):
    records = medical_record_service.list_medical_records(company_id, pet_id)
    return jsonify({"records": [r.to_dict() for r in records]})


@clients_bp.post("/pets/<int:pet_id>/medical-records")
@require_permission("MANAGE_PET_MEDICAL_RECORDS")
def add_medical_record_route(company_id: int, pet_id: int):
    """
    Add a consultation.

    Request body:
    {
        "reason": "Annual vaccine",
        "category": "VACCINE",
        "weight": 12.4,                       (optional)
        "reminder_days": 365,                 (optional)
        "invoice_items": [...],               (optional)
        "action": "bill"                      (optional; bills invoice_items now)
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        record, invoice = medical_record_service.add_medical_record(company_id, pet_id, payload)
    except ClinicError:
        raise
    except Exception:
        current_app.logger.exception("Failed to add medical record for pet %s", pet_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "record": record.to_dict(),
        "invoice": invoice.to_dict() if invoice else None,
    }), 201


@clients_bp.get("/medical-records/<int:record_id>")
@require_permission("VIEW_PET_MEDICAL_RECORDS")
def get_medical_record_route(company_id: int, record_id: int):
    record = medical_record_service.get_medical_record(company_id, record_id)
    return jsonify({"record": record.to_dict()})


@clients_bp.patch("/medical-records/<int:record_id>")
@require_permission("MANAGE_PET_MEDICAL_RECORDS")
def update_medical_record_route(company_id: int, record_id: int):
    payload = request.get_json(silent=True) or {}
    record = medical_record_service.update_medical_record(company_id, record_id, payload)
    return jsonify({"record": record.to_dict()})


@clients_bp.delete("/medical-records/<int:record_id>")
@require_permission("MANAGE_PET_MEDICAL_RECORDS")
def delete_medical_record_route(company_id: int, record_id: int):
    medical_record_service.delete_medical_record(company_id, record_id)
    return "", 204


# =============================================================================
# PRESCRIPTIONS
# =============================================================================

@clients_bp.get("/pets/<int:pet_id>/prescriptions")
@require_permission("VIEW_PET_MEDICAL_RECORDS")
def list_prescriptions_route(company_id: int, pet_id: int):
    prescriptions = prescription_service.list_prescriptions(company_id, pet_id)
    return jsonify({"prescriptions": [p.to_dict() for p in prescriptions]})


@clients_bp.post("/pets/<int:pet_id>/prescriptions")
@require_permission("MANAGE_PET_MEDICAL_RECORDS")
def add_prescription_route(company_id: int, pet_id: int):
    """
    Write a prescription.

    Request body:
    {
        "vet": "Dr. Silva",                   (optional)
        "prescribed_on": "2026-10-19",        (optional; defaults to today)
        "items": [{"medication": "Amoxicillin 250mg", "dosage": "1 tab",
                   "frequency": "every 12h", "duration": "7 days",
                   "instructions": "with food"}]
    }
    """
    payload = request.get_json(silent=True) or {}
    prescription = prescription_service.add_prescription(company_id, pet_id, payload)
    return jsonify({"prescription": prescription.to_dict()}), 201


@clients_bp.get("/prescriptions/<int:prescription_id>")
@require_permission("VIEW_PET_MEDICAL_RECORDS")
def get_prescription_route(company_id: int, prescription_id: int):
    prescription = prescription_service.get_prescription(company_id, prescription_id)
    return jsonify({"prescription": prescription.to_dict()})


# =============================================================================
# REMINDERS
# =============================================================================

@clients_bp.get("/reminders")
@require_permission("VIEW_CLIENTS")
def list_reminders_route(company_id: int):
    reminders = client_service.list_reminders(company_id, status=request.args.get("status"))
    return jsonify({"reminders": [r.to_dict() for r in reminders]})


@clients_bp.put("/reminders/<int:reminder_id>/status")
@require_permission("MANAGE_CLIENTS")
def update_reminder_status_route(company_id: int, reminder_id: int):
    payload = request.get_json(silent=True) or {}
    reminder = client_service.update_reminder_status(company_id, reminder_id, payload.get("status"))
    return jsonify({"reminder": reminder.to_dict()})
