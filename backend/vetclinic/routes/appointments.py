# Overview: Flask API routes for the appointment agenda.

from flask import Blueprint, request, jsonify

from ..decorators import require_permission
from ..services import appointment_service

appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/companies/<int:company_id>")


@appointments_bp.get("/appointments")
@require_permission("VIEW_APPOINTMENTS")
def list_appointments_route(company_id: int):
    """
    Agenda, ordered by date then time.

    Query params: date (YYYY-MM-DD), status, pet_id
    """
    appointments = appointment_service.list_appointments(
        company_id,
        on_date=request.args.get("date"),
        status=request.args.get("status"),
        pet_id=request.args.get("pet_id", type=int),
    )
    return jsonify({"appointments": [a.to_dict() for a in appointments]})


@appointments_bp.post("/appointments")
@require_permission("MANAGE_APPOINTMENTS")
def create_appointment_route(company_id: int):
    """
    Book an appointment.

    Request body:
    {
        "pet_id": 3,
        "appointment_date": "2026-11-02",
        "appointment_time": "09:30",
        "reason": "Vaccine booster",
        "vet": "Dr. Silva",                   (optional)
        "status": "CONFIRMED"                 (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    appointment = appointment_service.create_appointment(company_id, payload)
    return jsonify({"appointment": appointment.to_dict()}), 201


@appointments_bp.get("/appointments/<int:appointment_id>")
@require_permission("VIEW_APPOINTMENTS")
def get_appointment_route(company_id: int, appointment_id: int):
    appointment = appointment_service.get_appointment(company_id, appointment_id)
    return jsonify({"appointment": appointment.to_dict()})


@appointments_bp.patch("/appointments/<int:appointment_id>")
@require_permission("MANAGE_APPOINTMENTS")
def update_appointment_route(company_id: int, appointment_id: int):
    payload = request.get_json(silent=True) or {}
    appointment = appointment_service.update_appointment(company_id, appointment_id, payload)
    return jsonify({"appointment": appointment.to_dict()})


@appointments_bp.delete("/appointments/<int:appointment_id>")
@require_permission("MANAGE_APPOINTMENTS")
def delete_appointment_route(company_id: int, appointment_id: int):
    appointment_service.delete_appointment(company_id, appointment_id)
    return "", 204
