# Overview: Flask API routes for in-patient stays: admission, logs, plan and discharge.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_permission
from ..errors import ClinicError, ValidationError
from ..services import hospitalization_service
from ..validation import optional_int

hospitalizations_bp = Blueprint(
    "hospitalizations", __name__, url_prefix="/api/companies/<int:company_id>/hospitalizations"
)

LOG_TYPES = ("med", "vital", "note")


@hospitalizations_bp.get("")
@require_permission("VIEW_HOSPITALIZATIONS")
def list_hospitalizations_route(company_id: int):
    stays = hospitalization_service.list_hospitalizations(company_id, status=request.args.get("status"))
    return jsonify({"hospitalizations": [h.to_dict(include_logs=False) for h in stays]})


@hospitalizations_bp.post("")
@require_permission("MANAGE_HOSPITALIZATIONS")
def admit_route(company_id: int):
    payload = request.get_json(silent=True) or {}
    pet_id = optional_int(payload, "pet_id")
    if pet_id is None:
        raise ValidationError("pet_id is required")
    hosp = hospitalization_service.admit_patient(company_id, pet_id, payload)
    return jsonify({"hospitalization": hosp.to_dict()}), 201


@hospitalizations_bp.get("/<int:hosp_id>")
@require_permission("VIEW_HOSPITALIZATIONS")
def get_hospitalization_route(company_id: int, hosp_id: int):
    hosp = hospitalization_service.get_hospitalization(company_id, hosp_id)
    return jsonify({"hospitalization": hosp.to_dict()})


@hospitalizations_bp.post("/<int:hosp_id>/logs")
@require_permission("MANAGE_HOSPITALIZATIONS")
def add_log_route(company_id: int, hosp_id: int):
    """
    Append a log entry.

    Request body: {"log_type": "med" | "vital" | "note", ...fields}
    Medication entries with a product consume stock immediately.
    """
    payload = request.get_json(silent=True) or {}
    log_type = payload.get("log_type")
    if log_type not in LOG_TYPES:
        raise ValidationError(f"log_type must be one of: {', '.join(LOG_TYPES)}")

    if log_type == "med":
        entry = hospitalization_service.log_medication(company_id, hosp_id, payload)
    elif log_type == "vital":
        entry = hospitalization_service.log_vital_signs(company_id, hosp_id, payload)
    else:
        entry = hospitalization_service.add_progress_note(company_id, hosp_id, payload)
    return jsonify({"entry": entry.to_dict()}), 201


@hospitalizations_bp.put("/<int:hosp_id>/plan")
@require_permission("MANAGE_HOSPITALIZATIONS")
def update_plan_route(company_id: int, hosp_id: int):
    payload = request.get_json(silent=True) or {}
    hosp = hospitalization_service.update_treatment_plan(company_id, hosp_id, payload.get("plan"))
    return jsonify({"hospitalization": hosp.to_dict()})


@hospitalizations_bp.post("/<int:hosp_id>/discharge")
@require_permission("MANAGE_HOSPITALIZATIONS")
def discharge_route(company_id: int, hosp_id: int):
    """
    Discharge and bill unbilled medication.

    Request body:
    {
        "discharge_outcome": "IMPROVED",        (optional)
        "discharge_recommendations": "..."      (optional)
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        hosp, invoice = hospitalization_service.discharge_patient(company_id, hosp_id, payload)
    except ClinicError:
        raise
    except Exception:
        current_app.logger.exception("Failed to discharge hospitalization %s", hosp_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "hospitalization": hosp.to_dict(),
        "invoice": invoice.to_dict() if invoice else None,
    })
