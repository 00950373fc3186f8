# backend/vetclinic/routes/system.py
"""
System health and company settings endpoints.
"""

import time

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_permission
from ..extensions import db
from ..models import Company
from ..permissions import (
    PERMISSION_DEFINITIONS,
    get_permission_definition,
    get_permissions_by_category,
)
from ..repository import require_company
from ..services.ledger_service import list_ledger_events
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        company_count = db.session.query(Company).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"companies": company_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    body = {
        "status": "ok" if healthy else "degraded",
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database},
    }
    return jsonify(body), 200 if healthy else 503


@system_bp.get("/api/companies/<int:company_id>")
@require_permission("VIEW_SETTINGS")
def get_company_route(company_id: int):
    company = require_company(company_id, active_only=False)
    return jsonify({"company": company.to_dict()})


@system_bp.get("/api/companies/<int:company_id>/ledger")
@require_permission("VIEW_SETTINGS")
def list_ledger_route(company_id: int):
    """
    Audit trail of the company.

    Query params: entity_type, entity_id, limit (default 100, max 500)
    """
    require_company(company_id, active_only=False)
    events = list_ledger_events(
        company_id,
        entity_type=request.args.get("entity_type"),
        entity_id=request.args.get("entity_id", type=int),
        limit=request.args.get("limit", default=100, type=int),
    )
    return jsonify({"events": [event.to_dict() for event in events]})


@system_bp.get("/api/permissions")
def list_permissions_route():
    """
    Permission catalog for the upstream auth layer and admin UIs.

    Response: {"categories": {"BILLING": [{code, name, description, category}, ...], ...}}
    """
    categories = {}
    for category in sorted({perm[3] for perm in PERMISSION_DEFINITIONS}):
        categories[category] = [
            get_permission_definition(perm[0]) for perm in get_permissions_by_category(category)
        ]
    return jsonify({"categories": categories})
