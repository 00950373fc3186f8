# Overview: Exception taxonomy shared by services and routes.

"""
Domain errors.

Every service raises one of these; the app-level error handler maps them
to HTTP responses. Raising any of them inside a unit of work rolls the
whole transaction back (see services/concurrency.py).
"""

from __future__ import annotations


class ClinicError(Exception):
    """Base class for domain errors surfaced to API callers."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(ClinicError, ValueError):
    """400-level input problem."""

    status_code = 400


class NotFoundError(ClinicError):
    """Referenced entity does not exist (or belongs to another company)."""

    status_code = 404

    def __init__(self, entity: str, entity_id=None):
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(message, {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class InvalidStateError(ClinicError):
    """Operation not allowed in the entity's current state."""

    status_code = 409


class InsufficientStockError(ClinicError):
    """Deduction would take a lot (or the bucket) below zero."""

    status_code = 409

    def __init__(
        self,
        product_name: str,
        *,
        lot_number: str | None = None,
        requested=None,
        available=None,
    ):
        if lot_number:
            message = f"Insufficient stock for lot {lot_number} of {product_name}"
        else:
            message = f"Insufficient stock for {product_name}"
        super().__init__(
            message,
            {
                "product_name": product_name,
                "lot_number": lot_number,
                "requested": str(requested) if requested is not None else None,
                "available": str(available) if available is not None else None,
            },
        )
        self.product_name = product_name
        self.lot_number = lot_number


class ConflictError(ClinicError):
    """409-level business rule conflict (e.g., duplicate name)."""

    status_code = 409
