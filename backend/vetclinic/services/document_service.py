# Overview: Service-layer operations for document numbering.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence, Invoice
from .concurrency import lock_for_update


DOCUMENT_TYPE_INVOICE = "INVOICE"


def _highest_invoice_number(company_id: int) -> int:
    """Highest numeric invoice number already issued (non-numeric numbers are ignored)."""
    numbers = (
        db.session.query(Invoice.invoice_number)
        .filter(Invoice.company_id == company_id)
        .all()
    )
    highest = 0
    for (number,) in numbers:
        if number and number.isdigit():
            highest = max(highest, int(number))
    return highest


def next_document_number(*, company_id: int, document_type: str) -> int:
    """
    Allocate the next number of a company-scoped document sequence.

    MUST run inside the caller's unit of work: the counter increment commits
    or rolls back together with the document that uses it, which is what
    keeps invoice numbers gap-free.
    """
    seq = lock_for_update(
        db.session.query(DocumentSequence).filter_by(
            company_id=company_id, document_type=document_type
        )
    ).first()

    if seq is None:
        seed = 1
        if document_type == DOCUMENT_TYPE_INVOICE:
            seed = _highest_invoice_number(company_id) + 1
        seq = DocumentSequence(company_id=company_id, document_type=document_type, next_number=seed)
        try:
            with db.session.begin_nested():
                db.session.add(seq)
        except IntegrityError:
            # Another writer created the row first; use theirs
            seq = lock_for_update(
                db.session.query(DocumentSequence).filter_by(
                    company_id=company_id, document_type=document_type
                )
            ).one()

    number = seq.next_number
    seq.next_number = number + 1
    db.session.flush()
    return number


def next_invoice_number(company_id: int) -> str:
    """Next invoice number for a company as a numeric string ("1", "2", ...)."""
    return str(next_document_number(company_id=company_id, document_type=DOCUMENT_TYPE_INVOICE))
