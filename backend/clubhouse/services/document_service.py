# Overview: Atomic allocation of voucher and consumer numbers.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


VOUCHER_SEQUENCE = "PAYMENT_VOUCHER"
CONSUMER_SEQUENCE = "CONSUMER_NUMBER"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _allocate(document_type: str) -> int:
    """
    Atomically take the next number for a sequence.

    Runs inside the caller's transaction (flush only, no commit) so the number
    is released again if the booking mutation rolls back.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type)
            .scalar()
        )
        return current - 1

    seq = DocumentSequence(document_type=document_type, next_number=2)
    db.session.add(seq)
    try:
        db.session.flush()
    except IntegrityError as exc:
        # Two writers created the first row at once; the caller's transaction
        # is rolled back by run_in_transaction and can simply be resubmitted.
        raise DocumentSequenceError(f"Concurrent first allocation of {document_type}") from exc
    return 1


def next_voucher_number(*, pad: int = 6) -> str:
    """e.g. PV-000001"""
    prefix = current_app.config.get("VOUCHER_PREFIX", "PV")
    return f"{prefix}-{_allocate(VOUCHER_SEQUENCE):0{pad}d}"


def next_consumer_number(*, pad: int = 8) -> str:
    """Bank consumer number: configured prefix + zero padded sequence."""
    prefix = current_app.config.get("CONSUMER_NUMBER_PREFIX", "1001")
    return f"{prefix}{_allocate(CONSUMER_SEQUENCE):0{pad}d}"


def ensure_sequences() -> int:
    """
    Create the sequence rows up front (idempotent).

    With the rows present every allocation is a plain increment.
    """
    created = 0
    for document_type in (VOUCHER_SEQUENCE, CONSUMER_SEQUENCE):
        exists = db.session.query(DocumentSequence.id).filter_by(document_type=document_type).first()
        if not exists:
            db.session.add(DocumentSequence(document_type=document_type, next_number=1))
            created += 1
    db.session.commit()
    return created
