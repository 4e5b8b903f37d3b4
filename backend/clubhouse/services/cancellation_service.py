# Overview: Member cancellation requests and their staff resolution.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Booking, CancellationRequest
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError, clean_str
from .booking_service import BookingEngine
from .concurrency import lock_for_update, run_in_transaction
from .facility_policies import normalize_facility_type


REQUEST_PENDING = "PENDING"
REQUEST_APPROVED = "APPROVED"
REQUEST_REJECTED = "REJECTED"

RESOLVED_STATUSES = [REQUEST_APPROVED, REQUEST_REJECTED]


def request_cancellation(
    facility_type: str,
    booking_id: int,
    reason: str | None = None,
    requested_by: str | None = None,
) -> CancellationRequest:
    """Open a cancellation request. A booking has at most one PENDING request."""
    facility_type = normalize_facility_type(facility_type)
    reason = clean_str(reason, field="reason")

    def _op() -> CancellationRequest:
        booking = db.session.query(Booking).filter_by(id=booking_id, facility_type=facility_type).first()
        if not booking:
            raise NotFoundError(f"{facility_type} booking {booking_id} not found")
        if booking.is_cancelled:
            raise ConflictError(f"{facility_type} booking {booking_id} is already cancelled")

        open_request = (
            db.session.query(CancellationRequest)
            .filter_by(booking_id=booking.id, status=REQUEST_PENDING)
            .first()
        )
        if open_request:
            raise ConflictError(f"Booking {booking_id} already has a pending cancellation request")

        request = CancellationRequest(
            booking_id=booking.id,
            reason=reason,
            requested_by=requested_by,
            status=REQUEST_PENDING,
            created_at=utcnow(),
        )
        db.session.add(request)
        db.session.flush()
        return request

    request = run_in_transaction(_op)
    current_app.logger.info("Cancellation request %s opened for booking %s", request.id, booking_id)
    return request


def resolve_cancellation_request(
    request_id: int,
    status: str,
    remarks: str | None = None,
    actor: str | None = None,
) -> CancellationRequest:
    """
    Approve or reject a PENDING request.

    Approval cancels the booking through the booking engine. The booking
    cancel and the request update commit together or not at all.
    """
    new_status = str(status or "").strip().upper()
    if new_status not in RESOLVED_STATUSES:
        raise ValidationError(f"Invalid request status: {status}. Must be one of {RESOLVED_STATUSES}")

    remarks = clean_str(remarks, field="remarks")

    def _op() -> CancellationRequest:
        request = lock_for_update(db.session.query(CancellationRequest).filter_by(id=request_id)).first()
        if not request:
            raise NotFoundError(f"Cancellation request {request_id} not found")
        if request.status != REQUEST_PENDING:
            raise ConflictError(f"Cancellation request {request_id} is already {request.status}")

        booking = request.booking
        if new_status == REQUEST_APPROVED and not booking.is_cancelled:
            BookingEngine(booking.facility_type).cancel_in_session(booking.id, actor)

        request.status = new_status
        request.admin_remarks = remarks
        request.resolved_by = actor
        request.resolved_at = utcnow()
        return request

    request = run_in_transaction(_op)
    current_app.logger.info("Cancellation request %s %s by %s", request.id, new_status, actor)
    return request


def list_cancellation_requests(status: str | None = None, facility_type: str | None = None) -> list[CancellationRequest]:
    query = db.session.query(CancellationRequest).join(Booking, Booking.id == CancellationRequest.booking_id)
    if status:
        query = query.filter(CancellationRequest.status == str(status).strip().upper())
    if facility_type:
        query = query.filter(Booking.facility_type == normalize_facility_type(facility_type))
    return query.order_by(CancellationRequest.created_at.desc(), CancellationRequest.id.desc()).all()
