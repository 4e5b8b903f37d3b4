# Overview: Staff reservations and out-of-order (maintenance) periods.

"""
Schedule Blocks

- Reservation: staff block on a unit. Refused over OUT_OF_ORDER, BOOKED or
  RESERVED cells; member holds do not stop staff.
- OutOfOrderPeriod: always created. Bookings it now overlaps are reported as
  flagged conflicts for staff to resolve; nothing is moved or cancelled.
  Periods already in the past are immutable.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Booking, BookingUnit, Facility, OutOfOrderPeriod, Reservation
from ..time_utils import club_today, normalize_date, normalize_optional_date
from ..validation import ConflictError, NotFoundError, ValidationError
from .availability_service import check_availability
from .concurrency import run_in_transaction
from .facility_policies import FACILITY_ROOM, FacilityPolicy, get_policy, normalize_facility_type


def _get_facility(policy: FacilityPolicy, facility_id: int) -> Facility:
    facility = db.session.query(Facility).filter_by(id=facility_id, facility_type=policy.facility_type).first()
    if not facility:
        raise NotFoundError(f"{policy.label} {facility_id} not found")
    return facility


# =============================================================================
# Reservations
# =============================================================================

def create_reservation(
    facility_type: str,
    facility_id: int,
    reserved_from,
    reserved_to=None,
    *,
    time_slot: str | None = None,
    reserved_by: str | None = None,
    remarks: str | None = None,
) -> Reservation:
    policy = get_policy(facility_type)
    start = normalize_date(reserved_from)
    default_end = start if policy.inclusive_end else start + timedelta(days=1)
    end = normalize_optional_date(reserved_to) or default_end
    policy.validate_dates(start, end, today=club_today())
    slot = policy.normalize_slot(time_slot)
    if slot is not None and policy.facility_type != FACILITY_ROOM:
        policy.validate_slot(slot)

    def _op() -> Reservation:
        facility = _get_facility(policy, facility_id)
        cells = policy.request_cells(start, end, slot)
        result = check_availability(policy.facility_type, [facility.id], cells, ignore_holds=True)
        if result.conflict:
            raise result.to_error()

        reservation = Reservation(
            facility_id=facility.id,
            reserved_from=start,
            reserved_to=end,
            time_slot=None if policy.facility_type == FACILITY_ROOM else slot,
            reserved_by=reserved_by,
            remarks=remarks,
        )
        db.session.add(reservation)
        db.session.flush()
        return reservation

    reservation = run_in_transaction(_op)
    current_app.logger.info("Reservation %s created on facility %s by %s", reservation.id, facility_id, reserved_by)
    return reservation


def delete_reservation(reservation_id: int) -> None:
    def _op() -> None:
        reservation = db.session.get(Reservation, reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        db.session.delete(reservation)

    run_in_transaction(_op)


def list_reservations(facility_type: str) -> list[Reservation]:
    facility_type = normalize_facility_type(facility_type)
    return (
        db.session.query(Reservation)
        .join(Facility, Facility.id == Reservation.facility_id)
        .filter(Facility.facility_type == facility_type)
        .order_by(Reservation.reserved_from.asc(), Reservation.id.asc())
        .all()
    )


# =============================================================================
# Out-of-order periods
# =============================================================================

def _overlapping_bookings(policy: FacilityPolicy, period: OutOfOrderPeriod) -> list[Booking]:
    candidates = (
        db.session.query(Booking)
        .join(BookingUnit, BookingUnit.booking_id == Booking.id)
        .filter(
            BookingUnit.facility_id == period.facility_id,
            Booking.facility_type == policy.facility_type,
            Booking.is_cancelled.is_(False),
            Booking.start_date <= period.end_date,
            Booking.end_date >= period.start_date,
        )
        .order_by(Booking.start_date.asc(), Booking.id.asc())
        .all()
    )
    return [
        b for b in candidates
        if any(period.start_date <= cell.day <= period.end_date for cell in policy.booking_cells(b))
    ]


def _conflict_row(period: OutOfOrderPeriod, booking: Booking) -> dict:
    return {
        "out_of_order_id": period.id,
        "facility_id": period.facility_id,
        "booking_id": booking.id,
        "membership_no": booking.member.membership_no if booking.member else None,
        "start_date": booking.start_date.isoformat(),
        "end_date": booking.end_date.isoformat(),
    }


def create_out_of_order(
    facility_type: str,
    facility_id: int,
    start_date,
    end_date=None,
    *,
    reason: str | None = None,
    created_by: str | None = None,
) -> tuple[OutOfOrderPeriod, list[dict]]:
    """
    Create a maintenance window. Returns the period and the bookings it overlaps.
    """
    policy = get_policy(facility_type)
    start = normalize_date(start_date)
    end = normalize_optional_date(end_date) or start
    if end < start:
        raise ValidationError("End date cannot be before start date")

    def _op():
        _get_facility(policy, facility_id)
        period = OutOfOrderPeriod(
            facility_id=facility_id,
            start_date=start,
            end_date=end,
            reason=reason,
            created_by=created_by,
        )
        db.session.add(period)
        db.session.flush()
        conflicts = [_conflict_row(period, b) for b in _overlapping_bookings(policy, period)]
        return period, conflicts

    period, conflicts = run_in_transaction(_op)
    if conflicts:
        current_app.logger.warning(
            "Out-of-order period %s overlaps %d active bookings", period.id, len(conflicts)
        )
    return period, conflicts


def delete_out_of_order(period_id: int) -> None:
    def _op() -> None:
        period = db.session.get(OutOfOrderPeriod, period_id)
        if not period:
            raise NotFoundError(f"Out-of-order period {period_id} not found")
        if period.end_date < club_today():
            raise ConflictError("Past out-of-order periods cannot be changed")
        db.session.delete(period)

    run_in_transaction(_op)


def find_out_of_order_conflicts(facility_type: str) -> list[dict]:
    """Every active booking overlapping a maintenance window of this facility type."""
    policy = get_policy(facility_type)
    periods = (
        db.session.query(OutOfOrderPeriod)
        .join(Facility, Facility.id == OutOfOrderPeriod.facility_id)
        .filter(Facility.facility_type == policy.facility_type)
        .order_by(OutOfOrderPeriod.start_date.asc(), OutOfOrderPeriod.id.asc())
        .all()
    )
    rows = []
    for period in periods:
        rows.extend(_conflict_row(period, b) for b in _overlapping_bookings(policy, period))
    return rows


def list_out_of_order(facility_type: str) -> list[OutOfOrderPeriod]:
    facility_type = normalize_facility_type(facility_type)
    return (
        db.session.query(OutOfOrderPeriod)
        .join(Facility, Facility.id == OutOfOrderPeriod.facility_id)
        .filter(Facility.facility_type == facility_type)
        .order_by(OutOfOrderPeriod.start_date.asc(), OutOfOrderPeriod.id.asc())
        .all()
    )
