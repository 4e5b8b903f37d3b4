# Overview: Conflict detection for proposed bookings, holds and reservations.

"""
Availability Checker

For each requested day (ascending), for each candidate unit, the first
blocker found wins, in precedence:

1. OUT_OF_ORDER  maintenance period covering the day
2. BOOKED        non-cancelled booking occupying the day + slot
3. RESERVED      staff reservation covering the day + slot
4. HELD          active hold by someone other than the requester

Read-only: callers run it inside their own transaction before writing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import and_, or_

from ..extensions import db
from ..models import Booking, BookingUnit, FacilityHold, OutOfOrderPeriod, Reservation
from ..time_utils import club_now, ensure_aware, format_club_date
from ..validation import ConflictError
from .facility_policies import Cell, FacilityPolicy, get_policy


CONFLICT_OUT_OF_ORDER = "OUT_OF_ORDER"
CONFLICT_BOOKED = "BOOKED"
CONFLICT_RESERVED = "RESERVED"
CONFLICT_HELD = "HELD"


@dataclass
class AvailabilityResult:
    conflict: bool
    kind: Optional[str] = None
    unit_id: Optional[int] = None
    date: Optional[date] = None
    slot: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> dict:
        if not self.conflict:
            return {"conflict": False}
        return {
            "conflict": True,
            "kind": self.kind,
            "unit_id": self.unit_id,
            "date": self.date.isoformat() if self.date else None,
            "slot": self.slot,
            "message": self.message,
        }

    def to_error(self) -> ConflictError:
        return ConflictError(
            self.message or "Requested slot is not available",
            kind=self.kind,
            unit_id=self.unit_id,
            date=self.date,
            slot=self.slot,
        )


_MESSAGES = {
    CONFLICT_OUT_OF_ORDER: "is out of order",
    CONFLICT_BOOKED: "is already booked",
    CONFLICT_RESERVED: "is reserved",
    CONFLICT_HELD: "is on hold by another member",
}


def _conflict(kind: str, unit_id: int, cell: Cell) -> AvailabilityResult:
    slot_text = f" ({cell.slot})" if cell.slot else ""
    return AvailabilityResult(
        conflict=True,
        kind=kind,
        unit_id=unit_id,
        date=cell.day,
        slot=cell.slot,
        message=f"Unit {unit_id} {_MESSAGES[kind]} on {format_club_date(cell.day)}{slot_text}",
    )


def _load_out_of_order(unit_ids, first: date, last: date) -> dict[int, list[OutOfOrderPeriod]]:
    rows = db.session.query(OutOfOrderPeriod).filter(
        OutOfOrderPeriod.facility_id.in_(unit_ids),
        OutOfOrderPeriod.start_date <= last,
        OutOfOrderPeriod.end_date >= first,
    ).all()
    by_unit: dict[int, list] = {}
    for row in rows:
        by_unit.setdefault(row.facility_id, []).append(row)
    return by_unit


def _load_booked_cells(
    policy: FacilityPolicy,
    unit_ids,
    first: date,
    last: date,
    exclude_booking_id: Optional[int],
) -> dict[int, list[Cell]]:
    # start_date / end_date always span the booking's detail rows
    query = (
        db.session.query(Booking, BookingUnit.facility_id)
        .join(BookingUnit, BookingUnit.booking_id == Booking.id)
        .filter(
            BookingUnit.facility_id.in_(unit_ids),
            Booking.facility_type == policy.facility_type,
            Booking.is_cancelled.is_(False),
            Booking.start_date <= last,
            Booking.end_date >= first,
        )
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)

    by_unit: dict[int, list[Cell]] = {}
    for booking, facility_id in query.all():
        by_unit.setdefault(facility_id, []).extend(policy.booking_cells(booking))
    return by_unit


def _load_reservations(unit_ids, first: date, last: date, ignore_reservation_id) -> dict[int, list[Reservation]]:
    query = db.session.query(Reservation).filter(
        Reservation.facility_id.in_(unit_ids),
        Reservation.reserved_from <= last,
        Reservation.reserved_to >= first,
    )
    if ignore_reservation_id is not None:
        query = query.filter(Reservation.id != ignore_reservation_id)
    by_unit: dict[int, list] = {}
    for row in query.all():
        by_unit.setdefault(row.facility_id, []).append(row)
    return by_unit


def _load_active_holds(unit_ids, first: date, last: date, requester: Optional[str], now: datetime) -> dict[int, list[FacilityHold]]:
    query = db.session.query(FacilityHold).filter(
        FacilityHold.facility_id.in_(unit_ids),
        FacilityHold.on_hold.is_(True),
        or_(
            and_(FacilityHold.from_date.is_(None), FacilityHold.to_date.is_(None)),
            and_(FacilityHold.from_date <= last, FacilityHold.to_date >= first),
        ),
    )
    if requester:
        query = query.filter(FacilityHold.hold_by != requester)
    by_unit: dict[int, list] = {}
    for row in query.all():
        # Compared in Python: SQLite returns naive datetimes
        if ensure_aware(row.hold_expiry) <= now:
            continue
        by_unit.setdefault(row.facility_id, []).append(row)
    return by_unit


def check_availability(
    facility_type: str,
    unit_ids: Iterable[int],
    cells: list[Cell],
    *,
    exclude_booking_id: Optional[int] = None,
    requester: Optional[str] = None,
    ignore_reservation_id: Optional[int] = None,
    ignore_holds: bool = False,
) -> AvailabilityResult:
    """
    Decide whether every unit is free for every requested cell.

    Args:
        facility_type: ROOM, HALL, LAWN or PHOTOSHOOT
        unit_ids: candidate units; all must be free
        cells: ordered (day, slot) cells the request would occupy
        exclude_booking_id: booking being updated (never conflicts with itself)
        requester: membership number whose own holds are ignored
        ignore_reservation_id: reservation being converted into this booking
        ignore_holds: skip member holds entirely (staff reservations)

    Returns:
        AvailabilityResult; the first conflict found, or conflict=False
    """
    policy = get_policy(facility_type)
    unit_ids = list(unit_ids)
    if not unit_ids or not cells:
        return AvailabilityResult(conflict=False)

    ordered = sorted(cells, key=lambda c: (c.day, c.slot or ""))
    first = ordered[0].day
    last = ordered[-1].day
    now = club_now()

    out_of_order = _load_out_of_order(unit_ids, first, last)
    booked = _load_booked_cells(policy, unit_ids, first, last, exclude_booking_id)
    reservations = _load_reservations(unit_ids, first, last, ignore_reservation_id)
    holds = {} if ignore_holds else _load_active_holds(unit_ids, first, last, requester, now)

    for cell in ordered:
        for unit_id in unit_ids:
            for period in out_of_order.get(unit_id, []):
                if period.start_date <= cell.day <= period.end_date:
                    return _conflict(CONFLICT_OUT_OF_ORDER, unit_id, cell)

            for taken in booked.get(unit_id, []):
                if taken.day == cell.day and policy.slots_overlap(taken.slot, cell.slot):
                    return _conflict(CONFLICT_BOOKED, unit_id, cell)

            for reservation in reservations.get(unit_id, []):
                if policy.covers_day(reservation.reserved_from, reservation.reserved_to, cell.day) and \
                        policy.slots_overlap(policy.normalize_slot(reservation.time_slot), cell.slot):
                    return _conflict(CONFLICT_RESERVED, unit_id, cell)

            for hold in holds.get(unit_id, []):
                if policy.covers_day(hold.from_date, hold.to_date, cell.day) and \
                        policy.slots_overlap(policy.normalize_slot(hold.time_slot), cell.slot):
                    return _conflict(CONFLICT_HELD, unit_id, cell)

    return AvailabilityResult(conflict=False)


def ensure_available(facility_type: str, unit_ids: Iterable[int], cells: list[Cell], **kwargs) -> None:
    """Raise ConflictError carrying the first conflict, if any."""
    result = check_availability(facility_type, unit_ids, cells, **kwargs)
    if result.conflict:
        raise result.to_error()
