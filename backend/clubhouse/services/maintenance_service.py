# Overview: Occupancy flag upkeep and cleanup jobs run from the CLI.

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from flask import current_app

from ..extensions import db
from ..models import Booking, BookingUnit, Facility, FacilityHold
from ..time_utils import club_today, ensure_aware, utcnow
from .facility_policies import VALID_FACILITY_TYPES, FacilityPolicy, get_policy


def occupied_unit_ids(policy: FacilityPolicy, today: date, unit_ids: Optional[Iterable[int]] = None) -> set[int]:
    """Units of this facility type with an active booking occupying today."""
    query = (
        db.session.query(Booking, BookingUnit.facility_id)
        .join(BookingUnit, BookingUnit.booking_id == Booking.id)
        .filter(
            Booking.facility_type == policy.facility_type,
            Booking.is_cancelled.is_(False),
            Booking.start_date <= today,
            Booking.end_date >= today,
        )
    )
    if unit_ids is not None:
        query = query.filter(BookingUnit.facility_id.in_(list(unit_ids)))

    occupied = set()
    for booking, facility_id in query.all():
        if any(cell.day == today for cell in policy.booking_cells(booking)):
            occupied.add(facility_id)
    return occupied


def refresh_occupancy(policy: FacilityPolicy, unit_ids: Iterable[int]) -> None:
    """
    Recompute is_booked for the given units inside the caller's transaction.

    A unit is booked while any active booking occupies it today.
    """
    if not policy.tracks_occupancy:
        return
    unit_ids = list(unit_ids)
    if not unit_ids:
        return
    occupied = occupied_unit_ids(policy, club_today(), unit_ids)
    for facility in db.session.query(Facility).filter(Facility.id.in_(unit_ids)).all():
        is_booked = facility.id in occupied
        if facility.is_booked != is_booked:
            facility.is_booked = is_booked


def sync_occupancy_flags() -> int:
    """
    Recompute every facility's occupancy flag from today's bookings.

    Returns the number of facilities whose flag changed.
    """
    today = club_today()
    changed = 0
    for facility_type in VALID_FACILITY_TYPES:
        policy = get_policy(facility_type)
        if not policy.tracks_occupancy:
            continue
        occupied = occupied_unit_ids(policy, today)
        for facility in db.session.query(Facility).filter_by(facility_type=facility_type).all():
            is_booked = facility.id in occupied
            if facility.is_booked != is_booked:
                facility.is_booked = is_booked
                changed += 1
    db.session.commit()
    current_app.logger.info("Occupancy sync for %s changed %d facilities", today.isoformat(), changed)
    return changed


def cleanup_expired_holds() -> int:
    """Delete holds whose expiry has passed or that were released."""
    now = utcnow()
    deleted = 0
    # Compared in Python: SQLite stores naive datetimes
    for hold in db.session.query(FacilityHold).all():
        if not hold.on_hold or ensure_aware(hold.hold_expiry) <= now:
            db.session.delete(hold)
            deleted += 1
    db.session.commit()
    current_app.logger.info("Deleted %d expired holds", deleted)
    return deleted
