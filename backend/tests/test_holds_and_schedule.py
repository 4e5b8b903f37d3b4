"""
Holds, staff reservations, out-of-order periods and the upkeep jobs.
"""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from clubhouse.models import FacilityHold, Reservation
from clubhouse.services.booking_service import create_booking
from clubhouse.services.hold_service import create_hold, release_holds
from clubhouse.services.maintenance_service import cleanup_expired_holds
from clubhouse.services.schedule_service import (
    create_out_of_order,
    create_reservation,
    delete_out_of_order,
    delete_reservation,
    find_out_of_order_conflicts,
    list_out_of_order,
    list_reservations,
)
from clubhouse.time_utils import ensure_aware, utcnow
from clubhouse.validation import ConflictError, NotFoundError, ValidationError

from helpers import hall_payload, room_payload

KARACHI = ZoneInfo("Asia/Karachi")


# =============================================================================
# Holds
# =============================================================================

def test_hold_defaults_to_one_night_and_expires(db_session, member, room):
    hold = create_hold("ROOM", room.id, "M1", "2025-06-01")
    assert (hold.from_date, hold.to_date) == (date(2025, 6, 1), date(2025, 6, 2))
    assert hold.time_slot is None
    assert ensure_aware(hold.hold_expiry) == utcnow() + timedelta(minutes=15)


def test_hold_blocks_other_members_only(db_session, member, room, make_member):
    make_member("M2", "Member Two")
    create_hold("ROOM", room.id, "M1", "2025-06-01", "2025-06-03")

    # Same member may extend
    create_hold("ROOM", room.id, "M1", "2025-06-02", "2025-06-04")

    with pytest.raises(ConflictError) as excinfo:
        create_hold("ROOM", room.id, "M2", "2025-06-02", "2025-06-03")
    assert excinfo.value.kind == "HELD"


def test_hold_refused_over_booking(db_session, member, hall):
    create_booking("HALL", hall_payload(member, hall))
    with pytest.raises(ConflictError) as excinfo:
        create_hold("HALL", hall.id, "M1", "2025-07-10", time_slot="MORNING")
    assert excinfo.value.kind == "BOOKED"

    evening = create_hold("HALL", hall.id, "M1", "2025-07-10", time_slot="EVENING")
    assert evening.time_slot == "EVENING"


def test_hold_input_errors(db_session, member, room):
    with pytest.raises(ValidationError):
        create_hold("ROOM", room.id, "", "2025-06-01")
    with pytest.raises(NotFoundError):
        create_hold("ROOM", room.id, "GHOST", "2025-06-01")
    with pytest.raises(NotFoundError):
        create_hold("HALL", room.id, "M1", "2025-06-01", time_slot="MORNING")


def test_release_holds(db_session, member, room, make_facility):
    room2 = make_facility("ROOM", "R2", rate_member=6000)
    create_hold("ROOM", room.id, "M1", "2025-06-01")
    create_hold("ROOM", room2.id, "M1", "2025-06-01")

    assert release_holds("M1", [room2.id]) == 1
    assert release_holds("M1") == 1
    assert release_holds("M1") == 0
    with pytest.raises(ValidationError):
        release_holds("")


def test_cleanup_expired_holds(db_session, member, room, set_now):
    create_hold("ROOM", room.id, "M1", "2025-06-01")
    assert cleanup_expired_holds() == 0

    set_now(datetime(2025, 5, 20, 11, 0, tzinfo=KARACHI))
    create_hold("ROOM", room.id, "M1", "2025-06-10")
    assert cleanup_expired_holds() == 1
    assert db_session.query(FacilityHold).count() == 1


# =============================================================================
# Reservations
# =============================================================================

def test_reservation_blocks_bookings(db_session, member, room):
    reservation = create_reservation("ROOM", room.id, "2025-06-01", "2025-06-03", reserved_by="desk")
    assert reservation.time_slot is None

    with pytest.raises(ConflictError) as excinfo:
        create_booking("ROOM", room_payload(member, room))
    assert excinfo.value.kind == "RESERVED"
    assert [r.id for r in list_reservations("ROOM")] == [reservation.id]


def test_booking_converts_reservation(db_session, member, room):
    reservation = create_reservation("ROOM", room.id, "2025-06-01", "2025-06-03")
    booking = create_booking("ROOM", room_payload(member, room, reservation_id=reservation.id))
    assert booking.id
    assert db_session.query(Reservation).count() == 0


def test_reservation_for_other_unit_cannot_be_converted(db_session, member, room, make_facility):
    room2 = make_facility("ROOM", "R2", rate_member=6000)
    reservation = create_reservation("ROOM", room2.id, "2025-06-01", "2025-06-03")
    with pytest.raises(NotFoundError):
        create_booking("ROOM", room_payload(member, room, reservation_id=reservation.id))


def test_reservation_ignores_holds_but_not_bookings(db_session, member, hall):
    create_hold("HALL", hall.id, "M1", "2025-07-10", time_slot="MORNING")
    held = create_reservation("HALL", hall.id, "2025-07-10", time_slot="MORNING")
    assert held.time_slot == "MORNING"

    create_booking("HALL", hall_payload(member, hall, booking_date="2025-07-11"))
    with pytest.raises(ConflictError):
        create_reservation("HALL", hall.id, "2025-07-11", time_slot="MORNING")


def test_hold_on_first_day_does_not_mask_later_booking(db_session, member, hall, make_member):
    make_member("M2", "Member Two")
    create_booking("HALL", hall_payload(member, hall, booking_date="2025-07-11"))
    create_hold("HALL", hall.id, "M2", "2025-07-10", time_slot="MORNING")

    with pytest.raises(ConflictError) as excinfo:
        create_reservation("HALL", hall.id, "2025-07-10", "2025-07-11", time_slot="MORNING")
    assert excinfo.value.kind == "BOOKED"
    assert excinfo.value.date == date(2025, 7, 11)
    assert db_session.query(Reservation).count() == 0


def test_reservation_in_the_past_rejected(db_session, room):
    with pytest.raises(ValidationError):
        create_reservation("ROOM", room.id, "2025-05-01", "2025-05-02")


def test_delete_reservation(db_session, room):
    reservation = create_reservation("ROOM", room.id, "2025-06-01")
    delete_reservation(reservation.id)
    assert list_reservations("ROOM") == []
    with pytest.raises(NotFoundError):
        delete_reservation(reservation.id)


# =============================================================================
# Out of order
# =============================================================================

def test_out_of_order_reports_overlapping_bookings(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room))

    period, conflicts = create_out_of_order("ROOM", room.id, "2025-06-02", "2025-06-05", reason="plumbing")
    assert [c["booking_id"] for c in conflicts] == [booking.id]
    assert conflicts[0]["membership_no"] == "M1"
    assert find_out_of_order_conflicts("ROOM") == conflicts
    assert [p.id for p in list_out_of_order("ROOM")] == [period.id]

    # Check-out day does not overlap
    _, none = create_out_of_order("ROOM", room.id, "2025-06-03", "2025-06-03")
    assert none == []


def test_out_of_order_blocks_new_bookings(db_session, member, hall):
    create_out_of_order("HALL", hall.id, "2025-07-10")
    with pytest.raises(ConflictError) as excinfo:
        create_booking("HALL", hall_payload(member, hall, event_time="NIGHT"))
    assert excinfo.value.kind == "OUT_OF_ORDER"


def test_out_of_order_validation(db_session, room):
    with pytest.raises(ValidationError):
        create_out_of_order("ROOM", room.id, "2025-06-05", "2025-06-01")
    with pytest.raises(NotFoundError):
        create_out_of_order("HALL", room.id, "2025-06-05")


def test_past_out_of_order_is_immutable(db_session, room):
    past, _ = create_out_of_order("ROOM", room.id, "2025-05-01", "2025-05-03")
    future, _ = create_out_of_order("ROOM", room.id, "2025-06-01", "2025-06-03")

    with pytest.raises(ConflictError):
        delete_out_of_order(past.id)
    delete_out_of_order(future.id)
    assert [p.id for p in list_out_of_order("ROOM")] == [past.id]
