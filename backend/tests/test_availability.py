"""
Availability checker: blocker precedence, hold ownership and expiry.
"""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from clubhouse.models import Booking, FacilityHold, OutOfOrderPeriod, Reservation
from clubhouse.services.availability_service import check_availability
from clubhouse.services.booking_service import cancel_booking, check_booking_availability, create_booking
from clubhouse.services.facility_policies import Cell
from clubhouse.time_utils import utcnow

from helpers import hall_payload, room_payload

JUNE_1 = date(2025, 6, 1)
NIGHT_OF_JUNE_1 = [Cell(JUNE_1, "FULL_DAY")]


def _hold(db_session, unit, hold_by, *, minutes=15, **kwargs):
    hold = FacilityHold(
        facility_id=unit.id,
        hold_by=hold_by,
        on_hold=True,
        hold_expiry=utcnow() + timedelta(minutes=minutes),
        **kwargs,
    )
    db_session.add(hold)
    db_session.commit()
    return hold


def test_free_unit(db_session, room):
    result = check_availability("ROOM", [room.id], NIGHT_OF_JUNE_1)
    assert result.conflict is False
    assert result.to_dict() == {"conflict": False}


def test_blocker_precedence_on_one_cell(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room))
    db_session.add(Reservation(facility_id=room.id, reserved_from=JUNE_1, reserved_to=JUNE_1, reserved_by="desk"))
    db_session.add(OutOfOrderPeriod(facility_id=room.id, start_date=JUNE_1, end_date=JUNE_1, reason="paint"))
    db_session.commit()
    _hold(db_session, room, "M2", from_date=JUNE_1, to_date=date(2025, 6, 2))

    def kind():
        return check_availability("ROOM", [room.id], NIGHT_OF_JUNE_1).kind

    assert kind() == "OUT_OF_ORDER"

    db_session.query(OutOfOrderPeriod).delete()
    db_session.commit()
    assert kind() == "BOOKED"

    cancel_booking("ROOM", booking.id)
    assert kind() == "RESERVED"

    db_session.query(Reservation).delete()
    db_session.commit()
    assert kind() == "HELD"

    assert check_availability("ROOM", [room.id], NIGHT_OF_JUNE_1, requester="M2").conflict is False


def test_earliest_day_wins_over_precedence(db_session, member, room):
    create_booking("ROOM", room_payload(member, room, check_in="2025-06-02", check_out="2025-06-03"))
    db_session.add(OutOfOrderPeriod(facility_id=room.id, start_date=date(2025, 6, 3), end_date=date(2025, 6, 3)))
    db_session.commit()

    cells = [Cell(date(2025, 6, d), "FULL_DAY") for d in (4, 3, 2, 1)]
    result = check_availability("ROOM", [room.id], cells)
    assert (result.kind, result.date) == ("BOOKED", date(2025, 6, 2))
    assert result.to_dict()["date"] == "2025-06-02"


def test_excluded_booking_does_not_block(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room))
    assert check_availability("ROOM", [room.id], NIGHT_OF_JUNE_1, exclude_booking_id=booking.id).conflict is False


def test_expired_hold_is_ignored(db_session, room, set_now):
    _hold(db_session, room, "M2", minutes=15, from_date=JUNE_1, to_date=date(2025, 6, 2))
    assert check_availability("ROOM", [room.id], NIGHT_OF_JUNE_1).kind == "HELD"

    set_now(datetime(2025, 5, 20, 10, 16, tzinfo=ZoneInfo("Asia/Karachi")))
    assert check_availability("ROOM", [room.id], NIGHT_OF_JUNE_1).conflict is False


def test_released_hold_is_ignored(db_session, room):
    hold = _hold(db_session, room, "M2", from_date=JUNE_1, to_date=date(2025, 6, 2))
    hold.on_hold = False
    db_session.commit()
    assert check_availability("ROOM", [room.id], NIGHT_OF_JUNE_1).conflict is False


def test_undated_hold_blocks_every_day(db_session, room):
    _hold(db_session, room, "M2")
    result = check_availability("ROOM", [room.id], [Cell(date(2026, 1, 1), "FULL_DAY")])
    assert result.kind == "HELD"


def test_hall_hold_respects_slot(db_session, hall):
    day = date(2025, 7, 10)
    _hold(db_session, hall, "M2", from_date=day, to_date=day, time_slot="EVENING")
    assert check_availability("HALL", [hall.id], [Cell(day, "MORNING")]).conflict is False
    assert check_availability("HALL", [hall.id], [Cell(day, "EVENING")]).kind == "HELD"


def test_slotless_reservation_blocks_every_hall_slot(db_session, hall):
    day = date(2025, 7, 10)
    db_session.add(Reservation(facility_id=hall.id, reserved_from=day, reserved_to=day))
    db_session.commit()
    for slot in ("MORNING", "EVENING", "NIGHT"):
        result = check_availability("HALL", [hall.id], [Cell(day, slot)])
        assert (result.kind, result.slot) == ("RESERVED", slot)


def test_conflict_message_names_unit_day_and_slot(db_session, member, hall):
    create_booking("HALL", hall_payload(member, hall))
    result = check_availability("HALL", [hall.id], [Cell(date(2025, 7, 10), "MORNING")])
    assert result.message == f"Unit {hall.id} is already booked on 10 Jul 2025 (MORNING)"
    err = result.to_error()
    assert err.to_dict()["kind"] == "BOOKED"


def test_dry_run_writes_nothing(db_session, member, room):
    create_booking("ROOM", room_payload(member, room))
    probe = room_payload(member, room, check_in="2025-06-02", check_out="2025-06-05")
    probe.pop("membership_no")

    result = check_booking_availability("ROOM", probe)
    assert (result.conflict, result.kind, result.date) == (True, "BOOKED", date(2025, 6, 2))
    assert db_session.query(Booking).count() == 1

    free = check_booking_availability("ROOM", room_payload(member, room, check_in="2025-06-03", check_out="2025-06-05"))
    assert free.conflict is False
