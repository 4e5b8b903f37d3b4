"""
Room bookings end to end: pricing, availability, vouchers and member ledger.
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from clubhouse.models import Booking, BookingSlot, FacilityHold, PaymentVoucher
from clubhouse.services.audit_service import check_booking_invariants
from clubhouse.services.booking_service import (
    cancel_booking,
    create_booking,
    get_booking,
    list_bookings,
    serialize_booking,
    update_booking,
)
from clubhouse.services.hold_service import create_hold
from clubhouse.services.ledger_service import list_booking_events
from clubhouse.services.maintenance_service import sync_occupancy_flags
from clubhouse.services.member_service import set_member_active
from clubhouse.services.voucher_service import get_vouchers
from clubhouse.validation import ConflictError, NotFoundError, ValidationError

from helpers import room_payload, voucher_rows

KARACHI = ZoneInfo("Asia/Karachi")


def test_paid_room_booking(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room, payment_status="PAID"), acting_user="desk")

    assert booking.total_price == 10000
    assert booking.paid_amount == 10000
    assert booking.pending_amount == 0
    assert booking.payment_status == "PAID"
    assert booking.units[0].price_at_booking == 10000
    assert booking.created_by == "desk"

    vouchers = get_vouchers("ROOM", booking.id)
    assert voucher_rows(vouchers) == [("FULL_PAYMENT", "CONFIRMED", 10000)]
    assert vouchers[0].voucher_no == "PV-000001"
    assert vouchers[0].membership_no == "M1"

    db_session.refresh(member)
    assert member.booking_amount_paid == 10000
    assert member.booking_amount_due == 0
    assert member.booking_balance == 10000
    assert member.total_bookings == 1
    assert member.last_booking_date == date(2025, 5, 20)

    events = list_booking_events(booking.id)
    assert [e.event_type for e in events] == ["booking.created"]
    assert events[0].paid_delta == 10000

    assert check_booking_invariants(booking) == []


def test_unpaid_booking_puts_total_on_member_dues(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room))
    assert (booking.payment_status, booking.paid_amount, booking.pending_amount) == ("UNPAID", 0, 10000)
    assert get_vouchers("ROOM", booking.id) == []

    db_session.refresh(member)
    assert member.booking_amount_due == 10000
    assert member.booking_balance == -10000


def test_one_slot_row_per_night(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room))
    slots = db_session.query(BookingSlot).filter_by(booking_id=booking.id).order_by(BookingSlot.slot_date).all()
    assert [(s.slot_date, s.time_slot) for s in slots] == [
        (date(2025, 6, 1), "FULL_DAY"),
        (date(2025, 6, 2), "FULL_DAY"),
    ]


def test_room_pricing_types(db_session, member, room):
    forces = create_booking("ROOM", room_payload(member, room, pricing_type="forces"))
    assert forces.total_price == 8000

    guest = create_booking("ROOM", room_payload(
        member, room,
        check_in="2025-06-10", check_out="2025-06-11",
        pricing_type="guest", guest_name="Visitor", guest_contact="0300-0000000",
    ))
    assert guest.total_price == 8000
    assert guest.paid_by == "GUEST"


def test_guest_booking_requires_guest_details(db_session, member, room):
    with pytest.raises(ValidationError):
        create_booking("ROOM", room_payload(member, room, pricing_type="guest"))


def test_total_override_keeps_unit_price(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room, total_price=9000, payment_status="PAID"))
    assert booking.total_price == 9000
    assert booking.units[0].price_at_booking == 10000
    assert voucher_rows(get_vouchers("ROOM", booking.id)) == [("FULL_PAYMENT", "CONFIRMED", 9000)]


@pytest.mark.parametrize("overrides", [
    {"check_in": "2025-05-19", "check_out": "2025-05-21"},
    {"check_in": "2025-06-03", "check_out": "2025-06-03"},
    {"check_in": "2025-06-03", "check_out": "2025-06-01"},
    {"number_of_adults": 0},
    {"number_of_adults": 5, "number_of_children": 2},
    {"unit_ids": []},
    {"pricing_type": "corporate"},
    {"check_in": "someday"},
])
def test_rejected_room_requests_write_nothing(db_session, member, room, overrides):
    with pytest.raises(ValidationError):
        create_booking("ROOM", room_payload(member, room, **overrides))
    assert db_session.query(Booking).count() == 0
    assert db_session.query(PaymentVoucher).count() == 0


def test_unknown_member_and_room(db_session, member, room):
    with pytest.raises(NotFoundError):
        create_booking("ROOM", room_payload(member, room, membership_no="NOPE"))
    with pytest.raises(NotFoundError):
        create_booking("ROOM", room_payload(member, room, unit_ids=[room.id + 999]))


def test_inactive_member_cannot_book(db_session, make_member, room):
    inactive = make_member("M9", "Lapsed")
    set_member_active("M9", False)
    with pytest.raises(ConflictError):
        create_booking("ROOM", room_payload(inactive, room))


def test_overlapping_stay_conflicts(db_session, member, room, make_member):
    create_booking("ROOM", room_payload(member, room))
    other = make_member("M2", "Member Two")

    with pytest.raises(ConflictError) as excinfo:
        create_booking("ROOM", room_payload(other, room, check_in="2025-06-02", check_out="2025-06-04"))
    err = excinfo.value
    assert err.kind == "BOOKED"
    assert err.unit_id == room.id
    assert err.date == date(2025, 6, 2)
    assert db_session.query(Booking).count() == 1


def test_back_to_back_stays_share_checkout_day(db_session, member, room):
    create_booking("ROOM", room_payload(member, room))
    second = create_booking("ROOM", room_payload(member, room, check_in="2025-06-03", check_out="2025-06-05"))
    assert second.start_date == date(2025, 6, 3)


def test_cancelled_booking_frees_the_room(db_session, member, room):
    first = create_booking("ROOM", room_payload(member, room))
    cancel_booking("ROOM", first.id)
    again = create_booking("ROOM", room_payload(member, room))
    assert again.id != first.id


def test_multi_room_booking_reports_first_blocked_room(db_session, member, room, make_facility):
    room2 = make_facility("ROOM", "R2", rate_member=6000, rate_guest=9000)
    create_booking("ROOM", room_payload(member, room2, check_in="2025-06-02", check_out="2025-06-03"))

    with pytest.raises(ConflictError) as excinfo:
        create_booking("ROOM", room_payload(member, room, unit_ids=[room.id, room2.id]))
    assert excinfo.value.unit_id == room2.id
    assert excinfo.value.date == date(2025, 6, 2)


def test_occupancy_flag_follows_today(db_session, member, room, set_now):
    create_booking("ROOM", room_payload(member, room))
    db_session.refresh(room)
    assert room.is_booked is False

    set_now(datetime(2025, 6, 1, 9, 0, tzinfo=KARACHI))
    assert sync_occupancy_flags() == 1
    db_session.refresh(room)
    assert room.is_booked is True

    # Check-out day is not a booked night
    set_now(datetime(2025, 6, 3, 9, 0, tzinfo=KARACHI))
    assert sync_occupancy_flags() == 1
    db_session.refresh(room)
    assert room.is_booked is False


def test_booking_starting_today_marks_room_booked(db_session, member, room, set_now):
    set_now(datetime(2025, 6, 1, 9, 0, tzinfo=KARACHI))
    create_booking("ROOM", room_payload(member, room))
    db_session.refresh(room)
    assert room.is_booked is True


def test_required_advance_reported_for_rooms(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room))
    assert serialize_booking(booking)["required_advance"] == 2500


def test_pending_advance_voucher(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room, advance_voucher_amount=2500))
    assert voucher_rows(get_vouchers("ROOM", booking.id)) == [("ADVANCE_PAYMENT", "PENDING", 2500)]
    assert booking.paid_amount == 0

    with pytest.raises(ValidationError):
        create_booking("ROOM", room_payload(
            member, room, check_in="2025-06-10", check_out="2025-06-11", advance_voucher_amount=6000,
        ))


# =============================================================================
# Updates
# =============================================================================

def test_extending_paid_stay_downgrades_to_half_paid(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room, payment_status="PAID"))
    updated = update_booking("ROOM", {"id": booking.id, "check_out": "2025-06-04"}, acting_user="desk")

    assert updated.total_price == 15000
    assert updated.payment_status == "HALF_PAID"
    assert updated.paid_amount == 10000
    assert updated.pending_amount == 5000
    assert voucher_rows(get_vouchers("ROOM", booking.id)) == [("HALF_PAYMENT", "CONFIRMED", 10000)]

    db_session.refresh(member)
    assert member.booking_amount_paid == 10000
    assert member.booking_amount_due == 5000
    assert member.booking_balance == 5000

    events = list_booking_events(booking.id)
    assert [e.event_type for e in events] == ["booking.created", "booking.updated"]
    assert events[-1].owed_delta == 5000
    assert check_booking_invariants(updated) == []


def test_lowering_paid_amount_issues_correction_and_refund(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room, payment_status="PAID"))
    updated = update_booking("ROOM", {"id": booking.id, "payment_status": "HALF_PAID", "paid_amount": 4000})

    assert (updated.paid_amount, updated.pending_amount) == (4000, 6000)
    assert updated.refund_amount == 6000
    assert updated.refund_returned is False
    assert voucher_rows(get_vouchers("ROOM", booking.id)) == [
        ("FULL_PAYMENT", "CANCELLED", 10000),
        ("HALF_PAYMENT", "CONFIRMED", 4000),
        ("REFUND", "PENDING", 6000),
    ]
    assert check_booking_invariants(updated) == []

    db_session.refresh(member)
    assert member.booking_amount_paid == 4000
    assert member.booking_amount_due == 6000


def test_raising_paid_amount_issues_delta_voucher(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room, payment_status="HALF_PAID", paid_amount=5000))
    update_booking("ROOM", {"id": booking.id, "paid_amount": 8000})
    assert voucher_rows(get_vouchers("ROOM", booking.id)) == [
        ("HALF_PAYMENT", "CONFIRMED", 5000),
        ("HALF_PAYMENT", "CONFIRMED", 3000),
    ]


def test_update_does_not_conflict_with_itself(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room))
    updated = update_booking("ROOM", {"id": booking.id, "check_in": "2025-06-02", "check_out": "2025-06-04"})
    assert (updated.start_date, updated.end_date) == (date(2025, 6, 2), date(2025, 6, 4))
    days = sorted(s.slot_date for s in db_session.query(BookingSlot).filter_by(booking_id=booking.id))
    assert days == [date(2025, 6, 2), date(2025, 6, 3)]


def test_update_into_another_booking_conflicts(db_session, member, room):
    create_booking("ROOM", room_payload(member, room, check_in="2025-06-05", check_out="2025-06-07"))
    booking = create_booking("ROOM", room_payload(member, room))
    with pytest.raises(ConflictError):
        update_booking("ROOM", {"id": booking.id, "check_out": "2025-06-06"})
    assert get_booking("ROOM", booking.id).end_date == date(2025, 6, 3)


def test_remarks_only_update_keeps_price(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room, total_price=9000))
    updated = update_booking("ROOM", {"id": booking.id, "remarks": "late arrival"})
    assert updated.total_price == 9000
    assert updated.remarks == "late arrival"


def test_moving_booking_between_members(db_session, member, room, make_member):
    other = make_member("M2", "Member Two")
    booking = create_booking("ROOM", room_payload(member, room, payment_status="HALF_PAID", paid_amount=4000))
    update_booking("ROOM", {"id": booking.id, "membership_no": "M2"})

    db_session.refresh(member)
    db_session.refresh(other)
    assert (member.booking_amount_paid, member.booking_amount_due, member.total_bookings) == (0, 0, 0)
    assert (other.booking_amount_paid, other.booking_amount_due, other.total_bookings) == (4000, 6000, 1)


def test_to_bill_then_settle(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room, payment_status="TO_BILL"))
    assert (booking.paid_amount, booking.pending_amount) == (0, 0)
    db_session.refresh(member)
    assert (member.balance, member.dr_amount, member.booking_amount_due) == (10000, 10000, 0)

    update_booking("ROOM", {"id": booking.id, "payment_status": "PAID"})
    db_session.refresh(member)
    assert (member.balance, member.dr_amount) == (0, 0)
    assert member.booking_amount_paid == 10000
    assert voucher_rows(get_vouchers("ROOM", booking.id)) == [
        ("TO_BILL", "CONFIRMED", 10000),
        ("FULL_PAYMENT", "CONFIRMED", 10000),
        ("ADJUSTMENT", "CONFIRMED", 10000),
    ]


def test_update_cancelled_booking_rejected(db_session, member, room):
    booking = create_booking("ROOM", room_payload(member, room))
    cancel_booking("ROOM", booking.id)
    with pytest.raises(ConflictError):
        update_booking("ROOM", {"id": booking.id, "remarks": "x"})


# =============================================================================
# Holds and listings
# =============================================================================

def test_member_hold_blocks_others_but_not_holder(db_session, member, room, make_member):
    other = make_member("M2", "Member Two")
    create_hold("ROOM", room.id, "M2", "2025-06-01", "2025-06-03")

    with pytest.raises(ConflictError) as excinfo:
        create_booking("ROOM", room_payload(member, room))
    assert excinfo.value.kind == "HELD"

    booking = create_booking("ROOM", room_payload(other, room))
    assert booking.member_id == other.id
    # The holder's hold is consumed by the booking
    assert db_session.query(FacilityHold).count() == 0


def test_list_bookings_paginates_newest_first(db_session, member, room):
    first = create_booking("ROOM", room_payload(member, room))
    second = create_booking("ROOM", room_payload(member, room, check_in="2025-06-10", check_out="2025-06-11"))

    page = list_bookings("ROOM", page=1, limit=1)
    assert page["pagination"]["total"] == 2
    assert page["pagination"]["has_next"] is True
    assert page["items"][0]["id"] == second.id

    page2 = list_bookings("ROOM", page=2, limit=1)
    assert page2["items"][0]["id"] == first.id
