"""Payload builders shared by the booking tests."""


def room_payload(member, room, **overrides):
    payload = {
        "membership_no": member.membership_no,
        "unit_ids": [room.id],
        "check_in": "2025-06-01",
        "check_out": "2025-06-03",
        "number_of_adults": 2,
        "pricing_type": "member",
    }
    payload.update(overrides)
    return payload


def hall_payload(member, hall, **overrides):
    payload = {
        "membership_no": member.membership_no,
        "unit_ids": [hall.id],
        "booking_date": "2025-07-10",
        "event_time": "MORNING",
        "number_of_guests": 120,
        "pricing_type": "member",
    }
    payload.update(overrides)
    return payload


def voucher_rows(vouchers):
    """(type, status, amount) tuples, oldest first."""
    return [(v.voucher_type, v.status, v.amount) for v in sorted(vouchers, key=lambda v: v.id)]
