# Overview: Member ledger increments and the append-only booking ledger.

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import update

from ..extensions import db
from ..models import BookingLedgerEvent, Member
"""
Booking Ledger Invariants (authoritative)

- Member ledger fields only move by SQL-level increments (col = col + delta);
  they are never recomputed from bookings.
- booking_balance always moves by paid_delta - owed_delta.
- balance and dr_amount move together, only for TO_BILL deferrals.
- Every booking mutation appends one BookingLedgerEvent in the same
  transaction, even when all deltas are zero.
- Events are never updated or deleted.
"""


EVENT_BOOKING_CREATED = "booking.created"
EVENT_BOOKING_UPDATED = "booking.updated"
EVENT_BOOKING_CANCELLED = "booking.cancelled"
EVENT_VOUCHER_CONFIRMED = "voucher.confirmed"
EVENT_VOUCHER_CANCELLED = "voucher.cancelled"


def apply_member_delta(
    member_id: int,
    *,
    paid_delta: int = 0,
    owed_delta: int = 0,
    account_delta: int = 0,
    booking_count_delta: int = 0,
    last_booking_date: Optional[date] = None,
) -> bool:
    """
    Apply ledger deltas to a member atomically.

    Returns False (and issues no UPDATE) when there is nothing to change.
    """
    values = {}
    if paid_delta:
        values[Member.booking_amount_paid] = Member.booking_amount_paid + paid_delta
    if owed_delta:
        values[Member.booking_amount_due] = Member.booking_amount_due + owed_delta
    if paid_delta or owed_delta:
        values[Member.booking_balance] = Member.booking_balance + (paid_delta - owed_delta)
    if account_delta:
        values[Member.balance] = Member.balance + account_delta
        values[Member.dr_amount] = Member.dr_amount + account_delta
    if booking_count_delta:
        values[Member.total_bookings] = Member.total_bookings + booking_count_delta
    if last_booking_date is not None:
        values[Member.last_booking_date] = last_booking_date

    if not values:
        return False

    db.session.execute(
        update(Member)
        .where(Member.id == member_id)
        .values(values)
        .execution_options(synchronize_session=False)
    )
    # Loaded Member instances must not keep serving the pre-increment values
    member = db.session.get(Member, member_id)
    if member is not None:
        db.session.expire(member)
    return True


def append_booking_event(
    *,
    event_type: str,
    booking_id: int,
    member_id: int | None = None,
    voucher_id: int | None = None,
    paid_delta: int = 0,
    owed_delta: int = 0,
    account_delta: int = 0,
    actor: str | None = None,
    note: Optional[str] = None,
) -> BookingLedgerEvent:
    """
    Append-only booking ledger event.

    - No domain logic here.
    - No deletes/updates of existing events.
    """
    ev = BookingLedgerEvent(
        event_type=event_type,
        booking_id=booking_id,
        member_id=member_id,
        voucher_id=voucher_id,
        paid_delta=paid_delta,
        owed_delta=owed_delta,
        account_delta=account_delta,
        actor=actor,
        note=note,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


def list_booking_events(booking_id: int) -> list[BookingLedgerEvent]:
    return (
        db.session.query(BookingLedgerEvent)
        .filter_by(booking_id=booking_id)
        .order_by(BookingLedgerEvent.id.asc())
        .all()
    )
