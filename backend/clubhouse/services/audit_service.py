# Overview: Read-only checks of the booking amount and voucher invariants.

"""
Booking Invariant Audit

AMOUNTS:
- every status except TO_BILL: paid_amount + pending_amount == total_price
- TO_BILL: pending_amount == 0 and 0 <= paid_amount <= total_price
- PAID: paid == total; UNPAID: paid == 0; HALF_PAID / ADVANCE_PAYMENT: 0 < paid < total

VOUCHERS:
- CONFIRMED FULL / HALF / ADVANCE vouchers sum to paid_amount
- CONFIRMED REFUND vouchers never exceed refund_amount
- TO_BILL / ADJUSTMENT vouchers post to the club account and are not counted
"""

from __future__ import annotations

from ..extensions import db
from ..models import Booking, PaymentVoucher
from .facility_policies import normalize_facility_type
from .reconciliation_service import (
    PAYMENT_ADVANCE,
    PAYMENT_HALF_PAID,
    PAYMENT_PAID,
    PAYMENT_TO_BILL,
    PAYMENT_UNPAID,
    PAYMENT_VOUCHER_TYPES,
    VOUCHER_CONFIRMED,
    VOUCHER_REFUND,
)


def check_booking_invariants(booking: Booking) -> list[str]:
    """Return human-readable violations; an empty list means the booking is consistent."""
    problems = []
    total = booking.total_price or 0
    paid = booking.paid_amount or 0
    pending = booking.pending_amount or 0
    status = booking.payment_status

    if min(total, paid, pending) < 0:
        problems.append(f"negative amount (total={total}, paid={paid}, pending={pending})")

    if status == PAYMENT_TO_BILL:
        if pending != 0:
            problems.append(f"TO_BILL booking has pending_amount {pending}")
        if paid > total:
            problems.append(f"paid {paid} exceeds total {total}")
    elif paid + pending != total:
        problems.append(f"paid {paid} + pending {pending} != total {total}")

    if status == PAYMENT_PAID and paid != total:
        problems.append(f"PAID booking has paid {paid} of {total}")
    elif status == PAYMENT_UNPAID and paid != 0:
        problems.append(f"UNPAID booking has paid {paid}")
    elif status in (PAYMENT_HALF_PAID, PAYMENT_ADVANCE) and not (0 < paid < total):
        problems.append(f"{status} booking has paid {paid} of {total}")

    vouchers = db.session.query(PaymentVoucher).filter_by(booking_id=booking.id, status=VOUCHER_CONFIRMED).all()
    confirmed_payments = sum(v.amount for v in vouchers if v.voucher_type in PAYMENT_VOUCHER_TYPES)
    confirmed_refunds = sum(v.amount for v in vouchers if v.voucher_type == VOUCHER_REFUND)

    if confirmed_payments != paid:
        problems.append(f"confirmed payment vouchers {confirmed_payments} != paid {paid}")
    if confirmed_refunds > (booking.refund_amount or 0):
        problems.append(
            f"confirmed refunds {confirmed_refunds} exceed refund_amount {booking.refund_amount or 0}"
        )
    return problems


def audit_bookings(facility_type: str | None = None, *, include_cancelled: bool = False) -> dict[int, list[str]]:
    """Run check_booking_invariants over many bookings. Maps booking id to its violations."""
    query = db.session.query(Booking)
    if facility_type:
        query = query.filter(Booking.facility_type == normalize_facility_type(facility_type))
    if not include_cancelled:
        query = query.filter(Booking.is_cancelled.is_(False))

    report = {}
    for booking in query.order_by(Booking.id.asc()).all():
        problems = check_booking_invariants(booking)
        if problems:
            report[booking.id] = problems
    return report
