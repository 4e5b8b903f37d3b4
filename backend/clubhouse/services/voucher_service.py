# Overview: Payment voucher writes and the voucher status workflow.

"""
Payment Voucher Service

Vouchers are the money trail of a booking. The booking engine turns a
VoucherDiff into rows here; staff confirm or cancel PENDING vouchers through
update_voucher_status().

The only in-place mutations of existing vouchers:
- cancel_confirmed_payments: CONFIRMED -> CANCELLED on a payment decrease
- retag_full_to_half: FULL_PAYMENT -> HALF_PAYMENT on a PAID downgrade
- PENDING -> CONFIRMED / CANCELLED by staff
"""

from __future__ import annotations

from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import Booking, PaymentVoucher
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_consumer_number, next_voucher_number
from .facility_policies import normalize_facility_type
from .ledger_service import (
    EVENT_VOUCHER_CANCELLED,
    EVENT_VOUCHER_CONFIRMED,
    append_booking_event,
    apply_member_delta,
)
from .reconciliation_service import (
    PAYMENT_ADVANCE,
    PAYMENT_HALF_PAID,
    PAYMENT_PAID,
    PAYMENT_TO_BILL,
    PAYMENT_VOUCHER_TYPES,
    VALID_VOUCHER_STATUSES,
    VOUCHER_CANCELLED,
    VOUCHER_CONFIRMED,
    VOUCHER_FULL,
    VOUCHER_HALF,
    VOUCHER_PENDING,
    VOUCHER_REFUND,
    VoucherDiff,
)


PAYMENT_MODE_CASH = "CASH"
PAYMENT_MODE_CARD = "CARD"
PAYMENT_MODE_CHECK = "CHECK"
PAYMENT_MODE_ONLINE = "ONLINE"

VALID_PAYMENT_MODES = [
    PAYMENT_MODE_CASH,
    PAYMENT_MODE_CARD,
    PAYMENT_MODE_CHECK,
    PAYMENT_MODE_ONLINE,
]


def normalize_payment_mode(value: Optional[str]) -> str:
    mode = str(value or PAYMENT_MODE_CASH).strip().upper()
    if mode not in VALID_PAYMENT_MODES:
        raise ValidationError(f"Invalid payment mode: {value}. Must be one of {VALID_PAYMENT_MODES}")
    return mode


def issue_voucher(
    booking: Booking,
    *,
    voucher_type: str,
    status: str,
    amount: int,
    remarks: str,
    issued_by: str | None,
    payment_mode: str = PAYMENT_MODE_CASH,
    payment_details: dict | None = None,
) -> PaymentVoucher:
    """Insert one voucher row inside the caller's transaction."""
    if amount <= 0:
        raise ValidationError("Voucher amount must be positive")

    details = payment_details or {}
    voucher = PaymentVoucher(
        voucher_no=next_voucher_number(),
        consumer_number=next_consumer_number(),
        booking_id=booking.id,
        booking_type=booking.facility_type,
        membership_no=booking.member.membership_no,
        amount=amount,
        payment_mode=payment_mode,
        voucher_type=voucher_type,
        status=status,
        issued_by=issued_by,
        issued_at=utcnow(),
        paid_at=utcnow() if status == VOUCHER_CONFIRMED else None,
        remarks=remarks,
        card_number=details.get("card_number"),
        check_number=details.get("check_number"),
        bank_name=details.get("bank_name"),
    )
    db.session.add(voucher)
    db.session.flush()
    return voucher


def apply_voucher_diff(
    booking: Booking,
    diff: VoucherDiff,
    *,
    description: str,
    issued_by: str | None,
    payment_mode: str = PAYMENT_MODE_CASH,
    payment_details: dict | None = None,
) -> list[PaymentVoucher]:
    """
    Write a VoucherDiff for a booking. Returns the newly issued vouchers.

    Existing vouchers are touched before new ones are inserted, so a
    correction voucher is never cancelled by the same diff.
    """
    if diff.cancel_confirmed_payments or diff.retag_full_to_half:
        existing = (
            db.session.query(PaymentVoucher)
            .filter(
                PaymentVoucher.booking_id == booking.id,
                PaymentVoucher.status == VOUCHER_CONFIRMED,
                PaymentVoucher.voucher_type.in_(PAYMENT_VOUCHER_TYPES),
            )
            .all()
        )
        for voucher in existing:
            if diff.cancel_confirmed_payments:
                voucher.status = VOUCHER_CANCELLED
            elif voucher.voucher_type == VOUCHER_FULL:
                voucher.voucher_type = VOUCHER_HALF

    issued = []
    for item in diff.issue:
        issued.append(
            issue_voucher(
                booking,
                voucher_type=item.voucher_type,
                status=item.status,
                amount=item.amount,
                remarks=f"{description} | {item.tag}",
                issued_by=issued_by,
                payment_mode=payment_mode,
                payment_details=payment_details,
            )
        )
    return issued


def get_vouchers(facility_type: str, booking_id: int) -> list[PaymentVoucher]:
    """Vouchers of one booking, newest first."""
    facility_type = normalize_facility_type(facility_type)
    booking = db.session.query(Booking).filter_by(id=booking_id, facility_type=facility_type).first()
    if not booking:
        raise NotFoundError(f"{facility_type} booking {booking_id} not found")
    return (
        db.session.query(PaymentVoucher)
        .filter_by(booking_id=booking_id)
        .order_by(PaymentVoucher.issued_at.desc(), PaymentVoucher.id.desc())
        .all()
    )


def update_voucher_status(voucher_id: int, status: str, acting_user: str | None = None) -> PaymentVoucher:
    """
    Move a PENDING voucher to CONFIRMED or CANCELLED.

    CONFIRMING:
    - payment voucher: its amount is applied to the booking (paid up, pending
      down, status PAID once settled) with the matching member ledger delta
    - REFUND voucher: marks the booking's refund as returned

    CONFIRMED and CANCELLED vouchers are immutable here.
    """
    new_status = str(status or "").strip().upper()
    if new_status not in VALID_VOUCHER_STATUSES:
        raise ValidationError(f"Invalid voucher status: {status}. Must be one of {VALID_VOUCHER_STATUSES}")

    def _op() -> PaymentVoucher:
        voucher = lock_for_update(db.session.query(PaymentVoucher).filter_by(id=voucher_id)).first()
        if not voucher:
            raise NotFoundError(f"Voucher {voucher_id} not found")
        if voucher.status == new_status:
            return voucher
        if voucher.status != VOUCHER_PENDING:
            raise ConflictError(f"Voucher {voucher.voucher_no} is {voucher.status} and cannot be changed")

        booking = lock_for_update(db.session.query(Booking).filter_by(id=voucher.booking_id)).first()

        if new_status == VOUCHER_CANCELLED:
            voucher.status = VOUCHER_CANCELLED
            append_booking_event(
                event_type=EVENT_VOUCHER_CANCELLED,
                booking_id=booking.id,
                member_id=booking.member_id,
                voucher_id=voucher.id,
                actor=acting_user,
                note=f"{voucher.voucher_no} cancelled",
            )
            return voucher

        if voucher.voucher_type in PAYMENT_VOUCHER_TYPES:
            _apply_confirmed_payment(booking, voucher, acting_user)
        elif voucher.voucher_type == VOUCHER_REFUND:
            booking.refund_returned = True
            booking.updated_by = acting_user
            booking.updated_at = utcnow()
            append_booking_event(
                event_type=EVENT_VOUCHER_CONFIRMED,
                booking_id=booking.id,
                member_id=booking.member_id,
                voucher_id=voucher.id,
                actor=acting_user,
                note=f"Refund {voucher.voucher_no} returned ({voucher.amount})",
            )

        voucher.status = VOUCHER_CONFIRMED
        voucher.paid_at = utcnow()
        return voucher

    voucher = run_in_transaction(_op)
    current_app.logger.info("Voucher %s set to %s by %s", voucher.voucher_no, voucher.status, acting_user)
    return voucher


def _apply_confirmed_payment(booking: Booking, voucher: PaymentVoucher, acting_user: str | None) -> None:
    if booking.is_cancelled:
        raise ConflictError("Cannot confirm a payment on a cancelled booking")
    if booking.payment_status == PAYMENT_TO_BILL:
        raise ConflictError("Cannot confirm a payment on a TO_BILL booking; update the booking instead")
    if booking.paid_amount + voucher.amount > booking.total_price:
        raise ConflictError(
            f"Confirming {voucher.voucher_no} would exceed the booking total "
            f"({booking.paid_amount} + {voucher.amount} > {booking.total_price})"
        )

    booking.paid_amount += voucher.amount
    booking.pending_amount = booking.total_price - booking.paid_amount
    if booking.pending_amount == 0:
        booking.payment_status = PAYMENT_PAID
    elif booking.payment_status not in (PAYMENT_HALF_PAID, PAYMENT_ADVANCE):
        booking.payment_status = PAYMENT_HALF_PAID
    booking.updated_by = acting_user
    booking.updated_at = utcnow()

    apply_member_delta(
        booking.member_id,
        paid_delta=voucher.amount,
        owed_delta=-voucher.amount,
    )
    append_booking_event(
        event_type=EVENT_VOUCHER_CONFIRMED,
        booking_id=booking.id,
        member_id=booking.member_id,
        voucher_id=voucher.id,
        paid_delta=voucher.amount,
        owed_delta=-voucher.amount,
        actor=acting_user,
        note=f"{voucher.voucher_no} confirmed",
    )
