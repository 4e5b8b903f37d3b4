# Overview: Pure payment reconciliation rules; no database access.

"""
Payment Reconciliation Engine

Given a booking's current financial state and a requested new state, decide:
- the new status and paid / pending split
- the amount deferred to the member's club account (TO_BILL)
- the voucher mutations that keep the voucher trail equal to the net paid amount
- the member ledger delta

Everything here is a pure function over small dataclasses so the booking
engine can validate a whole mutation before it writes anything.

RULES:
1. Auto-downgrade: a PAID booking whose total rises above what was paid,
   with no new status (absent or unchanged) and no explicit paid amount,
   becomes HALF_PAID keeping the paid amount. Nothing is assumed paid.
2. Otherwise the status is the requested one (or the current one) and the
   paid amount follows from it: PAID -> total, UNPAID -> 0, partial statuses
   -> the explicit amount or the current one.
3. TO_BILL moves the owed part off the booking onto the club account. On
   update only the change in the billed amount is posted.
4. Bounds are checked before anything is written.
5. ONLINE payments are validated like any other but not counted: paid stays
   where it was and the increase becomes a PENDING ADVANCE_PAYMENT voucher,
   applied only when staff confirm it. The stored status follows the money
   actually received.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..validation import ConflictError, ValidationError


PAYMENT_UNPAID = "UNPAID"
PAYMENT_HALF_PAID = "HALF_PAID"
PAYMENT_PAID = "PAID"
PAYMENT_TO_BILL = "TO_BILL"
PAYMENT_ADVANCE = "ADVANCE_PAYMENT"

VALID_PAYMENT_STATUSES = [
    PAYMENT_UNPAID,
    PAYMENT_HALF_PAID,
    PAYMENT_PAID,
    PAYMENT_TO_BILL,
    PAYMENT_ADVANCE,
]

VOUCHER_FULL = "FULL_PAYMENT"
VOUCHER_HALF = "HALF_PAYMENT"
VOUCHER_ADVANCE = "ADVANCE_PAYMENT"
VOUCHER_REFUND = "REFUND"
VOUCHER_ADJUSTMENT = "ADJUSTMENT"
VOUCHER_TO_BILL = "TO_BILL"

VALID_VOUCHER_TYPES = [
    VOUCHER_FULL,
    VOUCHER_HALF,
    VOUCHER_ADVANCE,
    VOUCHER_REFUND,
    VOUCHER_ADJUSTMENT,
    VOUCHER_TO_BILL,
]

# Voucher types that carry money paid against the booking
PAYMENT_VOUCHER_TYPES = (VOUCHER_FULL, VOUCHER_HALF, VOUCHER_ADVANCE)

VOUCHER_PENDING = "PENDING"
VOUCHER_CONFIRMED = "CONFIRMED"
VOUCHER_CANCELLED = "CANCELLED"

VALID_VOUCHER_STATUSES = [VOUCHER_PENDING, VOUCHER_CONFIRMED, VOUCHER_CANCELLED]

TAG_BOOKING_PAYMENT = "Booking Payment"
TAG_INCREASE = "Payment Update (Increase)"
TAG_DECREASE = "Payment Correction (Decrease)"
TAG_REFUND = "Refund Due"
TAG_TO_BILL = "To Bill"
TAG_BILLING_REVERSAL = "Billing Reversal"
TAG_ONLINE = "Online Payment (Awaiting Confirmation)"


@dataclass(frozen=True)
class PaymentState:
    """Financial state of a stored booking."""
    total: int
    paid: int
    pending: int
    status: str

    @property
    def billed(self) -> int:
        """Amount currently deferred to the member's club account."""
        if self.status == PAYMENT_TO_BILL:
            return max(self.total - self.paid, 0)
        return 0

    @classmethod
    def of(cls, booking) -> "PaymentState":
        return cls(
            total=booking.total_price or 0,
            paid=booking.paid_amount or 0,
            pending=booking.pending_amount or 0,
            status=booking.payment_status,
        )


@dataclass(frozen=True)
class PaymentPlan:
    status: str
    total: int
    paid: int
    pending: int
    amount_to_balance: int
    paid_diff: int
    owed_diff: int
    downgraded: bool = False
    online_amount: int = 0

    @property
    def booking_balance_delta(self) -> int:
        return self.paid_diff - self.owed_diff

    @property
    def has_ledger_delta(self) -> bool:
        return bool(self.paid_diff or self.owed_diff or self.amount_to_balance)


@dataclass(frozen=True)
class VoucherIssue:
    voucher_type: str
    status: str
    amount: int
    tag: str


@dataclass
class VoucherDiff:
    cancel_confirmed_payments: bool = False
    retag_full_to_half: bool = False
    issue: list[VoucherIssue] = field(default_factory=list)
    refund_amount: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.cancel_confirmed_payments or self.retag_full_to_half or self.issue)


def normalize_payment_status(value: Optional[str]) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    status = str(value).strip().upper()
    if status not in VALID_PAYMENT_STATUSES:
        raise ValidationError(
            f"Invalid payment status: {value}. Must be one of {VALID_PAYMENT_STATUSES}"
        )
    return status


def payment_voucher_type(status: str) -> str:
    if status == PAYMENT_PAID:
        return VOUCHER_FULL
    if status == PAYMENT_ADVANCE:
        return VOUCHER_ADVANCE
    return VOUCHER_HALF


def compute_payment_plan(
    current: Optional[PaymentState],
    new_total: int,
    requested_status: Optional[str] = None,
    requested_paid: Optional[int] = None,
    *,
    online: bool = False,
) -> PaymentPlan:
    """
    Compute the new payment state. current=None means create mode.

    online=True defers any increase in paid to a PENDING voucher.

    Raises:
        ValidationError: unknown status, negative amounts
        ConflictError: paid amount outside the bounds the status allows
    """
    if new_total is None or new_total < 0:
        raise ValidationError("Total price must be >= 0")
    if requested_paid is not None and requested_paid < 0:
        raise ValidationError("Paid amount must be >= 0")
    requested_status = normalize_payment_status(requested_status)

    curr_paid = current.paid if current else 0
    curr_status = current.status if current else None
    downgraded = False

    # Re-sending the current status is not an explicit new status
    status_unchanged = requested_status is None or requested_status == curr_status

    if (
        current is not None
        and new_total > curr_paid
        and status_unchanged
        and requested_paid is None
        and curr_status == PAYMENT_PAID
    ):
        # A settled booking whose price went up: keep what was actually paid
        status = PAYMENT_HALF_PAID if curr_paid > 0 else PAYMENT_UNPAID
        paid = curr_paid
        downgraded = True
    else:
        status = requested_status or curr_status or PAYMENT_UNPAID
        if status == PAYMENT_PAID:
            paid = new_total
        elif status == PAYMENT_UNPAID:
            paid = 0
        else:
            paid = requested_paid if requested_paid is not None else curr_paid

    _validate_bounds(status, paid, new_total)

    online_amount = 0
    if online and paid > curr_paid:
        if status == PAYMENT_TO_BILL:
            raise ValidationError("ONLINE payments cannot be combined with TO_BILL")
        online_amount = paid - curr_paid
        paid = curr_paid
        status = _status_for_received(paid, new_total, curr_status)

    owed = new_total - paid
    if status == PAYMENT_TO_BILL:
        pending = 0
        new_billed = owed
    else:
        pending = owed
        new_billed = 0

    prev_billed = current.billed if current else 0
    curr_pending = current.pending if current else 0

    return PaymentPlan(
        status=status,
        total=new_total,
        paid=paid,
        pending=pending,
        amount_to_balance=new_billed - prev_billed,
        paid_diff=paid - curr_paid,
        owed_diff=pending - curr_pending,
        downgraded=downgraded,
        online_amount=online_amount,
    )


def _status_for_received(paid: int, total: int, preferred: Optional[str]) -> str:
    if paid <= 0:
        return PAYMENT_UNPAID
    if paid >= total:
        return PAYMENT_PAID
    if preferred in (PAYMENT_HALF_PAID, PAYMENT_ADVANCE):
        return preferred
    return PAYMENT_HALF_PAID


def _validate_bounds(status: str, paid: int, total: int) -> None:
    if status in (PAYMENT_HALF_PAID, PAYMENT_ADVANCE):
        if not (0 < paid < total):
            raise ConflictError(
                f"{status} requires a paid amount greater than 0 and less than the total ({total})"
            )
    elif status == PAYMENT_TO_BILL:
        if not (0 <= paid <= total):
            raise ConflictError(f"TO_BILL requires a paid amount between 0 and the total ({total})")
    elif paid > total:
        raise ConflictError("Paid amount cannot exceed the total price")


def plan_voucher_diff(current: Optional[PaymentState], plan: PaymentPlan) -> VoucherDiff:
    """
    Voucher mutations that move the trail from current to plan.

    Payment vouchers always record net deltas; a full new total is never
    re-issued on top of earlier vouchers.
    """
    diff = VoucherDiff()
    vtype = payment_voucher_type(plan.status)

    if current is None:
        if plan.paid > 0:
            diff.issue.append(VoucherIssue(vtype, VOUCHER_CONFIRMED, plan.paid, TAG_BOOKING_PAYMENT))
    elif plan.paid_diff < 0:
        diff.cancel_confirmed_payments = True
        if plan.paid > 0:
            diff.issue.append(VoucherIssue(vtype, VOUCHER_CONFIRMED, plan.paid, TAG_DECREASE))
        if current.status == PAYMENT_PAID and plan.paid < current.total:
            diff.refund_amount = current.total - plan.paid
            diff.issue.append(
                VoucherIssue(VOUCHER_REFUND, VOUCHER_PENDING, diff.refund_amount, TAG_REFUND)
            )
    elif plan.paid_diff > 0:
        diff.issue.append(VoucherIssue(vtype, VOUCHER_CONFIRMED, plan.paid_diff, TAG_INCREASE))

    if plan.online_amount > 0:
        diff.issue.append(VoucherIssue(VOUCHER_ADVANCE, VOUCHER_PENDING, plan.online_amount, TAG_ONLINE))

    if (
        current is not None
        and current.status == PAYMENT_PAID
        and plan.status == PAYMENT_HALF_PAID
        and not diff.cancel_confirmed_payments
    ):
        diff.retag_full_to_half = True

    if plan.amount_to_balance > 0:
        diff.issue.append(
            VoucherIssue(VOUCHER_TO_BILL, VOUCHER_CONFIRMED, plan.amount_to_balance, TAG_TO_BILL)
        )
    elif plan.amount_to_balance < 0:
        diff.issue.append(
            VoucherIssue(VOUCHER_ADJUSTMENT, VOUCHER_CONFIRMED, -plan.amount_to_balance, TAG_BILLING_REVERSAL)
        )

    return diff
