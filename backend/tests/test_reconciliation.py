"""
Payment reconciliation engine: pure plan / voucher-diff computations.
"""

import pytest

from clubhouse.services.reconciliation_service import (
    PAYMENT_ADVANCE,
    PAYMENT_HALF_PAID,
    PAYMENT_PAID,
    PAYMENT_TO_BILL,
    PAYMENT_UNPAID,
    VOUCHER_ADJUSTMENT,
    VOUCHER_ADVANCE,
    VOUCHER_CONFIRMED,
    VOUCHER_FULL,
    VOUCHER_HALF,
    VOUCHER_PENDING,
    VOUCHER_REFUND,
    VOUCHER_TO_BILL,
    PaymentState,
    compute_payment_plan,
    plan_voucher_diff,
)
from clubhouse.validation import ConflictError, ValidationError


def _issued(diff):
    return [(i.voucher_type, i.status, i.amount) for i in diff.issue]


# =============================================================================
# Create mode
# =============================================================================

def test_create_paid_issues_one_full_voucher():
    plan = compute_payment_plan(None, 10000, "PAID")
    assert (plan.status, plan.paid, plan.pending) == (PAYMENT_PAID, 10000, 0)
    assert plan.paid_diff == 10000 and plan.owed_diff == 0
    assert _issued(plan_voucher_diff(None, plan)) == [(VOUCHER_FULL, VOUCHER_CONFIRMED, 10000)]


def test_create_unpaid_issues_nothing():
    plan = compute_payment_plan(None, 10000)
    assert (plan.status, plan.paid, plan.pending) == (PAYMENT_UNPAID, 0, 10000)
    assert plan.owed_diff == 10000
    assert plan_voucher_diff(None, plan).is_empty


def test_create_half_paid():
    plan = compute_payment_plan(None, 10000, "half_paid", 4000)
    assert (plan.status, plan.paid, plan.pending) == (PAYMENT_HALF_PAID, 4000, 6000)
    assert _issued(plan_voucher_diff(None, plan)) == [(VOUCHER_HALF, VOUCHER_CONFIRMED, 4000)]


def test_create_to_bill_defers_to_club_account():
    plan = compute_payment_plan(None, 10000, "TO_BILL", 2000)
    assert (plan.status, plan.paid, plan.pending) == (PAYMENT_TO_BILL, 2000, 0)
    assert plan.amount_to_balance == 8000
    assert plan.owed_diff == 0
    assert _issued(plan_voucher_diff(None, plan)) == [
        (VOUCHER_HALF, VOUCHER_CONFIRMED, 2000),
        (VOUCHER_TO_BILL, VOUCHER_CONFIRMED, 8000),
    ]


@pytest.mark.parametrize("status", ["HALF_PAID", "ADVANCE_PAYMENT"])
@pytest.mark.parametrize("paid", [0, 1000, 1500])
def test_half_paid_bound(status, paid):
    with pytest.raises(ConflictError):
        compute_payment_plan(None, 1000, status, paid)


def test_invalid_inputs():
    with pytest.raises(ValidationError):
        compute_payment_plan(None, 1000, "PARTLY")
    with pytest.raises(ValidationError):
        compute_payment_plan(None, -1)
    with pytest.raises(ValidationError):
        compute_payment_plan(None, 1000, "HALF_PAID", -5)
    with pytest.raises(ConflictError):
        compute_payment_plan(None, 1000, "TO_BILL", 1200)


# =============================================================================
# Update mode
# =============================================================================

def test_auto_downgrade_when_paid_total_rises():
    current = PaymentState(total=1000, paid=1000, pending=0, status=PAYMENT_PAID)
    plan = compute_payment_plan(current, 1500)
    assert (plan.status, plan.paid, plan.pending) == (PAYMENT_HALF_PAID, 1000, 500)
    assert plan.downgraded
    assert plan.paid_diff == 0 and plan.owed_diff == 500

    diff = plan_voucher_diff(current, plan)
    assert diff.retag_full_to_half
    assert not diff.cancel_confirmed_payments
    assert diff.issue == []


def test_resending_paid_status_still_downgrades():
    current = PaymentState(total=1000, paid=1000, pending=0, status=PAYMENT_PAID)
    plan = compute_payment_plan(current, 1500, "PAID")
    assert plan.status == PAYMENT_HALF_PAID
    assert plan.paid == 1000


def test_explicit_paid_amount_skips_downgrade():
    current = PaymentState(total=1000, paid=1000, pending=0, status=PAYMENT_PAID)
    plan = compute_payment_plan(current, 1500, "HALF_PAID", 1200)
    assert not plan.downgraded
    assert (plan.status, plan.paid, plan.pending) == (PAYMENT_HALF_PAID, 1200, 300)


def test_downgrade_with_nothing_paid_falls_to_unpaid():
    current = PaymentState(total=0, paid=0, pending=0, status=PAYMENT_PAID)
    plan = compute_payment_plan(current, 800)
    assert (plan.status, plan.paid, plan.pending) == (PAYMENT_UNPAID, 0, 800)


def test_paid_increase_issues_net_delta_only():
    current = PaymentState(total=1000, paid=500, pending=500, status=PAYMENT_HALF_PAID)
    plan = compute_payment_plan(current, 1000, "HALF_PAID", 800)
    diff = plan_voucher_diff(current, plan)
    assert _issued(diff) == [(VOUCHER_HALF, VOUCHER_CONFIRMED, 300)]
    assert not diff.cancel_confirmed_payments


def test_paid_decrease_from_paid_issues_correction_and_refund():
    current = PaymentState(total=1000, paid=1000, pending=0, status=PAYMENT_PAID)
    plan = compute_payment_plan(current, 1000, "HALF_PAID", 200)
    diff = plan_voucher_diff(current, plan)
    assert diff.cancel_confirmed_payments
    assert not diff.retag_full_to_half
    assert _issued(diff) == [
        (VOUCHER_HALF, VOUCHER_CONFIRMED, 200),
        (VOUCHER_REFUND, VOUCHER_PENDING, 800),
    ]
    assert diff.refund_amount == 800


def test_paid_decrease_from_half_paid_has_no_refund():
    current = PaymentState(total=1000, paid=500, pending=500, status=PAYMENT_HALF_PAID)
    plan = compute_payment_plan(current, 1000, "HALF_PAID", 200)
    diff = plan_voucher_diff(current, plan)
    assert diff.cancel_confirmed_payments
    assert _issued(diff) == [(VOUCHER_HALF, VOUCHER_CONFIRMED, 200)]
    assert diff.refund_amount == 0


def test_marking_unpaid_cancels_everything():
    current = PaymentState(total=1000, paid=1000, pending=0, status=PAYMENT_PAID)
    plan = compute_payment_plan(current, 1000, "UNPAID")
    diff = plan_voucher_diff(current, plan)
    assert diff.cancel_confirmed_payments
    assert _issued(diff) == [(VOUCHER_REFUND, VOUCHER_PENDING, 1000)]


def test_settling_to_bill_reverses_account_posting():
    current = PaymentState(total=1000, paid=0, pending=0, status=PAYMENT_TO_BILL)
    assert current.billed == 1000
    plan = compute_payment_plan(current, 1000, "PAID")
    assert plan.amount_to_balance == -1000
    assert plan.paid_diff == 1000 and plan.owed_diff == 0
    assert _issued(plan_voucher_diff(current, plan)) == [
        (VOUCHER_FULL, VOUCHER_CONFIRMED, 1000),
        (VOUCHER_ADJUSTMENT, VOUCHER_CONFIRMED, 1000),
    ]


def test_advance_payment_keeps_status_and_paid():
    current = PaymentState(total=1000, paid=300, pending=700, status=PAYMENT_ADVANCE)
    plan = compute_payment_plan(current, 1200)
    assert (plan.status, plan.paid, plan.pending) == (PAYMENT_ADVANCE, 300, 900)
    assert plan_voucher_diff(current, plan).is_empty


def test_plan_keeps_amount_invariant():
    current = PaymentState(total=1000, paid=400, pending=600, status=PAYMENT_HALF_PAID)
    for total, status, paid in [(1000, None, None), (2000, "PAID", None), (900, "HALF_PAID", 100),
                                (500, "UNPAID", None), (700, "TO_BILL", 0)]:
        plan = compute_payment_plan(current, total, status, paid)
        if plan.status == PAYMENT_TO_BILL:
            assert plan.pending == 0
        else:
            assert plan.paid + plan.pending == plan.total


# =============================================================================
# Online payments
# =============================================================================

def test_online_create_defers_payment_to_pending_voucher():
    plan = compute_payment_plan(None, 10000, "PAID", online=True)
    assert (plan.status, plan.paid, plan.pending) == (PAYMENT_UNPAID, 0, 10000)
    assert (plan.paid_diff, plan.owed_diff, plan.online_amount) == (0, 10000, 10000)
    assert _issued(plan_voucher_diff(None, plan)) == [(VOUCHER_ADVANCE, VOUCHER_PENDING, 10000)]


def test_online_amount_still_checked_against_status_bounds():
    with pytest.raises(ConflictError):
        compute_payment_plan(None, 10000, "HALF_PAID", 10000, online=True)
    with pytest.raises(ValidationError):
        compute_payment_plan(None, 10000, "TO_BILL", 2000, online=True)


def test_online_update_defers_only_the_increase():
    current = PaymentState(total=10000, paid=4000, pending=6000, status=PAYMENT_HALF_PAID)
    plan = compute_payment_plan(current, 10000, "PAID", online=True)
    assert (plan.status, plan.paid, plan.pending) == (PAYMENT_HALF_PAID, 4000, 6000)
    assert plan.paid_diff == 0 and plan.owed_diff == 0
    assert _issued(plan_voucher_diff(current, plan)) == [(VOUCHER_ADVANCE, VOUCHER_PENDING, 6000)]


def test_online_decrease_is_an_ordinary_correction():
    current = PaymentState(total=10000, paid=6000, pending=4000, status=PAYMENT_HALF_PAID)
    plan = compute_payment_plan(current, 10000, None, 5000, online=True)
    assert (plan.paid, plan.online_amount) == (5000, 0)
    assert _issued(plan_voucher_diff(current, plan)) == [(VOUCHER_HALF, VOUCHER_CONFIRMED, 5000)]
