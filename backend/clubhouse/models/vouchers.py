from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class PaymentVoucher(db.Model):
    """
    Payment voucher trail for a booking.

    Vouchers are append-only. The only in-place changes are:
    - CONFIRMED -> CANCELLED when the paid amount decreases
    - FULL_PAYMENT -> HALF_PAYMENT retagging when PAID is downgraded
    - PENDING -> CONFIRMED / CANCELLED through the voucher status operation
    """
    __tablename__ = "payment_vouchers"
    __table_args__ = (
        db.Index("ix_payment_vouchers_booking", "booking_type", "booking_id"),
        db.Index("ix_payment_vouchers_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    voucher_no = db.Column(db.String(32), nullable=False, unique=True)
    consumer_number = db.Column(db.String(32), nullable=False, unique=True)

    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False)
    booking_type = db.Column(db.String(16), nullable=False)
    membership_no = db.Column(db.String(32), nullable=False, index=True)

    amount = db.Column(db.Integer, nullable=False)
    payment_mode = db.Column(db.String(8), nullable=False, default="CASH")  # CASH, CARD, CHECK, ONLINE
    voucher_type = db.Column(db.String(16), nullable=False)  # FULL_PAYMENT, HALF_PAYMENT, ADVANCE_PAYMENT, REFUND, ADJUSTMENT, TO_BILL
    status = db.Column(db.String(16), nullable=False, default="PENDING")  # PENDING, CONFIRMED, CANCELLED

    issued_by = db.Column(db.String(64), nullable=True)
    issued_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    remarks = db.Column(db.Text, nullable=True)

    card_number = db.Column(db.String(32), nullable=True)
    check_number = db.Column(db.String(32), nullable=True)
    bank_name = db.Column(db.String(128), nullable=True)

    booking = db.relationship("Booking", backref=db.backref("vouchers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "voucher_no": self.voucher_no,
            "consumer_number": self.consumer_number,
            "booking_id": self.booking_id,
            "booking_type": self.booking_type,
            "membership_no": self.membership_no,
            "amount": self.amount,
            "payment_mode": self.payment_mode,
            "voucher_type": self.voucher_type,
            "status": self.status,
            "issued_by": self.issued_by,
            "issued_at": to_utc_z(self.issued_at),
            "paid_at": to_utc_z(self.paid_at),
            "remarks": self.remarks,
            "card_number": self.card_number,
            "check_number": self.check_number,
            "bank_name": self.bank_name,
        }


class DocumentSequence(db.Model):
    """
    Atomic counters for human-readable numbers (voucher numbers, consumer numbers).

    next_number is the number the next allocation will hand out.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_document_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)


class BookingLedgerEvent(db.Model):
    """
    Append-only audit row for booking mutations.

    Written in the same transaction as the mutation it records. Deltas are the
    amounts applied to the member's ledger by that mutation.
    """
    __tablename__ = "booking_ledger_events"
    __table_args__ = (
        db.Index("ix_booking_ledger_events_booking", "booking_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(32), nullable=False, index=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False)
    member_id = db.Column(db.Integer, db.ForeignKey("members.id"), nullable=True, index=True)
    voucher_id = db.Column(db.Integer, db.ForeignKey("payment_vouchers.id"), nullable=True)

    paid_delta = db.Column(db.Integer, nullable=False, default=0)
    owed_delta = db.Column(db.Integer, nullable=False, default=0)
    account_delta = db.Column(db.Integer, nullable=False, default=0)

    actor = db.Column(db.String(64), nullable=True)
    note = db.Column(db.Text, nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "booking_id": self.booking_id,
            "member_id": self.member_id,
            "voucher_id": self.voucher_id,
            "paid_delta": self.paid_delta,
            "owed_delta": self.owed_delta,
            "account_delta": self.account_delta,
            "actor": self.actor,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
