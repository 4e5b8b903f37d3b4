from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class Member(db.Model):
    """
    Club member as seen by the booking core.

    LEDGER FIELDS:
    - booking_amount_paid / booking_amount_due: running totals across bookings
    - booking_balance: paid - due, moved by the same deltas
    - balance / dr_amount: club account, only touched by TO_BILL deferrals

    All ledger fields are changed with SQL-level increments
    (see services/ledger_service.py), never recomputed from bookings.
    """
    __tablename__ = "members"
    __table_args__ = (
        db.Index("ix_members_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    membership_no = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    contact_no = db.Column(db.String(64), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    booking_amount_paid = db.Column(db.Integer, nullable=False, default=0)
    booking_amount_due = db.Column(db.Integer, nullable=False, default=0)
    booking_balance = db.Column(db.Integer, nullable=False, default=0)
    balance = db.Column(db.Integer, nullable=False, default=0)
    dr_amount = db.Column(db.Integer, nullable=False, default=0)
    total_bookings = db.Column(db.Integer, nullable=False, default=0)
    last_booking_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "membership_no": self.membership_no,
            "name": self.name,
            "email": self.email,
            "contact_no": self.contact_no,
            "is_active": self.is_active,
            "booking_amount_paid": self.booking_amount_paid,
            "booking_amount_due": self.booking_amount_due,
            "booking_balance": self.booking_balance,
            "balance": self.balance,
            "dr_amount": self.dr_amount,
            "total_bookings": self.total_bookings,
            "last_booking_date": to_iso_date(self.last_booking_date),
            "created_at": to_utc_z(self.created_at),
        }
