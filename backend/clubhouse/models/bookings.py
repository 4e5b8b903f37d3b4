from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class Booking(db.Model):
    """
    A booking of one or more units of a single facility type.

    DATES:
    - ROOM: start_date = check-in, end_date = check-out (nights are [start, end))
    - HALL / LAWN: first and last day, both inclusive
    - PHOTOSHOOT: the shoot day in both columns

    AMOUNTS (whole currency units):
    - paid_amount + pending_amount == total_price
    - except TO_BILL: pending_amount == 0 and the deferred amount sits on the
      member's club account

    LIFECYCLE: CREATED -> UPDATED* -> CANCELLED (soft delete, terminal)
    """
    __tablename__ = "bookings"
    __table_args__ = (
        db.Index("ix_bookings_type_start", "facility_type", "start_date"),
        db.Index("ix_bookings_member_created", "member_id", "created_at"),
        db.Index("ix_bookings_type_cancelled", "facility_type", "is_cancelled"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    facility_type = db.Column(db.String(16), nullable=False, index=True)
    member_id = db.Column(db.Integer, db.ForeignKey("members.id"), nullable=False, index=True)

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    # Legacy single slot; booking_details wins when present
    event_time = db.Column(db.String(16), nullable=True)
    event_type = db.Column(db.String(64), nullable=True)
    booking_details = db.Column(db.JSON, nullable=True)  # [{"date", "time_slot", "event_type"}]

    number_of_adults = db.Column(db.Integer, nullable=False, default=0)
    number_of_children = db.Column(db.Integer, nullable=False, default=0)
    number_of_guests = db.Column(db.Integer, nullable=False, default=0)

    pricing_type = db.Column(db.String(16), nullable=False, default="member")
    total_price = db.Column(db.Integer, nullable=False, default=0)
    paid_amount = db.Column(db.Integer, nullable=False, default=0)
    pending_amount = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="UNPAID", index=True)
    paid_by = db.Column(db.String(8), nullable=False, default="MEMBER")  # MEMBER, GUEST

    guest_name = db.Column(db.String(255), nullable=True)
    guest_contact = db.Column(db.String(64), nullable=True)
    guest_cnic = db.Column(db.String(32), nullable=True)
    special_requests = db.Column(db.Text, nullable=True)
    remarks = db.Column(db.Text, nullable=True)

    refund_amount = db.Column(db.Integer, nullable=False, default=0)
    refund_returned = db.Column(db.Boolean, nullable=False, default=False)

    is_cancelled = db.Column(db.Boolean, nullable=False, default=False)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by = db.Column(db.String(64), nullable=True)
    updated_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    member = db.relationship("Member", backref=db.backref("bookings", lazy=True))
    units = db.relationship(
        "BookingUnit",
        backref="booking",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="BookingUnit.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def unit_ids(self) -> list[int]:
        return [u.facility_id for u in self.units]

    def to_dict(self, *, include_units: bool = True) -> dict:
        data = {
            "id": self.id,
            "facility_type": self.facility_type,
            "member_id": self.member_id,
            "membership_no": self.member.membership_no if self.member else None,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "event_time": self.event_time,
            "event_type": self.event_type,
            "booking_details": self.booking_details or [],
            "number_of_adults": self.number_of_adults,
            "number_of_children": self.number_of_children,
            "number_of_guests": self.number_of_guests,
            "pricing_type": self.pricing_type,
            "total_price": self.total_price,
            "paid_amount": self.paid_amount,
            "pending_amount": self.pending_amount,
            "payment_status": self.payment_status,
            "paid_by": self.paid_by,
            "guest_name": self.guest_name,
            "guest_contact": self.guest_contact,
            "guest_cnic": self.guest_cnic,
            "special_requests": self.special_requests,
            "remarks": self.remarks,
            "refund_amount": self.refund_amount,
            "refund_returned": self.refund_returned,
            "is_cancelled": self.is_cancelled,
            "cancelled_at": to_utc_z(self.cancelled_at),
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_units:
            data["units"] = [u.to_dict() for u in self.units]
        return data


class BookingUnit(db.Model):
    """Unit booked under a booking, with the price it carried at booking time."""
    __tablename__ = "booking_units"
    __table_args__ = (
        db.UniqueConstraint("booking_id", "facility_id", name="uq_booking_units_booking_facility"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False, index=True)
    price_at_booking = db.Column(db.Integer, nullable=False, default=0)

    facility = db.relationship("Facility")

    def to_dict(self) -> dict:
        return {
            "facility_id": self.facility_id,
            "name": self.facility.name if self.facility else None,
            "price_at_booking": self.price_at_booking,
        }


class BookingSlot(db.Model):
    """
    One occupied calendar cell (unit, day, slot) of an active booking.

    Rows are deleted when the booking is cancelled or moved, so the unique
    constraint only ever sees active bookings. It rejects the second of two
    requests that both passed the availability check.
    """
    __tablename__ = "booking_slots"
    __table_args__ = (
        db.UniqueConstraint("facility_id", "slot_date", "time_slot", name="uq_booking_slots_facility_date_slot"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False, index=True)
    slot_date = db.Column(db.Date, nullable=False)
    time_slot = db.Column(db.String(16), nullable=False)


class CancellationRequest(db.Model):
    """
    Member-initiated request to cancel a booking, resolved by staff.

    LIFECYCLE: PENDING -> APPROVED (booking cancelled) | REJECTED
    """
    __tablename__ = "cancellation_requests"
    __table_args__ = (
        db.Index("ix_cancellation_requests_booking_status", "booking_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)
    requested_by = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    admin_remarks = db.Column(db.Text, nullable=True)
    resolved_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    booking = db.relationship("Booking", backref=db.backref("cancellation_requests", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "facility_type": self.booking.facility_type if self.booking else None,
            "reason": self.reason,
            "requested_by": self.requested_by,
            "status": self.status,
            "admin_remarks": self.admin_remarks,
            "resolved_by": self.resolved_by,
            "created_at": to_utc_z(self.created_at),
            "resolved_at": to_utc_z(self.resolved_at),
        }
