from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class Facility(db.Model):
    """
    One bookable unit: a room, a hall, a lawn or the photoshoot studio.

    is_booked is the occupancy flag shown to staff. It is derived from the
    active bookings covering today and is resynced by the maintenance job.
    """
    __tablename__ = "facilities"
    __table_args__ = (
        db.UniqueConstraint("facility_type", "name", name="uq_facilities_type_name"),
        db.Index("ix_facilities_type_active", "facility_type", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    facility_type = db.Column(db.String(16), nullable=False, index=True)  # ROOM, HALL, LAWN, PHOTOSHOOT

    # Room number or hall / lawn name
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_booked = db.Column(db.Boolean, nullable=False, default=False)

    # Guest limits (halls / lawns); null means no limit
    min_guests = db.Column(db.Integer, nullable=True)
    capacity = db.Column(db.Integer, nullable=True)

    rate_member = db.Column(db.Integer, nullable=False, default=0)
    rate_guest = db.Column(db.Integer, nullable=False, default=0)
    rate_forces = db.Column(db.Integer, nullable=True)
    rate_corporate = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "facility_type": self.facility_type,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "is_booked": self.is_booked,
            "min_guests": self.min_guests,
            "capacity": self.capacity,
            "rate_member": self.rate_member,
            "rate_guest": self.rate_guest,
            "rate_forces": self.rate_forces,
            "rate_corporate": self.rate_corporate,
            "created_at": to_utc_z(self.created_at),
        }


class FacilityHold(db.Model):
    """
    Soft lock a member places on a unit while completing a booking.

    Holds are advisory to other members only and stop blocking once expired.
    from_date / to_date are null on legacy holds, which block the whole unit
    while active. time_slot null means every slot.
    """
    __tablename__ = "facility_holds"
    __table_args__ = (
        db.Index("ix_facility_holds_facility_expiry", "facility_id", "hold_expiry"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False, index=True)
    hold_by = db.Column(db.String(32), nullable=False, index=True)  # membership number
    from_date = db.Column(db.Date, nullable=True)
    to_date = db.Column(db.Date, nullable=True)
    time_slot = db.Column(db.String(16), nullable=True)
    on_hold = db.Column(db.Boolean, nullable=False, default=True)
    hold_expiry = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    facility = db.relationship("Facility", backref=db.backref("holds", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "facility_id": self.facility_id,
            "hold_by": self.hold_by,
            "from_date": to_iso_date(self.from_date),
            "to_date": to_iso_date(self.to_date),
            "time_slot": self.time_slot,
            "on_hold": self.on_hold,
            "hold_expiry": to_utc_z(self.hold_expiry),
        }


class Reservation(db.Model):
    """Administrative block placed by staff on a unit."""
    __tablename__ = "reservations"
    __table_args__ = (
        db.Index("ix_reservations_facility_range", "facility_id", "reserved_from", "reserved_to"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False, index=True)
    reserved_from = db.Column(db.Date, nullable=False)
    reserved_to = db.Column(db.Date, nullable=False)
    time_slot = db.Column(db.String(16), nullable=True)
    reserved_by = db.Column(db.String(64), nullable=True)
    remarks = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    facility = db.relationship("Facility", backref=db.backref("reservations", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "facility_id": self.facility_id,
            "reserved_from": to_iso_date(self.reserved_from),
            "reserved_to": to_iso_date(self.reserved_to),
            "time_slot": self.time_slot,
            "reserved_by": self.reserved_by,
            "remarks": self.remarks,
            "created_at": to_utc_z(self.created_at),
        }


class OutOfOrderPeriod(db.Model):
    """
    Maintenance window. Always wins in conflict checks.

    Periods whose end_date is already past are immutable.
    """
    __tablename__ = "out_of_order_periods"
    __table_args__ = (
        db.Index("ix_out_of_order_facility_range", "facility_id", "start_date", "end_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False, index=True)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    reason = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    facility = db.relationship("Facility", backref=db.backref("out_of_order_periods", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "facility_id": self.facility_id,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "reason": self.reason,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
