# Overview: Per-facility-type booking rules consumed by the generic booking engine.

"""
Facility Policies

One BookingEngine drives all four facility types. Everything that differs
between rooms, halls, lawns and the photoshoot studio lives here:

- how a date range and slot expand into calendar cells
- whether two slots collide
- which pricing types exist and which rate column each one reads
- how many billable units a request is
- guest / capacity rules
- whether the facility tracks an occupancy flag
- the description printed on vouchers

Policies are stateless; get_policy() returns the shared instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from flask import current_app

from ..time_utils import (
    day_count,
    format_club_date,
    format_time_slot,
    iter_days,
    normalize_date,
    parse_time_slot,
)
from ..validation import ValidationError


FACILITY_ROOM = "ROOM"
FACILITY_HALL = "HALL"
FACILITY_LAWN = "LAWN"
FACILITY_PHOTOSHOOT = "PHOTOSHOOT"

VALID_FACILITY_TYPES = [FACILITY_ROOM, FACILITY_HALL, FACILITY_LAWN, FACILITY_PHOTOSHOOT]

# Rooms have exactly one slot per night
SLOT_FULL_DAY = "FULL_DAY"

NAMED_SLOTS = ["MORNING", "EVENING", "NIGHT"]

PHOTOSHOOT_SLOT_HOURS = 2

PRICING_MEMBER = "member"
PRICING_GUEST = "guest"
PRICING_FORCES = "forces"
PRICING_FORCES_SELF = "forces-self"
PRICING_FORCES_GUEST = "forces-guest"
PRICING_CORPORATE = "corporate"

# Pricing types that put a non-member in the unit
GUEST_PRICING_TYPES = {PRICING_GUEST, PRICING_FORCES_GUEST}


@dataclass(frozen=True)
class Cell:
    """One calendar cell a booking (or blocker) occupies. slot None = every slot."""
    day: date
    slot: Optional[str]


@dataclass
class CapacityRequest:
    number_of_adults: int = 0
    number_of_children: int = 0
    number_of_guests: int = 0


class FacilityPolicy:
    facility_type: str = ""
    label: str = ""
    inclusive_end: bool = True
    tracks_occupancy: bool = True
    pricing_types: tuple = (PRICING_MEMBER, PRICING_GUEST)
    uses_booking_details: bool = True

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def normalize_slot(self, value) -> Optional[str]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return str(value).strip().upper()

    def default_slot(self) -> Optional[str]:
        return None

    def slots_overlap(self, a: Optional[str], b: Optional[str]) -> bool:
        if a is None or b is None:
            return True
        return a == b

    # ------------------------------------------------------------------
    # Ranges and cells
    # ------------------------------------------------------------------

    def covers_day(self, start: Optional[date], end: Optional[date], day: date) -> bool:
        """Whether a stored [start, end] range covers day under this type's convention."""
        if start is None or end is None:
            return True
        if self.inclusive_end or end <= start:
            return start <= day <= max(start, end)
        return start <= day < end

    def validate_dates(self, start: date, end: date, *, today: Optional[date]) -> None:
        if end < start:
            raise ValidationError("End date cannot be before start date")
        if today is not None and start < today:
            raise ValidationError("Booking date cannot be in the past")

    def request_cells(
        self,
        start: date,
        end: date,
        event_time,
        booking_details: Optional[list[dict]] = None,
    ) -> list[Cell]:
        """Ordered cells a request would occupy (by day, then slot)."""
        if self.uses_booking_details and booking_details:
            cells = [
                Cell(normalize_date(d.get("date")), self._detail_slot(d.get("time_slot")))
                for d in booking_details
            ]
        else:
            slot = self.normalize_slot(event_time) or self.default_slot()
            cells = [Cell(day, slot) for day in iter_days(start, end, inclusive=self.inclusive_end)]
        cells = list(dict.fromkeys(cells))
        cells.sort(key=lambda c: (c.day, c.slot or ""))
        return cells

    def booking_cells(self, booking) -> list[Cell]:
        """
        Cells an existing booking occupies.

        Granular booking_details take precedence over the legacy single range
        and single event_time.
        """
        return self.request_cells(
            booking.start_date,
            booking.end_date,
            booking.event_time,
            booking.booking_details,
        )

    def _detail_slot(self, value) -> Optional[str]:
        return self.normalize_slot(value) or self.default_slot()

    def normalize_booking_details(self, details) -> Optional[list[dict]]:
        """Validate and canonicalize a booking_details payload (None when absent)."""
        if not self.uses_booking_details or not details:
            return None
        if not isinstance(details, list):
            raise ValidationError("booking_details must be a list")
        rows = []
        for raw in details:
            if not isinstance(raw, dict):
                raise ValidationError("booking_details entries must be objects")
            day = normalize_date(raw.get("date"))
            slot = self._detail_slot(raw.get("time_slot"))
            self.validate_slot(slot)
            rows.append({
                "date": day.isoformat(),
                "time_slot": slot,
                "event_type": raw.get("event_type"),
            })
        rows.sort(key=lambda r: (r["date"], r["time_slot"] or ""))
        return rows

    def validate_slot(self, slot: Optional[str]) -> None:
        pass

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def validate_pricing_type(self, pricing_type: str) -> str:
        value = (pricing_type or PRICING_MEMBER).strip().lower()
        if value not in self.pricing_types:
            raise ValidationError(
                f"Invalid pricing type for {self.facility_type}: {pricing_type}. "
                f"Must be one of {list(self.pricing_types)}"
            )
        return value

    def rate_for(self, facility, pricing_type: str) -> int:
        if pricing_type == PRICING_GUEST:
            return facility.rate_guest or 0
        return facility.rate_member or 0

    def unit_count(self, start: date, end: date, cells: list[Cell]) -> int:
        """Billable units per facility unit for a request."""
        return len(cells)

    # ------------------------------------------------------------------
    # Guests and capacity
    # ------------------------------------------------------------------

    def validate_capacity(self, request: CapacityRequest, facilities: list) -> None:
        guests = request.number_of_guests or 0
        if guests < 0:
            raise ValidationError("number_of_guests must be >= 0")
        for facility in facilities:
            if facility.min_guests and guests and guests < facility.min_guests:
                raise ValidationError(
                    f"Guests ({guests}) below minimum {facility.min_guests} for {facility.name}"
                )
            if facility.capacity is not None and guests > facility.capacity:
                raise ValidationError(
                    f"Guests ({guests}) exceeds capacity {facility.capacity} for {facility.name}"
                )

    def validate_unit_count(self, unit_ids: list[int]) -> None:
        if not unit_ids:
            raise ValidationError(f"At least one {self.label.lower()} is required")

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def voucher_description(self, booking, unit_names: list[str]) -> str:
        names = ", ".join(unit_names)
        start = format_club_date(booking.start_date)
        end = format_club_date(booking.end_date)
        span = start if start == end else f"{start} → {end}"
        text = f"{self.label}: {names} | {span}"
        if booking.event_time:
            text += f" ({booking.event_time})"
        if booking.number_of_guests:
            text += f" | {booking.number_of_guests} guests"
        return text


class RoomPolicy(FacilityPolicy):
    """
    Rooms: nightly half-open ranges [check_in, check_out), one slot per night,
    priced per room per night.
    """
    facility_type = FACILITY_ROOM
    label = "Rooms"
    inclusive_end = False
    uses_booking_details = False
    pricing_types = (
        PRICING_MEMBER,
        PRICING_GUEST,
        PRICING_FORCES,
        PRICING_FORCES_SELF,
        PRICING_FORCES_GUEST,
    )

    def normalize_slot(self, value) -> Optional[str]:
        return SLOT_FULL_DAY

    def default_slot(self) -> Optional[str]:
        return SLOT_FULL_DAY

    def validate_dates(self, start: date, end: date, *, today: Optional[date]) -> None:
        if end <= start:
            raise ValidationError("Check-out must be after check-in")
        if today is not None and start < today:
            raise ValidationError("Check-in date cannot be in the past")

    def rate_for(self, facility, pricing_type: str) -> int:
        if pricing_type in (PRICING_FORCES, PRICING_FORCES_SELF, PRICING_FORCES_GUEST):
            return facility.rate_forces or 0
        return super().rate_for(facility, pricing_type)

    def unit_count(self, start: date, end: date, cells: list[Cell]) -> int:
        return day_count(start, end, inclusive=False)

    def validate_capacity(self, request: CapacityRequest, facilities: list) -> None:
        max_occupants = current_app.config.get("ROOM_MAX_OCCUPANTS", 6)
        if request.number_of_adults < 1:
            raise ValidationError("At least one adult is required")
        if request.number_of_children < 0:
            raise ValidationError("number_of_children must be >= 0")
        if request.number_of_adults + request.number_of_children > max_occupants:
            raise ValidationError(f"Maximum booking capacity exceeded ({max_occupants} guests)")

    def voucher_description(self, booking, unit_names: list[str]) -> str:
        return (
            f"Rooms: {', '.join(unit_names)} | "
            f"{format_club_date(booking.start_date)} → {format_club_date(booking.end_date)} | "
            f"Guests: {booking.number_of_adults}A/{booking.number_of_children}C"
        )


class HallPolicy(FacilityPolicy):
    """Halls: inclusive day ranges, named slots, corporate pricing."""
    facility_type = FACILITY_HALL
    label = "Hall"
    pricing_types = (PRICING_MEMBER, PRICING_GUEST, PRICING_CORPORATE)

    def validate_slot(self, slot: Optional[str]) -> None:
        if slot is None:
            raise ValidationError("event_time is required")
        if slot not in NAMED_SLOTS:
            raise ValidationError(f"Invalid event time: {slot}. Must be one of {NAMED_SLOTS}")

    def rate_for(self, facility, pricing_type: str) -> int:
        if pricing_type == PRICING_CORPORATE:
            if facility.rate_corporate is None:
                raise ValidationError(f"{facility.name} has no corporate rate")
            return facility.rate_corporate
        return super().rate_for(facility, pricing_type)


class LawnPolicy(HallPolicy):
    """Lawns: like halls, defaulting to the NIGHT slot, no corporate rate."""
    facility_type = FACILITY_LAWN
    label = "Lawn"
    pricing_types = (PRICING_MEMBER, PRICING_GUEST)

    def default_slot(self) -> Optional[str]:
        return "NIGHT"


class PhotoshootPolicy(FacilityPolicy):
    """
    Photoshoot studio: clock-time slots ("HH:MM"), each a fixed 2-hour block.

    Two slots collide when their windows overlap. No occupancy flag.
    """
    facility_type = FACILITY_PHOTOSHOOT
    label = "Photoshoot"
    tracks_occupancy = False

    def normalize_slot(self, value) -> Optional[str]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return format_time_slot(parse_time_slot(value))

    def slots_overlap(self, a: Optional[str], b: Optional[str]) -> bool:
        if a is None or b is None:
            return True
        start_a = self._minutes(a)
        start_b = self._minutes(b)
        window = PHOTOSHOOT_SLOT_HOURS * 60
        return start_a < start_b + window and start_b < start_a + window

    @staticmethod
    def _minutes(slot: str) -> int:
        t = parse_time_slot(slot)
        return t.hour * 60 + t.minute

    def validate_slot(self, slot: Optional[str]) -> None:
        if slot is None:
            raise ValidationError("Photoshoot time slot is required")
        first = current_app.config.get("PHOTOSHOOT_FIRST_SLOT_HOUR", 9)
        last = current_app.config.get("PHOTOSHOOT_LAST_SLOT_HOUR", 18)
        minutes = self._minutes(slot)
        if minutes < first * 60 or minutes > last * 60:
            raise ValidationError(
                f"Photoshoot slots must start between {first:02d}:00 and {last:02d}:00"
            )

    def voucher_description(self, booking, unit_names: list[str]) -> str:
        slots = [d["time_slot"] for d in (booking.booking_details or [])] or [booking.event_time]
        windows = ", ".join(f"{s}-{slot_window_end(s)}" for s in slots if s)
        text = f"Photoshoot | {format_club_date(booking.start_date)} {windows}"
        if booking.special_requests:
            text += f" | Requests: {booking.special_requests}"
        return text


_POLICIES = {
    FACILITY_ROOM: RoomPolicy(),
    FACILITY_HALL: HallPolicy(),
    FACILITY_LAWN: LawnPolicy(),
    FACILITY_PHOTOSHOOT: PhotoshootPolicy(),
}


def normalize_facility_type(value) -> str:
    facility_type = str(value or "").strip().upper()
    if facility_type not in _POLICIES:
        raise ValidationError(
            f"Invalid facility type: {value}. Must be one of {VALID_FACILITY_TYPES}"
        )
    return facility_type


def get_policy(facility_type) -> FacilityPolicy:
    return _POLICIES[normalize_facility_type(facility_type)]


def slot_window_end(slot: str) -> str:
    """End of a photoshoot window, e.g. '10:00' -> '12:00'."""
    t = parse_time_slot(slot)
    end = datetime.combine(date.min, t) + timedelta(hours=PHOTOSHOOT_SLOT_HOURS)
    return format_time_slot(end.time())
