# Overview: Booking lifecycle (create / update / cancel) for every facility type.

"""
Booking Lifecycle Orchestrator

WHY: Rooms, halls, lawns and the photoshoot studio share one lifecycle. A
single BookingEngine drives it; the per-type differences come from the
FacilityPolicy it is built with.

LIFECYCLE: CREATED -> UPDATED* -> CANCELLED (terminal, no resurrection)

Every mutation follows the same order:
1. parse and validate the payload (dates, slots, guests, pricing type)
2. resolve member and units
3. availability for every unit and every cell
4. price, then the payment plan and voucher diff
5. one transaction: booking, unit rows, slot rows, occupancy, member ledger,
   vouchers, hold / reservation cleanup, ledger event

Validation and conflict errors are raised before any row is written. A
failure after that rolls the whole transaction back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Booking, BookingSlot, BookingUnit, Facility, FacilityHold, Member, Reservation
from ..time_utils import club_today, normalize_date, utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    clean_str,
    coerce_amount,
    coerce_id_list,
    coerce_int,
)
from .availability_service import CONFLICT_BOOKED, AvailabilityResult, check_availability, ensure_available
from .concurrency import lock_for_update, run_in_transaction
from .facility_policies import (
    FACILITY_PHOTOSHOOT,
    FACILITY_ROOM,
    GUEST_PRICING_TYPES,
    CapacityRequest,
    Cell,
    FacilityPolicy,
    get_policy,
    normalize_facility_type,
)
from .ledger_service import (
    EVENT_BOOKING_CANCELLED,
    EVENT_BOOKING_CREATED,
    EVENT_BOOKING_UPDATED,
    append_booking_event,
    apply_member_delta,
)
from .maintenance_service import refresh_occupancy
from .pricing_service import quote, required_advance
from .reconciliation_service import (
    VOUCHER_ADVANCE,
    VOUCHER_PENDING,
    PaymentState,
    compute_payment_plan,
    plan_voucher_diff,
)
from .voucher_service import PAYMENT_MODE_ONLINE, apply_voucher_diff, issue_voucher, normalize_payment_mode


PAID_BY_MEMBER = "MEMBER"
PAID_BY_GUEST = "GUEST"

TAG_ADVANCE = "Advance Payment"

_PAYMENT_DETAIL_FIELDS = ("card_number", "check_number", "bank_name")


@dataclass
class BookingRequest:
    """A validated create / update payload, with update fallbacks applied."""
    membership_no: str
    unit_ids: list[int]
    start_date: date
    end_date: date
    event_time: Optional[str]
    booking_details: Optional[list[dict]]
    cells: list[Cell]
    pricing_type: str
    capacity: CapacityRequest
    paid_by: str
    event_type: Optional[str] = None
    guest_name: Optional[str] = None
    guest_contact: Optional[str] = None
    guest_cnic: Optional[str] = None
    special_requests: Optional[str] = None
    remarks: Optional[str] = None
    total_override: Optional[int] = None
    payment_status: Optional[str] = None
    paid_amount: Optional[int] = None
    payment_mode: str = "CASH"
    payment_details: dict = field(default_factory=dict)
    reservation_id: Optional[int] = None
    advance_voucher_amount: Optional[int] = None


def _pick(payload: dict, key: str, existing, attr: str | None = None, default=None):
    if key in payload:
        return payload[key]
    if existing is not None:
        return getattr(existing, attr or key)
    return default


def _first_present(payload: dict, *keys):
    for key in keys:
        if payload.get(key) not in (None, ""):
            return payload[key]
    return None


def parse_booking_request(policy: FacilityPolicy, payload: dict, existing: Booking | None = None) -> BookingRequest:
    """
    Validate a payload into a BookingRequest.

    On update (existing given) every field the payload omits keeps the
    booking's stored value.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    membership_no = clean_str(payload.get("membership_no"), max_length=32, field="membership_no")
    if membership_no is None and existing is not None:
        membership_no = existing.member.membership_no
    if not membership_no:
        raise ValidationError("membership_no is required")

    if payload.get("unit_ids") not in (None, "", []) or payload.get("unit_id") not in (None, ""):
        unit_ids = coerce_id_list(payload, "unit_ids", "unit_id")
    elif existing is not None:
        unit_ids = existing.unit_ids
    else:
        unit_ids = []
    policy.validate_unit_count(unit_ids)

    start_keys = ("check_in", "booking_date") if policy.facility_type == FACILITY_ROOM else ("booking_date",)
    end_keys = ("check_out", "end_date") if policy.facility_type == FACILITY_ROOM else ("end_date",)
    raw_start = _first_present(payload, *start_keys)
    raw_end = _first_present(payload, *end_keys)

    # New dates without new details switch the booking back to a plain range
    if "booking_details" in payload:
        details = policy.normalize_booking_details(payload.get("booking_details"))
    elif existing is not None and raw_start is None and raw_end is None:
        details = existing.booking_details or None
    else:
        details = None

    if details:
        days = [date.fromisoformat(d["date"]) for d in details]
        start, end = min(days), max(days)
    else:
        if raw_start is None and existing is not None:
            start = existing.start_date
        elif raw_start is None:
            raise ValidationError(f"{start_keys[0]} is required")
        else:
            start = normalize_date(raw_start)

        if policy.facility_type == FACILITY_PHOTOSHOOT:
            end = start
        elif raw_end is not None:
            end = normalize_date(raw_end)
        elif existing is not None and (raw_start is None or policy.facility_type == FACILITY_ROOM):
            end = existing.end_date
        elif policy.facility_type == FACILITY_ROOM:
            raise ValidationError(f"{end_keys[0]} is required")
        else:
            end = start

    if details:
        event_time = None
    elif policy.facility_type == FACILITY_ROOM:
        event_time = None
    else:
        event_time = policy.normalize_slot(_pick(payload, "event_time", existing)) or policy.default_slot()

    cells = policy.request_cells(start, end, event_time, details)
    if policy.facility_type != FACILITY_ROOM:
        for cell in cells:
            policy.validate_slot(cell.slot)

    is_room = policy.facility_type == FACILITY_ROOM
    capacity = CapacityRequest(
        number_of_adults=coerce_int(
            _pick(payload, "number_of_adults", existing), "number_of_adults", default=1 if is_room else 0
        ),
        number_of_children=coerce_int(_pick(payload, "number_of_children", existing), "number_of_children", default=0),
        number_of_guests=coerce_int(_pick(payload, "number_of_guests", existing), "number_of_guests", default=0),
    )

    pricing_type = policy.validate_pricing_type(_pick(payload, "pricing_type", existing, default="member"))
    guest_name = clean_str(_pick(payload, "guest_name", existing), max_length=255, field="guest_name")
    guest_contact = clean_str(_pick(payload, "guest_contact", existing), max_length=64, field="guest_contact")
    if pricing_type in GUEST_PRICING_TYPES and not (guest_name and guest_contact):
        raise ValidationError("Guest name and contact are required for guest bookings")

    default_paid_by = PAID_BY_GUEST if pricing_type in GUEST_PRICING_TYPES else PAID_BY_MEMBER
    paid_by = str(_pick(payload, "paid_by", existing, default=default_paid_by) or default_paid_by).strip().upper()
    if paid_by not in (PAID_BY_MEMBER, PAID_BY_GUEST):
        raise ValidationError("paid_by must be MEMBER or GUEST")

    return BookingRequest(
        membership_no=membership_no,
        unit_ids=unit_ids,
        start_date=start,
        end_date=end,
        event_time=event_time,
        booking_details=details,
        cells=cells,
        pricing_type=pricing_type,
        capacity=capacity,
        paid_by=paid_by,
        event_type=clean_str(_pick(payload, "event_type", existing), max_length=64, field="event_type"),
        guest_name=guest_name,
        guest_contact=guest_contact,
        guest_cnic=clean_str(_pick(payload, "guest_cnic", existing), max_length=32, field="guest_cnic"),
        special_requests=clean_str(_pick(payload, "special_requests", existing)),
        remarks=clean_str(_pick(payload, "remarks", existing)),
        total_override=coerce_amount(payload.get("total_price"), "total_price"),
        payment_status=payload.get("payment_status"),
        paid_amount=coerce_amount(payload.get("paid_amount"), "paid_amount"),
        payment_mode=normalize_payment_mode(payload.get("payment_mode")),
        payment_details={k: clean_str(payload.get(k), max_length=128, field=k) for k in _PAYMENT_DETAIL_FIELDS},
        reservation_id=coerce_int(payload.get("reservation_id"), "reservation_id"),
        advance_voucher_amount=coerce_amount(payload.get("advance_voucher_amount"), "advance_voucher_amount"),
    )


class BookingEngine:
    """Create / update / cancel bookings of one facility type."""

    def __init__(self, facility_type: str):
        self.policy = get_policy(facility_type)
        self.facility_type = self.policy.facility_type

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _resolve_member(self, membership_no: str) -> Member:
        member = db.session.query(Member).filter_by(membership_no=membership_no).first()
        if not member:
            raise NotFoundError(f"Member {membership_no} not found")
        if not member.is_active:
            raise ConflictError(f"Member {membership_no} is not active")
        return member

    def _resolve_units(self, unit_ids: list[int]) -> list[Facility]:
        rows = (
            db.session.query(Facility)
            .filter(Facility.id.in_(unit_ids), Facility.facility_type == self.facility_type)
            .all()
        )
        by_id = {f.id: f for f in rows}
        missing = [uid for uid in unit_ids if uid not in by_id]
        if missing:
            raise NotFoundError(f"{self.policy.label} not found: {missing}")
        inactive = [by_id[uid].name for uid in unit_ids if not by_id[uid].is_active]
        if inactive:
            raise ConflictError(f"{self.policy.label} not available for booking: {', '.join(inactive)}")
        return [by_id[uid] for uid in unit_ids]

    def _resolve_reservation(self, reservation_id: int | None, unit_ids: list[int]) -> Reservation | None:
        if reservation_id is None:
            return None
        reservation = db.session.get(Reservation, reservation_id)
        if not reservation or reservation.facility_id not in unit_ids:
            raise NotFoundError(f"Reservation {reservation_id} not found for the booked units")
        return reservation

    def _get_locked(self, booking_id: int) -> Booking:
        booking = lock_for_update(
            db.session.query(Booking).filter_by(id=booking_id, facility_type=self.facility_type)
        ).first()
        if not booking:
            raise NotFoundError(f"{self.facility_type} booking {booking_id} not found")
        return booking

    # ------------------------------------------------------------------
    # Writes shared by create and update
    # ------------------------------------------------------------------

    def _write_units(self, booking: Booking, unit_ids: list[int], unit_prices: dict[int, int] | None) -> None:
        """Replace unit rows in place so kept units never collide with themselves."""
        current = {u.facility_id: u for u in booking.units}
        for facility_id, row in current.items():
            if facility_id not in unit_ids:
                booking.units.remove(row)
        for facility_id in unit_ids:
            price = unit_prices.get(facility_id) if unit_prices is not None else None
            if facility_id in current:
                if price is not None:
                    current[facility_id].price_at_booking = price
            else:
                booking.units.append(BookingUnit(facility_id=facility_id, price_at_booking=price or 0))

    def _write_slots(self, booking: Booking, unit_ids: list[int], cells: list[Cell]) -> None:
        db.session.query(BookingSlot).filter_by(booking_id=booking.id).delete(synchronize_session=False)
        db.session.flush()
        for unit_id in unit_ids:
            for cell in cells:
                db.session.add(BookingSlot(
                    booking_id=booking.id,
                    facility_id=unit_id,
                    slot_date=cell.day,
                    time_slot=cell.slot,
                ))
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"{self.policy.label} was booked by another request for the same date and slot",
                kind=CONFLICT_BOOKED,
            ) from exc

    def _apply_fields(self, booking: Booking, req: BookingRequest, member: Member) -> None:
        booking.member = member
        booking.start_date = req.start_date
        booking.end_date = req.end_date
        booking.event_time = req.event_time
        booking.event_type = req.event_type
        booking.booking_details = req.booking_details
        booking.number_of_adults = req.capacity.number_of_adults or 0
        booking.number_of_children = req.capacity.number_of_children or 0
        booking.number_of_guests = req.capacity.number_of_guests or 0
        booking.pricing_type = req.pricing_type
        booking.paid_by = req.paid_by
        booking.guest_name = req.guest_name
        booking.guest_contact = req.guest_contact
        booking.guest_cnic = req.guest_cnic
        booking.special_requests = req.special_requests
        booking.remarks = req.remarks

    def _clear_member_holds(self, membership_no: str, unit_ids: list[int]) -> None:
        db.session.query(FacilityHold).filter(
            FacilityHold.hold_by == membership_no,
            FacilityHold.facility_id.in_(unit_ids),
        ).delete(synchronize_session=False)

    def _description(self, booking: Booking, facilities: list[Facility]) -> str:
        return self.policy.voucher_description(booking, [f.name for f in facilities])

    def _validate_guests(self, req: BookingRequest, facilities: list[Facility]) -> None:
        self.policy.validate_capacity(req.capacity, facilities)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(self, payload: dict, acting_user: str | None = None) -> Booking:
        today = club_today()

        def _op() -> Booking:
            req = parse_booking_request(self.policy, payload)
            self.policy.validate_dates(req.start_date, req.end_date, today=today)
            self._validate_guests(req, [])

            member = self._resolve_member(req.membership_no)
            facilities = self._resolve_units(req.unit_ids)
            self._validate_guests(req, facilities)
            reservation = self._resolve_reservation(req.reservation_id, req.unit_ids)

            ensure_available(
                self.facility_type,
                req.unit_ids,
                req.cells,
                requester=req.membership_no,
                ignore_reservation_id=reservation.id if reservation else None,
            )

            unit_count = self.policy.unit_count(req.start_date, req.end_date, req.cells)
            priced = quote(self.policy, facilities, req.pricing_type, unit_count, req.total_override)
            plan = compute_payment_plan(
                None, priced.total, req.payment_status, req.paid_amount,
                online=req.payment_mode == PAYMENT_MODE_ONLINE,
            )
            diff = plan_voucher_diff(None, plan)

            if req.advance_voucher_amount and not (0 < req.advance_voucher_amount <= plan.pending - plan.online_amount):
                raise ValidationError("advance_voucher_amount must be between 1 and the pending amount")

            booking = Booking(
                facility_type=self.facility_type,
                total_price=plan.total,
                paid_amount=plan.paid,
                pending_amount=plan.pending,
                payment_status=plan.status,
                created_by=acting_user,
                updated_by=acting_user,
                created_at=utcnow(),
            )
            self._apply_fields(booking, req, member)
            db.session.add(booking)
            db.session.flush()

            self._write_units(booking, req.unit_ids, priced.unit_prices)
            self._write_slots(booking, req.unit_ids, req.cells)
            refresh_occupancy(self.policy, req.unit_ids)

            apply_member_delta(
                member.id,
                paid_delta=plan.paid_diff,
                owed_delta=plan.owed_diff,
                account_delta=plan.amount_to_balance,
                booking_count_delta=1,
                last_booking_date=today,
            )

            description = self._description(booking, facilities)
            apply_voucher_diff(
                booking,
                diff,
                description=description,
                issued_by=acting_user,
                payment_mode=req.payment_mode,
                payment_details=req.payment_details,
            )
            if req.advance_voucher_amount:
                issue_voucher(
                    booking,
                    voucher_type=VOUCHER_ADVANCE,
                    status=VOUCHER_PENDING,
                    amount=req.advance_voucher_amount,
                    remarks=f"{description} | {TAG_ADVANCE}",
                    issued_by=acting_user,
                    payment_mode=req.payment_mode,
                    payment_details=req.payment_details,
                )

            self._clear_member_holds(req.membership_no, req.unit_ids)
            if reservation is not None:
                db.session.delete(reservation)

            append_booking_event(
                event_type=EVENT_BOOKING_CREATED,
                booking_id=booking.id,
                member_id=member.id,
                paid_delta=plan.paid_diff,
                owed_delta=plan.owed_diff,
                account_delta=plan.amount_to_balance,
                actor=acting_user,
                note=description,
            )
            return booking

        booking = self._run(_op, "create")
        current_app.logger.info(
            "Created %s booking %s (total %s, %s) by %s",
            self.facility_type, booking.id, booking.total_price, booking.payment_status, acting_user,
        )
        return booking

    def update(self, payload: dict, acting_user: str | None = None) -> Booking:
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        booking_id = coerce_int(payload.get("id"), "id")
        if booking_id is None:
            raise ValidationError("id is required")
        today = club_today()

        def _op() -> Booking:
            booking = self._get_locked(booking_id)
            if booking.is_cancelled:
                raise ConflictError(f"{self.facility_type} booking {booking_id} is cancelled")

            current = PaymentState.of(booking)
            old_member_id = booking.member_id
            old_unit_ids = booking.unit_ids
            old_cells = self.policy.booking_cells(booking)
            old_start = booking.start_date

            req = parse_booking_request(self.policy, payload, existing=booking)
            self.policy.validate_dates(
                req.start_date,
                req.end_date,
                today=today if req.start_date != old_start else None,
            )

            member = self._resolve_member(req.membership_no)
            facilities = self._resolve_units(req.unit_ids)
            self._validate_guests(req, facilities)

            ensure_available(
                self.facility_type,
                req.unit_ids,
                req.cells,
                exclude_booking_id=booking.id,
                requester=req.membership_no,
            )

            inputs_changed = (
                set(req.unit_ids) != set(old_unit_ids)
                or req.cells != old_cells
                or req.pricing_type != booking.pricing_type
            )
            unit_prices = None
            if inputs_changed or req.total_override is not None:
                unit_count = self.policy.unit_count(req.start_date, req.end_date, req.cells)
                priced = quote(self.policy, facilities, req.pricing_type, unit_count, req.total_override)
                total = priced.total
                unit_prices = priced.unit_prices
            else:
                total = booking.total_price

            plan = compute_payment_plan(
                current, total, req.payment_status, req.paid_amount,
                online=req.payment_mode == PAYMENT_MODE_ONLINE,
            )
            diff = plan_voucher_diff(current, plan)

            self._apply_fields(booking, req, member)
            booking.total_price = plan.total
            booking.paid_amount = plan.paid
            booking.pending_amount = plan.pending
            booking.payment_status = plan.status
            if diff.refund_amount:
                booking.refund_amount = (booking.refund_amount or 0) + diff.refund_amount
                booking.refund_returned = False
            booking.updated_by = acting_user
            booking.updated_at = utcnow()

            self._write_units(booking, req.unit_ids, unit_prices)
            self._write_slots(booking, req.unit_ids, req.cells)
            refresh_occupancy(self.policy, set(old_unit_ids) | set(req.unit_ids))

            if member.id != old_member_id:
                # Move the whole booking between member ledgers
                apply_member_delta(
                    old_member_id,
                    paid_delta=-current.paid,
                    owed_delta=-current.pending,
                    account_delta=-current.billed,
                    booking_count_delta=-1,
                )
                apply_member_delta(
                    member.id,
                    paid_delta=plan.paid,
                    owed_delta=plan.pending,
                    account_delta=current.billed + plan.amount_to_balance,
                    booking_count_delta=1,
                    last_booking_date=today,
                )
                note = f"Moved from member {old_member_id}"
            else:
                apply_member_delta(
                    member.id,
                    paid_delta=plan.paid_diff,
                    owed_delta=plan.owed_diff,
                    account_delta=plan.amount_to_balance,
                )
                note = "Payment downgraded to HALF_PAID" if plan.downgraded else None

            apply_voucher_diff(
                booking,
                diff,
                description=self._description(booking, facilities),
                issued_by=acting_user,
                payment_mode=req.payment_mode,
                payment_details=req.payment_details,
            )
            self._clear_member_holds(req.membership_no, req.unit_ids)

            append_booking_event(
                event_type=EVENT_BOOKING_UPDATED,
                booking_id=booking.id,
                member_id=member.id,
                paid_delta=plan.paid_diff,
                owed_delta=plan.owed_diff,
                account_delta=plan.amount_to_balance,
                actor=acting_user,
                note=note,
            )
            return booking

        booking = self._run(_op, "update")
        current_app.logger.info(
            "Updated %s booking %s (total %s, %s) by %s",
            self.facility_type, booking.id, booking.total_price, booking.payment_status, acting_user,
        )
        return booking

    def cancel(self, booking_id: int, acting_user: str | None = None) -> Booking:
        """
        Soft delete. Slot rows and occupancy are released; vouchers and
        ledger history are left untouched and no refund is issued.
        """
        booking = self._run(lambda: self.cancel_in_session(booking_id, acting_user), "cancel")
        current_app.logger.info("Cancelled %s booking %s by %s", self.facility_type, booking.id, acting_user)
        return booking

    def cancel_in_session(self, booking_id: int, acting_user: str | None = None) -> Booking:
        """Cancel inside the caller's unit of work; nothing is committed here."""
        booking = self._get_locked(booking_id)
        if booking.is_cancelled:
            raise ConflictError(f"{self.facility_type} booking {booking_id} is already cancelled")

        booking.is_cancelled = True
        booking.cancelled_at = utcnow()
        booking.updated_by = acting_user
        booking.updated_at = utcnow()
        db.session.query(BookingSlot).filter_by(booking_id=booking.id).delete(synchronize_session=False)
        db.session.flush()
        refresh_occupancy(self.policy, booking.unit_ids)

        append_booking_event(
            event_type=EVENT_BOOKING_CANCELLED,
            booking_id=booking.id,
            member_id=booking.member_id,
            actor=acting_user,
        )
        return booking

    def _run(self, op, action: str):
        try:
            return run_in_transaction(op)
        except ConflictError as exc:
            current_app.logger.warning("Rejected %s %s: %s", self.facility_type, action, exc)
            raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, booking_id: int) -> Booking:
        booking = db.session.query(Booking).filter_by(id=booking_id, facility_type=self.facility_type).first()
        if not booking:
            raise NotFoundError(f"{self.facility_type} booking {booking_id} not found")
        return booking

    def list_page(
        self,
        page: int | None = 1,
        limit: int | None = None,
        *,
        include_cancelled: bool = False,
        membership_no: str | None = None,
    ) -> dict:
        """Newest bookings first, paginated."""
        query = db.session.query(Booking).filter(Booking.facility_type == self.facility_type)
        if not include_cancelled:
            query = query.filter(Booking.is_cancelled.is_(False))
        if membership_no:
            query = query.join(Member, Member.id == Booking.member_id).filter(Member.membership_no == membership_no)
        query = query.order_by(Booking.created_at.desc(), Booking.id.desc())

        limit = min(limit or current_app.config.get("DEFAULT_PAGE_SIZE", 50), 200)
        page = max(page or 1, 1)

        total = query.count()
        total_pages = (total + limit - 1) // limit if total > 0 else 1
        bookings = query.offset((page - 1) * limit).limit(limit).all()

        return {
            "items": [serialize_booking(b) for b in bookings],
            "count": len(bookings),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": total_pages,
                "has_next": page < total_pages,
                "has_prev": page > 1,
            },
        }


def serialize_booking(booking: Booking) -> dict:
    data = booking.to_dict()
    if booking.facility_type == FACILITY_ROOM:
        data["required_advance"] = required_advance(len(booking.units), booking.total_price)
    return data


# =============================================================================
# Service boundary
# =============================================================================

def create_booking(facility_type: str, payload: dict, acting_user: str | None = None) -> Booking:
    return BookingEngine(facility_type).create(payload, acting_user)


def update_booking(facility_type: str, payload: dict, acting_user: str | None = None) -> Booking:
    return BookingEngine(facility_type).update(payload, acting_user)


def cancel_booking(facility_type: str, booking_id: int, acting_user: str | None = None) -> Booking:
    return BookingEngine(facility_type).cancel(booking_id, acting_user)


def get_booking(facility_type: str, booking_id: int) -> Booking:
    return BookingEngine(facility_type).get(booking_id)


def list_bookings(facility_type: str, page: int | None = 1, limit: int | None = None, **filters) -> dict:
    return BookingEngine(facility_type).list_page(page, limit, **filters)


def check_booking_availability(facility_type: str, payload: dict) -> AvailabilityResult:
    """
    Dry-run availability for a create / update payload without writing.

    membership_no is optional here; when given, that member's holds are ignored.
    """
    policy = get_policy(facility_type)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    probe = dict(payload)
    probe.setdefault("membership_no", "-")
    existing = None
    if probe.get("id") not in (None, ""):
        existing = BookingEngine(policy.facility_type).get(coerce_int(probe["id"], "id"))
    req = parse_booking_request(policy, probe, existing=existing)
    policy.validate_dates(req.start_date, req.end_date, today=None)
    return check_availability(
        policy.facility_type,
        req.unit_ids,
        req.cells,
        exclude_booking_id=existing.id if existing else None,
        requester=payload.get("membership_no") or None,
    )


def list_member_bookings(membership_no: str, facility_type: str | None = None) -> list[Booking]:
    """All bookings of one member (cancelled included), newest first."""
    member = db.session.query(Member).filter_by(membership_no=membership_no).first()
    if not member:
        raise NotFoundError(f"Member {membership_no} not found")
    query = db.session.query(Booking).filter(Booking.member_id == member.id)
    if facility_type:
        query = query.filter(Booking.facility_type == normalize_facility_type(facility_type))
    return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()
