from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Facility
from ..validation import ConflictError, NotFoundError, ValidationError, clean_str, coerce_amount, coerce_int
from .concurrency import lock_for_update, run_in_transaction
from .facility_policies import normalize_facility_type


_RATE_FIELDS = ("rate_member", "rate_guest", "rate_forces", "rate_corporate")
_LIMIT_FIELDS = ("min_guests", "capacity")


def _apply_limits_and_rates(facility: Facility, data: dict) -> None:
    for key in _RATE_FIELDS:
        if key in data:
            value = coerce_amount(data[key], key)
            if value is None and key in ("rate_member", "rate_guest"):
                value = 0
            setattr(facility, key, value)
    for key in _LIMIT_FIELDS:
        if key in data:
            setattr(facility, key, coerce_int(data[key], key))
    if facility.min_guests and facility.capacity and facility.min_guests > facility.capacity:
        raise ValidationError("min_guests cannot exceed capacity")


def create_facility(facility_type: str, name: str, **data) -> Facility:
    facility_type = normalize_facility_type(facility_type)
    name = clean_str(name, max_length=128, field="name")
    if not name:
        raise ValidationError("Facility name is required")

    def _op() -> Facility:
        facility = Facility(
            facility_type=facility_type,
            name=name,
            description=clean_str(data.get("description")),
            is_active=bool(data.get("is_active", True)),
            rate_member=0,
            rate_guest=0,
        )
        _apply_limits_and_rates(facility, data)
        db.session.add(facility)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"{facility_type} '{name}' already exists") from exc
        return facility

    return run_in_transaction(_op)


def update_facility(facility_id: int, **data) -> Facility:
    def _op() -> Facility:
        facility = lock_for_update(db.session.query(Facility).filter_by(id=facility_id)).first()
        if not facility:
            raise NotFoundError(f"Facility {facility_id} not found")
        if "name" in data:
            name = clean_str(data["name"], max_length=128, field="name")
            if not name:
                raise ValidationError("Facility name is required")
            facility.name = name
        if "description" in data:
            facility.description = clean_str(data["description"])
        if "is_active" in data:
            facility.is_active = bool(data["is_active"])
        _apply_limits_and_rates(facility, data)
        return facility

    return run_in_transaction(_op)


def get_facility(facility_id: int) -> Facility:
    facility = db.session.get(Facility, facility_id)
    if not facility:
        raise NotFoundError(f"Facility {facility_id} not found")
    return facility


def list_facilities(facility_type: str | None = None, *, include_inactive: bool = False) -> list[Facility]:
    query = db.session.query(Facility)
    if facility_type:
        query = query.filter(Facility.facility_type == normalize_facility_type(facility_type))
    if not include_inactive:
        query = query.filter(Facility.is_active.is_(True))
    return query.order_by(Facility.facility_type.asc(), Facility.name.asc()).all()
