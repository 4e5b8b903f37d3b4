# Overview: Member holds (soft locks) on facility units.

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Facility, FacilityHold, Member
from ..time_utils import normalize_date, normalize_optional_date, utcnow
from ..validation import NotFoundError, ValidationError
from .availability_service import ensure_available
from .concurrency import run_in_transaction
from .facility_policies import FACILITY_ROOM, get_policy


def create_hold(
    facility_type: str,
    facility_id: int,
    membership_no: str,
    from_date,
    to_date=None,
    time_slot: str | None = None,
) -> FacilityHold:
    """
    Hold a unit for a member for HOLD_MINUTES.

    Refused when the cells are not available to that member; the member's own
    holds never block it.
    """
    policy = get_policy(facility_type)
    if not membership_no:
        raise ValidationError("membership_no is required")
    start = normalize_date(from_date)
    # Rooms hold nights [from, to); a missing to_date means one night or one day
    default_end = start if policy.inclusive_end else start + timedelta(days=1)
    end = normalize_optional_date(to_date) or default_end
    policy.validate_dates(start, end, today=None)
    slot = policy.normalize_slot(time_slot)
    if slot is not None and policy.facility_type != FACILITY_ROOM:
        policy.validate_slot(slot)

    def _op() -> FacilityHold:
        member = db.session.query(Member).filter_by(membership_no=membership_no).first()
        if not member:
            raise NotFoundError(f"Member {membership_no} not found")
        facility = db.session.query(Facility).filter_by(id=facility_id, facility_type=policy.facility_type).first()
        if not facility:
            raise NotFoundError(f"{policy.label} {facility_id} not found")

        cells = policy.request_cells(start, end, slot)
        ensure_available(policy.facility_type, [facility.id], cells, requester=membership_no)

        minutes = current_app.config.get("HOLD_MINUTES", 15)
        hold = FacilityHold(
            facility_id=facility.id,
            hold_by=membership_no,
            from_date=start,
            to_date=end,
            time_slot=None if policy.facility_type == FACILITY_ROOM else slot,
            on_hold=True,
            hold_expiry=utcnow() + timedelta(minutes=minutes),
        )
        db.session.add(hold)
        db.session.flush()
        return hold

    hold = run_in_transaction(_op)
    current_app.logger.info("Hold %s placed on facility %s by %s", hold.id, facility_id, membership_no)
    return hold


def release_holds(hold_by: str, unit_ids: list[int] | None = None) -> int:
    """Delete a member's holds (optionally only on some units). Returns the count."""
    if not hold_by:
        raise ValidationError("hold_by is required")

    def _op() -> int:
        query = db.session.query(FacilityHold).filter(FacilityHold.hold_by == hold_by)
        if unit_ids:
            query = query.filter(FacilityHold.facility_id.in_(unit_ids))
        return query.delete(synchronize_session=False)

    return run_in_transaction(_op)
