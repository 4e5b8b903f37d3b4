# Overview: Flask API routes for facility units, holds, reservations and out-of-order periods.

"""
Facility & Schedule API Routes

DESIGN:
- Facility units are grouped by type (ROOM, HALL, LAWN, PHOTOSHOOT)
- Holds are member soft locks that expire after HOLD_MINUTES
- Reservations are staff blocks, refused over bookings / other blocks
- Out-of-order periods always win; creating one reports the bookings it
  overlaps instead of refusing
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import api_errors, with_acting_user
from ..services import booking_service, facility_service, hold_service, schedule_service
from ..validation import ValidationError, coerce_id_list


facilities_bp = Blueprint("facilities", __name__, url_prefix="/api/facilities")


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


# =============================================================================
# FACILITY UNITS
# =============================================================================

@facilities_bp.get("/<facility_type>")
@api_errors("list facilities")
def list_facilities_route(facility_type: str):
    """
    Query params:
    - include_inactive: true | false (default false)
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    facilities = facility_service.list_facilities(facility_type, include_inactive=include_inactive)
    return jsonify({"items": [f.to_dict() for f in facilities], "count": len(facilities)})


@facilities_bp.post("/<facility_type>")
@api_errors("create facility")
def create_facility_route(facility_type: str):
    """
    Request body:
    {
        "name": "101",
        "rate_member": 5000,
        "rate_guest": 8000,
        "rate_forces": 4000,       (rooms, optional)
        "rate_corporate": 90000,   (halls, optional)
        "min_guests": 50,          (optional)
        "capacity": 300            (optional)
    }
    """
    payload = dict(_json_body())
    name = payload.pop("name", None)
    facility = facility_service.create_facility(facility_type, name, **payload)
    return jsonify(facility.to_dict()), 201


@facilities_bp.patch("/units/<int:facility_id>")
@api_errors("update facility")
def update_facility_route(facility_id: int):
    facility = facility_service.update_facility(facility_id, **_json_body())
    return jsonify(facility.to_dict())


@facilities_bp.post("/<facility_type>/availability")
@api_errors("check availability")
def check_availability_route(facility_type: str):
    """
    Dry-run availability for a booking payload (same fields as create /
    update). Always 200; the body says whether and where it conflicts.
    """
    result = booking_service.check_booking_availability(facility_type, _json_body())
    return jsonify(result.to_dict())


# =============================================================================
# HOLDS
# =============================================================================

@facilities_bp.post("/<facility_type>/<int:facility_id>/holds")
@api_errors("create hold")
def create_hold_route(facility_type: str, facility_id: int):
    """
    Request body:
    {
        "membership_no": "M-1001",
        "from_date": "2025-06-01",
        "to_date": "2025-06-03",   (optional)
        "time_slot": "EVENING"     (optional, not for rooms)
    }
    """
    payload = _json_body()
    hold = hold_service.create_hold(
        facility_type,
        facility_id,
        payload.get("membership_no"),
        payload.get("from_date"),
        payload.get("to_date"),
        payload.get("time_slot"),
    )
    return jsonify(hold.to_dict()), 201


@facilities_bp.delete("/holds/<hold_by>")
@api_errors("release holds")
def release_holds_route(hold_by: str):
    """Release a member's holds; ?unit_ids=1,2 limits it to some units."""
    unit_ids = None
    raw = request.args.get("unit_ids")
    if raw:
        unit_ids = coerce_id_list({"unit_ids": raw.split(",")}, "unit_ids", "unit_id")
    released = hold_service.release_holds(hold_by, unit_ids)
    return jsonify({"released": released})


# =============================================================================
# RESERVATIONS
# =============================================================================

@facilities_bp.get("/<facility_type>/reservations")
@api_errors("list reservations")
def list_reservations_route(facility_type: str):
    reservations = schedule_service.list_reservations(facility_type)
    return jsonify({"items": [r.to_dict() for r in reservations], "count": len(reservations)})


@facilities_bp.post("/<facility_type>/<int:facility_id>/reservations")
@with_acting_user
@api_errors("create reservation")
def create_reservation_route(facility_type: str, facility_id: int):
    payload = _json_body()
    reservation = schedule_service.create_reservation(
        facility_type,
        facility_id,
        payload.get("reserved_from"),
        payload.get("reserved_to"),
        time_slot=payload.get("time_slot"),
        reserved_by=g.acting_user,
        remarks=payload.get("remarks"),
    )
    return jsonify(reservation.to_dict()), 201


@facilities_bp.delete("/reservations/<int:reservation_id>")
@api_errors("delete reservation")
def delete_reservation_route(reservation_id: int):
    schedule_service.delete_reservation(reservation_id)
    return "", 204


# =============================================================================
# OUT OF ORDER
# =============================================================================

@facilities_bp.get("/<facility_type>/out-of-order")
@api_errors("list out-of-order periods")
def list_out_of_order_route(facility_type: str):
    periods = schedule_service.list_out_of_order(facility_type)
    return jsonify({"items": [p.to_dict() for p in periods], "count": len(periods)})


@facilities_bp.get("/<facility_type>/out-of-order/conflicts")
@api_errors("list out-of-order conflicts")
def out_of_order_conflicts_route(facility_type: str):
    conflicts = schedule_service.find_out_of_order_conflicts(facility_type)
    return jsonify({"items": conflicts, "count": len(conflicts)})


@facilities_bp.post("/<facility_type>/<int:facility_id>/out-of-order")
@with_acting_user
@api_errors("create out-of-order period")
def create_out_of_order_route(facility_type: str, facility_id: int):
    """
    Request body:
    {
        "start_date": "2025-06-01",
        "end_date": "2025-06-05",
        "reason": "Plumbing"
    }

    Returns the period and the active bookings it overlaps.
    """
    payload = _json_body()
    period, conflicts = schedule_service.create_out_of_order(
        facility_type,
        facility_id,
        payload.get("start_date"),
        payload.get("end_date"),
        reason=payload.get("reason"),
        created_by=g.acting_user,
    )
    return jsonify({"out_of_order": period.to_dict(), "conflicts": conflicts}), 201


@facilities_bp.delete("/out-of-order/<int:period_id>")
@api_errors("delete out-of-order period")
def delete_out_of_order_route(period_id: int):
    schedule_service.delete_out_of_order(period_id)
    return "", 204
