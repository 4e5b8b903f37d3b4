# Overview: Flask API routes for bookings of every facility type; parses input and returns JSON responses.

"""
Booking API Routes

One blueprint serves rooms, halls, lawns and the photoshoot studio; the
facility type is the first path segment (ROOM, HALL, LAWN, PHOTOSHOOT,
case-insensitive).

ERRORS:
- 400: invalid payload (dates, slots, amounts, statuses)
- 404: unknown booking, member, unit or request
- 409: availability or payment conflict; availability conflicts also carry
  kind / unit_id / date / slot
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import api_errors, with_acting_user
from ..services import booking_service, cancellation_service, voucher_service
from ..services.ledger_service import list_booking_events
from ..validation import ValidationError


bookings_bp = Blueprint("bookings", __name__, url_prefix="/api/bookings")


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _flag(name: str) -> bool:
    return request.args.get(name, "false").lower() == "true"


# =============================================================================
# CANCELLATION REQUESTS (staff side)
# =============================================================================

@bookings_bp.get("/cancellation-requests")
@api_errors("list cancellation requests")
def list_cancellation_requests_route():
    """
    Query params:
    - status: PENDING | APPROVED | REJECTED (optional)
    - facility_type: optional filter
    """
    requests = cancellation_service.list_cancellation_requests(
        status=request.args.get("status"),
        facility_type=request.args.get("facility_type"),
    )
    return jsonify({"items": [r.to_dict() for r in requests], "count": len(requests)})


@bookings_bp.post("/cancellation-requests/<int:request_id>/resolve")
@with_acting_user
@api_errors("resolve cancellation request")
def resolve_cancellation_request_route(request_id: int):
    """
    Request body:
    {
        "status": "APPROVED" | "REJECTED",
        "remarks": "optional staff note"
    }

    APPROVED cancels the booking.
    """
    payload = _json_body()
    resolved = cancellation_service.resolve_cancellation_request(
        request_id,
        payload.get("status"),
        remarks=payload.get("remarks"),
        actor=g.acting_user,
    )
    return jsonify(resolved.to_dict())


# =============================================================================
# MEMBER VIEW
# =============================================================================

@bookings_bp.get("/members/<membership_no>")
@api_errors("list member bookings")
def list_member_bookings_route(membership_no: str):
    bookings = booking_service.list_member_bookings(membership_no, request.args.get("facility_type"))
    return jsonify({
        "items": [booking_service.serialize_booking(b) for b in bookings],
        "count": len(bookings),
    })


# =============================================================================
# BOOKINGS
# =============================================================================

@bookings_bp.get("/<facility_type>")
@api_errors("list bookings")
def list_bookings_route(facility_type: str):
    """
    List bookings newest first.

    Query params:
    - page: int (default 1)
    - limit: int (default DEFAULT_PAGE_SIZE, max 200)
    - include_cancelled: true | false (default false)
    - membership_no: optional filter
    """
    result = booking_service.list_bookings(
        facility_type,
        page=request.args.get("page", type=int),
        limit=request.args.get("limit", type=int),
        include_cancelled=_flag("include_cancelled"),
        membership_no=request.args.get("membership_no"),
    )
    return jsonify(result)


@bookings_bp.get("/<facility_type>/<int:booking_id>")
@api_errors("get booking")
def get_booking_route(facility_type: str, booking_id: int):
    booking = booking_service.get_booking(facility_type, booking_id)
    return jsonify(booking_service.serialize_booking(booking))


@bookings_bp.post("/<facility_type>")
@with_acting_user
@api_errors("create booking")
def create_booking_route(facility_type: str):
    """
    Create a booking.

    Request body (rooms):
    {
        "membership_no": "M-1001",
        "unit_ids": [1, 2],
        "check_in": "2025-06-01",
        "check_out": "2025-06-03",
        "number_of_adults": 2,
        "pricing_type": "member",
        "payment_status": "PAID"
    }

    Halls / lawns / photoshoot use booking_date, end_date, event_time or
    booking_details instead of check_in / check_out.

    Returns:
        201: booking created
    """
    booking = booking_service.create_booking(facility_type, _json_body(), g.acting_user)
    return jsonify(booking_service.serialize_booking(booking)), 201


@bookings_bp.put("/<facility_type>/<int:booking_id>")
@with_acting_user
@api_errors("update booking")
def update_booking_route(facility_type: str, booking_id: int):
    """Partial update: omitted fields keep their stored values."""
    payload = dict(_json_body())
    payload["id"] = booking_id
    booking = booking_service.update_booking(facility_type, payload, g.acting_user)
    return jsonify(booking_service.serialize_booking(booking))


@bookings_bp.delete("/<facility_type>/<int:booking_id>")
@with_acting_user
@api_errors("cancel booking")
def cancel_booking_route(facility_type: str, booking_id: int):
    """Soft-cancel a booking. Vouchers are left as they are; no refund is issued."""
    booking = booking_service.cancel_booking(facility_type, booking_id, g.acting_user)
    return jsonify(booking_service.serialize_booking(booking))


@bookings_bp.get("/<facility_type>/<int:booking_id>/vouchers")
@api_errors("list booking vouchers")
def list_booking_vouchers_route(facility_type: str, booking_id: int):
    vouchers = voucher_service.get_vouchers(facility_type, booking_id)
    return jsonify({"items": [v.to_dict() for v in vouchers], "count": len(vouchers)})


@bookings_bp.get("/<facility_type>/<int:booking_id>/events")
@api_errors("list booking events")
def list_booking_events_route(facility_type: str, booking_id: int):
    booking_service.get_booking(facility_type, booking_id)
    events = list_booking_events(booking_id)
    return jsonify({"items": [e.to_dict() for e in events], "count": len(events)})


@bookings_bp.post("/<facility_type>/<int:booking_id>/cancellation-requests")
@with_acting_user
@api_errors("request cancellation")
def request_cancellation_route(facility_type: str, booking_id: int):
    """
    Request body:
    {
        "reason": "Change of plans"
    }
    """
    payload = request.get_json(silent=True) or {}
    created = cancellation_service.request_cancellation(
        facility_type,
        booking_id,
        reason=payload.get("reason") if isinstance(payload, dict) else None,
        requested_by=g.acting_user,
    )
    return jsonify(created.to_dict()), 201
