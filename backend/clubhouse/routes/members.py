# Overview: Flask API routes for the member directory the booking core reads.

from flask import Blueprint, request, jsonify

from ..decorators import api_errors
from ..services import member_service
from ..validation import ValidationError


members_bp = Blueprint("members", __name__, url_prefix="/api/members")


@members_bp.get("")
@api_errors("list members")
def list_members_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    members = member_service.list_members(include_inactive=include_inactive)
    return jsonify({"items": [m.to_dict() for m in members], "count": len(members)})


@members_bp.get("/<membership_no>")
@api_errors("get member")
def get_member_route(membership_no: str):
    return jsonify(member_service.get_member(membership_no).to_dict())


@members_bp.post("")
@api_errors("create member")
def create_member_route():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    member = member_service.create_member(
        payload.get("membership_no"),
        payload.get("name"),
        email=payload.get("email"),
        contact_no=payload.get("contact_no"),
    )
    return jsonify(member.to_dict()), 201
