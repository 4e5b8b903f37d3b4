# Overview: Flask API routes for payment vouchers; parses input and returns JSON responses.

"""
Payment Voucher API Routes

Only PENDING vouchers change status here:
- PENDING -> CONFIRMED: applies the payment to the booking (or marks a
  refund as returned)
- PENDING -> CANCELLED: voids the voucher

Returns:
    200: voucher after the change
    400: unknown status
    404: voucher not found
    409: voucher already final, or confirming would overpay the booking
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import api_errors, with_acting_user
from ..extensions import db
from ..models import PaymentVoucher
from ..services import voucher_service
from ..validation import NotFoundError


vouchers_bp = Blueprint("vouchers", __name__, url_prefix="/api/vouchers")


@vouchers_bp.get("/<int:voucher_id>")
@api_errors("get voucher")
def get_voucher_route(voucher_id: int):
    voucher = db.session.get(PaymentVoucher, voucher_id)
    if not voucher:
        raise NotFoundError(f"Voucher {voucher_id} not found")
    return jsonify(voucher.to_dict())


@vouchers_bp.patch("/<int:voucher_id>/status")
@with_acting_user
@api_errors("update voucher status")
def update_voucher_status_route(voucher_id: int):
    """
    Request body:
    {
        "status": "CONFIRMED" | "CANCELLED"
    }
    """
    payload = request.get_json(silent=True) or {}
    status = payload.get("status") if isinstance(payload, dict) else None
    voucher = voucher_service.update_voucher_status(voucher_id, status, g.acting_user)
    return jsonify(voucher.to_dict())
