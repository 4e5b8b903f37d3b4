# backend/clubhouse/routes/system.py
"""
System health and version endpoints.

Health reports database connectivity and the state of the background
upkeep (expired holds awaiting cleanup, voucher sequences initialized).
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Booking, DocumentSequence, Facility, FacilityHold, Member
from ..services.document_service import CONSUMER_SEQUENCE, VOUCHER_SEQUENCE
from ..time_utils import ensure_aware, to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        member_count = db.session.query(Member).count()
        facility_count = db.session.query(Facility).count()
        active_bookings = db.session.query(Booking).filter(Booking.is_cancelled.is_(False)).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "members": member_count,
                "facilities": facility_count,
                "active_bookings": active_bookings,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_upkeep_health() -> dict:
    """
    Degraded when expired holds pile up (cleanup job not running) or the
    voucher sequences were never initialized.
    """
    start_time = time.time()
    try:
        now = utcnow()
        expired_holds = sum(
            1 for hold in db.session.query(FacilityHold).all()
            if not hold.on_hold or ensure_aware(hold.hold_expiry) <= now
        )
        sequences = {
            row.document_type
            for row in db.session.query(DocumentSequence).filter(
                DocumentSequence.document_type.in_([VOUCHER_SEQUENCE, CONSUMER_SEQUENCE])
            ).all()
        }
        elapsed_ms = (time.time() - start_time) * 1000
        details = {
            "expired_holds_pending_cleanup": expired_holds,
            "voucher_sequences_initialized": len(sequences) == 2,
        }
        if len(sequences) < 2:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "Voucher sequences missing; run: flask system init-db",
                "details": details,
            }
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Upkeep health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Upkeep check error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    upkeep_health = check_upkeep_health()

    all_checks = [database_health, upkeep_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    response = {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "upkeep": upkeep_health,
        }
    }
    return response, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment info."""
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "club_timezone": current_app.config.get("CLUB_TIMEZONE"),
        "server_time": to_utc_z(utcnow()),
    }
