# Overview: Request helpers and decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .validation import ConflictError, NotFoundError, ValidationError


ACTING_USER_HEADER = "X-Acting-User"


def get_acting_user():
    """Staff or member identifier forwarded by the upstream auth layer (may be None)."""
    value = request.headers.get(ACTING_USER_HEADER, "").strip()
    return value[:64] or None


def with_acting_user(f):
    """
    Populate g.acting_user from the X-Acting-User header.

    The booking API sits behind an authenticating proxy; it trusts the header
    and only records it on created / updated rows and vouchers.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.acting_user = get_acting_user()
        return f(*args, **kwargs)

    return decorated_function


def require_acting_user(f):
    """Reject the request with 401 when no acting user was forwarded."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        acting_user = get_acting_user()
        if not acting_user:
            return jsonify({"error": "Acting user required"}), 401
        g.acting_user = acting_user
        return f(*args, **kwargs)

    return decorated_function


def api_errors(action: str):
    """
    Map service exceptions to JSON error responses.

    ConflictError -> 409 (with the blocking cell when there is one),
    ValidationError -> 400, NotFoundError -> 404, anything else is logged
    and answered as 500.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except ConflictError as e:
                return jsonify(e.to_dict()), 409
            except ValidationError as e:
                return jsonify({"error": str(e)}), 400
            except NotFoundError as e:
                return jsonify({"error": str(e)}), 404
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function

    return decorator
