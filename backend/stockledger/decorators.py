# Overview: Request decorators for API routes.

from functools import wraps
from flask import session, jsonify, g


def _session_int(key: str) -> int | None:
    value = session.get(key)
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def require_session(f):
    """
    Require an authenticated session and establish business context.

    The session cookie is issued by the authentication layer (Telegram login)
    and signed with SECRET_KEY. Sets:
    - g.staff_id: the signed-in user, recorded as the transaction's staff
    - g.business_id: the business (tenant) every query is scoped to

    Returns 401 when no user is signed in and 400 when the session has no
    business selected.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        staff_id = _session_int("user_id")
        if staff_id is None:
            return jsonify({"error": "Unauthorized"}), 401

        business_id = _session_int("business_id")
        if business_id is None:
            return jsonify({"error": "No business found"}), 400

        g.staff_id = staff_id
        g.business_id = business_id
        return f(*args, **kwargs)

    return decorated_function
