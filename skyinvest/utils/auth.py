# utils/auth.py
from functools import wraps

from flask import jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request


def _claims():
    return get_jwt() or {}


def current_user_type() -> str:
    return str(_claims().get("user_type", "")).lower()


def current_user_id():
    ident = get_jwt_identity()
    if ident is None:
        return None
    try:
        return int(ident)
    except (TypeError, ValueError):
        return ident


def is_admin() -> bool:
    return current_user_type() == "admin"


# 🔐 role gate (based on user_type in JWT claims)
def role_required(*roles):
    allowed = {r.lower() for r in roles}

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if current_user_type() not in allowed:
                return jsonify({"msg": "Forbidden"}), 403
            return fn(*args, **kwargs)

        return wrapper

    return decorator


admin_required = role_required("admin")
