from functools import wraps
from flask import g, jsonify
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from gathermemorials.extensions import db
from gathermemorials.models.user import User


def _load_user(identity):
    if identity is None:
        return None
    user = db.session.get(User, identity)
    if not user or not user.is_active:
        return None
    return user


def login_required(fn):
    """
    Requires a valid access token for an active user and exposes it as
    g.current_user.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        user = _load_user(get_jwt_identity())
        if not user:
            return jsonify({"error": "AuthenticationRequired", "message": "User account not found or disabled"}), 401

        g.current_user = user
        return fn(*args, **kwargs)
    return wrapper


def login_optional(fn):
    """
    Like login_required but anonymous callers get g.current_user = None.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request(optional=True)
        g.current_user = _load_user(get_jwt_identity())
        return fn(*args, **kwargs)
    return wrapper


def feature_configured(config_check, service_name):
    """
    Returns 503 when a third-party collaborator has no credentials.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not config_check():
                return jsonify({
                    "error": "ServiceUnavailable",
                    "message": f"{service_name} is not configured"
                }), 503

            return fn(*args, **kwargs)
        return wrapper
    return decorator
