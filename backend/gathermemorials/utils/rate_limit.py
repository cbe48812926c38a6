from flask import current_app, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_limiter.util import get_remote_address


def identity_key():
    """
    Rate-limit key for the authenticated caller, falling back to the client
    address for anonymous requests.
    """
    verify_jwt_in_request(optional=True)
    identity = get_jwt_identity()
    return f"user:{identity}" if identity else f"ip:{get_remote_address()}"


def memorial_identity_key():
    memorial_id = (request.view_args or {}).get("memorial_id", "-")
    return f"{identity_key()}:memorial:{memorial_id}"


def guestbook_limit():
    return current_app.config["GUESTBOOK_RATE_LIMIT"]


def autosave_limit():
    return current_app.config["AUTOSAVE_RATE_LIMIT"]
