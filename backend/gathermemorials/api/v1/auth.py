import re
from flask import request, jsonify, g
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    get_jwt_identity,
    jwt_required,
)
from sqlalchemy.exc import IntegrityError
from gathermemorials.extensions import db
from gathermemorials.models.user import User
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.decorators import login_required
from . import v1_bp

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


def _user_payload(user):
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "display_name": user.display_name,
        "avatar_url": user.avatar_url,
    }


def _tokens(user):
    return {
        "access_token": create_access_token(identity=user.id),
        "refresh_token": create_refresh_token(identity=user.id),
    }


@v1_bp.route("/auth/register", methods=["POST"])
def register():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "InvariantViolation", "message": "Invalid request body"}), 400

    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not EMAIL_PATTERN.match(email):
        return jsonify({"error": "InvariantViolation", "message": "A valid email is required"}), 400

    if len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({
            "error": "InvariantViolation",
            "message": f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        }), 400

    if User.query.filter_by(email=email).first():
        return jsonify({"error": "Conflict", "message": "An account with this email already exists"}), 409

    user = User()
    user.email = email
    user.full_name = (data.get("full_name") or "").strip() or None
    user.set_password(password)

    db.session.add(user)
    try:
        db.session.flush()
        log_action(
            action="user.register",
            entity_type="user",
            entity_id=user.id,
            actor_id=user.id,
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "Conflict", "message": "An account with this email already exists"}), 409

    return jsonify({"user": _user_payload(user), **_tokens(user)}), 201


@v1_bp.route("/auth/login", methods=["POST"])
def login():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "InvariantViolation", "message": "Invalid request body"}), 400

    email = (data.get("email") or "").strip().lower()
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "InvariantViolation", "message": "Email and password required"}), 400

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        return jsonify({"error": "AuthenticationRequired", "message": "Invalid credentials"}), 401

    if not user.is_active:
        return jsonify({"error": "PermissionDenied", "message": "User account disabled"}), 403

    return jsonify({"user": _user_payload(user), **_tokens(user)}), 200


@v1_bp.route("/auth/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh():
    user = db.session.get(User, get_jwt_identity())
    if not user or not user.is_active:
        return jsonify({"error": "AuthenticationRequired", "message": "User account not found or disabled"}), 401

    return jsonify({"access_token": create_access_token(identity=user.id)}), 200


@v1_bp.route("/auth/me", methods=["GET"])
@login_required
def me():
    return jsonify({"user": _user_payload(g.current_user)}), 200
