from flask import g, request, jsonify
from gathermemorials.extensions import limiter
from gathermemorials.application.memorials.activity import memorial_activity
from gathermemorials.application.memorials.archive_memorial import archive_memorial, unarchive_memorial
from gathermemorials.application.memorials.autosave_memorial import autosave_memorial, autosave_status
from gathermemorials.application.memorials.collaborators import (
    add_collaborator,
    list_collaborators,
    remove_collaborator,
)
from gathermemorials.application.memorials.create_memorial import create_memorial
from gathermemorials.application.memorials.delete_memorial import delete_memorial
from gathermemorials.application.memorials.publish_memorial import publish_memorial
from gathermemorials.application.memorials.read_memorial import (
    list_drafts,
    list_memorials,
    parse_page,
    view_memorial,
)
from gathermemorials.application.memorials.update_memorial import update_memorial
from gathermemorials.normalizers.audit import normalize_audit_log
from gathermemorials.normalizers.memorial import (
    normalize_collaborator,
    normalize_memorial,
    normalize_memorial_summary,
)
from gathermemorials.normalizers.pagination import normalize_cursor_page, normalize_offset_page
from gathermemorials.utils.decorators import login_optional, login_required
from gathermemorials.utils.pagination import clamp_limit
from gathermemorials.utils.rate_limit import autosave_limit, memorial_identity_key
from . import v1_bp

PASSWORD_HEADER = "X-Memorial-Password"


# ------------------------
# Memorials
# ------------------------

@v1_bp.route("/memorials", methods=["POST"])
@login_required
def create_memorial_route():
    data = request.get_json(silent=True) or {}
    memorial = create_memorial(owner=g.current_user, data=data)

    return jsonify({
        "memorial": normalize_memorial(memorial, owner=True),
        "message": "Memorial created successfully",
    }), 201


@v1_bp.route("/memorials", methods=["GET"])
@login_required
def list_memorials_route():
    page, per_page = parse_page(request.args.get("page"), request.args.get("per_page"))
    items, total = list_memorials(
        owner=g.current_user,
        status=request.args.get("status"),
        page=page,
        per_page=per_page,
    )

    return jsonify(normalize_offset_page(
        items,
        normalize_memorial_summary,
        page=page,
        per_page=per_page,
        total=total,
        key="memorials",
    )), 200


@v1_bp.route("/memorials/drafts", methods=["GET"])
@login_required
def list_drafts_route():
    drafts = list_drafts(owner=g.current_user)
    return jsonify({"drafts": [normalize_memorial_summary(m) for m in drafts]}), 200


@v1_bp.route("/memorials/<memorial_id>", methods=["GET"])
@login_optional
def get_memorial_route(memorial_id):
    memorial, owner = view_memorial(
        memorial_id=memorial_id,
        user=g.current_user,
        password=request.headers.get(PASSWORD_HEADER),
    )
    return jsonify({"memorial": normalize_memorial(memorial, owner=owner), "is_owner": owner}), 200


@v1_bp.route("/memorials/by-url/<custom_url>", methods=["GET"])
@login_optional
def get_memorial_by_url_route(custom_url):
    memorial, owner = view_memorial(
        custom_url=custom_url,
        user=g.current_user,
        password=request.headers.get(PASSWORD_HEADER),
    )
    return jsonify({"memorial": normalize_memorial(memorial, owner=owner), "is_owner": owner}), 200


@v1_bp.route("/memorials/<memorial_id>", methods=["PATCH"])
@login_required
def update_memorial_route(memorial_id):
    data = request.get_json(silent=True) or {}

    # -----------------------
    # Optimistic Locking Check
    # -----------------------
    expected = data.pop("updated_at", None) or request.headers.get("If-Unmodified-Since")

    memorial = update_memorial(
        memorial_id=memorial_id,
        actor=g.current_user,
        data=data,
        expected_updated_at=expected,
    )

    return jsonify({
        "memorial": normalize_memorial(memorial, owner=True),
        "message": "Memorial updated successfully",
    }), 200


@v1_bp.route("/memorials/<memorial_id>", methods=["DELETE"])
@login_required
def delete_memorial_route(memorial_id):
    result = delete_memorial(memorial_id=memorial_id, actor=g.current_user)
    return jsonify({**result, "message": "Memorial deleted successfully"}), 200


@v1_bp.route("/memorials/<memorial_id>/publish", methods=["POST"])
@login_required
def publish_memorial_route(memorial_id):
    result = publish_memorial(memorial_id=memorial_id, actor=g.current_user)
    return jsonify({**result, "message": "Memorial published"}), 200


@v1_bp.route("/memorials/<memorial_id>/archive", methods=["POST"])
@login_required
def archive_memorial_route(memorial_id):
    memorial = archive_memorial(memorial_id=memorial_id, actor=g.current_user)
    return jsonify({"memorial_id": memorial.id, "status": memorial.status}), 200


@v1_bp.route("/memorials/<memorial_id>/unarchive", methods=["POST"])
@login_required
def unarchive_memorial_route(memorial_id):
    memorial = unarchive_memorial(memorial_id=memorial_id, actor=g.current_user)
    return jsonify({"memorial_id": memorial.id, "status": memorial.status}), 200


@v1_bp.route("/memorials/<memorial_id>/activity", methods=["GET"])
@login_required
def memorial_activity_route(memorial_id):
    logs, cursor = memorial_activity(
        memorial_id=memorial_id,
        actor=g.current_user,
        action=request.args.get("action"),
        cursor=request.args.get("cursor"),
        limit=clamp_limit(request.args.get("limit")),
    )
    return jsonify(normalize_cursor_page(logs, normalize_audit_log, cursor, key="activity")), 200


# ------------------------
# Autosave
# ------------------------

@v1_bp.route("/memorials/<memorial_id>/autosave", methods=["POST"])
@limiter.limit(autosave_limit, key_func=memorial_identity_key)
@login_required
def autosave_route(memorial_id):
    data = request.get_json(silent=True) or {}
    result = autosave_memorial(
        memorial_id=memorial_id,
        actor=g.current_user,
        step=data.get("step"),
        data=data.get("data"),
        completed=bool(data.get("completed")),
    )
    return jsonify(result), 200


@v1_bp.route("/memorials/<memorial_id>/autosave", methods=["GET"])
@login_required
def autosave_status_route(memorial_id):
    return jsonify(autosave_status(memorial_id=memorial_id, actor=g.current_user)), 200


# ------------------------
# Collaborators
# ------------------------

@v1_bp.route("/memorials/<memorial_id>/collaborators", methods=["GET"])
@login_required
def list_collaborators_route(memorial_id):
    collaborators = list_collaborators(memorial_id=memorial_id, actor=g.current_user)
    return jsonify({"collaborators": [normalize_collaborator(c) for c in collaborators]}), 200


@v1_bp.route("/memorials/<memorial_id>/collaborators", methods=["POST"])
@login_required
def add_collaborator_route(memorial_id):
    data = request.get_json(silent=True) or {}
    collaborator = add_collaborator(
        memorial_id=memorial_id,
        actor=g.current_user,
        email=data.get("email"),
        role=data.get("role") or "moderator",
    )
    return jsonify({"collaborator": normalize_collaborator(collaborator)}), 201


@v1_bp.route("/memorials/<memorial_id>/collaborators/<user_id>", methods=["DELETE"])
@login_required
def remove_collaborator_route(memorial_id, user_id):
    remove_collaborator(memorial_id=memorial_id, actor=g.current_user, user_id=user_id)
    return jsonify({"message": "Collaborator removed"}), 200
