from flask import g, request, jsonify
from gathermemorials.extensions import limiter
from gathermemorials.application.guestbook.blocks import block_user, list_blocks, unblock_user
from gathermemorials.application.guestbook.moderate_entries import delete_entry, moderate_entries
from gathermemorials.application.guestbook.queries import list_entries, moderation_queue, moderation_stats
from gathermemorials.application.guestbook.submit_entry import submit_entry
from gathermemorials.application.memorials.read_memorial import parse_page
from gathermemorials.domain.lifecycle.guestbook import EntryStatus
from gathermemorials.normalizers.guestbook import (
    normalize_blocked_user,
    normalize_entry,
    normalize_queue_entry,
)
from gathermemorials.normalizers.pagination import normalize_cursor_page, normalize_offset_page
from gathermemorials.utils.decorators import login_optional, login_required
from gathermemorials.utils.pagination import clamp_limit
from gathermemorials.utils.rate_limit import guestbook_limit, identity_key
from . import v1_bp
from .memorials import PASSWORD_HEADER


@v1_bp.route("/guestbook/entries", methods=["POST"])
@limiter.limit(guestbook_limit, key_func=identity_key)
@login_required
def submit_entry_route():
    data = request.get_json(silent=True) or {}
    entry = submit_entry(author=g.current_user, data=data)

    return jsonify({
        "success": True,
        "entry": normalize_entry(entry),
        "requires_moderation": entry.status == EntryStatus.PENDING.value,
    }), 201


@v1_bp.route("/memorials/<memorial_id>/guestbook", methods=["GET"])
@login_optional
def list_entries_route(memorial_id):
    page, per_page = parse_page(request.args.get("page"), request.args.get("per_page"))
    entries, total, moderator = list_entries(
        memorial_id=memorial_id,
        user=g.current_user,
        password=request.headers.get(PASSWORD_HEADER),
        status=request.args.get("status"),
        page=page,
        per_page=per_page,
    )

    return jsonify(normalize_offset_page(
        entries,
        lambda entry: normalize_entry(entry, moderator=moderator),
        page=page,
        per_page=per_page,
        total=total,
        key="entries",
    )), 200


@v1_bp.route("/guestbook/entries/<entry_id>", methods=["DELETE"])
@login_required
def delete_entry_route(entry_id):
    delete_entry(entry_id=entry_id, actor=g.current_user)
    return jsonify({"success": True, "message": "Entry deleted successfully"}), 200


# ------------------------
# Moderation
# ------------------------

@v1_bp.route("/guestbook/moderate", methods=["PUT"])
@login_required
def moderate_route():
    data = request.get_json(silent=True) or {}
    result = moderate_entries(
        actor=g.current_user,
        action=data.get("action"),
        entry_id=data.get("entry_id"),
        entry_ids=data.get("entry_ids"),
        reason=data.get("reason"),
    )
    return jsonify(result), 200


@v1_bp.route("/guestbook/moderation/queue", methods=["GET"])
@login_required
def moderation_queue_route():
    entries, cursor = moderation_queue(
        actor=g.current_user,
        memorial_id=request.args.get("memorial_id"),
        cursor=request.args.get("cursor"),
        limit=clamp_limit(request.args.get("limit")),
    )
    return jsonify(normalize_cursor_page(entries, normalize_queue_entry, cursor, key="entries")), 200


@v1_bp.route("/guestbook/moderation/stats", methods=["GET"])
@login_required
def moderation_stats_route():
    return jsonify(moderation_stats(actor=g.current_user)), 200


# ------------------------
# Blocks
# ------------------------

@v1_bp.route("/guestbook/blocks", methods=["GET"])
@login_required
def list_blocks_route():
    blocks = list_blocks(actor=g.current_user)
    return jsonify({"blocked_users": [normalize_blocked_user(b) for b in blocks]}), 200


@v1_bp.route("/guestbook/blocks", methods=["POST"])
@login_required
def block_user_route():
    data = request.get_json(silent=True) or {}
    result = block_user(actor=g.current_user, user_id=data.get("user_id"), reason=data.get("reason"))
    return jsonify(result), 201


@v1_bp.route("/guestbook/blocks/<user_id>", methods=["DELETE"])
@login_required
def unblock_user_route(user_id):
    unblock_user(actor=g.current_user, user_id=user_id)
    return jsonify({"success": True, "message": "User has been unblocked"}), 200
