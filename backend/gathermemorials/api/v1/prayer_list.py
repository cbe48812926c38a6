from flask import g, request, jsonify, Response
from gathermemorials.application.prayer_list.manage_entries import (
    add_to_prayer_list,
    remove_from_prayer_list,
    update_prayer_entry,
)
from gathermemorials.application.prayer_list.overview import (
    export_prayer_list,
    memorial_visible,
    prayer_list_overview,
)
from gathermemorials.application.prayer_list.reminders import (
    reminder_overview,
    send_test_reminder,
    update_reminder_preferences,
)
from gathermemorials.normalizers.prayer_list import (
    normalize_prayer_entry,
    normalize_prayer_stats,
    normalize_reminder_preferences,
)
from gathermemorials.utils.decorators import login_required
from . import v1_bp
from .memorials import PASSWORD_HEADER


@v1_bp.route("/prayer-list", methods=["GET"])
@login_required
def prayer_list_route():
    overview = prayer_list_overview(actor=g.current_user)
    visible_ids = overview["visible_ids"]

    return jsonify({
        "prayer_list": [
            normalize_prayer_entry(e, show_memorial=e.memorial_id in visible_ids)
            for e in overview["entries"]
        ],
        "anniversaries": overview["anniversaries"],
        "stats": normalize_prayer_stats(overview["stats"]),
    }), 200


@v1_bp.route("/prayer-list", methods=["POST"])
@login_required
def add_to_prayer_list_route():
    data = request.get_json(silent=True) or {}
    entry, reactivated = add_to_prayer_list(
        actor=g.current_user,
        memorial_id=data.get("memorial_id"),
        notes=data.get("notes"),
        password=request.headers.get(PASSWORD_HEADER),
    )

    return jsonify({
        "success": True,
        "item": normalize_prayer_entry(entry),
        "message": "Memorial re-added to prayer list" if reactivated else "Memorial added to prayer list",
    }), 200 if reactivated else 201


@v1_bp.route("/prayer-list/<entry_id>", methods=["PATCH"])
@login_required
def update_prayer_entry_route(entry_id):
    data = request.get_json(silent=True) or {}
    entry = update_prayer_entry(actor=g.current_user, entry_id=entry_id, data=data)
    item = normalize_prayer_entry(entry, show_memorial=memorial_visible(entry, g.current_user))

    return jsonify({"success": True, "item": item}), 200


@v1_bp.route("/prayer-list/<entry_id>", methods=["DELETE"])
@login_required
def remove_from_prayer_list_route(entry_id):
    remove_from_prayer_list(actor=g.current_user, entry_id=entry_id)
    return jsonify({"success": True, "message": "Removed from prayer list"}), 200


@v1_bp.route("/prayer-list/export", methods=["GET"])
@login_required
def export_prayer_list_route():
    export = export_prayer_list(actor=g.current_user, fmt=request.args.get("format"))
    disposition = {"Content-Disposition": f'attachment; filename="{export["filename"]}"'}

    if export["mimetype"] == "application/json":
        response = jsonify(export["content"])
        response.headers.update(disposition)
        return response, 200

    return Response(export["content"], mimetype=export["mimetype"], headers=disposition)


@v1_bp.route("/prayer-list/reminders", methods=["GET"])
@login_required
def reminder_preferences_route():
    overview = reminder_overview(actor=g.current_user)

    return jsonify({
        "preferences": normalize_reminder_preferences(overview["preferences"]),
        "is_default": overview["is_default"],
        "statistics": overview["statistics"],
        "upcoming_reminders": overview["upcoming_reminders"],
        "upcoming_feast_days": overview["upcoming_feast_days"],
    }), 200


@v1_bp.route("/prayer-list/reminders", methods=["PUT", "PATCH"])
@login_required
def update_reminder_preferences_route():
    prefs = update_reminder_preferences(actor=g.current_user, data=request.get_json(silent=True))

    return jsonify({
        "message": "Reminder preferences updated successfully",
        "preferences": normalize_reminder_preferences(prefs),
    }), 200


@v1_bp.route("/prayer-list/reminders/test", methods=["POST"])
@login_required
def send_test_reminder_route():
    result = send_test_reminder(actor=g.current_user)
    return jsonify({"message": "Test reminder email sent", **result}), 200
