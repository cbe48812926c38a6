from flask import g, request, jsonify
from gathermemorials.application.media.manage_media import (
    check_upload,
    delete_media,
    register_media,
    signature_for,
    update_media,
    upload_media,
)
from gathermemorials.normalizers.media import normalize_media
from gathermemorials.services import media_cdn
from gathermemorials.utils.decorators import feature_configured, login_required
from . import v1_bp


@v1_bp.route("/uploads/signature", methods=["POST"])
@login_required
@feature_configured(media_cdn.is_configured, "Media storage")
def upload_signature_route():
    data = request.get_json(silent=True) or {}
    params = signature_for(
        actor=g.current_user,
        folder=data.get("folder"),
        memorial_id=data.get("memorial_id"),
    )
    return jsonify(params), 200


@v1_bp.route("/uploads/media", methods=["POST"])
@login_required
@feature_configured(media_cdn.is_configured, "Media storage")
def upload_media_route():
    asset = upload_media(
        actor=g.current_user,
        file=request.files.get("file"),
        memorial_id=request.form.get("memorial_id"),
        media_type=request.form.get("media_type"),
        caption=request.form.get("caption"),
        is_primary=request.form.get("is_primary", False),
    )
    return jsonify({"success": True, "media": normalize_media(asset)}), 201


@v1_bp.route("/uploads/media/register", methods=["POST"])
@login_required
def register_media_route():
    data = request.get_json(silent=True) or {}
    asset = register_media(actor=g.current_user, data=data)
    return jsonify({"success": True, "media": normalize_media(asset)}), 201


@v1_bp.route("/uploads/media/<asset_id>", methods=["PATCH"])
@login_required
def update_media_route(asset_id):
    data = request.get_json(silent=True) or {}
    asset = update_media(actor=g.current_user, asset_id=asset_id, data=data)
    return jsonify({"success": True, "media": normalize_media(asset)}), 200


@v1_bp.route("/uploads/media/<asset_id>", methods=["DELETE"])
@login_required
@feature_configured(media_cdn.is_configured, "Media storage")
def delete_media_route(asset_id):
    cdn_deleted = delete_media(actor=g.current_user, asset_id=asset_id)
    return jsonify({"success": True, "cdn_deleted": cdn_deleted}), 200


@v1_bp.route("/uploads/validate", methods=["GET"])
@login_required
def validate_upload_route():
    result = check_upload(
        size=request.args.get("size"),
        mimetype=request.args.get("type"),
        media_type=request.args.get("media_type"),
    )
    return jsonify(result), 200
