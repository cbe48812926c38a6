import logging
from typing import Any, Dict, Optional
from sqlalchemy.exc import SQLAlchemyError
from gathermemorials.extensions import db
from gathermemorials.models.media_asset import MediaAsset
from gathermemorials.domain.exceptions import InvariantViolation, NotFound, PermissionDenied
from gathermemorials.application.memorials.access import get_owned_memorial
from gathermemorials.services import media_cdn
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.media import (
    file_size,
    media_rules,
    upload_folder,
    upload_public_id,
    validate_media,
)
from gathermemorials.utils.transaction import transactional

logger = logging.getLogger(__name__)

MAX_CAPTION_LENGTH = 500


def _caption(value) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvariantViolation("caption must be a string")
    if len(value) > MAX_CAPTION_LENGTH:
        raise InvariantViolation(f"caption must be at most {MAX_CAPTION_LENGTH} characters")
    return value.strip() or None


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    # multipart fields arrive as strings
    return str(value).lower() in {"1", "true", "yes", "on"}


def _clear_primary(memorial_id: str, media_type: str, keep_id: Optional[str] = None) -> None:
    query = MediaAsset.query.filter_by(
        memorial_id=memorial_id,
        media_type=media_type,
        is_primary=True,
    )
    if keep_id:
        query = query.filter(MediaAsset.id != keep_id)
    query.update({"is_primary": False}, synchronize_session=False)


def _owned_asset(asset_id: str, actor) -> MediaAsset:
    asset = db.session.get(MediaAsset, asset_id)
    if not asset:
        raise NotFound("Media not found")
    if asset.memorial.user_id != actor.id:
        raise PermissionDenied("You do not have permission to modify this media.")
    return asset


def signature_for(*, actor, folder: Optional[str], memorial_id: Optional[str] = None) -> Dict[str, Any]:
    """Signed parameters for a browser upload straight to the CDN."""
    if memorial_id:
        get_owned_memorial(memorial_id, actor, action="upload to")

    target = upload_folder(memorial_id=memorial_id, owner_id=actor.id, folder=folder or "photos")
    return media_cdn.signed_upload_params(target)


def upload_media(
    *,
    actor,
    file,
    memorial_id: Optional[str],
    media_type: Optional[str],
    caption=None,
    is_primary=False,
) -> MediaAsset:
    """
    Validates and uploads a file, then records it.

    If the row cannot be written the uploaded asset is destroyed again so
    the CDN does not collect orphans.
    """
    if file is None or not file.filename:
        raise InvariantViolation("No file provided")
    if not memorial_id:
        raise InvariantViolation("memorial_id is required")

    media_type = media_type or "photo"
    rules = validate_media(media_type=media_type, mimetype=file.mimetype, size=file_size(file))
    caption = _caption(caption)
    primary = _flag(is_primary)

    memorial = get_owned_memorial(memorial_id, actor, action="upload to")

    folder = upload_folder(
        memorial_id=memorial.id,
        owner_id=actor.id,
        folder="photos" if media_type == "photo" else "videos",
    )
    uploaded = media_cdn.upload_file(
        file,
        folder=folder,
        public_id=upload_public_id(file.filename),
        resource_type=rules["resource_type"],
    )

    try:
        asset = _record_asset(
            actor=actor,
            memorial_id=memorial.id,
            media_type=media_type,
            uploaded=uploaded,
            caption=caption,
            primary=primary,
        )
    except SQLAlchemyError:
        logger.error("Failed to record media %s; removing it from the CDN", uploaded["public_id"])
        media_cdn.destroy(uploaded["public_id"], resource_type=rules["resource_type"])
        raise

    return asset


def _record_asset(*, actor, memorial_id, media_type, uploaded, caption, primary) -> MediaAsset:
    asset = MediaAsset()
    asset.memorial_id = memorial_id
    asset.user_id = actor.id
    asset.media_type = media_type
    asset.url = uploaded["url"]
    asset.public_id = uploaded["public_id"]
    asset.thumbnail_url = uploaded.get("thumbnail_url")
    asset.format = uploaded.get("format")
    asset.size_bytes = uploaded.get("size_bytes")
    asset.width = uploaded.get("width")
    asset.height = uploaded.get("height")
    asset.duration = uploaded.get("duration")
    asset.caption = caption
    asset.is_primary = primary

    with transactional():
        if primary:
            _clear_primary(memorial_id, media_type)

        db.session.add(asset)
        db.session.flush()

        log_action(
            action="media.upload",
            entity_type="media_asset",
            entity_id=asset.id,
            actor_id=actor.id,
            payload={"memorial_id": memorial_id, "media_type": media_type},
        )

    return asset


def register_media(*, actor, data: Dict[str, Any]) -> MediaAsset:
    """
    Records an asset the client already uploaded with a signature.
    """
    memorial_id = data.get("memorial_id")
    media_type = data.get("media_type") or "photo"
    url = data.get("url")
    public_id = data.get("public_id")

    if not memorial_id or not url or not public_id:
        raise InvariantViolation("memorial_id, url and public_id are required")
    if not all(isinstance(value, str) for value in (memorial_id, url, public_id)):
        raise InvariantViolation("memorial_id, url and public_id must be strings")

    media_rules(media_type)
    memorial = get_owned_memorial(memorial_id, actor, action="upload to")

    # Signed uploads land under the memorial's folder
    if not public_id.startswith(f"memorials/{memorial.id}/"):
        raise InvariantViolation("public_id does not belong to this memorial")

    uploaded = {
        "url": url,
        "public_id": public_id,
        "thumbnail_url": data.get("thumbnail_url"),
        "format": data.get("format"),
        "size_bytes": data.get("bytes") or data.get("size_bytes"),
        "width": data.get("width"),
        "height": data.get("height"),
        "duration": data.get("duration"),
    }

    return _record_asset(
        actor=actor,
        memorial_id=memorial.id,
        media_type=media_type,
        uploaded=uploaded,
        caption=_caption(data.get("caption")),
        primary=_flag(data.get("is_primary", False)),
    )


def update_media(*, actor, asset_id: str, data: Dict[str, Any]) -> MediaAsset:
    asset = _owned_asset(asset_id, actor)

    with transactional():
        if "caption" in data:
            asset.caption = _caption(data["caption"])

        if "is_primary" in data:
            primary = _flag(data["is_primary"])
            if primary:
                _clear_primary(asset.memorial_id, asset.media_type, keep_id=asset.id)
            asset.is_primary = primary

        log_action(
            action="media.update",
            entity_type="media_asset",
            entity_id=asset.id,
            actor_id=actor.id,
            payload={"fields": sorted({"caption", "is_primary"} & data.keys())},
        )

    return asset


def delete_media(*, actor, asset_id: str) -> bool:
    """
    Destroys the CDN asset and then the row. Returns whether the CDN
    confirmed the deletion.
    """
    asset = _owned_asset(asset_id, actor)
    resource_type = media_rules(asset.media_type)["resource_type"]

    destroyed = media_cdn.destroy(asset.public_id, resource_type=resource_type)

    with transactional():
        db.session.delete(asset)

        log_action(
            action="media.delete",
            entity_type="media_asset",
            entity_id=asset_id,
            actor_id=actor.id,
            payload={"public_id": asset.public_id, "cdn_deleted": destroyed},
        )

    return destroyed


def check_upload(*, size, mimetype, media_type) -> Dict[str, Any]:
    """Pre-flight check so the client can reject a file before uploading it."""
    try:
        size = int(size)
    except (TypeError, ValueError):
        raise InvariantViolation("size must be an integer")

    rules = validate_media(media_type=media_type or "photo", mimetype=mimetype, size=size)
    return {
        "valid": True,
        "max_size": rules["max_size"],
        "allowed_types": sorted(rules["mimetypes"]),
    }
