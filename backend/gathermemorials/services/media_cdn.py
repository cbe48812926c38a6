"""
Cloudinary passthrough for memorial photos and videos.
"""
import logging
import time
from typing import Any, Dict, Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
import cloudinary.utils
from flask import current_app

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    config = current_app.config
    return all(
        config.get(key)
        for key in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")
    )


def _configure():
    config = current_app.config
    cloudinary.config(
        cloud_name=config["CLOUDINARY_CLOUD_NAME"],
        api_key=config["CLOUDINARY_API_KEY"],
        api_secret=config["CLOUDINARY_API_SECRET"],
        secure=True,
    )


def upload_url(resource_type: str = "auto") -> str:
    cloud_name = current_app.config["CLOUDINARY_CLOUD_NAME"]
    return f"https://api.cloudinary.com/v1_1/{cloud_name}/{resource_type}/upload"


def signed_upload_params(folder: str, transformation: Optional[str] = None) -> Dict[str, Any]:
    """
    Parameters a browser needs to upload straight to Cloudinary.
    """
    _configure()
    config = current_app.config

    params: Dict[str, Any] = {"timestamp": int(time.time()), "folder": folder}
    if transformation:
        params["transformation"] = transformation

    signature = cloudinary.utils.api_sign_request(params, config["CLOUDINARY_API_SECRET"])

    return {
        **params,
        "signature": signature,
        "api_key": config["CLOUDINARY_API_KEY"],
        "cloud_name": config["CLOUDINARY_CLOUD_NAME"],
        "upload_url": upload_url(),
    }


def _thumbnail_url(public_id: str, resource_type: str) -> str:
    options = {"width": 400, "height": 400, "crop": "fill", "secure": True}
    if resource_type == "video":
        options["format"] = "jpg"
    url, _ = cloudinary.utils.cloudinary_url(public_id, resource_type=resource_type, **options)
    return url


def upload_file(file, *, folder: str, public_id: str, resource_type: str) -> Dict[str, Any]:
    _configure()
    result = cloudinary.uploader.upload(
        file,
        folder=folder,
        public_id=public_id,
        resource_type=resource_type,
        overwrite=False,
    )
    logger.info("Uploaded %s to %s", result.get("public_id"), folder)

    return {
        "url": result["secure_url"],
        "public_id": result["public_id"],
        "thumbnail_url": _thumbnail_url(result["public_id"], resource_type),
        "width": result.get("width"),
        "height": result.get("height"),
        "format": result.get("format"),
        "size_bytes": result.get("bytes"),
        "duration": result.get("duration"),
    }


def destroy(public_id: str, resource_type: str = "image") -> bool:
    """
    Deletes a CDN asset. Failures are logged and reported through the
    return value.
    """
    _configure()
    try:
        result = cloudinary.uploader.destroy(public_id, resource_type=resource_type)
    except cloudinary.exceptions.Error as exc:
        logger.error("Failed to delete CDN asset %s: %s", public_id, exc)
        return False

    deleted = result.get("result") == "ok"
    if not deleted:
        logger.warning("CDN did not delete %s: %s", public_id, result)
    return deleted
