from .timestamps import iso


def normalize_media(asset):
    return {
        "id": asset.id,
        "memorial_id": asset.memorial_id,
        "media_type": asset.media_type,
        "url": asset.url,
        "public_id": asset.public_id,
        "thumbnail_url": asset.thumbnail_url,
        "caption": asset.caption,
        "is_primary": asset.is_primary,
        "width": asset.width,
        "height": asset.height,
        "format": asset.format,
        "bytes": asset.size_bytes,
        "duration": asset.duration,
        "created_at": iso(asset.created_at),
    }
