import uuid
from werkzeug.utils import secure_filename

from gathermemorials.domain.exceptions import InvariantViolation

MEDIA_RULES = {
    "photo": {
        "max_size": 10 * 1024 * 1024,
        "mimetypes": {"image/jpeg", "image/png", "image/gif", "image/webp"},
        "resource_type": "image",
    },
    "video": {
        "max_size": 100 * 1024 * 1024,
        "mimetypes": {"video/mp4", "video/quicktime", "video/webm"},
        "resource_type": "video",
    },
}

ALLOWED_FOLDERS = {"photos", "videos", "featured", "cover", "guestbook"}


def media_rules(media_type):
    try:
        return MEDIA_RULES[media_type]
    except KeyError:
        raise InvariantViolation("media_type must be 'photo' or 'video'")


def validate_media(*, media_type, mimetype, size):
    """
    Checks a file's declared type and size against the limits for its
    media type. Returns the rules that applied.
    """
    rules = media_rules(media_type)

    if mimetype not in rules["mimetypes"]:
        allowed = ", ".join(sorted(rules["mimetypes"]))
        raise InvariantViolation(f"File type not allowed. Allowed types: {allowed}")

    if not size or size <= 0:
        raise InvariantViolation("File is empty")

    if size > rules["max_size"]:
        limit_mb = rules["max_size"] // (1024 * 1024)
        raise InvariantViolation(f"File is too large. Maximum size is {limit_mb}MB")

    return rules


def file_size(file):
    """Size of an uploaded werkzeug FileStorage without reading it into memory."""
    stream = file.stream
    position = stream.tell()
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(position)
    return size


def upload_public_id(filename):
    """
    Unique, CDN-safe public id derived from the uploaded filename.
    """
    stem = secure_filename(filename or "").rsplit(".", 1)[0] or "upload"
    return f"{stem[:40]}-{uuid.uuid4().hex[:12]}"


def upload_folder(*, memorial_id, owner_id, folder):
    if folder not in ALLOWED_FOLDERS:
        raise InvariantViolation(f"Invalid folder: {folder}")
    return f"memorials/{memorial_id or owner_id}/{folder}"
