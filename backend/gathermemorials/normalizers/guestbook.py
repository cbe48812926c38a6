from .timestamps import iso


def normalize_entry(entry, moderator=False):
    data = {
        "id": entry.id,
        "memorial_id": entry.memorial_id,
        "author_name": entry.author_name or "Anonymous",
        "message": entry.message,
        "photo_url": entry.photo_url,
        "status": entry.status,
        "created_at": iso(entry.created_at),
    }

    if moderator:
        data["user_id"] = entry.user_id
        data["author_email"] = entry.author_email
        data["moderated_by"] = entry.moderated_by
        data["moderated_at"] = iso(entry.moderated_at)
        data["moderation_reason"] = entry.moderation_reason

    return data


def normalize_queue_entry(entry):
    data = normalize_entry(entry, moderator=True)
    data["memorial_name"] = entry.memorial.full_name
    return data


def normalize_blocked_user(block):
    return {
        "user_id": block.user_id,
        "email": block.user.email if block.user else None,
        "name": block.user.display_name if block.user else None,
        "reason": block.reason,
        "blocked_at": iso(block.created_at),
    }
