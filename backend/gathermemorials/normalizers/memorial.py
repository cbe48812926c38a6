from .media import normalize_media
from .timestamps import iso

# Visible to the owner only
OWNER_FIELDS = (
    "guestbook_notify_email",
    "guestbook_notify_frequency",
    "payment_status",
    "current_step",
    "completed_steps",
    "last_saved_at",
    "view_count",
    "archived_at",
    "deleted_at",
)


def normalize_service(service):
    return {
        "id": service.id,
        "type": service.service_type,
        "date": iso(service.date),
        "time": service.time,
        "location": service.location,
        "address": service.address,
        "notes": service.notes,
    }


def normalize_memorial(memorial, owner=False):
    """
    API view of a memorial. Visitors get the public page only; the password
    hash is never included.
    """
    data = {
        "id": memorial.id,
        "status": memorial.status,
        "first_name": memorial.first_name,
        "middle_name": memorial.middle_name,
        "last_name": memorial.last_name,
        "nickname": memorial.nickname,
        "full_name": memorial.full_name,
        "date_of_birth": iso(memorial.date_of_birth),
        "date_of_death": iso(memorial.date_of_death),
        "featured_photo_url": memorial.featured_photo_url,
        "cover_photo_url": memorial.cover_photo_url,
        "headline": memorial.headline,
        "obituary": memorial.obituary,
        "donation_enabled": memorial.donation_enabled,
        "donation_type": memorial.donation_type,
        "donation_url": memorial.donation_url,
        "donation_description": memorial.donation_description,
        "guestbook_enabled": memorial.guestbook_enabled,
        "guestbook_moderated": memorial.guestbook_moderated,
        "privacy": memorial.privacy,
        "custom_url": memorial.custom_url,
        "seo_enabled": memorial.seo_enabled,
        "published_at": iso(memorial.published_at),
        "created_at": iso(memorial.created_at),
        "updated_at": iso(memorial.updated_at),
        "services": [normalize_service(s) for s in memorial.services],
        "media": [normalize_media(m) for m in memorial.media],
    }

    if owner:
        for field in OWNER_FIELDS:
            value = getattr(memorial, field)
            data[field] = iso(value) if field.endswith("_at") else value
        data["has_password"] = memorial.password_hash is not None

    return data


def normalize_memorial_summary(memorial):
    return {
        "id": memorial.id,
        "full_name": memorial.full_name,
        "status": memorial.status,
        "privacy": memorial.privacy,
        "custom_url": memorial.custom_url,
        "featured_photo_url": memorial.featured_photo_url,
        "date_of_birth": iso(memorial.date_of_birth),
        "date_of_death": iso(memorial.date_of_death),
        "current_step": memorial.current_step,
        "updated_at": iso(memorial.updated_at),
    }


def normalize_collaborator(collaborator):
    return {
        "user_id": collaborator.user_id,
        "email": collaborator.user.email,
        "name": collaborator.user.display_name,
        "role": collaborator.role,
        "invited_by": collaborator.invited_by,
        "created_at": iso(collaborator.created_at),
    }
