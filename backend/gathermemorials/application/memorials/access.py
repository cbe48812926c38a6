from gathermemorials.extensions import db
from gathermemorials.domain.exceptions import (
    AuthenticationRequired,
    NotFound,
    PermissionDenied,
)
from gathermemorials.domain.lifecycle.memorial import MemorialStatus
from gathermemorials.models.memorial import Memorial
from gathermemorials.models.memorial_collaborator import MemorialCollaborator

MODERATOR_ROLES = {"editor", "moderator"}


def get_memorial(memorial_id: str) -> Memorial:
    memorial = db.session.get(Memorial, memorial_id)
    if not memorial:
        raise NotFound("Memorial not found")
    return memorial


def get_memorial_by_url(custom_url: str) -> Memorial:
    memorial = Memorial.query.filter_by(custom_url=custom_url).first()
    if not memorial:
        raise NotFound("Memorial not found")
    return memorial


def is_owner(memorial: Memorial, user) -> bool:
    return user is not None and memorial.user_id == user.id


def get_owned_memorial(memorial_id: str, user, action: str = "edit") -> Memorial:
    memorial = get_memorial(memorial_id)
    if not is_owner(memorial, user):
        raise PermissionDenied(f"You do not have permission to {action} this memorial.")
    return memorial


def can_moderate(memorial: Memorial, user_id: str) -> bool:
    """Owners and delegated editors/moderators may moderate the guestbook."""
    if memorial.user_id == user_id:
        return True

    collaborator = MemorialCollaborator.query.filter_by(
        memorial_id=memorial.id,
        user_id=user_id,
    ).first()
    return bool(collaborator and collaborator.role in MODERATOR_ROLES)


def assert_can_view(memorial: Memorial, user, password: str | None = None) -> bool:
    """
    Privacy gate for reads. Returns True when the caller is the owner.

    Visitors only ever see published memorials; private ones are closed to
    them and password-protected ones need the password.
    """
    if is_owner(memorial, user):
        return True

    if memorial.status == MemorialStatus.DELETED.value:
        raise NotFound("Memorial not found")

    if memorial.status != MemorialStatus.PUBLISHED.value:
        raise PermissionDenied("This memorial is not yet published.")

    if memorial.privacy == "private":
        raise PermissionDenied("This memorial is private.")

    if memorial.privacy == "password" and not memorial.check_password(password):
        raise AuthenticationRequired("Password required", requires_password=True)

    return False


def is_listed(memorial: Memorial | None, user) -> bool:
    """
    Whether a saved reference (prayer list, export) may still show the
    memorial: the caller's own, or published and public.
    """
    if memorial is None:
        return False
    if is_owner(memorial, user):
        return True
    return memorial.status == MemorialStatus.PUBLISHED.value and memorial.privacy == "public"
