from typing import List
from sqlalchemy.exc import IntegrityError
from gathermemorials.extensions import db
from gathermemorials.models.memorial_collaborator import MemorialCollaborator
from gathermemorials.models.user import User
from gathermemorials.domain.exceptions import Conflict, InvariantViolation, NotFound
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.transaction import transactional
from .access import MODERATOR_ROLES, get_owned_memorial


def list_collaborators(*, memorial_id: str, actor) -> List[MemorialCollaborator]:
    memorial = get_owned_memorial(memorial_id, actor, action="view")
    return (
        MemorialCollaborator.query
        .filter_by(memorial_id=memorial.id)
        .order_by(MemorialCollaborator.created_at.asc())
        .all()
    )


def add_collaborator(
    *,
    memorial_id: str,
    actor,
    email: str | None,
    role: str = "moderator",
) -> MemorialCollaborator:
    """
    Invites an existing user to help moderate a memorial.
    """
    memorial = get_owned_memorial(memorial_id, actor, action="share")

    if not email:
        raise InvariantViolation("email is required")
    if role not in MODERATOR_ROLES:
        raise InvariantViolation(f"role must be one of: {', '.join(sorted(MODERATOR_ROLES))}")

    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user or not user.is_active:
        raise NotFound("No account exists for that email")
    if user.id == memorial.user_id:
        raise InvariantViolation("The owner cannot be added as a collaborator")

    collaborator = MemorialCollaborator()
    collaborator.memorial_id = memorial.id
    collaborator.user_id = user.id
    collaborator.role = role
    collaborator.invited_by = actor.id

    try:
        with transactional():
            db.session.add(collaborator)
            db.session.flush()

            log_action(
                action="memorial.collaborator_add",
                entity_type="memorial",
                entity_id=memorial.id,
                actor_id=actor.id,
                payload={"user_id": user.id, "role": role},
            )
    except IntegrityError as exc:
        raise Conflict("That user is already a collaborator") from exc

    return collaborator


def remove_collaborator(*, memorial_id: str, actor, user_id: str) -> None:
    memorial = get_owned_memorial(memorial_id, actor, action="share")

    collaborator = MemorialCollaborator.query.filter_by(
        memorial_id=memorial.id,
        user_id=user_id,
    ).first()
    if not collaborator:
        raise NotFound("Collaborator not found")

    with transactional():
        db.session.delete(collaborator)

        log_action(
            action="memorial.collaborator_remove",
            entity_type="memorial",
            entity_id=memorial.id,
            actor_id=actor.id,
            payload={"user_id": user_id},
        )
