from typing import Any, Dict, Optional
from flask import current_app
from gathermemorials.domain.exceptions import InvariantViolation, PermissionDenied
from gathermemorials.domain.lifecycle.memorial import MemorialStatus
from gathermemorials.application.memorials.access import get_owned_memorial
from gathermemorials.services import payments
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.transaction import transactional

FEATURES = [
    "Lifetime memorial page",
    "Photo and video gallery",
    "Moderated guestbook",
    "Service information",
    "Privacy controls and custom URL",
]


def start_checkout(*, actor, memorial_id: Optional[str]) -> Dict[str, Any]:
    """
    Opens a Stripe Checkout Session for publishing a memorial.
    """
    if not memorial_id:
        raise InvariantViolation("Memorial ID is required")

    memorial = get_owned_memorial(memorial_id, actor, action="pay for")

    if memorial.payment_status == "paid":
        raise InvariantViolation("Memorial is already paid")
    if memorial.status == MemorialStatus.DELETED.value:
        raise InvariantViolation("Deleted memorials cannot be published")

    session = payments.create_checkout_session(memorial=memorial, user=actor)

    with transactional():
        memorial.payment_status = "pending"
        memorial.stripe_session_id = session["id"]

        log_action(
            action="payment.checkout",
            entity_type="memorial",
            entity_id=memorial.id,
            actor_id=actor.id,
            payload={"session_id": session["id"]},
        )

    return {"session_id": session["id"], "url": session["url"]}


def session_status(*, actor, session_id: Optional[str]) -> Dict[str, Any]:
    if not session_id:
        raise InvariantViolation("session_id is required")

    session = payments.retrieve_checkout_session(session_id)
    if session["metadata"]["user_id"] != actor.id:
        raise PermissionDenied("This checkout session belongs to another account")

    return {
        "session_id": session["id"],
        "status": session["status"],
        "payment_status": session["payment_status"],
        "memorial_id": session["metadata"]["memorial_id"],
        "amount_total": session["amount_total"],
        "currency": session["currency"],
    }


def pricing() -> Dict[str, Any]:
    config = current_app.config
    cents = config["MEMORIAL_PRICE_CENTS"]
    return {
        "plans": [
            {
                "id": "memorial",
                "name": config["MEMORIAL_PRODUCT_NAME"],
                "amount": cents,
                "price": cents / 100,
                "currency": config["MEMORIAL_CURRENCY"],
                "features": FEATURES,
            }
        ]
    }
