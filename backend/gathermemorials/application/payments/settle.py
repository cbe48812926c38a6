import logging
from typing import Any, Dict, Optional
from flask import current_app
from gathermemorials.extensions import db
from gathermemorials.models.base import utcnow
from gathermemorials.models.memorial import Memorial
from gathermemorials.models.payment import Payment
from gathermemorials.domain.exceptions import DomainError, InvariantViolation, PermissionDenied
from gathermemorials.domain.lifecycle.memorial import MemorialStatus
from gathermemorials.application.memorials.publish_memorial import apply_publish, lock_memorial
from gathermemorials.services import payments
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.transaction import transactional

logger = logging.getLogger(__name__)


def mark_paid(
    *,
    memorial: Memorial,
    session: Dict[str, Any],
    actor_id: Optional[str],
) -> Dict[str, Any]:
    """
    Records a completed checkout and publishes the memorial if it is still
    a draft.

    Safe to call more than once for the same session: the payment row is
    keyed on the session id.
    """
    published = False

    with transactional():
        memorial.payment_status = "paid"
        memorial.stripe_session_id = session["id"]

        if memorial.status == MemorialStatus.DRAFT.value:
            try:
                apply_publish(memorial)
                published = True
            except DomainError as exc:
                # Paid but incomplete; the owner publishes once it is fixed
                logger.warning("Memorial %s paid but not published: %s", memorial.id, exc.message)

        payment = Payment.query.filter_by(stripe_session_id=session["id"]).first()
        if not payment:
            payment = Payment()
            payment.memorial_id = memorial.id
            payment.user_id = session["metadata"]["user_id"] or memorial.user_id
            payment.stripe_session_id = session["id"]
            payment.stripe_payment_intent = session["payment_intent"]
            payment.amount = session["amount_total"] or current_app.config["MEMORIAL_PRICE_CENTS"]
            payment.currency = session["currency"] or current_app.config["MEMORIAL_CURRENCY"]
            payment.status = "completed"
            payment.customer_email = session["customer_email"]
            payment.paid_at = utcnow()
            db.session.add(payment)

            log_action(
                action="payment.completed",
                entity_type="memorial",
                entity_id=memorial.id,
                actor_id=actor_id,
                payload={"session_id": session["id"], "published": published},
            )

    return {
        "memorial_id": memorial.id,
        "payment_status": memorial.payment_status,
        "status": memorial.status,
        "published": published,
    }


def verify_payment(
    *,
    actor,
    session_id: Optional[str],
    memorial_id: Optional[str],
) -> Dict[str, Any]:
    """
    Confirms a checkout on the success page, in case the webhook is late.
    """
    if not session_id or not memorial_id:
        raise InvariantViolation("session_id and memorial_id are required")

    session = payments.retrieve_checkout_session(session_id)

    if session["payment_status"] != "paid":
        raise InvariantViolation("Payment has not been completed", payment_status=session["payment_status"])

    metadata = session["metadata"]
    if metadata["user_id"] != actor.id:
        raise PermissionDenied("This checkout session belongs to another account")
    if metadata["memorial_id"] != memorial_id:
        raise InvariantViolation("Checkout session does not match this memorial")

    memorial = lock_memorial(memorial_id)
    if memorial.user_id != actor.id:
        raise PermissionDenied("You do not have permission to verify this memorial.")

    return mark_paid(memorial=memorial, session=session, actor_id=actor.id)


def handle_webhook(*, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """
    Applies a verified Stripe event. Unknown event types are acknowledged
    and ignored.
    """
    if not signature:
        raise InvariantViolation("Missing Stripe-Signature header")

    event = payments.construct_event(payload, signature)
    event_type = event["type"]
    session = event["session"]
    metadata = session["metadata"]
    memorial_id = metadata["memorial_id"]

    if event_type == "checkout.session.completed":
        memorial = db.session.get(Memorial, memorial_id) if memorial_id else None
        if not memorial or memorial.user_id != metadata["user_id"]:
            logger.error("Checkout session %s has no matching memorial", session["id"])
            return {"received": True, "handled": False}

        result = mark_paid(memorial=lock_memorial(memorial.id), session=session, actor_id=None)
        logger.info("Payment successful for memorial %s", memorial.id)
        return {"received": True, "handled": True, **result}

    if event_type == "checkout.session.expired":
        memorial = db.session.get(Memorial, memorial_id) if memorial_id else None
        if memorial and memorial.payment_status != "paid":
            with transactional():
                memorial.payment_status = "unpaid"
                memorial.stripe_session_id = None
            logger.info("Checkout session expired for memorial %s", memorial.id)
        return {"received": True, "handled": memorial is not None}

    if event_type == "payment_intent.payment_failed":
        memorial = db.session.get(Memorial, memorial_id) if memorial_id else None
        if memorial and memorial.payment_status != "paid":
            with transactional():
                memorial.payment_status = "failed"
            logger.info("Payment failed for memorial %s", memorial.id)
        return {"received": True, "handled": memorial is not None}

    logger.info("Unhandled Stripe event type: %s", event_type)
    return {"received": True, "handled": False}
