"""
Stripe checkout for memorial publishing.

Thin wrapper so the rest of the app deals in plain dicts and never touches
Stripe objects directly.
"""
import logging
from typing import Any, Dict

import stripe
from flask import current_app

from gathermemorials.domain.exceptions import InvariantViolation

logger = logging.getLogger(__name__)

PLACEHOLDER_KEYS = {"", "sk_test_your_stripe_secret_key"}


def _get(obj, key, default=None):
    try:
        value = obj[key]
    except (KeyError, TypeError, AttributeError):
        return default
    return default if value is None else value


def is_configured() -> bool:
    key = current_app.config.get("STRIPE_SECRET_KEY")
    return bool(key) and key not in PLACEHOLDER_KEYS


def webhook_configured() -> bool:
    return bool(current_app.config.get("STRIPE_WEBHOOK_SECRET"))


def _client():
    stripe.api_key = current_app.config["STRIPE_SECRET_KEY"]
    return stripe


def _session_dict(session) -> Dict[str, Any]:
    metadata = _get(session, "metadata", {}) or {}
    payment_intent = _get(session, "payment_intent")
    if payment_intent is not None and not isinstance(payment_intent, str):
        payment_intent = _get(payment_intent, "id")

    return {
        "id": _get(session, "id"),
        "url": _get(session, "url"),
        "payment_status": _get(session, "payment_status"),
        "status": _get(session, "status"),
        "amount_total": _get(session, "amount_total"),
        "currency": _get(session, "currency"),
        "customer_email": _get(session, "customer_email"),
        "payment_intent": payment_intent,
        "metadata": {
            "memorial_id": _get(metadata, "memorial_id"),
            "user_id": _get(metadata, "user_id"),
        },
    }


def create_checkout_session(*, memorial, user) -> Dict[str, Any]:
    config = current_app.config
    app_url = config["APP_URL"].rstrip("/")

    session = _client().checkout.Session.create(
        payment_method_types=["card"],
        line_items=[{"price": config["STRIPE_MEMORIAL_PRICE_ID"], "quantity": 1}],
        mode="payment",
        success_url=f"{app_url}/memorials/{memorial.id}/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{app_url}/memorials/new?step=9&memorial={memorial.id}",
        customer_email=user.email,
        metadata={
            "memorial_id": memorial.id,
            "user_id": user.id,
            "deceased_name": memorial.full_name,
        },
        payment_intent_data={
            "metadata": {"memorial_id": memorial.id, "user_id": user.id},
        },
    )
    logger.info("Created checkout session %s for memorial %s", _get(session, "id"), memorial.id)
    return _session_dict(session)


def retrieve_checkout_session(session_id: str) -> Dict[str, Any]:
    try:
        session = _client().checkout.Session.retrieve(session_id, expand=["payment_intent"])
    except stripe.InvalidRequestError as exc:
        raise InvariantViolation("Unknown checkout session") from exc
    return _session_dict(session)


def construct_event(payload: bytes, signature: str) -> Dict[str, Any]:
    """
    Verifies a webhook payload. Raises InvariantViolation on a bad signature.
    """
    secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    try:
        event = stripe.Webhook.construct_event(payload, signature, secret)
    except (ValueError, stripe.SignatureVerificationError) as exc:
        logger.warning("Webhook signature verification failed: %s", exc)
        raise InvariantViolation("Invalid signature") from exc

    obj = _get(_get(event, "data", {}), "object", {})
    return {
        "type": _get(event, "type"),
        "object": obj,
        "session": _session_dict(obj),
    }
