from flask import g, request, jsonify
from gathermemorials.application.payments.checkout import pricing, session_status, start_checkout
from gathermemorials.application.payments.settle import handle_webhook, verify_payment
from gathermemorials.services import payments
from gathermemorials.utils.decorators import feature_configured, login_required
from . import v1_bp


@v1_bp.route("/payments/checkout", methods=["POST"])
@login_required
@feature_configured(payments.is_configured, "Payment processing")
def checkout_route():
    data = request.get_json(silent=True) or {}
    result = start_checkout(actor=g.current_user, memorial_id=data.get("memorial_id"))
    return jsonify(result), 200


@v1_bp.route("/payments/session", methods=["GET"])
@login_required
@feature_configured(payments.is_configured, "Payment processing")
def session_status_route():
    result = session_status(actor=g.current_user, session_id=request.args.get("session_id"))
    return jsonify(result), 200


@v1_bp.route("/payments/verify", methods=["POST"])
@login_required
@feature_configured(payments.is_configured, "Payment processing")
def verify_payment_route():
    data = request.get_json(silent=True) or {}
    result = verify_payment(
        actor=g.current_user,
        session_id=data.get("session_id"),
        memorial_id=data.get("memorial_id"),
    )
    return jsonify({"success": True, **result}), 200


@v1_bp.route("/payments/webhook", methods=["POST"])
@feature_configured(payments.webhook_configured, "Payment webhooks")
def stripe_webhook_route():
    result = handle_webhook(
        payload=request.get_data(),
        signature=request.headers.get("Stripe-Signature"),
    )
    return jsonify(result), 200


@v1_bp.route("/pricing", methods=["GET"])
def pricing_route():
    return jsonify(pricing()), 200
