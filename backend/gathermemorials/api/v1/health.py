from flask import jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from gathermemorials.extensions import db
from gathermemorials.services import media_cdn, payments
from . import v1_bp

@v1_bp.route('/health', methods=['GET'])
def health_check():
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        database = "unavailable"

    return jsonify({
        "status": "ok" if database == "ok" else "degraded",
        "service": "gathermemorials-api",
        "database": database,
        "payments_configured": payments.is_configured(),
        "media_configured": media_cdn.is_configured(),
    }), 200 if database == "ok" else 503
