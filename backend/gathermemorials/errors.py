from flask import current_app, jsonify
from flask_limiter.errors import RateLimitExceeded
from werkzeug.exceptions import HTTPException
from gathermemorials.domain.exceptions import DomainError
from gathermemorials.extensions import jwt


def _error_response(name, message, status_code, **extra):
    response = jsonify({
        "error": name,
        "message": message,
        **extra,
    })
    response.status_code = status_code
    return response


def register_error_handlers(app):
    @app.errorhandler(DomainError)
    def handle_domain_error(error):
        return _error_response(
            type(error).__name__,
            error.message,
            error.status_code,
            **error.extra,
        )

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(error):
        return _error_response(
            "RateLimitExceeded",
            "Too many requests. Please wait before trying again.",
            429,
            limit=error.description,
        )

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return _error_response(
            error.name.replace(" ", ""),
            error.description,
            error.code,
        )

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        current_app.logger.exception("Unhandled error: %s", error)
        extra = {"detail": str(error)} if current_app.debug else {}
        return _error_response("InternalServerError", "Internal server error", 500, **extra)


# Token problems share the same envelope as everything else
@jwt.unauthorized_loader
def missing_token(reason):
    return _error_response("AuthenticationRequired", "Authentication required", 401, reason=reason)


@jwt.invalid_token_loader
def invalid_token(reason):
    return _error_response("AuthenticationRequired", "Invalid token", 401, reason=reason)


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_payload):
    return _error_response("AuthenticationRequired", "Token has expired", 401)


@jwt.revoked_token_loader
def revoked_token(jwt_header, jwt_payload):
    return _error_response("AuthenticationRequired", "Token has been revoked", 401)
