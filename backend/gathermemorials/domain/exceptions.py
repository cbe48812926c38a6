class DomainError(Exception):
    """Base for errors raised by application services.

    Each subclass carries the HTTP status the API layer responds with.
    """
    status_code = 400

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra


class InvariantViolation(DomainError):
    status_code = 400


class AuthenticationRequired(DomainError):
    status_code = 401


class PermissionDenied(DomainError):
    status_code = 403


class NotFound(DomainError):
    status_code = 404


class Conflict(DomainError):
    status_code = 409


class IllegalTransition(Conflict):
    pass


class ServiceUnavailable(DomainError):
    status_code = 503
