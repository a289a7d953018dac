# ischoolgo/backend/errors.py

class ServiceError(Exception):
    """Base class for every error the service layer surfaces to callers."""
    title = "Service error"
    status_code = 500


class ValidationError(ServiceError):
    """Required fields are missing or a value is malformed."""
    title = "Invalid request"
    status_code = 422


class AuthenticationError(ServiceError):
    """The credentials were rejected."""
    title = "Unauthorized"
    status_code = 401


class NotFoundError(ServiceError):
    """The referenced id does not exist."""
    title = "Not found"
    status_code = 404


class ConflictError(ServiceError):
    """A write collided with an existing unique key."""
    title = "Conflict"
    status_code = 409


class AuthorizationError(ServiceError):
    """The caller's role may not use the requested operation."""
    title = "Forbidden"
    status_code = 403


class StoreError(ServiceError):
    """The database call failed (network, constraint, auth)."""
    title = "Database error"
    status_code = 503


class ExternalServiceError(ServiceError):
    """The generative-text or identity service failed or answered non-2xx."""
    title = "External service error"
    status_code = 502
