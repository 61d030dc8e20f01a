"""Domain exceptions for authentication and authorization.

Each exception carries a stable machine-readable ``code`` and the HTTP status
the API boundary maps it to. The domain itself never depends on HTTP; the
status is only a classification hint for the boundary layer.
"""

from typing import Any


class GatehouseError(Exception):
    """Base class for all Gatehouse domain errors."""

    code = "ERROR"
    status_code = 400
    default_message = "Request could not be processed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationFailed(GatehouseError):
    """Raised when credentials or a bearer token are rejected."""

    code = "AUTHENTICATION_FAILED"
    status_code = 401
    default_message = "Unauthenticated."


class AccountSuspended(GatehouseError):
    """Raised when an authenticated principal has been deactivated.

    Distinct from AuthenticationFailed so clients can show a dedicated notice
    instead of a "bad credentials" message.
    """

    code = "ACCOUNT_SUSPENDED"
    status_code = 423
    default_message = "Account suspended."


class AccessDenied(GatehouseError):
    """Raised when an authenticated principal lacks the required ability."""

    code = "ACCESS_DENIED"
    status_code = 403
    default_message = "Unauthorized."

    def __init__(
        self, message: str | None = None, action: str | None = None, subject: str | None = None
    ) -> None:
        self.action = action
        self.subject = subject
        super().__init__(message)


class NotFound(GatehouseError):
    """Raised when a user, role or permission does not exist."""

    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found."


class ValidationFailed(GatehouseError):
    """Raised with structured per-field errors.

    Attributes:
        errors: Mapping of field name to ``{"key": rule, "message": text}``.
    """

    code = "VALIDATION_FAILED"
    status_code = 422
    default_message = "Validation failed"

    def __init__(
        self, message: str | None = None, errors: dict[str, dict[str, Any]] | None = None
    ) -> None:
        self.errors = errors or {}
        super().__init__(message)

    @classmethod
    def for_field(cls, field: str, key: str, message: str) -> "ValidationFailed":
        """Build a validation error for a single field."""
        return cls(errors={field: {"key": key, "message": message}})


class TransientNetworkFailure(GatehouseError):
    """Raised by clients when the server could not be reached."""

    code = "NETWORK_FAILURE"
    status_code = 503
    default_message = "The server could not be reached."
