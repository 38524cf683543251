"""
auth/errors.py -- Typed error taxonomy for the credential and token lifecycle.

Each error carries the HTTP status it maps to and a client-safe message. The
API layer renders every AuthError into the same JSON envelope, so route
handlers raise and never build error responses by hand.

Messages are deliberately generic. InvalidCredentials is raised for both an
unknown email and a wrong password so the response cannot be used to probe
for registered accounts. StorageError never exposes the underlying driver
error to clients; the original exception is chained for server-side logs.

Layer rule: stdlib only. No imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every error the auth layer surfaces to callers."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AuthError):
    """Client input failed validation. Carries every field error, not just the first."""

    status_code = 400
    message = "Validation failed"

    def __init__(self, errors: list[dict[str, str]], message: str | None = None) -> None:
        super().__init__(message)
        self.errors = errors


class EmailTaken(AuthError):
    status_code = 409
    message = "Email already registered"


class DuplicateEmail(EmailTaken):
    """Raised by the store when the UNIQUE(email) constraint rejects an insert.

    Subclasses EmailTaken so a uniqueness race that escapes the registration
    flow still renders as 409 rather than a generic 500.
    """


class InvalidCredentials(AuthError):
    status_code = 401
    message = "Invalid credentials"


class MissingToken(AuthError):
    status_code = 401
    message = "Access token is required"


class TokenExpired(AuthError):
    status_code = 401
    message = "Token expired"


class TokenInvalid(AuthError):
    status_code = 403
    message = "Invalid token"


class NotFound(AuthError):
    status_code = 404
    message = "User not found"


class StorageError(AuthError):
    """Connectivity, DDL, or query failure in the credential store."""

    status_code = 500
    message = "Internal server error"
