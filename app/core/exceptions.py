"""
Intake Token Errors

Typed failures raised while minting, verifying or revoking intake tokens.

Every error carries a short machine ``reason`` for logs and the HTTP status
the public endpoints answer with. Clients only ever see ``public_detail``,
so a rejected token never reveals *why* it was rejected.
"""

from fastapi import status


class IntakeTokenError(Exception):
    """Base class for all intake token failures."""

    reason: str = "invalid_token"
    status_code: int = status.HTTP_401_UNAUTHORIZED
    public_detail: str = "Invalid or expired"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.reason)


class ConfigurationError(IntakeTokenError):
    """The intake token secret is missing or empty (deployment fault)."""

    reason = "missing_secret"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_detail = "Server misconfiguration"


class MalformedTokenError(IntakeTokenError):
    """The token is structurally invalid or its payload has the wrong shape."""

    reason = "malformed_token"


class InvalidSignatureError(IntakeTokenError):
    """The token signature does not match the payload segment."""

    reason = "invalid_signature"


class ExpiredTokenError(IntakeTokenError):
    """An expiring token has reached its deadline."""

    reason = "token_expired"


class RevokedTokenError(IntakeTokenError):
    """The token was explicitly revoked before its natural expiry."""

    reason = "token_revoked"


class DenylistFullError(Exception):
    """The revocation denylist has no room left for another entry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    public_detail = "Revocation list is full, try again later"
