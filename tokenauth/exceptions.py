"""Typed domain errors for the auth service.

Every error carries an HTTP ``status_code`` and a stable ``error_code``. They
are raised where a failure is detected and translated exactly once, at the
API boundary, by ``tokenauth.api.errors``. Messages are shown to clients, so
they must never contain passwords or raw tokens.
"""

from enum import Enum
from typing import Optional


class AuthServiceError(Exception):
    """Base class for service-layer exceptions mapped to HTTP responses."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, *, detail: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class BadRequestError(AuthServiceError):
    """Duplicate identity or otherwise invalid request (400)."""

    status_code = 400
    error_code = "bad_request"


class UnauthorizedError(AuthServiceError):
    """Authentication failed or missing (401)."""

    status_code = 401
    error_code = "unauthorized"


class BadCredentialsError(UnauthorizedError):
    """Username/password mismatch. Never says which of the two was wrong."""

    def __init__(self) -> None:
        super().__init__("Invalid username or password")


class AccountStatusError(UnauthorizedError):
    """Correct credentials, but the account is disabled, locked or expired."""


class AccessTokenError(UnauthorizedError):
    """An access token presented as a bearer credential was rejected."""


class MalformedTokenError(AccessTokenError):
    """Wrong segment count, undecodable segments or missing claims."""

    error_code = "malformed_token"

    def __init__(self, message: str = "Invalid JWT token") -> None:
        super().__init__(message)


class InvalidSignatureError(AccessTokenError):
    """The token signature does not match its header and payload."""

    error_code = "invalid_signature"

    def __init__(self, message: str = "Invalid JWT signature") -> None:
        super().__init__(message)


class TokenExpiredError(AccessTokenError):
    """The token's ``exp`` claim is in the past."""

    error_code = "token_expired"

    def __init__(self, message: str = "JWT token has expired") -> None:
        super().__init__(message)


class ForbiddenError(AuthServiceError):
    """Access denied (403)."""

    status_code = 403
    error_code = "forbidden"


class RefreshFailureReason(str, Enum):
    """Why a refresh token could not be exchanged."""

    NOT_RECOGNIZED = "not_recognized"
    EXPIRED = "expired"
    REVOKED = "revoked"


_REFRESH_MESSAGES = {
    RefreshFailureReason.NOT_RECOGNIZED: "Refresh token is not recognized",
    RefreshFailureReason.EXPIRED: "Refresh token was expired. Please make a new signin request",
    RefreshFailureReason.REVOKED: "Refresh token was revoked. Please make a new signin request",
}


class TokenRefreshError(ForbiddenError):
    """Refresh token unknown, expired or revoked."""

    error_code = "refresh_token_invalid"

    def __init__(self, reason: RefreshFailureReason) -> None:
        super().__init__(_REFRESH_MESSAGES[reason], detail={"reason": reason.value})
        self.reason = reason


class AccessDeniedError(ForbiddenError):
    """Authenticated principal lacks the roles a route requires."""

    error_code = "access_denied"

    def __init__(
        self,
        message: str = "Access denied. You don't have permission to access this resource",
    ) -> None:
        super().__init__(message)


class NotFoundError(AuthServiceError):
    """A referenced entity (e.g. a seed role) does not exist (404)."""

    status_code = 404
    error_code = "not_found"


class InternalError(AuthServiceError):
    """Unexpected failure (500)."""

    status_code = 500
    error_code = "internal_error"


__all__ = [
    "AccessDeniedError",
    "AccessTokenError",
    "AccountStatusError",
    "AuthServiceError",
    "BadCredentialsError",
    "BadRequestError",
    "ForbiddenError",
    "InternalError",
    "InvalidSignatureError",
    "MalformedTokenError",
    "NotFoundError",
    "RefreshFailureReason",
    "TokenExpiredError",
    "TokenRefreshError",
    "UnauthorizedError",
]
