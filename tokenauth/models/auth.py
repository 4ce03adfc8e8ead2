"""Auth request/response models and typed token claims."""

import re
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
BCRYPT_MAX_PASSWORD_BYTES = 72


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either case on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    """New account details.

    Attributes:
        username: Unique identifier (3-50 chars, alphanumeric plus ``_ . -``)
        email: Unique email address
        password: Plain-text password (5-72 bytes), hashed before storage
        first_name: Optional given name
        last_name: Optional family name
    """

    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=5)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("username")
    @classmethod
    def username_valid_chars(cls, v: str) -> str:
        """Ensure username contains only alphanumeric, underscore, dot or hyphen."""
        if not USERNAME_PATTERN.match(v):
            raise ValueError(
                "Username must contain only alphanumeric characters, "
                "underscores, dots or hyphens"
            )
        return v

    @field_validator("email")
    @classmethod
    def email_well_formed(cls, v: str) -> str:
        """Ensure the email has a local part, an @ and a dotted domain."""
        v = v.strip()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Email must be a valid email address")
        return v

    @field_validator("password")
    @classmethod
    def password_acceptable(cls, v: str) -> str:
        """Reject whitespace-only passwords and passwords bcrypt would truncate."""
        if not v.strip():
            raise ValueError("Password cannot be empty or whitespace only")
        if len(v.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(
                f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
            )
        return v


class LoginRequest(CamelModel):
    """Login credentials. No policy checks beyond non-empty, to avoid hinting."""

    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(CamelModel):
    """Body of the refresh-token and logout endpoints."""

    refresh_token: str = Field(..., min_length=1)


class AuthResponse(CamelModel):
    """Successful authentication result.

    Attributes:
        access_token: Short-lived signed JWT
        refresh_token: Long-lived opaque token for obtaining new access tokens
        token_type: Always "Bearer"
        expires_in: Access token lifetime in seconds
        username: Authenticated username
        email: Authenticated user's email
        roles: Authority strings (order not significant)
    """

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(ge=1, description="Access token lifetime in seconds")
    username: str
    email: str
    roles: list[str]


class ExtraClaims(CamelModel):
    """Identity claims added to access tokens issued at login and refresh."""

    user_id: Optional[UUID] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class AccessTokenClaims(ExtraClaims):
    """Closed claim set of an access token payload."""

    sub: str = Field(..., min_length=1)
    roles: list[str]
    iat: int
    exp: int

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.iat, tz=timezone.utc)

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)

    def to_payload(self) -> dict:
        """JSON-safe payload with camelCase claim names, omitting absent claims."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
