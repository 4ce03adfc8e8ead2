"""User, role and refresh token models."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

ROLE_NAME_PATTERN = re.compile(r"^ROLE_[A-Z][A-Z0-9_]*$")


class RoleName(str, Enum):
    """Built-in authority strings."""

    USER = "ROLE_USER"
    MODERATOR = "ROLE_MODERATOR"
    ADMIN = "ROLE_ADMIN"


def validate_role_name(name: str) -> str:
    """Return ``name`` if it follows the ``ROLE_<NAME>`` convention.

    Raises:
        ValueError: If the name is not a well-formed authority string
    """
    if isinstance(name, RoleName):
        return name.value
    if not isinstance(name, str) or not ROLE_NAME_PATTERN.match(name):
        raise ValueError(
            f"Invalid role name {name!r}: expected ROLE_ followed by "
            "upper-case letters, digits or underscores"
        )
    return name


class Role(BaseModel):
    """A named authority granted to users."""

    id: int
    name: str
    description: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def name_follows_convention(cls, v: str) -> str:
        return validate_role_name(v)


class User(BaseModel):
    """A registered user. The password hash is deliberately not a field."""

    id: UUID
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    enabled: bool = True
    account_non_expired: bool = True
    account_non_locked: bool = True
    credentials_non_expired: bool = True
    roles: list[Role] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @property
    def role_names(self) -> list[str]:
        """Authority strings for the user's roles."""
        return [role.name for role in self.roles]

    @property
    def is_usable(self) -> bool:
        """True when every account-state flag allows authentication."""
        return (
            self.enabled
            and self.account_non_expired
            and self.account_non_locked
            and self.credentials_non_expired
        )


class RefreshToken(BaseModel):
    """A persisted, opaque refresh token."""

    id: UUID
    token: str
    user_id: UUID
    expiry_date: datetime
    revoked: bool = False
    created_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """A token is expired once ``now`` reaches its expiry instant."""
        now = now or datetime.now(timezone.utc)
        return now >= self.expiry_date

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        """Usable for refresh iff not expired and not revoked."""
        return not self.revoked and not self.is_expired(now)
