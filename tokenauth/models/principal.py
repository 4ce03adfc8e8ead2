"""Authenticated principal derived from a validated access token."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

from tokenauth.models.auth import AccessTokenClaims
from tokenauth.models.user import RoleName


def _names(roles: tuple) -> frozenset[str]:
    return frozenset(r.value if isinstance(r, RoleName) else r for r in roles)


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """Identity and authorities of the caller.

    Role checks are exact, case-sensitive string comparisons against the
    authority strings embedded in the token at issuance time.
    """

    username: str
    roles: frozenset[str] = field(default_factory=frozenset)
    user_id: Optional[UUID] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def from_claims(cls, claims: AccessTokenClaims) -> "AuthenticatedPrincipal":
        return cls(
            username=claims.sub,
            roles=frozenset(claims.roles),
            user_id=claims.user_id,
            email=claims.email,
            first_name=claims.first_name,
            last_name=claims.last_name,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
        )

    def has_any_role(self, *roles) -> bool:
        return bool(self.roles & _names(roles))

    def has_all_roles(self, *roles) -> bool:
        return _names(roles) <= self.roles

    def has_exactly_roles(self, *roles) -> bool:
        return _names(roles) == self.roles
