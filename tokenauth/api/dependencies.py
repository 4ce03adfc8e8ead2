"""FastAPI dependencies for authentication and authorization."""

from typing import Literal, Optional

from fastapi import Depends, Header, Request

from tokenauth.exceptions import AccessDeniedError, UnauthorizedError
from tokenauth.models.principal import AuthenticatedPrincipal
from tokenauth.models.user import validate_role_name
from tokenauth.services.auth_service import AuthService
from tokenauth.services.token_validation import TokenValidationGate

RoleMatch = Literal["any", "all", "exactly"]


def get_auth_service() -> AuthService:
    return AuthService()


async def get_current_principal(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> Optional[AuthenticatedPrincipal]:
    """Validate the bearer token, if any, and expose the caller's principal.

    Requests without a bearer token are anonymous (None). A token that is
    present but malformed, forged or expired is rejected with 401.

    Raises:
        AccessTokenError: If the presented token is rejected
    """
    principal = TokenValidationGate().validate(authorization)
    request.state.principal = principal
    return principal


async def require_principal(
    principal: Optional[AuthenticatedPrincipal] = Depends(get_current_principal),
) -> AuthenticatedPrincipal:
    """Require an authenticated caller.

    Raises:
        UnauthorizedError: If no bearer token was presented
    """
    if principal is None:
        raise UnauthorizedError("Full authentication is required to access this resource")
    return principal


def require_roles(*roles: str, match: RoleMatch = "any"):
    """Build a dependency that admits principals holding the given roles.

    Role names are validated here, when the route is declared, so a typo
    fails at import time instead of silently denying (or allowing) access.

    Args:
        roles: Authority strings, e.g. ``RoleName.ADMIN`` or ``"ROLE_ADMIN"``
        match: "any" (at least one), "all" (every one) or "exactly" (same set)
    """
    if not roles:
        raise ValueError("require_roles needs at least one role")
    names = tuple(validate_role_name(role) for role in roles)
    check = {
        "any": AuthenticatedPrincipal.has_any_role,
        "all": AuthenticatedPrincipal.has_all_roles,
        "exactly": AuthenticatedPrincipal.has_exactly_roles,
    }[match]

    async def role_guard(
        principal: AuthenticatedPrincipal = Depends(require_principal),
    ) -> AuthenticatedPrincipal:
        if not check(principal, *names):
            raise AccessDeniedError()
        return principal

    return role_guard
