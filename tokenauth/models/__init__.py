"""Models package exports."""

from tokenauth.models.auth import (
    AccessTokenClaims,
    AuthResponse,
    ExtraClaims,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
)
from tokenauth.models.principal import AuthenticatedPrincipal
from tokenauth.models.response import ApiResponse
from tokenauth.models.user import RefreshToken, Role, RoleName, User

__all__ = [
    "AccessTokenClaims",
    "ApiResponse",
    "AuthResponse",
    "AuthenticatedPrincipal",
    "ExtraClaims",
    "LoginRequest",
    "RefreshToken",
    "RefreshTokenRequest",
    "RegisterRequest",
    "Role",
    "RoleName",
    "User",
]
