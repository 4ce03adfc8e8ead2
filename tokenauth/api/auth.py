"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, status

from tokenauth.api.dependencies import get_auth_service
from tokenauth.models.auth import (
    AuthResponse,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
)
from tokenauth.models.response import ApiResponse
from tokenauth.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model_exclude_none=True,
)
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthResponse]:
    """Register a new account with the default role.

    Raises:
        BadRequestError 400: If the username or email is already in use
    """
    result = await auth_service.register(request)
    return ApiResponse.ok("User registered successfully", result, status.HTTP_201_CREATED)


@router.post("/login", response_model_exclude_none=True)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthResponse]:
    """Login with username and password.

    Raises:
        UnauthorizedError 401: If credentials are invalid or the account is unusable
    """
    result = await auth_service.login(request)
    return ApiResponse.ok("User logged in successfully", result)


@router.post("/refresh-token", response_model_exclude_none=True)
async def refresh_token(
    request: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthResponse]:
    """Exchange a refresh token for a new access token.

    Raises:
        ForbiddenError 403: If the refresh token is unknown, expired or revoked
    """
    result = await auth_service.refresh_token(request.refresh_token)
    return ApiResponse.ok("Token refreshed successfully", result)


@router.post("/logout", response_model_exclude_none=True)
async def logout(
    request: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    """Revoke a refresh token. Always succeeds."""
    await auth_service.logout(request.refresh_token)
    return ApiResponse.ok("Logout successful")
