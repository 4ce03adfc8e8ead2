"""Health check and role-protected resource endpoints."""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends

from tokenauth.api.dependencies import require_principal, require_roles
from tokenauth.models.principal import AuthenticatedPrincipal
from tokenauth.models.response import ApiResponse
from tokenauth.models.user import RoleName
from tokenauth.storage import get_store

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1")


def _principal_summary(principal: AuthenticatedPrincipal) -> dict:
    return {
        "username": principal.username,
        "roles": sorted(principal.roles),
    }


@router.get("/public/health", response_model_exclude_none=True)
async def health_check() -> ApiResponse[dict]:
    """Health check endpoint.

    Returns:
        Status, store health and timestamp in ISO8601 format
    """
    try:
        store_healthy = await get_store().health_check()
    except Exception as e:
        logger.warning("store_health_check_failed", error=str(e))
        store_healthy = False

    return ApiResponse.ok(
        "Service is running",
        {
            "status": "healthy" if store_healthy else "degraded",
            "store": "healthy" if store_healthy else "unavailable",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.get("/user/profile", response_model_exclude_none=True)
async def profile(
    principal: AuthenticatedPrincipal = Depends(require_principal),
) -> ApiResponse[dict]:
    """Claims of the calling principal, as carried by the access token."""
    return ApiResponse.ok(
        "User profile retrieved",
        {
            **_principal_summary(principal),
            "userId": str(principal.user_id) if principal.user_id else None,
            "email": principal.email,
            "firstName": principal.first_name,
            "lastName": principal.last_name,
            "issuedAt": principal.issued_at.isoformat() if principal.issued_at else None,
            "expiresAt": principal.expires_at.isoformat() if principal.expires_at else None,
        },
    )


@router.get("/user/dashboard", response_model_exclude_none=True)
async def user_dashboard(
    principal: AuthenticatedPrincipal = Depends(require_roles(RoleName.USER)),
) -> ApiResponse[dict]:
    return ApiResponse.ok("Welcome to the user dashboard", _principal_summary(principal))


@router.get("/moderator/dashboard", response_model_exclude_none=True)
async def moderator_dashboard(
    principal: AuthenticatedPrincipal = Depends(
        require_roles(RoleName.MODERATOR, RoleName.ADMIN)
    ),
) -> ApiResponse[dict]:
    return ApiResponse.ok("Welcome to the moderator dashboard", _principal_summary(principal))


@router.get("/admin/dashboard", response_model_exclude_none=True)
async def admin_dashboard(
    principal: AuthenticatedPrincipal = Depends(require_roles(RoleName.ADMIN)),
) -> ApiResponse[dict]:
    return ApiResponse.ok("Welcome to the admin dashboard", _principal_summary(principal))
