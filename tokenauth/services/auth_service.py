"""Authentication flows: registration, login, refresh and logout."""

from datetime import datetime
from typing import Optional

import structlog

from tokenauth.config import Settings, get_settings
from tokenauth.exceptions import ForbiddenError
from tokenauth.models.auth import (
    AuthResponse,
    ExtraClaims,
    LoginRequest,
    RegisterRequest,
)
from tokenauth.models.user import RefreshToken, User
from tokenauth.services.password_service import PasswordService
from tokenauth.services.refresh_token_service import RefreshTokenService
from tokenauth.services.token_service import TokenService, get_token_service
from tokenauth.services.user_service import UserService
from tokenauth.storage import AuthStore, get_store

logger = structlog.get_logger(__name__)


def build_extra_claims(user: User) -> ExtraClaims:
    """Identity claims embedded in tokens issued at login and refresh."""
    return ExtraClaims(
        user_id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
    )


class AuthService:
    """Issues access/refresh token pairs and manages their lifecycle.

    Access tokens are stateless: revoking a refresh token (logout) does not
    invalidate access tokens already handed out; they lapse at their own
    expiry, which is why their lifetime is kept short.
    """

    def __init__(
        self,
        store: Optional[AuthStore] = None,
        token_service: Optional[TokenService] = None,
        settings: Optional[Settings] = None,
        password_service: Optional[PasswordService] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or get_store()
        self.token_service = token_service or get_token_service()
        self.user_service = UserService(self.store, password_service)
        self.refresh_token_service = RefreshTokenService(
            self.store, self.settings.refresh_token_expire_days
        )

    async def issue_tokens(
        self,
        user: User,
        extra_claims: Optional[ExtraClaims] = None,
        now: Optional[datetime] = None,
    ) -> tuple[str, RefreshToken]:
        """Sign an access token for ``user`` and persist a new refresh token.

        Returns:
            Tuple of (access_token, refresh_token_record)
        """
        access_token = self.token_service.create_access_token(
            subject=user.username,
            roles=user.role_names,
            extra_claims=extra_claims,
            now=now,
        )
        refresh_token = await self.refresh_token_service.create_refresh_token(user.id, now=now)
        return access_token, refresh_token

    def _auth_response(self, user: User, access_token: str, refresh_token: str) -> AuthResponse:
        return AuthResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.token_service.access_token_expire_seconds,
            username=user.username,
            email=user.email,
            roles=user.role_names,
        )

    async def register(self, request: RegisterRequest) -> AuthResponse:
        """Create an account with the default role and sign it in.

        Raises:
            BadRequestError: If the username or email is already in use
            NotFoundError: If the default role has not been seeded
        """
        await self.user_service.ensure_available(request.username, request.email)

        user = await self.user_service.create_user(
            username=request.username,
            email=request.email,
            password=request.password,
            role_names=[self.settings.default_role],
            first_name=request.first_name,
            last_name=request.last_name,
        )

        access_token, refresh_token = await self.issue_tokens(user)

        logger.info("user_registered", user_id=str(user.id), username=user.username)
        return self._auth_response(user, access_token, refresh_token.token)

    async def login(self, request: LoginRequest) -> AuthResponse:
        """Exchange username/password for a token pair.

        Raises:
            BadCredentialsError: If the credentials do not match
            AccountStatusError: If the account is disabled, locked or expired
        """
        user = await self.user_service.authenticate(request.username, request.password)

        access_token, refresh_token = await self.issue_tokens(user, build_extra_claims(user))

        logger.info("user_logged_in", user_id=str(user.id), username=user.username)
        return self._auth_response(user, access_token, refresh_token.token)

    async def refresh_token(self, token: str, now: Optional[datetime] = None) -> AuthResponse:
        """Exchange a refresh token for a new access token.

        Roles are re-read from the store, so role changes show up here rather
        than in access tokens that are still valid. Unless
        ``refresh_token_rotation`` is enabled, the same refresh token is
        returned and stays usable until it expires or is revoked.

        Raises:
            TokenRefreshError: If the token is unknown, expired or revoked
            ForbiddenError: If the owning account is gone or may not sign in
        """
        record = await self.refresh_token_service.get_valid_token(token, now)

        user = await self.user_service.get_by_id(record.user_id)
        if user is None or not user.is_usable:
            logger.warning("refresh_rejected_account", user_id=str(record.user_id))
            raise ForbiddenError("User not found or disabled")

        if self.settings.refresh_token_rotation:
            await self.refresh_token_service.revoke_token(record.token)
            access_token, new_record = await self.issue_tokens(
                user, build_extra_claims(user), now=now
            )
            logger.info("refresh_token_rotated", user_id=str(user.id))
            return self._auth_response(user, access_token, new_record.token)

        access_token = self.token_service.create_access_token(
            subject=user.username,
            roles=user.role_names,
            extra_claims=build_extra_claims(user),
            now=now,
        )
        logger.info("access_token_refreshed", user_id=str(user.id))
        return self._auth_response(user, access_token, record.token)

    async def logout(self, token: str) -> None:
        """Revoke a refresh token. Succeeds even if the token is unknown."""
        await self.refresh_token_service.revoke_token(token)
