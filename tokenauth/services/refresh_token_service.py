"""Refresh token lifecycle: create, verify, revoke, purge."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4

import structlog

from tokenauth.config import get_settings
from tokenauth.exceptions import RefreshFailureReason, TokenRefreshError
from tokenauth.models.user import RefreshToken
from tokenauth.storage import AuthStore, get_store

logger = structlog.get_logger(__name__)


class RefreshTokenService:
    """Service for durable, opaque refresh tokens."""

    def __init__(self, store: Optional[AuthStore] = None, expire_days: Optional[int] = None):
        self.store = store or get_store()
        self.ttl = timedelta(days=expire_days or get_settings().refresh_token_expire_days)

    async def create_refresh_token(
        self, user_id: UUID, now: Optional[datetime] = None
    ) -> RefreshToken:
        """Generate a refresh token and persist it before returning.

        Args:
            user_id: Owner of the token
            now: Creation instant, defaults to the current time

        Returns:
            The stored RefreshToken record
        """
        now = now or datetime.now(timezone.utc)
        refresh_token = RefreshToken(
            id=uuid4(),
            token=secrets.token_urlsafe(48),
            user_id=user_id,
            expiry_date=now + self.ttl,
            revoked=False,
            created_at=now,
        )
        saved = await self.store.save_refresh_token(refresh_token)

        logger.info(
            "refresh_token_created",
            user_id=str(user_id),
            token_id=str(saved.id),
            expires_at=saved.expiry_date.isoformat(),
        )
        return saved

    async def find_by_token(self, token: str) -> Optional[RefreshToken]:
        return await self.store.get_refresh_token(token)

    def verify_expiration(
        self, refresh_token: RefreshToken, now: Optional[datetime] = None
    ) -> RefreshToken:
        """Return the record if it is still usable.

        Raises:
            TokenRefreshError: If the token is expired or revoked
        """
        if refresh_token.is_expired(now):
            logger.warning("refresh_token_expired", token_id=str(refresh_token.id))
            raise TokenRefreshError(RefreshFailureReason.EXPIRED)
        if refresh_token.revoked:
            logger.warning("refresh_token_revoked_reuse", token_id=str(refresh_token.id))
            raise TokenRefreshError(RefreshFailureReason.REVOKED)
        return refresh_token

    async def get_valid_token(self, token: str, now: Optional[datetime] = None) -> RefreshToken:
        """Look up a token and verify it in one step.

        Raises:
            TokenRefreshError: If the token is unknown, expired or revoked
        """
        refresh_token = await self.find_by_token(token)
        if refresh_token is None:
            logger.warning("refresh_token_not_found")
            raise TokenRefreshError(RefreshFailureReason.NOT_RECOGNIZED)
        return self.verify_expiration(refresh_token, now)

    async def revoke_token(self, token: str) -> bool:
        """Mark a token revoked. Unknown tokens are ignored.

        Returns:
            True if a record was found and revoked
        """
        revoked = await self.store.revoke_refresh_token(token)
        if revoked:
            logger.info("refresh_token_revoked")
        else:
            logger.info("refresh_token_revoke_ignored", reason="not_found")
        return revoked

    async def delete_expired_tokens(self, now: Optional[datetime] = None) -> int:
        """Delete every record whose expiry is strictly before ``now``.

        Returns:
            Number of records deleted
        """
        now = now or datetime.now(timezone.utc)
        count = await self.store.delete_expired_refresh_tokens(now)
        logger.info("expired_refresh_tokens_purged", count=count)
        return count

    async def delete_by_user_id(self, user_id: UUID) -> int:
        """Remove all refresh tokens owned by a user."""
        count = await self.store.delete_refresh_tokens_for_user(user_id)
        logger.info("user_refresh_tokens_deleted", user_id=str(user_id), count=count)
        return count
