"""Storage contract shared by the Postgres and in-memory backends."""

from datetime import datetime
from typing import Optional, Protocol
from uuid import UUID

from tokenauth.models.user import RefreshToken, Role, User


class AuthStore(Protocol):
    """Durable user, role and refresh-token records.

    Each method is atomic on its own: callers never see a half-applied write,
    and a write has been committed by the time the coroutine returns.
    """

    async def initialize(self) -> None: ...

    async def close(self) -> None: ...

    async def health_check(self) -> bool: ...

    # Roles
    async def get_role_by_name(self, name: str) -> Optional[Role]: ...

    async def create_role(self, name: str, description: Optional[str] = None) -> Role: ...

    async def count_roles(self) -> int: ...

    # Users
    async def count_users(self) -> int: ...

    async def exists_by_username(self, username: str) -> bool: ...

    async def exists_by_email(self, email: str) -> bool: ...

    async def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
        roles: list[Role],
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User: ...

    async def get_user_by_username(self, username: str) -> Optional[tuple[User, str]]: ...

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]: ...

    # Refresh tokens
    async def save_refresh_token(self, refresh_token: RefreshToken) -> RefreshToken: ...

    async def get_refresh_token(self, token: str) -> Optional[RefreshToken]: ...

    async def revoke_refresh_token(self, token: str) -> bool: ...

    async def delete_expired_refresh_tokens(self, now: datetime) -> int: ...

    async def delete_refresh_tokens_for_user(self, user_id: UUID) -> int: ...
