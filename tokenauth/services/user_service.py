"""User management service."""

from typing import Iterable, Optional
from uuid import UUID

import structlog

from tokenauth.exceptions import (
    AccountStatusError,
    BadCredentialsError,
    BadRequestError,
    NotFoundError,
)
from tokenauth.models.user import Role, User
from tokenauth.services.password_service import PasswordService
from tokenauth.storage import AuthStore, DuplicateRecordError, get_store

logger = structlog.get_logger(__name__)

_DUPLICATE_MESSAGES = {
    "username": "Username is already in use",
    "email": "Email is already in use",
}


class UserService:
    """Service for user records and credential checks."""

    def __init__(
        self,
        store: Optional[AuthStore] = None,
        password_service: Optional[PasswordService] = None,
    ):
        self.store = store or get_store()
        self.password_service = password_service or PasswordService()

    async def get_role(self, name: str) -> Role:
        """Load a role by authority string.

        Raises:
            NotFoundError: If the role has not been seeded
        """
        role = await self.store.get_role_by_name(name)
        if role is None:
            logger.error("role_not_found", role=name)
            raise NotFoundError(f"Role {name} is not found")
        return role

    async def ensure_available(self, username: str, email: str) -> None:
        """Check identity uniqueness, reporting the username clash first.

        Raises:
            BadRequestError: If the username or email is taken
        """
        if await self.store.exists_by_username(username):
            raise BadRequestError(_DUPLICATE_MESSAGES["username"])
        if await self.store.exists_by_email(email):
            raise BadRequestError(_DUPLICATE_MESSAGES["email"])

    async def create_user(
        self,
        username: str,
        email: str,
        password: str,
        role_names: Iterable[str],
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """Create a new user with a hashed password.

        Args:
            username: Unique username
            email: Unique email address
            password: Plain-text password (will be hashed)
            role_names: Authority strings to grant
            first_name: Optional given name
            last_name: Optional family name

        Returns:
            Created User model

        Raises:
            NotFoundError: If a requested role does not exist
            BadRequestError: If the username or email is already taken
        """
        roles = [await self.get_role(name) for name in role_names]
        password_hash = self.password_service.hash_password(password)

        try:
            user = await self.store.create_user(
                username=username,
                email=email,
                password_hash=password_hash,
                roles=roles,
                first_name=first_name,
                last_name=last_name,
            )
        except DuplicateRecordError as e:
            # Lost a race with a concurrent registration
            raise BadRequestError(_DUPLICATE_MESSAGES.get(e.field, "User already exists"))

        logger.info(
            "user_created",
            user_id=str(user.id),
            username=user.username,
            roles=user.role_names,
        )
        return user

    async def get_by_username(self, username: str) -> Optional[tuple[User, str]]:
        """Get a user and password hash by exact username."""
        return await self.store.get_user_by_username(username)

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.store.get_user_by_id(user_id)

    async def count_users(self) -> int:
        return await self.store.count_users()

    async def authenticate(self, username: str, password: str) -> User:
        """Verify credentials and account state.

        Unknown usernames and wrong passwords fail identically.

        Raises:
            BadCredentialsError: If the username/password pair does not match
            AccountStatusError: If the account may not sign in
        """
        result = await self.get_by_username(username)
        user, password_hash = result if result else (None, None)

        if not self.password_service.verify_password(password, password_hash) or user is None:
            logger.warning("login_failed", reason="bad_credentials")
            raise BadCredentialsError()

        check_account_status(user)
        return user


def check_account_status(user: User) -> None:
    """Raise AccountStatusError for the first account flag that blocks sign-in."""
    if not user.enabled:
        raise AccountStatusError("User account is disabled")
    if not user.account_non_locked:
        raise AccountStatusError("User account is locked")
    if not user.account_non_expired:
        raise AccountStatusError("User account has expired")
    if not user.credentials_non_expired:
        raise AccountStatusError("User credentials have expired")
