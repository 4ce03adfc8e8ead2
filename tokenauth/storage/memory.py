"""In-memory store for development and tests."""

import threading
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import structlog

from tokenauth.models.user import RefreshToken, Role, User
from tokenauth.storage.errors import DuplicateRecordError

logger = structlog.get_logger(__name__)


class MemoryStore:
    """Process-local implementation of ``AuthStore``.

    All data access happens under one re-entrant lock, so every call sees a
    consistent snapshot and writes are visible to the next call immediately.
    Models are copied on the way in and out so callers cannot mutate stored
    state behind the lock.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._roles: dict[str, Role] = {}
        self._role_seq = 0
        self._users: dict[UUID, User] = {}
        self._password_hashes: dict[UUID, str] = {}
        self._refresh_tokens: dict[str, RefreshToken] = {}

    async def initialize(self) -> None:
        logger.info("memory_store_initialized")

    async def close(self) -> None:
        pass

    async def health_check(self) -> bool:
        return True

    # -- roles -------------------------------------------------------------

    async def get_role_by_name(self, name: str) -> Optional[Role]:
        with self._lock:
            role = self._roles.get(name)
            return role.model_copy() if role else None

    async def create_role(self, name: str, description: Optional[str] = None) -> Role:
        with self._lock:
            if name in self._roles:
                raise DuplicateRecordError("name")
            self._role_seq += 1
            role = Role(id=self._role_seq, name=name, description=description)
            self._roles[role.name] = role
            return role.model_copy()

    async def count_roles(self) -> int:
        with self._lock:
            return len(self._roles)

    # -- users -------------------------------------------------------------

    async def count_users(self) -> int:
        with self._lock:
            return len(self._users)

    def _username_taken(self, username: str) -> bool:
        return any(u.username == username for u in self._users.values())

    def _email_taken(self, email: str) -> bool:
        return any(u.email.lower() == email.lower() for u in self._users.values())

    async def exists_by_username(self, username: str) -> bool:
        with self._lock:
            return self._username_taken(username)

    async def exists_by_email(self, email: str) -> bool:
        with self._lock:
            return self._email_taken(email)

    async def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
        roles: list[Role],
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        now = datetime.now(timezone.utc)
        with self._lock:
            if self._username_taken(username):
                raise DuplicateRecordError("username")
            if self._email_taken(email):
                raise DuplicateRecordError("email")
            user = User(
                id=uuid4(),
                username=username,
                email=email,
                first_name=first_name,
                last_name=last_name,
                roles=[r.model_copy() for r in roles],
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            self._password_hashes[user.id] = password_hash
            return user.model_copy(deep=True)

    async def get_user_by_username(self, username: str) -> Optional[tuple[User, str]]:
        with self._lock:
            for user in self._users.values():
                if user.username == username:
                    return user.model_copy(deep=True), self._password_hashes[user.id]
            return None

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy(deep=True) if user else None

    async def update_user_flags(self, user_id: UUID, **flags: bool) -> Optional[User]:
        """Set account-state flags (enabled, account_non_locked, ...)."""
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            updated = user.model_copy(
                update={**flags, "updated_at": datetime.now(timezone.utc)}
            )
            self._users[user_id] = updated
            return updated.model_copy(deep=True)

    async def set_user_roles(self, user_id: UUID, roles: list[Role]) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            updated = user.model_copy(
                update={
                    "roles": [r.model_copy() for r in roles],
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            self._users[user_id] = updated
            return updated.model_copy(deep=True)

    # -- refresh tokens ----------------------------------------------------

    async def save_refresh_token(self, refresh_token: RefreshToken) -> RefreshToken:
        with self._lock:
            existing = self._refresh_tokens.get(refresh_token.token)
            if existing is not None and existing.id != refresh_token.id:
                raise DuplicateRecordError("token")
            self._refresh_tokens[refresh_token.token] = refresh_token.model_copy()
            return refresh_token.model_copy()

    async def get_refresh_token(self, token: str) -> Optional[RefreshToken]:
        with self._lock:
            record = self._refresh_tokens.get(token)
            return record.model_copy() if record else None

    async def revoke_refresh_token(self, token: str) -> bool:
        with self._lock:
            record = self._refresh_tokens.get(token)
            if record is None:
                return False
            self._refresh_tokens[token] = record.model_copy(update={"revoked": True})
            return True

    async def delete_expired_refresh_tokens(self, now: datetime) -> int:
        with self._lock:
            expired = [t for t, r in self._refresh_tokens.items() if r.expiry_date < now]
            for token in expired:
                del self._refresh_tokens[token]
            return len(expired)

    async def delete_refresh_tokens_for_user(self, user_id: UUID) -> int:
        with self._lock:
            owned = [t for t, r in self._refresh_tokens.items() if r.user_id == user_id]
            for token in owned:
                del self._refresh_tokens[token]
            return len(owned)
