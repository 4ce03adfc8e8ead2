"""Postgres-backed store using the shared asyncpg pool."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import asyncpg
import structlog

from tokenauth.database import close_database, get_pool, health_check, init_database, run_migrations
from tokenauth.models.user import RefreshToken, Role, User
from tokenauth.storage.errors import DuplicateRecordError

logger = structlog.get_logger(__name__)

_USER_COLUMNS = """
    id, username, email, first_name, last_name, enabled, account_non_expired,
    account_non_locked, credentials_non_expired, created_at, updated_at
"""

_UNIQUE_CONSTRAINT_FIELDS = {
    "users_username_key": "username",
    "users_email_key": "email",
    "roles_name_key": "name",
    "refresh_tokens_token_key": "token",
}


def _affected_rows(status: str) -> int:
    """Parse the row count from an asyncpg command status such as ``DELETE 3``."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


def _duplicate(exc: asyncpg.UniqueViolationError) -> DuplicateRecordError:
    constraint = getattr(exc, "constraint_name", None) or ""
    return DuplicateRecordError(_UNIQUE_CONSTRAINT_FIELDS.get(constraint, constraint or "unknown"))


def _role_from_row(row) -> Role:
    return Role(id=row["id"], name=row["name"], description=row["description"])


def _user_from_row(row, roles: list[Role]) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        enabled=row["enabled"],
        account_non_expired=row["account_non_expired"],
        account_non_locked=row["account_non_locked"],
        credentials_non_expired=row["credentials_non_expired"],
        roles=roles,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _refresh_token_from_row(row) -> RefreshToken:
    return RefreshToken(
        id=row["id"],
        token=row["token"],
        user_id=row["user_id"],
        expiry_date=row["expiry_date"],
        revoked=row["revoked"],
        created_at=row["created_at"],
    )


class PostgresStore:
    """``AuthStore`` backed by the tables in ``migrations/``."""

    async def initialize(self) -> None:
        await init_database()
        await run_migrations()
        logger.info("postgres_store_initialized")

    async def close(self) -> None:
        await close_database()

    async def health_check(self) -> bool:
        return await health_check()

    # -- roles -------------------------------------------------------------

    async def get_role_by_name(self, name: str) -> Optional[Role]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, name, description FROM roles WHERE name = $1",
                name,
            )

        return _role_from_row(row) if row else None

    async def create_role(self, name: str, description: Optional[str] = None) -> Role:
        pool = await get_pool()

        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO roles (name, description)
                    VALUES ($1, $2)
                    RETURNING id, name, description
                    """,
                    name,
                    description,
                )
        except asyncpg.UniqueViolationError as e:
            raise _duplicate(e) from e

        return _role_from_row(row)

    async def count_roles(self) -> int:
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval("SELECT COUNT(*) FROM roles")

    # -- users -------------------------------------------------------------

    async def count_users(self) -> int:
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval("SELECT COUNT(*) FROM users")

    async def exists_by_username(self, username: str) -> bool:
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM users WHERE username = $1)",
                username,
            )

    async def exists_by_email(self, email: str) -> bool:
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM users WHERE LOWER(email) = LOWER($1))",
                email,
            )

    async def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
        roles: list[Role],
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """Insert the user row and its role links in one transaction."""
        user_id = uuid4()
        now = datetime.now(timezone.utc)
        pool = await get_pool()

        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        f"""
                        INSERT INTO users (
                            id, username, email, password_hash, first_name, last_name,
                            enabled, account_non_expired, account_non_locked,
                            credentials_non_expired, created_at, updated_at
                        )
                        VALUES ($1, $2, $3, $4, $5, $6, TRUE, TRUE, TRUE, TRUE, $7, $7)
                        RETURNING {_USER_COLUMNS}
                        """,
                        user_id,
                        username,
                        email,
                        password_hash,
                        first_name,
                        last_name,
                        now,
                    )
                    if roles:
                        await conn.executemany(
                            "INSERT INTO user_roles (user_id, role_id) VALUES ($1, $2)",
                            [(user_id, role.id) for role in roles],
                        )
        except asyncpg.UniqueViolationError as e:
            raise _duplicate(e) from e

        return _user_from_row(row, list(roles))

    async def _roles_for(self, conn, user_id: UUID) -> list[Role]:
        rows = await conn.fetch(
            """
            SELECT r.id, r.name, r.description
            FROM roles r
            JOIN user_roles ur ON ur.role_id = r.id
            WHERE ur.user_id = $1
            """,
            user_id,
        )
        return [_role_from_row(r) for r in rows]

    async def get_user_by_username(self, username: str) -> Optional[tuple[User, str]]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_USER_COLUMNS}, password_hash FROM users WHERE username = $1",
                username,
            )
            if row is None:
                return None
            roles = await self._roles_for(conn, row["id"])

        return _user_from_row(row, roles), row["password_hash"]

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1",
                user_id,
            )
            if row is None:
                return None
            roles = await self._roles_for(conn, user_id)

        return _user_from_row(row, roles)

    # -- refresh tokens ----------------------------------------------------

    async def save_refresh_token(self, refresh_token: RefreshToken) -> RefreshToken:
        pool = await get_pool()

        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO refresh_tokens (id, token, user_id, expiry_date, revoked, created_at)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    """,
                    refresh_token.id,
                    refresh_token.token,
                    refresh_token.user_id,
                    refresh_token.expiry_date,
                    refresh_token.revoked,
                    refresh_token.created_at,
                )
        except asyncpg.UniqueViolationError as e:
            raise _duplicate(e) from e

        return refresh_token

    async def get_refresh_token(self, token: str) -> Optional[RefreshToken]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT id, token, user_id, expiry_date, revoked, created_at
                FROM refresh_tokens
                WHERE token = $1
                """,
                token,
            )

        return _refresh_token_from_row(row) if row else None

    async def revoke_refresh_token(self, token: str) -> bool:
        """Single-statement revoke; committed before the call returns."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            token_id = await conn.fetchval(
                """
                UPDATE refresh_tokens
                SET revoked = TRUE
                WHERE token = $1
                RETURNING id
                """,
                token,
            )

        return token_id is not None

    async def delete_expired_refresh_tokens(self, now: datetime) -> int:
        pool = await get_pool()

        async with pool.acquire() as conn:
            status = await conn.execute(
                "DELETE FROM refresh_tokens WHERE expiry_date < $1",
                now,
            )

        return _affected_rows(status)

    async def delete_refresh_tokens_for_user(self, user_id: UUID) -> int:
        pool = await get_pool()

        async with pool.acquire() as conn:
            status = await conn.execute(
                "DELETE FROM refresh_tokens WHERE user_id = $1",
                user_id,
            )

        return _affected_rows(status)
