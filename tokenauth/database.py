"""asyncpg pool lifecycle and schema migrations for the auth tables."""

from pathlib import Path
from typing import Optional

import asyncpg
import structlog

from tokenauth.config import get_settings

logger = structlog.get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent.parent / "migrations"

_MIGRATION_LEDGER_DDL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    filename VARCHAR(255) PRIMARY KEY,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

# Process-wide pool, owned by the app lifespan
_pool: Optional[asyncpg.Pool] = None


async def get_pool() -> asyncpg.Pool:
    """Return the shared pool.

    Raises:
        RuntimeError: If init_database() has not run yet
    """
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_database() first.")
    return _pool


async def init_database() -> asyncpg.Pool:
    """Create the shared pool from ``postgres_url``. Safe to call twice."""
    global _pool

    if _pool is not None:
        return _pool

    settings = get_settings()
    try:
        _pool = await asyncpg.create_pool(
            settings.postgres_url,
            min_size=settings.postgres_pool_min_size,
            max_size=settings.postgres_pool_max_size,
            command_timeout=settings.postgres_command_timeout_seconds,
        )
    except (OSError, asyncpg.PostgresError) as e:
        logger.error("database_pool_creation_failed", error=str(e))
        raise

    logger.info(
        "database_pool_created",
        min_size=settings.postgres_pool_min_size,
        max_size=settings.postgres_pool_max_size,
    )
    return _pool


async def close_database() -> None:
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("database_pool_closed")


async def run_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """Apply pending ``*.sql`` files in name order.

    Each file runs in its own transaction together with its row in
    ``schema_migrations``, so a failed file leaves no partial schema and is
    retried on the next start.

    Returns:
        Filenames applied by this call
    """
    files = sorted(migrations_dir.glob("*.sql")) if migrations_dir.exists() else []
    if not files:
        logger.warning("no_migrations_found", path=str(migrations_dir))
        return []

    pool = await get_pool()
    applied: list[str] = []

    async with pool.acquire() as conn:
        await conn.execute(_MIGRATION_LEDGER_DDL)
        done = {row["filename"] for row in await conn.fetch("SELECT filename FROM schema_migrations")}

        for path in files:
            if path.name in done:
                continue
            try:
                async with conn.transaction():
                    await conn.execute(path.read_text())
                    await conn.execute(
                        "INSERT INTO schema_migrations (filename) VALUES ($1)",
                        path.name,
                    )
            except asyncpg.PostgresError as e:
                logger.error("migration_failed", file=path.name, error=str(e))
                raise
            applied.append(path.name)
            logger.info("migration_applied", file=path.name)

    return applied


async def health_check() -> bool:
    """True when a pooled connection answers ``SELECT 1``."""
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1
    except (RuntimeError, OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        logger.error("database_health_check_failed", error=str(e))
        return False
