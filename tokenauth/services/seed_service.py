"""Startup seeding of roles and demo accounts."""

from typing import Optional

import structlog

from tokenauth.config import Settings, get_settings
from tokenauth.models.user import RoleName
from tokenauth.services.user_service import UserService
from tokenauth.storage import AuthStore, DuplicateRecordError, get_store

logger = structlog.get_logger(__name__)

DEFAULT_ROLES = [
    (RoleName.USER, None),
    (RoleName.MODERATOR, "Moderator role"),
    (RoleName.ADMIN, "Administrator role"),
]

# (username, email, password, first_name, last_name, role)
DEFAULT_USERS = [
    ("admin", "admin@example.com", "admin123", "Admin", "User", RoleName.ADMIN),
    ("moderator", "moderator@example.com", "moderator123", "Moderator", "User", RoleName.MODERATOR),
    ("user", "user@example.com", "user123", "Regular", "User", RoleName.USER),
]


class SeedService:
    """Creates the built-in roles, and demo users on an empty database."""

    def __init__(self, store: Optional[AuthStore] = None, settings: Optional[Settings] = None):
        self.store = store or get_store()
        self.settings = settings or get_settings()
        self.user_service = UserService(self.store)

    async def seed_roles(self) -> int:
        """Create any missing built-in role. Returns how many were created."""
        created = 0
        for name, description in DEFAULT_ROLES:
            if await self.store.get_role_by_name(name.value) is not None:
                continue
            try:
                await self.store.create_role(name.value, description)
            except DuplicateRecordError:
                # Another worker seeded it first
                continue
            created += 1
        logger.info("roles_initialized", created=created)
        return created

    async def seed_default_users(self) -> int:
        """Create the demo accounts, only when no user exists yet."""
        if await self.store.count_users() > 0:
            return 0

        for username, email, password, first_name, last_name, role in DEFAULT_USERS:
            await self.user_service.create_user(
                username=username,
                email=email,
                password=password,
                role_names=[role.value],
                first_name=first_name,
                last_name=last_name,
            )

        logger.info(
            "default_users_initialized",
            usernames=[u[0] for u in DEFAULT_USERS],
        )
        return len(DEFAULT_USERS)

    async def run(self) -> None:
        await self.seed_roles()
        if self.settings.seed_default_users:
            await self.seed_default_users()
