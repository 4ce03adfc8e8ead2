"""One-way password hashing with bcrypt."""

from functools import lru_cache
from typing import Optional

import bcrypt

from tokenauth.config import get_settings


@lru_cache
def _dummy_hash(rounds: int) -> bytes:
    """Hash compared against when the account does not exist."""
    return bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds))


class PasswordService:
    """Hash and verify passwords. Plain-text values never leave this class."""

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or get_settings().bcrypt_rounds

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain-text password to hash

        Returns:
            Bcrypt hash string
        """
        salt = bcrypt.gensalt(self.rounds)
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def verify_password(self, password: str, password_hash: Optional[str]) -> bool:
        """Verify a password against a bcrypt hash.

        A missing hash (unknown account) still costs one bcrypt comparison and
        always returns False.

        Args:
            password: Plain-text password to check
            password_hash: Bcrypt hash to verify against, or None

        Returns:
            True if the password matches, False otherwise
        """
        candidate = password_hash.encode("utf-8") if password_hash else _dummy_hash(self.rounds)
        try:
            matched = bcrypt.checkpw(password.encode("utf-8"), candidate)
        except ValueError:
            # Corrupt stored hash or over-long password
            return False
        return matched and password_hash is not None
