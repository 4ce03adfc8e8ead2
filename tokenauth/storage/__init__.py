"""Storage backends and the cached store accessor."""

from functools import lru_cache

from tokenauth.config import get_settings
from tokenauth.storage.base import AuthStore
from tokenauth.storage.errors import DuplicateRecordError
from tokenauth.storage.memory import MemoryStore
from tokenauth.storage.postgres import PostgresStore


@lru_cache
def get_store() -> AuthStore:
    """Return the process-wide store selected by ``storage_backend``."""
    if get_settings().storage_backend == "memory":
        return MemoryStore()
    return PostgresStore()


__all__ = [
    "AuthStore",
    "DuplicateRecordError",
    "MemoryStore",
    "PostgresStore",
    "get_store",
]
