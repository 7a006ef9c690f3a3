"""Pattern and favorites storage."""

from __future__ import annotations

from patternlab.data import load_patterns
from patternlab.storage.base import PatternNotFoundError, Storage, StorageError
from patternlab.storage.memory import MemStorage
from patternlab.storage.redis_store import RedisStorage
from patternlab.utils.config import get_settings

__all__ = [
    "MemStorage",
    "PatternNotFoundError",
    "RedisStorage",
    "Storage",
    "StorageError",
    "get_storage",
]


def get_storage() -> Storage:
    """Build the storage backend selected by settings."""
    settings = get_settings()
    patterns = load_patterns(settings.patterns_file or None)

    if settings.redis_url:
        return RedisStorage(settings.redis_url, patterns)
    return MemStorage(patterns)
