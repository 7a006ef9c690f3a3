"""Redis-backed favorites.

Patterns always come from the in-memory catalog. Favorites are kept in one
Redis hash per anonymous user:

- ``patternlab:favorites:<user_id>``: pattern_id -> favorite JSON
- ``patternlab:favorites:next_id``: favorite id counter

When Redis is unreachable the store falls back to in-memory favorites.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable

import redis.asyncio as redis
from redis.exceptions import RedisError

from patternlab.models import Favorite, FavoriteCreate, Pattern, PatternBase
from patternlab.storage.base import PatternNotFoundError, StorageError
from patternlab.storage.memory import MemStorage

logger = logging.getLogger(__name__)


class RedisStorage(MemStorage):
    """Catalog in memory, favorites in Redis."""

    FAVORITES_PREFIX = "patternlab:favorites:"
    ID_COUNTER_KEY = "patternlab:favorites:next_id"

    def __init__(self, redis_url: str, patterns: Iterable[PatternBase] = ()):
        super().__init__(patterns)
        self.redis_url = redis_url
        self._client: redis.Redis | None = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected and self._client is not None

    async def connect(self) -> None:
        """Connect to Redis."""
        if self._connected:
            return

        try:
            self._client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            # Test connection
            await self._client.ping()
            self._connected = True
            logger.info(f"Connected to Redis at {self.redis_url}")
        except Exception as e:
            logger.warning(f"Failed to connect to Redis, keeping favorites in memory: {e}")
            self._client = None
            self._connected = False

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client:
            await self._client.aclose()
            self._client = None
            self._connected = False

    def _key(self, user_id: str) -> str:
        return self.FAVORITES_PREFIX + user_id

    async def get_favorites(self, user_id: str) -> list[Pattern]:
        if not self.connected:
            return await super().get_favorites(user_id)

        try:
            entries = await self._client.hgetall(self._key(user_id))
        except RedisError as e:
            logger.warning(f"Favorites read error: {e}")
            raise StorageError(f"Could not read favorites for {user_id}") from e

        favorites = sorted(
            (Favorite.model_validate_json(data) for data in entries.values()),
            key=lambda f: f.id,
        )
        return self._resolve_favorites(f.pattern_id for f in favorites)

    async def add_favorite(self, favorite: FavoriteCreate, user_id: str) -> Favorite:
        if not self.connected:
            return await super().add_favorite(favorite, user_id)

        if favorite.pattern_id not in self._patterns:
            raise PatternNotFoundError(f"Pattern {favorite.pattern_id} not found")

        try:
            favorite_id = await self._client.incr(self.ID_COUNTER_KEY)
            record = Favorite(id=favorite_id, pattern_id=favorite.pattern_id, user_id=user_id)
            await self._client.hset(
                self._key(user_id),
                str(favorite.pattern_id),
                json.dumps(record.model_dump()),
            )
        except RedisError as e:
            logger.warning(f"Favorites write error: {e}")
            raise StorageError(f"Could not store favorite for {user_id}") from e
        logger.debug(f"Stored favorite {favorite_id} for {user_id}")
        return record

    async def remove_favorite(self, pattern_id: int, user_id: str) -> bool:
        if not self.connected:
            return await super().remove_favorite(pattern_id, user_id)

        try:
            removed = await self._client.hdel(self._key(user_id), str(pattern_id))
        except RedisError as e:
            logger.warning(f"Favorites delete error: {e}")
            raise StorageError(f"Could not remove favorite for {user_id}") from e
        return removed > 0

    async def is_favorite(self, pattern_id: int, user_id: str) -> bool:
        if not self.connected:
            return await super().is_favorite(pattern_id, user_id)

        try:
            return bool(await self._client.hexists(self._key(user_id), str(pattern_id)))
        except RedisError as e:
            logger.warning(f"Favorites read error: {e}")
            raise StorageError(f"Could not read favorites for {user_id}") from e
