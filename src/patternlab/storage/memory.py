"""In-memory storage seeded from the pattern catalog."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from patternlab.models import Favorite, FavoriteCreate, Pattern, PatternBase
from patternlab.storage.base import PatternNotFoundError, Storage

logger = logging.getLogger(__name__)


class MemStorage(Storage):
    """Dict-backed storage. Nothing survives a restart."""

    def __init__(self, patterns: Iterable[PatternBase] = ()):
        self._patterns: dict[int, Pattern] = {}
        self._favorites: dict[int, Favorite] = {}
        self.current_pattern_id = 1
        self.current_favorite_id = 1

        for pattern in patterns:
            self._add_pattern(pattern)

    def _add_pattern(self, pattern: PatternBase) -> Pattern:
        pattern_id = self.current_pattern_id
        self.current_pattern_id += 1
        record = Pattern(id=pattern_id, **pattern.model_dump())
        self._patterns[pattern_id] = record
        return record

    async def get_all_patterns(self) -> list[Pattern]:
        return list(self._patterns.values())

    async def get_pattern(self, pattern_id: int) -> Pattern | None:
        return self._patterns.get(pattern_id)

    async def get_pattern_by_slug(self, slug: str) -> Pattern | None:
        return next((p for p in self._patterns.values() if p.slug == slug), None)

    async def get_patterns_by_category(self, category: str) -> list[Pattern]:
        return [p for p in self._patterns.values() if p.category == category]

    async def search_patterns(self, query: str) -> list[Pattern]:
        """Case-insensitive match on name, description and content."""
        needle = query.lower()
        return [
            p
            for p in self._patterns.values()
            if needle in p.name.lower()
            or needle in p.description.lower()
            or needle in p.content.lower()
        ]

    def _resolve_favorites(self, pattern_ids: Iterable[int]) -> list[Pattern]:
        patterns = []
        for pattern_id in pattern_ids:
            pattern = self._patterns.get(pattern_id)
            if pattern is None:
                logger.warning(f"Favorite refers to missing pattern {pattern_id}")
                continue
            patterns.append(pattern)
        return patterns

    async def get_favorites(self, user_id: str) -> list[Pattern]:
        return self._resolve_favorites(
            f.pattern_id for f in self._favorites.values() if f.user_id == user_id
        )

    async def add_favorite(self, favorite: FavoriteCreate, user_id: str) -> Favorite:
        if favorite.pattern_id not in self._patterns:
            raise PatternNotFoundError(f"Pattern {favorite.pattern_id} not found")

        favorite_id = self.current_favorite_id
        self.current_favorite_id += 1
        record = Favorite(id=favorite_id, pattern_id=favorite.pattern_id, user_id=user_id)
        self._favorites[favorite_id] = record
        return record

    async def remove_favorite(self, pattern_id: int, user_id: str) -> bool:
        for favorite_id, favorite in self._favorites.items():
            if favorite.pattern_id == pattern_id and favorite.user_id == user_id:
                del self._favorites[favorite_id]
                return True
        return False

    async def is_favorite(self, pattern_id: int, user_id: str) -> bool:
        return any(
            f.pattern_id == pattern_id and f.user_id == user_id
            for f in self._favorites.values()
        )
