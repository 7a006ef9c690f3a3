"""Storage interface for patterns and favorites."""

from __future__ import annotations

from abc import ABC, abstractmethod

from patternlab.models import Favorite, FavoriteCreate, Pattern


class StorageError(Exception):
    """Base class for storage failures."""


class PatternNotFoundError(StorageError):
    """Raised when a favorite refers to an unknown pattern."""


class Storage(ABC):
    """Record lookup, listing, insert and delete for the API layer."""

    async def connect(self) -> None:
        """Open backing connections, if any."""

    async def disconnect(self) -> None:
        """Close backing connections, if any."""

    # Pattern operations
    @abstractmethod
    async def get_all_patterns(self) -> list[Pattern]: ...

    @abstractmethod
    async def get_pattern(self, pattern_id: int) -> Pattern | None: ...

    @abstractmethod
    async def get_pattern_by_slug(self, slug: str) -> Pattern | None: ...

    @abstractmethod
    async def get_patterns_by_category(self, category: str) -> list[Pattern]: ...

    @abstractmethod
    async def search_patterns(self, query: str) -> list[Pattern]: ...

    # Favorite operations
    @abstractmethod
    async def get_favorites(self, user_id: str) -> list[Pattern]: ...

    @abstractmethod
    async def add_favorite(self, favorite: FavoriteCreate, user_id: str) -> Favorite: ...

    @abstractmethod
    async def remove_favorite(self, pattern_id: int, user_id: str) -> bool: ...

    @abstractmethod
    async def is_favorite(self, pattern_id: int, user_id: str) -> bool: ...
