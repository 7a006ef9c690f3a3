"""Data models for Pattern Lab."""

from patternlab.models.pattern import (
    Category,
    Difficulty,
    Favorite,
    FavoriteCreate,
    Pattern,
    PatternBase,
    RealWorldExample,
    Reference,
    RelatedPattern,
)

__all__ = [
    "Category",
    "Difficulty",
    "Favorite",
    "FavoriteCreate",
    "Pattern",
    "PatternBase",
    "RealWorldExample",
    "Reference",
    "RelatedPattern",
]
