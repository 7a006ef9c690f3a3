"""Pattern catalog and favorites models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Category(str, Enum):
    """Catalog section a pattern belongs to."""

    PYTHON = "python"
    PYTHONIC = "pythonic"
    WEB = "web"


class Difficulty(str, Enum):
    """Reader level a pattern is written for."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RelatedPattern(CamelModel):
    id: int
    name: str
    description: str


class RealWorldExample(CamelModel):
    title: str
    description: str


class Reference(CamelModel):
    title: str
    description: str
    url: str | None = None


class PatternBase(CamelModel):
    """Pattern fields as stored in the catalog file."""

    name: str
    slug: str
    description: str
    category: Category
    difficulty: Difficulty
    type: str = Field(..., description="creational, structural, behavioral, ...")
    content: str = Field(..., description="Article body (HTML)")
    code_example: str
    code_template: str = Field(..., description="Seed source for the code sandbox")
    related_patterns: list[RelatedPattern] = Field(default_factory=list)
    real_world_examples: list[RealWorldExample] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)
    drawbacks: list[str] = Field(default_factory=list)
    further_reading: list[Reference] = Field(default_factory=list)


class Pattern(PatternBase):
    """A stored pattern record."""

    id: int


class FavoriteCreate(CamelModel):
    """Request body for adding a favorite."""

    pattern_id: int


class Favorite(CamelModel):
    """A pattern marked as favorite by an anonymous user."""

    id: int
    pattern_id: int
    user_id: str
