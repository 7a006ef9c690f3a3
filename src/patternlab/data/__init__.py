"""Bundled design pattern catalog."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from patternlab.models import PatternBase

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).parent / "patterns.yaml"


def load_patterns(path: Path | str | None = None) -> list[PatternBase]:
    """Load pattern records from a YAML catalog.

    Args:
        path: Catalog file, defaults to the bundled one

    Returns:
        Pattern records in file order
    """
    catalog = Path(path) if path else CATALOG_PATH
    raw = yaml.safe_load(catalog.read_text(encoding="utf-8")) or []

    if not isinstance(raw, list):
        raise ValueError(f"Pattern catalog {catalog} must be a list of records")

    patterns = [PatternBase.model_validate(item) for item in raw]
    logger.debug(f"Loaded {len(patterns)} patterns from {catalog}")
    return patterns
