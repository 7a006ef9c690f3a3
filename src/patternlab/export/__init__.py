"""Export patterns to other formats."""

from patternlab.export.markdown import generate_markdown

__all__ = ["generate_markdown"]
