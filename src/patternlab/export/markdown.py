"""Markdown rendering of a pattern record."""

from __future__ import annotations

import re

from patternlab.models import Pattern

FOOTER = "Generated from Python Design Patterns Learning Platform"

_TAG_RE = re.compile(r"<[^>]*>")


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def strip_tags(html: str) -> str:
    return _TAG_RE.sub("", html)


def generate_markdown(pattern: Pattern) -> str:
    """Generate a Markdown document from a pattern."""
    examples = "\n\n".join(
        f"### {example.title}\n\n{example.description}"
        for example in pattern.real_world_examples
    )
    benefits = "\n".join(f"- {benefit}" for benefit in pattern.benefits)
    drawbacks = "\n".join(f"- {drawback}" for drawback in pattern.drawbacks)
    related = "\n".join(
        f"- **{related.name}**: {related.description}"
        for related in pattern.related_patterns
    )
    reading = "\n".join(
        f"- [{ref.title}]({ref.url or '#'}): {ref.description}"
        for ref in pattern.further_reading
    )

    sections = [
        f"# {pattern.name}",
        pattern.description,
        "## Category",
        _capitalize(pattern.category.value),
        "## Type",
        _capitalize(pattern.type),
        "## Difficulty",
        _capitalize(pattern.difficulty.value),
        "## Description",
        strip_tags(pattern.content).strip(),
        "## Implementation Example",
        f"```python\n{pattern.code_example.rstrip()}\n```",
        "## Real-World Applications",
        examples,
        "## Benefits",
        benefits,
        "## Drawbacks",
        drawbacks,
        "## Related Patterns",
        related,
        "## Further Reading",
        reading,
        "---",
        FOOTER,
    ]
    return "\n\n".join(sections).strip()
