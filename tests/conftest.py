"""Pytest fixtures and configuration."""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest

from patternlab.data import load_patterns
from patternlab.models import Pattern, PatternBase
from patternlab.sandbox import CodeExecutor, PrintChannel, SandboxConfig
from patternlab.storage import MemStorage
from patternlab.utils.config import get_settings


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep tests off real Redis and custom catalogs."""
    monkeypatch.setenv("PATTERNLAB_REDIS_URL", "")
    monkeypatch.setenv("PATTERNLAB_PATTERNS_FILE", "")
    monkeypatch.setenv("PATTERNLAB_RUN_DELAY_MS", "0")
    monkeypatch.delenv("PATTERNLAB_DEBUG", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def catalog() -> list[PatternBase]:
    """The bundled pattern catalog."""
    return load_patterns()


@pytest.fixture
def mem_storage(catalog: list[PatternBase]) -> MemStorage:
    """In-memory storage seeded with the catalog."""
    return MemStorage(catalog)


@pytest.fixture
def channel_lines() -> list[str]:
    """Lines that reach the channel's own handler."""
    return []


@pytest.fixture
def channel(channel_lines: list[str]) -> PrintChannel:
    """A private print channel recording into ``channel_lines``."""
    return PrintChannel(handler=channel_lines.append)


class StuckChannel(PrintChannel):
    """Channel whose handler cannot be put back after a redirect."""

    def __setattr__(self, name, value):
        if name == "handler" and "handler" in self.__dict__ and getattr(
            value, "__self__", None
        ) is None:
            return
        super().__setattr__(name, value)


@pytest.fixture
def stuck_channel() -> PrintChannel:
    """A channel that stays redirected after every run."""
    return StuckChannel(handler=lambda line: None)


@pytest.fixture
def executor(channel: PrintChannel) -> CodeExecutor:
    """Code executor bound to the private channel."""
    return CodeExecutor(config=SandboxConfig(), channel=channel)


@pytest.fixture
def sample_pattern() -> Pattern:
    """A small hand-built pattern record."""
    return Pattern.model_validate({
        "id": 42,
        "name": "Strategy",
        "slug": "strategy",
        "description": "Swaps algorithms at runtime",
        "category": "python",
        "difficulty": "beginner",
        "type": "behavioral",
        "content": "<p>Pick an <b>algorithm</b> at runtime.</p>",
        "codeExample": "print('strategy')\n",
        "codeTemplate": "# your code\n",
        "relatedPatterns": [{"id": 1, "name": "Singleton", "description": "One instance"}],
        "realWorldExamples": [{"title": "Sorting", "description": "key functions"}],
        "benefits": ["Flexible"],
        "drawbacks": ["More objects"],
        "furtherReading": [
            {"title": "Guide", "description": "Read this", "url": "https://example.com"},
            {"title": "Book", "description": "No link"},
        ],
    })


@pytest.fixture
def mock_redis() -> MagicMock:
    """Create mock Redis client."""
    client = MagicMock()
    client.ping = AsyncMock()
    client.hgetall = AsyncMock(return_value={})
    client.hset = AsyncMock(return_value=1)
    client.hdel = AsyncMock(return_value=1)
    client.hexists = AsyncMock(return_value=False)
    client.incr = AsyncMock(return_value=1)
    client.aclose = AsyncMock()
    return client
