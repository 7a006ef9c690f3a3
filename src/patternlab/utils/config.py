"""Configuration management for Pattern Lab."""

import os
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from patternlab.sandbox.executor import DEFAULT_ALLOWED_IMPORTS

# Get PATTERNLAB_HOME for .env file location
_home = Path(os.environ.get("PATTERNLAB_HOME", os.path.expanduser("~/.patternlab")))
_env_files = [
    str(_home / ".env"),
    ".env.local",
    ".env",
]


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="PATTERNLAB_",
        env_file=tuple(_env_files),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Storage Settings
    redis_url: str = ""  # Empty keeps favorites in memory
    patterns_file: str = ""  # Empty uses the bundled catalog

    # Sandbox Settings
    run_delay_ms: int = 100
    max_sessions: int = 1000
    sandbox_allowed_imports: list[str] = list(DEFAULT_ALLOWED_IMPORTS)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
