"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRET_KEY = "change-me-in-production"
MIN_SECRET_KEY_LENGTH = 32


class Settings(BaseSettings):
    """GitBlog application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    secret_key: str = DEFAULT_SECRET_KEY
    debug: bool = False
    expose_docs: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///data/db/gitblog.db"

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=list)

    # GitHub
    github_api_url: str = "https://api.github.com"
    github_timeout_seconds: float = Field(default=10.0, gt=0)
    committer_name: str = "GitBlog"
    committer_email: str = "gitblog@example.com"
    pages_branches: list[str] = Field(default_factory=lambda: ["main", "master"], min_length=1)

    # Request pacing
    request_spacing_seconds: float = Field(default=0.2, ge=0)
    post_write_delay_seconds: float = Field(default=0.3, ge=0)

    # Publish gate
    publish_cooldown_seconds: float = Field(default=60.0, ge=0)
    publish_stale_lock_seconds: float = Field(default=300.0, gt=0)

    # Pages builds
    build_recency_seconds: float = Field(default=120.0, ge=0)
    build_history_size: int = Field(default=5, ge=1, le=100)

    def validate_runtime_security(self) -> None:
        """Refuse to start outside debug mode with the placeholder secret key.

        The key seals the stored GitHub token, so a guessable one exposes it.
        """
        if self.debug:
            return
        if self.secret_key == DEFAULT_SECRET_KEY or len(self.secret_key) < MIN_SECRET_KEY_LENGTH:
            msg = (
                "Insecure production configuration: SECRET_KEY must be set to a "
                f"high-entropy value of at least {MIN_SECRET_KEY_LENGTH} characters"
            )
            raise ValueError(msg)
