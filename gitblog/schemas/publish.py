"""Publish and sync result schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class PublishRunResponse(BaseModel):
    """Outcome of a publish or sync operation."""

    outcome: str
    started_at: datetime
    items_succeeded: int
    errors: list[str] = Field(default_factory=list)
    site_url: str | None = None
    retry_after_seconds: int = 0
    message: str = ""


class PublishStatusResponse(BaseModel):
    """Current publish gate state."""

    is_publishing: bool
    cooldown_remaining: int
    last_sync: datetime | None = None


class ConnectionStatusResponse(BaseModel):
    status: str
    owner: str
    repo: str
