"""Post-related schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class PostResponse(BaseModel):
    """A locally stored post."""

    filename: str
    title: str
    date: datetime
    content: str
    tags: list[str] = Field(default_factory=list)
    revision_token: str | None = None


class PostCreate(BaseModel):
    """Request to create a new post.

    When filename is omitted one is generated from the date and title.
    """

    filename: str | None = Field(
        default=None,
        min_length=1,
        max_length=255,
        pattern=r"^[A-Za-z0-9][A-Za-z0-9._-]*\.md$",
        description="Jekyll post filename, e.g. 2026-02-02-hello.md",
    )
    title: str = Field(min_length=1, max_length=500)
    date: datetime | None = None
    content: str = Field(default="", max_length=500_000)
    tags: list[str] = Field(default_factory=list, max_length=50)


class PostUpdate(BaseModel):
    """Request to update an existing post."""

    title: str = Field(min_length=1, max_length=500)
    date: datetime | None = None
    content: str = Field(default="", max_length=500_000)
    tags: list[str] = Field(default_factory=list, max_length=50)
