"""Site-wide schemas: Jekyll configuration, homepage, sync bookkeeping."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

CSS_STYLES: tuple[str, ...] = ("default", "vintage", "msdos", "modern")

DEFAULT_PLUGINS: tuple[str, ...] = ("jekyll-feed", "jekyll-seo-tag", "jekyll-sitemap")

DEFAULT_HOMEPAGE = """\
---
layout: default
title: "Home"
---

# Welcome to my blog

This is my personal blog where I share thoughts, experiences and notes about
software, technology and whatever else I am curious about.

## Latest posts

<ul>
  {% for post in site.posts %}
    <li>
      <a href="{{ post.url | relative_url }}">{{ post.title }}</a> - {{ post.date | date: "%d/%m/%Y" }}
    </li>
  {% endfor %}
</ul>
"""


class SiteConfig(BaseModel):
    """Jekyll site configuration edited through the settings screen."""

    title: str = Field(default="My Blog", max_length=200)
    description: str = Field(
        default="A blog about web development, software and technology", max_length=1000
    )
    url: str = Field(default="", max_length=500)
    baseurl: str = Field(default="", max_length=200)
    author_name: str = Field(default="", max_length=200)
    author_email: str = Field(default="", max_length=200)
    author_github: str = Field(default="", max_length=500)
    author_twitter: str = Field(default="", max_length=200)
    theme: str = Field(default="minima", max_length=100)
    plugins: list[str] = Field(default_factory=lambda: list(DEFAULT_PLUGINS))
    css_style: str = "default"

    @field_validator("css_style")
    @classmethod
    def validate_css_style(cls, value: str) -> str:
        if value not in CSS_STYLES:
            msg = f"Unknown style {value!r}. Available: {', '.join(CSS_STYLES)}"
            raise ValueError(msg)
        return value

    @field_validator("plugins")
    @classmethod
    def strip_plugins(cls, value: list[str]) -> list[str]:
        return [plugin.strip() for plugin in value if plugin.strip()]


class HomepageDocument(BaseModel):
    """Landing page content, written verbatim to ``index.md``."""

    content: str = Field(default=DEFAULT_HOMEPAGE, max_length=500_000)


class SyncSettings(BaseModel):
    """Local sync bookkeeping."""

    sync_enabled: bool = False
    last_sync: datetime | None = None


class RepositoryConfig(BaseModel):
    """Repository location and credential (the token is encrypted at rest)."""

    repo_url: str = ""
    token: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.repo_url and self.token)


class RepositoryConfigUpdate(BaseModel):
    """Request to store a new repository location and credential."""

    repo_url: str = Field(min_length=1, max_length=500)
    token: str = Field(min_length=1, max_length=500)


class RepositoryConfigResponse(BaseModel):
    """Stored repository location; the token itself is never returned."""

    repo_url: str
    owner: str | None = None
    repo: str | None = None
    has_token: bool


class StyleInfo(BaseModel):
    name: str
    description: str
