"""Slug and filename generation for posts."""

from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Container
    from datetime import datetime

MAX_SLUG_LENGTH = 80
POST_EXTENSION = ".md"

_WORD_RE = re.compile(r"[a-z0-9]+")


def generate_post_slug(title: str) -> str:
    """Generate a URL-safe slug from a post title.

    Accents are folded to ASCII, every other run of non-alphanumerics becomes
    a single hyphen, and whole words are kept up to 80 characters. A single
    word longer than that is cut. Titles with nothing usable give "untitled".
    """
    folded = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    words = _WORD_RE.findall(folded.lower())
    if not words:
        return "untitled"

    slug = words[0][:MAX_SLUG_LENGTH]
    for word in words[1:]:
        if len(slug) + 1 + len(word) > MAX_SLUG_LENGTH:
            break
        slug = f"{slug}-{word}"
    return slug


def generate_post_filename(title: str, when: datetime, existing: Container[str] = ()) -> str:
    """Generate a unique Jekyll post filename ``YYYY-MM-DD-{slug}.md``.

    If the name is already taken, appends -2, -3, etc. to the slug.
    """
    base_name = f"{when.strftime('%Y-%m-%d')}-{generate_post_slug(title)}"

    candidate = f"{base_name}{POST_EXTENSION}"
    counter = 2
    while candidate in existing:
        candidate = f"{base_name}-{counter}{POST_EXTENSION}"
        counter += 1
    return candidate
