"""Front matter codec for Jekyll posts.

Posts are stored remotely as a small YAML header followed by the markdown
body::

    ---
    title: "Hello"
    date: 2026-02-02
    tags: ["python", "jekyll"]
    ---

    Body text

The header is written by hand so the output is byte-for-byte deterministic;
reading goes through ``python-frontmatter`` with a line-prefix fallback for
headers that are not valid YAML (hand-edited files on GitHub).
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime

import frontmatter
import yaml

from gitblog.services.datetime_service import (
    date_from_filename,
    format_date,
    now_utc,
    parse_datetime,
)

logger = logging.getLogger(__name__)

RECOGNIZED_FIELDS: tuple[str, ...] = ("title", "date", "tags")

_HEADER_RE = re.compile(r"\A---[ \t]*\n(.*?)\n---[ \t]*(?:\n|\Z)(.*)\Z", re.DOTALL)


@dataclass
class Post:
    """A blog post as held in local storage."""

    filename: str
    title: str
    date: datetime
    content: str
    tags: list[str] = field(default_factory=list)
    revision_token: str | None = None


def strip_extension(filename: str) -> str:
    """Return the filename without its final extension."""
    stem, dot, _ = filename.rpartition(".")
    return stem if dot and stem else filename


def _quote(value: str) -> str:
    # JSON string literals are valid YAML double-quoted scalars.
    return json.dumps(value, ensure_ascii=False)


def normalize_tags(tags: list[str]) -> list[str]:
    """Trim tags, drop empties and duplicates, keep first-seen order."""
    result: list[str] = []
    for tag in tags:
        cleaned = tag.strip()
        if cleaned and cleaned not in result:
            result.append(cleaned)
    return result


def parse_tags(raw: object | None) -> list[str]:
    """Parse tags from a header value.

    Accepts a YAML list, a bracketed list string (``[a, "b"]``) or a bare
    comma-separated string. Entries are trimmed of quotes and whitespace.
    """
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(item) for item in raw if item is not None]
    else:
        value = str(raw).strip()
        if value.startswith("[") and value.endswith("]"):
            value = value[1:-1]
        items = value.split(",")
    return normalize_tags([item.strip().strip("\"'") for item in items])


def _parse_header_lines(text: str) -> tuple[dict[str, object], str]:
    """Extract recognized fields by line prefix when the header is not valid YAML."""
    match = _HEADER_RE.match(text.strip())
    if match is None:
        return {}, text
    header, body = match.groups()
    metadata: dict[str, object] = {}
    for line in header.splitlines():
        for key in RECOGNIZED_FIELDS:
            if key not in metadata and line.startswith(f"{key}:"):
                value = line.split(":", 1)[1].strip()
                metadata[key] = value if key == "tags" else value.strip("\"'")
    return metadata, body.strip()


def _resolve_date(raw: object | None, filename: str) -> datetime:
    if isinstance(raw, (date, str)) and raw != "":
        try:
            return parse_datetime(raw)
        except ValueError:
            logger.warning("Ignoring unparseable date %r in %s", raw, filename)
    return date_from_filename(filename) or now_utc()


def encode_post(post: Post) -> str:
    """Serialize a post to markdown with a front matter header.

    The tags line is omitted entirely when the post has no tags.
    """
    lines = [
        "---",
        f"title: {_quote(post.title)}",
        f"date: {format_date(post.date)}",
    ]
    tags = normalize_tags(post.tags)
    if tags:
        lines.append(f"tags: [{', '.join(_quote(tag) for tag in tags)}]")
    lines.extend(["---", "", post.content])
    return "\n".join(lines)


def decode_post(filename: str, text: str, revision_token: str | None = None) -> Post:
    """Parse a markdown file with an optional front matter header into a Post.

    Without a header the whole text is the body, the title is the filename
    without extension and the date is now. A header without a date falls back
    to the ``YYYY-MM-DD`` filename prefix before now.
    """
    default_title = strip_extension(filename)

    if _HEADER_RE.match(text.strip()) is None:
        return Post(
            filename=filename,
            title=default_title,
            date=now_utc(),
            content=text,
            revision_token=revision_token,
        )

    try:
        metadata, body = frontmatter.parse(text)
    except yaml.YAMLError:
        logger.debug("Front matter in %s is not valid YAML, using line matching", filename)
        metadata, body = _parse_header_lines(text)

    raw_title = metadata.get("title")
    title = str(raw_title).strip() if raw_title is not None else ""

    return Post(
        filename=filename,
        title=title or default_title,
        date=_resolve_date(metadata.get("date"), filename),
        content=body,
        tags=parse_tags(metadata.get("tags")),
        revision_token=revision_token,
    )
