"""Generated repository files: ``_config.yml``, ``README.md`` and the stylesheet."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import yaml

from gitblog.services.datetime_service import format_date

if TYPE_CHECKING:
    from collections.abc import Iterable

    from gitblog.content.frontmatter import Post
    from gitblog.schemas.site import SiteConfig

CONFIG_PATH = "_config.yml"
HOMEPAGE_PATH = "index.md"
README_PATH = "README.md"
STYLESHEET_PATH = "assets/css/style.scss"
POSTS_DIR = "_posts"

_CONFIG_HEADER = "# Generated by GitBlog. Edit the site settings in the app instead.\n"


@dataclass(frozen=True)
class StylePalette:
    description: str
    background: str
    text: str
    accent: str
    heading: str
    code_background: str
    font: str


STYLES: dict[str, StylePalette] = {
    "default": StylePalette(
        description="Modern dark theme with monospace type and cyan accents",
        background="#0f0f0f",
        text="#e0e0e0",
        accent="#64ffda",
        heading="#ffffff",
        code_background="#1e1e1e",
        font="'Source Code Pro', 'Fira Code', monospace",
    ),
    "vintage": StylePalette(
        description="Retro terminal with classic green text and dashed rules",
        background="#000000",
        text="#33ff33",
        accent="#00ffff",
        heading="#33ff33",
        code_background="#111111",
        font="'Courier New', 'Monaco', monospace",
    ),
    "msdos": StylePalette(
        description="Classic DOS prompt in bright green",
        background="#000000",
        text="#00ff00",
        accent="#00ffff",
        heading="#00ff00",
        code_background="#111111",
        font="'Courier New', monospace",
    ),
    "modern": StylePalette(
        description="Clean light layout tuned for reading",
        background="#ffffff",
        text="#2c3e50",
        accent="#3498db",
        heading="#1a1a1a",
        code_background="#f8f9fa",
        font="'Inter', 'Segoe UI', sans-serif",
    ),
}


def dedupe_plugins(plugins: Iterable[str]) -> list[str]:
    """Drop repeated plugin identifiers, keeping the first occurrence."""
    return list(dict.fromkeys(plugin.strip() for plugin in plugins if plugin.strip()))


def site_url(config: SiteConfig, owner: str, repo: str) -> str:
    """Public URL of the Pages site, from the config or derived from the repository."""
    if config.url:
        return config.url.rstrip("/") + config.baseurl.rstrip("/")
    if repo.lower() == f"{owner.lower()}.github.io":
        return f"https://{owner}.github.io"
    return f"https://{owner}.github.io/{repo}"


def render_site_config(config: SiteConfig, owner: str) -> str:
    """Render ``_config.yml``. Empty fields fall back to owner-derived defaults."""
    github_url = config.author_github or f"https://github.com/{owner}"
    twitter = config.author_twitter or f"@{owner}"
    data: dict[str, Any] = {
        "title": config.title,
        "description": config.description,
        "url": config.url or f"https://{owner}.github.io",
        "baseurl": config.baseurl,
        "author": {
            "name": config.author_name or owner,
            "email": config.author_email,
            "github": github_url,
            "twitter": twitter,
        },
        "theme": config.theme or "minima",
        "permalink": "/:categories/:title/",
        "paginate": 5,
        "paginate_path": "/page:num",
        "plugins": dedupe_plugins(config.plugins),
        "exclude": ["Gemfile", "Gemfile.lock", "node_modules", "vendor", "README.md"],
        "feed": {"path": "rss.xml"},
        "seo": {
            "type": "Blog",
            "twitter": {"username": twitter, "card": "summary_large_image"},
        },
        "social_links": [
            {"name": "GitHub", "url": github_url},
            {"name": "Twitter", "url": f"https://twitter.com/{twitter.lstrip('@')}"},
        ],
        "markdown": "kramdown",
        "kramdown": {"input": "GFM", "hard_wrap": False},
        "gitblog": {"css_style": config.css_style},
    }
    body = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return _CONFIG_HEADER + body


def render_readme(config: SiteConfig, owner: str, repo: str, posts: Iterable[Post]) -> str:
    """Render the repository README, newest posts first."""
    lines = [f"# {config.title}", ""]
    if config.description:
        lines.extend([config.description, ""])
    lines.extend(
        [
            f"Site: {site_url(config, owner, repo)}",
            "",
            "This repository is managed by GitBlog. Posts live in `_posts/` and are",
            "published with GitHub Pages. Changes made here directly may be",
            "overwritten by the next publish.",
            "",
            "## Posts",
            "",
        ]
    )
    ordered = sorted(posts, key=lambda p: (p.date, p.filename), reverse=True)
    if ordered:
        lines.extend(f"- {format_date(post.date)}: {post.title}" for post in ordered)
    else:
        lines.append("No posts yet.")
    return "\n".join(lines) + "\n"


def render_stylesheet(style: str) -> str:
    """Render ``assets/css/style.scss`` for one of the built-in styles."""
    palette = STYLES.get(style)
    if palette is None:
        msg = f"Unknown style {style!r}. Available: {', '.join(STYLES)}"
        raise ValueError(msg)
    return f"""\
---
---

@import "minima";

$gitblog-background: {palette.background};
$gitblog-text: {palette.text};
$gitblog-accent: {palette.accent};
$gitblog-heading: {palette.heading};
$gitblog-code-background: {palette.code_background};

body {{
  background-color: $gitblog-background;
  color: $gitblog-text;
  font-family: {palette.font};
}}

a {{
  color: $gitblog-accent;
}}

h1, h2, h3, h4, h5, h6 {{
  color: $gitblog-heading;
}}

pre, code {{
  background-color: $gitblog-code-background;
}}

blockquote {{
  border-left: 4px solid $gitblog-accent;
  padding-left: 1rem;
}}
"""
