"""Tests for slug and post filename generation."""

from __future__ import annotations

from datetime import UTC, datetime

from gitblog.services.slug_service import generate_post_filename, generate_post_slug

_WHEN = datetime(2026, 2, 2, 9, 30, tzinfo=UTC)


class TestGeneratePostSlug:
    def test_basic_title(self) -> None:
        assert generate_post_slug("Hello World") == "hello-world"

    def test_special_characters_replaced(self) -> None:
        assert generate_post_slug("Hello, World! How's it?") == "hello-world-how-s-it"

    def test_leading_trailing_hyphens_stripped(self) -> None:
        assert generate_post_slug("---hello world---") == "hello-world"

    def test_unicode_accented_chars(self) -> None:
        assert generate_post_slug("été français") == "ete-francais"

    def test_empty_string_returns_untitled(self) -> None:
        assert generate_post_slug("   ") == "untitled"

    def test_long_title_truncated_at_word_boundary(self) -> None:
        slug = generate_post_slug("word " * 40)
        assert len(slug) <= 80
        assert not slug.endswith("-")
        assert slug.startswith("word-word")

    def test_words_ending_exactly_at_limit_are_kept(self) -> None:
        title = "abcdefghij " + " ".join(["abcdefghi"] * 7)
        assert generate_post_slug(title) == title.replace(" ", "-")
        assert len(generate_post_slug(title)) == 80

    def test_single_overlong_word_is_cut(self) -> None:
        assert generate_post_slug("x" * 120) == "x" * 80


class TestGeneratePostFilename:
    def test_jekyll_filename(self) -> None:
        assert generate_post_filename("Hello World", _WHEN) == "2026-02-02-hello-world.md"

    def test_collision_appends_counter(self) -> None:
        existing = {"2026-02-02-hello-world.md"}
        assert generate_post_filename("Hello World", _WHEN, existing) == (
            "2026-02-02-hello-world-2.md"
        )

    def test_multiple_collisions(self) -> None:
        existing = {"2026-02-02-hello-world.md", "2026-02-02-hello-world-2.md"}
        assert generate_post_filename("Hello World", _WHEN, existing) == (
            "2026-02-02-hello-world-3.md"
        )

    def test_untitled_post(self) -> None:
        assert generate_post_filename("!!!", _WHEN) == "2026-02-02-untitled.md"
