"""Local storage: posts and singleton documents in SQLite.

Every operation opens its own session, so each call is atomic at the
storage boundary and independent calls may run concurrently.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import delete, select

from gitblog.content.frontmatter import Post
from gitblog.models.document import StoredDocument
from gitblog.models.post import PostRecord
from gitblog.schemas.site import HomepageDocument, RepositoryConfig, SiteConfig, SyncSettings
from gitblog.services.crypto_service import open_token, seal_token

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

SITE_CONFIG_SLOT = "site_config"
HOMEPAGE_SLOT = "homepage"
SETTINGS_SLOT = "sync_settings"
REPOSITORY_SLOT = "repository"

_M = TypeVar("_M", bound=BaseModel)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; stored values are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_post(record: PostRecord) -> Post:
    return Post(
        filename=record.filename,
        title=record.title,
        date=_as_utc(record.date),
        content=record.content,
        tags=list(record.tags or []),
        revision_token=record.revision_token,
    )


def _apply(record: PostRecord, post: Post) -> None:
    record.title = post.title
    record.date = _as_utc(post.date)
    record.content = post.content
    record.tags = list(post.tags)
    record.revision_token = post.revision_token


class LocalStore:
    """Async facade over the local posts and documents tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], secret_key: str) -> None:
        self._session_factory = session_factory
        self._secret_key = secret_key

    # ── Posts ────────────────────────────────────────

    async def list_posts(self) -> list[Post]:
        """Return all posts in the order they were first saved."""
        async with self._session_factory() as session:
            result = await session.scalars(select(PostRecord).order_by(PostRecord.id))
            return [_to_post(record) for record in result]

    async def get_post(self, filename: str) -> Post | None:
        async with self._session_factory() as session:
            record = await session.scalar(
                select(PostRecord).where(PostRecord.filename == filename)
            )
            return _to_post(record) if record is not None else None

    async def save_post(self, post: Post) -> None:
        """Insert or update a post keyed by filename."""
        async with self._session_factory() as session:
            record = await session.scalar(
                select(PostRecord).where(PostRecord.filename == post.filename)
            )
            if record is None:
                record = PostRecord(filename=post.filename)
                session.add(record)
            _apply(record, post)
            await session.commit()

    async def delete_post(self, filename: str) -> bool:
        """Delete a post. Returns False if it did not exist."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(PostRecord).where(PostRecord.filename == filename)
            )
            await session.commit()
            return bool(result.rowcount)  # type: ignore[attr-defined]

    async def replace_posts(self, posts: Iterable[Post]) -> None:
        """Replace the whole post collection in one transaction."""
        async with self._session_factory() as session:
            await session.execute(delete(PostRecord))
            for post in posts:
                record = PostRecord(filename=post.filename)
                _apply(record, post)
                session.add(record)
            await session.commit()

    # ── Documents ────────────────────────────────────

    async def _load(self, slot: str, model: type[_M]) -> _M:
        async with self._session_factory() as session:
            document = await session.get(StoredDocument, slot)
        if document is None:
            return model()
        try:
            return model.model_validate_json(document.payload)
        except ValidationError:
            logger.warning("Stored %s document is invalid, using defaults", slot)
            return model()

    async def _store(self, slot: str, value: BaseModel) -> None:
        async with self._session_factory() as session:
            await session.merge(StoredDocument(slot=slot, payload=value.model_dump_json()))
            await session.commit()

    async def get_settings(self) -> SyncSettings:
        return await self._load(SETTINGS_SLOT, SyncSettings)

    async def save_settings(self, settings: SyncSettings) -> None:
        await self._store(SETTINGS_SLOT, settings)

    async def get_site_config(self) -> SiteConfig:
        return await self._load(SITE_CONFIG_SLOT, SiteConfig)

    async def save_site_config(self, config: SiteConfig) -> None:
        await self._store(SITE_CONFIG_SLOT, config)

    async def get_homepage(self) -> HomepageDocument:
        return await self._load(HOMEPAGE_SLOT, HomepageDocument)

    async def save_homepage(self, homepage: HomepageDocument) -> None:
        await self._store(HOMEPAGE_SLOT, homepage)

    async def get_repository_config(self) -> RepositoryConfig:
        """Return the stored repository config with the token decrypted."""
        stored = await self._load(REPOSITORY_SLOT, RepositoryConfig)
        if not stored.token:
            return stored
        try:
            token = open_token(stored.token, self._secret_key)
        except ValueError:
            logger.error("Stored repository token cannot be decrypted; treating as unset")
            token = ""
        return RepositoryConfig(repo_url=stored.repo_url, token=token)

    async def save_repository_config(self, config: RepositoryConfig) -> None:
        token = seal_token(config.token, self._secret_key) if config.token else ""
        await self._store(REPOSITORY_SLOT, RepositoryConfig(repo_url=config.repo_url, token=token))

    async def clear_all(self) -> None:
        """Delete every post and document, including the stored credential."""
        async with self._session_factory() as session:
            await session.execute(delete(PostRecord))
            await session.execute(delete(StoredDocument))
            await session.commit()
        logger.info("Cleared all local data")
