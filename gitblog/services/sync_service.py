"""Publish orchestration and content synchronization with the GitHub repository."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, TypeVar

from gitblog.content.frontmatter import Post, decode_post, encode_post
from gitblog.content.site_files import (
    CONFIG_PATH,
    HOMEPAGE_PATH,
    POSTS_DIR,
    README_PATH,
    STYLESHEET_PATH,
    render_readme,
    render_site_config,
    render_stylesheet,
)
from gitblog.exceptions import (
    AlreadyInProgressError,
    CooldownActiveError,
    NotConfiguredError,
    NotFoundError,
    RepositoryError,
    UnauthorizedError,
)
from gitblog.github.base import RemoteFile
from gitblog.schemas.publish import ConnectionStatusResponse, PublishStatusResponse
from gitblog.schemas.site import SyncSettings
from gitblog.services.build_policy import DEFAULT_RECENCY_SECONDS, should_trigger
from gitblog.services.datetime_service import now_utc

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Sequence
    from datetime import datetime

    from gitblog.github.base import ContentRepository
    from gitblog.services.publish_gate import PublishGate
    from gitblog.services.storage_service import LocalStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class PublishOutcome(StrEnum):
    """How a publish or sync attempt ended."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    COOLDOWN_ACTIVE = "cooldown_active"
    IN_PROGRESS = "in_progress"
    ABORTED = "aborted"


class EventPhase(StrEnum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    PAGES = "pages"
    BUILD = "build"


class EventOutcome(StrEnum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class PublishEvent:
    """Progress notification for one artifact."""

    artifact: str
    phase: EventPhase
    outcome: EventOutcome
    detail: str = ""


class PublishObserver(Protocol):
    def notify(self, event: PublishEvent) -> None: ...


class LoggingPublishObserver:
    """Default observer: writes each event to the module logger."""

    def notify(self, event: PublishEvent) -> None:
        level = logging.WARNING if event.outcome is EventOutcome.FAILED else logging.INFO
        logger.log(
            level,
            "%s %s: %s%s",
            event.artifact,
            event.phase,
            event.outcome,
            f" ({event.detail})" if event.detail else "",
        )


@dataclass
class PublishRun:
    """Result of one publish or sync attempt. Returned, never persisted."""

    started_at: datetime
    outcome: PublishOutcome = PublishOutcome.SUCCESS
    items_succeeded: int = 0
    errors: list[str] = field(default_factory=list)
    site_url: str | None = None
    retry_after_seconds: int = 0
    message: str = ""


@dataclass
class PacingPolicy:
    """Fixed delay inserted between successive item writes."""

    item_delay_seconds: float = 0.3
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def between_items(self) -> None:
        if self.item_delay_seconds > 0:
            await self.sleep(self.item_delay_seconds)


async def paced_fold(
    items: Iterable[T],
    action: Callable[[T], Awaitable[R]],
    describe: Callable[[T], str],
    pacing: PacingPolicy,
) -> tuple[list[R], list[str]]:
    """Apply ``action`` to each item in order, collecting results and errors.

    A RepositoryError fails only its own item and is recorded as
    ``"<describe(item)>: <message>"``. UnauthorizedError and
    NotConfiguredError stop the fold, since every later item would fail the
    same way.
    """
    successes: list[R] = []
    errors: list[str] = []
    for index, item in enumerate(items):
        if index:
            await pacing.between_items()
        try:
            successes.append(await action(item))
        except (UnauthorizedError, NotConfiguredError):
            raise
        except RepositoryError as exc:
            errors.append(f"{describe(item)}: {exc}")
    return successes, errors


def _post_path(filename: str) -> str:
    return f"{POSTS_DIR}/{filename}"


def _is_fatal(exc: BaseException) -> bool:
    return isinstance(exc, (UnauthorizedError, NotConfiguredError)) or not isinstance(
        exc, RepositoryError
    )


class ContentSynchronizer:
    """Pushes local content to the GitHub repository and pulls posts back.

    ``publish_and_refresh`` is the only operation that goes through the
    publish gate. The finer operations run unguarded.
    """

    def __init__(
        self,
        store: LocalStore,
        client: ContentRepository,
        gate: PublishGate,
        *,
        pacing: PacingPolicy | None = None,
        observers: Sequence[PublishObserver] | None = None,
        build_recency_seconds: float = DEFAULT_RECENCY_SECONDS,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._store = store
        self._client = client
        self._gate = gate
        self._pacing = pacing or PacingPolicy()
        self._observers = list(observers) if observers is not None else [LoggingPublishObserver()]
        self._build_recency_seconds = build_recency_seconds
        self._clock = clock

    @property
    def is_publishing(self) -> bool:
        return self._gate.is_publishing

    def _emit(
        self, artifact: str, phase: EventPhase, outcome: EventOutcome, detail: str = ""
    ) -> None:
        event = PublishEvent(artifact=artifact, phase=phase, outcome=outcome, detail=detail)
        for observer in self._observers:
            observer.notify(event)

    # ── Connection ───────────────────────────────────

    async def _connect(self) -> ContentRepository:
        """Bind the stored repository settings to a handle and verify it."""
        config = await self._store.get_repository_config()
        if not config.is_configured:
            msg = "Please configure the GitHub repository URL and token first"
            raise NotConfiguredError(msg)
        repository = self._client.configure(config.repo_url, config.token)
        await repository.verify_reachable()
        return repository

    async def test_connection(
        self, repo_url: str | None = None, token: str | None = None
    ) -> ConnectionStatusResponse:
        """Verify the supplied credentials, or the stored ones when omitted.

        Raises the RepositoryError describing why the repository is unusable.
        """
        if repo_url is None or token is None:
            stored = await self._store.get_repository_config()
            repo_url = repo_url if repo_url is not None else stored.repo_url
            token = token if token is not None else stored.token
        if not repo_url or not token:
            msg = "Please configure the GitHub repository URL and token first"
            raise NotConfiguredError(msg)
        repository = self._client.configure(repo_url, token)
        await repository.verify_reachable()
        return ConnectionStatusResponse(status="ok", owner=repository.owner, repo=repository.repo)

    # ── Shared steps ─────────────────────────────────

    async def _read_or_empty(self, repository: ContentRepository, path: str) -> RemoteFile:
        try:
            return await repository.read_file(path)
        except NotFoundError:
            return RemoteFile.missing(path)

    async def _write_artifact(
        self,
        repository: ContentRepository,
        run: PublishRun,
        label: str,
        remote: RemoteFile,
        content: str,
        message: str,
    ) -> None:
        """Write one site file, recording a failure on the run instead of raising."""
        try:
            await repository.write_file(
                remote.path, content, remote.revision_token or None, message
            )
        except (UnauthorizedError, NotConfiguredError):
            raise
        except RepositoryError as exc:
            run.errors.append(f"{label}: {exc}")
            self._emit(label, EventPhase.WRITE, EventOutcome.FAILED, str(exc))
            return
        run.items_succeeded += 1
        self._emit(label, EventPhase.WRITE, EventOutcome.OK, remote.path)

    async def _remote_post_tokens(
        self, repository: ContentRepository, run: PublishRun
    ) -> dict[str, str]:
        """Map remote post filenames to their revision tokens."""
        try:
            entries = await repository.list_posts()
        except NotFoundError:
            logger.info("Remote has no %s directory yet; all posts will be created", POSTS_DIR)
            return {}
        except (UnauthorizedError, NotConfiguredError):
            raise
        except RepositoryError as exc:
            run.errors.append(f"Posts listing: {exc}")
            self._emit("Posts", EventPhase.READ, EventOutcome.FAILED, str(exc))
            return {}
        return {entry.name: entry.revision_token for entry in entries}

    async def _push_posts(
        self, repository: ContentRepository, run: PublishRun, posts: list[Post]
    ) -> None:
        tokens = await self._remote_post_tokens(repository, run)

        async def push(post: Post) -> str:
            token = tokens.get(post.filename)
            verb = "Update" if token else "Create"
            artifact = f"Post {post.filename}"
            try:
                remote = await repository.write_file(
                    _post_path(post.filename),
                    encode_post(post),
                    token,
                    f"{verb} post: {post.filename}",
                )
            except RepositoryError as exc:
                self._emit(artifact, EventPhase.WRITE, EventOutcome.FAILED, str(exc))
                raise
            await self._store.save_post(replace(post, revision_token=remote.revision_token))
            self._emit(artifact, EventPhase.WRITE, EventOutcome.OK)
            return post.filename

        pushed, errors = await paced_fold(
            posts, push, lambda post: f"Post {post.filename}", self._pacing
        )
        run.items_succeeded += len(pushed)
        run.errors.extend(errors)

    async def _refresh_pages(
        self, repository: ContentRepository, run: PublishRun, *, content_ok: bool
    ) -> None:
        """Make sure Pages is enabled and request a build when one is due."""
        try:
            target = await repository.enable_publish_target()
        except (UnauthorizedError, NotConfiguredError):
            raise
        except RepositoryError as exc:
            run.errors.append(f"Pages setup: {exc}")
            self._emit("Pages", EventPhase.PAGES, EventOutcome.FAILED, str(exc))
            return
        if target.url:
            run.site_url = target.url
        self._emit("Pages", EventPhase.PAGES, EventOutcome.OK, target.url)

        if not content_ok:
            self._emit("Pages build", EventPhase.BUILD, EventOutcome.SKIPPED, "content errors")
            return
        try:
            builds = await repository.list_recent_builds()
            if not should_trigger(builds, self._clock(), self._build_recency_seconds):
                self._emit("Pages build", EventPhase.BUILD, EventOutcome.SKIPPED, "recent build")
                return
            await repository.trigger_build()
        except (UnauthorizedError, NotConfiguredError):
            raise
        except RepositoryError as exc:
            run.errors.append(f"Pages build: {exc}")
            self._emit("Pages build", EventPhase.BUILD, EventOutcome.FAILED, str(exc))
            return
        self._emit("Pages build", EventPhase.BUILD, EventOutcome.OK)

    async def _mark_synced(self) -> None:
        await self._store.save_settings(SyncSettings(sync_enabled=True, last_sync=self._clock()))

    # ── Run bookkeeping ──────────────────────────────

    def _abort(self, run: PublishRun, exc: RepositoryError) -> None:
        run.outcome = PublishOutcome.ABORTED
        run.errors = [str(exc)]
        run.message = f"Aborted: {exc}"
        logger.warning("Aborted %s: %s", type(exc).__name__, exc)

    def _finish(self, run: PublishRun, verb: str) -> None:
        run.outcome = PublishOutcome.PARTIAL_FAILURE if run.errors else PublishOutcome.SUCCESS
        message = f"{verb} {run.items_succeeded} items"
        if run.errors:
            message += f" with {len(run.errors)} errors"
        if run.site_url:
            message += f". Site: {run.site_url}"
        run.message = message

    async def _run(
        self,
        verb: str,
        body: Callable[[ContentRepository, PublishRun], Awaitable[None]],
        *,
        mark_synced: bool = False,
    ) -> PublishRun:
        """Connect, run ``body`` and classify the result, without the gate."""
        run = PublishRun(started_at=self._clock())
        try:
            await body(await self._connect(), run)
        except RepositoryError as exc:
            self._abort(run, exc)
            return run
        self._finish(run, verb)
        if mark_synced:
            await self._mark_synced()
        return run

    # ── Publish ──────────────────────────────────────

    async def publish_and_refresh(self) -> PublishRun:
        """Push site files and every post, then make sure the site gets rebuilt.

        Gate denials return immediately without touching the network. The
        cooldown is recorded and the in-flight lock released however the run
        ends.
        """
        started_at = self._clock()
        try:
            lease = self._gate.admit()
        except CooldownActiveError as exc:
            return PublishRun(
                started_at=started_at,
                outcome=PublishOutcome.COOLDOWN_ACTIVE,
                retry_after_seconds=exc.retry_after,
                message=str(exc),
            )
        except AlreadyInProgressError as exc:
            return PublishRun(
                started_at=started_at, outcome=PublishOutcome.IN_PROGRESS, message=str(exc)
            )

        run = PublishRun(started_at=started_at)
        try:
            try:
                await self._publish(await self._connect(), run)
            except RepositoryError as exc:
                self._abort(run, exc)
            else:
                self._finish(run, "Published")
            finally:
                self._gate.record_triggered()
            if run.outcome is not PublishOutcome.ABORTED:
                await self._mark_synced()
        finally:
            self._gate.release(lease)
        logger.info("Publish finished: %s", run.message)
        return run

    async def _publish(self, repository: ContentRepository, run: PublishRun) -> None:
        config, homepage, posts = await asyncio.gather(
            self._store.get_site_config(),
            self._store.get_homepage(),
            self._store.list_posts(),
        )
        owner, repo = repository.owner, repository.repo

        labels = ("Site config", "Homepage", "README")
        reads = await asyncio.gather(
            self._read_or_empty(repository, CONFIG_PATH),
            self._read_or_empty(repository, HOMEPAGE_PATH),
            self._read_or_empty(repository, README_PATH),
            return_exceptions=True,
        )
        for result in reads:
            if isinstance(result, BaseException) and _is_fatal(result):
                raise result

        contents = (
            (render_site_config(config, owner), "Update Jekyll configuration"),
            (homepage.content, "Update homepage"),
            (render_readme(config, owner, repo, posts), "Update README"),
        )
        for label, remote, (content, message) in zip(labels, reads, contents, strict=True):
            if isinstance(remote, BaseException):
                run.errors.append(f"{label}: {remote}")
                self._emit(label, EventPhase.READ, EventOutcome.FAILED, str(remote))
                continue
            await self._write_artifact(repository, run, label, remote, content, message)

        await self._push_posts(repository, run, posts)

        await self._refresh_pages(repository, run, content_ok=not run.errors)

    # ── Finer-grained operations ─────────────────────

    async def sync_posts(self) -> PublishRun:
        """Push every local post without touching site files or Pages."""

        async def body(repository: ContentRepository, run: PublishRun) -> None:
            await self._push_posts(repository, run, await self._store.list_posts())

        return await self._run("Synced", body, mark_synced=True)

    async def _sync_single(
        self,
        label: str,
        path: str,
        render: Callable[[ContentRepository], Awaitable[str]],
        message: str,
    ) -> PublishRun:
        async def body(repository: ContentRepository, run: PublishRun) -> None:
            remote = await self._read_or_empty(repository, path)
            content = await render(repository)
            await self._write_artifact(repository, run, label, remote, content, message)

        return await self._run("Synced", body)

    async def sync_site_config(self) -> PublishRun:
        async def render(repository: ContentRepository) -> str:
            return render_site_config(await self._store.get_site_config(), repository.owner)

        return await self._sync_single(
            "Site config", CONFIG_PATH, render, "Update Jekyll configuration"
        )

    async def sync_homepage(self) -> PublishRun:
        async def render(repository: ContentRepository) -> str:
            return (await self._store.get_homepage()).content

        return await self._sync_single("Homepage", HOMEPAGE_PATH, render, "Update homepage")

    async def sync_readme(self) -> PublishRun:
        async def render(repository: ContentRepository) -> str:
            config, posts = await asyncio.gather(
                self._store.get_site_config(), self._store.list_posts()
            )
            return render_readme(config, repository.owner, repository.repo, posts)

        return await self._sync_single("README", README_PATH, render, "Update README")

    async def sync_stylesheet(self) -> PublishRun:
        async def render(repository: ContentRepository) -> str:
            config = await self._store.get_site_config()
            return render_stylesheet(config.css_style)

        return await self._sync_single("Stylesheet", STYLESHEET_PATH, render, "Update stylesheet")

    async def import_from_remote(self) -> PublishRun:
        """Replace local posts with the posts found in the remote ``_posts`` directory.

        A post whose remote read fails keeps its local copy, if there is one.
        A missing ``_posts`` directory aborts the import and leaves local
        posts untouched.
        """

        async def body(repository: ContentRepository, run: PublishRun) -> None:
            entries = await repository.list_posts()
            local = {post.filename: post for post in await self._store.list_posts()}

            async def fetch(name: str) -> Post:
                remote = await repository.read_file(_post_path(name))
                return decode_post(name, remote.content, remote.revision_token)

            names = [entry.name for entry in entries]
            fetched, errors = await paced_fold(
                names, fetch, lambda name: f"Post {name}", PacingPolicy(0)
            )
            fetched_by_name = {post.filename: post for post in fetched}
            imported: list[Post] = []
            for name in names:
                if name in fetched_by_name:
                    imported.append(fetched_by_name[name])
                elif name in local:
                    imported.append(local[name])
            await self._store.replace_posts(imported)
            run.items_succeeded = len(fetched)
            run.errors.extend(errors)

        return await self._run("Imported", body, mark_synced=True)

    async def delete_remote_post(self, filename: str) -> PublishRun:
        """Delete a post from the remote repository using its current revision token."""

        async def body(repository: ContentRepository, run: PublishRun) -> None:
            path = _post_path(filename)
            remote = await repository.read_file(path)
            await repository.delete_file(
                path, remote.revision_token, f"Delete post: {filename}"
            )
            run.items_succeeded = 1
            self._emit(f"Post {filename}", EventPhase.DELETE, EventOutcome.OK)
            local = await self._store.get_post(filename)
            if local is not None and local.revision_token:
                await self._store.save_post(replace(local, revision_token=None))

        return await self._run("Deleted", body)

    async def publish_status(self) -> PublishStatusResponse:
        settings = await self._store.get_settings()
        return PublishStatusResponse(
            is_publishing=self.is_publishing,
            cooldown_remaining=self._gate.remaining_seconds(),
            last_sync=settings.last_sync,
        )
