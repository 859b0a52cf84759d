"""Shared test fixtures for GitBlog."""

from __future__ import annotations

import base64
import hashlib
import json
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from unittest.mock import patch

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from gitblog.config import Settings
from gitblog.database import create_engine
from gitblog.github.client import GitHubContentClient
from gitblog.main import create_app
from gitblog.models.base import Base
from gitblog.schemas.site import RepositoryConfig
from gitblog.services.publish_gate import PublishGate
from gitblog.services.storage_service import LocalStore
from gitblog.services.sync_service import ContentSynchronizer, PacingPolicy

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

TEST_SECRET_KEY = "test-secret-key-with-at-least-32-characters"

GITHUB_OWNER = "alice"
GITHUB_REPO = "blog"
GITHUB_TOKEN = "ghp_test_token"
REPO_URL = f"https://github.com/{GITHUB_OWNER}/{GITHUB_REPO}"

_REPO_PATH_RE = re.compile(r"^/repos/(?P<owner>[^/]+)/(?P<repo>[^/]+)(?P<rest>/.*)?$")


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class FakeGitHub:
    """In-memory stand-in for the GitHub contents and Pages API.

    Use ``handle`` as an ``httpx.MockTransport`` handler. ``failures`` maps
    ``(method, path)`` to a canned ``(status, message)`` response.
    """

    owner: str = GITHUB_OWNER
    repo: str = GITHUB_REPO
    token: str = GITHUB_TOKEN
    repo_exists: bool = True
    pages_branches: set[str] = field(default_factory=lambda: {"main"})
    files: dict[str, tuple[str, str]] = field(default_factory=dict)
    pages: dict[str, Any] | None = None
    builds: list[dict[str, Any]] = field(default_factory=list)
    failures: dict[tuple[str, str], tuple[int, str]] = field(default_factory=dict)
    requests: list[tuple[str, str]] = field(default_factory=list)
    bodies: list[dict[str, Any]] = field(default_factory=list)
    _counter: int = 0

    # ── Test helpers ──

    def put_file(self, path: str, content: str) -> str:
        sha = self._next_sha(path, content)
        self.files[path] = (content, sha)
        return sha

    def content_of(self, path: str) -> str:
        return self.files[path][0]

    def sha_of(self, path: str) -> str:
        return self.files[path][1]

    def count(self, method: str, prefix: str = "") -> int:
        return sum(1 for m, p in self.requests if m == method and p.startswith(prefix))

    def enable_pages(self, branch: str = "main") -> None:
        self.pages = self._pages_body(branch)

    # ── Handler ──

    def handle(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path
        self.requests.append((method, path))
        body = json.loads(request.content) if request.content else {}
        if body:
            self.bodies.append(body)

        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return _json(401, {"message": "Bad credentials"})

        match = _REPO_PATH_RE.match(path)
        if match is None or (match["owner"], match["repo"]) != (self.owner, self.repo):
            return _json(404, {"message": "Not Found"})
        if not self.repo_exists:
            return _json(404, {"message": "Not Found"})
        rest = match["rest"] or ""

        failure = self.failures.get((method, rest))
        if failure is not None:
            status, message = failure
            return _json(status, {"message": message})

        if rest == "":
            return _json(200, {"full_name": f"{self.owner}/{self.repo}"})
        if rest.startswith("/contents/"):
            return self._contents(method, rest.removeprefix("/contents/"), body)
        if rest == "/pages":
            return self._pages(method, body)
        if rest == "/pages/builds":
            return self._builds(method, request)
        return _json(404, {"message": "Not Found"})

    def _contents(self, method: str, path: str, body: dict[str, Any]) -> httpx.Response:
        existing = self.files.get(path)
        if method == "GET":
            if existing is not None:
                content, sha = existing
                encoded = base64.encodebytes(content.encode("utf-8")).decode("ascii")
                return _json(
                    200,
                    {
                        "type": "file",
                        "name": path.rsplit("/", 1)[-1],
                        "path": path,
                        "sha": sha,
                        "content": encoded,
                        "encoding": "base64",
                    },
                )
            entries = [
                {"type": "file", "name": p.rsplit("/", 1)[-1], "path": p, "sha": sha}
                for p, (_, sha) in sorted(self.files.items())
                if p.startswith(f"{path}/")
            ]
            if entries:
                return _json(200, entries)
            return _json(404, {"message": "Not Found"})

        if method == "PUT":
            sha = body.get("sha")
            if existing is not None and not sha:
                return _json(422, {"message": 'Invalid request.\n\n"sha" wasn\'t supplied.'})
            if sha and (existing is None or existing[1] != sha):
                return _json(409, {"message": f"{path} does not match {sha}"})
            content = base64.b64decode(body["content"]).decode("utf-8")
            new_sha = self.put_file(path, content)
            return _json(
                200 if existing else 201,
                {"content": {"path": path, "sha": new_sha}, "commit": {"message": body["message"]}},
            )

        if method == "DELETE":
            if existing is None:
                return _json(404, {"message": "Not Found"})
            if body.get("sha") != existing[1]:
                return _json(409, {"message": f"{path} does not match {body.get('sha')}"})
            del self.files[path]
            return _json(200, {"content": None})
        return _json(405, {"message": "Method not allowed"})

    def _pages(self, method: str, body: dict[str, Any]) -> httpx.Response:
        if method == "GET":
            if self.pages is None:
                return _json(404, {"message": "Not Found"})
            return _json(200, self.pages)
        if self.pages is not None:
            return _json(409, {"message": "GitHub Pages is already enabled."})
        branch = body["source"]["branch"]
        if branch not in self.pages_branches:
            return _json(422, {"message": f"Invalid branch: {branch}"})
        self.enable_pages(branch)
        return _json(201, self.pages)

    def _builds(self, method: str, request: httpx.Request) -> httpx.Response:
        if self.pages is None:
            return _json(404, {"message": "Not Found"})
        if method == "GET":
            per_page = int(request.url.params.get("per_page", "30"))
            return _json(200, self.builds[:per_page])
        self.builds.insert(
            0, {"status": "queued", "created_at": datetime.now(UTC).isoformat()}
        )
        return _json(201, {"status": "queued"})

    def _pages_body(self, branch: str) -> dict[str, Any]:
        return {
            "html_url": f"https://{self.owner}.github.io/{self.repo}/",
            "status": "built",
            "source": {"branch": branch, "path": "/"},
        }

    def _next_sha(self, path: str, content: str) -> str:
        self._counter += 1
        return hashlib.sha1(f"{path}:{self._counter}:{content}".encode()).hexdigest()


def _json(status: int, payload: Any) -> httpx.Response:
    return httpx.Response(status, json=payload)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with a temporary database and no pacing delays."""
    db_path = tmp_path / "test.db"
    return Settings(
        secret_key=TEST_SECRET_KEY,
        debug=False,
        database_url=f"sqlite+aiosqlite:///{db_path}",
        request_spacing_seconds=0,
        post_write_delay_seconds=0,
    )


@pytest.fixture
async def session_factory(
    test_settings: Settings,
) -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """Create a test database with the full schema."""
    engine, factory = create_engine(test_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield factory
    await engine.dispose()


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> LocalStore:
    return LocalStore(session_factory, TEST_SECRET_KEY)


@pytest.fixture
async def configured_store(store: LocalStore) -> LocalStore:
    """Local store with repository settings pointing at the fake GitHub."""
    await store.save_repository_config(RepositoryConfig(repo_url=REPO_URL, token=GITHUB_TOKEN))
    return store


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
async def github_client(
    fake_github: FakeGitHub, test_settings: Settings
) -> AsyncGenerator[GitHubContentClient]:
    client = GitHubContentClient.from_settings(
        test_settings, transport=httpx.MockTransport(fake_github.handle)
    )
    yield client
    await client.aclose()


@pytest.fixture
def gate_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gate(gate_clock: FakeClock) -> PublishGate:
    return PublishGate(cooldown_seconds=60, stale_after_seconds=300, clock=gate_clock)


@pytest.fixture
def synchronizer(
    configured_store: LocalStore, github_client: GitHubContentClient, gate: PublishGate
) -> ContentSynchronizer:
    return ContentSynchronizer(configured_store, github_client, gate, pacing=PacingPolicy(0))


@asynccontextmanager
async def create_test_client(
    settings: Settings, github_transport: httpx.AsyncBaseTransport | None = None
) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with the application lifespan running.

    ASGITransport does not run the lifespan itself, so it is entered here.
    Logging setup is skipped to keep pytest's capture handlers installed.
    """
    app = create_app(settings, github_transport=github_transport)
    with patch("gitblog.main._configure_logging"):
        async with app.router.lifespan_context(app):
            async with AsyncClient(
                transport=ASGITransport(app=app),
                base_url="http://test",
            ) as ac:
                yield ac
