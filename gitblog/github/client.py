"""GitHub contents and Pages API client."""

from __future__ import annotations

import copy
import logging
import re
from typing import TYPE_CHECKING, Any

import httpx

from gitblog.content.sanitizer import decode_content, encode_content, sanitize_text
from gitblog.content.site_files import POSTS_DIR
from gitblog.exceptions import (
    AlreadyExistsError,
    ConflictError,
    InvalidLocationError,
    NotConfiguredError,
    NotFoundError,
    UnauthorizedError,
    UnreachableError,
)
from gitblog.github.base import BuildRecord, PublishTarget, RemoteEntry, RemoteFile
from gitblog.github.request_queue import PacedRequestQueue
from gitblog.services.datetime_service import parse_datetime

if TYPE_CHECKING:
    from gitblog.config import Settings

logger = logging.getLogger(__name__)

_REPO_URL_RE = re.compile(r"github\.com[/:]([^/\s]+)/([^/\s]+?)(?:\.git)?/?$")

_API_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
    "User-Agent": "gitblog",
}


def parse_repository_url(remote_location: str) -> tuple[str, str]:
    """Return (owner, repo) from a github.com URL.

    Accepts https and ssh forms, with or without a ``.git`` suffix.
    """
    match = _REPO_URL_RE.search(remote_location.strip())
    if match is None:
        msg = f"Not a GitHub repository URL: {remote_location!r}"
        raise InvalidLocationError(msg)
    return match.group(1), match.group(2)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


def _raise_for_status(response: httpx.Response, *, is_create: bool = False) -> None:
    """Translate an unsuccessful GitHub response into a RepositoryError."""
    status = response.status_code
    if status < 400:
        return
    detail = _error_detail(response)
    if status == 429 or (
        status == 403 and response.headers.get("x-ratelimit-remaining") == "0"
    ):
        msg = f"GitHub rate limit exceeded: {detail}"
        raise UnreachableError(msg)
    if status in (401, 403):
        msg = f"GitHub rejected the credential: {detail}"
        raise UnauthorizedError(msg)
    if status == 404:
        raise NotFoundError(detail)
    if status == 409:
        raise ConflictError(detail)
    if status == 422:
        if is_create:
            raise AlreadyExistsError(detail)
        raise ConflictError(detail)
    msg = f"GitHub returned {status}: {detail}"
    raise UnreachableError(msg)


class GitHubContentClient:
    """Remote content repository backed by the GitHub REST API.

    Every request is dispatched through a shared PacedRequestQueue, so
    concurrent callers are serialized and spaced apart.
    """

    def __init__(
        self,
        *,
        api_url: str = "https://api.github.com",
        timeout: float = 10.0,
        committer_name: str = "GitBlog",
        committer_email: str = "gitblog@example.com",
        pages_branches: list[str] | None = None,
        build_history_size: int = 5,
        request_queue: PacedRequestQueue | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.owner = ""
        self.repo = ""
        self._token = ""
        self._committer = {"name": committer_name, "email": committer_email}
        self._pages_branches = list(pages_branches or ["main", "master"])
        self._build_history_size = build_history_size
        self._queue = request_queue or PacedRequestQueue(0.2)
        self._http = httpx.AsyncClient(
            base_url=api_url,
            headers=_API_HEADERS,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> GitHubContentClient:
        return cls(
            api_url=settings.github_api_url,
            timeout=settings.github_timeout_seconds,
            committer_name=settings.committer_name,
            committer_email=settings.committer_email,
            pages_branches=settings.pages_branches,
            build_history_size=settings.build_history_size,
            request_queue=PacedRequestQueue(settings.request_spacing_seconds),
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.owner and self.repo and self._token)

    def configure(self, remote_location: str, credential: str) -> GitHubContentClient:
        """Return a client bound to one repository and access token.

        The bound client shares this client's HTTP connection pool and request
        queue, so pacing still covers every repository. This client is left
        untouched, and only it should be closed.
        """
        owner, repo = parse_repository_url(remote_location)
        if not credential:
            msg = "A GitHub access token is required"
            raise NotConfiguredError(msg)
        bound = copy.copy(self)
        bound.owner, bound.repo = owner, repo
        bound._token = credential
        logger.debug("GitHub client bound to %s/%s", owner, repo)
        return bound

    async def aclose(self) -> None:
        await self._http.aclose()

    def _repo_path(self, suffix: str = "") -> str:
        if not self.is_configured:
            msg = "GitHub repository is not configured"
            raise NotConfiguredError(msg)
        return f"/repos/{self.owner}/{self.repo}{suffix}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._token}"}

        async def send() -> httpx.Response:
            return await self._http.request(method, url, headers=headers, **kwargs)

        try:
            response = await self._queue.submit(send)
        except httpx.HTTPError as exc:
            logger.warning("GitHub request %s %s failed: %s", method, url, exc)
            msg = f"Could not reach GitHub: {exc}"
            raise UnreachableError(msg) from exc
        logger.debug("GitHub %s %s -> %d", method, url, response.status_code)
        return response

    async def verify_reachable(self) -> None:
        """Check that the repository exists and the token can see it."""
        response = await self._request("GET", self._repo_path())
        _raise_for_status(response)

    async def read_file(self, path: str) -> RemoteFile:
        response = await self._request("GET", self._repo_path(f"/contents/{path}"))
        _raise_for_status(response)
        body = response.json()
        if not isinstance(body, dict) or body.get("type", "file") != "file":
            msg = f"{path} is not a file"
            raise NotFoundError(msg)
        return RemoteFile(
            path=path,
            content=decode_content(body.get("content", "")),
            revision_token=_response_sha(response, body),
        )

    async def write_file(
        self,
        path: str,
        content: str,
        revision_token: str | None = None,
        message: str | None = None,
    ) -> RemoteFile:
        """Create or update a file.

        A missing or empty revision token means create. Otherwise the update
        only succeeds if the token still matches the remote file.
        """
        is_create = not revision_token
        payload: dict[str, Any] = {
            "message": message or f"{'Create' if is_create else 'Update'} {path}",
            "content": encode_content(content),
            "committer": self._committer,
        }
        if not is_create:
            payload["sha"] = revision_token
        response = await self._request(
            "PUT", self._repo_path(f"/contents/{path}"), json=payload
        )
        _raise_for_status(response, is_create=is_create)
        body = response.json()
        written = body.get("content") if isinstance(body, dict) else None
        new_token = _response_sha(response, written)
        return RemoteFile(path=path, content=sanitize_text(content), revision_token=new_token)

    async def delete_file(
        self, path: str, revision_token: str, message: str | None = None
    ) -> None:
        payload = {
            "message": message or f"Delete {path}",
            "sha": revision_token,
            "committer": self._committer,
        }
        response = await self._request(
            "DELETE", self._repo_path(f"/contents/{path}"), json=payload
        )
        _raise_for_status(response)

    async def list_posts(self) -> list[RemoteEntry]:
        """Return the markdown files directly under ``_posts``."""
        response = await self._request("GET", self._repo_path(f"/contents/{POSTS_DIR}"))
        _raise_for_status(response)
        body = response.json()
        if not isinstance(body, list):
            msg = f"{POSTS_DIR} is not a directory"
            raise NotFoundError(msg)
        return [
            RemoteEntry(name=item["name"], path=item["path"], revision_token=item["sha"])
            for item in body
            if item.get("type") == "file" and item["name"].endswith(".md")
        ]

    async def get_publish_target(self) -> PublishTarget:
        response = await self._request("GET", self._repo_path("/pages"))
        _raise_for_status(response)
        return _to_publish_target(response.json())

    async def enable_publish_target(self) -> PublishTarget:
        """Enable GitHub Pages, trying each candidate branch in order.

        A 409 means Pages is already enabled. A 422 means the branch cannot
        host Pages, so the next candidate is tried.
        """
        for branch in self._pages_branches:
            response = await self._request(
                "POST",
                self._repo_path("/pages"),
                json={"source": {"branch": branch, "path": "/"}},
            )
            if response.status_code == 409:
                logger.debug("GitHub Pages already enabled for %s/%s", self.owner, self.repo)
                return await self.get_publish_target()
            if response.status_code == 422:
                logger.info("Branch %s rejected for GitHub Pages, trying next", branch)
                continue
            _raise_for_status(response)
            logger.info("Enabled GitHub Pages on branch %s", branch)
            return _to_publish_target(response.json())
        msg = f"No usable Pages branch among: {', '.join(self._pages_branches)}"
        raise NotFoundError(msg)

    async def list_recent_builds(self) -> list[BuildRecord]:
        """Return Pages builds, newest first."""
        response = await self._request(
            "GET",
            self._repo_path("/pages/builds"),
            params={"per_page": self._build_history_size},
        )
        _raise_for_status(response)
        return [_to_build_record(item) for item in response.json()]

    async def trigger_build(self) -> None:
        response = await self._request("POST", self._repo_path("/pages/builds"))
        _raise_for_status(response)


def _to_publish_target(body: dict[str, Any]) -> PublishTarget:
    source = body.get("source") or {}
    return PublishTarget(
        url=body.get("html_url") or "",
        status=body.get("status"),
        branch=source.get("branch"),
    )


def _to_build_record(item: dict[str, Any]) -> BuildRecord:
    created_at = None
    raw = item.get("created_at")
    if raw:
        try:
            created_at = parse_datetime(raw)
        except ValueError:
            logger.warning("Unparseable build timestamp %r", raw)
    return BuildRecord(status=str(item.get("status", "")), created_at=created_at)


def _response_sha(response: httpx.Response, body: Any) -> str:
    """Pull the blob sha out of a contents API body that GitHub reported as successful."""
    sha = body.get("sha") if isinstance(body, dict) else None
    if not isinstance(sha, str) or not sha:
        msg = f"GitHub {response.request.method} {response.request.url} returned no sha"
        raise UnreachableError(msg)
    return sha
