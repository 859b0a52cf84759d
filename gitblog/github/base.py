"""Data classes and protocol for the remote content repository."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from datetime import datetime


@dataclass
class RemoteFile:
    """One file in the remote repository.

    An empty revision_token means the file does not exist yet and the next
    write is a create.
    """

    path: str
    content: str
    revision_token: str

    @property
    def exists(self) -> bool:
        return bool(self.revision_token)

    @classmethod
    def missing(cls, path: str) -> RemoteFile:
        return cls(path=path, content="", revision_token="")


@dataclass
class RemoteEntry:
    """A directory listing entry (no content)."""

    name: str
    path: str
    revision_token: str


@dataclass
class PublishTarget:
    """GitHub Pages site attached to the repository."""

    url: str
    status: str | None = None
    branch: str | None = None


@dataclass
class BuildRecord:
    """One Pages build, as reported by the builds history."""

    status: str
    created_at: datetime | None


class ContentRepository(Protocol):
    """Remote file store and static-site publish target."""

    owner: str
    repo: str

    def configure(self, remote_location: str, credential: str) -> ContentRepository:
        """Return a handle bound to one repository; the receiver is not changed."""
        ...

    async def verify_reachable(self) -> None: ...

    async def read_file(self, path: str) -> RemoteFile: ...

    async def write_file(
        self,
        path: str,
        content: str,
        revision_token: str | None = None,
        message: str | None = None,
    ) -> RemoteFile: ...

    async def delete_file(
        self, path: str, revision_token: str, message: str | None = None
    ) -> None: ...

    async def list_posts(self) -> list[RemoteEntry]: ...

    async def get_publish_target(self) -> PublishTarget: ...

    async def enable_publish_target(self) -> PublishTarget: ...

    async def list_recent_builds(self) -> list[BuildRecord]: ...

    async def trigger_build(self) -> None: ...
