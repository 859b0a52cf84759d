"""Application-level exception types.

Convention:
- ``RepositoryError`` subclasses describe failures talking to the remote
  content repository. Each carries a ``kind`` string so callers (and the
  HTTP layer) can render distinct guidance without matching on class names.
- ``PublishDeniedError`` subclasses are admission refusals from the publish
  gate. They mean "nothing happened, try later" and are never recorded as
  per-artifact errors.
- ``InternalServerError`` is for errors whose details must never reach
  clients. The global handler logs the full message and returns a generic 500.
- ``ValueError`` is for business-logic validation errors that are safe to
  forward to clients.
"""

from __future__ import annotations


class GitBlogError(Exception):
    """Base class for GitBlog errors."""

    kind: str = "error"


class RepositoryError(GitBlogError):
    """Raised when an operation against the remote content repository fails."""

    kind = "repository_error"


class NotConfiguredError(RepositoryError):
    """No repository URL or credential has been stored yet."""

    kind = "not_configured"


class InvalidLocationError(RepositoryError):
    """The repository URL does not have the ``github.com/<owner>/<repo>`` shape."""

    kind = "invalid_location"


class UnauthorizedError(RepositoryError):
    """The credential was rejected."""

    kind = "unauthorized"


class NotFoundError(RepositoryError):
    """The repository, file, directory or publish target does not exist."""

    kind = "not_found"


class ConflictError(RepositoryError):
    """The supplied revision token no longer matches the remote file."""

    kind = "conflict"


class AlreadyExistsError(RepositoryError):
    """A create collided with an existing remote file."""

    kind = "already_exists"


class UnreachableError(RepositoryError):
    """Network failure, rate limiting, or an unexpected upstream response."""

    kind = "unreachable"


class ContentEncodingError(RepositoryError):
    """Sanitized content did not survive the transport encoding round trip."""

    kind = "content_encoding"


class PublishDeniedError(GitBlogError):
    """The publish gate refused admission."""

    kind = "publish_denied"


class CooldownActiveError(PublishDeniedError):
    """A publish was triggered too recently."""

    kind = "cooldown_active"

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Please wait {retry_after}s before publishing again")
        self.retry_after = retry_after


class AlreadyInProgressError(PublishDeniedError):
    """Another publish is currently running."""

    kind = "already_in_progress"

    def __init__(self) -> None:
        super().__init__("Another publication is already running")


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients.

    The global exception handler in ``gitblog/main.py`` catches this, logs
    the full message server-side, and returns HTTP 500 with a generic
    ``"Internal server error"`` detail.
    """
