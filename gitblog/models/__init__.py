"""SQLAlchemy ORM models for GitBlog."""

from gitblog.models.base import Base
from gitblog.models.document import StoredDocument
from gitblog.models.post import PostRecord

__all__ = [
    "Base",
    "PostRecord",
    "StoredDocument",
]
