"""Singleton document slots (site config, homepage, settings, repository)."""

from __future__ import annotations

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from gitblog.models.base import Base


class StoredDocument(Base):
    """JSON payload kept under a fixed storage slot."""

    __tablename__ = "documents"

    slot: Mapped[str] = mapped_column(Text, primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
