"""Shared API dependencies: DB session and services on app state."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from gitblog.services.storage_service import LocalStore
from gitblog.services.sync_service import ContentSynchronizer


async def get_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """Get a database session."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


def get_store(request: Request) -> LocalStore:
    """Get the local content store from app state."""
    store: LocalStore = request.app.state.store
    return store


def get_synchronizer(request: Request) -> ContentSynchronizer:
    """Get the shared content synchronizer from app state."""
    synchronizer: ContentSynchronizer = request.app.state.synchronizer
    return synchronizer
