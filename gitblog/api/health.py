"""Health check endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gitblog import __version__
from gitblog.api.deps import get_session, get_store, get_synchronizer
from gitblog.services.storage_service import LocalStore
from gitblog.services.sync_service import ContentSynchronizer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service liveness plus what the UI needs before offering to publish.

    ``repository`` is ``configured`` or ``unconfigured``; no GitHub request is made.
    """

    status: str
    version: str
    database: str
    repository: str
    publishing: bool


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    session: Annotated[AsyncSession, Depends(get_session)],
    store: Annotated[LocalStore, Depends(get_store)],
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> HealthResponse:
    try:
        await session.execute(text("SELECT 1"))
        config = await store.get_repository_config()
    except SQLAlchemyError:
        logger.warning("Health check database query failed", exc_info=True)
        return HealthResponse(
            status="degraded",
            version=__version__,
            database="error",
            repository="unknown",
            publishing=synchronizer.is_publishing,
        )

    return HealthResponse(
        status="ok",
        version=__version__,
        database="ok",
        repository="configured" if config.is_configured else "unconfigured",
        publishing=synchronizer.is_publishing,
    )
