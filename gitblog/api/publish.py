"""Publish and sync endpoints."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from gitblog.api.deps import get_synchronizer
from gitblog.schemas.publish import PublishRunResponse, PublishStatusResponse
from gitblog.services.sync_service import ContentSynchronizer, PublishOutcome, PublishRun

logger = logging.getLogger(__name__)

router = APIRouter(tags=["publish"])

_DENIED_STATUS = {
    PublishOutcome.COOLDOWN_ACTIVE: 429,
    PublishOutcome.IN_PROGRESS: 409,
}


def _to_response(run: PublishRun) -> PublishRunResponse:
    payload = asdict(run)
    payload["outcome"] = run.outcome.value
    return PublishRunResponse.model_validate(payload)


@router.post("/api/publish", response_model=PublishRunResponse)
async def publish_endpoint(
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> PublishRunResponse | JSONResponse:
    """Push everything to GitHub and refresh the Pages site.

    Gate refusals are returned as 429 (cooldown, with Retry-After) or 409
    (another publish running); the body still describes the run.
    """
    run = await synchronizer.publish_and_refresh()
    response = _to_response(run)
    denied_status = _DENIED_STATUS.get(run.outcome)
    if denied_status is None:
        return response
    headers = {}
    if run.outcome is PublishOutcome.COOLDOWN_ACTIVE:
        headers["Retry-After"] = str(run.retry_after_seconds)
    return JSONResponse(
        status_code=denied_status,
        content=response.model_dump(mode="json"),
        headers=headers,
    )


@router.get("/api/publish/status", response_model=PublishStatusResponse)
async def publish_status_endpoint(
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> PublishStatusResponse:
    return await synchronizer.publish_status()


@router.post("/api/sync/posts", response_model=PublishRunResponse)
async def sync_posts_endpoint(
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> PublishRunResponse:
    return _to_response(await synchronizer.sync_posts())


@router.post("/api/sync/config", response_model=PublishRunResponse)
async def sync_config_endpoint(
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> PublishRunResponse:
    return _to_response(await synchronizer.sync_site_config())


@router.post("/api/sync/homepage", response_model=PublishRunResponse)
async def sync_homepage_endpoint(
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> PublishRunResponse:
    return _to_response(await synchronizer.sync_homepage())


@router.post("/api/sync/readme", response_model=PublishRunResponse)
async def sync_readme_endpoint(
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> PublishRunResponse:
    return _to_response(await synchronizer.sync_readme())


@router.post("/api/sync/stylesheet", response_model=PublishRunResponse)
async def sync_stylesheet_endpoint(
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> PublishRunResponse:
    return _to_response(await synchronizer.sync_stylesheet())


@router.post("/api/sync/import", response_model=PublishRunResponse)
async def import_endpoint(
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> PublishRunResponse:
    """Replace local posts with the posts in the remote repository."""
    return _to_response(await synchronizer.import_from_remote())


@router.delete("/api/sync/posts/{filename}", response_model=PublishRunResponse)
async def delete_remote_post_endpoint(
    filename: str,
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> PublishRunResponse:
    return _to_response(await synchronizer.delete_remote_post(filename))
