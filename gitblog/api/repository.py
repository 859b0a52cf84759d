"""Repository connection settings endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from gitblog.api.deps import get_store, get_synchronizer
from gitblog.exceptions import InvalidLocationError
from gitblog.github.client import parse_repository_url
from gitblog.schemas.publish import ConnectionStatusResponse
from gitblog.schemas.site import (
    RepositoryConfig,
    RepositoryConfigResponse,
    RepositoryConfigUpdate,
)
from gitblog.services.storage_service import LocalStore
from gitblog.services.sync_service import ContentSynchronizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/repository", tags=["repository"])


def _to_response(config: RepositoryConfig) -> RepositoryConfigResponse:
    owner: str | None = None
    repo: str | None = None
    if config.repo_url:
        try:
            owner, repo = parse_repository_url(config.repo_url)
        except InvalidLocationError:
            logger.warning("Stored repository URL is not a GitHub URL: %s", config.repo_url)
    return RepositoryConfigResponse(
        repo_url=config.repo_url, owner=owner, repo=repo, has_token=bool(config.token)
    )


@router.get("", response_model=RepositoryConfigResponse)
async def get_repository_endpoint(
    store: Annotated[LocalStore, Depends(get_store)],
) -> RepositoryConfigResponse:
    return _to_response(await store.get_repository_config())


@router.put("", response_model=RepositoryConfigResponse)
async def update_repository_endpoint(
    body: RepositoryConfigUpdate,
    store: Annotated[LocalStore, Depends(get_store)],
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> RepositoryConfigResponse:
    """Verify the repository and credential, then store them."""
    config = RepositoryConfig(repo_url=body.repo_url.strip(), token=body.token.strip())
    await synchronizer.test_connection(config.repo_url, config.token)
    await store.save_repository_config(config)
    logger.info("Repository settings updated")
    return _to_response(config)


@router.post("/verify", response_model=ConnectionStatusResponse)
async def verify_repository_endpoint(
    synchronizer: Annotated[ContentSynchronizer, Depends(get_synchronizer)],
) -> ConnectionStatusResponse:
    """Check the stored repository settings against GitHub."""
    return await synchronizer.test_connection()


@router.delete("/data", status_code=status.HTTP_204_NO_CONTENT)
async def clear_data_endpoint(
    store: Annotated[LocalStore, Depends(get_store)],
) -> None:
    """Delete all local posts, settings and the stored credential."""
    await store.clear_all()
