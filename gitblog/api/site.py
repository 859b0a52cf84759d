"""Site configuration and homepage endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from gitblog.api.deps import get_store
from gitblog.content.site_files import STYLES
from gitblog.schemas.site import HomepageDocument, SiteConfig, StyleInfo
from gitblog.services.storage_service import LocalStore

router = APIRouter(prefix="/api/site", tags=["site"])


@router.get("/config", response_model=SiteConfig)
async def get_site_config_endpoint(
    store: Annotated[LocalStore, Depends(get_store)],
) -> SiteConfig:
    return await store.get_site_config()


@router.put("/config", response_model=SiteConfig)
async def update_site_config_endpoint(
    body: SiteConfig,
    store: Annotated[LocalStore, Depends(get_store)],
) -> SiteConfig:
    """Save the site configuration locally. Publish or sync to push it."""
    await store.save_site_config(body)
    return body


@router.get("/homepage", response_model=HomepageDocument)
async def get_homepage_endpoint(
    store: Annotated[LocalStore, Depends(get_store)],
) -> HomepageDocument:
    return await store.get_homepage()


@router.put("/homepage", response_model=HomepageDocument)
async def update_homepage_endpoint(
    body: HomepageDocument,
    store: Annotated[LocalStore, Depends(get_store)],
) -> HomepageDocument:
    await store.save_homepage(body)
    return body


@router.get("/styles", response_model=list[StyleInfo])
async def list_styles_endpoint() -> list[StyleInfo]:
    return [StyleInfo(name=name, description=style.description) for name, style in STYLES.items()]
