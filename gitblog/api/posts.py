"""Local post API endpoints."""

from __future__ import annotations

import logging
from dataclasses import asdict, replace
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from gitblog.api.deps import get_store
from gitblog.content.frontmatter import Post, normalize_tags
from gitblog.schemas.post import PostCreate, PostResponse, PostUpdate
from gitblog.services.datetime_service import date_from_filename, now_utc
from gitblog.services.slug_service import generate_post_filename
from gitblog.services.storage_service import LocalStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])


def _to_response(post: Post) -> PostResponse:
    return PostResponse.model_validate(asdict(post))


@router.get("", response_model=list[PostResponse])
async def list_posts_endpoint(
    store: Annotated[LocalStore, Depends(get_store)],
) -> list[PostResponse]:
    return [_to_response(post) for post in await store.list_posts()]


@router.get("/{filename}", response_model=PostResponse)
async def get_post_endpoint(
    filename: str,
    store: Annotated[LocalStore, Depends(get_store)],
) -> PostResponse:
    post = await store.get_post(filename)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return _to_response(post)


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    body: PostCreate,
    store: Annotated[LocalStore, Depends(get_store)],
) -> PostResponse:
    """Create a post. A filename is generated from date and title when omitted."""
    existing = {post.filename for post in await store.list_posts()}
    if body.filename is not None:
        if body.filename in existing:
            raise HTTPException(status_code=409, detail="A post with this filename already exists")
        filename = body.filename
        when = body.date or date_from_filename(filename) or now_utc()
    else:
        when = body.date or now_utc()
        filename = generate_post_filename(body.title, when, existing)

    post = Post(
        filename=filename,
        title=body.title.strip(),
        date=when,
        content=body.content,
        tags=normalize_tags(body.tags),
    )
    await store.save_post(post)
    logger.info("Created post %s", filename)
    return _to_response(post)


@router.put("/{filename}", response_model=PostResponse)
async def update_post_endpoint(
    filename: str,
    body: PostUpdate,
    store: Annotated[LocalStore, Depends(get_store)],
) -> PostResponse:
    """Update a post in place. The revision token is kept for the next publish."""
    existing = await store.get_post(filename)
    if existing is None:
        raise HTTPException(status_code=404, detail="Post not found")
    post = replace(
        existing,
        title=body.title.strip(),
        date=body.date or existing.date,
        content=body.content,
        tags=normalize_tags(body.tags),
    )
    await store.save_post(post)
    return _to_response(post)


@router.delete("/{filename}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post_endpoint(
    filename: str,
    store: Annotated[LocalStore, Depends(get_store)],
) -> None:
    """Delete a post locally. Use DELETE /api/sync/posts/{filename} for the remote copy."""
    if not await store.delete_post(filename):
        raise HTTPException(status_code=404, detail="Post not found")
    logger.info("Deleted post %s", filename)
