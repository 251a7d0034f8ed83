"""
Post API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query, status

from . import schemas, service
from .access import require_access

router = APIRouter(prefix="/posts")


@router.get("", response_model=schemas.PostListResponse)
async def list_posts(
    start: str | None = Query(default=None),
    size: str | None = Query(default=None),
    filters: str | None = Query(default=None),
    sorting: str | None = Query(default=None),
    _: dict | None = Depends(require_access("list")),
) -> schemas.PostListResponse:
    """
    One page of posts for the table, plus the filtered total.
    """
    return await service.list_posts(start=start, size=size, filters=filters, sorting=sorting)


@router.get("/{post_id}", response_model=schemas.Post | None)
async def get_post(
    post_id: str = Path(..., min_length=1),
    _: dict | None = Depends(require_access("by_id")),
) -> schemas.Post | None:
    return await service.get_post(post_id)


@router.post("", response_model=schemas.Post, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: schemas.PostInput,
    _: dict | None = Depends(require_access("create")),
) -> schemas.Post:
    return await service.create_post(payload)


@router.put("/{post_id}", response_model=schemas.Post)
async def update_post(
    payload: schemas.PostInput,
    post_id: str = Path(..., min_length=1),
    _: dict | None = Depends(require_access("update")),
) -> schemas.Post:
    return await service.update_post(post_id, payload)


@router.delete("/{post_id}", response_model=schemas.Post)
async def delete_post(
    post_id: str = Path(..., min_length=1),
    _: dict | None = Depends(require_access("delete")),
) -> schemas.Post:
    return await service.delete_post(post_id)
