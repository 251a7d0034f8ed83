"""
Post procedures: list, by_id, create, update, delete.

Scope:
- table-state translation errors become 422 responses shaped like FastAPI's
  own validation errors
- missing posts on update/delete become 404; by_id returns None instead
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from . import query, repository, schemas

logger = logging.getLogger(__name__)


def _to_post(row: dict) -> schemas.Post:
    return schemas.Post(id=str(row["id"]), title=str(row["title"]), text=str(row["text"]))


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found.")


def _invalid_param(exc: query.QueryParamError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail=[{"loc": ["query", exc.field], "msg": exc.message, "type": "value_error"}],
    )


async def list_posts(
    *,
    start: str | None = None,
    size: str | None = None,
    filters: str | None = None,
    sorting: str | None = None,
) -> schemas.PostListResponse:
    try:
        post_query = query.build_post_query(start=start, size=size, filters=filters, sorting=sorting)
    except query.QueryParamError as exc:
        raise _invalid_param(exc) from exc

    rows = await repository.list_posts(post_query)
    total = await repository.count_posts(post_query)
    return schemas.PostListResponse(
        data=[_to_post(row) for row in rows],
        meta=schemas.PostListMeta(total_row_count=total),
    )


async def get_post(post_id: str) -> schemas.Post | None:
    row = await repository.get_post(post_id)
    return _to_post(row) if row is not None else None


async def create_post(payload: schemas.PostInput) -> schemas.Post:
    row = await repository.insert_post(title=payload.title, text=payload.text)
    logger.info("post_created id=%s", row["id"])
    return _to_post(row)


async def update_post(post_id: str, payload: schemas.PostInput) -> schemas.Post:
    row = await repository.update_post(post_id, title=payload.title, text=payload.text)
    if row is None:
        raise _not_found()
    logger.info("post_updated id=%s", post_id)
    return _to_post(row)


async def delete_post(post_id: str) -> schemas.Post:
    row = await repository.delete_post(post_id)
    if row is None:
        raise _not_found()
    logger.info("post_deleted id=%s", post_id)
    return _to_post(row)
