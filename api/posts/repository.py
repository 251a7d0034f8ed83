"""
Post persistence (raw SQL).
"""

from __future__ import annotations

from uuid import uuid4

from core import db

from .query import PostQuery


async def list_posts(query: PostQuery) -> list[dict]:
    sql, params = query.select_sql()
    return await db.fetch_all(sql, *params)


async def count_posts(query: PostQuery) -> int:
    sql, params = query.count_sql()
    return int(await db.fetch_value(sql, *params) or 0)


async def get_post(post_id: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, title, text
        FROM posts
        WHERE id = $1
        """,
        post_id,
    )


async def insert_post(*, title: str, text: str) -> dict:
    row = await db.fetch_one(
        """
        INSERT INTO posts (id, title, text)
        VALUES ($1, $2, $3)
        RETURNING id, title, text
        """,
        str(uuid4()),
        title,
        text,
    )
    if row is None:
        raise RuntimeError("Failed to insert post.")
    return row


async def update_post(post_id: str, *, title: str, text: str) -> dict | None:
    return await db.fetch_one(
        """
        UPDATE posts
        SET title = $2,
            text = $3
        WHERE id = $1
        RETURNING id, title, text
        """,
        post_id,
        title,
        text,
    )


async def delete_post(post_id: str) -> dict | None:
    return await db.fetch_one(
        """
        DELETE FROM posts
        WHERE id = $1
        RETURNING id, title, text
        """,
        post_id,
    )
