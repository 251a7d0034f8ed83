"""
Pydantic schemas for post endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PostInput(BaseModel):
    title: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


class Post(BaseModel):
    id: str
    title: str
    text: str


class PostListMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_row_count: int = Field(..., alias="totalRowCount")


class PostListResponse(BaseModel):
    data: list[Post]
    meta: PostListMeta
