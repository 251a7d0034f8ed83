import os
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("JWT_SECRET", "test-secret")

from auth import repository as auth_repository
from auth import security
from main import app
from posts import repository as posts_repository
from posts.query import PostQuery

TEST_USER = {
    "id": 1,
    "name": "Test User",
    "email": "test@example.com",
    "password_hash": security.hash_password("password"),
    "is_active": True,
    "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
}


class FakePostStore:
    """
    In-memory stand-in for posts.repository; records every call it serves.
    """

    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.calls: list[str] = []

    def add(self, title: str, text: str, post_id: str | None = None) -> dict:
        row = {"id": post_id or str(uuid4()), "title": title, "text": text}
        self.rows[row["id"]] = row
        return dict(row)

    def _matching(self, query: PostQuery) -> list[dict]:
        return [
            dict(row)
            for row in self.rows.values()
            if all(value in row[column] for column, value in query.filters.items())
        ]

    async def list_posts(self, query: PostQuery) -> list[dict]:
        self.calls.append("list_posts")
        rows = sorted(self._matching(query), key=lambda r: r["id"])
        for directive in reversed(query.sorting):
            rows.sort(key=lambda r: r[directive.column], reverse=directive.descending)
        start = query.window.offset
        return rows[start:start + query.window.limit]

    async def count_posts(self, query: PostQuery) -> int:
        self.calls.append("count_posts")
        return len(self._matching(query))

    async def get_post(self, post_id: str) -> dict | None:
        self.calls.append("get_post")
        row = self.rows.get(post_id)
        return dict(row) if row is not None else None

    async def insert_post(self, *, title: str, text: str) -> dict:
        self.calls.append("insert_post")
        return self.add(title, text)

    async def update_post(self, post_id: str, *, title: str, text: str) -> dict | None:
        self.calls.append("update_post")
        row = self.rows.get(post_id)
        if row is None:
            return None
        row.update(title=title, text=text)
        return dict(row)

    async def delete_post(self, post_id: str) -> dict | None:
        self.calls.append("delete_post")
        row = self.rows.pop(post_id, None)
        return dict(row) if row is not None else None


@pytest.fixture(autouse=True)
def clean_access_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("POSTS_ACCESS_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def users(monkeypatch):
    rows = {TEST_USER["id"]: dict(TEST_USER)}

    async def find_user(*, user_id: int | None = None, email: str | None = None) -> dict | None:
        if user_id is not None:
            return rows.get(user_id)
        normalized = auth_repository.normalize_email(email or "")
        return next((r for r in rows.values() if r["email"] == normalized), None)

    monkeypatch.setattr(auth_repository, "find_user", find_user)
    return rows


@pytest.fixture
def store(monkeypatch):
    fake = FakePostStore()
    for name in ("list_posts", "count_posts", "get_post", "insert_post", "update_post", "delete_post"):
        monkeypatch.setattr(posts_repository, name, getattr(fake, name))
    return fake


@pytest.fixture
def client():
    # No context manager: the lifespan would open a real DB pool.
    return TestClient(app)


@pytest.fixture
def auth_headers(users):
    token = security.build_access_token(user_id=TEST_USER["id"], email=TEST_USER["email"])
    return {"Authorization": f"Bearer {token}"}
