"""
User and sign-in session persistence (raw SQL).

A session row lives from sign-in until sign-out, expiry, or being
superseded by the session issued when it was refreshed. Only the SHA-256
hash of the client's session token is stored.
"""

from __future__ import annotations

from datetime import datetime, timezone

from core import db

_USER_COLUMNS = "id, name, email, password_hash, is_active, created_at"
_SESSION_COLUMNS = (
    "id, user_id, token_hash, expires_at, ended_at, "
    "superseded_by, created_at, last_seen_at, user_agent, ip_address"
)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def create_user(
    *,
    email: str,
    password_hash: str,
    name: str | None = None,
    is_active: bool = True,
) -> dict:
    row = await db.fetch_one(
        f"""
        INSERT INTO users (name, email, password_hash, is_active)
        VALUES ($1, $2, $3, $4)
        RETURNING {_USER_COLUMNS}
        """,
        name,
        normalize_email(email),
        password_hash,
        is_active,
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    return row


async def find_user(*, user_id: int | None = None, email: str | None = None) -> dict | None:
    """
    Look a user up by id or (case-insensitively) by e-mail.
    """
    if user_id is not None:
        return await db.fetch_one(f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1", user_id)
    return await db.fetch_one(
        f"SELECT {_USER_COLUMNS} FROM users WHERE lower(email) = $1",
        normalize_email(email or ""),
    )


async def start_session(
    *,
    user_id: int,
    token_hash: str,
    expires_at: datetime,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> dict:
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)

    row = await db.fetch_one(
        f"""
        INSERT INTO sessions (user_id, token_hash, expires_at, user_agent, ip_address)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING {_SESSION_COLUMNS}
        """,
        user_id,
        token_hash,
        expires_at,
        user_agent,
        ip_address,
    )
    if row is None:
        raise RuntimeError("Failed to start session.")
    return row


async def find_session(token_hash: str) -> dict | None:
    return await db.fetch_one(
        f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE token_hash = $1",
        token_hash,
    )


async def end_session(
    *,
    session_id: int | None = None,
    token_hash: str | None = None,
    superseded_by: int | None = None,
) -> bool:
    """
    End one session, addressed by id or token hash. Returns False when no
    live session matched. `superseded_by` links a refreshed session to its
    successor and also marks it as seen.
    """
    row = await db.fetch_one(
        """
        UPDATE sessions
        SET ended_at = now(),
            superseded_by = $3,
            last_seen_at = CASE WHEN $3::bigint IS NULL THEN last_seen_at ELSE now() END
        WHERE (id = $1 OR token_hash = $2)
          AND ended_at IS NULL
        RETURNING id
        """,
        session_id,
        token_hash,
        superseded_by,
    )
    return row is not None


async def end_user_sessions(user_id: int) -> int:
    ended = await db.fetch_value(
        """
        WITH ended AS (
            UPDATE sessions
            SET ended_at = now()
            WHERE user_id = $1
              AND ended_at IS NULL
            RETURNING id
        )
        SELECT count(*) FROM ended
        """,
        user_id,
    )
    return int(ended or 0)
