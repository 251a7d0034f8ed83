"""
Sign-in, session rotation and current-user resolution.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status

from . import repository, schemas, security

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=int(user_row["id"]),
        name=user_row.get("name"),
        email=str(user_row["email"]),
        is_active=bool(user_row["is_active"]),
        created_at=user_row["created_at"],
    )


async def _issue_tokens(
    user_row: dict,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
    supersedes: int | None = None,
) -> schemas.TokenPairResponse:
    """
    Start a session for `user_row` and hand back its tokens. When
    `supersedes` is given, that session ends and points at the new one.
    """
    user_id = int(user_row["id"])
    session_token = security.build_session_token()
    session_row = await repository.start_session(
        user_id=user_id,
        token_hash=security.hash_session_token(session_token),
        expires_at=_utc_now() + timedelta(days=security.session_expire_days()),
        user_agent=user_agent,
        ip_address=ip_address,
    )
    if supersedes is not None:
        await repository.end_session(session_id=supersedes, superseded_by=int(session_row["id"]))

    return schemas.TokenPairResponse(
        access_token=security.build_access_token(user_id=user_id, email=str(user_row["email"])),
        session_token=session_token,
    )


def _require_active(user_row: dict) -> None:
    if not bool(user_row.get("is_active", False)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is inactive.",
        )


async def login(
    payload: schemas.LoginRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.AuthResponse:
    user_row = await repository.find_user(email=payload.email)
    password_hash = str((user_row or {}).get("password_hash") or "")
    if user_row is None or not security.verify_password(payload.password, password_hash):
        logger.info("sign_in_failed email=%s ip=%s", repository.normalize_email(payload.email), ip_address)
        raise _unauthorized("Invalid email or password.")
    _require_active(user_row)

    tokens = await _issue_tokens(user_row, user_agent=user_agent, ip_address=ip_address)
    logger.info("sign_in user_id=%s", user_row["id"])
    return schemas.AuthResponse(user=_to_user_response(user_row), tokens=tokens)


async def _live_session(session_token: str) -> tuple[dict, dict]:
    """
    Resolve a session token to (session_row, user_row). Expired sessions and
    sessions whose owner can no longer sign in are ended on the way out.
    """
    session_row = await repository.find_session(security.hash_session_token(session_token))
    if session_row is None:
        raise _unauthorized("Invalid session token.")
    if session_row.get("ended_at") is not None:
        raise _unauthorized("Session has ended.")

    session_id = int(session_row["id"])
    expires_at = session_row.get("expires_at")
    if not isinstance(expires_at, datetime) or expires_at <= _utc_now():
        await repository.end_session(session_id=session_id)
        raise _unauthorized("Session is expired.")

    user_row = await repository.find_user(user_id=int(session_row["user_id"]))
    if user_row is None or not bool(user_row.get("is_active", False)):
        await repository.end_session(session_id=session_id)
        raise _unauthorized("Invalid session owner.")
    return session_row, user_row


async def refresh_session(
    payload: schemas.RefreshRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.TokenPairResponse:
    session_token = (payload.session_token or "").strip()
    if not session_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="session_token is required.",
        )

    session_row, user_row = await _live_session(session_token)
    tokens = await _issue_tokens(
        user_row,
        user_agent=user_agent,
        ip_address=ip_address,
        supersedes=int(session_row["id"]),
    )
    logger.info("session_refreshed user_id=%s previous_session_id=%s", user_row["id"], session_row["id"])
    return tokens


async def logout(
    payload: schemas.LogoutRequest,
    *,
    current_user_id: int | None = None,
) -> dict[str, bool]:
    """
    Sign out one session by its token, or every session of the signed-in user.
    """
    session_token = (payload.session_token or "").strip()
    if session_token:
        await repository.end_session(token_hash=security.hash_session_token(session_token))
        return {"ok": True}

    if current_user_id is not None:
        ended = await repository.end_user_sessions(current_user_id)
        logger.info("signed_out_everywhere user_id=%s sessions=%s", current_user_id, ended)
        return {"ok": True}

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Provide session_token or authenticated user.",
    )



async def get_user_from_access_token(access_token: str) -> dict:
    try:
        payload = security.decode_access_token(access_token)
    except security.AuthSecurityError as exc:
        raise _unauthorized(str(exc)) from exc

    subject = str(payload.get("sub") or "").strip()
    if not subject.isdigit():
        raise _unauthorized("Invalid access token subject.")

    user_row = await repository.find_user(user_id=int(subject))
    if user_row is None:
        raise _unauthorized("User not found.")
    _require_active(user_row)
    return user_row


async def find_user_from_access_token(access_token: str | None) -> dict | None:
    """
    Lenient variant for public routes: any failure resolves to no user.
    """
    if not access_token:
        return None
    try:
        return await get_user_from_access_token(access_token)
    except HTTPException:
        return None


def me(user_row: dict) -> schemas.UserResponse:
    return _to_user_response(user_row)
