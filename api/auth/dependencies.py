"""
Auth dependencies for FastAPI routes.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from . import service


def _parse_bearer(authorization: str | None) -> str | None:
    raw = (authorization or "").strip()
    if not raw:
        return None

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise ValueError("Invalid Authorization header format.")

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise ValueError("Authorization must be: Bearer <token>.")
    return token


def extract_bearer_token(authorization: str | None) -> str:
    try:
        token = _parse_bearer(authorization)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    return extract_bearer_token(authorization)


def optional_bearer_token(authorization: str | None) -> str | None:
    try:
        return _parse_bearer(authorization)
    except ValueError:
        return None


async def get_optional_bearer_token(authorization: str | None = Header(default=None)) -> str | None:
    return optional_bearer_token(authorization)


async def get_current_user(access_token: str = Depends(get_bearer_token)) -> dict:
    return await service.get_user_from_access_token(access_token)


async def get_optional_user(access_token: str | None = Depends(get_optional_bearer_token)) -> dict | None:
    return await service.find_user_from_access_token(access_token)
