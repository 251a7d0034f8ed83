"""
Create the default sign-in user.

Usage (from `api/`):
    DATABASE_URL=postgresql://... python -m auth.seed
"""

from __future__ import annotations

import asyncio
import logging

from core import db
from core.settings import env_str

from . import repository, security

logger = logging.getLogger(__name__)

DEFAULT_EMAIL = "test@example.com"
DEFAULT_PASSWORD = "password"
DEFAULT_NAME = "Test User"


async def seed_default_user(
    *,
    email: str | None = None,
    password: str | None = None,
    name: str | None = None,
) -> tuple[dict, bool]:
    """
    Return (user_row, created). Existing users are left untouched.
    """
    email = email or env_str("SEED_USER_EMAIL", DEFAULT_EMAIL)
    existing = await repository.find_user(email=email)
    if existing is not None:
        return existing, False

    user_row = await repository.create_user(
        email=email,
        password_hash=security.hash_password(password or env_str("SEED_USER_PASSWORD", DEFAULT_PASSWORD)),
        name=name or env_str("SEED_USER_NAME", DEFAULT_NAME),
    )
    return user_row, True


async def _main() -> None:
    await db.init_pool()
    try:
        user_row, created = await seed_default_user()
    finally:
        await db.close_pool()
    logger.info("seed_user email=%s created=%s", user_row["email"], created)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(_main())
