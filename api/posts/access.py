"""
Per-operation access policy for the post procedures.

POSTS_ACCESS_POLICY sets the default (`protected` unless configured);
POSTS_ACCESS_<OPERATION> overrides a single operation, e.g.
POSTS_ACCESS_LIST=public.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from fastapi import Depends, Header, HTTPException

from auth import dependencies as auth_dependencies
from auth import service as auth_service

logger = logging.getLogger(__name__)

OPERATIONS = ("list", "by_id", "create", "update", "delete")


class AccessPolicy(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"


def _parse_policy(name: str, raw: str) -> AccessPolicy:
    try:
        return AccessPolicy(raw.strip().lower())
    except ValueError as exc:
        raise RuntimeError(f"{name} must be 'public' or 'protected', got {raw!r}.") from exc


@dataclass(frozen=True)
class AccessSettings:
    default: AccessPolicy = AccessPolicy.PROTECTED
    overrides: dict[str, AccessPolicy] = field(default_factory=dict)

    def policy_for(self, operation: str) -> AccessPolicy:
        if operation not in OPERATIONS:
            raise KeyError(f"Unknown post operation: {operation}")
        return self.overrides.get(operation, self.default)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "AccessSettings":
        env = os.environ if environ is None else environ

        raw_default = (env.get("POSTS_ACCESS_POLICY") or "").strip()
        default = _parse_policy("POSTS_ACCESS_POLICY", raw_default) if raw_default else AccessPolicy.PROTECTED

        overrides: dict[str, AccessPolicy] = {}
        for operation in OPERATIONS:
            name = f"POSTS_ACCESS_{operation.upper()}"
            raw = (env.get(name) or "").strip()
            if raw:
                overrides[operation] = _parse_policy(name, raw)
        return cls(default=default, overrides=overrides)


def access_settings() -> AccessSettings:
    # Read per request so a changed environment applies without a restart.
    return AccessSettings.from_env()


def require_access(operation: str) -> Callable[..., Awaitable[dict | None]]:
    """
    Build the dependency guarding `operation`.

    Resolves to the signed-in user row, or None on a public operation called
    anonymously. Protected operations raise 401/403 before the route runs.
    """
    if operation not in OPERATIONS:
        raise KeyError(f"Unknown post operation: {operation}")

    async def gate(
        settings: AccessSettings = Depends(access_settings),
        authorization: str | None = Header(default=None),
    ) -> dict | None:
        if settings.policy_for(operation) is AccessPolicy.PUBLIC:
            token = auth_dependencies.optional_bearer_token(authorization)
            return await auth_service.find_user_from_access_token(token)

        try:
            token = auth_dependencies.extract_bearer_token(authorization)
            return await auth_service.get_user_from_access_token(token)
        except HTTPException as exc:
            logger.info("access_denied operation=%s status=%s", operation, exc.status_code)
            raise

    gate.__name__ = f"require_{operation}_access"
    return gate
