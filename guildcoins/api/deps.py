"""
guildcoins.api.deps — FastAPI dependency injection
====================================================
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from guildcoins.database.engine import create_db_engine
from guildcoins.services.errors import Unauthorized

_WEAK_SECRETS = frozenset({
    "guildcoins-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


def require_admin(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate the bearer JWT of a trusted caller (bot, frontend backend).

    Coin-minting and transfer procedures need ``is_admin: true`` in the
    token; reads are public.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("missing bearer token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise Unauthorized("invalid token") from None
    if not payload.get("is_admin"):
        raise Unauthorized(f"subject {payload.get('sub')!r} is not an admin")
    return payload


EngineDep = Annotated[Engine, Depends(get_engine)]
AdminDep = Annotated[dict, Depends(require_admin)]
