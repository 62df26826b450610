"""
Security utilities for actor resolution.

Tokens are issued by the platform's authentication service; the engine only
verifies them with the shared secret via python-jose.  ``create_access_token``
is kept for service-to-service calls and tests, which must mint tokens the
same way the auth service does.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from progress_engine.config import get_settings

logger = logging.getLogger(__name__)


def create_access_token(data: dict[str, Any]) -> str:
    """Create a signed JWT access token.

    The payload is a copy of *data* plus ``exp`` and ``iat`` claims.  Callers
    set ``sub`` (the actor id) and ``role``.

    Example::

        token = create_access_token({"sub": "influencer-42", "role": "influencer"})
    """
    settings = get_settings()
    payload = data.copy()
    now = datetime.now(timezone.utc)
    payload["exp"] = now + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    payload["iat"] = now

    return jwt.encode(
        payload,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def verify_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT access token.

    Raises:
        ValueError: If the token is invalid, expired, or cannot be decoded.
                    FastAPI dependencies map this to HTTP 401.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
        return payload
    except JWTError as exc:
        logger.debug("JWT verification failed: %s", exc)
        raise ValueError("Invalid or expired token") from exc
