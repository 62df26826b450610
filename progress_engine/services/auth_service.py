"""
Actor resolution for the progress engine API.

Provides:
- ``get_current_actor`` - FastAPI dependency that extracts and validates the
  Bearer JWT and returns the caller's ``Actor`` (id + role).
- ``require_role`` - dependency factory enforcing role-based access on top of
  ``get_current_actor``.

The engine has no user table: identity is owned by the authentication
service, and the token's ``sub`` claim is taken as the actor id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from progress_engine.utils.constants import ROLES
from progress_engine.utils.security import verify_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller."""

    id: str
    role: str


def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Actor:
    """Resolve the caller's identity from the ``Authorization: Bearer`` header.

    Raises:
        HTTPException 401: If the header is missing, the token is invalid or
                           expired, or the ``sub``/``role`` claims are unusable.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise credentials_exception

    try:
        payload = verify_token(credentials.credentials)
    except ValueError:
        logger.warning("get_current_actor: rejected token")
        raise credentials_exception

    actor_id = payload.get("sub")
    role = payload.get("role")
    if not actor_id or role not in ROLES:
        raise credentials_exception

    return Actor(id=str(actor_id), role=role)


def require_role(*roles: str):
    """Return a FastAPI dependency that restricts access to the given roles.

    .. code-block:: python

        @router.post("/start")
        def start(actor: Actor = Depends(require_role("influencer"))):
            ...

    Raises:
        HTTPException 403: If the caller's role is not in *roles*.
    """
    allowed = frozenset(roles)

    def _check_role(
        actor: Annotated[Actor, Depends(get_current_actor)],
    ) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. One of these roles is required: {sorted(allowed)}",
            )
        return actor

    return _check_role
