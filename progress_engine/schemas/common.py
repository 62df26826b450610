"""
Shared Pydantic v2 schemas reused across multiple modules.
"""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body returned for every domain error.

    Attributes:
        detail: Human-readable message.
        code: Stable machine-readable error code, e.g. ``ACTIVE_SESSION_EXISTS``.
        active_session_id: Id of the running session, only for timer conflicts.
    """

    detail: str
    code: str
    active_session_id: int | None = None
