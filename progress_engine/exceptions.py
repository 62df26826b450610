"""
Domain errors raised by the milestone and time-tracking services.

Every error carries a stable ``code`` so the client can branch on it without
parsing the message.  ``main.py`` registers a single exception handler that
renders these as JSON with the matching ``status_code``.
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400
    code: str = "ENGINE_ERROR"

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.extra}


class NotFoundError(EngineError):
    """Referenced proposal, milestone or session does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class InvalidStateError(EngineError):
    """Operation is illegal for the current status of the record."""

    status_code = 409
    code = "INVALID_STATE"


class ActiveSessionConflict(EngineError):
    """The actor already has a running timer.

    Surfaced with its own code so the client can offer "stop your current
    timer first" instead of a generic retry.
    """

    status_code = 409
    code = "ACTIVE_SESSION_EXISTS"

    def __init__(self, actor_id: str, active_session_id: int | None = None) -> None:
        super().__init__(
            f"Actor {actor_id} already has an active time session; stop it first.",
            active_session_id=active_session_id,
        )
        self.actor_id = actor_id
        self.active_session_id = active_session_id


class EngineValidationError(EngineError):
    """Input violates a business rule (negative hours, bad payment schedule, ...)."""

    status_code = 422
    code = "VALIDATION_ERROR"
