"""
Time tracking router.

Mounts under ``/api/time-tracking`` (prefix set in ``main.py``).

All endpoints require the ``influencer`` role: timers belong to the actor
identified by the token's ``sub`` claim.

Endpoints
---------
POST /start                 - Start a timer on a milestone.
POST /{session_id}/stop     - Stop the caller's running timer.
GET  /active                - The caller's running timer, or null.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from progress_engine.database import get_db
from progress_engine.schemas.common import ErrorResponse
from progress_engine.schemas.time_session import (
    ActiveSessionResponse,
    SessionWithProgressResponse,
    TimeSessionResponse,
    TimeTrackingStartRequest,
)
from progress_engine.services import time_tracking_service
from progress_engine.services.auth_service import Actor, require_role
from progress_engine.utils.constants import ROLE_INFLUENCER

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Time Tracking"])

_influencer_only = require_role(ROLE_INFLUENCER)


# ---------------------------------------------------------------------------
# POST /start
# ---------------------------------------------------------------------------


@router.post(
    "/start",
    response_model=TimeSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a timer",
    description=(
        "Opens a time session on the given milestone. An actor can run at most "
        "one timer at a time; a second start returns 409 ACTIVE_SESSION_EXISTS "
        "with the running session's id. The first timer on a pending milestone "
        "moves it to in_progress."
    ),
    responses={
        201: {"description": "Timer started."},
        401: {"description": "Missing or invalid JWT."},
        403: {"description": "Caller is not an influencer."},
        404: {"model": ErrorResponse, "description": "Milestone not found."},
        409: {
            "model": ErrorResponse,
            "description": "Active timer exists, or the milestone is completed.",
        },
    },
)
def start_timer(
    payload: TimeTrackingStartRequest,
    db: Annotated[Session, Depends(get_db)],
    actor: Annotated[Actor, Depends(_influencer_only)],
) -> TimeSessionResponse:
    logger.info(
        "POST /time-tracking/start actor=%s milestone_id=%d",
        actor.id, payload.milestone_id,
    )
    return time_tracking_service.start_tracking(
        db,
        actor.id,
        payload.milestone_id,
        description=payload.description,
    )


# ---------------------------------------------------------------------------
# POST /{session_id}/stop
# ---------------------------------------------------------------------------


@router.post(
    "/{session_id}/stop",
    response_model=SessionWithProgressResponse,
    summary="Stop a timer",
    description=(
        "Closes the session, stores its duration in whole seconds and refreshes "
        "the milestone's actual hours. Returns the stopped session and the "
        "updated progress snapshot."
    ),
    responses={
        200: {"description": "Timer stopped."},
        401: {"description": "Missing or invalid JWT."},
        403: {"description": "Caller is not an influencer."},
        404: {"model": ErrorResponse, "description": "Session not found."},
        409: {"model": ErrorResponse, "description": "Session already stopped."},
    },
)
def stop_timer(
    session_id: Annotated[int, Path(ge=1, description="Time session id.")],
    db: Annotated[Session, Depends(get_db)],
    actor: Annotated[Actor, Depends(_influencer_only)],
) -> SessionWithProgressResponse:
    logger.info("POST /time-tracking/%d/stop actor=%s", session_id, actor.id)
    return time_tracking_service.stop_tracking(db, session_id, actor_id=actor.id)


# ---------------------------------------------------------------------------
# GET /active
# ---------------------------------------------------------------------------


@router.get(
    "/active",
    response_model=ActiveSessionResponse,
    summary="Current running timer",
    description="Returns the caller's running session, or null when no timer is running.",
    responses={
        200: {"description": "Active session (possibly null)."},
        401: {"description": "Missing or invalid JWT."},
        403: {"description": "Caller is not an influencer."},
    },
)
def get_active_timer(
    db: Annotated[Session, Depends(get_db)],
    actor: Annotated[Actor, Depends(_influencer_only)],
) -> ActiveSessionResponse:
    return ActiveSessionResponse(
        session=time_tracking_service.get_active_session(db, actor.id)
    )
