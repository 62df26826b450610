"""
Time tracking service layer.

Wraps the time session store with the milestone-level rules: time can only
be logged against an open milestone, the first timer moves a pending
milestone to ``in_progress``, and stopping a timer refreshes the milestone's
``actual_hours`` inside the same transaction.
"""

from __future__ import annotations

import datetime
import logging

from sqlalchemy.orm import Session

from progress_engine.database import transaction
from progress_engine.exceptions import InvalidStateError, NotFoundError
from progress_engine.schemas.time_session import (
    SessionWithProgressResponse,
    TimeSessionResponse,
)
from progress_engine.services import milestone_store, query_service, time_session_store
from progress_engine.utils.constants import STATUS_COMPLETED
from progress_engine.utils.timeutil import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


def start_tracking(
    db: Session,
    actor_id: str,
    milestone_id: int,
    description: str | None = None,
    now: datetime.datetime | None = None,
) -> TimeSessionResponse:
    """Start a timer for *actor_id* on *milestone_id*.

    Raises:
        NotFoundError: If the milestone does not exist.
        InvalidStateError: If the milestone is completed.
        ActiveSessionConflict: If the actor already has a running timer.
    """
    now = to_naive_utc(now) or utcnow()

    with transaction(db):
        milestone = milestone_store.get_milestone(db, milestone_id)
        if milestone.status == STATUS_COMPLETED:
            logger.warning(
                "start_tracking: actor_id=%s rejected, milestone_id=%d is completed",
                actor_id, milestone_id,
            )
            raise InvalidStateError(
                f"Milestone {milestone_id} is completed; time can no longer be logged."
            )

        session = time_session_store.start(
            db, actor_id, milestone, description=description, now=now
        )
        milestone_store.mark_in_progress(db, milestone_id, now)

    logger.info(
        "start_tracking: session_id=%d actor_id=%s milestone_id=%d",
        session.id, actor_id, milestone_id,
    )
    return query_service.build_session_response(session)


def stop_tracking(
    db: Session,
    session_id: int,
    actor_id: str | None = None,
    now: datetime.datetime | None = None,
) -> SessionWithProgressResponse:
    """Stop a running timer and return it with the refreshed progress snapshot.

    Args:
        db: Active SQLAlchemy session.
        session_id: Session to stop.
        actor_id: When given, the session must belong to this actor.
        now: Stop timestamp; defaults to the current UTC time.

    Raises:
        NotFoundError: If the session does not exist or belongs to another actor.
        InvalidStateError: If the session is already stopped.
    """
    now = to_naive_utc(now) or utcnow()

    with transaction(db):
        session = time_session_store.get_session(db, session_id)
        if actor_id is not None and session.actor_id != actor_id:
            raise NotFoundError(f"Time session {session_id} not found.")

        session = time_session_store.stop(db, session_id, now=now)
        hours = milestone_store.recompute_actual_hours(db, session.milestone_id)
        proposal_id = session.proposal_id

    logger.info(
        "stop_tracking: session_id=%d duration=%ss milestone_actual_hours=%s",
        session_id, session.duration_seconds, hours,
    )
    return SessionWithProgressResponse(
        session=query_service.build_session_response(session),
        progress=query_service.get_progress(db, proposal_id),
    )


def get_active_session(db: Session, actor_id: str) -> TimeSessionResponse | None:
    return query_service.get_active_session(db, actor_id)
