"""
Time session store - all database access for time-tracking sessions.

As in ``milestone_store``, functions do not commit; the Time Tracking
Service owns the transaction boundary.

Design notes
------------
- "One timer per actor" is enforced twice: an explicit lookup produces a
  friendly ``ActiveSessionConflict`` with the running session's id, and the
  partial unique index ``uq_time_session_active_actor`` turns a concurrent
  double-start into an ``IntegrityError`` that is mapped to the same
  conflict.  There is no auto-stop of the previous session.
- ``stop`` is a compare-and-set on ``end_time IS NULL``; a second stop,
  concurrent or not, gets ``InvalidStateError``.
- Durations are whole seconds, truncated, never negative.  A stop time that
  precedes the start time (clock skew between app servers) is clamped to the
  start time.
- Totals only include stopped sessions; a running timer contributes nothing
  until it is stopped.
"""

from __future__ import annotations

import datetime
import logging
from typing import NamedTuple

from sqlalchemy import func
from sqlalchemy import update as sql_update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from progress_engine.exceptions import (
    ActiveSessionConflict,
    InvalidStateError,
    NotFoundError,
)
from progress_engine.models.milestone import Milestone
from progress_engine.models.time_session import TimeSession
from progress_engine.services.progress_aggregator import seconds_to_hours
from progress_engine.utils.timeutil import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


class DurationTotals(NamedTuple):
    total_time_spent_seconds: int
    total_hours: float


class MilestoneDuration(NamedTuple):
    milestone_id: int
    session_count: int
    total_seconds: int


# ---------------------------------------------------------------------------
# Read operations
# ---------------------------------------------------------------------------


def get_active(db: Session, actor_id: str) -> TimeSession | None:
    """Return the actor's running session, if any."""
    return (
        db.query(TimeSession)
        .filter(TimeSession.actor_id == actor_id, TimeSession.end_time.is_(None))
        .first()
    )


def get_session(db: Session, session_id: int) -> TimeSession:
    """Load a session or raise ``NotFoundError``."""
    session: TimeSession | None = (
        db.query(TimeSession).filter(TimeSession.id == session_id).first()
    )
    if session is None:
        raise NotFoundError(f"Time session {session_id} not found.")
    return session


def list_by_proposal(db: Session, proposal_id: int) -> list[TimeSession]:
    """Return the proposal's sessions, most recent first."""
    return (
        db.query(TimeSession)
        .filter(TimeSession.proposal_id == proposal_id)
        .order_by(TimeSession.start_time.desc(), TimeSession.id.desc())
        .all()
    )


def list_by_milestone(db: Session, milestone_id: int) -> list[TimeSession]:
    return (
        db.query(TimeSession)
        .filter(TimeSession.milestone_id == milestone_id)
        .order_by(TimeSession.start_time.desc(), TimeSession.id.desc())
        .all()
    )


def total_duration(db: Session, proposal_id: int) -> DurationTotals:
    """Sum ``duration_seconds`` over the proposal's stopped sessions."""
    total: int = (
        db.query(func.coalesce(func.sum(TimeSession.duration_seconds), 0))
        .filter(
            TimeSession.proposal_id == proposal_id,
            TimeSession.end_time.isnot(None),
        )
        .scalar()
        or 0
    )
    total = int(total)
    return DurationTotals(total_time_spent_seconds=total, total_hours=seconds_to_hours(total))


def durations_by_milestone(db: Session, proposal_id: int) -> dict[int, MilestoneDuration]:
    """Stopped-session count and seconds per milestone of a proposal."""
    rows = (
        db.query(
            TimeSession.milestone_id.label("milestone_id"),
            func.count(TimeSession.id).label("session_count"),
            func.coalesce(func.sum(TimeSession.duration_seconds), 0).label("total_seconds"),
        )
        .filter(
            TimeSession.proposal_id == proposal_id,
            TimeSession.end_time.isnot(None),
        )
        .group_by(TimeSession.milestone_id)
        .all()
    )
    return {
        row.milestone_id: MilestoneDuration(
            milestone_id=row.milestone_id,
            session_count=int(row.session_count),
            total_seconds=int(row.total_seconds),
        )
        for row in rows
    }


# ---------------------------------------------------------------------------
# Write operations - caller commits
# ---------------------------------------------------------------------------


def start(
    db: Session,
    actor_id: str,
    milestone: Milestone,
    description: str | None = None,
    now: datetime.datetime | None = None,
) -> TimeSession:
    """Open a new session for *actor_id* against *milestone*.

    Args:
        db: Active SQLAlchemy session.
        actor_id: The user doing the work.
        milestone: Milestone the time is logged against (already validated).
        description: Optional note on what is being worked on.
        now: Start timestamp; defaults to the current UTC time.

    Returns:
        The new, flushed ``TimeSession`` (``id`` populated).

    Raises:
        ActiveSessionConflict: If the actor already has a running session,
                               including one created by a concurrent request.
    """
    active = get_active(db, actor_id)
    if active is not None:
        logger.warning(
            "start: actor_id=%s already has active session %d", actor_id, active.id
        )
        raise ActiveSessionConflict(actor_id, active.id)

    now = to_naive_utc(now) or utcnow()
    session = TimeSession(
        milestone_id=milestone.id,
        proposal_id=milestone.proposal_id,
        actor_id=actor_id,
        start_time=now,
        end_time=None,
        duration_seconds=None,
        description=description,
    )
    db.add(session)

    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        winner = get_active(db, actor_id)
        logger.warning("start: actor_id=%s lost concurrent start race", actor_id)
        raise ActiveSessionConflict(
            actor_id, winner.id if winner is not None else None
        ) from exc

    return session


def stop(
    db: Session,
    session_id: int,
    now: datetime.datetime | None = None,
) -> TimeSession:
    """Close a running session and record its duration.

    Raises:
        NotFoundError: If the session does not exist.
        InvalidStateError: If the session is already stopped.
    """
    session = get_session(db, session_id)
    if session.end_time is not None:
        raise InvalidStateError(f"Time session {session_id} is already stopped.")

    now = to_naive_utc(now) or utcnow()
    end_time = max(now, session.start_time)
    duration = int((end_time - session.start_time).total_seconds())

    result = db.execute(
        sql_update(TimeSession)
        .where(TimeSession.id == session_id, TimeSession.end_time.is_(None))
        .values(end_time=end_time, duration_seconds=duration, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InvalidStateError(f"Time session {session_id} is already stopped.")

    db.refresh(session)
    return session
