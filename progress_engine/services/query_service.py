"""
Query facade - read-only composition of milestones, sessions and progress.

None of these functions raise domain errors: a missing proposal yields empty
collections and zero totals.  They take no locks and run the aggregator
fresh on every call.
"""

from __future__ import annotations

import datetime
import logging

from sqlalchemy.orm import Session

from progress_engine.config import get_settings
from progress_engine.models.milestone import Milestone
from progress_engine.models.time_session import TimeSession
from progress_engine.schemas.milestone import MilestoneListResponse, MilestoneResponse
from progress_engine.schemas.progress import ProgressSnapshot
from progress_engine.schemas.time_session import (
    MilestoneTimeBreakdown,
    TimeSessionResponse,
    TimeSummaryResponse,
)
from progress_engine.services import milestone_store, time_session_store
from progress_engine.services.progress_aggregator import (
    build_snapshot,
    is_urgent,
    seconds_to_hours,
)
from progress_engine.utils.constants import STATUS_COMPLETED
from progress_engine.utils.timeutil import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


def _optional_float(value) -> float | None:
    return float(value) if value is not None else None


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------


def build_milestone_response(
    row: Milestone,
    now: datetime.datetime | None = None,
) -> MilestoneResponse:
    """Construct a ``MilestoneResponse`` with the urgency flag evaluated at *now*."""
    now = to_naive_utc(now) or utcnow()
    return MilestoneResponse(
        id=row.id,
        proposal_id=row.proposal_id,
        order=row.order,
        type=row.type,
        title=row.title,
        description=row.description,
        status=row.status,
        estimated_hours=float(row.estimated_hours or 0),
        actual_hours=_optional_float(row.actual_hours),
        payment_percentage=_optional_float(row.payment_percentage),
        due_date=row.due_date,
        started_at=row.started_at,
        completed_at=row.completed_at,
        is_urgent=is_urgent(row, now, get_settings().URGENCY_THRESHOLD_HOURS),
    )


def build_session_response(row: TimeSession) -> TimeSessionResponse:
    return TimeSessionResponse(
        id=row.id,
        milestone_id=row.milestone_id,
        proposal_id=row.proposal_id,
        actor_id=row.actor_id,
        start_time=row.start_time,
        end_time=row.end_time,
        duration_seconds=row.duration_seconds,
        description=row.description,
        is_active=row.is_active,
    )


# ---------------------------------------------------------------------------
# Public queries
# ---------------------------------------------------------------------------


def get_milestones(
    db: Session,
    proposal_id: int,
    now: datetime.datetime | None = None,
) -> MilestoneListResponse:
    rows = milestone_store.list_by_proposal(db, proposal_id)
    milestones = [build_milestone_response(r, now) for r in rows]

    logger.debug("get_milestones: proposal_id=%d count=%d", proposal_id, len(rows))
    return MilestoneListResponse(
        proposal_id=proposal_id,
        milestones=milestones,
        total_milestones=len(milestones),
        completed_milestones=sum(1 for m in milestones if m.status == STATUS_COMPLETED),
    )


def get_time_summary(db: Session, proposal_id: int) -> TimeSummaryResponse:
    """Sessions, totals and a per-milestone breakdown for a proposal."""
    sessions = time_session_store.list_by_proposal(db, proposal_id)
    totals = time_session_store.total_duration(db, proposal_id)
    per_milestone = time_session_store.durations_by_milestone(db, proposal_id)

    breakdown: list[MilestoneTimeBreakdown] = []
    for milestone in milestone_store.list_by_proposal(db, proposal_id):
        logged = per_milestone.get(milestone.id)
        seconds = logged.total_seconds if logged else 0
        breakdown.append(
            MilestoneTimeBreakdown(
                milestone_id=milestone.id,
                title=milestone.title,
                type=milestone.type,
                session_count=logged.session_count if logged else 0,
                total_seconds=seconds,
                total_hours=seconds_to_hours(seconds),
                estimated_hours=float(milestone.estimated_hours or 0),
            )
        )

    logger.debug(
        "get_time_summary: proposal_id=%d sessions=%d seconds=%d",
        proposal_id, len(sessions), totals.total_time_spent_seconds,
    )
    return TimeSummaryResponse(
        proposal_id=proposal_id,
        sessions=[build_session_response(s) for s in sessions],
        total_time_spent_seconds=totals.total_time_spent_seconds,
        total_hours=totals.total_hours,
        by_milestone=breakdown,
    )


def get_active_session(db: Session, actor_id: str) -> TimeSessionResponse | None:
    active = time_session_store.get_active(db, actor_id)
    return build_session_response(active) if active is not None else None


def get_milestone_sessions(db: Session, milestone_id: int) -> list[TimeSessionResponse]:
    """Sessions logged against one milestone, most recent first."""
    return [
        build_session_response(s)
        for s in time_session_store.list_by_milestone(db, milestone_id)
    ]


def get_progress(db: Session, proposal_id: int) -> ProgressSnapshot:
    """Recompute the progress snapshot from current milestone and session state."""
    proposal = milestone_store.get_proposal(db, proposal_id)
    milestones = milestone_store.list_by_proposal(db, proposal_id)
    totals = time_session_store.total_duration(db, proposal_id)

    compensation = proposal.proposed_compensation if proposal is not None else 0
    currency = proposal.currency if proposal is not None else get_settings().DEFAULT_CURRENCY

    snapshot = build_snapshot(
        proposal_id=proposal_id,
        milestones=milestones,
        total_time_spent_seconds=totals.total_time_spent_seconds,
        compensation=compensation or 0,
        currency=currency,
    )
    logger.debug(
        "get_progress: proposal_id=%d overall=%d stage=%s",
        proposal_id, snapshot.overall_progress, snapshot.current_stage,
    )
    return snapshot
