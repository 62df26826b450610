"""
Milestone lifecycle service layer.

Orchestrates the milestone store and returns the freshly recomputed
``ProgressSnapshot`` with every mutation so the client never needs a second
round trip.  ``complete_milestone`` publishes ``MilestoneCompleted`` after
the transaction commits; a failing subscriber cannot undo the completion.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any, Sequence

from sqlalchemy.orm import Session

from progress_engine.database import transaction
from progress_engine.schemas.milestone import (
    MilestonesWithProgressResponse,
    MilestoneWithProgressResponse,
)
from progress_engine.services import milestone_store, query_service
from progress_engine.services.events import (
    EventDispatcher,
    MilestoneCompleted,
    get_event_dispatcher,
)
from progress_engine.utils.timeutil import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


def initialize_milestones(
    db: Session,
    proposal_id: int,
    payment_schedule: Sequence[Any] | None = None,
    due_dates: Sequence[datetime.datetime | None] | None = None,
) -> MilestonesWithProgressResponse:
    """Create (or return) the proposal's milestone set with a progress snapshot.

    Raises:
        NotFoundError: If the proposal does not exist.
        EngineValidationError: If the payment schedule or due dates are invalid.
    """
    with transaction(db):
        rows = milestone_store.initialize(
            db,
            proposal_id,
            payment_schedule=payment_schedule,
            due_dates=due_dates,
        )

    milestones = [query_service.build_milestone_response(r) for r in rows]
    progress = query_service.get_progress(db, proposal_id)

    logger.info(
        "initialize_milestones: proposal_id=%d milestones=%d",
        proposal_id, len(milestones),
    )
    return MilestonesWithProgressResponse(milestones=milestones, progress=progress)


def update_milestone(
    db: Session,
    milestone_id: int,
    changes: dict[str, Any],
) -> MilestoneWithProgressResponse:
    """Edit title, description or estimated hours of an open milestone.

    Raises:
        NotFoundError: If the milestone does not exist.
        InvalidStateError: If the milestone is completed.
        EngineValidationError: On invalid field values.
    """
    with transaction(db):
        row = milestone_store.update(db, milestone_id, changes)
        proposal_id = row.proposal_id

    logger.info(
        "update_milestone: milestone_id=%d fields=%s", milestone_id, sorted(changes)
    )
    return MilestoneWithProgressResponse(
        milestone=query_service.build_milestone_response(row),
        progress=query_service.get_progress(db, proposal_id),
    )


def complete_milestone(
    db: Session,
    milestone_id: int,
    now: datetime.datetime | None = None,
    dispatcher: EventDispatcher | None = None,
) -> MilestoneWithProgressResponse:
    """Complete a milestone, then publish ``MilestoneCompleted``.

    Args:
        db: Active SQLAlchemy session.
        milestone_id: Milestone to complete.
        now: Completion timestamp; defaults to the current UTC time.
        dispatcher: Event dispatcher; defaults to the process-wide one.

    Raises:
        NotFoundError: If the milestone does not exist.
        InvalidStateError: If the milestone is already completed.
    """
    now = to_naive_utc(now) or utcnow()

    with transaction(db):
        row = milestone_store.complete(db, milestone_id, now=now)
        event = MilestoneCompleted(
            milestone_id=row.id,
            proposal_id=row.proposal_id,
            payment_percentage=(
                float(row.payment_percentage)
                if row.payment_percentage is not None
                else None
            ),
            completed_at=row.completed_at,
        )

    logger.info(
        "complete_milestone: milestone_id=%d proposal_id=%d",
        event.milestone_id, event.proposal_id,
    )

    # After commit: subscribers see committed state and cannot roll it back
    (dispatcher or get_event_dispatcher()).publish(event)

    return MilestoneWithProgressResponse(
        milestone=query_service.build_milestone_response(row, now),
        progress=query_service.get_progress(db, event.proposal_id),
    )
