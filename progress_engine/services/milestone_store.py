"""
Milestone store - all database access for milestone records.

Functions receive a SQLAlchemy ``Session`` and leave ``commit()`` to the
calling service so that a service operation (for example "stop the timer and
refresh the milestone's actual hours") is one transaction.

Design notes
------------
- ``initialize`` is idempotent: existing milestones are returned untouched.
  A concurrent initialize that loses the race trips the
  ``(proposal_id, order)`` unique constraint; the loser rolls back and
  returns the winner's rows.
- ``complete`` and ``mark_in_progress`` are compare-and-set ``UPDATE``
  statements guarded on the current status, so two racing completions yield
  exactly one winner and a late ``mark_in_progress`` can never reopen a
  completed milestone.
- Percentages are handled as ``Decimal`` end to end; floats from JSON are
  converted through ``str`` to avoid binary artefacts (0.1 + 0.2).
"""

from __future__ import annotations

import datetime
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Sequence

from sqlalchemy import func
from sqlalchemy import update as sql_update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from progress_engine.exceptions import (
    EngineValidationError,
    InvalidStateError,
    NotFoundError,
)
from progress_engine.models.milestone import Milestone
from progress_engine.models.proposal import Proposal
from progress_engine.models.time_session import TimeSession
from progress_engine.utils.constants import (
    DEFAULT_MILESTONES,
    DEFAULT_PAYMENT_SCHEDULE,
    MAX_ESTIMATED_HOURS,
    PAYMENT_TOTAL_PERCENTAGE,
    SECONDS_PER_HOUR,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
)
from progress_engine.utils.timeutil import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

# Fields a caller may change through ``update``
_EDITABLE_FIELDS: frozenset[str] = frozenset({"title", "description", "estimated_hours"})

_HUNDREDTH = Decimal("0.01")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _to_decimal(value: Any, field: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise EngineValidationError(f"{field} must be a number, got {value!r}.") from exc
    if not result.is_finite():
        raise EngineValidationError(f"{field} must be a finite number, got {value!r}.")
    return result


def _validate_order_sequence(orders: Sequence[int]) -> None:
    """Orders must be the dense ascending sequence 1..N."""
    if list(orders) != list(range(1, len(orders) + 1)):
        raise EngineValidationError(
            f"Milestone order must be a gapless sequence starting at 1, got {list(orders)}."
        )


def _resolve_payment_schedule(
    payment_schedule: Sequence[Any] | None,
    expected: int,
) -> list[Decimal]:
    """Validate a custom payment schedule or fall back to the default one.

    A custom schedule must have one entry per milestone, each a finite
    number in 0..100, summing to exactly 100.  Entries are rounded half up
    to two decimals (the stored precision) before the checks.

    Raises:
        EngineValidationError: On a wrong length, out-of-range entry or a
                               total different from 100.
    """
    if payment_schedule is None:
        return list(DEFAULT_PAYMENT_SCHEDULE)

    if len(payment_schedule) != expected:
        raise EngineValidationError(
            f"payment_schedule must have {expected} entries, got {len(payment_schedule)}."
        )

    schedule: list[Decimal] = []
    for value in payment_schedule:
        pct = _to_decimal(value, "payment_schedule")
        if pct < 0 or pct > PAYMENT_TOTAL_PERCENTAGE:
            raise EngineValidationError(
                f"Payment percentages must be between 0 and 100, got {pct}."
            )
        schedule.append(pct.quantize(_HUNDREDTH, rounding=ROUND_HALF_UP))

    total = sum(schedule, Decimal("0"))
    if total > PAYMENT_TOTAL_PERCENTAGE:
        raise EngineValidationError(
            f"Payment percentages sum to {total}, which exceeds 100."
        )
    if total != PAYMENT_TOTAL_PERCENTAGE:
        raise EngineValidationError(
            f"Milestone-based payment percentages must sum to 100, got {total}."
        )
    return schedule


def _resolve_due_dates(
    due_dates: Sequence[datetime.datetime | None] | None,
    expected: int,
) -> list[datetime.datetime | None]:
    if due_dates is None:
        return [None] * expected
    if len(due_dates) != expected:
        raise EngineValidationError(
            f"due_dates must have {expected} entries, got {len(due_dates)}."
        )
    return [to_naive_utc(d) for d in due_dates]


# ---------------------------------------------------------------------------
# Read operations
# ---------------------------------------------------------------------------


def get_proposal(db: Session, proposal_id: int) -> Proposal | None:
    return db.query(Proposal).filter(Proposal.id == proposal_id).first()


def get_milestone(db: Session, milestone_id: int) -> Milestone:
    """Load a milestone or raise ``NotFoundError``."""
    milestone: Milestone | None = (
        db.query(Milestone).filter(Milestone.id == milestone_id).first()
    )
    if milestone is None:
        raise NotFoundError(f"Milestone {milestone_id} not found.")
    return milestone


def list_by_proposal(db: Session, proposal_id: int) -> list[Milestone]:
    """Return the proposal's milestones ordered by ``order`` ascending."""
    return (
        db.query(Milestone)
        .filter(Milestone.proposal_id == proposal_id)
        .order_by(Milestone.order.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# Write operations - caller commits
# ---------------------------------------------------------------------------


def initialize(
    db: Session,
    proposal_id: int,
    payment_schedule: Sequence[Any] | None = None,
    due_dates: Sequence[datetime.datetime | None] | None = None,
) -> list[Milestone]:
    """Create the default five-stage milestone set, or return the existing one.

    Args:
        db: Active SQLAlchemy session.
        proposal_id: Proposal to initialize.
        payment_schedule: Optional per-stage payment percentages.
        due_dates: Optional per-stage deadlines.

    Returns:
        The proposal's milestones ordered by ``order``.

    Raises:
        NotFoundError: If the proposal does not exist.
        EngineValidationError: If the schedule or due dates are malformed.
    """
    if get_proposal(db, proposal_id) is None:
        raise NotFoundError(f"Proposal {proposal_id} not found.")

    existing = list_by_proposal(db, proposal_id)
    if existing:
        logger.debug(
            "initialize: proposal_id=%d already has %d milestones",
            proposal_id, len(existing),
        )
        return existing

    _validate_order_sequence([m["order"] for m in DEFAULT_MILESTONES])
    schedule = _resolve_payment_schedule(payment_schedule, len(DEFAULT_MILESTONES))
    deadlines = _resolve_due_dates(due_dates, len(DEFAULT_MILESTONES))

    for template, pct, due in zip(DEFAULT_MILESTONES, schedule, deadlines):
        db.add(
            Milestone(
                proposal_id=proposal_id,
                order=template["order"],
                type=template["type"],
                title=template["title"],
                description=template["description"],
                status=STATUS_PENDING,
                estimated_hours=template["estimated_hours"],
                actual_hours=None,
                payment_percentage=pct,
                due_date=due,
            )
        )

    try:
        db.flush()
    except IntegrityError:
        # Another request initialized the same proposal first
        db.rollback()
        logger.info("initialize: proposal_id=%d lost race, returning existing set", proposal_id)
        return list_by_proposal(db, proposal_id)

    created = list_by_proposal(db, proposal_id)
    logger.info("initialize: proposal_id=%d created %d milestones", proposal_id, len(created))
    return created


def update(db: Session, milestone_id: int, changes: dict[str, Any]) -> Milestone:
    """Apply a partial update of title, description and/or estimated hours.

    Args:
        db: Active SQLAlchemy session.
        milestone_id: Milestone to modify.
        changes: Field → new value; typically ``model_dump(exclude_unset=True)``.

    Returns:
        The updated ``Milestone``.

    Raises:
        NotFoundError: If the milestone does not exist.
        InvalidStateError: If the milestone is already completed.
        EngineValidationError: On unknown fields, an empty title or hours that
                               are non-finite or outside 0..9999.
    """
    milestone = get_milestone(db, milestone_id)

    unknown = set(changes) - _EDITABLE_FIELDS
    if unknown:
        raise EngineValidationError(
            f"Fields {sorted(unknown)} cannot be changed through update."
        )

    if milestone.status == STATUS_COMPLETED:
        raise InvalidStateError(
            f"Milestone {milestone_id} is completed and can no longer be edited."
        )

    if "title" in changes:
        title = (changes["title"] or "").strip()
        if not title:
            raise EngineValidationError("title must not be empty.")
        milestone.title = title

    if "description" in changes:
        milestone.description = changes["description"]

    if "estimated_hours" in changes:
        if changes["estimated_hours"] is None:
            raise EngineValidationError("estimated_hours must not be null.")
        hours = _to_decimal(changes["estimated_hours"], "estimated_hours")
        if hours < 0 or hours > MAX_ESTIMATED_HOURS:
            raise EngineValidationError(
                f"estimated_hours must be between 0 and {MAX_ESTIMATED_HOURS}, got {hours}."
            )
        milestone.estimated_hours = hours.quantize(_HUNDREDTH, rounding=ROUND_HALF_UP)

    db.flush()
    return milestone


def complete(
    db: Session,
    milestone_id: int,
    now: datetime.datetime | None = None,
) -> Milestone:
    """Transition a milestone to ``completed`` exactly once.

    Raises:
        NotFoundError: If the milestone does not exist.
        InvalidStateError: If it is already completed (including a lost race).
    """
    milestone = get_milestone(db, milestone_id)
    now = to_naive_utc(now) or utcnow()

    result = db.execute(
        sql_update(Milestone)
        .where(Milestone.id == milestone_id, Milestone.status != STATUS_COMPLETED)
        .values(status=STATUS_COMPLETED, completed_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning("complete: milestone_id=%d already completed", milestone_id)
        raise InvalidStateError(f"Milestone {milestone_id} is already completed.")

    db.refresh(milestone)
    return milestone


def mark_in_progress(
    db: Session,
    milestone_id: int,
    now: datetime.datetime,
) -> None:
    """Move a pending milestone to ``in_progress`` and stamp ``started_at`` once."""
    db.execute(
        sql_update(Milestone)
        .where(Milestone.id == milestone_id, Milestone.status == STATUS_PENDING)
        .values(
            status=STATUS_IN_PROGRESS,
            started_at=func.coalesce(Milestone.started_at, now),
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )


def recompute_actual_hours(db: Session, milestone_id: int) -> Decimal:
    """Set ``actual_hours`` to the sum of the milestone's stopped sessions.

    ``actual_hours`` is derived data, so it is refreshed even on completed
    milestones (a timer may be stopped after its milestone was completed).
    """
    total_seconds: int = (
        db.query(func.coalesce(func.sum(TimeSession.duration_seconds), 0))
        .filter(
            TimeSession.milestone_id == milestone_id,
            TimeSession.end_time.isnot(None),
        )
        .scalar()
        or 0
    )
    hours = (Decimal(int(total_seconds)) / SECONDS_PER_HOUR).quantize(
        _HUNDREDTH, rounding=ROUND_HALF_UP
    )

    db.execute(
        sql_update(Milestone)
        .where(Milestone.id == milestone_id)
        .values(actual_hours=hours)
        .execution_options(synchronize_session=False)
    )
    logger.debug(
        "recompute_actual_hours: milestone_id=%d seconds=%d hours=%s",
        milestone_id, total_seconds, hours,
    )
    return hours
