"""
Progress aggregation - pure functions over milestone and session state.

Nothing in this module touches the database or reads the wall clock; callers
pass ``now`` explicitly where it matters (urgency), which keeps every result
reproducible in tests.

Design notes
------------
- Stage progress is binary: a stage is 100 when its milestone is completed,
  otherwise 0.  A stage with no milestone counts as 0.
- Overall progress is the arithmetic mean of the five stages with equal
  weight, rounded half up through ``Decimal`` so that 62.5 → 63 regardless of
  float representation.
- ``hourly_rate`` returns 0 for zero (or non-finite) hours; NaN and infinity
  never leave this module.
"""

from __future__ import annotations

import datetime
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping

from progress_engine.schemas.progress import ProgressSnapshot
from progress_engine.utils.constants import (
    SECONDS_PER_HOUR,
    STAGE_COMPLETE,
    STAGE_INCOMPLETE,
    STAGE_ORDER,
    STAGE_PAYMENT,
    STATUS_COMPLETED,
)


def stage_progress(milestones: Iterable[Any]) -> dict[str, int]:
    """Map each of the five stage types to 0 or 100.

    Args:
        milestones: Objects exposing ``type`` and ``status`` (ORM rows or
                    schema instances).

    Returns:
        Dict keyed by every stage in ``STAGE_ORDER``.
    """
    progress = {stage: STAGE_INCOMPLETE for stage in STAGE_ORDER}
    for milestone in milestones:
        if milestone.type in progress and milestone.status == STATUS_COMPLETED:
            progress[milestone.type] = STAGE_COMPLETE
    return progress


def overall_progress(stage_map: Mapping[str, int]) -> int:
    """Equal-weight mean of the five stage values, rounded half up, clamped 0..100."""
    total = sum(Decimal(stage_map.get(stage, 0)) for stage in STAGE_ORDER)
    mean = (total / len(STAGE_ORDER)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(0, min(100, int(mean)))


def current_stage(stage_map: Mapping[str, int]) -> str:
    """First stage in pipeline order below 100, or ``payment`` when all are done."""
    for stage in STAGE_ORDER:
        if stage_map.get(stage, 0) < STAGE_COMPLETE:
            return stage
    return STAGE_PAYMENT


def seconds_to_hours(seconds: int) -> float:
    return round(seconds / SECONDS_PER_HOUR, 2)


def hourly_rate(compensation: float | Decimal, total_hours: float) -> float:
    """Effective hourly rate; 0.0 when no time has been logged.

    Negative inputs are rejected upstream by store validation and are not
    handled here.
    """
    hours = float(total_hours)
    if hours == 0 or not math.isfinite(hours):
        return 0.0
    rate = float(compensation) / hours
    if not math.isfinite(rate):
        return 0.0
    return round(rate, 2)


def is_urgent(
    milestone: Any,
    now: datetime.datetime,
    threshold_hours: int,
) -> bool:
    """True when the milestone is open and due within ``threshold_hours`` (or overdue)."""
    if milestone.status == STATUS_COMPLETED or milestone.due_date is None:
        return False
    return milestone.due_date <= now + datetime.timedelta(hours=threshold_hours)


def build_snapshot(
    proposal_id: int,
    milestones: Iterable[Any],
    total_time_spent_seconds: int,
    compensation: float | Decimal,
    currency: str,
) -> ProgressSnapshot:
    """Assemble a ``ProgressSnapshot`` from already-loaded state.

    Args:
        proposal_id: Proposal the snapshot describes.
        milestones: The proposal's milestones.
        total_time_spent_seconds: Sum of stopped session durations.
        compensation: Proposed compensation (0 when the proposal is unknown).
        currency: Currency code for ``compensation``.

    Returns:
        A fully populated ``ProgressSnapshot``.
    """
    milestones = list(milestones)
    stages = stage_progress(milestones)
    total_hours = seconds_to_hours(total_time_spent_seconds)
    # Rate uses the unrounded hours so sub-minute totals don't skew it
    exact_hours = total_time_spent_seconds / SECONDS_PER_HOUR

    return ProgressSnapshot(
        proposal_id=proposal_id,
        stage_progress=stages,
        overall_progress=overall_progress(stages),
        current_stage=current_stage(stages),
        completed_milestones=sum(1 for m in milestones if m.status == STATUS_COMPLETED),
        total_milestones=len(milestones),
        total_time_spent_seconds=total_time_spent_seconds,
        total_hours=total_hours,
        compensation=round(float(compensation), 2),
        currency=currency,
        hourly_rate=hourly_rate(compensation, exact_hours),
    )
