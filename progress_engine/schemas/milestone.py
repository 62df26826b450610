"""
Pydantic v2 schemas for the milestone endpoints.

These models define the JSON shapes consumed and returned by
``progress_engine/routers/milestones.py``.  They are free of SQLAlchemy
imports so the schema layer stays decoupled from ORM internals.
"""

from __future__ import annotations

import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from progress_engine.schemas.progress import ProgressSnapshot

# Finite percentage in 0..100
PaymentPercentage = Annotated[float, Field(ge=0, le=100, allow_inf_nan=False)]


# ---------------------------------------------------------------------------
# Input schemas - write operations
# ---------------------------------------------------------------------------


class MilestoneInitializeRequest(BaseModel):
    """Optional body for ``POST /proposals/{id}/milestones/initialize``.

    Attributes:
        payment_schedule: Five percentages, one per stage in pipeline order,
                          summing to exactly 100.  Omit for the default
                          0/0/0/0/100 schedule.
        due_dates: Five optional deadlines, one per stage in pipeline order.
    """

    payment_schedule: list[PaymentPercentage] | None = Field(
        default=None,
        description="Payment percentage per stage (5 values summing to 100).",
    )
    due_dates: list[datetime.datetime | None] | None = Field(
        default=None,
        description="Due date per stage (5 values, each may be null).",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "payment_schedule": [30, 0, 0, 20, 50],
                "due_dates": [None, "2026-11-01T18:00:00Z", None, None, None],
            }
        }
    )


class MilestoneUpdate(BaseModel):
    """Payload for partial update of a milestone (PUT /milestones/{id}).

    Status is deliberately absent: it only changes through ``complete``.
    """

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    estimated_hours: float | None = Field(default=None, ge=0, le=9999, allow_inf_nan=False)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"title": "Script & Filming", "estimated_hours": 5.5}
        }
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class MilestoneResponse(BaseModel):
    """Milestone as returned to the client, with the derived urgency flag."""

    id: int
    proposal_id: int
    order: int
    type: str
    title: str
    description: str | None = None
    status: str
    estimated_hours: float
    actual_hours: float | None = None
    payment_percentage: float | None = None
    due_date: datetime.datetime | None = None
    started_at: datetime.datetime | None = None
    completed_at: datetime.datetime | None = None
    is_urgent: bool = False


class MilestoneListResponse(BaseModel):
    """Milestones of a proposal ordered by ``order``."""

    proposal_id: int
    milestones: list[MilestoneResponse]
    total_milestones: int
    completed_milestones: int


class MilestonesWithProgressResponse(BaseModel):
    """Result of ``initialize``: the milestone set plus the fresh snapshot."""

    milestones: list[MilestoneResponse]
    progress: ProgressSnapshot


class MilestoneWithProgressResponse(BaseModel):
    """Result of ``update`` / ``complete``: one milestone plus the snapshot."""

    milestone: MilestoneResponse
    progress: ProgressSnapshot
