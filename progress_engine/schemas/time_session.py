"""
Pydantic v2 schemas for the time-tracking endpoints.
"""

from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict, Field

from progress_engine.schemas.progress import ProgressSnapshot


class TimeTrackingStartRequest(BaseModel):
    """Payload for ``POST /time-tracking/start``.

    The proposal is derived from the milestone; clients do not send it.
    """

    milestone_id: int = Field(..., ge=1, description="Milestone to log time against.")
    description: str | None = Field(
        default=None,
        max_length=2000,
        description="What is being worked on.",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"milestone_id": 12, "description": "Working on Content Creation"}
        }
    )


class TimeSessionResponse(BaseModel):
    """Time session as returned to the client."""

    id: int
    milestone_id: int
    proposal_id: int
    actor_id: str
    start_time: datetime.datetime
    end_time: datetime.datetime | None = None
    duration_seconds: int | None = None
    description: str | None = None
    is_active: bool


class ActiveSessionResponse(BaseModel):
    """Envelope for ``GET /time-tracking/active``; ``session`` is null when idle."""

    session: TimeSessionResponse | None = None


class SessionWithProgressResponse(BaseModel):
    """Result of ``stop``: the stopped session plus the fresh snapshot."""

    session: TimeSessionResponse
    progress: ProgressSnapshot


class MilestoneTimeBreakdown(BaseModel):
    """Logged time for one milestone."""

    milestone_id: int
    title: str
    type: str
    session_count: int
    total_seconds: int
    total_hours: float
    estimated_hours: float


class TimeSummaryResponse(BaseModel):
    """Sessions and totals for a proposal (``GET /proposals/{id}/time-sessions``).

    Totals count stopped sessions only; a running timer's elapsed time is
    computed client-side from ``start_time``.
    """

    proposal_id: int
    sessions: list[TimeSessionResponse]
    total_time_spent_seconds: int
    total_hours: float
    by_milestone: list[MilestoneTimeBreakdown] = Field(default_factory=list)
