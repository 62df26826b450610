"""
Pydantic v2 schema for the derived progress snapshot.

The snapshot is never persisted; it is recomputed from milestone and session
state on every read and returned after every mutation.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ProgressSnapshot(BaseModel):
    """Completion and time metrics for one proposal.

    Attributes:
        proposal_id: Proposal the snapshot describes.
        stage_progress: Stage type → 0..100 (binary: 0 or 100).
        overall_progress: Mean of the five stage values, rounded half up.
        current_stage: First stage not yet at 100, or ``payment``.
        completed_milestones: Count of completed milestones.
        total_milestones: Count of milestones on the proposal.
        total_time_spent_seconds: Sum of stopped session durations.
        total_hours: ``total_time_spent_seconds / 3600`` rounded to 2 places.
        compensation: Proposed compensation of the proposal.
        currency: Currency code of ``compensation``.
        hourly_rate: ``compensation / hours``; 0 when no time is logged.
    """

    proposal_id: int
    stage_progress: dict[str, int] = Field(default_factory=dict)
    overall_progress: int = Field(default=0, ge=0, le=100)
    current_stage: str
    completed_milestones: int = 0
    total_milestones: int = 0
    total_time_spent_seconds: int = 0
    total_hours: float = 0.0
    compensation: float = 0.0
    currency: str
    hourly_rate: float = 0.0
