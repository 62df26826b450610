"""
Milestones router.

Mounts under ``/api`` (prefix set in ``main.py``).

All endpoints require a valid JWT token (``get_current_actor`` dependency).
Write operations additionally require the ``influencer`` role via
``require_role``; brands and admins get read access only.

Endpoints
---------
GET  /proposals/{proposal_id}/milestones             - Milestones ordered by stage.
POST /proposals/{proposal_id}/milestones/initialize  - Create the five-stage set (influencer).
PUT  /milestones/{milestone_id}                      - Edit an open milestone (influencer).
POST /milestones/{milestone_id}/complete             - Complete a milestone (influencer).
GET  /milestones/{milestone_id}/time-sessions        - Sessions logged on a milestone.

Every mutation returns the freshly recomputed progress snapshot.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.orm import Session

from progress_engine.database import get_db
from progress_engine.schemas.common import ErrorResponse
from progress_engine.schemas.milestone import (
    MilestoneInitializeRequest,
    MilestoneListResponse,
    MilestonesWithProgressResponse,
    MilestoneUpdate,
    MilestoneWithProgressResponse,
)
from progress_engine.schemas.time_session import TimeSessionResponse
from progress_engine.services import milestone_service, query_service
from progress_engine.services.auth_service import Actor, get_current_actor, require_role
from progress_engine.utils.constants import ROLE_INFLUENCER

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Milestones"])

_influencer_only = require_role(ROLE_INFLUENCER)


# ---------------------------------------------------------------------------
# GET /proposals/{proposal_id}/milestones
# ---------------------------------------------------------------------------


@router.get(
    "/proposals/{proposal_id}/milestones",
    response_model=MilestoneListResponse,
    summary="List proposal milestones",
    description=(
        "Returns the proposal's milestones ordered by stage, each with its "
        "urgency flag. An uninitialized or unknown proposal yields an empty list."
    ),
    responses={
        200: {"description": "Milestones returned."},
        401: {"description": "Missing or invalid JWT."},
    },
)
def list_milestones(
    proposal_id: Annotated[int, Path(ge=1, description="Proposal id.")],
    db: Annotated[Session, Depends(get_db)],
    _actor: Annotated[Actor, Depends(get_current_actor)],
) -> MilestoneListResponse:
    return query_service.get_milestones(db, proposal_id)


# ---------------------------------------------------------------------------
# POST /proposals/{proposal_id}/milestones/initialize
# ---------------------------------------------------------------------------


@router.post(
    "/proposals/{proposal_id}/milestones/initialize",
    response_model=MilestonesWithProgressResponse,
    summary="Initialize the five-stage milestone set",
    description=(
        "Creates Content Creation, Submission, Review & Revisions, Final Approval "
        "and Payment Release milestones. Idempotent: calling it again returns the "
        "existing set unchanged. The body is optional; omit it for the default "
        "payment schedule (100% on Payment Release)."
    ),
    responses={
        200: {"description": "Milestone set created or returned."},
        401: {"description": "Missing or invalid JWT."},
        403: {"description": "Caller is not an influencer."},
        404: {"model": ErrorResponse, "description": "Proposal not found."},
        422: {"model": ErrorResponse, "description": "Invalid payment schedule or due dates."},
    },
)
def initialize_milestones(
    proposal_id: Annotated[int, Path(ge=1, description="Proposal id.")],
    db: Annotated[Session, Depends(get_db)],
    actor: Annotated[Actor, Depends(_influencer_only)],
    payload: Annotated[MilestoneInitializeRequest | None, Body()] = None,
) -> MilestonesWithProgressResponse:
    logger.info(
        "POST /proposals/%d/milestones/initialize by actor=%s", proposal_id, actor.id
    )
    return milestone_service.initialize_milestones(
        db,
        proposal_id,
        payment_schedule=payload.payment_schedule if payload else None,
        due_dates=payload.due_dates if payload else None,
    )


# ---------------------------------------------------------------------------
# PUT /milestones/{milestone_id}
# ---------------------------------------------------------------------------


@router.put(
    "/milestones/{milestone_id}",
    response_model=MilestoneWithProgressResponse,
    summary="Edit a milestone",
    description=(
        "Partial update of title, description or estimated hours. Only fields "
        "present in the body are changed. Completed milestones are read-only."
    ),
    responses={
        200: {"description": "Milestone updated."},
        401: {"description": "Missing or invalid JWT."},
        403: {"description": "Caller is not an influencer."},
        404: {"model": ErrorResponse, "description": "Milestone not found."},
        409: {"model": ErrorResponse, "description": "Milestone is completed."},
        422: {"model": ErrorResponse, "description": "Invalid field value."},
    },
)
def update_milestone(
    milestone_id: Annotated[int, Path(ge=1, description="Milestone id.")],
    payload: MilestoneUpdate,
    db: Annotated[Session, Depends(get_db)],
    actor: Annotated[Actor, Depends(_influencer_only)],
) -> MilestoneWithProgressResponse:
    changes = payload.model_dump(exclude_unset=True)
    logger.info(
        "PUT /milestones/%d by actor=%s fields=%s", milestone_id, actor.id, sorted(changes)
    )
    return milestone_service.update_milestone(db, milestone_id, changes)


# ---------------------------------------------------------------------------
# POST /milestones/{milestone_id}/complete
# ---------------------------------------------------------------------------


@router.post(
    "/milestones/{milestone_id}/complete",
    response_model=MilestoneWithProgressResponse,
    summary="Complete a milestone",
    description=(
        "Marks the milestone completed and publishes MilestoneCompleted. "
        "Completing the Payment Release stage brings overall progress to 100."
    ),
    responses={
        200: {"description": "Milestone completed."},
        401: {"description": "Missing or invalid JWT."},
        403: {"description": "Caller is not an influencer."},
        404: {"model": ErrorResponse, "description": "Milestone not found."},
        409: {"model": ErrorResponse, "description": "Milestone already completed."},
    },
)
def complete_milestone(
    milestone_id: Annotated[int, Path(ge=1, description="Milestone id.")],
    db: Annotated[Session, Depends(get_db)],
    actor: Annotated[Actor, Depends(_influencer_only)],
) -> MilestoneWithProgressResponse:
    logger.info("POST /milestones/%d/complete by actor=%s", milestone_id, actor.id)
    return milestone_service.complete_milestone(db, milestone_id)


# ---------------------------------------------------------------------------
# GET /milestones/{milestone_id}/time-sessions
# ---------------------------------------------------------------------------


@router.get(
    "/milestones/{milestone_id}/time-sessions",
    response_model=list[TimeSessionResponse],
    summary="Time sessions of a milestone",
    description="All sessions logged against the milestone, newest first.",
    responses={
        200: {"description": "Sessions returned (empty for an unknown milestone)."},
        401: {"description": "Missing or invalid JWT."},
    },
)
def list_milestone_sessions(
    milestone_id: Annotated[int, Path(ge=1, description="Milestone id.")],
    db: Annotated[Session, Depends(get_db)],
    _actor: Annotated[Actor, Depends(get_current_actor)],
) -> list[TimeSessionResponse]:
    return query_service.get_milestone_sessions(db, milestone_id)
