"""
Proposal progress router.

Mounts under ``/api/proposals`` (prefix set in ``main.py``).

Read-only endpoints, open to every authenticated role (influencer, brand,
admin).  Unknown proposals return empty collections and zero totals rather
than 404, matching ``GET /proposals/{id}/milestones``.

Endpoints
---------
GET /{proposal_id}/time-sessions     - Sessions, totals and per-milestone breakdown.
GET /{proposal_id}/progress          - Progress snapshot.
GET /{proposal_id}/time-report.xlsx  - Excel time report download.
"""

from __future__ import annotations

import io
import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from progress_engine.database import get_db
from progress_engine.schemas.progress import ProgressSnapshot
from progress_engine.schemas.time_session import TimeSummaryResponse
from progress_engine.services import query_service, report_service
from progress_engine.services.auth_service import Actor, get_current_actor

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Progress"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ---------------------------------------------------------------------------
# GET /{proposal_id}/time-sessions
# ---------------------------------------------------------------------------


@router.get(
    "/{proposal_id}/time-sessions",
    response_model=TimeSummaryResponse,
    summary="Time sessions of a proposal",
    description=(
        "All sessions, newest first, with totals over stopped sessions and a "
        "per-milestone breakdown of logged time."
    ),
    responses={
        200: {"description": "Summary returned."},
        401: {"description": "Missing or invalid JWT."},
    },
)
def get_time_sessions(
    proposal_id: Annotated[int, Path(ge=1, description="Proposal id.")],
    db: Annotated[Session, Depends(get_db)],
    _actor: Annotated[Actor, Depends(get_current_actor)],
) -> TimeSummaryResponse:
    return query_service.get_time_summary(db, proposal_id)


# ---------------------------------------------------------------------------
# GET /{proposal_id}/progress
# ---------------------------------------------------------------------------


@router.get(
    "/{proposal_id}/progress",
    response_model=ProgressSnapshot,
    summary="Progress snapshot",
    description=(
        "Stage progress, overall percentage, current stage, logged hours and "
        "effective hourly rate, recomputed on every call."
    ),
    responses={
        200: {"description": "Snapshot returned."},
        401: {"description": "Missing or invalid JWT."},
    },
)
def get_progress(
    proposal_id: Annotated[int, Path(ge=1, description="Proposal id.")],
    db: Annotated[Session, Depends(get_db)],
    _actor: Annotated[Actor, Depends(get_current_actor)],
) -> ProgressSnapshot:
    return query_service.get_progress(db, proposal_id)


# ---------------------------------------------------------------------------
# GET /{proposal_id}/time-report.xlsx
# ---------------------------------------------------------------------------


@router.get(
    "/{proposal_id}/time-report.xlsx",
    summary="Download the time report (.xlsx)",
    description=(
        "Excel workbook with a header, KPI row (hours, hourly rate, progress), "
        "the session list and the per-milestone breakdown."
    ),
    response_class=StreamingResponse,
    responses={
        200: {
            "description": "Workbook generated.",
            "content": {XLSX_MEDIA_TYPE: {}},
        },
        401: {"description": "Missing or invalid JWT."},
        500: {"description": "Workbook generation failed."},
    },
)
def export_time_report(
    proposal_id: Annotated[int, Path(ge=1, description="Proposal id.")],
    db: Annotated[Session, Depends(get_db)],
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> StreamingResponse:
    logger.info("GET /proposals/%d/time-report.xlsx actor=%s", proposal_id, actor.id)

    try:
        file_bytes = report_service.export_time_report(db, proposal_id)
    except Exception as exc:
        logger.exception("export_time_report failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error generating the time report.",
        ) from exc

    filename = f"time_report_proposal_{proposal_id}_{date.today().isoformat()}.xlsx"
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Content-Length": str(len(file_bytes)),
    }
    return StreamingResponse(
        io.BytesIO(file_bytes),
        media_type=XLSX_MEDIA_TYPE,
        headers=headers,
    )
