"""
Time report export.

Builds the ``.xlsx`` time report served at
``GET /api/proposals/{id}/time-report.xlsx`` from the same query facade the
JSON endpoints use, so the workbook and the API never disagree on totals.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from sqlalchemy.orm import Session

from progress_engine.exporters.excel_exporter import ExcelExporter
from progress_engine.services import query_service
from progress_engine.services.progress_aggregator import seconds_to_hours

logger = logging.getLogger(__name__)

SESSION_HEADERS = ["Milestone", "Start (UTC)", "End (UTC)", "Hours", "Description"]
BREAKDOWN_HEADERS = ["Milestone", "Stage", "Sessions", "Logged hours", "Estimated hours"]

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _fmt_ts(value: datetime.datetime | None) -> str:
    return value.strftime(_TIMESTAMP_FORMAT) if value is not None else ""


def _session_rows(summary, titles: dict[int, str]) -> list[list[Any]]:
    rows: list[list[Any]] = []
    for s in summary.sessions:
        rows.append([
            titles.get(s.milestone_id, f"#{s.milestone_id}"),
            _fmt_ts(s.start_time),
            _fmt_ts(s.end_time) if s.end_time else "running",
            seconds_to_hours(s.duration_seconds) if s.duration_seconds is not None else None,
            s.description or "",
        ])
    return rows


def export_time_report(db: Session, proposal_id: int) -> bytes:
    """Render the proposal's time report as an Excel workbook.

    Layout: header (proposal, currency, progress stage), KPI row, sessions
    table, then the per-milestone breakdown.  A proposal with no sessions
    still yields a valid workbook with empty tables.
    """
    summary = query_service.get_time_summary(db, proposal_id)
    progress = query_service.get_progress(db, proposal_id)
    titles = {b.milestone_id: b.title for b in summary.by_milestone}

    exporter = ExcelExporter(
        title=f"Time report - proposal {proposal_id}",
        details={
            "Proposal": str(proposal_id),
            "Currency": progress.currency,
            "Current stage": progress.current_stage,
        },
        sheet_name="Time report",
    )
    exporter.add_header(num_cols=len(SESSION_HEADERS))
    exporter.add_kpi_row({
        "Total hours": progress.total_hours,
        f"Hourly rate ({progress.currency})": progress.hourly_rate,
        "Overall progress (%)": progress.overall_progress,
        "Milestones completed": (
            f"{progress.completed_milestones}/{progress.total_milestones}"
        ),
    })

    exporter.add_section_title("Sessions")
    exporter.add_data_table(
        SESSION_HEADERS,
        _session_rows(summary, titles),
        numeric_cols={3},
    )

    exporter.add_section_title("By milestone")
    exporter.add_data_table(
        BREAKDOWN_HEADERS,
        [
            [b.title, b.type, b.session_count, b.total_hours, b.estimated_hours]
            for b in summary.by_milestone
        ],
        numeric_cols={2, 3, 4},
    )

    file_bytes = exporter.finalize()
    logger.info(
        "export_time_report: proposal_id=%d sessions=%d bytes=%d",
        proposal_id, len(summary.sessions), len(file_bytes),
    )
    return file_bytes
