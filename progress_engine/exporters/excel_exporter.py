"""
Excel export helper wrapping xlsxwriter.

Provides ``ExcelExporter``, a stateful builder that lays out a time report
workbook in memory and returns its bytes for FastAPI's ``StreamingResponse``.

Usage example::

    exporter = ExcelExporter(title="Time report", details={"Proposal": "17"})
    exporter.add_header()
    exporter.add_kpi_row({"Total hours": 1.0, "Hourly rate": 40000.0})
    exporter.add_section_title("Sessions")
    exporter.add_data_table(headers, rows, numeric_cols={3})
    file_bytes = exporter.finalize()

Design notes
------------
- ``xlsxwriter`` runs in in-memory mode (``BytesIO``); nothing touches disk.
- Column widths are sized from the longest value in each column, capped at
  60 characters.
- Hours and money use ``#,##0.00``; alternating data rows are shaded.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Any, Sequence

import xlsxwriter
from xlsxwriter.workbook import Workbook
from xlsxwriter.worksheet import Worksheet

_COLOR_PRIMARY = "#4F46E5"
_COLOR_DARK = "#1E1B4B"
_COLOR_WHITE = "#FFFFFF"
_COLOR_LIGHT_GREY = "#F3F4F6"
_COLOR_BORDER = "#E5E7EB"

_NUMBER_FORMAT = "#,##0.00"
_MAX_COL_WIDTH = 60
_MIN_COL_WIDTH = 10


class ExcelExporter:
    """Single-sheet workbook builder: header, KPI row, then one or more tables.

    Args:
        title: Report title written in the merged header row.
        details: Label/value pairs listed under the title,
                 e.g. ``{"Proposal": "17", "Currency": "INR"}``.
        sheet_name: Worksheet tab name (default ``"Report"``).
    """

    def __init__(
        self,
        title: str,
        details: dict[str, str] | None = None,
        sheet_name: str = "Report",
    ) -> None:
        self._title = title
        self._details = details or {}

        self._buffer = io.BytesIO()
        self._workbook: Workbook = xlsxwriter.Workbook(self._buffer, {"in_memory": True})
        self._worksheet: Worksheet = self._workbook.add_worksheet(sheet_name)

        self._current_row: int = 0
        self._col_widths: dict[int, int] = {}
        self._formats: dict[str, Any] = self._build_formats()

    @property
    def current_row(self) -> int:
        return self._current_row

    # -----------------------------------------------------------------------
    # Format factory
    # -----------------------------------------------------------------------

    def _build_formats(self) -> dict[str, Any]:
        wb = self._workbook
        cell = {"font_size": 9, "font_color": "#111827", "valign": "vcenter",
                "border": 1, "border_color": _COLOR_BORDER}

        return {
            "title": wb.add_format({
                "bold": True, "font_size": 16, "font_color": _COLOR_WHITE,
                "bg_color": _COLOR_PRIMARY, "align": "center", "valign": "vcenter",
            }),
            "subtitle": wb.add_format({
                "font_size": 10, "font_color": _COLOR_WHITE, "bg_color": _COLOR_DARK,
                "align": "center", "valign": "vcenter",
            }),
            "detail_key": wb.add_format({
                "bold": True, "font_size": 9, "font_color": "#374151",
                "bg_color": "#E5E7EB", "align": "right", "valign": "vcenter",
            }),
            "detail_value": wb.add_format({
                "font_size": 9, "font_color": "#111827", "bg_color": "#F9FAFB",
                "align": "left", "valign": "vcenter",
            }),
            "kpi_label": wb.add_format({
                "bold": True, "font_size": 10, "font_color": "#374151",
                "bg_color": "#EEF2FF", "align": "center", "valign": "vcenter",
                "border": 1, "border_color": "#C7D2FE",
            }),
            "kpi_value": wb.add_format({
                "bold": True, "font_size": 12, "font_color": _COLOR_PRIMARY,
                "bg_color": "#EEF2FF", "align": "center", "valign": "vcenter",
                "num_format": _NUMBER_FORMAT, "border": 1, "border_color": "#C7D2FE",
            }),
            "section": wb.add_format({
                "bold": True, "font_size": 11, "font_color": _COLOR_DARK,
                "bottom": 2, "bottom_color": _COLOR_PRIMARY,
            }),
            "col_header": wb.add_format({
                "bold": True, "font_size": 10, "font_color": _COLOR_WHITE,
                "bg_color": _COLOR_DARK, "align": "center", "valign": "vcenter",
                "border": 1, "border_color": "#CBD5E1", "text_wrap": True,
            }),
            "data_plain": wb.add_format({**cell, "bg_color": _COLOR_WHITE, "align": "left"}),
            "data_alt": wb.add_format({**cell, "bg_color": _COLOR_LIGHT_GREY, "align": "left"}),
            "data_number": wb.add_format({
                **cell, "bg_color": _COLOR_WHITE, "align": "right",
                "num_format": _NUMBER_FORMAT,
            }),
            "data_number_alt": wb.add_format({
                **cell, "bg_color": _COLOR_LIGHT_GREY, "align": "right",
                "num_format": _NUMBER_FORMAT,
            }),
        }

    def _track_width(self, col: int, value: Any) -> None:
        text = "" if value is None else str(value)
        self._col_widths[col] = min(
            _MAX_COL_WIDTH, max(self._col_widths.get(col, 0), len(text))
        )

    # -----------------------------------------------------------------------
    # Public builder methods
    # -----------------------------------------------------------------------

    def add_header(self, num_cols: int = 6) -> "ExcelExporter":
        """Write the title row, a generation timestamp and the detail pairs."""
        ws = self._worksheet
        last_col = max(num_cols, 2) - 1

        ws.set_row(self._current_row, 30)
        ws.merge_range(
            self._current_row, 0, self._current_row, last_col,
            self._title, self._formats["title"],
        )
        self._current_row += 1

        generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        ws.merge_range(
            self._current_row, 0, self._current_row, last_col,
            f"Generated: {generated}", self._formats["subtitle"],
        )
        self._current_row += 1

        for key, value in self._details.items():
            ws.write(self._current_row, 0, key, self._formats["detail_key"])
            ws.merge_range(
                self._current_row, 1, self._current_row, last_col,
                value, self._formats["detail_value"],
            )
            self._track_width(0, key)
            self._current_row += 1

        self._current_row += 1
        return self

    def add_kpi_row(self, kpis: dict[str, Any]) -> "ExcelExporter":
        """Write labels on one row and their values on the row below."""
        ws = self._worksheet
        ws.set_row(self._current_row + 1, 22)
        for col, (label, value) in enumerate(kpis.items()):
            ws.write(self._current_row, col, label, self._formats["kpi_label"])
            ws.write(self._current_row + 1, col, value, self._formats["kpi_value"])
            self._track_width(col, label)

        self._current_row += 3
        return self

    def add_section_title(self, text: str) -> "ExcelExporter":
        self._worksheet.write(self._current_row, 0, text, self._formats["section"])
        self._current_row += 1
        return self

    def add_data_table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[Any]],
        numeric_cols: set[int] | None = None,
    ) -> "ExcelExporter":
        """Write a header row and shaded data rows.

        Args:
            headers: Column header strings.
            rows: Data rows, each the same length as ``headers``.
            numeric_cols: Zero-based indices written right-aligned with the
                          number format.  Detected from the first row when
                          omitted.
        """
        ws = self._worksheet

        if numeric_cols is None:
            numeric_cols = set()
            if rows:
                numeric_cols = {
                    ci for ci, val in enumerate(rows[0])
                    if isinstance(val, (int, float)) and not isinstance(val, bool)
                }

        ws.set_row(self._current_row, 20)
        for ci, header in enumerate(headers):
            ws.write(self._current_row, ci, header, self._formats["col_header"])
            self._track_width(ci, header)
        self._current_row += 1

        for ri, data_row in enumerate(rows):
            alt = ri % 2 == 1
            for ci, value in enumerate(data_row):
                if ci in numeric_cols:
                    fmt = self._formats["data_number_alt" if alt else "data_number"]
                else:
                    fmt = self._formats["data_alt" if alt else "data_plain"]
                if value is None:
                    ws.write_blank(self._current_row, ci, None, fmt)
                else:
                    ws.write(self._current_row, ci, value, fmt)
                self._track_width(ci, value)
            self._current_row += 1

        self._current_row += 1
        return self

    def finalize(self) -> bytes:
        """Apply column widths, close the workbook and return the ``.xlsx`` bytes.

        The exporter must not be reused afterwards.
        """
        for col, width in self._col_widths.items():
            self._worksheet.set_column(col, col, max(width + 2, _MIN_COL_WIDTH))

        self._workbook.close()
        self._buffer.seek(0)
        return self._buffer.read()
