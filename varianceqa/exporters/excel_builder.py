# varianceqa/exporters/excel_builder.py

from __future__ import annotations

from io import BytesIO
from typing import Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

from varianceqa.core.state import VarianceItem

HEADERS = ["#", "KPI", "Drivers", "Comparison", "Impact"]


def _autosize_columns(ws) -> None:
    for col in ws.columns:
        max_length = 0
        column = col[0].column_letter
        for cell in col:
            for line in str(cell.value or "").splitlines() or [""]:
                max_length = max(max_length, len(line))
        ws.column_dimensions[column].width = min(max_length + 2, 60)


def build_xlsx_from_commentary(
    items: Iterable[VarianceItem],
    *,
    transcript: Optional[str] = None,
    title: str = "Variance Analysis",
) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]

    ws.append(HEADERS)
    header_fill = PatternFill(start_color="0F766E", end_color="0F766E", fill_type="solid")
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = header_fill

    for idx, item in enumerate(items, start=1):
        ws.append([idx, item.kpi, "\n".join(item.drivers), item.comparison, item.impact])
        for cell in ws[ws.max_row]:
            cell.alignment = Alignment(wrap_text=True, vertical="top")
    ws.freeze_panes = "A2"
    _autosize_columns(ws)

    if transcript and transcript.strip():
        src = wb.create_sheet("Transcript")
        src.append(["Transcript"])
        src["A1"].font = Font(bold=True)
        for line in transcript.strip().splitlines():
            src.append([line])
        src.column_dimensions["A"].width = 120

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()
