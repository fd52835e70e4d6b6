from io import BytesIO

from openpyxl import load_workbook

from varianceqa.core.state import VarianceItem
from varianceqa.exporters.excel_builder import HEADERS, build_xlsx_from_commentary


def _sample_items():
    return [
        VarianceItem.from_raw(
            {
                "kpi": "Gross Margin Rate",
                "drivers": ["Volume of Hours 15% below forecast", "Software licensing costs"],
                "comparison": "budget",
                "impact": "decreased by 2%",
            }
        ),
        VarianceItem.from_raw({"kpi": "EBITDA", "drivers": "lower gross margin", "comparison": "budget"}),
    ]


def test_excel_export_lists_variance_items():
    xlsx_bytes = build_xlsx_from_commentary(_sample_items())
    wb = load_workbook(BytesIO(xlsx_bytes))
    ws = wb["Variance Analysis"]

    assert [c.value for c in ws[1]] == HEADERS
    assert ws["B2"].value == "Gross Margin Rate"
    assert ws["C2"].value == "Volume of Hours 15% below forecast\nSoftware licensing costs"
    assert ws["B3"].value == "EBITDA"
    assert ws["C3"].value == "lower gross margin"
    assert ws["E3"].value in (None, "")
    assert "Transcript" not in wb.sheetnames


def test_excel_export_includes_transcript_sheet_when_given():
    xlsx_bytes = build_xlsx_from_commentary(_sample_items(), transcript="\nLine one\nLine two\n")
    wb = load_workbook(BytesIO(xlsx_bytes))
    ws = wb["Transcript"]
    assert [row[0].value for row in ws.iter_rows()] == ["Transcript", "Line one", "Line two"]


def test_variance_item_from_raw_tolerates_unexpected_shapes():
    assert VarianceItem.from_raw("Revenue").kpi == "Revenue"
    item = VarianceItem.from_raw({"kpi": "Revenue", "drivers": None, "extra": 1})
    assert item.drivers == []
    assert item.comparison == ""
