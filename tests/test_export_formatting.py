import csv
import json
import pytest

from rmatrack.charts import create_pie_chart, status_pie_chart
from rmatrack.export_utils import code_summary, export_pdf, format_grid_export, results_to_json, write_csv
from rmatrack.models import (
    ActivityCode, Center, HalfDay, PlannedEntry, ReconciliationResult, ReconciliationStats,
)
from rmatrack.reconciliation import compute_stats, reconcile


def _result():
    planned = [
        PlannedEntry(2, HalfDay.AM, ActivityCode.ONSITE),
        PlannedEntry(2, HalfDay.PM, ActivityCode.ILLNESS),
        PlannedEntry(3, HalfDay.AM, ActivityCode.ONSITE),
    ]
    actual = [(2, "AM", "X"), (2, "PM", "X"), (4, "AM", "O")]
    entries = reconcile(planned, actual)
    return ReconciliationResult(7, "Alice", 2026, 2, Center.GENEVA, entries, compute_stats(entries))


def test_grid_export_layout():
    text = format_grid_export(2026, 2, [
        PlannedEntry(1, HalfDay.AM, ActivityCode.ONSITE),
        PlannedEntry(28, HalfDay.PM, ActivityCode.HOLIDAY),
    ])
    header, am, pm = text.split("\n")
    assert header.split("\t") == ["Jour"] + [str(d) for d in range(1, 29)]
    assert am.split("\t")[:2] == ["AM", "X"]
    assert pm.split("\t")[-1] == "H"
    assert len(pm.split("\t")) == 29


def test_code_summary():
    text = code_summary([
        PlannedEntry(1, HalfDay.AM, ActivityCode.ONSITE),
        PlannedEntry(1, HalfDay.PM, ActivityCode.ONSITE),
        PlannedEntry(2, HalfDay.AM, ActivityCode.ILLNESS),
    ])
    assert text == "A\t1\nX\t2"


def test_results_to_json():
    data = json.loads(results_to_json([_result()]))
    assert data[0]["userName"] == "Alice"
    assert data[0]["center"] == "GENEVA"
    assert data[0]["stats"]["total"] == 4
    assert [e["status"] for e in data[0]["entries"]] == [
        "MATCH", "PRESENT_WHEN_PLANNED_ABSENT", "ABSENT_WHEN_PLANNED_PRESENT", "ACTUAL_ONLY",
    ]


def test_write_csv(tmp_path):
    fn = tmp_path / "abgleich.csv"
    assert write_csv([_result()], str(fn)) == 4
    with open(fn, encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 4
    assert rows[3]["planned_code"] == ""
    assert rows[3]["actual_code"] == "O"
    assert rows[3]["status"] == "ACTUAL_ONLY"


def test_pie_charts(tmp_path):
    fn = tmp_path / "status.png"
    status_pie_chart(ReconciliationStats(total=3, matches=2, actual_only=1), str(fn), subtitle="Alice")
    assert fn.exists() and fn.stat().st_size > 0
    empty = tmp_path / "empty.png"
    create_pie_chart([0, 0], ["a", "b"], str(empty))
    assert empty.exists()


def test_export_pdf(tmp_path):
    pdf_file = tmp_path / "bericht.pdf"
    export_pdf([_result()], str(pdf_file))
    assert pdf_file.exists() and pdf_file.stat().st_size > 0
    try:
        from pypdf import PdfReader
    except ImportError:
        pytest.skip("pypdf not installed for PDF content check")
    reader = PdfReader(str(pdf_file))
    text = "".join(page.extract_text() or "" for page in reader.pages)
    assert "RMA Abgleich" in text
    assert "ACTUAL_ONLY" in text
