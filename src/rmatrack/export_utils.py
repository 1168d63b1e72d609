import csv
import json
import os
import tempfile
from collections import Counter
from typing import Iterable, List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from rmatrack.charts import status_pie_chart
from rmatrack.holidays import days_in_month
from rmatrack.models import HalfDay, PlannedEntry, ReconciliationResult, code_tag
from rmatrack.reconciliation import discrepancies
from rmatrack.statistics import summarize_results

CSV_FIELDS = ["user_id", "user_name", "center", "year", "month", "day", "half_day",
              "planned_code", "actual_code", "status"]


def results_to_json(results: List[ReconciliationResult], indent: Optional[int] = None) -> str:
    return json.dumps([r.to_dict() for r in results], ensure_ascii=False, indent=indent)


def format_grid_export(year: int, month: int, entries: Iterable[PlannedEntry]) -> str:
    """
    Raster als Tab-getrennter Text (Kopfzeile mit Tagen, dann AM- und PM-Zeile),
    zum Einfügen in das offizielle RMA-Formular.
    """
    grid = {(e.day, HalfDay(e.half_day)): code_tag(e.code) for e in entries}
    n = days_in_month(year, month)
    header = ["Jour"] + [str(d) for d in range(1, n + 1)]
    rows = [header]
    for hd in HalfDay:
        rows.append([hd.value] + [grid.get((d, hd), "") for d in range(1, n + 1)])
    return "\n".join("\t".join(r) for r in rows)


def code_summary(entries: Iterable[PlannedEntry]) -> str:
    counts = Counter(code_tag(e.code) for e in entries)
    return "\n".join(f"{code}\t{count}" for code, count in sorted(counts.items()))


def write_csv(results: List[ReconciliationResult], filename: str) -> int:
    """Eine Zeile pro Halbtag; gibt die Anzahl geschriebener Zeilen zurück."""
    written = 0
    with open(filename, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for r in results:
            for e in r.entries:
                row = e.to_dict()
                writer.writerow({
                    "user_id": r.user_id,
                    "user_name": r.user_name,
                    "center": r.center.value,
                    "year": r.year,
                    "month": r.month,
                    "day": row["day"],
                    "half_day": row["halfDay"],
                    "planned_code": row["plannedCode"] or "",
                    "actual_code": row["actualCode"] or "",
                    "status": row["status"],
                })
                written += 1
    return written


def export_pdf(results: List[ReconciliationResult], filename: str, chart_file: str = None) -> str:
    """PDF-Bericht: Summen, Status-Diagramm und eine Zeile pro Abweichung."""
    summary = summarize_results(results)
    stats = summary['stats']
    own_chart = chart_file is None
    if own_chart:
        fd, chart_file = tempfile.mkstemp(suffix=".png")
        os.close(fd)
    try:
        status_pie_chart(stats, chart_file)

        c = canvas.Canvas(filename, pagesize=A4)
        w, h = A4
        y = h - 50
        c.setFont('Helvetica-Bold', 14)
        c.drawString(50, y, 'RMA Abgleich')
        y -= 30
        c.setFont('Helvetica', 10)
        periods = sorted({(r.year, r.month) for r in results})
        if periods:
            c.drawString(50, y, "Periode: " + ", ".join(f"{m:02d}.{yr}" for yr, m in periods))
            y -= 20
        c.drawString(50, y, f"Teilnehmer: {summary['participants']}")
        y -= 20
        for label, value in stats.to_dict().items():
            c.drawString(50, y, f"{label}: {value}")
            y -= 15
        y -= 10
        size = 180
        c.drawImage(chart_file, (w - size) / 2, y - size, width=size, height=size)
        y -= size + 30

        c.setFont('Helvetica-Bold', 12)
        c.drawString(50, y, "Abweichungen")
        y -= 20
        c.setFont('Helvetica', 10)
        for r in results:
            for e in discrepancies(r.entries):
                if y < 60:
                    c.showPage()
                    y = h - 50
                    c.setFont('Helvetica', 10)
                d = e.to_dict()
                c.drawString(60, y, f"{r.user_name} | {d['day']:>2} {d['halfDay']} | "
                                    f"{d['plannedCode'] or '-'} -> {d['actualCode'] or '-'} | {d['status']}")
                y -= 15
        c.save()
    finally:
        if own_chart and os.path.exists(chart_file):
            os.remove(chart_file)
    return filename
