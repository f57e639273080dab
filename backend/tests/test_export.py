"""CSV/PDF export helpers and the export row shapers."""
from __future__ import annotations

import csv
import io
from datetime import date, datetime

from participation.export import (
    export_filename,
    format_export_date,
    leave_export_rows,
    rows_to_csv,
    rows_to_pdf,
)
from participation.models import Leave


def test_export_filename_and_dates():
    assert export_filename("students_report", "csv", on=date(2024, 3, 4)) == "students_report_2024-03-04.csv"
    assert format_export_date(date(2024, 3, 4)) == "Mar 04, 2024"
    assert format_export_date(datetime(2024, 12, 25, 18, 0)) == "Dec 25, 2024"
    assert format_export_date(None) == ""


def test_rows_to_csv_keeps_column_order_and_blanks_none():
    rows = [
        {"Student": "Bilal, A.", "Grade": "A", "Remarks": None},
        {"Student": "Maryam", "Grade": "B", "Remarks": "Tajweed"},
    ]
    text = rows_to_csv(rows)
    assert text.splitlines()[0] == "Student,Grade,Remarks"
    parsed = list(csv.DictReader(io.StringIO(text)))
    assert parsed[0] == {"Student": "Bilal, A.", "Grade": "A", "Remarks": ""}
    assert parsed[1]["Remarks"] == "Tajweed"


def test_rows_to_csv_empty():
    assert rows_to_csv([]) == ""


def test_rows_to_pdf_produces_a_pdf_document():
    pdf = rows_to_pdf([{"Class": "Hifz 1", "Average": "3.00"}], title="Classes Report", generated_on=date(2024, 3, 4))
    assert pdf.startswith(b"%PDF")
    empty = rows_to_pdf([], title="Leaves Report", generated_on=date(2024, 3, 4))
    assert empty.startswith(b"%PDF")


def test_leave_rows_use_placeholders():
    rows = leave_export_rows(
        [Leave(student_id="missing", date=date(2024, 3, 4), id="lv-1")],
        students={},
        reported_on={"lv-1": datetime(2024, 3, 3, 10, 0)},
    )
    assert rows == [{
        "Date": "Mar 04, 2024",
        "Student": "Unknown",
        "Class": "Unknown",
        "Reason": "Not specified",
        "Reported On": "Mar 03, 2024",
    }]
