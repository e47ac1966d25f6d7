"""Downloadable log of rejected import rows."""

import csv
from collections.abc import Iterable
from io import StringIO

from app.schemas.result import ErrorReportRow, RawRow, ValidationVerdict, VerdictStatus

ERROR_REPORT_HEADERS = ["Row", "Matric Number", "Course Code", "Errors"]


def build_error_report(entries: Iterable[tuple[RawRow, ValidationVerdict]]) -> list[ErrorReportRow]:
    """Flatten error-status rows; warnings and valid rows are left out."""
    return [
        ErrorReportRow(
            row_number=row.row_number,
            matric_number=row.matric_number,
            course_code=row.course_code,
            errors="; ".join(verdict.errors),
        )
        for row, verdict in entries
        if verdict.status == VerdictStatus.ERROR
    ]


def render_error_report_csv(report: Iterable[ErrorReportRow]) -> str:
    output = StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(ERROR_REPORT_HEADERS)
    for item in report:
        writer.writerow([item.row_number, item.matric_number, item.course_code, item.errors])
    return output.getvalue()
