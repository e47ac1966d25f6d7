"""Reading result import files and producing the import template."""

import csv
import logging
from datetime import date, datetime
from io import BytesIO, StringIO
from typing import Any

from openpyxl import load_workbook

from app.core.catalog import GradeCatalog, get_catalog
from app.core.exceptions import UploadError
from app.schemas.result import RESULT_FILE_COLUMNS, RawRow

logger = logging.getLogger(__name__)


def parse_result_file(file_content: bytes, file_name: str) -> list[RawRow]:
    """Parse a CSV or XLSX upload into raw rows, by file extension."""
    name = file_name.lower()
    if name.endswith(".csv"):
        table = _read_csv(file_content)
    elif name.endswith(".xlsx"):
        table = _read_xlsx(file_content)
    else:
        raise UploadError("Only .csv and .xlsx files are allowed", details={"file_name": file_name})
    return _rows_from_table(table)


def _read_csv(file_content: bytes) -> list[list[Any]]:
    try:
        text = file_content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise UploadError("CSV file must be UTF-8 encoded")
    return list(csv.reader(StringIO(text)))


def _read_xlsx(file_content: bytes) -> list[list[Any]]:
    try:
        workbook = load_workbook(filename=BytesIO(file_content), read_only=True, data_only=True)
    except Exception as e:
        raise UploadError(f"Failed to parse Excel file: {str(e)}")

    sheet = workbook.active
    if sheet is None:
        raise UploadError("Excel file has no active sheet")
    rows = [list(row) for row in sheet.iter_rows(values_only=True)]
    workbook.close()
    return rows


def _cell_text(value: Any) -> str:
    """Render a cell as the text an operator would have typed."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def _rows_from_table(table: list[list[Any]]) -> list[RawRow]:
    """Map positional columns to raw rows; the first row is the header."""
    logger.debug(f"[RESULT FILE] Total raw rows (including header): {len(table)}")
    if len(table) < 2:
        raise UploadError("File must have a header row and at least one data row")

    header = [_cell_text(h) for h in table[0]]
    if len(header) < len(RESULT_FILE_COLUMNS):
        raise UploadError(
            f"File must have {len(RESULT_FILE_COLUMNS)} columns: {', '.join(RESULT_FILE_COLUMNS)}",
            details={"columns_found": len(header)},
        )

    rows: list[RawRow] = []
    skipped_empty_rows = 0
    for row_number, cells in enumerate(table[1:], start=2):
        values = [_cell_text(c) for c in cells[:len(RESULT_FILE_COLUMNS)]]
        if not any(values):
            skipped_empty_rows += 1
            continue
        values += [""] * (len(RESULT_FILE_COLUMNS) - len(values))
        rows.append(RawRow(row_number=row_number, **dict(zip(RESULT_FILE_COLUMNS, values))))

    if not rows:
        raise UploadError("File must have a header row and at least one data row")

    logger.info(f"[RESULT FILE] Summary: {len(rows)} data rows extracted, {skipped_empty_rows} empty rows skipped")
    return rows


def generate_template(catalog: GradeCatalog | None = None) -> str:
    """CSV template with the fixed header and two sample rows."""
    catalog = catalog or get_catalog()
    samples = [
        ["ND22/CS/001", "CSC 101", "Introduction to Computer Science", "3", "A", "2024/2025", "first", "ND1"],
        ["ND22/CS/002", "MTH 101", "General Mathematics I", "3", "B", "2024/2025", "first", "ND1"],
    ]

    output = StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(RESULT_FILE_COLUMNS)
    for matric, code, title, units, grade, session, semester, level in samples:
        points = catalog.grade_point_for(grade)
        writer.writerow([matric, code, title, units, grade, f"{points:.2f}", session, semester, level])
    return output.getvalue()
