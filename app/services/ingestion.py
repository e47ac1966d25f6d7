"""Chunked insertion of accepted result rows."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.result import ResultRecord
from app.schemas.result import RawRow, ValidationVerdict
from app.services.validation import parse_credit_units, parse_grade_points

logger = logging.getLogger(__name__)


@dataclass
class IngestionOutcome:
    """What the ingestor committed before it stopped."""

    total_rows: int
    succeeded: int = 0
    failed_chunk: int | None = None
    error_message: str | None = None
    cancelled: bool = False
    committed_row_numbers: list[int] = field(default_factory=list)
    unattempted_row_numbers: list[int] = field(default_factory=list)
    committed_student_ids: set[int] = field(default_factory=set)

    @property
    def completed(self) -> bool:
        return self.failed_chunk is None and not self.cancelled

    @property
    def skipped(self) -> int:
        return self.total_rows - self.succeeded


def build_result_values(row: RawRow, verdict: ValidationVerdict, upload_id: int | None = None) -> dict[str, Any]:
    """Normalized column values for one accepted row."""
    if verdict.student_id is None:
        raise ValueError(f"Row {row.row_number} has no resolved student")
    return {
        "student_id": verdict.student_id,
        "course_code": row.course_code.strip().upper(),
        "course_title": row.course_title.strip(),
        "credit_units": parse_credit_units(row.credit_units),
        "grade": row.grade.strip().upper(),
        "grade_points": parse_grade_points(row.grade_points) or Decimal("0"),
        "session": row.session.strip(),
        "semester": row.semester.strip().lower(),
        "level": row.level.strip().upper(),
        "upload_id": upload_id,
    }


class BatchIngestor:
    """
    Writes rows in fixed-size chunks, one INSERT and commit per chunk.

    Chunks run strictly in order. When chunk k fails, chunks 1..k-1 stay
    committed and chunks k+1..n are never attempted. A chunk is all-or-nothing.
    """

    def __init__(self, db: Session, chunk_size: int | None = None):
        self.db = db
        self.chunk_size = chunk_size or settings.RESULT_CHUNK_SIZE

    def upload(
        self,
        rows: Sequence[tuple[RawRow, ValidationVerdict]],
        upload_id: int | None = None,
        on_progress: Callable[[int], None] | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> IngestionOutcome:
        """Commit the given rows chunk by chunk and report how far it got."""
        outcome = IngestionOutcome(total_rows=len(rows))
        total_chunks = (len(rows) + self.chunk_size - 1) // self.chunk_size
        logger.info(
            f"[RESULT UPLOAD] Starting - rows={len(rows)}, chunk_size={self.chunk_size}, chunks={total_chunks}"
        )

        for chunk_number, start in enumerate(range(0, len(rows), self.chunk_size), start=1):
            chunk = rows[start:start + self.chunk_size]

            if should_cancel is not None and should_cancel():
                logger.warning(f"[RESULT UPLOAD] Cancelled before chunk {chunk_number}/{total_chunks}")
                outcome.cancelled = True
                outcome.unattempted_row_numbers = [r.row_number for r, _ in rows[start:]]
                break

            values = [build_result_values(row, verdict, upload_id) for row, verdict in chunk]
            try:
                self._write_chunk(values)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"[RESULT UPLOAD] Chunk {chunk_number}/{total_chunks} FAILED - {e}")
                outcome.failed_chunk = chunk_number
                outcome.error_message = str(e.orig) if getattr(e, "orig", None) else str(e)
                outcome.unattempted_row_numbers = [r.row_number for r, _ in rows[start:]]
                break

            outcome.succeeded += len(chunk)
            outcome.committed_row_numbers.extend(r.row_number for r, _ in chunk)
            outcome.committed_student_ids.update(v["student_id"] for v in values)

            progress = round(outcome.succeeded / len(rows) * 100)
            logger.debug(f"[RESULT UPLOAD] Chunk {chunk_number}/{total_chunks} committed - progress={progress}%")
            if on_progress is not None:
                on_progress(progress)

        logger.info(
            f"[RESULT UPLOAD] Finished - succeeded={outcome.succeeded}, skipped={outcome.skipped}, "
            f"failed_chunk={outcome.failed_chunk}"
        )
        return outcome

    def _write_chunk(self, values: list[dict[str, Any]]) -> None:
        """Insert one chunk and commit it."""
        self.db.execute(insert(ResultRecord), values)
        self.db.commit()
