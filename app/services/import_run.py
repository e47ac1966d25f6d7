"""Result import run: validation, operator selection, upload and CGPA refresh."""

import logging
import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from sqlalchemy.orm import Session

from app.core.catalog import GradeCatalog, get_catalog
from app.core.config import settings
from app.core.exceptions import ImportStateError, NotFoundError, UploadError, ValidationError
from app.models.upload import ResultUpload, UploadStatus
from app.schemas.result import (
    ErrorReportRow,
    ImportRowResponse,
    ImportRunResponse,
    ImportRunState,
    ImportStats,
    RawRow,
    RowDisposition,
    RowUploadState,
    RunOutcome,
    UploadOutcomeResponse,
    ValidationVerdict,
    VerdictStatus,
)
from app.services.aggregation import AggregationService
from app.services.duplicate_index import DuplicateIndex
from app.services.error_report import build_error_report
from app.services.ingestion import BatchIngestor, IngestionOutcome
from app.services.student_resolver import StudentResolver
from app.services.validation import validate_row

logger = logging.getLogger(__name__)

_OUTCOME_TO_UPLOAD_STATUS = {
    RunOutcome.SUCCESS: UploadStatus.SUCCESS,
    RunOutcome.PARTIAL: UploadStatus.PARTIAL,
    RunOutcome.FAILED: UploadStatus.FAILED,
}


@dataclass
class ImportEntry:
    """A raw row paired with its verdict."""

    row: RawRow
    verdict: ValidationVerdict
    upload_state: RowUploadState | None = None

    @property
    def row_number(self) -> int:
        return self.row.row_number

    @property
    def eligible(self) -> bool:
        """Only non-error, non-duplicate rows may ever be selected."""
        return self.verdict.status != VerdictStatus.ERROR and not self.verdict.is_duplicate

    @property
    def disposition(self) -> RowDisposition:
        if self.verdict.status == VerdictStatus.ERROR:
            return RowDisposition.REJECTED
        if self.verdict.is_duplicate:
            return RowDisposition.DUPLICATE
        if self.verdict.status == VerdictStatus.WARNING:
            return RowDisposition.WARNED
        return RowDisposition.ACCEPTED


class RowSelection:
    """Operator selection over eligible rows. Pure data, no I/O."""

    def __init__(self, entries: Sequence[ImportEntry]):
        self._entries = {entry.row_number: entry for entry in entries}
        self._eligible = [entry.row_number for entry in entries if entry.eligible]
        self._selected: set[int] = set(self._eligible)

    def __contains__(self, row_number: int) -> bool:
        return row_number in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    @property
    def eligible_count(self) -> int:
        return len(self._eligible)

    def check(self, row_numbers: Iterable[int]) -> None:
        """Raise if any row is unknown or ineligible. Touches nothing."""
        for row_number in row_numbers:
            entry = self._entries.get(row_number)
            if entry is None:
                raise NotFoundError("Import row", str(row_number))
            if not entry.eligible:
                raise ValidationError(
                    f"Row {row_number} cannot be selected",
                    details={"row": row_number, "disposition": entry.disposition.value},
                )

    def toggle(self, row_number: int) -> bool:
        """Flip one row; returns whether it is now selected."""
        self.check([row_number])
        if row_number in self._selected:
            self._selected.discard(row_number)
            return False
        self._selected.add(row_number)
        return True

    def toggle_all(self) -> None:
        """Select every eligible row, or clear the selection if all are already selected."""
        if len(self._selected) == len(self._eligible):
            self._selected.clear()
        else:
            self._selected = set(self._eligible)

    def selected_entries(self) -> list[ImportEntry]:
        """Selected rows in file order."""
        return [self._entries[n] for n in self._eligible if n in self._selected]


class ImportRun:
    """
    One operator import, driven through
    idle -> validating -> reviewing -> uploading -> done.
    """

    def __init__(
        self,
        file_name: str,
        catalog: GradeCatalog | None = None,
        run_id: str | None = None,
    ):
        self.run_id = run_id or uuid4().hex
        self.file_name = file_name
        self.catalog = catalog or get_catalog()
        self.state = ImportRunState.IDLE
        self.entries: list[ImportEntry] = []
        self.selection = RowSelection([])
        self.progress = 0
        self.outcome: RunOutcome | None = None
        self.ingestion: IngestionOutcome | None = None
        self.upload_id: int | None = None
        self.recomputed_students: list[int] = []
        self.recompute_error: str | None = None
        self.finished_at: datetime | None = None

    # ==========================================
    # Validation
    # ==========================================

    def validate(self, db: Session, rows: Sequence[RawRow]) -> None:
        """Classify every row. Two lookups in total, regardless of row count."""
        self._require(ImportRunState.IDLE, "validate")
        self.state = ImportRunState.VALIDATING
        logger.info(f"[RESULT IMPORT] Validating {len(rows)} rows - run={self.run_id}, file={self.file_name}")

        try:
            students = StudentResolver(db).resolve(row.matric_number for row in rows)
            duplicates = DuplicateIndex.build(db, (s.id for s in students.values()))
        except Exception:
            self.state = ImportRunState.IDLE
            raise

        entries = []
        for row in rows:
            student = students.get(row.matric_number.strip())
            is_duplicate = student is not None and duplicates.contains(
                student.id, row.course_code, row.session, row.semester
            )
            entries.append(ImportEntry(row=row, verdict=validate_row(row, self.catalog, student, is_duplicate)))

        self.entries = entries
        self.selection = RowSelection(entries)
        self.state = ImportRunState.REVIEWING

        stats = self.stats()
        logger.info(
            f"[RESULT IMPORT] Validation complete - valid={stats.valid}, warnings={stats.warnings}, "
            f"errors={stats.errors}, duplicates={stats.duplicates}, selected={stats.selected}"
        )

    # ==========================================
    # Selection
    # ==========================================

    def toggle_row(self, row_number: int) -> bool:
        self._require(ImportRunState.REVIEWING, "change the selection")
        return self.selection.toggle(row_number)

    def toggle_all(self) -> None:
        self._require(ImportRunState.REVIEWING, "change the selection")
        self.selection.toggle_all()

    def change_selection(self, row_numbers: Sequence[int], toggle_all: bool = False) -> None:
        """
        Apply a batch of selection changes, all or nothing.

        Every row number is checked before anything changes, so a rejected
        request leaves the selection as it was.
        """
        self._require(ImportRunState.REVIEWING, "change the selection")
        self.selection.check(row_numbers)
        if toggle_all:
            self.selection.toggle_all()
        for row_number in row_numbers:
            self.selection.toggle(row_number)

    @property
    def can_upload(self) -> bool:
        return self.state == ImportRunState.REVIEWING and len(self.selection) > 0

    # ==========================================
    # Upload
    # ==========================================

    def upload(
        self,
        db: Session,
        chunk_size: int | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> UploadOutcomeResponse:
        """Commit the selected rows, then recompute profiles of students that received rows."""
        self._require(ImportRunState.REVIEWING, "upload")
        selected = self.selection.selected_entries()
        if not selected:
            raise ValidationError("No valid rows selected for upload")

        self.state = ImportRunState.UPLOADING
        self.progress = 0

        upload = ResultUpload(
            file_name=self.file_name,
            status=UploadStatus.PROCESSING,
            total_rows=len(self.entries),
            selected_rows=len(selected),
            processing_started_at=datetime.now(timezone.utc),
        )
        db.add(upload)
        db.commit()
        self.upload_id = upload.id

        ingestor = BatchIngestor(db, chunk_size=chunk_size)
        try:
            outcome = ingestor.upload(
                [(entry.row, entry.verdict) for entry in selected],
                upload_id=upload.id,
                on_progress=self._set_progress,
                should_cancel=should_cancel,
            )
        except Exception as e:
            self.outcome = RunOutcome.FAILED
            logger.exception(f"[RESULT IMPORT] Upload aborted - run={self.run_id}")
            try:
                db.rollback()
                upload.status = UploadStatus.FAILED
                upload.error_message = str(e)
                upload.processing_completed_at = datetime.now(timezone.utc)
                db.commit()
            finally:
                self._finish()
            raise UploadError(f"Failed to upload results: {str(e)}")
        self.ingestion = outcome

        committed = set(outcome.committed_row_numbers)
        for entry in self.entries:
            if entry.row_number in committed:
                entry.upload_state = RowUploadState.COMMITTED
            elif entry.row_number in self.selection:
                entry.upload_state = RowUploadState.UNATTEMPTED
            else:
                entry.upload_state = RowUploadState.NOT_SELECTED

        if outcome.completed:
            self.outcome = RunOutcome.SUCCESS
        elif outcome.succeeded > 0:
            self.outcome = RunOutcome.PARTIAL
        else:
            self.outcome = RunOutcome.FAILED

        if outcome.committed_student_ids:
            try:
                profiles = AggregationService(db).recompute_many(outcome.committed_student_ids)
                self.recomputed_students = [p.student_id for p in profiles]
            except Exception as e:
                # Committed chunks stay; profiles can be rebuilt via the recompute endpoint
                db.rollback()
                self.recompute_error = str(e.orig) if getattr(e, "orig", None) else str(e)
                logger.exception(f"[CGPA] Recompute after upload failed - run={self.run_id}")

        messages = []
        if outcome.error_message:
            messages.append(outcome.error_message)
        elif outcome.cancelled:
            messages.append("Cancelled by operator")
        if self.recompute_error:
            messages.append(f"CGPA recompute failed: {self.recompute_error}")

        try:
            upload.status = _OUTCOME_TO_UPLOAD_STATUS[self.outcome]
            upload.successful_rows = outcome.succeeded
            upload.unattempted_rows = outcome.skipped
            upload.failed_chunk = outcome.failed_chunk
            upload.error_message = "; ".join(messages) or None
            upload.processing_completed_at = datetime.now(timezone.utc)
            db.commit()
        finally:
            self._finish()

        logger.info(
            f"[RESULT IMPORT] Upload {self.outcome.value} - run={self.run_id}, upload_id={upload.id}, "
            f"{outcome.succeeded} of {len(selected)} committed"
        )
        return self.upload_summary()

    def _set_progress(self, progress: int) -> None:
        self.progress = progress

    def _finish(self) -> None:
        self.state = ImportRunState.DONE
        self.finished_at = datetime.now(timezone.utc)

    # ==========================================
    # Reporting
    # ==========================================

    def stats(self) -> ImportStats:
        return ImportStats(
            total=len(self.entries),
            valid=sum(1 for e in self.entries if e.verdict.status == VerdictStatus.VALID),
            warnings=sum(1 for e in self.entries if e.verdict.status == VerdictStatus.WARNING),
            errors=sum(1 for e in self.entries if e.verdict.status == VerdictStatus.ERROR),
            duplicates=sum(1 for e in self.entries if e.verdict.is_duplicate),
            selected=len(self.selection),
        )

    def dispositions(self) -> list[ImportRowResponse]:
        return [
            ImportRowResponse(
                row=entry.row,
                verdict=entry.verdict,
                disposition=entry.disposition,
                selectable=entry.eligible,
                selected=entry.row_number in self.selection,
                upload_state=entry.upload_state,
            )
            for entry in self.entries
        ]

    def error_report(self) -> list[ErrorReportRow]:
        return build_error_report((e.row, e.verdict) for e in self.entries)

    def upload_summary(self) -> UploadOutcomeResponse | None:
        if self.outcome is None or self.ingestion is None:
            return None
        outcome = self.ingestion
        selected = outcome.total_rows
        if self.outcome == RunOutcome.SUCCESS:
            message = f"Successfully uploaded {outcome.succeeded} results."
        elif outcome.cancelled:
            message = f"Upload cancelled: {outcome.succeeded} of {selected} succeeded."
        else:
            message = (
                f"Upload stopped at chunk {outcome.failed_chunk}: {outcome.succeeded} of {selected} succeeded. "
                f"Re-run the import to upload the remaining {outcome.skipped} rows."
            )
        if self.recompute_error:
            message += " CGPA recompute failed; recompute the affected students' profiles."
        return UploadOutcomeResponse(
            upload_id=self.upload_id,
            outcome=self.outcome,
            selected_rows=selected,
            successful_rows=outcome.succeeded,
            skipped_rows=outcome.skipped,
            failed_chunk=outcome.failed_chunk,
            error_message=outcome.error_message,
            recomputed_students=self.recomputed_students,
            recompute_error=self.recompute_error,
            message=message,
        )

    def to_response(self, include_rows: bool = True) -> ImportRunResponse:
        return ImportRunResponse(
            run_id=self.run_id,
            file_name=self.file_name,
            state=self.state,
            progress=self.progress,
            can_upload=self.can_upload,
            stats=self.stats(),
            rows=self.dispositions() if include_rows else [],
            upload=self.upload_summary(),
        )

    def _require(self, state: ImportRunState, action: str) -> None:
        if self.state != state:
            raise ImportStateError(
                f"Cannot {action} while the import is {self.state.value}",
                current_state=self.state.value,
            )


class ImportRunRegistry:
    """
    In-memory store of import runs. Allows one upload in flight at a time.

    Finished runs are dropped once they are older than finished_run_ttl;
    runs that are still being reviewed or uploaded are never evicted.
    """

    def __init__(self, finished_run_ttl: timedelta | None = None):
        self._runs: dict[str, ImportRun] = {}
        self._lock = threading.Lock()
        self._upload_lock = threading.Lock()
        if finished_run_ttl is None:
            finished_run_ttl = timedelta(minutes=settings.FINISHED_IMPORT_RUN_TTL_MINUTES)
        self.finished_run_ttl = finished_run_ttl

    def add(self, run: ImportRun) -> ImportRun:
        with self._lock:
            self._evict_finished()
            self._runs[run.run_id] = run
        return run

    def _evict_finished(self) -> None:
        cutoff = datetime.now(timezone.utc) - self.finished_run_ttl
        expired = [
            run_id
            for run_id, run in self._runs.items()
            if run.state == ImportRunState.DONE and run.finished_at is not None and run.finished_at <= cutoff
        ]
        for run_id in expired:
            del self._runs[run_id]
        if expired:
            logger.info(f"[RESULT IMPORT] Evicted {len(expired)} finished import runs")

    def __len__(self) -> int:
        return len(self._runs)

    def get(self, run_id: str) -> ImportRun:
        with self._lock:
            run = self._runs.get(run_id)
        if run is None:
            raise NotFoundError("Import run", run_id)
        return run

    def discard(self, run_id: str) -> None:
        run = self.get(run_id)
        if run.state == ImportRunState.UPLOADING:
            raise ImportStateError("Cannot discard an import while it is uploading", current_state=run.state.value)
        with self._lock:
            self._runs.pop(run_id, None)

    @contextmanager
    def exclusive_upload(self) -> Iterator[None]:
        if not self._upload_lock.acquire(blocking=False):
            raise ImportStateError("Another import is already uploading")
        try:
            yield
        finally:
            self._upload_lock.release()
