"""Result import and academic profile schemas."""

import enum
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from pydantic import Field, computed_field

from app.schemas.common import BaseSchema


# ==========================================
# Constants
# ==========================================

# Fixed column order of an import file
RESULT_FILE_COLUMNS = [
    "matric_number",
    "course_code",
    "course_title",
    "credit_units",
    "grade",
    "grade_points",
    "session",
    "semester",
    "level",
]


class VerdictStatus(str, enum.Enum):
    """Outcome of validating a single row."""

    VALID = "valid"
    WARNING = "warning"
    ERROR = "error"


class RowDisposition(str, enum.Enum):
    """What the operator sees for a row after validation."""

    ACCEPTED = "accepted"
    WARNED = "warned"
    REJECTED = "rejected"
    DUPLICATE = "duplicate"


class RowUploadState(str, enum.Enum):
    """What happened to a row during upload."""

    COMMITTED = "committed"
    UNATTEMPTED = "unattempted"
    NOT_SELECTED = "not_selected"


class ImportRunState(str, enum.Enum):
    """Lifecycle of an import run."""

    IDLE = "idle"
    VALIDATING = "validating"
    REVIEWING = "reviewing"
    UPLOADING = "uploading"
    DONE = "done"


class RunOutcome(str, enum.Enum):
    """Terminal outcome of an upload."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


# ==========================================
# Validation Schemas
# ==========================================

class RawRow(BaseSchema):
    """One row of an import file, exactly as read."""

    row_number: int = Field(..., ge=2, description="Source row; the header is row 1")
    matric_number: str = ""
    course_code: str = ""
    course_title: str = ""
    credit_units: str = ""
    grade: str = ""
    grade_points: str = ""
    session: str = ""
    semester: str = ""
    level: str = ""


class ResolvedStudent(BaseSchema):
    """Student directory entry matched to a matric number."""

    id: int
    matric_number: str
    full_name: str


class ValidationVerdict(BaseSchema):
    """Validation outcome attached to a raw row."""

    status: VerdictStatus
    errors: list[str] = []
    warnings: list[str] = []
    student_id: int | None = None
    student_name: str | None = None
    is_duplicate: bool = False


class ImportRowResponse(BaseSchema):
    """Row as shown on the import review screen."""

    row: RawRow
    verdict: ValidationVerdict
    disposition: RowDisposition
    selectable: bool
    selected: bool
    upload_state: RowUploadState | None = None


class ImportStats(BaseSchema):
    """Row counts for an import run."""

    total: int
    valid: int
    warnings: int
    errors: int
    duplicates: int
    selected: int


class UploadOutcomeResponse(BaseSchema):
    """Result of committing the selected rows."""

    upload_id: int | None = None
    outcome: RunOutcome
    selected_rows: int
    successful_rows: int
    skipped_rows: int
    failed_chunk: int | None = None
    error_message: str | None = None
    recomputed_students: list[int] = []
    recompute_error: str | None = None
    message: str


class ImportRunResponse(BaseSchema):
    """Full state of an import run."""

    run_id: str
    file_name: str
    state: ImportRunState
    progress: int
    can_upload: bool
    stats: ImportStats
    rows: list[ImportRowResponse] = []
    upload: UploadOutcomeResponse | None = None


class SelectionUpdate(BaseSchema):
    """Selection change request."""

    row_numbers: list[int] = []
    toggle_all: bool = False


class ErrorReportRow(BaseSchema):
    """Flattened rejected row for the downloadable error log."""

    row_number: int
    matric_number: str
    course_code: str
    errors: str


# ==========================================
# Result / Profile Schemas
# ==========================================

class ResultRecordResponse(BaseSchema):
    """Persisted result response schema."""

    id: int
    student_id: int
    course_code: str
    course_title: str
    credit_units: int
    grade: str
    grade_points: Decimal
    session: str
    semester: str
    level: str
    upload_id: int | None
    created_at: datetime


class ResultFilter(BaseSchema):
    """Result filtering options."""

    student_id: int | None = None
    session: str | None = None
    semester: str | None = None
    level: str | None = None


class AcademicProfileResponse(BaseSchema):
    """Academic profile response schema."""

    student_id: int
    total_grade_points: Decimal
    total_credit_units: int
    cgpa: Decimal
    carryover_count: int
    last_recomputed_at: datetime | None

    @computed_field
    @property
    def cgpa_display(self) -> str:
        return str(self.cgpa.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
