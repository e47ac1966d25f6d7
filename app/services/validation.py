"""Row-level validation for result imports."""

from decimal import Decimal, InvalidOperation

from app.core.catalog import GradeCatalog
from app.schemas.result import RawRow, ResolvedStudent, ValidationVerdict, VerdictStatus

DUPLICATE_WARNING = "A result for this course already exists (will be skipped)"
UNKNOWN_STUDENT_ERROR = "Student with this matric number does not exist"
GRADE_POINT_DECIMAL_PLACES = 2


def parse_credit_units(value: str) -> int | None:
    """Parse a credit-unit cell; accepts '3' and '3.0', rejects '3.5'."""
    try:
        number = Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not number.is_finite() or number != number.to_integral_value():
        return None
    return int(number)


def parse_grade_points(value: str) -> Decimal | None:
    """Parse a grade-point cell into a Decimal."""
    try:
        number = Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not number.is_finite():
        return None
    return number


def validate_row(
    row: RawRow,
    catalog: GradeCatalog,
    student: ResolvedStudent | None,
    is_duplicate: bool,
) -> ValidationVerdict:
    """
    Validate one import row against the catalog.

    Every rule is checked; nothing short-circuits, so the operator sees all
    problems with a row at once. Never raises.
    """
    errors: list[str] = []
    warnings: list[str] = []

    # Required fields
    if not row.matric_number.strip():
        errors.append("Matric number is required")
    if not row.course_code.strip():
        errors.append("Course code is required")
    if not row.course_title.strip():
        errors.append("Course title is required")
    if not row.session.strip():
        errors.append("Session is required")

    # Credit units
    credit_units = parse_credit_units(row.credit_units)
    if credit_units is None:
        errors.append("Credit units must be a number")
    elif not catalog.credit_units_in_range(credit_units):
        warnings.append(
            f"Credit units typically range from {catalog.credit_unit_min}-{catalog.credit_unit_max}"
        )

    # Grade
    if not row.grade.strip():
        errors.append("Grade is required")
    elif not catalog.is_valid_grade(row.grade):
        errors.append(f"Grade must be one of: {', '.join(catalog.grades)}")

    # Grade points
    grade_points = parse_grade_points(row.grade_points)
    if grade_points is None:
        errors.append("Grade points must be a number")
    elif not catalog.grade_points_in_range(grade_points):
        errors.append(f"Grade points must be between 0 and {catalog.max_grade_points}")
    elif grade_points.normalize().as_tuple().exponent < -GRADE_POINT_DECIMAL_PLACES:
        # results.grade_points is DECIMAL(4, 2); more places would be cut on insert
        errors.append(f"Grade points must have at most {GRADE_POINT_DECIMAL_PLACES} decimal places")

    # Semester
    if not row.semester.strip():
        errors.append("Semester is required")
    elif not catalog.is_valid_semester(row.semester):
        errors.append(f"Semester must be one of: {', '.join(catalog.semesters)}")

    # Level
    if not row.level.strip():
        errors.append("Level is required")
    elif not catalog.is_valid_level(row.level):
        errors.append(f"Level must be one of: {', '.join(catalog.levels)}")

    # Session format (blank sessions are already reported above)
    if row.session.strip() and not catalog.is_valid_session(row.session):
        errors.append("Session must be in format YYYY/YYYY (e.g., 2024/2025)")

    # Student existence
    if student is None:
        errors.append(UNKNOWN_STUDENT_ERROR)

    # Duplicate of stored result
    if is_duplicate:
        warnings.append(DUPLICATE_WARNING)

    if errors:
        status = VerdictStatus.ERROR
    elif warnings:
        status = VerdictStatus.WARNING
    else:
        status = VerdictStatus.VALID

    return ValidationVerdict(
        status=status,
        errors=errors,
        warnings=warnings,
        student_id=student.id if student else None,
        student_name=student.full_name if student else None,
        is_duplicate=is_duplicate,
    )
