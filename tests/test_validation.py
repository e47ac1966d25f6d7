"""Row validator and grade catalog tests."""

from decimal import Decimal

import pytest

from app.core.catalog import GradeCatalog
from app.schemas.result import ResolvedStudent, VerdictStatus
from app.services.validation import (
    DUPLICATE_WARNING,
    UNKNOWN_STUDENT_ERROR,
    parse_credit_units,
    validate_row,
)
from tests.factories import raw_row

STUDENT = ResolvedStudent(id=1, matric_number="ND/2022/001", full_name="Ada Obi")


def test_clean_row_is_valid(catalog):
    verdict = validate_row(raw_row(), catalog, STUDENT, is_duplicate=False)

    assert verdict.status == VerdictStatus.VALID
    assert verdict.errors == []
    assert verdict.warnings == []
    assert verdict.student_id == 1
    assert verdict.student_name == "Ada Obi"
    assert verdict.is_duplicate is False


def test_unknown_student_is_always_an_error(catalog):
    verdict = validate_row(raw_row(matric_number="ND/9999/999"), catalog, None, is_duplicate=False)

    assert verdict.status == VerdictStatus.ERROR
    assert verdict.errors == [UNKNOWN_STUDENT_ERROR]
    assert verdict.student_id is None


def test_unknown_student_overrides_otherwise_warning_row(catalog):
    verdict = validate_row(raw_row(credit_units="7"), catalog, None, is_duplicate=False)

    assert verdict.status == VerdictStatus.ERROR
    assert UNKNOWN_STUDENT_ERROR in verdict.errors


def test_invalid_grade_mentions_valid_set(catalog):
    verdict = validate_row(raw_row(grade="G"), catalog, STUDENT, is_duplicate=False)

    assert verdict.status == VerdictStatus.ERROR
    assert "Grade must be one of: A, B, C, D, E, F" in verdict.errors


@pytest.mark.parametrize("grade", ["A", "a", " b ", "F"])
def test_known_grades_pass(catalog, grade):
    verdict = validate_row(raw_row(grade=grade), catalog, STUDENT, is_duplicate=False)

    assert not any("Grade must be" in e for e in verdict.errors)


def test_credit_units_out_of_range_is_warning(catalog):
    verdict = validate_row(raw_row(credit_units="7"), catalog, STUDENT, is_duplicate=False)

    assert verdict.status == VerdictStatus.WARNING
    assert verdict.errors == []
    assert verdict.warnings == ["Credit units typically range from 1-6"]


def test_credit_units_not_a_number_is_error(catalog):
    verdict = validate_row(raw_row(credit_units="abc"), catalog, STUDENT, is_duplicate=False)

    assert verdict.status == VerdictStatus.ERROR
    assert "Credit units must be a number" in verdict.errors


def test_session_with_wrong_separator_is_error(catalog):
    bad = validate_row(raw_row(session="2024-2025"), catalog, STUDENT, is_duplicate=False)
    good = validate_row(raw_row(session="2024/2025"), catalog, STUDENT, is_duplicate=False)

    assert "Session must be in format YYYY/YYYY (e.g., 2024/2025)" in bad.errors
    assert good.status == VerdictStatus.VALID


@pytest.mark.parametrize("points", ["-0.5", "5.5", "x", ""])
def test_grade_points_outside_scale_are_errors(catalog, points):
    verdict = validate_row(raw_row(grade_points=points), catalog, STUDENT, is_duplicate=False)

    assert verdict.status == VerdictStatus.ERROR
    assert any(e.startswith("Grade points must be") for e in verdict.errors)


def test_grade_point_ceiling_follows_catalog_scale():
    four_point = GradeCatalog(max_grade_points=Decimal("4"))

    verdict = validate_row(raw_row(grade_points="4.5"), four_point, STUDENT, is_duplicate=False)

    assert verdict.errors == ["Grade points must be between 0 and 4"]


def test_semester_and_level_membership(catalog):
    verdict = validate_row(raw_row(semester="third", level="ND3"), catalog, STUDENT, is_duplicate=False)

    assert "Semester must be one of: first, second" in verdict.errors
    assert "Level must be one of: ND1, ND2, HND1, HND2" in verdict.errors


def test_case_insensitive_semester_and_level(catalog):
    verdict = validate_row(raw_row(semester="Second", level="hnd1"), catalog, STUDENT, is_duplicate=False)

    assert verdict.status == VerdictStatus.VALID


def test_all_violations_are_collected(catalog):
    row = raw_row(
        course_code="",
        course_title="",
        credit_units="abc",
        grade="G",
        grade_points="9",
        session="2024-2025",
        semester="",
        level="",
    )

    verdict = validate_row(row, catalog, None, is_duplicate=False)

    assert verdict.errors == [
        "Course code is required",
        "Course title is required",
        "Credit units must be a number",
        "Grade must be one of: A, B, C, D, E, F",
        "Grade points must be between 0 and 5",
        "Semester is required",
        "Level is required",
        "Session must be in format YYYY/YYYY (e.g., 2024/2025)",
        UNKNOWN_STUDENT_ERROR,
    ]


def test_blank_session_reports_required_only(catalog):
    verdict = validate_row(raw_row(session=""), catalog, STUDENT, is_duplicate=False)

    assert "Session is required" in verdict.errors
    assert not any("YYYY/YYYY" in e for e in verdict.errors)


def test_duplicate_is_warning_not_error(catalog):
    verdict = validate_row(raw_row(), catalog, STUDENT, is_duplicate=True)

    assert verdict.status == VerdictStatus.WARNING
    assert verdict.is_duplicate is True
    assert verdict.warnings == [DUPLICATE_WARNING]


def test_duplicate_with_error_stays_error(catalog):
    verdict = validate_row(raw_row(grade="G"), catalog, STUDENT, is_duplicate=True)

    assert verdict.status == VerdictStatus.ERROR
    assert verdict.is_duplicate is True


def test_every_error_verdict_has_a_message(catalog):
    rows = [
        raw_row(matric_number=""),
        raw_row(grade=""),
        raw_row(grade_points="abc"),
        raw_row(level="X"),
    ]
    for row in rows:
        verdict = validate_row(row, catalog, STUDENT if row.matric_number else None, is_duplicate=False)
        assert verdict.status in set(VerdictStatus)
        assert verdict.status == VerdictStatus.ERROR
        assert len(verdict.errors) >= 1


@pytest.mark.parametrize(
    "value, expected",
    [("3", 3), ("3.0", 3), (" 2 ", 2), ("3.5", None), ("abc", None), ("", None), ("NaN", None)],
)
def test_parse_credit_units(value, expected):
    assert parse_credit_units(value) == expected


def test_catalog_grade_points_scale_down():
    four_point = GradeCatalog(max_grade_points=Decimal("4"))

    assert GradeCatalog().grade_point_for("a") == Decimal("5")
    assert four_point.grade_point_for("B") == Decimal("3.2")
    assert four_point.grade_point_for("Z") is None


@pytest.mark.parametrize("points", ["4.555", "3.001", "0.125"])
def test_grade_points_beyond_two_places_are_errors(catalog, points):
    verdict = validate_row(raw_row(grade_points=points), catalog, STUDENT, is_duplicate=False)

    assert verdict.status == VerdictStatus.ERROR
    assert verdict.errors == ["Grade points must have at most 2 decimal places"]


@pytest.mark.parametrize("points", ["4.55", "4.550", "3.5", "5.00", "0"])
def test_grade_points_that_store_exactly_pass(catalog, points):
    verdict = validate_row(raw_row(grade_points=points), catalog, STUDENT, is_duplicate=False)

    assert verdict.status == VerdictStatus.VALID
