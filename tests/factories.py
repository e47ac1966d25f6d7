"""Builders for students, stored results, raw rows and import files."""

from decimal import Decimal

from sqlalchemy.orm import Session

from app.models import ResultRecord, Student
from app.schemas.result import RESULT_FILE_COLUMNS, RawRow


def make_student(db: Session, matric_number: str, full_name: str = "Ada Obi", level: str = "ND1") -> Student:
    student = Student(matric_number=matric_number, full_name=full_name, level=level)
    db.add(student)
    db.commit()
    return student


def make_result(
    db: Session,
    student: Student,
    course_code: str = "CSC 101",
    grade_points: str = "5.00",
    credit_units: int = 3,
    session: str = "2024/2025",
    semester: str = "first",
    grade: str = "A",
) -> ResultRecord:
    record = ResultRecord(
        student_id=student.id,
        course_code=course_code,
        course_title=f"Course {course_code}",
        credit_units=credit_units,
        grade=grade,
        grade_points=Decimal(grade_points),
        session=session,
        semester=semester,
        level="ND1",
    )
    db.add(record)
    db.commit()
    return record


def raw_row(row_number: int = 2, **overrides: str) -> RawRow:
    values = {
        "matric_number": "ND/2022/001",
        "course_code": "CSC 101",
        "course_title": "Introduction to Computing",
        "credit_units": "3",
        "grade": "A",
        "grade_points": "5.0",
        "session": "2024/2025",
        "semester": "first",
        "level": "ND1",
    }
    values.update(overrides)
    return RawRow(row_number=row_number, **values)


def csv_bytes(rows: list[dict[str, str]]) -> bytes:
    lines = [",".join(RESULT_FILE_COLUMNS)]
    for row in rows:
        lines.append(",".join(row.get(column, "") for column in RESULT_FILE_COLUMNS))
    return ("\n".join(lines) + "\n").encode("utf-8")
