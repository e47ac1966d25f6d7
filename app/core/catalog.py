"""Grading reference data used by result validation and ingestion."""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache

from app.core.config import settings


VALID_GRADES = ("A", "B", "C", "D", "E", "F")
VALID_SEMESTERS = ("first", "second")
SESSION_PATTERN = re.compile(r"^\d{4}/\d{4}$")

# Points per grade on the 5-point scale
_FIVE_POINT_MAP = {
    "A": Decimal("5"),
    "B": Decimal("4"),
    "C": Decimal("3"),
    "D": Decimal("2"),
    "E": Decimal("1"),
    "F": Decimal("0"),
}


@dataclass(frozen=True)
class GradeCatalog:
    """Static grading tables for one institution."""

    max_grade_points: Decimal = Decimal("5")
    grades: tuple[str, ...] = VALID_GRADES
    semesters: tuple[str, ...] = VALID_SEMESTERS
    levels: tuple[str, ...] = ("ND1", "ND2", "HND1", "HND2")
    credit_unit_min: int = 1
    credit_unit_max: int = 6
    session_pattern: re.Pattern = field(default=SESSION_PATTERN)

    def is_valid_grade(self, grade: str) -> bool:
        return grade.strip().upper() in self.grades

    def is_valid_semester(self, semester: str) -> bool:
        return semester.strip().lower() in self.semesters

    def is_valid_level(self, level: str) -> bool:
        return level.strip().upper() in self.levels

    def is_valid_session(self, session: str) -> bool:
        return bool(self.session_pattern.match(session.strip()))

    def credit_units_in_range(self, units: int) -> bool:
        return self.credit_unit_min <= units <= self.credit_unit_max

    def grade_points_in_range(self, points: Decimal) -> bool:
        return Decimal("0") <= points <= self.max_grade_points

    def grade_point_for(self, grade: str) -> Decimal | None:
        """Catalog grade point for a letter grade, scaled to max_grade_points."""
        base = _FIVE_POINT_MAP.get(grade.strip().upper())
        if base is None:
            return None
        if self.max_grade_points == Decimal("5"):
            return base
        return base * self.max_grade_points / Decimal("5")


@lru_cache
def get_catalog() -> GradeCatalog:
    """Build the catalog from application settings."""
    max_grade_points = Decimal(str(settings.GRADE_POINT_SCALE_MAX))
    if max_grade_points == max_grade_points.to_integral_value():
        max_grade_points = max_grade_points.to_integral_value()
    return GradeCatalog(
        max_grade_points=max_grade_points,
        levels=tuple(settings.VALID_LEVELS),
        credit_unit_min=settings.CREDIT_UNIT_MIN,
        credit_unit_max=settings.CREDIT_UNIT_MAX,
    )
