"""CGPA recomputation from a student's full result history."""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.academic_profile import AcademicProfile
from app.models.result import ResultRecord
from app.models.student import Student

logger = logging.getLogger(__name__)


class AggregationService:
    """Rebuilds academic profiles. Always recomputes from scratch, never incrementally."""

    def __init__(self, db: Session):
        self.db = db

    def recompute(self, student_id: int) -> AcademicProfile:
        """
        Recompute total grade points, total credit units and CGPA for a student.

        Reads every stored result for the student, so repeated or out-of-order
        calls always converge on the same profile.
        """
        if self.db.get(Student, student_id) is None:
            raise NotFoundError("Student", str(student_id))

        result = self.db.execute(
            select(ResultRecord.grade_points, ResultRecord.credit_units).where(
                ResultRecord.student_id == student_id
            )
        )

        total_grade_points = Decimal("0")
        total_credit_units = 0
        for grade_points, credit_units in result.all():
            total_grade_points += Decimal(grade_points) * credit_units
            total_credit_units += credit_units

        profile = self.get_profile(student_id)
        if profile is None:
            profile = AcademicProfile(student_id=student_id)
            self.db.add(profile)

        profile.total_grade_points = total_grade_points
        profile.total_credit_units = total_credit_units
        profile.last_recomputed_at = datetime.now(timezone.utc)
        self.db.flush()

        logger.info(
            f"[CGPA] student_id={student_id} total_gp={total_grade_points} "
            f"total_units={total_credit_units} cgpa={profile.cgpa}"
        )
        return profile

    def recompute_many(self, student_ids: Iterable[int]) -> list[AcademicProfile]:
        """Recompute once per distinct student and commit."""
        profiles = [self.recompute(student_id) for student_id in sorted(set(student_ids))]
        self.db.commit()
        return profiles

    def get_profile(self, student_id: int) -> AcademicProfile | None:
        result = self.db.execute(
            select(AcademicProfile).where(AcademicProfile.student_id == student_id)
        )
        return result.scalar_one_or_none()
