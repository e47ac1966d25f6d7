"""Batched matric number lookup against the student directory."""

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.student import Student
from app.schemas.result import ResolvedStudent

logger = logging.getLogger(__name__)


class StudentResolver:
    """Resolves matric numbers to students with one query per lookup batch."""

    def __init__(self, db: Session, batch_size: int | None = None):
        self.db = db
        self.batch_size = batch_size or settings.RESOLVER_LOOKUP_BATCH_SIZE

    def resolve(self, matric_numbers: Iterable[str]) -> dict[str, ResolvedStudent]:
        """
        Map each known matric number to its student.

        Unknown matric numbers are simply absent from the result. Blank values
        are ignored. The lookup is batched on the distinct set of identifiers,
        never issued per row.
        """
        distinct = sorted({m.strip() for m in matric_numbers if m and m.strip()})
        resolved: dict[str, ResolvedStudent] = {}

        for start in range(0, len(distinct), self.batch_size):
            batch = distinct[start:start + self.batch_size]
            result = self.db.execute(
                select(Student.id, Student.matric_number, Student.full_name).where(
                    Student.matric_number.in_(batch)
                )
            )
            for student_id, matric_number, full_name in result.all():
                resolved[matric_number] = ResolvedStudent(
                    id=student_id,
                    matric_number=matric_number,
                    full_name=full_name or "Unknown",
                )

        logger.info(
            f"[STUDENT RESOLVER] Resolved {len(resolved)} of {len(distinct)} distinct matric numbers"
        )
        return resolved
