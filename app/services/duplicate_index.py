"""Snapshot index of results already stored for a set of students."""

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.result import ResultRecord

logger = logging.getLogger(__name__)

ResultKey = tuple[int, str, str, str]


def result_key(student_id: int, course_code: str, session: str, semester: str) -> ResultKey:
    """Normalized (student, course, session, semester) key, matching how rows are stored."""
    return (
        student_id,
        course_code.strip().upper(),
        session.strip(),
        semester.strip().lower(),
    )


class DuplicateIndex:
    """
    Read-only set of existing result keys.

    Built once per import run and never updated while rows are committed, so
    two rows in the same file that collide with each other (but not with
    stored data) are not detected.
    """

    def __init__(self, keys: Iterable[ResultKey] = ()):
        self._keys: frozenset[ResultKey] = frozenset(keys)

    @classmethod
    def build(cls, db: Session, student_ids: Iterable[int]) -> "DuplicateIndex":
        """Fetch existing result keys for exactly these students in one query."""
        ids = sorted(set(student_ids))
        if not ids:
            return cls()

        result = db.execute(
            select(
                ResultRecord.student_id,
                ResultRecord.course_code,
                ResultRecord.session,
                ResultRecord.semester,
            ).where(ResultRecord.student_id.in_(ids))
        )
        index = cls(result_key(*row) for row in result.all())
        logger.info(f"[DUPLICATE INDEX] Indexed {len(index)} existing results for {len(ids)} students")
        return index

    def contains(self, student_id: int, course_code: str, session: str, semester: str) -> bool:
        return result_key(student_id, course_code, session, semester) in self._keys

    def __len__(self) -> int:
        return len(self._keys)
