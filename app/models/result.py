"""Course result model."""

from decimal import Decimal

from sqlalchemy import DECIMAL, BigInteger, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import CreatedAtMixin, IDMixin


class ResultRecord(Base, IDMixin, CreatedAtMixin):
    """One graded course for one student in one session/semester.

    (student_id, course_code, session, semester) is meant to be unique, but the
    constraint is checked during import validation only. The index below is
    deliberately non-unique.
    """

    __tablename__ = "results"

    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_code: Mapped[str] = mapped_column(String(20), nullable=False)
    course_title: Mapped[str] = mapped_column(String(255), nullable=False)
    credit_units: Mapped[int] = mapped_column(Integer, nullable=False)
    grade: Mapped[str] = mapped_column(String(2), nullable=False)
    grade_points: Mapped[Decimal] = mapped_column(DECIMAL(4, 2), nullable=False)
    session: Mapped[str] = mapped_column(String(9), nullable=False)
    semester: Mapped[str] = mapped_column(String(10), nullable=False)
    level: Mapped[str] = mapped_column(String(10), nullable=False)

    # Upload tracking
    upload_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("result_uploads.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    student: Mapped["Student"] = relationship(
        "Student",
        back_populates="results",
        lazy="noload",
    )

    __table_args__ = (
        Index(
            "ix_results_student_course_session_semester",
            "student_id", "course_code", "session", "semester",
        ),
    )

    def __repr__(self) -> str:
        return f"<ResultRecord(student_id={self.student_id}, course={self.course_code}, session={self.session})>"
