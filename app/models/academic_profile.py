"""Academic profile model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, BigInteger, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class AcademicProfile(Base, IDMixin, TimestampMixin):
    """Cumulative standing of a student, rebuilt from all of their results."""

    __tablename__ = "academic_profiles"

    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    total_grade_points: Mapped[Decimal] = mapped_column(
        DECIMAL(12, 2),
        default=Decimal("0"),
        nullable=False,
    )
    total_credit_units: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Maintained by the carryover workflow
    carryover_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_recomputed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    student: Mapped["Student"] = relationship(
        "Student",
        back_populates="academic_profile",
    )

    @property
    def cgpa(self) -> Decimal:
        """Credit-weighted mean grade point; 0 when no credits are recorded."""
        if not self.total_credit_units:
            return Decimal("0")
        return Decimal(self.total_grade_points) / Decimal(self.total_credit_units)

    def __repr__(self) -> str:
        return f"<AcademicProfile(student_id={self.student_id}, cgpa={self.cgpa})>"
