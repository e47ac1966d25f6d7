"""Student directory model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class Student(Base, IDMixin, TimestampMixin):
    """Student record owned by the student directory.

    The result ingestion path only reads students; it never creates them.
    """

    __tablename__ = "students"

    matric_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    level: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Relationships
    results: Mapped[list["ResultRecord"]] = relationship(
        "ResultRecord",
        back_populates="student",
        lazy="noload",
    )
    academic_profile: Mapped["AcademicProfile"] = relationship(
        "AcademicProfile",
        back_populates="student",
        uselist=False,
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, matric={self.matric_number})>"
