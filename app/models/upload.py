"""Result upload tracking model."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class UploadStatus(str, enum.Enum):
    """Upload status enumeration."""

    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"
    PROCESSING = "processing"


class ResultUpload(Base, IDMixin, TimestampMixin):
    """One committed result import run."""

    __tablename__ = "result_uploads"

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[UploadStatus] = mapped_column(
        Enum(UploadStatus),
        default=UploadStatus.PROCESSING,
        nullable=False,
    )
    total_rows: Mapped[int] = mapped_column(Integer, default=0)
    selected_rows: Mapped[int] = mapped_column(Integer, default=0)
    successful_rows: Mapped[int] = mapped_column(Integer, default=0)
    unattempted_rows: Mapped[int] = mapped_column(Integer, default=0)
    failed_chunk: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Processing timestamps
    processing_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    processing_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<ResultUpload(id={self.id}, file={self.file_name}, status={self.status})>"
