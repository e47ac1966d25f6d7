"""Database models package."""

from app.models.academic_profile import AcademicProfile
from app.models.result import ResultRecord
from app.models.student import Student
from app.models.upload import ResultUpload, UploadStatus

__all__ = [
    # Student
    "Student",
    "AcademicProfile",
    # Results
    "ResultRecord",
    # Upload
    "ResultUpload",
    "UploadStatus",
]
