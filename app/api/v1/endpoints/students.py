"""Student academic profile endpoints."""

from fastapi import APIRouter

from app.core.database import DbSession
from app.core.exceptions import NotFoundError
from app.models.academic_profile import AcademicProfile
from app.models.student import Student
from app.schemas.result import AcademicProfileResponse
from app.services.aggregation import AggregationService

router = APIRouter()


def _profile_response(student_id: int, profile: AcademicProfile | None) -> AcademicProfileResponse:
    if profile is None:
        # Never recomputed: no results imported yet
        return AcademicProfileResponse(
            student_id=student_id,
            total_grade_points=0,
            total_credit_units=0,
            cgpa=0,
            carryover_count=0,
            last_recomputed_at=None,
        )
    return AcademicProfileResponse(
        student_id=profile.student_id,
        total_grade_points=profile.total_grade_points,
        total_credit_units=profile.total_credit_units,
        cgpa=profile.cgpa,
        carryover_count=profile.carryover_count,
        last_recomputed_at=profile.last_recomputed_at,
    )


@router.get("/{student_id}/profile", response_model=AcademicProfileResponse)
def get_academic_profile(
    student_id: int,
    db: DbSession,
):
    """Get a student's totals and CGPA."""
    if db.get(Student, student_id) is None:
        raise NotFoundError("Student", str(student_id))
    service = AggregationService(db)
    return _profile_response(student_id, service.get_profile(student_id))


@router.post("/{student_id}/profile/recompute", response_model=AcademicProfileResponse)
def recompute_academic_profile(
    student_id: int,
    db: DbSession,
):
    """
    Rebuild a student's profile from all stored results.

    Called after results are deleted or edited outside the import flow.
    Safe to call any number of times.
    """
    service = AggregationService(db)
    profile = service.recompute(student_id)
    return _profile_response(student_id, profile)
