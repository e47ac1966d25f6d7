"""Result listing endpoints."""

from fastapi import APIRouter, Query

from app.core.database import DbSession
from app.schemas.common import PaginatedResponse
from app.schemas.result import ResultFilter, ResultRecordResponse
from app.services.result import ResultService

router = APIRouter()


@router.get("", response_model=PaginatedResponse[ResultRecordResponse])
def list_results(
    db: DbSession,
    student_id: int | None = None,
    session: str | None = None,
    semester: str | None = None,
    level: str | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
):
    """List stored results with filtering and pagination."""
    service = ResultService(db)
    filters = ResultFilter(
        student_id=student_id,
        session=session,
        semester=semester,
        level=level,
    )
    records, total = service.list_results(filters=filters, page=page, page_size=page_size)

    return PaginatedResponse(
        items=records,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )
