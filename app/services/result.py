"""Read access to stored results."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.result import ResultRecord
from app.schemas.result import ResultFilter, ResultRecordResponse


class ResultService:
    """Result record queries."""

    def __init__(self, db: Session):
        self.db = db

    def list_results(
        self,
        filters: ResultFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[ResultRecordResponse], int]:
        """List results with filtering."""
        query = select(ResultRecord)

        if filters:
            if filters.student_id:
                query = query.where(ResultRecord.student_id == filters.student_id)
            if filters.session:
                query = query.where(ResultRecord.session == filters.session)
            if filters.semester:
                query = query.where(ResultRecord.semester == filters.semester.lower())
            if filters.level:
                query = query.where(ResultRecord.level == filters.level.upper())

        # Count total
        count_result = self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar() or 0

        query = (
            query
            .order_by(ResultRecord.session, ResultRecord.semester, ResultRecord.course_code, ResultRecord.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        records = self.db.execute(query).scalars().all()

        return [ResultRecordResponse.model_validate(r) for r in records], total
