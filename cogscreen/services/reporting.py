"""Reporting queries for the clinical dashboard.

Provides:
- Review workload counts
- Submission volumes over a period
- Filtered, paginated assessment listing
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, time, timezone

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cogscreen.core.errors import AssessmentNotFoundError
from cogscreen.db.base import utc_now
from cogscreen.models.assessment import Assessment, AssessmentStatus, FormType, Priority


@dataclass
class AssessmentStats:
    """Review workload counts."""
    total: int
    pending_review: int
    under_review: int
    completed: int
    archived: int
    submitted_today: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class DailySubmissions:
    """Submissions on one calendar day."""
    day: str
    count: int


@dataclass
class SubmissionAnalytics:
    """Submission volumes for a period."""
    start_date: datetime | None
    end_date: datetime | None
    total: int
    reviewed: int
    by_status: dict[str, int] = field(default_factory=dict)
    by_form_type: dict[str, int] = field(default_factory=dict)
    by_language: dict[str, int] = field(default_factory=dict)
    daily: list[DailySubmissions] = field(default_factory=list)


class ReportingService:
    """Service for dashboard counts and listings."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_assessment(self, assessment_id: str) -> Assessment:
        """Fetch one assessment.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist
        """
        assessment = await self.session.get(Assessment, assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(assessment_id)
        return assessment

    async def get_stats(self, now: datetime | None = None) -> AssessmentStats:
        """Count assessments by review state.

        Drafts are excluded from every count; they have not been submitted.
        """
        now = now or utc_now()
        start_of_day = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)

        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        query = select(
            func.count(Assessment.id).label("total"),
            count_where(
                and_(
                    Assessment.status == AssessmentStatus.SUBMITTED.value,
                    Assessment.is_reviewed.is_(False),
                )
            ).label("pending_review"),
            count_where(Assessment.status == AssessmentStatus.UNDER_REVIEW.value).label("under_review"),
            count_where(Assessment.status == AssessmentStatus.COMPLETED.value).label("completed"),
            count_where(Assessment.status == AssessmentStatus.ARCHIVED.value).label("archived"),
            count_where(Assessment.submitted_at >= start_of_day).label("submitted_today"),
        ).where(Assessment.status != AssessmentStatus.DRAFT.value)

        row = (await self.session.execute(query)).one()
        return AssessmentStats(
            total=row.total,
            pending_review=row.pending_review,
            under_review=row.under_review,
            completed=row.completed,
            archived=row.archived,
            submitted_today=row.submitted_today,
        )

    def _submitted_between(self, query, start_date: datetime | None, end_date: datetime | None):
        query = query.where(Assessment.submitted_at.isnot(None))
        if start_date:
            query = query.where(Assessment.submitted_at >= start_date)
        if end_date:
            query = query.where(Assessment.submitted_at <= end_date)
        return query

    async def _count_by(
        self, column, start_date: datetime | None, end_date: datetime | None
    ) -> dict[str, int]:
        query = select(column.label("key"), func.count(Assessment.id).label("count"))
        query = self._submitted_between(query, start_date, end_date).group_by(column)

        result = await self.session.execute(query)
        return {str(row.key): row.count for row in result.all()}

    async def get_analytics(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> SubmissionAnalytics:
        """Submission volumes over a period.

        Args:
            start_date: Earliest submission time (inclusive)
            end_date: Latest submission time (inclusive)

        Returns:
            Counts by status, form type and language, and per-day submissions
        """
        by_status = await self._count_by(Assessment.status, start_date, end_date)
        by_form_type = await self._count_by(Assessment.form_type, start_date, end_date)
        by_language = await self._count_by(Assessment.language, start_date, end_date)

        day = func.date(Assessment.submitted_at)
        query = select(day.label("day"), func.count(Assessment.id).label("count"))
        query = self._submitted_between(query, start_date, end_date)
        result = await self.session.execute(query.group_by(day).order_by(day))
        daily = [DailySubmissions(day=str(row.day), count=row.count) for row in result.all()]

        reviewed = (
            await self.session.execute(
                self._submitted_between(
                    select(func.count(Assessment.id)).where(Assessment.is_reviewed.is_(True)),
                    start_date,
                    end_date,
                )
            )
        ).scalar_one()

        return SubmissionAnalytics(
            start_date=start_date,
            end_date=end_date,
            total=sum(by_status.values()),
            reviewed=reviewed,
            by_status=by_status,
            by_form_type=by_form_type,
            by_language=by_language,
            daily=daily,
        )
    async def list_assessments(
        self,
        status: AssessmentStatus | None = None,
        form_type: FormType | None = None,
        priority: Priority | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Assessment], int]:
        """List assessments, newest submission first.

        Args:
            status: Only this status
            form_type: Only this form type
            priority: Only this priority
            search: Substring of the assessment number or patient id
            limit: Maximum results
            offset: Pagination offset

        Returns:
            Page of assessments and the total matching count
        """
        query = select(Assessment)

        if status:
            query = query.where(Assessment.status == AssessmentStatus(status).value)
        if form_type:
            query = query.where(Assessment.form_type == FormType(form_type).value)
        if priority:
            query = query.where(Assessment.priority == Priority(priority).value)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Assessment.assessment_number.ilike(pattern),
                    Assessment.patient_id.ilike(pattern),
                )
            )

        total = (
            await self.session.execute(
                select(func.count()).select_from(query.subquery())
            )
        ).scalar_one()

        result = await self.session.execute(
            query.order_by(
                Assessment.submitted_at.desc().nulls_last(),
                Assessment.created_at.desc(),
            )
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total
