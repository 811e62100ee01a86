"""Assessment scoring service.

Loads an assessment's stored responses and aggregates them with the pure
scorer in ``cogscreen.scoring``. Snapshots record the aggregate presented
to the reviewer at submission time; live aggregation is always available
from the responses.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cogscreen.catalog.models import Catalog
from cogscreen.core.errors import AssessmentNotFoundError, CatalogMismatchError
from cogscreen.db.base import utc_now
from cogscreen.models.assessment import Assessment, AssessmentResponse
from cogscreen.models.score import ScoreSnapshot
from cogscreen.scoring.aggregator import AggregateReport, aggregate_responses


def ensure_catalog(catalog: Catalog, assessment: Assessment) -> None:
    """Refuse to use ``catalog`` for an assessment created under another one."""
    if assessment.catalog_hash != catalog.content_hash:
        raise CatalogMismatchError(assessment.catalog_version, catalog.version)


class ScoringService:
    """Aggregates and snapshots instrument scores."""

    def __init__(self, session: AsyncSession, catalog: Catalog) -> None:
        self.session = session
        self.catalog = catalog

    async def load_responses(self, assessment_id: str) -> dict[str, str]:
        """Stored responses as question id -> raw value."""
        result = await self.session.execute(
            select(AssessmentResponse.question_id, AssessmentResponse.answer_value)
            .where(AssessmentResponse.assessment_id == assessment_id)
        )
        return {question_id: value for question_id, value in result.all()}

    async def aggregate(self, assessment_id: str) -> AggregateReport:
        """Aggregate scores for a stored assessment.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist
            CatalogMismatchError: If the assessment was created under another catalog
        """
        assessment = await self.session.get(Assessment, assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(assessment_id)
        ensure_catalog(self.catalog, assessment)
        responses = await self.load_responses(assessment_id)
        return aggregate_responses(self.catalog, responses)

    def snapshot(self, assessment: Assessment, report: AggregateReport) -> list[ScoreSnapshot]:
        """Add one snapshot row per instrument to the session (no commit)."""
        now = utc_now()
        snapshots = []
        for instrument, score in report.scores.items():
            snapshot = ScoreSnapshot(
                assessment_id=assessment.id,
                instrument=instrument,
                score_version=report.score_version,
                catalog_version=report.catalog_version,
                total_score=score.total,
                max_score=score.max_total,
                matched_count=score.matched_count,
                expected_count=score.expected_count,
                anomalies=list(score.anomalies),
                missing=list(score.missing),
                calculated_at=now,
            )
            self.session.add(snapshot)
            snapshots.append(snapshot)
        return snapshots

    async def get_snapshots(self, assessment_id: str) -> list[ScoreSnapshot]:
        """Snapshots stored at submission."""
        result = await self.session.execute(
            select(ScoreSnapshot)
            .where(ScoreSnapshot.assessment_id == assessment_id)
            .order_by(ScoreSnapshot.instrument)
        )
        return list(result.scalars().all())
