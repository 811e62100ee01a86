"""Score snapshot model for instrument totals at submission time."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from cogscreen.db.base import Base, TimestampMixin, UUIDMixin


class InstrumentId(str, Enum):
    """Scored instruments in the screening catalog."""

    BRISTOL_ADL = "bristol_adl"  # Bristol Activities of Daily Living Scale
    FUNCTIONAL_STAGE = "functional_stage"  # 7-stage global functional assessment
    GDS15 = "gds15"  # Geriatric Depression Scale, short form
    WORD_RECOGNITION = "word_recognition"  # Delayed word recognition


class ScoreSnapshot(Base, UUIDMixin, TimestampMixin):
    """Aggregated instrument score stored when an assessment is submitted.

    Scores can always be recomputed from the responses; the snapshot keeps
    what was presented to the reviewer, with its coverage.
    """

    __tablename__ = "score_snapshots"

    assessment_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    instrument: Mapped[InstrumentId] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    # Version of the scoring algorithm used
    score_version: Mapped[str] = mapped_column(String(20), nullable=False)
    catalog_version: Mapped[str] = mapped_column(String(50), nullable=False)
    total_score: Mapped[int] = mapped_column(Integer, nullable=False)
    max_score: Mapped[int] = mapped_column(Integer, nullable=False)
    matched_count: Mapped[int] = mapped_column(Integer, nullable=False)
    expected_count: Mapped[int] = mapped_column(Integer, nullable=False)
    # Question ids that could not be normalized
    anomalies: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # Expected question ids with no response
    missing: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<ScoreSnapshot {self.instrument}={self.total_score} "
            f"({self.matched_count}/{self.expected_count})>"
        )
