"""Year-scoped assessment number allocation.

Numbers look like ``ASM-2025-00042`` and restart at 1 each calendar year
(UTC). Allocation runs inside the caller's transaction:

1. ``UPDATE assessment_sequences SET last_value = last_value + 1`` for the
   year. The updated row stays locked until the caller commits or rolls
   back, so concurrent submitters queue behind each other.
2. If no row exists yet, insert it with ``last_value = 1``. Two writers
   racing to create the same year's row collide on the primary key; the
   loser gets ``SequenceConflict`` and its caller retries the whole unit of
   work.

A rolled back submission releases its increment with the rest of the
transaction, so failures never consume a number.
"""

from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cogscreen.core.config import settings
from cogscreen.core.errors import SequenceConflict
from cogscreen.core.logging import get_logger
from cogscreen.db.base import utc_now
from cogscreen.models.sequence import AssessmentSequence

logger = get_logger(__name__)


@dataclass(frozen=True)
class AllocatedNumber:
    """An allocated assessment number."""

    year: int
    sequence: int
    number: str


def format_assessment_number(year: int, sequence: int, prefix: str | None = None) -> str:
    """Format an assessment number, e.g. ASM-2025-00042."""
    return f"{prefix or settings.sequence_prefix}-{year}-{sequence:05d}"


class SequenceAllocator:
    """Allocates assessment numbers from the per-year counter."""

    def __init__(self, session: AsyncSession, prefix: str | None = None) -> None:
        self.session = session
        self.prefix = prefix or settings.sequence_prefix

    async def next_assessment_number(self, year: int | None = None) -> AllocatedNumber:
        """Reserve the next number for ``year`` in the current transaction.

        Args:
            year: Calendar year (defaults to the current UTC year)

        Returns:
            AllocatedNumber with the formatted number

        Raises:
            SequenceConflict: If another transaction created the year's
                counter concurrently. The session must be rolled back.
        """
        if year is None:
            year = utc_now().year

        result = await self.session.execute(
            update(AssessmentSequence)
            .where(AssessmentSequence.year == year)
            .values(last_value=AssessmentSequence.last_value + 1, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            self.session.add(AssessmentSequence(year=year, last_value=1))
            try:
                await self.session.flush()
            except IntegrityError as e:
                logger.warning(f"Sequence row for {year} created concurrently")
                raise SequenceConflict(year) from e
            value = 1
        else:
            value = (
                await self.session.execute(
                    select(AssessmentSequence.last_value).where(
                        AssessmentSequence.year == year
                    )
                )
            ).scalar_one()

        return AllocatedNumber(
            year=year,
            sequence=value,
            number=format_assessment_number(year, value, self.prefix),
        )

    async def current_value(self, year: int) -> int:
        """Last number issued for ``year`` (0 if none)."""
        result = await self.session.execute(
            select(AssessmentSequence.last_value).where(AssessmentSequence.year == year)
        )
        return result.scalar_one_or_none() or 0
