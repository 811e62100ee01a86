"""Tests for year-scoped assessment number allocation."""

from sqlalchemy.ext.asyncio import AsyncSession

from cogscreen.services.sequence import SequenceAllocator, format_assessment_number


class TestFormat:
    """Tests for number formatting."""

    def test_zero_padded(self) -> None:
        """Test numbers are zero-padded to five digits."""
        assert format_assessment_number(2025, 42) == "ASM-2025-00042"

    def test_custom_prefix(self) -> None:
        """Test the prefix is configurable."""
        assert format_assessment_number(2025, 1, prefix="DEM") == "DEM-2025-00001"


class TestAllocator:
    """Tests for SequenceAllocator against the database."""

    async def test_first_number_of_year(self, async_session: AsyncSession) -> None:
        """Test the first allocation in a year creates the counter at 1."""
        allocated = await SequenceAllocator(async_session).next_assessment_number(2025)

        assert allocated.year == 2025
        assert allocated.sequence == 1
        assert allocated.number == "ASM-2025-00001"

    async def test_increments(self, async_session: AsyncSession) -> None:
        """Test later allocations increment the counter."""
        allocator = SequenceAllocator(async_session)
        await allocator.next_assessment_number(2025)
        await async_session.commit()

        second = await allocator.next_assessment_number(2025)
        await async_session.commit()

        assert second.sequence == 2
        assert await allocator.current_value(2025) == 2

    async def test_years_are_independent(self, async_session: AsyncSession) -> None:
        """Test each calendar year restarts at 1."""
        allocator = SequenceAllocator(async_session)
        await allocator.next_assessment_number(2025)
        await allocator.next_assessment_number(2025)
        await async_session.commit()

        allocated = await allocator.next_assessment_number(2026)

        assert allocated.number == "ASM-2026-00001"

    async def test_rollback_releases_number(self, async_session: AsyncSession) -> None:
        """Test a rolled back allocation does not consume a number."""
        allocator = SequenceAllocator(async_session)
        await allocator.next_assessment_number(2025)
        await async_session.commit()

        await allocator.next_assessment_number(2025)
        await async_session.rollback()

        assert await allocator.current_value(2025) == 1
        retry = await allocator.next_assessment_number(2025)
        assert retry.sequence == 2

    async def test_current_value_unknown_year(self, async_session: AsyncSession) -> None:
        """Test a year with no submissions reports 0."""
        assert await SequenceAllocator(async_session).current_value(1999) == 0
