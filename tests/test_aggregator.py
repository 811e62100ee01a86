"""Unit tests for per-instrument score aggregation.

Tests the pure aggregation logic from cogscreen.scoring.aggregator.
"""

from cogscreen.catalog.models import Catalog
from cogscreen.models.score import InstrumentId
from cogscreen.scoring.aggregator import aggregate_responses
from tests.factories import adl_answers, complete_responses, gds_answers


class TestBristolADL:
    """Tests for Bristol ADL totals."""

    def test_all_a_is_zero(self, catalog: Catalog) -> None:
        """Test every item at A gives the minimum total."""
        score = aggregate_responses(catalog, adl_answers("A"))[InstrumentId.BRISTOL_ADL]

        assert score.total == 0
        assert score.matched_count == 20
        assert score.coverage_complete

    def test_all_d_is_sixty(self, catalog: Catalog) -> None:
        """Test every item at D gives the maximum total."""
        score = aggregate_responses(catalog, adl_answers("D"))[InstrumentId.BRISTOL_ADL]

        assert score.total == 60
        assert score.total == score.max_total

    def test_not_applicable_scores_zero(self, catalog: Catalog) -> None:
        """Test E answers count as matched with code 0."""
        score = aggregate_responses(catalog, adl_answers("E"))[InstrumentId.BRISTOL_ADL]

        assert score.total == 0
        assert score.matched_count == 20
        assert score.anomalies == []

    def test_total_within_bounds(self, catalog: Catalog) -> None:
        """Test mixed answers stay within 0..60."""
        responses = {
            f"adl_{i:02d}": f"{'ABCDE'[i % 5]}) answer" for i in range(1, 21)
        }
        score = aggregate_responses(catalog, responses)[InstrumentId.BRISTOL_ADL]

        # Four of each letter: 4 * (0 + 1 + 2 + 3 + 0)
        assert score.total == 24
        assert 0 <= score.total <= 60

    def test_arabic_answers(self, catalog: Catalog) -> None:
        """Test the same totals from Arabic markers."""
        responses = {f"adl_{i:02d}": "د) لا يستطيع" for i in range(1, 21)}
        score = aggregate_responses(catalog, responses)[InstrumentId.BRISTOL_ADL]

        assert score.total == 60


class TestGDS15:
    """Tests for GDS-15 totals."""

    def test_all_in_scoring_direction(self, catalog: Catalog) -> None:
        """Test answering every item in its scoring direction gives 15."""
        score = aggregate_responses(catalog, gds_answers(scoring=True))[InstrumentId.GDS15]

        assert score.total == 15
        assert score.coverage_complete

    def test_all_against_scoring_direction(self, catalog: Catalog) -> None:
        """Test answering every item against its direction gives 0."""
        score = aggregate_responses(catalog, gds_answers(scoring=False))[InstrumentId.GDS15]

        assert score.total == 0
        assert score.matched_count == 15

    def test_all_yes(self, catalog: Catalog) -> None:
        """Test all-yes scores the ten yes-direction items."""
        responses = {f"gds_{i:02d}": "Yes" for i in range(1, 16)}
        score = aggregate_responses(catalog, responses)[InstrumentId.GDS15]

        assert score.total == 10


class TestCoverage:
    """Tests for coverage and anomaly reporting."""

    def test_missing_items(self, catalog: Catalog) -> None:
        """Test unanswered items are reported as missing."""
        responses = adl_answers("B")
        del responses["adl_20"]
        score = aggregate_responses(catalog, responses)[InstrumentId.BRISTOL_ADL]

        assert score.missing == ["adl_20"]
        assert score.matched_count == 19
        assert score.coverage == 0.95
        assert not score.coverage_complete

    def test_every_instrument_reported(self, catalog: Catalog) -> None:
        """Test instruments with no answers still appear, fully missing."""
        report = aggregate_responses(catalog, {})

        assert set(report.scores) == set(InstrumentId)
        gds = report[InstrumentId.GDS15]
        assert gds.total == 0
        assert len(gds.missing) == 15
        assert not report.coverage_complete

    def test_unscored_questions_ignored(self, catalog: Catalog) -> None:
        """Test answers to unscored or unknown questions do not affect totals."""
        report = aggregate_responses(
            catalog, {"demo_age": "74", "nonexistent": "A) yes"}
        )

        assert all(score.total == 0 for score in report.scores.values())
        assert report.anomaly_count == 0

    def test_complete_submission(self, catalog: Catalog) -> None:
        """Test a full answer set is complete across all instruments."""
        report = aggregate_responses(catalog, complete_responses())

        assert report.coverage_complete
        assert report[InstrumentId.FUNCTIONAL_STAGE].total == 2
        assert report[InstrumentId.WORD_RECOGNITION].total == 3

    def test_to_dict(self, catalog: Catalog) -> None:
        """Test the report serializes per instrument."""
        data = aggregate_responses(catalog, adl_answers("C")).to_dict()

        assert data["catalog_version"] == "1.0.0"
        adl = data["instruments"]["bristol_adl"]
        assert adl["total"] == 40
        assert adl["coverage"] == 1.0
        assert adl["item_codes"]["adl_01"] == 2


class TestEndToEndScenario:
    """A), C) and free text answers on three ADL items."""

    def test_mixed_answers(self, catalog: Catalog) -> None:
        """Test marker answers score and unreadable free text is an anomaly."""
        responses = {
            "adl_01": "A) Chooses and prepares food appropriately",
            "adl_02": "C) Eats with prompting",
            "adl_03": "Sometimes, it depends on the day",
        }
        score = aggregate_responses(catalog, responses)[InstrumentId.BRISTOL_ADL]

        assert score.total == 2
        assert score.matched_count == 2
        assert score.expected_count == 20
        assert score.anomalies == ["adl_03"]
        assert len(score.missing) == 17
        assert not score.coverage_complete
        assert score.item_codes == {"adl_01": 0, "adl_02": 2, "adl_03": 0}
