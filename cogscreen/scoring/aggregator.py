"""Per-instrument score aggregation.

Sums normalized codes for every instrument in the catalog and reports how
much of the instrument the total is based on. A total computed from partial
data is never presented as complete: ``coverage_complete`` is False whenever
fewer answers were matched than the instrument expects.

No severity bands are derived here. Interpretation thresholds belong to a
separately versioned policy layer.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from cogscreen.catalog.models import Catalog
from cogscreen.core.logging import get_logger
from cogscreen.models.score import InstrumentId
from cogscreen.scoring.normalizer import SCORE_VERSION, normalize

logger = get_logger(__name__)


@dataclass
class InstrumentScore:
    """Aggregate for one instrument."""

    instrument: InstrumentId
    total: int = 0
    matched_count: int = 0
    expected_count: int = 0
    max_total: int = 0
    # Question ids answered but not recognized (scored 0)
    anomalies: list[str] = field(default_factory=list)
    # Expected question ids with no response at all
    missing: list[str] = field(default_factory=list)
    item_codes: dict[str, int] = field(default_factory=dict)

    @property
    def coverage(self) -> float:
        """Fraction of expected items that were matched."""
        if self.expected_count == 0:
            return 1.0
        return round(self.matched_count / self.expected_count, 4)

    @property
    def coverage_complete(self) -> bool:
        """True when every expected item was matched."""
        return self.matched_count >= self.expected_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "instrument": self.instrument.value,
            "total": self.total,
            "max_total": self.max_total,
            "matched_count": self.matched_count,
            "expected_count": self.expected_count,
            "coverage": self.coverage,
            "coverage_complete": self.coverage_complete,
            "anomalies": list(self.anomalies),
            "missing": list(self.missing),
            "item_codes": dict(self.item_codes),
        }


@dataclass
class AggregateReport:
    """Scores for all instruments of one assessment."""

    catalog_version: str
    scores: dict[InstrumentId, InstrumentScore]
    score_version: str = SCORE_VERSION

    def __getitem__(self, instrument: InstrumentId | str) -> InstrumentScore:
        return self.scores[InstrumentId(instrument)]

    @property
    def coverage_complete(self) -> bool:
        return all(score.coverage_complete for score in self.scores.values())

    @property
    def anomaly_count(self) -> int:
        return sum(len(score.anomalies) for score in self.scores.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "score_version": self.score_version,
            "catalog_version": self.catalog_version,
            "coverage_complete": self.coverage_complete,
            "instruments": {
                instrument.value: score.to_dict()
                for instrument, score in self.scores.items()
            },
        }


def aggregate_responses(
    catalog: Catalog,
    responses: Mapping[str, Any],
) -> AggregateReport:
    """Aggregate raw responses into per-instrument scores.

    Only questions whose catalog entry carries scale participation are
    considered. Responses to unknown or unscored questions are ignored.

    Args:
        catalog: Catalog the responses were collected against
        responses: Mapping of question id to raw answer value

    Returns:
        AggregateReport with one InstrumentScore per catalog instrument
    """
    scores: dict[InstrumentId, InstrumentScore] = {}

    for instrument, definition in catalog.scales.items():
        score = InstrumentScore(
            instrument=instrument,
            expected_count=definition.expected_items,
            max_total=definition.max_total,
        )

        for question in catalog.scale_questions(instrument):
            if question.id not in responses:
                score.missing.append(question.id)
                continue

            result = normalize(definition, question, responses[question.id])
            score.item_codes[question.id] = result.code
            score.total += result.code
            if result.matched:
                score.matched_count += 1
            else:
                score.anomalies.append(question.id)
                logger.info(
                    f"Normalization anomaly for {question.id}",
                    extra={"instrument": instrument.value},
                )

        scores[instrument] = score

    return AggregateReport(catalog_version=catalog.version, scores=scores)
