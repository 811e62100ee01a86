"""Scale normalization and score aggregation for the screening instruments."""

from cogscreen.scoring.aggregator import AggregateReport, InstrumentScore, aggregate_responses
from cogscreen.scoring.normalizer import SCORE_VERSION, ScaleCode, normalize

__all__ = [
    "AggregateReport",
    "InstrumentScore",
    "SCORE_VERSION",
    "ScaleCode",
    "aggregate_responses",
    "normalize",
]
