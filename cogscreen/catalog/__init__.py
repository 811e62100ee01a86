"""Versioned question catalog."""

from cogscreen.catalog.loader import CatalogLoader, get_catalog, load_catalog
from cogscreen.catalog.models import (
    Catalog,
    Direction,
    LocalizedText,
    OptionSet,
    Question,
    QuestionGroup,
    QuestionType,
    ScaleDefinition,
    ScaleKind,
    ScaleMembership,
)

__all__ = [
    "Catalog",
    "CatalogLoader",
    "Direction",
    "LocalizedText",
    "OptionSet",
    "Question",
    "QuestionGroup",
    "QuestionType",
    "ScaleDefinition",
    "ScaleKind",
    "ScaleMembership",
    "get_catalog",
    "load_catalog",
]
