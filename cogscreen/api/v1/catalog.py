"""Question catalog endpoints for the form front end."""

from fastapi import APIRouter, Query, status

from cogscreen.api.deps import CatalogDep
from cogscreen.catalog.models import Catalog, Question
from cogscreen.models.assessment import Language
from cogscreen.schemas.catalog import (
    CatalogRead,
    InstrumentRead,
    QuestionGroupRead,
    QuestionRead,
)

router = APIRouter()


def _question_read(question: Question, language: Language) -> QuestionRead:
    return QuestionRead(
        id=question.id,
        order=question.order,
        type=question.type.value,
        text=question.text.for_language(language),
        required=question.required,
        options=list(question.options.for_language(language)) if question.options else None,
        max_selections=question.max_selections,
        instrument=question.scale.instrument.value if question.scale else None,
    )


def localize_catalog(catalog: Catalog, language: Language) -> CatalogRead:
    """Render the catalog in one language."""
    groups = [
        QuestionGroupRead(
            id=group.id,
            order=group.order,
            name=group.name.for_language(language),
            description=group.description.for_language(language) if group.description else None,
            questions=[_question_read(q, language) for q in group.questions],
        )
        for group in catalog.groups
    ]
    instruments = [
        InstrumentRead(
            instrument=definition.instrument.value,
            kind=definition.kind.value,
            name=definition.name.for_language(language),
            expected_items=definition.expected_items,
            max_total=definition.max_total,
        )
        for definition in catalog.scales.values()
    ]
    return CatalogRead(
        catalog_id=catalog.catalog_id,
        version=catalog.version,
        content_hash=catalog.content_hash,
        language=language,
        groups=groups,
        instruments=instruments,
    )


@router.get(
    "",
    response_model=CatalogRead,
    status_code=status.HTTP_200_OK,
    summary="Get question catalog",
    description="Active catalog with questions and options in the requested language",
)
async def get_catalog_definition(
    catalog: CatalogDep,
    language: Language = Query(Language.ENGLISH, description="english or arabic"),
) -> CatalogRead:
    """Get the active question catalog.

    Public so the form can render before the respondent is identified.
    """
    return localize_catalog(catalog, language)
