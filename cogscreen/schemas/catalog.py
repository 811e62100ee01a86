"""Question catalog schemas, localized for display."""

from pydantic import BaseModel

from cogscreen.models.assessment import Language


class QuestionRead(BaseModel):
    """Question as shown to the person filling in the form."""

    id: str
    order: int
    type: str
    text: str
    required: bool
    options: list[str] | None = None
    max_selections: int | None = None
    instrument: str | None = None


class QuestionGroupRead(BaseModel):
    """Questionnaire section."""

    id: str
    order: int
    name: str
    description: str | None = None
    questions: list[QuestionRead]


class InstrumentRead(BaseModel):
    """Scored instrument summary."""

    instrument: str
    kind: str
    name: str
    expected_items: int
    max_total: int


class CatalogRead(BaseModel):
    """Localized catalog."""

    catalog_id: str
    version: str
    content_hash: str
    language: Language
    groups: list[QuestionGroupRead]
    instruments: list[InstrumentRead]
