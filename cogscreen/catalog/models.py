"""Typed question catalog.

The catalog is parsed once from YAML into these frozen structures. Scale
participation is an explicit attribute of each question; nothing at scoring
time looks at question wording to decide which instrument a question feeds.
"""

from dataclasses import dataclass, field
from enum import Enum

from cogscreen.models.assessment import Language
from cogscreen.models.score import InstrumentId


class QuestionType(str, Enum):
    """Declared answer type of a question."""

    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    NUMBER = "number"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATE = "date"
    SCALE = "scale"


class ScaleKind(str, Enum):
    """How an instrument turns an answer into a canonical code."""

    LETTER = "letter"  # Lettered options A-E mapped through a code table
    STAGED = "staged"  # Numbered stage, code is the stage number
    BINARY = "binary"  # Yes/No with a per-item scoring direction
    SELECTION = "selection"  # Multi-select, code counts correct choices


class Direction(str, Enum):
    """Which answer scores 1 on a yes/no item."""

    YES = "yes"
    NO = "no"


@dataclass(frozen=True)
class LocalizedText:
    """English/Arabic text pair."""

    english: str
    arabic: str

    def for_language(self, language: Language | str) -> str:
        """Return the text for a language, falling back to English."""
        if Language(language) == Language.ARABIC and self.arabic:
            return self.arabic
        return self.english


@dataclass(frozen=True)
class OptionSet:
    """Index-aligned option lists, one per language."""

    english: tuple[str, ...]
    arabic: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.english)

    def for_language(self, language: Language | str) -> tuple[str, ...]:
        """Return the options for a language."""
        if Language(language) == Language.ARABIC:
            return self.arabic
        return self.english

    def index_of(self, value: str) -> int | None:
        """Find the option index whose text equals ``value`` in either language.

        Comparison ignores case and surrounding whitespace.
        """
        needle = value.strip().casefold()
        for options in (self.english, self.arabic):
            for index, option in enumerate(options):
                if option.strip().casefold() == needle:
                    return index
        return None


@dataclass(frozen=True)
class PhraseTier:
    """Fallback phrase fragments that identify one option index."""

    option_index: int
    phrases: tuple[str, ...]


@dataclass(frozen=True)
class ScaleDefinition:
    """Scoring definition for one instrument."""

    instrument: InstrumentId
    kind: ScaleKind
    name: LocalizedText
    expected_items: int
    max_total: int
    # Option index -> canonical code (letter scales)
    codes: tuple[int, ...] = ()
    # Number of stages (staged scales)
    stages: int = 0
    # Ordered fallback tiers, checked first to last (letter scales)
    fallback_phrases: tuple[PhraseTier, ...] = ()


@dataclass(frozen=True)
class ScaleMembership:
    """Marks a question as an item of an instrument."""

    instrument: InstrumentId
    direction: Direction | None = None
    # Option indexes counted as correct (selection scales)
    correct_options: tuple[int, ...] = ()


@dataclass(frozen=True)
class Question:
    """A single catalog question."""

    id: str
    group_id: str
    order: int
    type: QuestionType
    text: LocalizedText
    required: bool = False
    options: OptionSet | None = None
    scale: ScaleMembership | None = None
    max_selections: int | None = None


@dataclass(frozen=True)
class QuestionGroup:
    """Ordered section of the questionnaire."""

    id: str
    order: int
    name: LocalizedText
    description: LocalizedText | None
    questions: tuple[Question, ...]


@dataclass(frozen=True)
class Catalog:
    """A loaded, versioned question catalog."""

    catalog_id: str
    version: str
    content_hash: str
    description: str
    groups: tuple[QuestionGroup, ...]
    scales: dict[InstrumentId, ScaleDefinition] = field(compare=False)
    _questions: dict[str, Question] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        index = {q.id: q for group in self.groups for q in group.questions}
        object.__setattr__(self, "_questions", index)

    @property
    def questions(self) -> list[Question]:
        """All questions in catalog order."""
        return [q for group in self.groups for q in group.questions]

    def question(self, question_id: str) -> Question | None:
        """Look up a question by id."""
        return self._questions.get(question_id)

    def scale(self, instrument: InstrumentId | str) -> ScaleDefinition:
        """Get an instrument's scale definition."""
        return self.scales[InstrumentId(instrument)]

    def scale_questions(self, instrument: InstrumentId | str) -> list[Question]:
        """Questions participating in an instrument, in catalog order."""
        instrument = InstrumentId(instrument)
        return [
            q for q in self.questions
            if q.scale is not None and q.scale.instrument == instrument
        ]

    def expected_items(self, instrument: InstrumentId | str) -> int:
        """Number of items an instrument expects (e.g. 20 for Bristol ADL)."""
        return self.scale(instrument).expected_items
