"""Scale normalizer: raw answer value -> canonical scale code.

Each scored question belongs to exactly one instrument, and each instrument
has a scale kind that decides how its answers are read:

- letter (Bristol ADL): options A-E, or the Arabic markers أ ب ج د هـ.
  Code table A=0, B=1, C=2, D=3, E (not applicable)=0.
- staged (functional stage): the leading stage number 1-7 is the code.
- binary (GDS-15): Yes/No in either language, scored 1 when the answer
  matches the item's scoring direction.
- selection (word recognition): number of distinct correct words chosen.

Anything that cannot be read is an anomaly: code 0 with ``matched=False``.
Anomalies are data, not errors; the aggregator records them so coverage is
reported honestly.

Every function here is pure. The same question and raw value always give
the same code.
"""

import json
import re
from typing import Any, NamedTuple

from cogscreen.catalog.models import Direction, Question, ScaleDefinition, ScaleKind

# Version of the normalization rules, stored with every score snapshot
SCORE_VERSION = "1.0.0"


class ScaleCode(NamedTuple):
    """Normalized answer: canonical code and whether it was recognized."""

    code: int
    matched: bool


ANOMALY = ScaleCode(0, False)

# Letter markers by option index. The two-character Arabic heh marker must be
# tried before the bare letter.
MARKER_INDEX = {
    "a": 0, "b": 1, "c": 2, "d": 3, "e": 4,
    "أ": 0, "ب": 1, "ج": 2, "د": 3, "هـ": 4, "ه": 4,
}
_MARKER = r"(هـ|[a-eأبجده])"

# "A)", "a )", "(b)", "C.", "ج)", or a bare "C"
_LEADING_MARKER = re.compile(rf"^\s*\(?\s*{_MARKER}\s*(?:[\).:\-]|$)", re.IGNORECASE)
# "(b)" or "ج)" somewhere after other text
_INLINE_MARKER = re.compile(rf"(?<!\w)\(?\s*{_MARKER}\s*\)", re.IGNORECASE)

# \d also matches Arabic-Indic digits, and int() accepts them
_LEADING_INT = re.compile(r"^\s*(\d+)")

YES_TOKENS = frozenset({"yes", "y", "true", "نعم"})
NO_TOKENS = frozenset({"no", "n", "false", "لا"})


def _fold(value: str) -> str:
    return " ".join(value.split()).casefold()


def _as_text(raw_value: Any) -> str | None:
    if raw_value is None or isinstance(raw_value, (list, tuple, dict)):
        return None
    return str(raw_value)


def _letter_code(definition: ScaleDefinition, index: int) -> ScaleCode:
    if 0 <= index < len(definition.codes):
        return ScaleCode(definition.codes[index], True)
    return ANOMALY


def find_letter_marker(text: str) -> int | None:
    """Return the option index of the letter marker in ``text``, if any.

    A marker at the start of the answer wins over one found later.
    """
    match = _LEADING_MARKER.match(text) or _INLINE_MARKER.search(text)
    if match is None:
        return None
    return MARKER_INDEX.get(match.group(1).lower())


def _option_text_index(question: Question, text: str) -> int | None:
    if question.options is None:
        return None
    needle = _fold(text)
    for options in (question.options.english, question.options.arabic):
        for index, option in enumerate(options):
            bare = _LEADING_MARKER.sub("", option, count=1)
            if needle in (_fold(option), _fold(bare)):
                return index
    return None


def normalize_letter(
    definition: ScaleDefinition,
    question: Question,
    raw_value: Any,
) -> ScaleCode:
    """Normalize a lettered (A-E) answer.

    Tried in order: explicit letter marker, exact option text (with or
    without its marker), fallback phrase tiers. The phrase tiers are a
    documented last resort, never the primary path.
    """
    text = _as_text(raw_value)
    if text is None or not text.strip():
        return ANOMALY

    index = find_letter_marker(text)
    if index is not None:
        return _letter_code(definition, index)

    index = _option_text_index(question, text)
    if index is not None:
        return _letter_code(definition, index)

    folded = _fold(text)
    for tier in definition.fallback_phrases:
        if any(phrase in folded for phrase in tier.phrases):
            return _letter_code(definition, tier.option_index)

    return ANOMALY


def normalize_staged(
    definition: ScaleDefinition,
    question: Question,
    raw_value: Any,
) -> ScaleCode:
    """Normalize a staged answer ("4- All of the above...") to its stage number."""
    if isinstance(raw_value, bool):
        return ANOMALY
    if isinstance(raw_value, int):
        stage = raw_value
    else:
        text = _as_text(raw_value)
        match = _LEADING_INT.match(text) if text is not None else None
        if match is None:
            return ANOMALY
        stage = int(match.group(1))

    if 1 <= stage <= definition.stages:
        return ScaleCode(stage, True)
    return ANOMALY


def parse_yes_no(raw_value: Any) -> bool | None:
    """Read a yes/no answer in English or Arabic. Returns None if unreadable."""
    if isinstance(raw_value, bool):
        return raw_value
    text = _as_text(raw_value)
    if text is None:
        return None
    token = _fold(text).strip(" .!،")
    if token in YES_TOKENS:
        return True
    if token in NO_TOKENS:
        return False
    return None


def normalize_binary(
    definition: ScaleDefinition,
    question: Question,
    raw_value: Any,
) -> ScaleCode:
    """Score a yes/no item against the question's scoring direction."""
    answer = parse_yes_no(raw_value)
    if answer is None or question.scale is None or question.scale.direction is None:
        return ANOMALY
    scores_on_yes = question.scale.direction == Direction.YES
    return ScaleCode(1 if answer == scores_on_yes else 0, True)


def parse_selection(raw_value: Any) -> list[str] | None:
    """Decode a multi-select answer (a list or a JSON-encoded list)."""
    if isinstance(raw_value, str):
        try:
            raw_value = json.loads(raw_value)
        except ValueError:
            return None
    if not isinstance(raw_value, (list, tuple)):
        return None
    return [str(item) for item in raw_value]


def normalize_selection(
    definition: ScaleDefinition,
    question: Question,
    raw_value: Any,
) -> ScaleCode:
    """Count the distinct correct options chosen."""
    selected = parse_selection(raw_value)
    if selected is None or question.options is None or question.scale is None:
        return ANOMALY

    correct = set(question.scale.correct_options)
    hits = set()
    for item in selected:
        index = question.options.index_of(item)
        if index is not None and index in correct:
            hits.add(index)
    return ScaleCode(len(hits), True)


_NORMALIZERS = {
    ScaleKind.LETTER: normalize_letter,
    ScaleKind.STAGED: normalize_staged,
    ScaleKind.BINARY: normalize_binary,
    ScaleKind.SELECTION: normalize_selection,
}


def normalize(
    definition: ScaleDefinition,
    question: Question,
    raw_value: Any,
) -> ScaleCode:
    """Normalize one raw answer for a question participating in ``definition``.

    Args:
        definition: Scale definition of the question's instrument
        question: Catalog question (carries direction/correct options)
        raw_value: Answer as submitted or as stored

    Returns:
        ScaleCode(code, matched); unmatched answers are ScaleCode(0, False)
    """
    return _NORMALIZERS[definition.kind](definition, question, raw_value)
