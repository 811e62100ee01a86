"""YAML question catalog loader with integrity verification."""

import hashlib
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from cogscreen.catalog.models import (
    Catalog,
    Direction,
    LocalizedText,
    OptionSet,
    PhraseTier,
    Question,
    QuestionGroup,
    QuestionType,
    ScaleDefinition,
    ScaleKind,
    ScaleMembership,
)
from cogscreen.core.config import CATALOGS_DIR, settings
from cogscreen.core.errors import CatalogLoadError
from cogscreen.core.logging import get_logger
from cogscreen.models.score import InstrumentId

logger = get_logger(__name__)

# Bristol-style lettered scales always offer A-E
LETTER_OPTION_COUNT = 5


def compute_catalog_hash(content: str) -> str:
    """Compute SHA256 hash of catalog content.

    Stored on every assessment so a score can be traced back to the exact
    catalog text it was computed against.

    Args:
        content: Raw YAML content string

    Returns:
        SHA256 hex digest
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def _text(raw: Any, where: str) -> LocalizedText:
    if isinstance(raw, str):
        return LocalizedText(english=raw, arabic=raw)
    if not isinstance(raw, dict) or "english" not in raw:
        raise CatalogLoadError(f"{where}: expected {{english, arabic}} text")
    return LocalizedText(
        english=str(raw["english"]),
        arabic=str(raw.get("arabic") or raw["english"]),
    )


def _options(raw: Any, where: str) -> OptionSet | None:
    if raw is None:
        return None
    english = tuple(str(o) for o in raw.get("english", []))
    arabic = tuple(str(o) for o in raw.get("arabic", english))
    if len(english) != len(arabic):
        raise CatalogLoadError(
            f"{where}: english and arabic options are not index-aligned "
            f"({len(english)} vs {len(arabic)})"
        )
    return OptionSet(english=english, arabic=arabic)


def _parse_scales(raw: dict[str, Any]) -> dict[InstrumentId, dict[str, Any]]:
    parsed: dict[InstrumentId, dict[str, Any]] = {}
    for key, entry in (raw or {}).items():
        try:
            instrument = InstrumentId(key)
            kind = ScaleKind(entry["kind"])
        except (ValueError, KeyError, TypeError) as e:
            raise CatalogLoadError(f"instrument '{key}': {e}") from e

        try:
            tiers = tuple(
                PhraseTier(
                    option_index=int(tier["option"]),
                    phrases=tuple(str(p).casefold() for p in tier["phrases"]),
                )
                for tier in entry.get("fallback_phrases", [])
            )
        except (ValueError, KeyError, TypeError) as e:
            raise CatalogLoadError(f"instrument '{key}': bad fallback phrase tier: {e}") from e
        parsed[instrument] = {
            "instrument": instrument,
            "kind": kind,
            "name": _text(entry.get("name", key), f"instrument '{key}'"),
            "expected_items": int(entry.get("expected_items", 0)),
            "codes": tuple(int(c) for c in entry.get("codes", [])),
            "stages": int(entry.get("stages", 0)),
            "fallback_phrases": tiers,
        }
    return parsed


def _parse_membership(
    raw: dict[str, Any],
    question_id: str,
    options: OptionSet | None,
    scales: dict[InstrumentId, dict[str, Any]],
) -> ScaleMembership:
    where = f"question '{question_id}'"
    try:
        instrument = InstrumentId(raw["instrument"])
    except (ValueError, KeyError) as e:
        raise CatalogLoadError(f"{where}: unknown instrument {raw!r}") from e
    if instrument not in scales:
        raise CatalogLoadError(f"{where}: instrument '{instrument.value}' is not declared")

    kind = scales[instrument]["kind"]
    direction = None
    if kind == ScaleKind.BINARY:
        if "direction" not in raw:
            raise CatalogLoadError(f"{where}: yes/no scale items need a direction")
        try:
            direction = Direction(str(raw["direction"]).lower())
        except ValueError as e:
            raise CatalogLoadError(f"{where}: {e}") from e

    if kind == ScaleKind.LETTER and (options is None or len(options) != LETTER_OPTION_COUNT):
        raise CatalogLoadError(f"{where}: lettered items need exactly five options")

    correct: list[int] = []
    for answer in raw.get("correct", []):
        index = options.index_of(str(answer)) if options else None
        if index is None:
            raise CatalogLoadError(f"{where}: correct answer '{answer}' is not an option")
        correct.append(index)

    return ScaleMembership(
        instrument=instrument,
        direction=direction,
        correct_options=tuple(correct),
    )


def _max_total(entry: dict[str, Any], questions: list[Question]) -> int:
    kind = entry["kind"]
    if kind == ScaleKind.LETTER:
        return max(entry["codes"], default=0) * entry["expected_items"]
    if kind == ScaleKind.STAGED:
        return entry["stages"] * entry["expected_items"]
    if kind == ScaleKind.BINARY:
        return entry["expected_items"]
    return sum(len(q.scale.correct_options) for q in questions if q.scale)


def build_catalog(document: dict[str, Any], content_hash: str) -> Catalog:
    """Build a typed catalog from a parsed YAML document.

    Raises:
        CatalogLoadError: If the document is structurally invalid
    """
    if not isinstance(document, dict):
        raise CatalogLoadError("catalog document must be a mapping")

    scale_entries = _parse_scales(document.get("instruments", {}))
    groups: list[QuestionGroup] = []
    seen: set[str] = set()
    order = 0

    for group_order, raw_group in enumerate(document.get("groups", []), start=1):
        group_id = raw_group.get("id")
        if not group_id:
            raise CatalogLoadError(f"group #{group_order} has no id")

        questions: list[Question] = []
        for raw_q in raw_group.get("questions", []):
            question_id = raw_q.get("id")
            if not question_id:
                raise CatalogLoadError(f"group '{group_id}' has a question without an id")
            if question_id in seen:
                raise CatalogLoadError(f"duplicate question id '{question_id}'")
            seen.add(question_id)

            where = f"question '{question_id}'"
            try:
                qtype = QuestionType(raw_q.get("type", "text"))
            except ValueError as e:
                raise CatalogLoadError(f"{where}: {e}") from e

            options = _options(raw_q.get("options"), where)
            membership = None
            if raw_q.get("scale"):
                membership = _parse_membership(
                    raw_q["scale"], question_id, options, scale_entries
                )

            order += 1
            questions.append(
                Question(
                    id=question_id,
                    group_id=group_id,
                    order=order,
                    type=qtype,
                    text=_text(raw_q.get("text"), where),
                    required=bool(raw_q.get("required", False)),
                    options=options,
                    scale=membership,
                    max_selections=raw_q.get("max_selections"),
                )
            )

        description = raw_group.get("description")
        groups.append(
            QuestionGroup(
                id=group_id,
                order=group_order,
                name=_text(raw_group.get("name", group_id), f"group '{group_id}'"),
                description=_text(description, f"group '{group_id}'") if description else None,
                questions=tuple(questions),
            )
        )

    scales: dict[InstrumentId, ScaleDefinition] = {}
    all_questions = [q for g in groups for q in g.questions]
    for instrument, entry in scale_entries.items():
        members = [
            q for q in all_questions
            if q.scale is not None and q.scale.instrument == instrument
        ]
        if len(members) != entry["expected_items"]:
            raise CatalogLoadError(
                f"instrument '{instrument.value}' expects {entry['expected_items']} "
                f"items but {len(members)} questions participate"
            )
        if entry["kind"] == ScaleKind.LETTER and len(entry["codes"]) != LETTER_OPTION_COUNT:
            raise CatalogLoadError(f"instrument '{instrument.value}' needs five codes")
        scales[instrument] = ScaleDefinition(max_total=_max_total(entry, members), **entry)

    return Catalog(
        catalog_id=str(document.get("id", "unknown")),
        version=str(document.get("version", "unknown")),
        content_hash=content_hash,
        description=str(document.get("description", "")),
        groups=tuple(groups),
        scales=scales,
    )


def load_catalog(
    filename: str | None = None,
    catalogs_dir: Path | None = None,
) -> Catalog:
    """Load a catalog YAML file and compute its hash.

    Args:
        filename: Catalog file name (defaults to the configured active catalog)
        catalogs_dir: Directory containing catalogs (defaults to /catalogs)

    Returns:
        Parsed and validated catalog

    Raises:
        CatalogLoadError: If the file is missing, not valid YAML or malformed
    """
    filename = filename or settings.active_catalog
    filepath = (catalogs_dir or settings.catalogs_dir) / filename

    if not filepath.exists():
        raise CatalogLoadError(f"Catalog not found: {filepath}")

    content = filepath.read_text(encoding="utf-8")
    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise CatalogLoadError(f"Invalid catalog YAML in {filename}: {e}") from e

    catalog = build_catalog(document, compute_catalog_hash(content))
    logger.info(
        f"Loaded catalog {catalog.catalog_id} v{catalog.version} "
        f"({len(catalog.questions)} questions)"
    )
    return catalog


class CatalogLoader:
    """Stateful catalog loader with caching."""

    def __init__(self, catalogs_dir: Path | None = None) -> None:
        """Initialize loader.

        Args:
            catalogs_dir: Directory containing catalogs
        """
        self.catalogs_dir = catalogs_dir or CATALOGS_DIR
        self._cache: dict[str, Catalog] = {}

    def load(self, filename: str, use_cache: bool = True) -> Catalog:
        """Load a catalog with optional caching."""
        if use_cache and filename in self._cache:
            return self._cache[filename]

        catalog = load_catalog(filename, self.catalogs_dir)
        self._cache[filename] = catalog
        return catalog

    def clear_cache(self) -> None:
        """Clear the catalog cache."""
        self._cache.clear()

    def list_catalogs(self) -> list[str]:
        """List available catalog files."""
        return sorted(f.name for f in self.catalogs_dir.glob("*.yaml"))

    def get_catalog_info(self, filename: str) -> dict[str, Any]:
        """Get metadata about a catalog.

        Returns:
            Dict with id, version, description, hash
        """
        catalog = self.load(filename)
        return {
            "filename": filename,
            "id": catalog.catalog_id,
            "version": catalog.version,
            "description": catalog.description,
            "hash": catalog.content_hash,
        }


@lru_cache
def get_catalog() -> Catalog:
    """Get the configured active catalog (loaded once)."""
    return load_catalog(settings.active_catalog, settings.catalogs_dir)
