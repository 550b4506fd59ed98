"""Base class and field helpers for game-system extractors.

Raw creature documents are untyped nested dicts whose shape varies between
systems and content authors. Each extractor reads a field by trying an
explicit, ordered list of dotted paths; the first value that survives
coercion wins, otherwise the documented default is used.
"""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any

from ..config import DESCRIPTION_MAX_LENGTH
from ..criteria import CreatureQuery, matches_power
from ..host import PackInfo
from ..storage.schemas import ExtractionResult, IndexEntry

logger = logging.getLogger(__name__)

FALLBACK_DESCRIPTION = "Data extraction failed"

_MISSING = object()

SIZE_ALIASES = {
    "tiny": "tiny",
    "sm": "small",
    "small": "small",
    "med": "medium",
    "medium": "medium",
    "average": "medium",
    "lg": "large",
    "large": "large",
    "huge": "huge",
    "grg": "gargantuan",
    "gargantuan": "gargantuan",
    # DSA5 (German)
    "winzig": "tiny",
    "klein": "small",
    "mittel": "medium",
    "groß": "large",
    "gross": "large",
    "riesig": "huge",
    "gigantisch": "gargantuan",
}

_HTML_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# Path lookup
# =============================================================================


def lookup(tree: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts. Returns None if any step is missing."""
    node = tree
    for key in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(key, _MISSING)
        if node is _MISSING:
            return None
    return node


def first_of(
    tree: Any,
    paths: Iterable[str],
    coerce: Callable[[Any], Any] | None = None,
    default: Any = None,
    skip_empty: bool = False,
) -> Any:
    """Return the first usable value found along ``paths``.

    A value is skipped when it is None, when ``coerce`` turns it into None,
    or (with ``skip_empty``) when it is falsy, e.g. 0 or "".
    """
    for path in paths:
        value = lookup(tree, path)
        if value is None:
            continue
        if coerce is not None:
            value = coerce(value)
            if value is None:
                continue
        if skip_empty and not value:
            continue
        return value
    return default


# =============================================================================
# Coercions (return None when the value is unusable)
# =============================================================================


def _unwrap(value: Any) -> Any:
    """Foundry often wraps scalars as {"value": ...}."""
    while isinstance(value, dict):
        if "value" not in value:
            return None
        value = value["value"]
    return value


def to_float(value: Any) -> float | None:
    """Parse numbers, numeric strings and fractions such as "1/4"."""
    value = _unwrap(value)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if "/" in text:
            numerator, _, denominator = text.partition("/")
            try:
                number = float(numerator) / float(denominator)
            except (ValueError, ZeroDivisionError):
                return None
        else:
            try:
                number = float(text)
            except ValueError:
                return None
    else:
        return None
    if number != number:  # NaN
        return None
    return number


def to_int(value: Any) -> int | None:
    number = to_float(value)
    return int(number) if number is not None else None


def to_str(value: Any) -> str | None:
    value = _unwrap(value)
    if value is None or isinstance(value, (list, dict)):
        return None
    text = str(value).strip()
    return text or None


def to_str_list(value: Any) -> list[str] | None:
    """Accept a list, a set-like dict of flags, or a single string."""
    value = _unwrap(value) if isinstance(value, dict) and "value" in value else value
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    return None


def has_capacity(value: Any) -> bool:
    """Truthiness for resource-like fields.

    Resource dicts such as {"value": 0, "max": 0} exist on every actor, so a
    dict only counts when it holds a positive amount or other content.
    """
    if isinstance(value, dict):
        amounts = [to_float(value.get(key)) for key in ("max", "value") if key in value]
        amounts = [a for a in amounts if a is not None]
        if amounts:
            return any(a > 0 for a in amounts)
        return bool(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value > 0
    return bool(value)


def normalize_size(value: Any, default: str = "medium") -> str:
    text = to_str(value)
    if text is None:
        return default
    return SIZE_ALIASES.get(text.lower(), default)


def clean_description(value: Any, max_length: int = DESCRIPTION_MAX_LENGTH) -> str:
    """Strip markup and truncate a description."""
    text = to_str(value)
    if not text:
        return ""
    text = _WHITESPACE.sub(" ", _HTML_TAG.sub(" ", text)).strip()
    if len(text) > max_length:
        text = text[: max_length - 3].rstrip() + "..."
    return text


def format_challenge_rating(cr: float) -> str:
    fractions = {0.125: "1/8", 0.25: "1/4", 0.5: "1/2"}
    if cr in fractions:
        return fractions[cr]
    return str(int(cr)) if float(cr).is_integer() else str(cr)


# =============================================================================
# Extractor interface
# =============================================================================


class CreatureExtractor(ABC):
    """Maps raw creature documents of one game system to index entries."""

    system_id: str = ""
    display_name: str = ""
    entry_class: type[IndexEntry] = IndexEntry
    document_types: frozenset[str] = frozenset({"npc", "character"})

    def is_eligible(self, document: Any) -> bool:
        """Only creature-like document types are indexed."""
        if not isinstance(document, dict):
            return False
        return str(document.get("type") or "").lower() in self.document_types

    def extract(self, document: Any, pack: PackInfo) -> ExtractionResult:
        """Extract one document. Never raises.

        On failure the document still yields an entry, built from minimal
        defaults and flagged with ``errors=1``.
        """
        try:
            system = document.get("system") or {}
            entry = self._extract(system, document, pack)
            return ExtractionResult(entry=entry, errors=0)
        except Exception as e:
            name = document.get("name") if isinstance(document, dict) else None
            logger.warning(
                f"Failed to extract {self.system_id} data from {name or 'unknown document'} "
                f"in {pack.label or pack.id}: {e}"
            )
            return ExtractionResult(entry=self.fallback_entry(document, pack), errors=1)

    @abstractmethod
    def _extract(self, system: dict, document: dict, pack: PackInfo) -> IndexEntry:
        """Build the entry from the document's ``system`` data."""
        ...

    def common_fields(self, document: Any, pack: PackInfo) -> dict[str, Any]:
        """Fields shared by every system; safe on malformed documents."""
        doc = document if isinstance(document, dict) else {}
        img = doc.get("img") if isinstance(doc.get("img"), str) else None
        return {
            "id": str(doc.get("_id") or doc.get("id") or ""),
            "name": str(doc.get("name") or "Unknown"),
            "document_type": str(doc.get("type") or ""),
            "pack_id": pack.id,
            "pack_label": pack.label or pack.id,
            "img": img or None,
            "has_image": bool(img),
        }

    def fallback_entry(self, document: Any, pack: PackInfo, **overrides: Any) -> IndexEntry:
        """Minimal entry used when extraction fails."""
        fields = self.common_fields(document, pack)
        fields.update(size="medium", has_spells=False, description=FALLBACK_DESCRIPTION)
        fields.update(overrides)
        return self.entry_class(**fields)

    # -------------------------------------------------------------------------
    # Filtering and display
    # -------------------------------------------------------------------------

    def matches(self, entry: IndexEntry, criteria: CreatureQuery) -> bool:
        """Check an entry against every criterion this system understands."""
        power = criteria.power_filter
        if power is not None and entry.power_level is not None:
            if not matches_power(entry.power_level, power):
                return False

        if criteria.size:
            wanted = criteria.size.strip().lower()
            if entry.size != SIZE_ALIASES.get(wanted, wanted):
                return False

        if criteria.has_spells is not None and entry.has_spells != criteria.has_spells:
            return False

        if criteria.creature_type and entry.type_label.lower() != criteria.creature_type.lower():
            return False

        return self._matches_system(entry, criteria)

    def _matches_system(self, entry: IndexEntry, criteria: CreatureQuery) -> bool:
        return True

    @abstractmethod
    def describe(self, entry: IndexEntry) -> str:
        """One-line summary, e.g. "CR 5 dragon from Monster Manual"."""
        ...

    def system_stats(self, entry: IndexEntry) -> dict[str, Any]:
        """System-specific fields shown in result lists."""
        return {}

    def format_for_list(self, entry: IndexEntry) -> dict[str, Any]:
        return {
            "id": entry.id,
            "name": entry.name,
            "type": entry.document_type,
            "pack": entry.pack_id,
            "pack_label": entry.pack_label,
            "summary": self.describe(entry),
            "size": entry.size,
            "has_spells": entry.has_spells,
            "has_image": entry.has_image,
            "description": entry.description,
            **self.system_stats(entry),
        }
