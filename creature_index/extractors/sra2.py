"""Shadowrun Anarchy 2 (SRA2) extractor.

SRA2 has no power metric; actors are classified by type (character,
vehicle, ICE) and keywords.
"""

from typing import Any

from ..criteria import CreatureQuery
from ..host import PackInfo
from ..storage.schemas import IndexEntry, SRA2Entry
from .base import (
    CreatureExtractor,
    clean_description,
    first_of,
    has_capacity,
    lookup,
    to_float,
    to_str,
    to_str_list,
)

DESCRIPTION_PATHS = ("details.publicNotes", "details.biography")


class SRA2Extractor(CreatureExtractor):
    """Extracts actor type, essence and keywords for SRA2 actors."""

    system_id = "sra2"
    display_name = "Shadowrun Anarchy 2"
    entry_class = SRA2Entry
    document_types = frozenset({"character", "npc", "vehicle", "ice"})

    def _extract(self, system: dict, document: dict, pack: PackInfo) -> IndexEntry:
        awakened = system.get("awakened")
        has_awakened = isinstance(awakened, dict) and len(awakened) > 0
        has_spells = (
            has_capacity(lookup(system, "awakened.sorcery"))
            or has_capacity(lookup(system, "awakened.spells"))
            or has_capacity(system.get("spells"))
        )

        return SRA2Entry(
            **self.common_fields(document, pack),
            actor_type=str(document.get("type") or "character").lower(),
            essence=to_float(system.get("essence")),
            keywords=to_str_list(system.get("keywords")) or [],
            has_awakened=has_awakened,
            has_spells=has_spells,
            description=clean_description(first_of(system, DESCRIPTION_PATHS, coerce=to_str)),
        )

    def fallback_entry(self, document: Any, pack: PackInfo, **overrides: Any) -> IndexEntry:
        doc_type = document.get("type") if isinstance(document, dict) else None
        return super().fallback_entry(
            document, pack, actor_type=str(doc_type or "character").lower(), **overrides
        )

    def _matches_system(self, entry: IndexEntry, criteria: CreatureQuery) -> bool:
        if criteria.actor_type and entry.actor_type != criteria.actor_type.lower():
            return False

        if criteria.has_awakened is not None and entry.has_awakened != criteria.has_awakened:
            return False

        if criteria.keyword:
            needle = criteria.keyword.lower()
            if not any(needle in keyword.lower() for keyword in entry.keywords):
                return False

        return True

    def describe(self, entry: IndexEntry) -> str:
        return f"{entry.actor_type} from {entry.pack_label}"

    def system_stats(self, entry: IndexEntry) -> dict[str, Any]:
        return {
            "actor_type": entry.actor_type,
            "essence": entry.essence,
            "keywords": list(entry.keywords),
            "has_awakened": entry.has_awakened,
        }
