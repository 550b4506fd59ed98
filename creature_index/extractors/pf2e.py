"""Pathfinder 2nd Edition extractor."""

from typing import Any

from ..criteria import CreatureQuery
from ..host import PackInfo
from ..storage.schemas import IndexEntry, PF2eEntry
from .base import (
    CreatureExtractor,
    clean_description,
    first_of,
    lookup,
    normalize_size,
    to_int,
    to_str,
    to_str_list,
)

# Traits that name a creature's kind rather than a quality
CREATURE_TYPE_TRAITS = frozenset(
    {
        "aberration",
        "animal",
        "astral",
        "beast",
        "celestial",
        "construct",
        "dragon",
        "elemental",
        "ethereal",
        "fey",
        "fiend",
        "fungus",
        "giant",
        "humanoid",
        "monitor",
        "ooze",
        "plant",
        "spirit",
        "undead",
    }
)

DESCRIPTION_PATHS = ("details.publicNotes", "details.blurb", "details.biography")


class PF2eExtractor(CreatureExtractor):
    """Extracts level, traits and rarity for Pathfinder 2e actors."""

    system_id = "pf2e"
    display_name = "Pathfinder 2nd Edition"
    entry_class = PF2eEntry

    def _extract(self, system: dict, document: dict, pack: PackInfo) -> IndexEntry:
        traits = to_str_list(lookup(system, "traits.value")) or []
        creature_type = next(
            (t.lower() for t in traits if t.lower() in CREATURE_TYPE_TRAITS),
            "unknown",
        )
        rarity = (first_of(system, ("traits.rarity",), coerce=to_str) or "common").lower()
        alignment = first_of(system, ("details.alignment",), coerce=to_str, default="N")

        spellcasting = system.get("spellcasting")
        has_spells = isinstance(spellcasting, dict) and len(spellcasting) > 0

        return PF2eEntry(
            **self.common_fields(document, pack),
            level=first_of(system, ("details.level",), coerce=to_int, default=0),
            traits=traits,
            creature_type=creature_type,
            rarity=rarity,
            size=normalize_size(lookup(system, "traits.size")),
            alignment=alignment.upper(),
            has_spells=has_spells,
            hit_points=first_of(system, ("attributes.hp.max",), coerce=to_int, default=0),
            armor_class=first_of(system, ("attributes.ac",), coerce=to_int, default=10, skip_empty=True),
            description=clean_description(first_of(system, DESCRIPTION_PATHS, coerce=to_str)),
        )

    def fallback_entry(self, document: Any, pack: PackInfo, **overrides: Any) -> IndexEntry:
        return super().fallback_entry(document, pack, hit_points=1, **overrides)

    def _matches_system(self, entry: IndexEntry, criteria: CreatureQuery) -> bool:
        if criteria.traits:
            entry_traits = {t.lower() for t in entry.traits}
            if not all(t.lower() in entry_traits for t in criteria.traits):
                return False

        if criteria.rarity and entry.rarity != criteria.rarity.lower():
            return False

        return True

    def describe(self, entry: IndexEntry) -> str:
        return f"Level {entry.level} {entry.creature_type} ({entry.rarity}) from {entry.pack_label}"

    def system_stats(self, entry: IndexEntry) -> dict[str, Any]:
        return {
            "level": entry.level,
            "traits": list(entry.traits),
            "creature_type": entry.creature_type,
            "rarity": entry.rarity,
            "alignment": entry.alignment,
            "hit_points": entry.hit_points,
            "armor_class": entry.armor_class,
        }
