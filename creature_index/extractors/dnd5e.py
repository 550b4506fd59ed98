"""D&D 5th Edition extractor."""

from typing import Any

from ..criteria import CreatureQuery
from ..host import PackInfo
from ..storage.schemas import DnD5eEntry, IndexEntry
from .base import (
    CreatureExtractor,
    clean_description,
    first_of,
    format_challenge_rating,
    has_capacity,
    lookup,
    normalize_size,
    to_float,
    to_int,
    to_str,
)

CR_PATHS = (
    "details.cr",
    "cr",
    "attributes.cr",
    "challenge.rating",
    "challenge.cr",
)
# Wrapped {"value": ...} forms are unwrapped by the coercions
CREATURE_TYPE_PATHS = ("details.type", "type", "race", "details.race")
SIZE_PATHS = ("traits.size", "size", "details.size")
HIT_POINT_PATHS = (
    "attributes.hp.max",
    "hp.max",
    "attributes.hp.value",
    "hp.value",
    "health.max",
    "health.value",
)
ARMOR_CLASS_PATHS = ("attributes.ac.value", "ac.value", "attributes.ac", "ac", "armor.value", "armor")
ALIGNMENT_PATHS = ("details.alignment", "alignment")
LEVEL_PATHS = ("details.level", "level")
DESCRIPTION_PATHS = ("details.biography.value", "details.biography", "description.value", "description")

SPELLCASTING_FLAG_PATHS = (
    "attributes.spellcasting",
    "spellcasting",
    "traits.spellcasting",
    "details.spellcaster",
)
LEGENDARY_PATHS = (
    "resources.legact",
    "legendary",
    "resources.legres",
    "details.legendary",
    "traits.legendary",
    "resources.legendary",
)


def _has_spell_slots(system: dict) -> bool:
    spells = system.get("spells")
    if isinstance(spells, dict):
        return any(has_capacity(slot) for slot in spells.values())
    return bool(spells)


class DnD5eExtractor(CreatureExtractor):
    """Extracts challenge rating, creature type and combat stats for D&D 5e actors."""

    system_id = "dnd5e"
    display_name = "D&D 5th Edition"
    entry_class = DnD5eEntry

    def _extract(self, system: dict, document: dict, pack: PackInfo) -> IndexEntry:
        challenge_rating = first_of(system, CR_PATHS, coerce=to_float, default=0.0)
        creature_type = first_of(system, CREATURE_TYPE_PATHS, coerce=to_str, default="unknown")
        alignment = first_of(system, ALIGNMENT_PATHS, coerce=to_str, default="unaligned")

        has_spells = (
            _has_spell_slots(system)
            or (to_float(lookup(system, "details.spellLevel")) or 0) > 0
            or has_capacity(lookup(system, "resources.spell"))
            or any(has_capacity(lookup(system, path)) for path in SPELLCASTING_FLAG_PATHS)
        )
        has_legendary_actions = any(has_capacity(lookup(system, path)) for path in LEGENDARY_PATHS)

        return DnD5eEntry(
            **self.common_fields(document, pack),
            challenge_rating=challenge_rating,
            creature_type=creature_type.lower(),
            size=normalize_size(first_of(system, SIZE_PATHS, coerce=to_str)),
            alignment=alignment.lower(),
            level=first_of(system, LEVEL_PATHS, coerce=to_int),
            has_spells=has_spells,
            has_legendary_actions=has_legendary_actions,
            hit_points=first_of(system, HIT_POINT_PATHS, coerce=to_int, default=0, skip_empty=True),
            armor_class=first_of(system, ARMOR_CLASS_PATHS, coerce=to_int, default=10, skip_empty=True),
            description=clean_description(first_of(system, DESCRIPTION_PATHS, coerce=to_str)),
        )

    def fallback_entry(self, document: Any, pack: PackInfo, **overrides: Any) -> IndexEntry:
        return super().fallback_entry(document, pack, hit_points=1, **overrides)

    def _matches_system(self, entry: IndexEntry, criteria: CreatureQuery) -> bool:
        if criteria.has_legendary_actions is not None:
            if entry.has_legendary_actions != criteria.has_legendary_actions:
                return False
        return True

    def describe(self, entry: IndexEntry) -> str:
        cr = format_challenge_rating(entry.challenge_rating)
        return f"CR {cr} {entry.creature_type} from {entry.pack_label}"

    def system_stats(self, entry: IndexEntry) -> dict[str, Any]:
        return {
            "challenge_rating": entry.challenge_rating,
            "creature_type": entry.creature_type,
            "alignment": entry.alignment,
            "hit_points": entry.hit_points,
            "armor_class": entry.armor_class,
            "has_legendary_actions": entry.has_legendary_actions,
        }
