"""Das Schwarze Auge 5 (DSA5) extractor.

DSA5 has no challenge rating. The power metric is the Erfahrungsgrad
(experience level 1-7), derived from a creature's total adventure points.
"""

from typing import Any, NamedTuple

from ..criteria import CreatureQuery
from ..host import PackInfo
from ..storage.schemas import DSA5Entry, IndexEntry
from .base import (
    CreatureExtractor,
    clean_description,
    first_of,
    has_capacity,
    lookup,
    normalize_size,
    to_int,
    to_str,
    to_str_list,
)


class ExperienceLevel(NamedTuple):
    name: str
    name_en: str
    min_ap: int
    max_ap: float
    level: int


EXPERIENCE_LEVELS = (
    ExperienceLevel("Unerfahren", "Inexperienced", 0, 900, 1),
    ExperienceLevel("Durchschnittlich", "Average", 901, 1800, 2),
    ExperienceLevel("Erfahren", "Experienced", 1801, 2700, 3),
    ExperienceLevel("Kompetent", "Competent", 2701, 3600, 4),
    ExperienceLevel("Meisterlich", "Masterful", 3601, 4500, 5),
    ExperienceLevel("Brillant", "Brilliant", 4501, 5400, 6),
    ExperienceLevel("Legendär", "Legendary", 5401, float("inf"), 7),
)


def get_experience_level(total_ap: int) -> ExperienceLevel:
    """Map total adventure points to an experience level."""
    for level in EXPERIENCE_LEVELS:
        if level.min_ap <= total_ap <= level.max_ap:
            return level
    # Negative AP counts as inexperienced
    return EXPERIENCE_LEVELS[0] if total_ap < 0 else EXPERIENCE_LEVELS[-1]


EXPERIENCE_PATHS = ("details.experience.total", "experience.total", "status.experience")
SPECIES_PATHS = ("details.species", "species", "details.type")
CULTURE_PATHS = ("details.culture", "culture")
PROFESSION_PATHS = ("details.career", "details.profession", "career")
SIZE_PATHS = ("status.size", "size")
LIFE_POINT_PATHS = ("status.wounds.max", "status.wounds.current", "wounds.max")
MELEE_DEFENSE_PATHS = ("status.defense", "defense")
RANGED_DEFENSE_PATHS = ("status.rangeDefense", "rangeDefense")
ARMOR_PATHS = ("status.armour", "status.armor")
TRAIT_PATHS = ("details.traits.value", "traits.value")
RARITY_PATHS = ("details.rarity", "rarity")
DESCRIPTION_PATHS = ("details.notes", "details.biography")


class DSA5Extractor(CreatureExtractor):
    """Extracts experience level, species, culture and combat values for DSA5 actors."""

    system_id = "dsa5"
    display_name = "Das Schwarze Auge 5"
    entry_class = DSA5Entry
    document_types = frozenset({"npc", "character", "creature"})

    def _extract(self, system: dict, document: dict, pack: PackInfo) -> IndexEntry:
        experience_points = first_of(system, EXPERIENCE_PATHS, coerce=to_int, default=0)
        melee_defense = first_of(system, MELEE_DEFENSE_PATHS, coerce=to_int, default=10)

        has_astral_energy = has_capacity(lookup(system, "status.astralenergy.max"))
        has_karma_energy = has_capacity(lookup(system, "status.karmaenergy.max"))
        has_spells = (
            has_astral_energy
            or has_karma_energy
            or has_capacity(system.get("spells"))
            or has_capacity(system.get("liturgies"))
            or has_capacity(lookup(system, "details.tradition"))
        )

        return DSA5Entry(
            **self.common_fields(document, pack),
            level=get_experience_level(experience_points).level,
            experience_points=experience_points,
            species=first_of(system, SPECIES_PATHS, coerce=to_str, default="Unbekannt"),
            culture=first_of(system, CULTURE_PATHS, coerce=to_str, default="Keine"),
            profession=first_of(system, PROFESSION_PATHS, coerce=to_str),
            size=normalize_size(first_of(system, SIZE_PATHS, coerce=to_str)),
            life_points=first_of(system, LIFE_POINT_PATHS, coerce=to_int, default=1),
            melee_defense=melee_defense,
            ranged_defense=first_of(system, RANGED_DEFENSE_PATHS, coerce=to_int, default=melee_defense),
            armor=first_of(system, ARMOR_PATHS, coerce=to_int, default=0),
            has_spells=has_spells,
            has_astral_energy=has_astral_energy,
            has_karma_energy=has_karma_energy,
            traits=first_of(system, TRAIT_PATHS, coerce=to_str_list, default=[]),
            rarity=first_of(system, RARITY_PATHS, coerce=to_str),
            description=clean_description(first_of(system, DESCRIPTION_PATHS, coerce=to_str)),
        )

    def _matches_system(self, entry: IndexEntry, criteria: CreatureQuery) -> bool:
        if criteria.species and entry.species.lower() != criteria.species.lower():
            return False

        if criteria.culture and criteria.culture.lower() not in entry.culture.lower():
            return False

        if criteria.rarity and (entry.rarity or "").lower() != criteria.rarity.lower():
            return False

        if criteria.traits:
            entry_traits = {t.lower() for t in entry.traits}
            if not all(t.lower() in entry_traits for t in criteria.traits):
                return False

        return True

    def describe(self, entry: IndexEntry) -> str:
        experience = EXPERIENCE_LEVELS[entry.level - 1].name if 1 <= entry.level <= 7 else "?"
        return f"Level {entry.level} ({experience}) {entry.species} from {entry.pack_label}"

    def system_stats(self, entry: IndexEntry) -> dict[str, Any]:
        return {
            "level": entry.level,
            "experience_points": entry.experience_points,
            "species": entry.species,
            "culture": entry.culture,
            "profession": entry.profession,
            "life_points": entry.life_points,
            "melee_defense": entry.melee_defense,
            "ranged_defense": entry.ranged_defense,
            "armor": entry.armor,
            "has_astral_energy": entry.has_astral_energy,
            "has_karma_energy": entry.has_karma_energy,
            "traits": list(entry.traits),
        }
