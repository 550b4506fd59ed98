"""Data schemas for the enhanced creature index."""

from dataclasses import dataclass, field
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

CreatureSize = Literal["tiny", "small", "medium", "large", "huge", "gargantuan"]

CREATURE_SIZES: tuple[str, ...] = ("tiny", "small", "medium", "large", "huge", "gargantuan")


class PackFingerprint(BaseModel):
    """Lightweight change-detection digest for one content pack.

    Only ``document_count`` and ``checksum`` take part in validity checks;
    ``last_modified`` is informational.
    """

    pack_id: str = ""
    pack_label: str = ""
    last_modified: int = 0  # epoch milliseconds
    document_count: int = 0
    checksum: str = ""


class IndexEntry(BaseModel):
    """Fields shared by every indexed creature, whatever the game system."""

    id: str
    name: str
    document_type: str  # Foundry actor type ("npc", "character", ...)
    pack_id: str
    pack_label: str
    size: CreatureSize = "medium"
    has_spells: bool = False
    has_image: bool = False
    img: str | None = None
    description: str = ""

    @property
    def power_level(self) -> float | None:
        """Scalar used to rank creatures (CR, level), or None."""
        return None

    @property
    def type_label(self) -> str:
        """Short classification shown in result lists."""
        return self.document_type


class DnD5eEntry(IndexEntry):
    """D&D 5e creature summary."""

    system: Literal["dnd5e"] = "dnd5e"
    challenge_rating: float = 0.0
    creature_type: str = "unknown"
    alignment: str = "unaligned"
    level: int | None = None  # player characters only
    has_legendary_actions: bool = False
    hit_points: int = 0
    armor_class: int = 10

    @property
    def power_level(self) -> float | None:
        return self.challenge_rating

    @property
    def type_label(self) -> str:
        return self.creature_type


class PF2eEntry(IndexEntry):
    """Pathfinder 2e creature summary."""

    system: Literal["pf2e"] = "pf2e"
    level: int = 0  # -1 to 25+
    traits: list[str] = Field(default_factory=list)
    creature_type: str = "unknown"
    rarity: str = "common"
    alignment: str = "N"
    hit_points: int = 0
    armor_class: int = 10

    @property
    def power_level(self) -> float | None:
        return float(self.level)

    @property
    def type_label(self) -> str:
        return self.creature_type


class DSA5Entry(IndexEntry):
    """Das Schwarze Auge 5 creature summary."""

    system: Literal["dsa5"] = "dsa5"
    level: int = 1  # Erfahrungsgrad 1-7
    experience_points: int = 0
    species: str = "Unbekannt"
    culture: str = "Keine"
    profession: str | None = None
    life_points: int = 1
    melee_defense: int = 10
    ranged_defense: int = 10
    armor: int = 0
    has_astral_energy: bool = False
    has_karma_energy: bool = False
    traits: list[str] = Field(default_factory=list)
    rarity: str | None = None

    @property
    def power_level(self) -> float | None:
        return float(self.level)

    @property
    def type_label(self) -> str:
        return self.species


class SRA2Entry(IndexEntry):
    """Shadowrun Anarchy 2 actor summary (characters, vehicles, drones, ICE)."""

    system: Literal["sra2"] = "sra2"
    actor_type: str = "character"
    essence: float | None = None
    keywords: list[str] = Field(default_factory=list)
    has_awakened: bool = False

    @property
    def type_label(self) -> str:
        return self.actor_type


AnyIndexEntry = Annotated[
    Union[DnD5eEntry, PF2eEntry, DSA5Entry, SRA2Entry],
    Field(discriminator="system"),
]


class IndexMetadata(BaseModel):
    """Metadata recorded alongside each persisted index build."""

    version: str
    timestamp: int  # epoch milliseconds
    game_system: str
    pack_fingerprints: dict[str, PackFingerprint] = Field(default_factory=dict)
    total_entries: int = 0
    error_count: int = 0


class PersistedSnapshot(BaseModel):
    """The unit written to and read from storage."""

    metadata: IndexMetadata
    entries: list[AnyIndexEntry] = Field(default_factory=list)


@dataclass
class ExtractionResult:
    """Outcome of extracting one document. Never persisted."""

    entry: IndexEntry
    errors: int = 0


@dataclass
class BuildReport:
    """Summary of one index build."""

    game_system: str
    entries: list[IndexEntry] = field(default_factory=list)
    error_count: int = 0
    packs_total: int = 0
    packs_processed: int = 0
    packs_failed: list[str] = field(default_factory=list)
    documents_visited: int = 0
    documents_skipped: int = 0
    duration_seconds: float = 0.0
    persisted: bool = False

    def to_dict(self) -> dict:
        return {
            "game_system": self.game_system,
            "total_entries": len(self.entries),
            "error_count": self.error_count,
            "packs_total": self.packs_total,
            "packs_processed": self.packs_processed,
            "packs_failed": list(self.packs_failed),
            "documents_visited": self.documents_visited,
            "documents_skipped": self.documents_skipped,
            "duration_seconds": round(self.duration_seconds, 3),
            "persisted": self.persisted,
        }
