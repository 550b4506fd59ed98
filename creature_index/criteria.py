"""Filter criteria for creature queries."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PowerRange(BaseModel):
    """Inclusive range on the power metric. Either bound may be open."""

    min: float | None = None
    max: float | None = None

    def contains(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


class CreatureQuery(BaseModel):
    """Optional, conjunctive filters for listing creatures.

    Which fields apply depends on the game system: ``challenge_rating`` for
    D&D 5e, ``level`` for Pathfinder 2e and DSA5, ``actor_type``/``keyword``
    for Shadowrun Anarchy 2. Filters that a system does not know are ignored.
    Accepts both snake_case and the camelCase names used by the Foundry module.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    challenge_rating: float | PowerRange | None = Field(default=None, alias="challengeRating")
    level: float | PowerRange | None = None
    creature_type: str | None = Field(default=None, alias="creatureType")
    size: str | None = None
    rarity: str | None = None
    traits: list[str] | None = None
    has_spells: bool | None = Field(default=None, alias="hasSpells")
    has_legendary_actions: bool | None = Field(default=None, alias="hasLegendaryActions")
    species: str | None = None
    culture: str | None = None
    actor_type: str | None = Field(default=None, alias="actorType")
    keyword: str | None = None
    has_awakened: bool | None = Field(default=None, alias="hasAwakened")
    limit: int | None = Field(default=None, ge=1)

    @property
    def power_filter(self) -> float | PowerRange | None:
        """The power-metric filter, whichever name it was given under."""
        if self.challenge_rating is not None:
            return self.challenge_rating
        return self.level

    def applied(self) -> dict[str, Any]:
        """The criteria that were actually specified, for echoing back."""
        return self.model_dump(exclude_none=True, exclude={"limit"})


def matches_power(value: float, power_filter: float | PowerRange) -> bool:
    """Exact match for a number, inclusive range check for a PowerRange."""
    if isinstance(power_filter, PowerRange):
        return power_filter.contains(value)
    return value == power_filter
