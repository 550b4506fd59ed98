"""Registry of extractors keyed by game-system id.

Supporting a new game system means registering one more
``CreatureExtractor``; nothing else dispatches on the system id.
"""

import logging

from ..errors import UnsupportedSystemError
from .base import CreatureExtractor
from .dnd5e import DnD5eExtractor
from .dsa5 import DSA5Extractor
from .pf2e import PF2eExtractor
from .sra2 import SRA2Extractor

logger = logging.getLogger(__name__)


class ExtractorRegistry:
    """Maps game-system ids to their extractor."""

    def __init__(self, extractors: list[CreatureExtractor] | None = None):
        self._extractors: dict[str, CreatureExtractor] = {}
        for extractor in extractors or []:
            self.register(extractor)

    def register(self, extractor: CreatureExtractor) -> None:
        system_id = extractor.system_id.lower()
        if system_id in self._extractors:
            logger.warning(f"Extractor already registered for {system_id}, overwriting")
        self._extractors[system_id] = extractor
        logger.debug(f"Registered extractor for system: {system_id}")

    def get(self, system_id: str) -> CreatureExtractor | None:
        return self._extractors.get((system_id or "").lower())

    def require(self, system_id: str) -> CreatureExtractor:
        """Get the extractor for a system.

        Raises:
            UnsupportedSystemError: If no extractor is registered
        """
        extractor = self.get(system_id)
        if extractor is None:
            raise UnsupportedSystemError(system_id)
        return extractor

    def has(self, system_id: str) -> bool:
        return self.get(system_id) is not None

    def supported_systems(self) -> list[str]:
        return sorted(self._extractors)

    def clear(self) -> None:
        self._extractors.clear()


def create_default_registry() -> ExtractorRegistry:
    """Registry holding the built-in D&D 5e, PF2e, DSA5 and SRA2 extractors."""
    return ExtractorRegistry(
        [DnD5eExtractor(), PF2eExtractor(), DSA5Extractor(), SRA2Extractor()]
    )


# Global instance
default_registry = create_default_registry()


def get_extractor(system_id: str) -> CreatureExtractor:
    """Look up an extractor in the default registry."""
    return default_registry.require(system_id)
