"""Game-system extractors for creature documents."""

from .base import CreatureExtractor, FALLBACK_DESCRIPTION
from .dnd5e import DnD5eExtractor
from .dsa5 import DSA5Extractor
from .pf2e import PF2eExtractor
from .sra2 import SRA2Extractor
from .registry import ExtractorRegistry, create_default_registry, default_registry, get_extractor

__all__ = [
    "CreatureExtractor",
    "FALLBACK_DESCRIPTION",
    "DnD5eExtractor",
    "DSA5Extractor",
    "PF2eExtractor",
    "SRA2Extractor",
    "ExtractorRegistry",
    "create_default_registry",
    "default_registry",
    "get_extractor",
]
