"""Enhanced Creature Index - persistent, game-system aware creature index for Foundry VTT compendiums."""

from .builder import BuildState, IndexBuilder
from .errors import (
    BuildInProgressError,
    CreatureIndexError,
    PersistenceError,
    SnapshotFormatError,
    UnsupportedSystemError,
)
from .host import ContentHost, LocalPackHost, PackInfo
from .invalidation import InvalidationListener
from .query import QueryEngine, QueryResult
from .criteria import CreatureQuery, PowerRange

__all__ = [
    "BuildState",
    "IndexBuilder",
    "BuildInProgressError",
    "CreatureIndexError",
    "PersistenceError",
    "SnapshotFormatError",
    "UnsupportedSystemError",
    "ContentHost",
    "LocalPackHost",
    "PackInfo",
    "InvalidationListener",
    "QueryEngine",
    "QueryResult",
    "CreatureQuery",
    "PowerRange",
]
