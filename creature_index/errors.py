"""Exceptions raised by the creature index."""

from typing import Any


class CreatureIndexError(Exception):
    """Base class for creature index errors."""


class UnsupportedSystemError(CreatureIndexError):
    """The active game system has no registered extractor."""

    def __init__(self, system_id: str):
        self.system_id = system_id
        super().__init__(f"Unsupported game system: {system_id}")


class BuildInProgressError(CreatureIndexError):
    """Another index build is running. Retry later or force a rebuild."""

    retryable = True

    def __init__(self, message: str = "Index build already in progress"):
        super().__init__(message)


class PersistenceError(CreatureIndexError):
    """Reading or writing the index snapshot failed.

    When raised from a build, ``entries`` carries the freshly extracted
    entries so the immediate caller can still use them.
    """

    def __init__(self, message: str, entries: list[Any] | None = None):
        super().__init__(message)
        self.entries = entries or []


class SnapshotFormatError(PersistenceError):
    """A stored snapshot could not be decoded."""
