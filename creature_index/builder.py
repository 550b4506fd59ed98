"""Enhanced creature index builder.

Scans every creature-capable pack, runs each eligible document through the
extractor of the active game system and persists the result as a single
snapshot. At most one build runs at a time.
"""

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from .config import INDEX_BUILD_DEADLINE, INDEX_VERSION
from .errors import BuildInProgressError, PersistenceError
from .extractors.base import CreatureExtractor
from .extractors.registry import ExtractorRegistry, default_registry
from .fingerprint import fingerprint, fingerprints_match
from .host import ContentHost, PackInfo
from .storage.schemas import BuildReport, IndexEntry, IndexMetadata, PackFingerprint, PersistedSnapshot
from .storage.snapshot import SnapshotStore

logger = logging.getLogger(__name__)

# (current pack number, total packs, pack label)
ProgressCallback = Callable[[int, int, str], None]


class BuildState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    FAILED = "failed"


class IndexBuilder:
    """Builds, validates and serves the persisted creature index.

    Build state is an explicit IDLE/BUILDING/FAILED machine guarded by a
    lock. A non-forced build requested while another is running fails with
    ``BuildInProgressError``; a forced one waits for the running build to
    finish. A build running longer than ``build_deadline`` seconds is
    considered abandoned: a new build may start, and the abandoned one is
    never allowed to write its snapshot.
    """

    def __init__(
        self,
        host: ContentHost,
        store: SnapshotStore,
        registry: ExtractorRegistry | None = None,
        progress: ProgressCallback | None = None,
        build_deadline: float = INDEX_BUILD_DEADLINE,
        index_version: str = INDEX_VERSION,
    ):
        self.host = host
        self.store = store
        self.registry = registry or default_registry
        self.progress = progress
        self.build_deadline = build_deadline
        self.index_version = index_version

        self._lock = threading.Lock()
        self._state_changed = threading.Condition(self._lock)
        self._state = BuildState.IDLE
        self._generation = 0
        self._writing = False
        self._build_started_at: float | None = None
        self._last_error: str | None = None
        self._last_report: BuildReport | None = None

    @property
    def state(self) -> BuildState:
        with self._lock:
            return self._state

    @property
    def last_report(self) -> BuildReport | None:
        with self._lock:
            return self._last_report

    # =========================================================================
    # Public API
    # =========================================================================

    def get_index(self) -> list[IndexEntry]:
        """Return cached entries if the snapshot is still valid, else rebuild."""
        snapshot = self.store.load()
        if snapshot is not None and self.is_index_valid(snapshot):
            return list(snapshot.entries)
        return self.rebuild(force=False)

    def rebuild(self, force: bool = False) -> list[IndexEntry]:
        """Rebuild the index unconditionally and return the fresh entries."""
        return self.build(force=force).entries

    def is_index_valid(self, snapshot: PersistedSnapshot) -> bool:
        """Check a snapshot against the live packs and active game system."""
        metadata = snapshot.metadata

        if metadata.version != self.index_version:
            logger.info(f"Index version changed from {metadata.version} to {self.index_version}, index invalidated")
            return False

        current_system = self.host.get_system_id()
        if metadata.game_system != current_system:
            logger.info(f"System changed from {metadata.game_system} to {current_system}, index invalidated")
            return False

        saved = metadata.pack_fingerprints
        live_packs = self.host.list_creature_packs()

        for pack in live_packs:
            saved_fingerprint = saved.get(pack.id)
            if saved_fingerprint is None:
                logger.info(f"New pack {pack.id} not in index, index invalidated")
                return False
            try:
                pack = self.host.ensure_indexed(pack)
            except Exception as e:
                logger.warning(f"Could not load listing for pack {pack.id}: {e}")
                return False
            if not fingerprints_match(fingerprint(pack), saved_fingerprint):
                logger.info(f"Pack {pack.id} changed, index invalidated")
                return False

        live_ids = {pack.id for pack in live_packs}
        for pack_id in saved:
            if pack_id not in live_ids:
                logger.info(f"Pack {pack_id} no longer exists, index invalidated")
                return False

        return True

    def build(self, force: bool = False) -> BuildReport:
        """Run a full build and persist the snapshot.

        Raises:
            BuildInProgressError: If another build is running and force is False
            UnsupportedSystemError: If the active system has no extractor
            PersistenceError: If the snapshot could not be written; the
                extracted entries are attached as ``entries``
        """
        generation = self._begin_build(force)
        started = time.monotonic()
        report: BuildReport | None = None

        try:
            system_id = self.host.get_system_id()
            extractor = self.registry.require(system_id)
            report, fingerprints = self._scan_packs(extractor, system_id)

            snapshot = PersistedSnapshot(
                metadata=IndexMetadata(
                    version=self.index_version,
                    timestamp=int(time.time() * 1000),
                    game_system=system_id,
                    pack_fingerprints=fingerprints,
                    total_entries=len(report.entries),
                    error_count=report.error_count,
                ),
                entries=report.entries,
            )
            report.persisted = self._persist(generation, snapshot)
            report.duration_seconds = time.monotonic() - started
        except PersistenceError as e:
            if report is not None:
                e.entries = list(report.entries)
            logger.error(f"Failed to build creature index: {e}")
            self._finish_build(generation, error=e)
            raise
        except Exception as e:
            logger.error(f"Failed to build creature index: {e}")
            self._finish_build(generation, error=e)
            raise

        self._finish_build(generation, report=report)

        error_text = f" ({report.error_count} extraction errors)" if report.error_count else ""
        logger.info(
            f"{extractor.display_name} creature index complete! {len(report.entries)} creatures "
            f"indexed from {report.packs_total} packs in {report.duration_seconds:.1f}s{error_text}"
        )
        return report

    def status(self) -> dict[str, Any]:
        """Describe the builder state and the stored snapshot."""
        with self._lock:
            state = self._state
            last_error = self._last_error
            last_report = self._last_report
            started = self._build_started_at

        snapshot = self.store.load()
        info: dict[str, Any] = {
            "state": state.value,
            "build_running_for": round(time.monotonic() - started, 1) if started else None,
            "last_error": last_error,
            "last_build": last_report.to_dict() if last_report else None,
            "snapshot": None,
            "snapshot_valid": False,
        }
        if snapshot is not None:
            metadata = snapshot.metadata
            info["snapshot"] = {
                "path": self.store.path,
                "version": metadata.version,
                "timestamp": metadata.timestamp,
                "game_system": metadata.game_system,
                "total_entries": metadata.total_entries,
                "error_count": metadata.error_count,
                "packs": len(metadata.pack_fingerprints),
            }
            try:
                info["snapshot_valid"] = self.is_index_valid(snapshot)
            except Exception as e:
                logger.warning(f"Could not validate index snapshot: {e}")
        return info

    # =========================================================================
    # Pack scanning
    # =========================================================================

    def _scan_packs(
        self, extractor: CreatureExtractor, system_id: str
    ) -> tuple[BuildReport, dict[str, PackFingerprint]]:
        """Extract every eligible document of every creature pack, one pack at a time."""
        packs = self.host.list_creature_packs()
        report = BuildReport(game_system=system_id, packs_total=len(packs))
        fingerprints: dict[str, PackFingerprint] = {}

        logger.info(f"Starting {extractor.display_name} creature index build from {len(packs)} packs...")

        for number, pack in enumerate(packs, start=1):
            self._report_progress(number, len(packs), pack)
            try:
                pack = self.host.ensure_indexed(pack)
                fingerprints[pack.id] = fingerprint(pack)
                documents = self.host.get_documents(pack.id)
            except Exception as e:
                logger.warning(f"Failed to index pack {pack.label or pack.id}, continuing with other packs: {e}")
                report.packs_failed.append(pack.id)
                continue

            for document in documents:
                report.documents_visited += 1
                if not extractor.is_eligible(document):
                    report.documents_skipped += 1
                    continue
                result = extractor.extract(document, pack)
                report.entries.append(result.entry)
                report.error_count += result.errors

            report.packs_processed += 1

        return report, fingerprints

    def _report_progress(self, number: int, total: int, pack: PackInfo) -> None:
        label = pack.label or pack.id
        logger.debug(f"Building creature index: pack {number}/{total} ({label})")
        if self.progress is None:
            return
        try:
            self.progress(number, total, label)
        except Exception as e:
            logger.debug(f"Progress callback failed: {e}")

    # =========================================================================
    # Build state
    # =========================================================================

    def _is_expired(self) -> bool:
        if self._build_started_at is None:
            return False
        return time.monotonic() - self._build_started_at > self.build_deadline

    def _begin_build(self, force: bool) -> int:
        with self._lock:
            # A build past its deadline may be taken over, but not mid-write
            while self._state is BuildState.BUILDING and (self._writing or not self._is_expired()):
                if not force:
                    raise BuildInProgressError()
                logger.info("Forced rebuild waiting for the running index build to finish")
                if self._writing:
                    self._state_changed.wait()
                else:
                    remaining = self.build_deadline - (time.monotonic() - self._build_started_at)
                    self._state_changed.wait(timeout=max(remaining, 0.0))

            if self._state is BuildState.BUILDING:
                logger.warning(
                    f"Index build has been running for over {self.build_deadline:.0f}s, "
                    "treating it as abandoned"
                )

            self._generation += 1
            self._state = BuildState.BUILDING
            self._build_started_at = time.monotonic()
            return self._generation

    def _persist(self, generation: int, snapshot: PersistedSnapshot) -> bool:
        """Write the snapshot unless this build was superseded.

        The write itself runs without the lock; ``_writing`` keeps other
        builds from taking over until it is done.
        """
        with self._lock:
            if generation != self._generation:
                logger.warning("Discarding results of an abandoned index build")
                return False
            self._writing = True
        try:
            self.store.save(snapshot)
        finally:
            with self._lock:
                self._writing = False
                self._state_changed.notify_all()
        return True

    def _finish_build(
        self,
        generation: int,
        report: BuildReport | None = None,
        error: Exception | None = None,
    ) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._state = BuildState.FAILED if error else BuildState.IDLE
            self._build_started_at = None
            self._last_error = str(error) if error else None
            if report is not None:
                self._last_report = report
            self._state_changed.notify_all()
