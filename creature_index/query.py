"""Creature queries against the enhanced index.

When the index cannot be used (disabled, unsupported system, build failure)
queries degrade to a plain name search over pack listings and the summary
says so.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from .builder import IndexBuilder
from .config import ENABLE_ENHANCED_INDEX, QUERY_DEFAULT_LIMIT, QUERY_MAX_LIMIT, SETTING_ENHANCED_INDEX
from .criteria import CreatureQuery
from .errors import PersistenceError
from .storage.schemas import IndexEntry

logger = logging.getLogger(__name__)

SEARCH_METHOD_INDEX = "enhanced_persistent_index"
SEARCH_METHOD_FALLBACK = "basic_fallback"

TOP_PACKS_SAMPLE = 5


@dataclass
class QueryResult:
    """Matching creatures plus a summary of how they were found."""

    creatures: list[dict[str, Any]] = field(default_factory=list)
    summary: dict[str, Any] = field(default_factory=dict)
    entries: list[IndexEntry] = field(default_factory=list)

    @property
    def fallback(self) -> bool:
        return bool(self.summary.get("fallback"))

    def to_dict(self) -> dict[str, Any]:
        return {"creatures": self.creatures, "summary": self.summary}


def sort_key(entry: IndexEntry) -> tuple[float, str, str]:
    """Lowest power first, then by name. Entries without power sort as 0."""
    power = entry.power_level if entry.power_level is not None else 0.0
    return (power, entry.name.lower(), entry.name)


class QueryEngine:
    """Filters, sorts and summarizes indexed creatures."""

    def __init__(
        self,
        builder: IndexBuilder,
        enabled: bool | None = None,
        default_limit: int = QUERY_DEFAULT_LIMIT,
        max_limit: int = QUERY_MAX_LIMIT,
    ):
        self.builder = builder
        self.host = builder.host
        self.registry = builder.registry
        self.enabled = enabled
        self.default_limit = default_limit
        self.max_limit = max_limit

    def is_enabled(self) -> bool:
        if self.enabled is not None:
            return self.enabled
        try:
            value = self.host.get_setting(SETTING_ENHANCED_INDEX, ENABLE_ENHANCED_INDEX)
        except Exception as e:
            logger.debug(f"Could not read {SETTING_ENHANCED_INDEX} setting: {e}")
            return ENABLE_ENHANCED_INDEX
        return bool(value) if value is not None else ENABLE_ENHANCED_INDEX

    def resolve_limit(self, limit: int | None) -> int:
        if not limit or limit < 1:
            limit = self.default_limit
        return min(limit, self.max_limit)

    def query(
        self,
        criteria: CreatureQuery | dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> QueryResult:
        """List creatures matching every given criterion.

        Args:
            criteria: Filters (a CreatureQuery or an equivalent dict)
            limit: Maximum number of results; overrides ``criteria.limit``

        Returns:
            QueryResult sorted by power then name
        """
        if not isinstance(criteria, CreatureQuery):
            criteria = CreatureQuery.model_validate(criteria or {})
        limit = self.resolve_limit(limit or criteria.limit)

        if not self.is_enabled():
            return self.fallback_search(criteria, limit, reason="Enhanced creature index is disabled")

        persisted = True
        try:
            entries = self.builder.get_index()
        except PersistenceError as e:
            if not e.entries:
                logger.error(f"Enhanced creature search failed: {e}")
                return self.fallback_search(criteria, limit, reason=str(e))
            logger.warning(f"Creature index was built but not saved, querying the unsaved entries: {e}")
            entries = list(e.entries)
            persisted = False
        except Exception as e:
            logger.error(f"Enhanced creature search failed: {e}")
            return self.fallback_search(criteria, limit, reason=str(e))

        matches = [entry for entry in entries if self._matches(entry, criteria)]
        matches.sort(key=sort_key)
        selected = matches[:limit]

        return QueryResult(
            creatures=[self._format(entry) for entry in selected],
            entries=selected,
            summary=self._summarize(entries, matches, selected, criteria, limit, persisted),
        )

    def _matches(self, entry: IndexEntry, criteria: CreatureQuery) -> bool:
        extractor = self.registry.get(entry.system)
        if extractor is None:
            return False
        return extractor.matches(entry, criteria)

    def _format(self, entry: IndexEntry) -> dict[str, Any]:
        return self.registry.require(entry.system).format_for_list(entry)

    def _summarize(
        self,
        entries: list[IndexEntry],
        matches: list[IndexEntry],
        selected: list[IndexEntry],
        criteria: CreatureQuery,
        limit: int,
        persisted: bool = True,
    ) -> dict[str, Any]:
        pack_counts = Counter(entry.pack_id for entry in entries)
        pack_labels = {entry.pack_id: entry.pack_label for entry in entries}
        top_packs = [
            {"id": pack_id, "label": pack_labels[pack_id], "count": count}
            for pack_id, count in list(pack_counts.items())[:TOP_PACKS_SAMPLE]
        ]

        return {
            "packs_searched": len(pack_counts),
            "top_packs": top_packs,
            "total_found": len(matches),
            "returned": len(selected),
            "results_by_pack": dict(Counter(entry.pack_label for entry in selected)),
            "criteria": criteria.applied(),
            "limit": limit,
            "fallback": False,
            "search_method": SEARCH_METHOD_INDEX,
            "total_indexed": len(entries),
            "persisted": persisted,
        }

    # =========================================================================
    # Unindexed search
    # =========================================================================

    def search_compendium(
        self,
        query: str,
        limit: int | None = None,
        match_all: bool = True,
    ) -> list[dict[str, Any]]:
        """Name search over the lightweight listings of creature packs.

        Args:
            query: Space-separated search terms (at least 2 characters)
            limit: Maximum number of results
            match_all: Require every term (True) or any term (False)

        Raises:
            ValueError: If the query is too short
        """
        if not query or len(query.strip()) < 2:
            raise ValueError("Search query must be at least 2 characters")

        terms = [term for term in query.lower().split() if term]
        limit = self.resolve_limit(limit)
        combine = all if match_all else any
        results: list[dict[str, Any]] = []

        for pack in self.host.list_creature_packs():
            try:
                listing = self.host.get_pack_index(pack.id)
            except Exception as e:
                logger.warning(f"Failed to load listing for pack {pack.label or pack.id}: {e}")
                continue

            for item in listing:
                name = item.get("name")
                if not isinstance(name, str) or not name.strip():
                    continue
                lowered = name.lower()
                if not combine(term in lowered for term in terms):
                    continue
                results.append(
                    {
                        "id": item.get("_id", ""),
                        "name": name,
                        "type": item.get("type") or "unknown",
                        "pack": pack.id,
                        "pack_label": pack.label or pack.id,
                        "has_image": bool(item.get("img")),
                    }
                )
                if len(results) >= limit:
                    return results

        return results

    def fallback_search(self, criteria: CreatureQuery, limit: int, reason: str = "") -> QueryResult:
        """Best-effort name search used when the index is unavailable."""
        logger.warning(f"Falling back to basic creature search: {reason}")

        terms: list[str] = []
        if criteria.creature_type:
            terms.append(criteria.creature_type)

        power = criteria.power_filter
        if isinstance(power, (int, float)):
            if power >= 15:
                terms.extend(["ancient", "legendary"])
            elif power >= 10:
                terms.extend(["adult", "champion"])
            elif power >= 5:
                terms.extend(["captain", "knight"])

        search_query = " ".join(terms) or "monster"
        try:
            creatures = self.search_compendium(search_query, limit=limit, match_all=False)
        except Exception as e:
            logger.error(f"Basic creature search failed: {e}")
            creatures = []

        return QueryResult(
            creatures=creatures,
            summary={
                "packs_searched": len({c["pack"] for c in creatures}),
                "top_packs": [],
                "total_found": len(creatures),
                "returned": len(creatures),
                "results_by_pack": dict(Counter(c["pack_label"] for c in creatures)),
                "criteria": criteria.applied(),
                "limit": limit,
                "fallback": True,
                "search_method": SEARCH_METHOD_FALLBACK,
                "search_query": search_query,
                "error": reason or None,
            },
        )
