"""Creature index MCP server."""

import logging
from typing import Any

from ..errors import BuildInProgressError
from ..query import QueryEngine, QueryResult
from ..storage.schemas import CREATURE_SIZES
from .base import MCPServer, ToolDef, ToolParameter, ToolResult

logger = logging.getLogger(__name__)

CRITERIA_FIELDS = (
    "challenge_rating",
    "level",
    "creature_type",
    "size",
    "rarity",
    "traits",
    "has_spells",
    "has_legendary_actions",
    "species",
    "culture",
    "actor_type",
    "keyword",
    "has_awakened",
)


class CreatureIndexServer(MCPServer):
    """MCP server for finding creatures by game-mechanical criteria."""

    def __init__(self, engine: QueryEngine):
        self.engine = engine
        self.builder = engine.builder
        self._tools = self._build_tools()

    def _build_tools(self) -> list[ToolDef]:
        """Build the tool definitions."""
        return [
            ToolDef(
                name="list_creatures_by_criteria",
                description=(
                    "List creatures from the world's compendiums that match game-mechanical criteria "
                    "(challenge rating or level, type, size, spellcasting, ...). Results are sorted "
                    "from weakest to strongest. Use this when building encounters."
                ),
                category="creatures",
                parameters=[
                    ToolParameter(
                        name="challenge_rating",
                        type="number",
                        description="Exact challenge rating (D&D 5e), e.g. 0.25 or 5",
                        required=False,
                    ),
                    ToolParameter(
                        name="level",
                        type="number",
                        description="Exact creature level (Pathfinder 2e, DSA5)",
                        required=False,
                    ),
                    ToolParameter(
                        name="min_power",
                        type="number",
                        description="Minimum challenge rating or level (inclusive)",
                        required=False,
                    ),
                    ToolParameter(
                        name="max_power",
                        type="number",
                        description="Maximum challenge rating or level (inclusive)",
                        required=False,
                    ),
                    ToolParameter(
                        name="creature_type",
                        type="string",
                        description="Creature type (e.g., 'dragon', 'undead', 'humanoid')",
                        required=False,
                    ),
                    ToolParameter(
                        name="size",
                        type="string",
                        description="Creature size",
                        required=False,
                        enum=list(CREATURE_SIZES),
                    ),
                    ToolParameter(
                        name="rarity",
                        type="string",
                        description="Rarity (Pathfinder 2e, DSA5): common, uncommon, rare, unique",
                        required=False,
                    ),
                    ToolParameter(
                        name="traits",
                        type="string",
                        description="Comma-separated traits that must all be present (e.g., 'fire,dragon')",
                        required=False,
                    ),
                    ToolParameter(
                        name="has_spells",
                        type="boolean",
                        description="Only creatures that can (or cannot) cast spells",
                        required=False,
                    ),
                    ToolParameter(
                        name="has_legendary_actions",
                        type="boolean",
                        description="Only creatures with (or without) legendary actions (D&D 5e)",
                        required=False,
                    ),
                    ToolParameter(
                        name="species",
                        type="string",
                        description="Species (DSA5)",
                        required=False,
                    ),
                    ToolParameter(
                        name="culture",
                        type="string",
                        description="Culture, partial match (DSA5)",
                        required=False,
                    ),
                    ToolParameter(
                        name="actor_type",
                        type="string",
                        description="Actor type (Shadowrun Anarchy 2): character, npc, vehicle, ice",
                        required=False,
                    ),
                    ToolParameter(
                        name="keyword",
                        type="string",
                        description="Keyword, partial match (Shadowrun Anarchy 2)",
                        required=False,
                    ),
                    ToolParameter(
                        name="has_awakened",
                        type="boolean",
                        description="Only awakened (magic-capable) actors (Shadowrun Anarchy 2)",
                        required=False,
                    ),
                    ToolParameter(
                        name="limit",
                        type="integer",
                        description="Maximum number of results",
                        required=False,
                        default=50,
                    ),
                ],
            ),
            ToolDef(
                name="search_compendium",
                description="Search creature compendiums by name. Fast, but does not know any statistics.",
                category="creatures",
                parameters=[
                    ToolParameter(
                        name="query",
                        type="string",
                        description="Name search terms (e.g., 'goblin', 'red dragon')",
                    ),
                    ToolParameter(
                        name="limit",
                        type="integer",
                        description="Maximum number of results",
                        required=False,
                        default=20,
                    ),
                    ToolParameter(
                        name="match_all",
                        type="boolean",
                        description="Require every search term (true) or any of them (false)",
                        required=False,
                        default=True,
                    ),
                ],
            ),
            ToolDef(
                name="rebuild_creature_index",
                description="Rebuild the creature index from all compendiums. Slow on large libraries.",
                category="creatures",
                parameters=[
                    ToolParameter(
                        name="force",
                        type="boolean",
                        description="Wait for a running build instead of failing",
                        required=False,
                        default=False,
                    ),
                ],
            ),
            ToolDef(
                name="get_creature_index_status",
                description="Show whether the creature index is built, current and how large it is.",
                category="creatures",
                parameters=[],
            ),
        ]

    def list_tools(self) -> list[ToolDef]:
        """List all available tools."""
        return self._tools

    def call_tool(self, name: str, args: dict[str, Any]) -> ToolResult:
        """Call a tool by name with arguments."""
        try:
            if name == "list_creatures_by_criteria":
                return self._list_creatures(args)
            elif name == "search_compendium":
                return self._search_compendium(
                    args["query"], args.get("limit", 20), args.get("match_all", True)
                )
            elif name == "rebuild_creature_index":
                return self._rebuild(bool(args.get("force", False)))
            elif name == "get_creature_index_status":
                return ToolResult(success=True, data=self.builder.status())
            else:
                return ToolResult(success=False, error=f"Unknown tool: {name}")
        except Exception as e:
            return ToolResult(success=False, error=str(e))

    @staticmethod
    def criteria_from_args(args: dict[str, Any]) -> dict[str, Any]:
        """Translate flat tool arguments into query criteria."""
        criteria = {key: args[key] for key in CRITERIA_FIELDS if args.get(key) is not None}

        traits = criteria.get("traits")
        if isinstance(traits, str):
            criteria["traits"] = [t.strip() for t in traits.split(",") if t.strip()]

        min_power = args.get("min_power")
        max_power = args.get("max_power")
        if (min_power is not None or max_power is not None) and "challenge_rating" not in criteria:
            criteria["level"] = {"min": min_power, "max": max_power}

        return criteria

    def _list_creatures(self, args: dict[str, Any]) -> ToolResult:
        result = self.engine.query(self.criteria_from_args(args), limit=args.get("limit", 50))
        return ToolResult(success=True, data=self._format_result(result))

    def _format_result(self, result: QueryResult) -> str:
        summary = result.summary
        if not result.creatures:
            text = "No creatures match those criteria."
        else:
            lines = [
                f"Found {summary['total_found']} creatures, showing {len(result.creatures)}:",
            ]
            for creature in result.creatures:
                lines.append(f"- {creature['name']}: {creature.get('summary', '')}")
            text = "\n".join(lines)

        if result.fallback:
            text += (
                "\n\nNote: the creature index was unavailable, so this is a name-only search "
                f"for '{summary.get('search_query')}'. Statistics were not checked."
            )
        return text

    def _search_compendium(self, query: str, limit: int, match_all: bool) -> ToolResult:
        results = self.engine.search_compendium(query, limit=limit, match_all=match_all)
        if not results:
            return ToolResult(success=True, data=f"No creatures found for: {query}")
        lines = [f"- {r['name']} ({r['type']}) [{r['pack_label']}]" for r in results]
        return ToolResult(success=True, data="\n".join(lines))

    def _rebuild(self, force: bool) -> ToolResult:
        logger.info(f"Creature index rebuild requested via tool (force={force})")
        try:
            report = self.builder.build(force=force)
        except BuildInProgressError as e:
            return ToolResult(success=False, error=f"{e}. Try again shortly or pass force=true.")
        return ToolResult(success=True, data=report.to_dict())
