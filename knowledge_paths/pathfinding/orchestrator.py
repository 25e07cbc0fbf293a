"""
Strategy orchestrator.

PathFinder resolves both notes, runs every applicable strategy under one
global timeout, falls back to a relaxed search when nothing is found, then
scores, diversifies, analyzes and formats the result.
"""

import asyncio
from typing import Any

import structlog

from ..config import DEFAULT_ITERATIONS, Settings
from ..config import settings as default_settings
from ..formatter import build_response, format_result
from ..logging import bind_search, clear_search
from ..models import FindPathParams, PathFindingResult, ScoredPath, SearchContext
from ..repositories import Repositories
from ..utils import with_timeout_message
from .analysis import ContextAnalyzer, find_hubs
from .base import PathStrategy
from .brainstorm import BrainstormStrategy
from .fallback import FallbackStrategy
from .fast_track import FastTrackStrategy
from .neighbors import NeighborProvider
from .reliable import ReliableStrategy
from .scoring import PathScorer, dedupe_paths, ensure_strategy_diversity, is_valid_path
from .temporal import TemporalStrategy

logger = structlog.get_logger(__name__)

TIMEOUT_TIPS = (
    "Try these solutions:\n"
    "- Reduce search complexity by using notes with fewer connections\n"
    "- Disable semantic path finding if enabled\n"
    "- Choose different start/end notes with clearer relationships\n"
    "- The search may be exploring too many possible paths"
)


def not_found_message(problems: list[str]) -> str:
    return "# Path Finding Failed\n\n" + "\n".join(problems)


def timeout_message(message: str) -> str:
    return f"# Path Finding Timeout\n\n**{message}**\n\n{TIMEOUT_TIPS}"


def skipped_message(note_path: str) -> str:
    return (
        "# Path Finding Skipped\n\n"
        f'Start and end both resolve to "{note_path}". Pick two different notes to find a path between them.'
    )


class PathFinder:
    """Multi-strategy path finding between two notes of a knowledge graph."""

    def __init__(self, repositories: Repositories, settings: Settings | None = None):
        self.repositories = repositories
        self.settings = settings or default_settings
        self.neighbors = NeighborProvider(repositories)
        self.scorer = PathScorer(repositories)
        self.context_analyzer = ContextAnalyzer(repositories)

    def strategies_for(self, iterations: int) -> list[PathStrategy]:
        """Primary strategies in their fixed order."""
        return [
            ReliableStrategy(self.repositories, self.neighbors, iterations),
            FastTrackStrategy(self.repositories, self.neighbors, iterations),
            BrainstormStrategy(self.repositories, self.neighbors, iterations),
            TemporalStrategy(self.repositories, self.neighbors, timeout=self.settings.temporal_timeout),
        ]

    def fallback_strategy(self) -> PathStrategy:
        return FallbackStrategy(self.repositories, self.neighbors)

    async def find_path(self, params: FindPathParams) -> dict[str, Any] | str:
        """Find diverse paths between two notes.

        Returns a failure message (missing note, same note, timeout) or the
        result packaged for `params.response_format`.
        """
        doc_meta = self.repositories.doc_meta
        start_meta, end_meta = await asyncio.gather(
            doc_meta.get_by_path(params.start_note_path),
            doc_meta.get_by_path(params.end_note_path),
        )
        if start_meta is None or end_meta is None:
            problems = []
            if start_meta is None:
                problems.append(f'Start note "{params.start_note_path}" not found.')
            if end_meta is None:
                problems.append(f'End note "{params.end_note_path}" not found.')
            logger.info("path_finding_note_missing", start_found=start_meta is not None, end_found=end_meta is not None)
            return not_found_message(problems)

        graph_nodes = self.repositories.graph_nodes
        start_node, end_node = await asyncio.gather(
            graph_nodes.get_by_id(start_meta.id),
            graph_nodes.get_by_id(end_meta.id),
        )
        if start_node is None or end_node is None:
            problems = []
            if start_node is None:
                problems.append(f'Start node "{params.start_note_path}" not found in graph.')
            if end_node is None:
                problems.append(f'End node "{params.end_note_path}" not found in graph.')
            logger.info("path_finding_node_missing", start_found=start_node is not None, end_found=end_node is not None)
            return not_found_message(problems)

        if start_node.id == end_node.id:
            return skipped_message(start_meta.path)

        bind_search(params.start_note_path, params.end_note_path)
        try:
            timeout_result = await with_timeout_message(
                self._search(params, start_node.id, end_node.id),
                self.settings.path_finding_timeout,
                f'Path finding from "{params.start_note_path}" to "{params.end_note_path}"',
            )
            if not timeout_result.success:
                logger.warning("path_finding_timeout", timeout=self.settings.path_finding_timeout)
                return timeout_message(timeout_result.message)
            return build_response(params.response_format, timeout_result.data)
        finally:
            clear_search()

    async def run_strategy(self, strategy: PathStrategy, context: SearchContext) -> list[ScoredPath]:
        """Run one strategy; inapplicable or failing strategies contribute nothing."""
        if not strategy.applies_to(context):
            logger.debug("strategy_skipped", strategy=strategy.name)
            return []
        try:
            paths = await strategy.run(context)
        except Exception:
            logger.exception("strategy_failed", strategy=strategy.name)
            return []

        valid = [p for p in paths if is_valid_path(p, context.start_id, context.end_id)]
        if len(valid) != len(paths):
            logger.warning("invalid_paths_dropped", strategy=strategy.name, dropped=len(paths) - len(valid))
        logger.debug("strategy_completed", strategy=strategy.name, paths=len(valid))
        return valid

    async def _search(self, params: FindPathParams, start_id: str, end_id: str) -> PathFindingResult:
        embeddings = self.repositories.embeddings
        start_vector, end_vector = await asyncio.gather(
            embeddings.get_average_embedding_for_doc(start_id),
            embeddings.get_average_embedding_for_doc(end_id),
        )
        context = SearchContext(
            start_id=start_id,
            end_id=end_id,
            start_vector=start_vector,
            end_vector=end_vector,
            max_hops=self.settings.effective_max_hops,
            filters=params.filters,
            include_semantic=params.include_semantic_paths,
        )

        limit = params.limit or self.settings.default_limit
        strategies = self.strategies_for(min(DEFAULT_ITERATIONS, limit))
        if self.settings.parallel_strategies:
            results = await asyncio.gather(*(self.run_strategy(s, context) for s in strategies))
        else:
            results = [await self.run_strategy(s, context) for s in strategies]
        candidates = [path for paths in results for path in paths]

        used_fallback = False
        if not candidates:
            logger.info("fallback_triggered")
            used_fallback = True
            candidates = await self.run_strategy(self.fallback_strategy(), context)

        scored = await self.scorer.score_paths(dedupe_paths(candidates))
        selected = ensure_strategy_diversity(scored, limit)
        hubs = find_hubs(selected)
        intersection = await self.context_analyzer.analyze(start_id, end_id)

        logger.info(
            "path_finding_completed",
            candidates=len(candidates),
            returned=len(selected),
            hubs=len(hubs),
            used_fallback=used_fallback,
        )
        return await format_result(
            self.repositories.graph_nodes,
            params.start_note_path,
            params.end_note_path,
            selected,
            hubs,
            intersection,
            used_fallback=used_fallback,
        )
