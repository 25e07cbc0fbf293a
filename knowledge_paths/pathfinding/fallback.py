"""Fallback strategy: last resort when every other strategy came back empty."""

import structlog

from ..config import FALLBACK_MIN_HOPS
from ..models import ScoredPath, SearchContext, Strategy
from .base import PathStrategy

logger = structlog.get_logger(__name__)

FALLBACK_REASONING = (
    "Degraded result: found by a relaxed search (semantic links forced on, "
    "no blocked edges, extended hop limit) after all primary strategies failed"
)


class FallbackStrategy(PathStrategy):
    strategy = Strategy.FALLBACK

    def relaxed(self, context: SearchContext) -> SearchContext:
        return context.model_copy(update={
            "forbidden_edges": frozenset(),
            "include_semantic": True,
            "max_hops": max(FALLBACK_MIN_HOPS, context.max_hops * 2),
        })

    async def run(self, context: SearchContext) -> list[ScoredPath]:
        relaxed = self.relaxed(context)
        logger.info("fallback_search_started", max_hops=relaxed.max_hops)
        segments = await self.bidirectional(relaxed, include_semantic=True).search(relaxed)
        if not segments:
            return []
        return [self.make_path(
            segments,
            insight_label="Best-effort connection",
            reasoning=FALLBACK_REASONING,
        )]
