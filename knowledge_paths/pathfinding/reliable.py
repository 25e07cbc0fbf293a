"""Reliable strategy: physical links only, diversified by blocking key edges."""

import structlog

from ..models import ScoredPath, SearchContext, Strategy
from .base import PathStrategy
from .bidirectional import identify_key_edge

logger = structlog.get_logger(__name__)


class ReliableStrategy(PathStrategy):
    """Runs physical-only bidirectional BFS up to `iterations` times.

    The first iteration finds the most direct explicit connection; each
    later one forbids the previous path's key edge to force an alternative.
    """

    strategy = Strategy.RELIABLE

    async def run(self, context: SearchContext) -> list[ScoredPath]:
        paths: list[ScoredPath] = []
        current = context
        search = self.bidirectional(context, include_semantic=False)

        for iteration in range(self.iterations):
            segments = await search.search(current)
            if not segments:
                break

            label = "Most direct explicit connection" if iteration == 0 else "Alternative explicit route"
            paths.append(self.make_path(segments, insight_label=label))

            key_edge = identify_key_edge(segments)
            if key_edge is None:
                break
            current = current.with_forbidden(key_edge)
            logger.debug("reliable_edge_blocked", edge=key_edge, iteration=iteration)

        return paths
