"""Brainstorm strategy: surface bridges between knowledge domains (folders)."""

import structlog

from ..config import BRAINSTORM_SEMANTIC_THRESHOLD
from ..models import ConnectionType, NeighborNode, PathSegment, ScoredPath, SearchContext, Strategy
from ..utils import format_similarity
from .base import PathStrategy
from .bidirectional import NeighborOrder, identify_key_edge

logger = structlog.get_logger(__name__)


def semantic_quality(segments: list[PathSegment]) -> float | None:
    """Average similarity of the semantic hops, None when there are none."""
    similarities = [
        s.similarity for s in segments[1:]
        if s.type is ConnectionType.SEMANTIC and s.similarity is not None
    ]
    if not similarities:
        return None
    return sum(similarities) / len(similarities)


class BrainstormStrategy(PathStrategy):
    """Biases the search toward neighbors outside the target's folder and
    keeps only paths that cross domains or ride strong semantic links."""

    strategy = Strategy.BRAINSTORM

    def applies_to(self, context: SearchContext) -> bool:
        return context.include_semantic

    def domain_preference(self, avoid_folder: str) -> NeighborOrder:
        """Order neighbors so those outside `avoid_folder` are explored first."""

        async def order(neighbors: list[NeighborNode]) -> list[NeighborNode]:
            folders = await self.folders_for([n.id for n in neighbors])
            # Stable sort keeps physical-before-semantic within each group
            return sorted(neighbors, key=lambda n: folders.get(n.id, avoid_folder) == avoid_folder)

        return order

    async def run(self, context: SearchContext) -> list[ScoredPath]:
        if not self.applies_to(context):
            return []

        folders = await self.folders_for([context.start_id, context.end_id])
        start_folder = folders.get(context.start_id, "")
        end_folder = folders.get(context.end_id, "")
        search = self.bidirectional(context, include_semantic=True)

        paths: list[ScoredPath] = []
        current = context
        for iteration in range(self.iterations):
            prefer_cross = iteration == 0 or start_folder == end_folder
            order = self.domain_preference(end_folder) if prefer_cross else None
            segments = await search.search(current, order)
            if not segments:
                break

            label = await self.insight_for(segments)
            if label is not None:
                paths.append(self.make_path(segments, insight_label=label))
            else:
                logger.debug("brainstorm_path_rejected", length=len(segments) - 1, iteration=iteration)

            key_edge = identify_key_edge(segments)
            if key_edge is None:
                break
            current = current.with_forbidden(key_edge)

        return paths

    async def insight_for(self, segments: list[PathSegment]) -> str | None:
        """Insight message for an accepted path, None when the path is rejected."""
        folders = await self.folders_for([s.node_id for s in segments])
        domains: list[str] = []
        for segment in segments:
            folder = folders.get(segment.node_id)
            if folder is not None and folder not in domains:
                domains.append(folder)

        if len(domains) > 1:
            names = " ↔ ".join(d or "(vault root)" for d in domains)
            if len(domains) >= 3:
                return f"Cross-domain insight spanning {len(domains)} domains: {names}"
            return f"Bridge between two domains: {names}"

        quality = semantic_quality(segments)
        if quality is not None and quality > BRAINSTORM_SEMANTIC_THRESHOLD:
            return f"Strong conceptual bridge (avg similarity {format_similarity(quality)})"
        return None
