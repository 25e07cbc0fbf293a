"""FastTrack strategy: A* guided by semantic distance to the target note.

Edge weights make explicit links cheapest and chains of semantic hops
increasingly expensive. The heuristic is deliberately small (at most 1.0
per node) so it guides exploration instead of dominating it; paths are
not guaranteed to be optimal under the edge weights.
"""

import asyncio
import heapq
import itertools
from dataclasses import dataclass

import structlog

from ..config import (
    ASTAR_EXPANSION_FACTOR,
    CONSECUTIVE_SEMANTIC_EDGE_WEIGHT,
    HEURISTIC_WEIGHT,
    PHYSICAL_EDGE_WEIGHT,
    SEMANTIC_EDGE_WEIGHT,
    SEMANTIC_SIMILARITY_FLOOR,
    SEMANTIC_STREAK_LIMIT,
)
from ..models import ConnectionType, NeighborNode, PathSegment, ScoredPath, SearchContext, Strategy
from ..utils import cosine_similarity, is_forbidden
from .base import PathStrategy

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class AStarNode:
    node_id: str
    g_cost: float
    h_cost: float
    f_cost: float
    parent: "AStarNode | None"
    connection_type: ConnectionType
    similarity: float | None = None
    semantic_streak: int = 0
    depth: int = 0


def edge_weight(neighbor: NeighborNode, semantic_streak: int) -> float:
    """Cost of a hop: physical 1.0, semantic 1.5, consecutive semantic 2.0."""
    if neighbor.found_by is ConnectionType.PHYSICAL:
        return PHYSICAL_EDGE_WEIGHT
    if semantic_streak >= 1:
        return CONSECUTIVE_SEMANTIC_EDGE_WEIGHT
    return SEMANTIC_EDGE_WEIGHT


class FastTrackStrategy(PathStrategy):
    strategy = Strategy.FAST_TRACK

    def applies_to(self, context: SearchContext) -> bool:
        return context.has_vectors

    async def _vectors(self, node_ids: list[str], cache: dict[str, list[float] | None]) -> None:
        missing = [node_id for node_id in dict.fromkeys(node_ids) if node_id not in cache]
        if not missing:
            return
        vectors = await asyncio.gather(
            *(self.repositories.embeddings.get_average_embedding_for_doc(node_id) for node_id in missing)
        )
        cache.update(zip(missing, vectors))

    def calculate_heuristic(self, node_vector: list[float] | None, end_vector: list[float]) -> float:
        """(1 - cosine(node, end)) * HEURISTIC_WEIGHT; unknown vectors count as far."""
        if not node_vector:
            return HEURISTIC_WEIGHT
        return (1.0 - max(0.0, cosine_similarity(node_vector, end_vector))) * HEURISTIC_WEIGHT

    async def run(self, context: SearchContext) -> list[ScoredPath]:
        if not self.applies_to(context):
            return []
        segments = await self.search(context)
        if segments is None:
            return []
        return [self.make_path(segments, insight_label="Fastest route along the semantic gradient")]

    async def search(self, context: SearchContext) -> list[PathSegment] | None:
        if context.start_id == context.end_id:
            return [PathSegment(node_id=context.start_id)]

        end_vector = context.end_vector or []
        vector_cache: dict[str, list[float] | None] = {
            context.start_id: context.start_vector,
            context.end_id: context.end_vector,
        }
        neighbor_filter = self.neighbor_filter(context)
        counter = itertools.count()

        h_start = self.calculate_heuristic(context.start_vector, end_vector)
        root = AStarNode(context.start_id, 0.0, h_start, h_start, None, ConnectionType.PHYSICAL)
        open_heap: list[tuple[float, int, AStarNode]] = [(root.f_cost, next(counter), root)]
        best_g: dict[str, float] = {context.start_id: 0.0}
        closed: set[str] = set()

        max_expansions = context.max_hops * ASTAR_EXPANSION_FACTOR
        max_depth = context.max_hops * 2
        expansions = 0

        while open_heap and expansions < max_expansions:
            _, _, current = heapq.heappop(open_heap)
            if current.node_id in closed:
                continue
            if current.node_id == context.end_id:
                logger.debug("fast_track_found", expansions=expansions, cost=current.g_cost)
                return self.reconstruct(current)

            closed.add(current.node_id)
            expansions += 1
            if current.depth >= max_depth:
                continue

            # Too many semantic hops in a row: only explicit links from here
            allow_semantic = context.include_semantic and current.semantic_streak < SEMANTIC_STREAK_LIMIT
            neighbors = await self.neighbors.get_mixed_neighbors(current.node_id, allow_semantic)
            if neighbor_filter is not None:
                neighbors = await neighbor_filter.apply(neighbors)

            candidates: list[NeighborNode] = []
            for neighbor in neighbors:
                if neighbor.id in closed or is_forbidden(context.forbidden_edges, current.node_id, neighbor.id):
                    continue
                if neighbor.found_by is ConnectionType.SEMANTIC and (neighbor.similarity or 0.0) < SEMANTIC_SIMILARITY_FLOOR:
                    continue
                candidates.append(neighbor)
            await self._vectors([n.id for n in candidates], vector_cache)

            for neighbor in candidates:
                g_cost = current.g_cost + edge_weight(neighbor, current.semantic_streak)
                if g_cost >= best_g.get(neighbor.id, float("inf")):
                    continue
                best_g[neighbor.id] = g_cost

                h_cost = 0.0 if neighbor.id == context.end_id else self.calculate_heuristic(
                    vector_cache.get(neighbor.id), end_vector
                )
                is_semantic = neighbor.found_by is ConnectionType.SEMANTIC
                node = AStarNode(
                    node_id=neighbor.id,
                    g_cost=g_cost,
                    h_cost=h_cost,
                    f_cost=g_cost + h_cost,
                    parent=current,
                    connection_type=neighbor.found_by,
                    similarity=neighbor.similarity,
                    semantic_streak=current.semantic_streak + 1 if is_semantic else 0,
                    depth=current.depth + 1,
                )
                heapq.heappush(open_heap, (node.f_cost, next(counter), node))

        logger.debug("fast_track_exhausted", expansions=expansions)
        return None

    @staticmethod
    def reconstruct(node: AStarNode) -> list[PathSegment]:
        segments: list[PathSegment] = []
        current: AStarNode | None = node
        while current is not None:
            segments.append(PathSegment(
                node_id=current.node_id,
                type=current.connection_type,
                similarity=current.similarity,
            ))
            current = current.parent
        segments.reverse()
        return segments
