"""Temporal strategy: reconstruct how an idea evolved over time.

A unidirectional BFS from the earlier note toward the later one (or
backwards in time when the start is the later note). Each hop must move
forward in time, give or take a sliding window, and each level keeps only
the few nodes closest in time to the target.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime

import structlog

from ..config import (
    TEMPORAL_LEVEL_CAP,
    TEMPORAL_PHYSICAL_LIMIT,
    TEMPORAL_SEMANTIC_LIMIT,
    TEMPORAL_TIMEOUT_SECONDS,
    TEMPORAL_WINDOW_SECONDS,
)
from ..models import ConnectionType, DocMeta, NeighborNode, PathSegment, ScoredPath, SearchContext, Strategy
from ..repositories import Repositories
from ..utils import is_forbidden
from .base import PathStrategy
from .neighbors import NeighborProvider

logger = structlog.get_logger(__name__)


def doc_timestamp(meta: DocMeta | None) -> float | None:
    if meta is None:
        return None
    return meta.mtime if meta.mtime is not None else meta.ctime


def format_day(timestamp: float | None) -> str:
    if timestamp is None:
        return "unknown date"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d")


@dataclass(slots=True)
class TemporalVisit:
    parent_id: str | None
    type: ConnectionType
    similarity: float | None
    timestamp: float


class TemporalStrategy(PathStrategy):
    strategy = Strategy.TEMPORAL

    def __init__(
        self,
        repositories: Repositories,
        neighbors: NeighborProvider | None = None,
        timeout: float = TEMPORAL_TIMEOUT_SECONDS,
        window: float = TEMPORAL_WINDOW_SECONDS,
        level_cap: int = TEMPORAL_LEVEL_CAP,
    ):
        super().__init__(repositories, neighbors)
        self.timeout = timeout
        self.window = window
        self.level_cap = level_cap

    async def run(self, context: SearchContext) -> list[ScoredPath]:
        metas = await self.repositories.doc_meta.get_by_ids([context.start_id, context.end_id])
        start_time = doc_timestamp(metas.get(context.start_id))
        end_time = doc_timestamp(metas.get(context.end_id))
        if start_time is None or end_time is None:
            logger.debug("temporal_skipped", reason="missing_timestamps")
            return []

        forward = start_time <= end_time
        try:
            segments = await asyncio.wait_for(
                self.temporal_bfs(context, start_time, end_time, forward),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("temporal_search_timeout", timeout=self.timeout)
            return []

        if not segments:
            return []

        direction = "forward" if forward else "backward"
        label = (
            f"Thought evolution from {format_day(segments[0].timestamp)} "
            f"to {format_day(segments[-1].timestamp)}"
        )
        return [self.make_path(segments, insight_label=label, reasoning=f"Follows notes {direction} in time")]

    async def temporal_neighbors(self, node_id: str, include_semantic: bool) -> list[NeighborNode]:
        """Physical neighbors first; a few semantic ones only for sparse nodes."""
        return await self.neighbors.get_smart_neighbors(
            node_id,
            include_semantic,
            limit=TEMPORAL_PHYSICAL_LIMIT,
            semantic_limit=TEMPORAL_SEMANTIC_LIMIT,
        )

    def _allowed(self, parent_time: float, timestamp: float, end_time: float, forward: bool) -> bool:
        if forward:
            return timestamp >= parent_time - self.window and timestamp <= end_time + self.window
        return timestamp <= parent_time + self.window and timestamp >= end_time - self.window

    async def temporal_bfs(
        self,
        context: SearchContext,
        start_time: float,
        end_time: float,
        forward: bool,
    ) -> list[PathSegment] | None:
        visited: dict[str, TemporalVisit] = {
            context.start_id: TemporalVisit(None, ConnectionType.PHYSICAL, None, start_time)
        }
        neighbor_filter = self.neighbor_filter(context)
        level = [context.start_id]

        for _ in range(context.max_hops * 2):
            candidates: dict[str, TemporalVisit] = {}
            for node_id in level:
                parent_time = visited[node_id].timestamp
                neighbors = await self.temporal_neighbors(node_id, context.include_semantic)
                if neighbor_filter is not None:
                    neighbors = await neighbor_filter.apply(neighbors)
                metas = await self.repositories.doc_meta.get_by_ids([n.id for n in neighbors])

                for neighbor in neighbors:
                    if neighbor.id in visited or neighbor.id in candidates:
                        continue
                    if is_forbidden(context.forbidden_edges, node_id, neighbor.id):
                        continue

                    if neighbor.id == context.end_id:
                        visited[neighbor.id] = TemporalVisit(node_id, neighbor.found_by, neighbor.similarity, end_time)
                        return self.reconstruct(context.end_id, visited)

                    timestamp = doc_timestamp(metas.get(neighbor.id))
                    if timestamp is None:
                        # Tags and other non-document nodes inherit their parent's time
                        timestamp = parent_time
                    elif not self._allowed(parent_time, timestamp, end_time, forward):
                        continue
                    candidates[neighbor.id] = TemporalVisit(node_id, neighbor.found_by, neighbor.similarity, timestamp)

            if not candidates:
                return None

            ranked = sorted(candidates, key=lambda node_id: abs(candidates[node_id].timestamp - end_time))
            level = ranked[:self.level_cap]
            for node_id in level:
                visited[node_id] = candidates[node_id]

        return None

    @staticmethod
    def reconstruct(end_id: str, visited: dict[str, TemporalVisit]) -> list[PathSegment]:
        segments: list[PathSegment] = []
        current: str | None = end_id
        while current is not None:
            visit = visited[current]
            segments.append(PathSegment(
                node_id=current,
                type=visit.type,
                similarity=visit.similarity,
                timestamp=visit.timestamp,
            ))
            current = visit.parent_id
        segments.reverse()
        return segments
