"""Two-frontier breadth-first search with forbidden-edge support.

Shared by the Reliable, Brainstorm and Fallback strategies. The two
frontiers expand alternately, one BFS level per side per hop, and the
search stops at the first node seen from both sides.
"""

from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..models import ConnectionType, NeighborNode, PathSegment, SearchContext
from ..utils import edge_key, is_forbidden
from .filters import NeighborFilter

NeighborFetcher = Callable[[str], Awaitable[list[NeighborNode]]]
NeighborOrder = Callable[[list[NeighborNode]], Awaitable[list[NeighborNode]]]


@dataclass(slots=True)
class VisitRecord:
    """First-visit record: the parent toward this side's root and the hop type."""

    parent_id: str | None
    type: ConnectionType
    similarity: float | None = None


Visited = dict[str, VisitRecord]


class BidirectionalSearch:
    def __init__(self, fetch_neighbors: NeighborFetcher, neighbor_filter: NeighborFilter | None = None):
        self.fetch_neighbors = fetch_neighbors
        self.neighbor_filter = neighbor_filter

    async def search(self, context: SearchContext, order: NeighborOrder | None = None) -> list[PathSegment] | None:
        """Find one path from start to end, or None.

        Args:
            context: Endpoints, hop limit and forbidden edges
            order: Optional re-ordering of each neighbor list (search bias)
        """
        if context.start_id == context.end_id:
            return [PathSegment(node_id=context.start_id)]

        start_visited: Visited = {context.start_id: VisitRecord(None, ConnectionType.PHYSICAL)}
        end_visited: Visited = {context.end_id: VisitRecord(None, ConnectionType.PHYSICAL)}
        start_queue: deque[str] = deque([context.start_id])
        end_queue: deque[str] = deque([context.end_id])

        hops = 0
        while start_queue and end_queue and hops < context.max_hops:
            for _ in range(len(start_queue)):
                intersect_id = await self.expand_frontier(start_queue, start_visited, end_visited, context, order)
                if intersect_id is not None:
                    return reconstruct_path(intersect_id, start_visited, end_visited)

            for _ in range(len(end_queue)):
                intersect_id = await self.expand_frontier(end_queue, end_visited, start_visited, context, order)
                if intersect_id is not None:
                    return reconstruct_path(intersect_id, start_visited, end_visited)

            hops += 1

        return None

    async def expand_frontier(
        self,
        queue: deque[str],
        my_visited: Visited,
        other_visited: Visited,
        context: SearchContext,
        order: NeighborOrder | None = None,
    ) -> str | None:
        """Pop one node and visit its neighbors; return the collision id if any."""
        if not queue:
            return None
        current_id = queue.popleft()

        neighbors = await self.fetch_neighbors(current_id)
        if self.neighbor_filter is not None:
            neighbors = await self.neighbor_filter.apply(neighbors)
        if order is not None:
            neighbors = await order(neighbors)

        for neighbor in neighbors:
            if is_forbidden(context.forbidden_edges, current_id, neighbor.id):
                continue
            if neighbor.id in my_visited:
                continue

            my_visited[neighbor.id] = VisitRecord(current_id, neighbor.found_by, neighbor.similarity)
            queue.append(neighbor.id)

            if neighbor.id in other_visited:
                return neighbor.id

        return None


def reconstruct_path(intersect_id: str, start_visited: Visited, end_visited: Visited) -> list[PathSegment]:
    """Join both search trees at the intersection, start to end.

    Each segment carries the type of the hop that reaches it from the
    previous segment; the intersection appears once.
    """
    start_part: list[PathSegment] = []
    current: str | None = intersect_id
    while current is not None:
        record = start_visited[current]
        start_part.append(PathSegment(node_id=current, type=record.type, similarity=record.similarity))
        current = record.parent_id
    start_part.reverse()

    # On the end side the hop between a node and its parent is recorded on the node
    end_part: list[PathSegment] = []
    current = intersect_id
    while end_visited[current].parent_id is not None:
        record = end_visited[current]
        end_part.append(PathSegment(node_id=record.parent_id, type=record.type, similarity=record.similarity))
        current = record.parent_id

    return start_part + end_part


def _percent(similarity: float | None) -> float:
    return similarity * 100 if similarity is not None else 0.0


def edge_blocking_score(first: PathSegment, second: PathSegment) -> float:
    """Blocking value of the edge between two adjacent segments.

    physical-physical: 100 + similarity%, semantic-semantic: similarity%,
    mixed: 50 + 0.5 * similarity%.
    """
    similarity = max(_percent(first.similarity), _percent(second.similarity))
    physical = (first.type is ConnectionType.PHYSICAL, second.type is ConnectionType.PHYSICAL)
    if all(physical):
        return 100 + similarity
    if not any(physical):
        return similarity
    return 50 + similarity * 0.5


def identify_key_edge(path: list[PathSegment]) -> str | None:
    """Return the edge key with the highest blocking score, None for trivial paths."""
    if len(path) < 2:
        return None

    best_edge: str | None = None
    best_score = -1.0
    for current, following in zip(path, path[1:]):
        score = edge_blocking_score(current, following)
        if score > best_score:
            best_score = score
            best_edge = edge_key(current.node_id, following.node_id)
    return best_edge
