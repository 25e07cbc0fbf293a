"""Physical and semantic neighbor lookup."""

from ..config import DEFAULT_NEIGHBOR_LIMIT, SMART_PHYSICAL_THRESHOLD
from ..models import ConnectionType, NeighborNode
from ..repositories import Repositories


class NeighborProvider:
    """Returns the neighbors of a node.

    Physical neighbors come from graph edges (treated as undirected);
    semantic neighbors are nearest embeddings that are not already
    physical neighbors. Missing embeddings or edges give an empty list.
    """

    def __init__(self, repositories: Repositories):
        self.repositories = repositories

    async def get_physical_neighbors(self, node_id: str, limit: int = DEFAULT_NEIGHBOR_LIMIT) -> list[NeighborNode]:
        edges = await self.repositories.graph_edges.get_all_edges_for_node(node_id, limit)
        neighbors: list[NeighborNode] = []
        seen: set[str] = set()
        for edge in edges:
            if edge.from_node_id == node_id:
                other = edge.to_node_id
            elif edge.to_node_id == node_id:
                other = edge.from_node_id
            else:
                continue
            if other == node_id or other in seen:
                continue
            seen.add(other)
            neighbors.append(NeighborNode(id=other, found_by=ConnectionType.PHYSICAL))
        return neighbors

    async def get_semantic_neighbors(
        self,
        node_id: str,
        limit: int,
        exclude_ids: set[str] | None = None,
    ) -> list[NeighborNode]:
        if limit <= 0:
            return []
        vector = await self.repositories.embeddings.get_average_embedding_for_doc(node_id)
        if not vector:
            return []

        exclude_ids = exclude_ids or set()
        # Over-fetch: some hits are the node itself or already physical neighbors
        results = await self.repositories.embeddings.search_similar(vector, limit * 2)
        candidate_ids = [doc_id for doc_id, _ in results if doc_id != node_id and doc_id not in exclude_ids]
        known = await self.repositories.graph_nodes.get_by_ids(list(dict.fromkeys(candidate_ids)))

        neighbors: list[NeighborNode] = []
        seen: set[str] = set()
        for doc_id, similarity in results:
            if doc_id == node_id or doc_id in exclude_ids or doc_id in seen or doc_id not in known:
                continue
            seen.add(doc_id)
            neighbors.append(NeighborNode(
                id=doc_id,
                found_by=ConnectionType.SEMANTIC,
                similarity=max(0.0, min(1.0, similarity)),
            ))
            if len(neighbors) >= limit:
                break
        return neighbors

    async def get_mixed_neighbors(
        self,
        node_id: str,
        include_semantic: bool = True,
        limit: int = DEFAULT_NEIGHBOR_LIMIT,
    ) -> list[NeighborNode]:
        """Physical neighbors first, then semantic ones when requested."""
        neighbors = await self.get_physical_neighbors(node_id, limit)
        if include_semantic:
            physical_ids = {n.id for n in neighbors}
            neighbors += await self.get_semantic_neighbors(
                node_id, max(5, limit - len(neighbors)), physical_ids
            )
        return neighbors

    async def get_smart_neighbors(
        self,
        node_id: str,
        include_semantic: bool = True,
        limit: int = DEFAULT_NEIGHBOR_LIMIT,
        throttle: bool = True,
        semantic_limit: int | None = None,
    ) -> list[NeighborNode]:
        """Like get_mixed_neighbors, but semantic neighbors are only added
        when the node is physically sparse (or throttling is disabled).

        `semantic_limit` caps the semantic neighbors separately; by default
        they fill the room `limit` leaves after the physical ones.
        """
        neighbors = await self.get_physical_neighbors(node_id, limit)
        if include_semantic and (not throttle or len(neighbors) < SMART_PHYSICAL_THRESHOLD):
            physical_ids = {n.id for n in neighbors}
            if semantic_limit is None:
                semantic_limit = max(1, limit - len(neighbors))
            neighbors += await self.get_semantic_neighbors(node_id, semantic_limit, physical_ids)
        return neighbors
