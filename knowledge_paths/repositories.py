"""
Read-only repository interfaces consumed by the path finding engine.

The engine never reaches for a global store: a Repositories bundle is
injected into PathFinder, so any backend (the vault snapshot shipped here,
a database, test doubles) can serve it.
"""

from dataclasses import dataclass
from typing import Protocol

from .models import DocMeta, DocStatistics, GraphEdge, GraphNode


class GraphNodeRepository(Protocol):
    async def get_by_id(self, node_id: str) -> GraphNode | None: ...

    async def get_by_ids(self, node_ids: list[str]) -> dict[str, GraphNode]: ...


class GraphEdgeRepository(Protocol):
    async def get_all_edges_for_node(self, node_id: str, limit: int | None = None) -> list[GraphEdge]: ...


class DocMetaRepository(Protocol):
    async def get_by_path(self, path: str) -> DocMeta | None: ...

    async def get_by_ids(self, doc_ids: list[str]) -> dict[str, DocMeta]: ...


class EmbeddingRepository(Protocol):
    async def get_average_embedding_for_doc(self, doc_id: str) -> list[float] | None: ...

    async def search_similar(self, vector: list[float], limit: int) -> list[tuple[str, float]]:
        """Return (doc_id, similarity) pairs, most similar first."""
        ...


class DocStatisticsRepository(Protocol):
    async def get_by_doc_ids(self, doc_ids: list[str]) -> dict[str, DocStatistics]: ...


@dataclass(frozen=True)
class Repositories:
    graph_nodes: GraphNodeRepository
    graph_edges: GraphEdgeRepository
    doc_meta: DocMetaRepository
    embeddings: EmbeddingRepository
    doc_statistics: DocStatisticsRepository
