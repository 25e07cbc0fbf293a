"""
In-memory repository implementations.

Snapshot stores that satisfy the repository protocols. The vault adapter
fills them from the vault cache; tests fill them directly.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence

from .models import DocMeta, DocStatistics, GraphEdge, GraphNode
from .repositories import Repositories
from .utils import PathValidationError, cosine_similarity, validate_note_path


class InMemoryGraphStore:
    """Graph node and edge repository over a fixed snapshot."""

    def __init__(self, nodes: Iterable[GraphNode], edges: Iterable[GraphEdge]):
        self._nodes: dict[str, GraphNode] = {node.id: node for node in nodes}
        self._edges_by_node: dict[str, list[GraphEdge]] = defaultdict(list)
        seen: set[tuple[str, str, str]] = set()
        for edge in edges:
            key = (edge.from_node_id, edge.to_node_id, edge.type)
            if key in seen or edge.from_node_id == edge.to_node_id:
                continue
            seen.add(key)
            self._edges_by_node[edge.from_node_id].append(edge)
            self._edges_by_node[edge.to_node_id].append(edge)

    async def get_by_id(self, node_id: str) -> GraphNode | None:
        return self._nodes.get(node_id)

    async def get_by_ids(self, node_ids: list[str]) -> dict[str, GraphNode]:
        return {node_id: self._nodes[node_id] for node_id in node_ids if node_id in self._nodes}

    async def get_all_edges_for_node(self, node_id: str, limit: int | None = None) -> list[GraphEdge]:
        edges = self._edges_by_node.get(node_id, [])
        if limit is not None and limit > 0:
            return edges[:limit]
        return list(edges)


class InMemoryDocMetaStore:
    """Document metadata repository with path and title lookup."""

    def __init__(self, metas: Iterable[DocMeta]):
        self._by_id: dict[str, DocMeta] = {}
        self._by_path: dict[str, DocMeta] = {}
        for meta in metas:
            self._by_id[meta.id] = meta
            self._by_path[meta.path] = meta

    async def get_by_path(self, path: str) -> DocMeta | None:
        """Find a document by vault-relative path, or by exact title.

        A path with a folder must exist as given (".md" optional); a bare
        title matches a note stem exactly. Traversal and absolute paths
        never match.
        """
        try:
            normalized = validate_note_path(path)
        except PathValidationError:
            return None

        if normalized in self._by_path:
            return self._by_path[normalized]
        if not normalized.endswith(".md") and f"{normalized}.md" in self._by_path:
            return self._by_path[f"{normalized}.md"]
        if "/" in normalized:
            return None

        wanted = normalized.removesuffix(".md").lower()
        for meta_path, meta in sorted(self._by_path.items()):
            if meta_path.rsplit("/", 1)[-1].removesuffix(".md").lower() == wanted:
                return meta
        return None

    async def get_by_ids(self, doc_ids: list[str]) -> dict[str, DocMeta]:
        return {doc_id: self._by_id[doc_id] for doc_id in doc_ids if doc_id in self._by_id}


def average_vectors(vectors: Sequence[Sequence[float]]) -> list[float] | None:
    """Average chunk vectors into one document vector."""
    usable = [v for v in vectors if v]
    if not usable:
        return None
    dimension = len(usable[0])
    usable = [v for v in usable if len(v) == dimension]
    return [sum(column) / len(usable) for column in zip(*usable)]


class InMemoryEmbeddingStore:
    """Per-document averaged embeddings with brute-force similarity search."""

    def __init__(self, embeddings: Mapping[str, Sequence[float] | Sequence[Sequence[float]]]):
        self._vectors: dict[str, list[float]] = {}
        for doc_id, raw in embeddings.items():
            if not raw:
                continue
            if isinstance(raw[0], (list, tuple)):
                vector = average_vectors(raw)  # type: ignore[arg-type]
            else:
                vector = [float(x) for x in raw]  # type: ignore[union-attr]
            if vector:
                self._vectors[doc_id] = vector

    async def get_average_embedding_for_doc(self, doc_id: str) -> list[float] | None:
        return self._vectors.get(doc_id)

    async def search_similar(self, vector: list[float], limit: int) -> list[tuple[str, float]]:
        scored = [
            (doc_id, max(0.0, min(1.0, cosine_similarity(vector, candidate))))
            for doc_id, candidate in self._vectors.items()
        ]
        scored.sort(key=lambda item: (-item[1], item[0]))
        return scored[:limit]


class InMemoryStatisticsStore:
    def __init__(self, statistics: Iterable[DocStatistics]):
        self._stats = {stat.doc_id: stat for stat in statistics}

    async def get_by_doc_ids(self, doc_ids: list[str]) -> dict[str, DocStatistics]:
        return {doc_id: self._stats[doc_id] for doc_id in doc_ids if doc_id in self._stats}


def in_memory_repositories(
    nodes: Iterable[GraphNode],
    edges: Iterable[GraphEdge],
    metas: Iterable[DocMeta] = (),
    embeddings: Mapping[str, Sequence[float] | Sequence[Sequence[float]]] | None = None,
    statistics: Iterable[DocStatistics] = (),
) -> Repositories:
    """Bundle in-memory stores into a Repositories instance."""
    graph = InMemoryGraphStore(nodes, edges)
    return Repositories(
        graph_nodes=graph,
        graph_edges=graph,
        doc_meta=InMemoryDocMetaStore(metas),
        embeddings=InMemoryEmbeddingStore(embeddings or {}),
        doc_statistics=InMemoryStatisticsStore(statistics),
    )
