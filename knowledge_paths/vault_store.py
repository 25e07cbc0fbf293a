"""
Vault-backed repositories for Knowledge Paths.

Builds a graph snapshot from the vault cache: one document node per note,
one tag node per tag, and physical edges for resolved wikilinks and tag
membership. Embeddings and open statistics come from the note index file.
"""

from pathlib import Path

import structlog

from .cache import VaultCache
from .models import CachedNote, DocMeta, DocStatistics, GraphEdge, GraphNode
from .repositories import Repositories
from .store import in_memory_repositories
from .utils import load_index

logger = structlog.get_logger(__name__)

TAG_NODE_PREFIX = "tag:"


def _find_note_by_link(link: str, stem_to_note: dict[str, CachedNote]) -> CachedNote | None:
    """Find a note by link text, handling path-style and partial matches.

    Link text may be:
    - Exact stem match: "C_Python" -> C_Python
    - Path-style link: "Concepts/C_Python" -> C_Python
    - Partial match: "Python" -> C_Python (if stem contains "python")
    """
    link_lower = link.lower().removesuffix(".md").rsplit("/", 1)[-1]
    if not link_lower:
        return None

    if link_lower in stem_to_note:
        return stem_to_note[link_lower]

    for stem, note in stem_to_note.items():
        if link_lower in stem:
            return note

    return None


def build_graph(notes: list[CachedNote]) -> tuple[list[GraphNode], list[GraphEdge], list[DocMeta]]:
    """Build graph nodes, physical edges and document metadata from notes."""
    stem_to_note: dict[str, CachedNote] = {}
    for note in sorted(notes, key=lambda n: n.rel_path_str):
        stem_to_note.setdefault(note.stem_lower, note)

    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    metas: list[DocMeta] = []
    tag_nodes: dict[str, GraphNode] = {}

    for note in notes:
        doc_id = note.rel_path_str
        nodes.append(GraphNode(
            id=doc_id,
            type="document",
            label=note.stem,
            attributes={"path": doc_id, "note_type": note.type},
        ))
        metas.append(DocMeta(
            id=doc_id,
            path=doc_id,
            tags=note.tags,
            ctime=note.created,
            mtime=note.mtime,
        ))

        for link in note.links:
            target = _find_note_by_link(link, stem_to_note)
            if target and target.rel_path_str != doc_id:
                edges.append(GraphEdge(from_node_id=doc_id, to_node_id=target.rel_path_str))

        for tag in note.tags:
            tag_id = f"{TAG_NODE_PREFIX}{tag.lower()}"
            if tag_id not in tag_nodes:
                tag_nodes[tag_id] = GraphNode(id=tag_id, type="tag", label=tag)
            edges.append(GraphEdge(from_node_id=doc_id, to_node_id=tag_id))

    nodes.extend(tag_nodes.values())
    return nodes, edges, metas


def load_note_index(index_path: Path, known_ids: set[str]) -> tuple[dict[str, list], list[DocStatistics]]:
    """Read embeddings and statistics for known documents from the note index.

    Index entries look like {"path": ..., "embedding": [...] or [[...], ...],
    "last_open_ts": ..., "open_count": ...}. Unknown paths are ignored.
    """
    try:
        index = load_index(index_path)
    except (OSError, ValueError) as e:
        logger.warning("note_index_unreadable", path=str(index_path), error=str(e))
        return {}, []

    embeddings: dict[str, list] = {}
    statistics: list[DocStatistics] = []
    for entry in index.get("notes", []):
        if not isinstance(entry, dict):
            continue
        doc_id = str(entry.get("path", "")).replace("\\", "/")
        if doc_id not in known_ids:
            continue
        if entry.get("embedding"):
            embeddings[doc_id] = entry["embedding"]
        if entry.get("last_open_ts") is not None or entry.get("open_count"):
            statistics.append(DocStatistics(
                doc_id=doc_id,
                last_open_ts=entry.get("last_open_ts"),
                open_count=int(entry.get("open_count") or 0),
            ))
    return embeddings, statistics


async def build_repositories(cache: VaultCache, index_path: Path) -> Repositories:
    """Snapshot the vault into read-only repositories."""
    notes = await cache.get_notes()
    nodes, edges, metas = build_graph(notes)
    embeddings, statistics = load_note_index(index_path, {meta.id for meta in metas})

    logger.info(
        "vault_snapshot_built",
        documents=len(metas),
        nodes=len(nodes),
        edges=len(edges),
        embeddings=len(embeddings),
    )
    return in_memory_repositories(nodes, edges, metas, embeddings, statistics)
