"""Hub detection and context intersection of the two endpoints."""

from collections import Counter

import structlog

from ..config import MAX_COMMON_PARENTS
from ..models import CommonParent, ContextIntersection, HubNode, ScoredPath
from ..repositories import Repositories
from ..utils import folder_of, parse_tags

logger = structlog.get_logger(__name__)


def find_hubs(paths: list[ScoredPath]) -> list[HubNode]:
    """Interior nodes shared by at least two of the given paths.

    Betweenness is the naive proxy occurrences / number of paths.
    """
    if not paths:
        return []

    counts: Counter[str] = Counter()
    for path in paths:
        counts.update(set(path.node_ids[1:-1]))

    hubs = [
        HubNode(node_id=node_id, occurrences=count, betweenness=count / len(paths))
        for node_id, count in counts.items()
        if count >= 2
    ]
    hubs.sort(key=lambda h: (-h.occurrences, h.node_id))
    return hubs


def common_ancestor(path_a: str, path_b: str) -> tuple[str, int]:
    """Longest common folder prefix of two note paths and its depth."""
    parts_a = [p for p in folder_of(path_a).split("/") if p]
    parts_b = [p for p in folder_of(path_b).split("/") if p]
    common: list[str] = []
    for a, b in zip(parts_a, parts_b):
        if a != b:
            break
        common.append(a)
    if not common:
        return "/", 0
    return "/".join(common), len(common)


def shared_tags(tags_a: object, tags_b: object) -> list[str]:
    """Tags present on both sides, case-insensitive, in the first side's order."""
    lowered_b = {tag.lower() for tag in parse_tags(tags_b)}
    return [tag for tag in parse_tags(tags_a) if tag.lower() in lowered_b]


class ContextAnalyzer:
    """Computes what two notes have in common, with or without a path between them."""

    def __init__(self, repositories: Repositories):
        self.repositories = repositories

    async def _reference_counts(self, node_id: str) -> Counter[str]:
        counts: Counter[str] = Counter()
        for edge in await self.repositories.graph_edges.get_all_edges_for_node(node_id):
            other = edge.to_node_id if edge.from_node_id == node_id else edge.from_node_id
            if other != node_id:
                counts[other] += 1
        return counts

    async def common_parents(self, start_id: str, end_id: str) -> list[CommonParent]:
        """Nodes linked to both endpoints, ranked by combined reference count."""
        start_refs = await self._reference_counts(start_id)
        end_refs = await self._reference_counts(end_id)
        shared = (set(start_refs) & set(end_refs)) - {start_id, end_id}

        ranked = sorted(shared, key=lambda n: (-(start_refs[n] + end_refs[n]), n))
        return [
            CommonParent(node_id=node_id, reference_count=start_refs[node_id] + end_refs[node_id])
            for node_id in ranked[:MAX_COMMON_PARENTS]
        ]

    async def analyze(self, start_id: str, end_id: str) -> ContextIntersection:
        metas = await self.repositories.doc_meta.get_by_ids([start_id, end_id])
        start_meta, end_meta = metas.get(start_id), metas.get(end_id)

        ancestor, depth = common_ancestor(
            start_meta.path if start_meta else "",
            end_meta.path if end_meta else "",
        )
        tags = shared_tags(
            start_meta.tags if start_meta else None,
            end_meta.tags if end_meta else None,
        )
        parents = await self.common_parents(start_id, end_id)

        context = ContextIntersection(
            common_ancestor=ancestor,
            ancestor_depth=depth,
            shared_tags=tags,
            common_parents=parents,
            is_distant=depth <= 1 and bool(tags or parents),
        )
        logger.debug(
            "context_analyzed",
            ancestor=ancestor,
            shared_tags=len(tags),
            common_parents=len(parents),
            is_distant=context.is_distant,
        )
        return context
