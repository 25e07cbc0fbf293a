"""Caller-supplied neighbor filters applied at every expansion step."""

import re
import time
from collections.abc import Callable, Iterable
from functools import lru_cache

import structlog

from ..models import DocMeta, FilterSpec, GraphNode, NeighborNode
from ..repositories import Repositories
from ..utils import parse_tags

logger = structlog.get_logger(__name__)

DAY_SECONDS = 24 * 3600


@lru_cache(maxsize=128)
def _compile(pattern: str) -> re.Pattern | None:
    try:
        return re.compile(pattern)
    except re.error:
        logger.warning("invalid_path_filter_regex", pattern=pattern)
        return None


def path_matches(path: str, path_filter: str) -> bool:
    """Prefix match when the filter starts with "/", regex search otherwise.

    An invalid regex is treated as a literal prefix.
    """
    normalized = path.lstrip("/")
    if path_filter.startswith("/"):
        return normalized.startswith(path_filter.lstrip("/"))
    pattern = _compile(path_filter)
    if pattern is None:
        return normalized.startswith(path_filter)
    return pattern.search(normalized) is not None


class NeighborFilter:
    """Filters and sorts candidate neighbors using one batched metadata lookup.

    Fields a node lacks (e.g. tag nodes have no path or timestamps) do not
    exclude it. Protected ids (the search endpoints) always pass.
    """

    def __init__(
        self,
        repositories: Repositories,
        spec: FilterSpec,
        protected_ids: Iterable[str] = (),
        clock: Callable[[], float] = time.time,
    ):
        self.repositories = repositories
        self.spec = spec
        self.protected_ids = set(protected_ids)
        self.clock = clock

    def _include(self, node: GraphNode | None, meta: DocMeta | None, now: float) -> bool:
        spec = self.spec
        path = (node.path if node else None) or (meta.path if meta else None)

        if path is not None and spec.type != "all":
            is_note = path.lower().endswith(".md")
            if spec.type == "note" and not is_note:
                return False
            if spec.type == "file" and is_note:
                return False

        if path is not None and spec.path and not path_matches(path, spec.path):
            return False

        if meta is not None:
            if spec.modified_within_days and meta.mtime is not None:
                if meta.mtime < now - spec.modified_within_days * DAY_SECONDS:
                    return False
            if spec.created_within_days and meta.ctime is not None:
                if meta.ctime < now - spec.created_within_days * DAY_SECONDS:
                    return False
            if spec.tags:
                wanted = {t.lower().lstrip("#") for t in spec.tags}
                if not wanted & {t.lower() for t in parse_tags(meta.tags)}:
                    return False

        return True

    async def apply(self, neighbors: list[NeighborNode]) -> list[NeighborNode]:
        if not neighbors:
            return neighbors
        ids = list(dict.fromkeys(n.id for n in neighbors))
        nodes = await self.repositories.graph_nodes.get_by_ids(ids)
        metas = await self.repositories.doc_meta.get_by_ids(ids)
        now = self.clock()

        kept = [
            n for n in neighbors
            if n.id in self.protected_ids or self._include(nodes.get(n.id), metas.get(n.id), now)
        ]

        if self.spec.sorter:
            field, direction = self.spec.sorter.rsplit("_", 1)

            def sort_value(neighbor: NeighborNode) -> float:
                meta = metas.get(neighbor.id)
                if meta is None:
                    return 0.0
                value = meta.mtime if field == "modified" else meta.ctime
                return value or 0.0

            kept.sort(key=sort_value, reverse=direction == "desc")

        return kept
