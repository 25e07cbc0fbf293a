"""Common plumbing for path finding strategies."""

from ..config import DEFAULT_ITERATIONS
from ..models import PathSegment, ScoredPath, SearchContext, Strategy
from ..repositories import Repositories
from ..utils import folder_of
from .bidirectional import BidirectionalSearch
from .filters import NeighborFilter
from .neighbors import NeighborProvider


class PathStrategy:
    """A strategy turns a SearchContext into zero or more ScoredPath candidates.

    Scores are filled in later by the orchestrator; strategies only set
    segments, insight label and reasoning.
    """

    strategy: Strategy

    def __init__(
        self,
        repositories: Repositories,
        neighbors: NeighborProvider | None = None,
        iterations: int = DEFAULT_ITERATIONS,
    ):
        self.repositories = repositories
        self.neighbors = neighbors or NeighborProvider(repositories)
        self.iterations = iterations

    @property
    def name(self) -> str:
        return self.strategy.value

    def applies_to(self, context: SearchContext) -> bool:
        return True

    async def run(self, context: SearchContext) -> list[ScoredPath]:
        raise NotImplementedError

    def neighbor_filter(self, context: SearchContext) -> NeighborFilter | None:
        if context.filters is None:
            return None
        return NeighborFilter(
            self.repositories,
            context.filters,
            protected_ids=(context.start_id, context.end_id),
        )

    def bidirectional(self, context: SearchContext, include_semantic: bool) -> BidirectionalSearch:
        async def fetch(node_id: str):
            return await self.neighbors.get_mixed_neighbors(node_id, include_semantic)

        return BidirectionalSearch(fetch, self.neighbor_filter(context))

    def make_path(self, segments: list[PathSegment], insight_label: str = "", reasoning: str = "") -> ScoredPath:
        return ScoredPath(
            segments=segments,
            strategy=self.strategy,
            insight_label=insight_label,
            reasoning=reasoning,
        )

    async def folders_for(self, node_ids: list[str]) -> dict[str, str]:
        """Folder of each document node; non-document nodes are omitted."""
        metas = await self.repositories.doc_meta.get_by_ids(list(dict.fromkeys(node_ids)))
        return {doc_id: folder_of(meta.path) for doc_id, meta in metas.items()}
