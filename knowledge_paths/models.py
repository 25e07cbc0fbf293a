"""
Pydantic models for Knowledge Paths.

Contains data models for cached notes, the read-only graph store records,
path finding results and the output of the analysis stage.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CachedNote(BaseModel):
    """Model for a cached note from the vault."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: Path
    rel_path: Path
    rel_path_str: str
    stem: str
    stem_lower: str
    frontmatter: dict[str, Any]
    links: list[str]
    tags: list[str]
    type: str
    created: float
    mtime: float
    is_template: bool


# ============== Graph Store Records ==============

class GraphNode(BaseModel):
    """A node supplied by the graph store (document, tag, concept...)."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    label: str
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def path(self) -> str | None:
        value = self.attributes.get("path")
        return value if isinstance(value, str) else None


class GraphEdge(BaseModel):
    """A physical link between two nodes. Neighbor lookup treats it as undirected."""

    model_config = ConfigDict(frozen=True)

    from_node_id: str
    to_node_id: str
    type: str = "physical"


class DocMeta(BaseModel):
    """Document metadata; tags may be a JSON array string, a comma string or a list."""

    id: str
    path: str
    tags: str | list[str] = ""
    ctime: float | None = None
    mtime: float | None = None


class DocStatistics(BaseModel):
    """Usage statistics of a document."""

    doc_id: str
    last_open_ts: float | None = None
    open_count: int = 0


# ============== Path Finding ==============

class ConnectionType(str, Enum):
    """How a node was reached from its predecessor."""

    PHYSICAL = "physical_neighbors"
    SEMANTIC = "semantic_neighbors"


class Strategy(str, Enum):
    RELIABLE = "reliable"
    FAST_TRACK = "fastTrack"
    BRAINSTORM = "brainstorm"
    TEMPORAL = "temporal"
    FALLBACK = "fallback"


STRATEGY_ORDER: tuple[Strategy, ...] = (
    Strategy.RELIABLE,
    Strategy.FAST_TRACK,
    Strategy.BRAINSTORM,
    Strategy.TEMPORAL,
    Strategy.FALLBACK,
)


class NeighborNode(BaseModel):
    """A neighbor returned by the neighbor provider.

    Semantic neighbors always carry a similarity in [0, 1]; physical
    neighbors may not.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    found_by: ConnectionType
    similarity: float | None = Field(default=None, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _semantic_needs_similarity(self) -> "NeighborNode":
        if self.found_by is ConnectionType.SEMANTIC and self.similarity is None:
            raise ValueError("semantic neighbors require a similarity")
        return self


class PathSegment(BaseModel):
    """One node of a path and the kind of hop that reached it."""

    model_config = ConfigDict(frozen=True)

    node_id: str
    type: ConnectionType = ConnectionType.PHYSICAL
    similarity: float | None = None
    timestamp: float | None = None


class PathScore(BaseModel):
    total_score: float = 0.0
    physical_ratio: float = Field(default=0.0, ge=0.0, le=1.0)
    avg_similarity: float = Field(default=0.0, ge=0.0, le=1.0)
    uniqueness: float = Field(default=1.0, ge=0.0, le=1.0)
    freshness: float = Field(default=0.0, ge=0.0, le=1.0)
    domain_jumps: int = Field(default=0, ge=0)
    length: int = Field(default=0, ge=0)


class ScoredPath(BaseModel):
    segments: list[PathSegment]
    strategy: Strategy
    score: PathScore = Field(default_factory=PathScore)
    insight_label: str = ""
    reasoning: str = ""

    @property
    def node_ids(self) -> list[str]:
        return [segment.node_id for segment in self.segments]

    @property
    def key(self) -> str:
        return "|".join(self.node_ids)


# ============== Request ==============

Sorter = Literal["modified_asc", "modified_desc", "created_asc", "created_desc"]


class FilterSpec(BaseModel):
    """Caller-supplied filters applied to candidate neighbors at each expansion.

    path: prefix when it starts with "/", otherwise a regular expression.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["note", "file", "all"] = "all"
    path: str | None = None
    modified_within_days: float | None = Field(default=None, gt=0)
    created_within_days: float | None = Field(default=None, gt=0)
    tags: list[str] | None = None
    sorter: Sorter | None = None


class SearchContext(BaseModel):
    """Per-strategy search parameters.

    Immutable: strategies derive a new context for every iteration instead
    of mutating a shared forbidden-edge set.
    """

    model_config = ConfigDict(frozen=True)

    start_id: str
    end_id: str
    start_vector: list[float] | None = None
    end_vector: list[float] | None = None
    max_hops: int = Field(default=5, ge=1)
    filters: FilterSpec | None = None
    forbidden_edges: frozenset[str] = frozenset()
    include_semantic: bool = True

    @property
    def has_vectors(self) -> bool:
        return bool(self.start_vector) and bool(self.end_vector)

    def with_forbidden(self, edge_key: str) -> "SearchContext":
        return self.model_copy(update={"forbidden_edges": self.forbidden_edges | {edge_key}})


ResponseFormat = Literal["structured", "markdown", "hybrid"]


class FindPathParams(BaseModel):
    start_note_path: str = Field(min_length=1)
    end_note_path: str = Field(min_length=1)
    limit: int | None = Field(default=None, ge=1, le=20)
    include_semantic_paths: bool = False
    response_format: ResponseFormat = "markdown"
    filters: FilterSpec | None = None


# ============== Analysis & Output ==============

class HubNode(BaseModel):
    node_id: str
    label: str = ""
    occurrences: int
    betweenness: float


class CommonParent(BaseModel):
    node_id: str
    label: str = ""
    reference_count: int


class ContextIntersection(BaseModel):
    common_ancestor: str
    ancestor_depth: int
    shared_tags: list[str] = Field(default_factory=list)
    common_parents: list[CommonParent] = Field(default_factory=list)
    is_distant: bool = False


class FormattedPath(BaseModel):
    index: int
    strategy: Strategy
    strategy_name: str
    steps: int
    path: list[str]
    path_string: str
    connection_details: str
    score: PathScore
    insight_label: str = ""
    reasoning: str = ""


class PathFindingResult(BaseModel):
    start_note_path: str
    end_note_path: str
    paths: list[FormattedPath] = Field(default_factory=list)
    hubs: list[HubNode] = Field(default_factory=list)
    context: ContextIntersection | None = None
    used_fallback: bool = False
