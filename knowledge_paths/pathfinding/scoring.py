"""Path validation, deduplication, scoring and strategy diversity."""

import time
from collections.abc import Callable

import structlog

from ..config import (
    DEFAULT_FRESHNESS,
    FRESHNESS_HORIZON_SECONDS,
    LENGTH_PENALTY,
    MAX_COUNTED_DOMAIN_JUMPS,
    SCORE_WEIGHTS,
)
from ..models import STRATEGY_ORDER, ConnectionType, PathScore, ScoredPath
from ..repositories import Repositories
from ..utils import folder_of

logger = structlog.get_logger(__name__)


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


# ============== Validation & Dedup ==============

def is_valid_path(path: ScoredPath, start_id: str, end_id: str) -> bool:
    node_ids = path.node_ids
    if not node_ids or node_ids[0] != start_id or node_ids[-1] != end_id:
        return False
    return len(set(node_ids)) == len(node_ids)


def dedupe_paths(paths: list[ScoredPath]) -> list[ScoredPath]:
    """Drop paths whose node sequence was already seen, keeping the first."""
    seen: set[str] = set()
    unique: list[ScoredPath] = []
    for path in paths:
        if path.key in seen:
            continue
        seen.add(path.key)
        unique.append(path)
    return unique


# ============== Metrics ==============

def physical_ratio(path: ScoredPath) -> float:
    """(physical segments - 1) / length; the first segment is always physical."""
    length = len(path.segments) - 1
    if length <= 0:
        return 1.0
    physical = sum(1 for s in path.segments if s.type is ConnectionType.PHYSICAL)
    return _clamp((physical - 1) / length)


def average_similarity(path: ScoredPath) -> float:
    similarities = [
        s.similarity for s in path.segments[1:]
        if s.type is ConnectionType.SEMANTIC and s.similarity is not None
    ]
    if not similarities:
        return 0.0
    return _clamp(sum(similarities) / len(similarities))


def path_overlap(a: ScoredPath, b: ScoredPath) -> float:
    nodes_a, nodes_b = set(a.node_ids), set(b.node_ids)
    largest = max(len(nodes_a), len(nodes_b))
    if largest == 0:
        return 0.0
    return len(nodes_a & nodes_b) / largest


def uniqueness(path: ScoredPath, others: list[ScoredPath]) -> float:
    overlaps = [path_overlap(path, other) for other in others if other is not path]
    if not overlaps:
        return 1.0
    return _clamp(1.0 - max(overlaps))


def domain_jumps(node_ids: list[str], folders: dict[str, str]) -> int:
    """Folder transitions between consecutive document nodes of a path."""
    jumps = 0
    previous: str | None = None
    for node_id in node_ids:
        folder = folders.get(node_id)
        if folder is None:
            continue
        if previous is not None and folder != previous:
            jumps += 1
        previous = folder
    return jumps


def total_score(score: PathScore) -> float:
    return (
        score.physical_ratio * SCORE_WEIGHTS["physical"]
        + score.freshness * SCORE_WEIGHTS["freshness"]
        + min(score.domain_jumps, MAX_COUNTED_DOMAIN_JUMPS) / MAX_COUNTED_DOMAIN_JUMPS * SCORE_WEIGHTS["domain"]
        + score.uniqueness * SCORE_WEIGHTS["uniqueness"]
        - score.length * LENGTH_PENALTY
    )


def describe_score(score: PathScore) -> str:
    """Human readable summary of what drives a path's score."""
    parts = [f"{score.length} hop{'s' if score.length != 1 else ''}"]
    if score.physical_ratio >= 1.0:
        parts.append("explicit links only")
    elif score.physical_ratio > 0:
        parts.append(f"{score.physical_ratio:.0%} explicit links")
    else:
        parts.append("semantic links only")
    if score.avg_similarity > 0:
        parts.append(f"avg similarity {score.avg_similarity:.1%}")
    if score.domain_jumps:
        parts.append(f"{score.domain_jumps} domain jump{'s' if score.domain_jumps != 1 else ''}")
    if score.freshness >= 0.7:
        parts.append("recently visited notes")
    elif score.freshness < 0.3:
        parts.append("rarely visited notes")
    return ", ".join(parts)


class PathScorer:
    """Fills in PathScore and reasoning for a batch of candidate paths."""

    def __init__(self, repositories: Repositories, clock: Callable[[], float] = time.time):
        self.repositories = repositories
        self.clock = clock

    async def _freshness_by_node(self, node_ids: list[str]) -> dict[str, float]:
        stats = await self.repositories.doc_statistics.get_by_doc_ids(node_ids)
        now = self.clock()
        freshness: dict[str, float] = {}
        for node_id in node_ids:
            stat = stats.get(node_id)
            if stat is None or stat.last_open_ts is None:
                freshness[node_id] = DEFAULT_FRESHNESS
                continue
            age = max(0.0, now - stat.last_open_ts)
            freshness[node_id] = _clamp(1.0 - age / FRESHNESS_HORIZON_SECONDS)
        return freshness

    async def score_paths(self, paths: list[ScoredPath]) -> list[ScoredPath]:
        """Score every path and return them sorted by total score, best first."""
        if not paths:
            return []

        node_ids = list(dict.fromkeys(node_id for path in paths for node_id in path.node_ids))
        metas = await self.repositories.doc_meta.get_by_ids(node_ids)
        folders = {doc_id: folder_of(meta.path) for doc_id, meta in metas.items()}
        freshness = await self._freshness_by_node(node_ids)

        scored: list[ScoredPath] = []
        for path in paths:
            ids = path.node_ids
            score = PathScore(
                physical_ratio=physical_ratio(path),
                avg_similarity=average_similarity(path),
                uniqueness=uniqueness(path, paths),
                freshness=_clamp(sum(freshness[i] for i in ids) / len(ids)),
                domain_jumps=domain_jumps(ids, folders),
                length=len(ids) - 1,
            )
            score = score.model_copy(update={"total_score": round(total_score(score), 2)})
            reasoning = describe_score(score)
            if path.reasoning:
                reasoning = f"{path.reasoning}. {reasoning}"
            scored.append(path.model_copy(update={"score": score, "reasoning": reasoning}))

        scored.sort(key=lambda p: p.score.total_score, reverse=True)
        logger.debug("paths_scored", count=len(scored))
        return scored


def ensure_strategy_diversity(paths: list[ScoredPath], max_results: int) -> list[ScoredPath]:
    """Pick up to max_results paths, best of each strategy first, then by score.

    `paths` must already be sorted by score, best first.
    """
    if max_results <= 0:
        return []

    selected: list[ScoredPath] = []
    for strategy in STRATEGY_ORDER:
        if len(selected) >= max_results:
            break
        best = next((p for p in paths if p.strategy is strategy), None)
        if best is not None:
            selected.append(best)

    for path in paths:
        if len(selected) >= max_results:
            break
        if not any(path is chosen for chosen in selected):
            selected.append(path)

    selected.sort(key=lambda p: p.score.total_score, reverse=True)
    return selected
