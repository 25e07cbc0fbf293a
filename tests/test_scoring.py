"""
Tests for path validation, scoring and strategy diversity.
"""

import pytest

from knowledge_paths.models import ConnectionType, DocStatistics, PathScore, PathSegment, ScoredPath, Strategy
from knowledge_paths.pathfinding.scoring import (
    PathScorer,
    average_similarity,
    dedupe_paths,
    domain_jumps,
    ensure_strategy_diversity,
    is_valid_path,
    physical_ratio,
    total_score,
    uniqueness,
)

NOW = 1_700_000_000.0
DAY = 24 * 3600


def make_path(node_ids, strategy=Strategy.RELIABLE, semantic=(), similarity=0.8, total=0.0, reasoning=""):
    segments = [
        PathSegment(node_id=node_id, type=ConnectionType.SEMANTIC, similarity=similarity)
        if node_id in semantic else PathSegment(node_id=node_id)
        for node_id in node_ids
    ]
    return ScoredPath(
        segments=segments,
        strategy=strategy,
        score=PathScore(total_score=total),
        reasoning=reasoning,
    )


class TestValidationAndDedup:
    """Tests for path validation and deduplication."""

    def test_valid_path(self):
        """Test endpoints and uniqueness are checked."""
        assert is_valid_path(make_path("ABC"), "A", "C")
        assert not is_valid_path(make_path("ABC"), "B", "C")
        assert not is_valid_path(make_path("ABC"), "A", "B")
        assert not is_valid_path(make_path("ABAC"), "A", "C")

    def test_dedupe_keeps_first(self):
        """Test identical node sequences collapse to the first one seen."""
        paths = [
            make_path("ABC", Strategy.RELIABLE),
            make_path("ABC", Strategy.TEMPORAL),
            make_path("ADC", Strategy.TEMPORAL),
        ]
        unique = dedupe_paths(paths)

        assert [(p.key, p.strategy) for p in unique] == [
            ("A|B|C", Strategy.RELIABLE),
            ("A|D|C", Strategy.TEMPORAL),
        ]


class TestMetrics:
    """Tests for the individual score components."""

    def test_physical_ratio(self):
        """Test physical ratio counts physical hops over length."""
        assert physical_ratio(make_path("ABC")) == 1.0
        assert physical_ratio(make_path("ABC", semantic={"B"})) == 0.5
        assert physical_ratio(make_path("ABC", semantic={"B", "C"})) == 0.0
        assert physical_ratio(make_path("A")) == 1.0

    def test_average_similarity(self):
        """Test average similarity over semantic hops only."""
        assert average_similarity(make_path("ABC")) == 0.0
        assert average_similarity(make_path("ABC", semantic={"B"}, similarity=0.6)) == pytest.approx(0.6)

    def test_uniqueness(self):
        """Test uniqueness against the most overlapping other path."""
        first, second, third = make_path("ABC"), make_path("ADC"), make_path("AXYZC")
        paths = [first, second, third]

        assert uniqueness(first, [first]) == 1.0
        assert uniqueness(first, paths) == pytest.approx(1 - 2 / 3)
        assert uniqueness(third, paths) == pytest.approx(1 - 2 / 5)

    def test_domain_jumps(self):
        """Test folder transitions between document nodes."""
        folders = {"a": "ai", "b": "art", "c": "ai", "d": "ai"}

        assert domain_jumps(["a", "b", "c"], folders) == 2
        assert domain_jumps(["a", "c", "d"], folders) == 0
        # Non-document nodes (no folder) are skipped
        assert domain_jumps(["a", "tag:x", "d"], folders) == 0

    def test_total_score(self):
        """Test the weighted formula with its length penalty."""
        score = PathScore(physical_ratio=1.0, freshness=0.5, domain_jumps=5, uniqueness=1.0, length=2)
        assert total_score(score) == pytest.approx(35 + 12.5 + 20 + 15 - 1)

        score = PathScore(physical_ratio=0.5, freshness=0.0, domain_jumps=1, uniqueness=0.0, length=4)
        assert total_score(score) == pytest.approx(17.5 + 20 / 3 - 2)


class TestPathScorer:
    """Tests for PathScorer.score_paths."""

    async def test_freshness(self, make_repositories):
        """Test freshness decays with age and defaults for untracked notes."""
        repos = make_repositories(
            edges=[("A", "B"), ("B", "C")],
            statistics=[
                DocStatistics(doc_id="B", last_open_ts=NOW),
                DocStatistics(doc_id="C", last_open_ts=NOW - 60 * DAY),
            ],
        )
        scored = await PathScorer(repos, clock=lambda: NOW).score_paths([make_path("ABC")])

        # A untracked (0.5), B fresh (1.0), C older than 30 days (0.0)
        assert scored[0].score.freshness == pytest.approx(0.5)

    async def test_scores_in_range_and_sorted(self, make_repositories):
        """Test every component stays in range and results are best first."""
        repos = make_repositories(
            edges=[("x/A", "y/B"), ("y/B", "x/C"), ("x/A", "x/D"), ("x/D", "x/C")],
            statistics=[DocStatistics(doc_id="x/A", last_open_ts=NOW + DAY)],
        )
        paths = [
            make_path(["x/A", "x/D", "x/C"], semantic={"x/D", "x/C"}, similarity=0.55),
            make_path(["x/A", "y/B", "x/C"]),
        ]
        scored = await PathScorer(repos, clock=lambda: NOW).score_paths(paths)

        assert [p.node_ids[1] for p in scored] == ["y/B", "x/D"]
        assert scored[0].score.domain_jumps == 2
        assert scored[0].score.length == 2
        for path in scored:
            score = path.score
            assert 0.0 <= score.physical_ratio <= 1.0
            assert 0.0 <= score.uniqueness <= 1.0
            assert 0.0 <= score.freshness <= 1.0
            assert score.domain_jumps >= 0
        assert scored[0].score.total_score >= scored[1].score.total_score

    async def test_reasoning_keeps_strategy_note(self, make_repositories):
        """Test scoring appends to the reasoning a strategy already gave."""
        repos = make_repositories(edges=[("A", "B")])
        path = make_path("AB", Strategy.FALLBACK, reasoning="Degraded result: relaxed search")
        scored = await PathScorer(repos, clock=lambda: NOW).score_paths([path])

        assert scored[0].reasoning.startswith("Degraded result: relaxed search. 1 hop")
        assert "explicit links only" in scored[0].reasoning

    async def test_empty(self, make_repositories):
        """Test no paths score to no paths."""
        assert await PathScorer(make_repositories()).score_paths([]) == []


class TestEnsureStrategyDiversity:
    """Tests for ensure_strategy_diversity."""

    @pytest.fixture
    def paths(self):
        return [
            make_path("ABZ", Strategy.RELIABLE, total=90),
            make_path("ACZ", Strategy.RELIABLE, total=80),
            make_path("ADZ", Strategy.RELIABLE, total=70),
            make_path("AEZ", Strategy.FAST_TRACK, total=10),
            make_path("AFZ", Strategy.TEMPORAL, total=5),
        ]

    def test_one_per_bucket_first(self, paths):
        """Test every non-empty strategy is represented before filling by score."""
        selected = ensure_strategy_diversity(paths, 3)

        assert [p.score.total_score for p in selected] == [90, 10, 5]
        assert {p.strategy for p in selected} == {Strategy.RELIABLE, Strategy.FAST_TRACK, Strategy.TEMPORAL}

    def test_fills_remaining_by_score(self, paths):
        """Test leftover slots go to the best remaining paths."""
        selected = ensure_strategy_diversity(paths, 4)
        assert [p.score.total_score for p in selected] == [90, 80, 10, 5]

    def test_never_exceeds_limit(self, paths):
        """Test the result size is bounded by max_results."""
        for limit in range(0, 7):
            assert len(ensure_strategy_diversity(paths, limit)) == min(limit, len(paths))

    def test_limit_below_bucket_count(self, paths):
        """Test buckets are taken in strategy order when slots run out."""
        selected = ensure_strategy_diversity(paths, 2)
        assert [p.strategy for p in selected] == [Strategy.RELIABLE, Strategy.FAST_TRACK]
