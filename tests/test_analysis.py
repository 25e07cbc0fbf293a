"""
Tests for hub detection and context intersection.
"""

import pytest

from knowledge_paths.models import PathSegment, ScoredPath, Strategy
from knowledge_paths.pathfinding.analysis import ContextAnalyzer, common_ancestor, find_hubs, shared_tags


def make_path(*node_ids):
    return ScoredPath(segments=[PathSegment(node_id=n) for n in node_ids], strategy=Strategy.RELIABLE)


class TestFindHubs:
    """Tests for find_hubs."""

    def test_shared_interior_node(self):
        """Test nodes on two or more paths are hubs with a betweenness proxy."""
        paths = [
            make_path("A", "H", "B"),
            make_path("A", "H", "C", "B"),
            make_path("A", "D", "B"),
        ]
        hubs = find_hubs(paths)

        assert [h.node_id for h in hubs] == ["H"]
        assert hubs[0].occurrences == 2
        assert hubs[0].betweenness == pytest.approx(2 / 3)

    def test_endpoints_are_not_hubs(self):
        """Test start and end never count as hubs."""
        assert find_hubs([make_path("A", "B"), make_path("A", "C", "B")]) == []

    def test_no_paths(self):
        """Test no paths, no hubs."""
        assert find_hubs([]) == []


class TestCommonAncestor:
    """Tests for common_ancestor and shared_tags."""

    def test_shared_prefix(self):
        """Test the longest common folder prefix and its depth."""
        assert common_ancestor("a/b/x.md", "a/b/c/y.md") == ("a/b", 2)
        assert common_ancestor("a/b/x.md", "a/c/y.md") == ("a", 1)

    def test_no_shared_prefix(self):
        """Test notes in unrelated folders meet at the root."""
        assert common_ancestor("x.md", "y/z.md") == ("/", 0)
        assert common_ancestor("p/x.md", "q/z.md") == ("/", 0)

    def test_shared_tags_mixed_formats(self):
        """Test JSON array and comma separated tags intersect case-insensitively."""
        assert shared_tags('["AI", "ml", "art"]', "ml, ai") == ["AI", "ml"]

    def test_shared_tags_malformed_json(self):
        """Test malformed JSON falls back to comma splitting."""
        assert shared_tags("[broken, ml", ["ml"]) == ["ml"]
        assert shared_tags(None, ["ml"]) == []


class TestContextAnalyzer:
    """Tests for ContextAnalyzer.analyze."""

    async def test_distant_but_related(self, make_repositories):
        """Test notes in different folders sharing tags and a parent are flagged."""
        repos = make_repositories(
            edges=[
                ("Index.md", "Projects/A.md"),
                ("Index.md", "Areas/B.md"),
                ("Projects/A.md", "Other.md"),
            ],
            docs={
                "Projects/A.md": {"tags": '["ai", "ml"]'},
                "Areas/B.md": {"tags": "ml"},
            },
        )
        context = await ContextAnalyzer(repos).analyze("Projects/A.md", "Areas/B.md")

        assert context.common_ancestor == "/"
        assert context.ancestor_depth == 0
        assert context.shared_tags == ["ml"]
        assert [p.node_id for p in context.common_parents] == ["Index.md"]
        assert context.common_parents[0].reference_count == 2
        assert context.is_distant is True

    async def test_close_notes_not_distant(self, make_repositories):
        """Test notes deep in the same folder are not flagged."""
        repos = make_repositories(
            edges=[("Index.md", "a/b/x.md"), ("Index.md", "a/b/y.md")],
            docs={"a/b/x.md": {"tags": "ml"}, "a/b/y.md": {"tags": "ml"}},
        )
        context = await ContextAnalyzer(repos).analyze("a/b/x.md", "a/b/y.md")

        assert context.ancestor_depth == 2
        assert context.is_distant is False

    async def test_unrelated_notes(self, make_repositories):
        """Test nothing in common gives an empty, non-distant context."""
        repos = make_repositories(docs={"p/a.md": {"tags": "x"}, "q/b.md": {"tags": "y"}})
        context = await ContextAnalyzer(repos).analyze("p/a.md", "q/b.md")

        assert context.shared_tags == []
        assert context.common_parents == []
        assert context.is_distant is False

    async def test_common_parents_ranked_and_capped(self, make_repositories):
        """Test parents are ranked by combined references and limited to five."""
        parents = [f"P{i}" for i in range(7)]
        edges = [(p, "A") for p in parents] + [(p, "B") for p in parents]
        edges.append(("A", "P6"))
        repos = make_repositories(edges=edges)
        context = await ContextAnalyzer(repos).analyze("A", "B")

        assert len(context.common_parents) == 5
        assert context.common_parents[0].node_id == "P6"
        assert context.common_parents[0].reference_count == 3
        assert [p.node_id for p in context.common_parents[1:]] == ["P0", "P1", "P2", "P3"]
