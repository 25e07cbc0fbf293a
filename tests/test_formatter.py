"""
Tests for result formatting and response packaging.
"""

import pytest

from knowledge_paths.formatter import (
    build_response,
    connection_details,
    format_result,
    node_label,
    render_markdown,
)
from knowledge_paths.models import (
    CommonParent,
    ConnectionType,
    ContextIntersection,
    GraphNode,
    HubNode,
    PathScore,
    PathSegment,
    ScoredPath,
    Strategy,
)


def scored(node_ids, strategy=Strategy.RELIABLE, semantic=None, total=50.0):
    semantic = semantic or {}
    segments = [
        PathSegment(node_id=n, type=ConnectionType.SEMANTIC, similarity=semantic[n])
        if n in semantic else PathSegment(node_id=n)
        for n in node_ids
    ]
    return ScoredPath(
        segments=segments,
        strategy=strategy,
        score=PathScore(total_score=total, physical_ratio=1.0, length=len(node_ids) - 1),
        insight_label="Most direct explicit connection",
        reasoning="2 hops, explicit links only",
    )


class TestLabels:
    """Tests for node labels and hop annotations."""

    def test_node_label(self):
        """Test documents show their path, other nodes type:label."""
        document = GraphNode(id="d1", type="document", label="Python", attributes={"path": "Concepts/C_Python.md"})
        tag = GraphNode(id="tag:ai", type="tag", label="ai")

        assert node_label(document, "d1") == "Concepts/C_Python.md"
        assert node_label(tag, "tag:ai") == "tag:ai"
        assert node_label(GraphNode(id="c", type="concept", label="Entropy"), "c") == "concept:Entropy"
        assert node_label(None, "ghost") == "ghost"

    def test_connection_details(self):
        """Test a hop is physical only when both ends are physical."""
        segments = [
            PathSegment(node_id="A"),
            PathSegment(node_id="B"),
            PathSegment(node_id="C", type=ConnectionType.SEMANTIC, similarity=0.823),
            PathSegment(node_id="D"),
        ]
        assert connection_details(segments) == "physical → semantic (82.3%) → semantic (82.3%)"

    def test_single_node_has_no_hops(self):
        """Test a one-node path has no connection details."""
        assert connection_details([PathSegment(node_id="A")]) == ""


class TestFormatResult:
    """Tests for format_result and rendering."""

    @pytest.fixture
    async def result(self, make_repositories):
        repos = make_repositories(edges=[("a/A.md", "tag:ai"), ("tag:ai", "b/B.md"), ("a/A.md", "b/B.md")])
        paths = [
            scored(["a/A.md", "tag:ai", "b/B.md"]),
            scored(["a/A.md", "b/B.md"], Strategy.FAST_TRACK, total=40.0),
        ]
        context = ContextIntersection(
            common_ancestor="/",
            ancestor_depth=0,
            shared_tags=["ai"],
            common_parents=[CommonParent(node_id="tag:ai", reference_count=2)],
            is_distant=True,
        )
        hubs = [HubNode(node_id="tag:ai", occurrences=2, betweenness=1.0)]
        return await format_result(repos.graph_nodes, "a/A.md", "b/B.md", paths, hubs, context)

    async def test_paths_formatted(self, result):
        """Test labels, path strings and strategy names."""
        first = result.paths[0]

        assert first.index == 1
        assert first.steps == 2
        assert first.path == ["a/A.md", "tag:ai", "b/B.md"]
        assert first.path_string == "[[a/A.md]] → [[tag:ai]] → [[b/B.md]]"
        assert first.connection_details == "physical → physical"
        assert first.strategy_name == "Reliable (explicit links)"
        assert result.paths[1].strategy_name == "FastTrack (semantic A*)"

    async def test_analysis_labels_resolved(self, result):
        """Test hub and parent labels come from the same lookup."""
        assert result.hubs[0].label == "tag:ai"
        assert result.context.common_parents[0].label == "tag:ai"

    async def test_render_markdown(self, result):
        """Test the markdown report sections."""
        output = render_markdown(result)

        assert output.startswith("# Paths from [[a/A.md]] to [[b/B.md]]")
        assert "Found 2 paths." in output
        assert "## Path 1: Reliable (explicit links), 2 steps" in output
        assert "**Route:** [[a/A.md]] → [[tag:ai]] → [[b/B.md]]" in output
        assert "**Insight:** Most direct explicit connection" in output
        assert "## Hub Nodes" in output
        assert "## Context Intersection" in output
        assert "**Shared tags:** #ai" in output
        assert "[[tag:ai]] (2 references)" in output
        assert "semantic bridge" in output

    async def test_render_no_paths(self, make_repositories):
        """Test an empty result renders a clean no-path message."""
        repos = make_repositories(docs={"A.md": {}, "B.md": {}})
        result = await format_result(repos.graph_nodes, "A.md", "B.md", [], [], None, used_fallback=True)

        assert "No path found between these notes." in render_markdown(result)


class TestBuildResponse:
    """Tests for build_response."""

    @pytest.fixture
    async def result(self, make_repositories):
        repos = make_repositories(edges=[("A.md", "B.md")])
        return await format_result(repos.graph_nodes, "A.md", "B.md", [scored(["A.md", "B.md"])], [], None)

    async def test_structured(self, result):
        """Test structured output is plain data."""
        response = build_response("structured", result)

        assert isinstance(response, dict)
        assert response["paths"][0]["path"] == ["A.md", "B.md"]
        assert response["paths"][0]["strategy"] == "reliable"

    async def test_markdown(self, result):
        """Test markdown output is the rendered report."""
        assert build_response("markdown", result) == render_markdown(result)

    async def test_hybrid(self, result):
        """Test hybrid output carries both data and rendered text."""
        response = build_response("hybrid", result)

        assert set(response) == {"data", "template"}
        assert response["data"]["start_note_path"] == "A.md"
        assert response["template"].startswith("# Paths from")

    async def test_unknown_format(self, result):
        """Test an unknown format is an error."""
        with pytest.raises(ValueError):
            build_response("yaml", result)
