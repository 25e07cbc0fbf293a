"""
Output formatting for path finding results.

Turns scored paths and the analysis into a PathFindingResult, renders it
as markdown and packages it for the requested response format.
"""

from typing import Any

from .models import (
    ConnectionType,
    ContextIntersection,
    FormattedPath,
    GraphNode,
    HubNode,
    PathFindingResult,
    PathSegment,
    ResponseFormat,
    ScoredPath,
    Strategy,
)
from .repositories import GraphNodeRepository
from .utils import format_similarity

STRATEGY_NAMES = {
    Strategy.RELIABLE: "Reliable (explicit links)",
    Strategy.FAST_TRACK: "FastTrack (semantic A*)",
    Strategy.BRAINSTORM: "Brainstorm (cross-domain)",
    Strategy.TEMPORAL: "Temporal (thought evolution)",
    Strategy.FALLBACK: "Fallback (best effort)",
}


def node_label(node: GraphNode | None, node_id: str) -> str:
    """Document path for documents, "type:label" for anything else."""
    if node is None:
        return node_id
    if node.type == "document":
        return node.path or node.label or node_id
    return f"{node.type}:{node.label or node_id}"


async def resolve_labels(graph_nodes: GraphNodeRepository, node_ids: list[str]) -> dict[str, str]:
    """Resolve all labels with a single batched lookup."""
    unique_ids = list(dict.fromkeys(node_ids))
    nodes = await graph_nodes.get_by_ids(unique_ids)
    return {node_id: node_label(nodes.get(node_id), node_id) for node_id in unique_ids}


def connection_details(segments: list[PathSegment]) -> str:
    """Annotate every hop; a hop is physical only when both ends are physical."""
    hops = []
    for current, following in zip(segments, segments[1:]):
        both_physical = current.type is ConnectionType.PHYSICAL and following.type is ConnectionType.PHYSICAL
        kind = "physical" if both_physical else "semantic"
        similarity = current.similarity or following.similarity
        hops.append(f"{kind} ({format_similarity(similarity)})" if similarity else kind)
    return " → ".join(hops)


def format_path(index: int, path: ScoredPath, labels: dict[str, str]) -> FormattedPath:
    names = [labels.get(node_id, node_id) for node_id in path.node_ids]
    return FormattedPath(
        index=index,
        strategy=path.strategy,
        strategy_name=STRATEGY_NAMES[path.strategy],
        steps=len(names) - 1,
        path=names,
        path_string=" → ".join(f"[[{name}]]" for name in names),
        connection_details=connection_details(path.segments),
        score=path.score,
        insight_label=path.insight_label,
        reasoning=path.reasoning,
    )


async def format_result(
    graph_nodes: GraphNodeRepository,
    start_note_path: str,
    end_note_path: str,
    paths: list[ScoredPath],
    hubs: list[HubNode],
    context: ContextIntersection | None,
    used_fallback: bool = False,
) -> PathFindingResult:
    node_ids = [node_id for path in paths for node_id in path.node_ids]
    node_ids += [hub.node_id for hub in hubs]
    if context is not None:
        node_ids += [parent.node_id for parent in context.common_parents]
    labels = await resolve_labels(graph_nodes, node_ids)

    if context is not None:
        context = context.model_copy(update={"common_parents": [
            parent.model_copy(update={"label": labels[parent.node_id]})
            for parent in context.common_parents
        ]})

    return PathFindingResult(
        start_note_path=start_note_path,
        end_note_path=end_note_path,
        paths=[format_path(i, path, labels) for i, path in enumerate(paths, start=1)],
        hubs=[hub.model_copy(update={"label": labels[hub.node_id]}) for hub in hubs],
        context=context,
        used_fallback=used_fallback,
    )


def render_markdown(result: PathFindingResult) -> str:
    output = f"# Paths from [[{result.start_note_path}]] to [[{result.end_note_path}]]\n\n"

    if not result.paths:
        output += "No path found between these notes.\n"
    else:
        output += f"Found {len(result.paths)} path{'s' if len(result.paths) != 1 else ''}.\n"
        if result.used_fallback:
            output += "\n> Primary strategies found nothing; showing best-effort results.\n"

    for path in result.paths:
        output += f"\n## Path {path.index}: {path.strategy_name}, {path.steps} steps\n"
        output += f"**Route:** {path.path_string}\n"
        if path.connection_details:
            output += f"**Connections:** {path.connection_details}\n"
        output += f"**Score:** {path.score.total_score:.1f}"
        if path.insight_label:
            output += f" | **Insight:** {path.insight_label}"
        output += "\n"
        if path.reasoning:
            output += f"**Why:** {path.reasoning}\n"

    if result.hubs:
        output += "\n## Hub Nodes\n"
        for hub in result.hubs:
            output += f"- **[[{hub.label or hub.node_id}]]**: appears in {hub.occurrences} paths"
            output += f" (betweenness {hub.betweenness:.2f})\n"

    context = result.context
    if context is not None:
        output += "\n## Context Intersection\n"
        output += f"**Common ancestor:** {context.common_ancestor} (depth {context.ancestor_depth})\n"
        if context.shared_tags:
            output += f"**Shared tags:** {', '.join('#' + tag for tag in context.shared_tags)}\n"
        if context.common_parents:
            parents = ", ".join(
                f"[[{p.label or p.node_id}]] ({p.reference_count} references)" for p in context.common_parents
            )
            output += f"**Common parents:** {parents}\n"
        if context.is_distant:
            output += (
                "\n> These notes live far apart in the folder tree but share tags or parents; "
                "a semantic bridge between them is worth exploring.\n"
            )

    return output


def build_response(response_format: ResponseFormat, result: PathFindingResult) -> dict[str, Any] | str:
    """Package a result as structured data, markdown, or both."""
    if response_format == "structured":
        return result.model_dump(mode="json")
    if response_format == "markdown":
        return render_markdown(result)
    if response_format == "hybrid":
        return {"data": result.model_dump(mode="json"), "template": render_markdown(result)}
    raise ValueError(f"Invalid response format: {response_format}")
