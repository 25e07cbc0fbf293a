"""
MCP Tools module for Knowledge Paths.

Contains the MCP tool handlers (list_tools and call_tool).
"""

import json
from typing import Any

import structlog
from mcp.server import Server
from mcp.types import TextContent, Tool
from pydantic import ValidationError

from .cache import vault_cache
from .config import settings
from .models import FindPathParams
from .pathfinding import PathFinder
from .vault_store import build_repositories

logger = structlog.get_logger(__name__)

# Initialize server
server = Server("knowledge-paths")

FILTERS_SCHEMA = {
    "type": "object",
    "description": "Optional filters applied to every candidate neighbor (endpoints are never filtered)",
    "properties": {
        "type": {
            "type": "string",
            "enum": ["note", "file", "all"],
            "description": "Keep only document nodes (note/file) or everything (default: all)"
        },
        "path": {
            "type": "string",
            "description": "Path prefix when it starts with '/', otherwise a regular expression"
        },
        "modified_within_days": {
            "type": "number",
            "description": "Keep notes modified within this many days"
        },
        "created_within_days": {
            "type": "number",
            "description": "Keep notes created within this many days"
        },
        "tags": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Keep notes carrying any of these tags"
        },
        "sorter": {
            "type": "string",
            "enum": ["modified_asc", "modified_desc", "created_asc", "created_desc"],
            "description": "Order in which neighbors are explored"
        }
    }
}


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="knowledge_find_path",
            description=(
                "Find diverse connection paths between two notes in the Knowledge vault. "
                "Combines explicit links, semantic similarity, cross-domain bridges and "
                "time-ordered evolution, and reports hub notes and shared context."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "start_note_path": {
                        "type": "string",
                        "description": "Path of the start note (e.g., 'Concepts/C_Zettelkasten.md') or its title"
                    },
                    "end_note_path": {
                        "type": "string",
                        "description": "Path of the end note or its title"
                    },
                    "limit": {
                        "type": "integer",
                        "description": f"Maximum number of paths (1-20, default: {settings.default_limit})",
                        "minimum": 1,
                        "maximum": 20
                    },
                    "include_semantic_paths": {
                        "type": "boolean",
                        "description": "Allow hops between semantically similar notes (default: false)",
                        "default": False
                    },
                    "response_format": {
                        "type": "string",
                        "enum": ["structured", "markdown", "hybrid"],
                        "description": "Output format (default: markdown)",
                        "default": "markdown"
                    },
                    "filters": FILTERS_SCHEMA
                },
                "required": ["start_note_path", "end_note_path"]
            }
        ),
    ]


async def find_path(arguments: dict[str, Any]) -> dict[str, Any] | str:
    """Validate arguments and run path finding against the current vault snapshot."""
    params = FindPathParams.model_validate(arguments)
    repositories = await build_repositories(vault_cache, settings.index_path)
    return await PathFinder(repositories, settings).find_path(params)


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""

    if name == "knowledge_find_path":
        try:
            result = await find_path(arguments or {})
        except ValidationError as e:
            logger.info("invalid_tool_arguments", tool=name, errors=e.error_count())
            return [TextContent(type="text", text=f"Error: invalid arguments for {name}\n{e}")]

        if isinstance(result, str):
            return [TextContent(type="text", text=result)]
        return [TextContent(type="text", text=json.dumps(result, indent=2, ensure_ascii=False))]

    return [TextContent(type="text", text=f"Unknown tool: {name}")]
