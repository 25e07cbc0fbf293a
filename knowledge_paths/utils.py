"""
Utility functions and compiled regex patterns for Knowledge Paths.

Contains parsing functions, validation utilities, vector math and the
timeout wrapper used around the path finding search.
"""

import asyncio
import json
import math
import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Generic, TypeVar

import yaml

T = TypeVar("T")

# Pre-compiled regex patterns for performance
WIKILINK_PATTERN = re.compile(r'\[\[([^\]|#]+)(?:#[^\]|]*)?(?:\|[^\]]+)?\]\]')
FRONTMATTER_PATTERN = re.compile(r'^---\s*\n(.*?)\n---\s*\n', re.DOTALL)
INLINE_TAG_PATTERN = re.compile(r'(?<![\w/#])#([A-Za-z][\w/-]*)')


# ============== Exceptions ==============

class PathValidationError(Exception):
    """Raised when path validation fails."""
    pass


# ============== Parsing ==============

def parse_frontmatter(content: str) -> tuple[dict, str]:
    """Extract YAML frontmatter and body from note content."""
    frontmatter = {}
    body = content

    match = FRONTMATTER_PATTERN.match(content)
    if match:
        try:
            frontmatter = yaml.safe_load(match.group(1)) or {}
        except yaml.YAMLError:
            pass
        if not isinstance(frontmatter, dict):
            frontmatter = {}
        body = content[match.end():]

    return frontmatter, body


def parse_tags(raw: Any) -> list[str]:
    """Parse tags stored as a list, a JSON array string or a comma string.

    Malformed JSON silently falls back to comma splitting. Leading '#' is
    dropped and duplicates are removed, keeping first-seen order.
    """
    if raw is None:
        return []

    items: list[Any]
    if isinstance(raw, (list, tuple, set)):
        items = list(raw)
    else:
        text = str(raw).strip()
        if not text:
            return []
        try:
            decoded = json.loads(text)
        except ValueError:
            decoded = None
        if isinstance(decoded, list):
            items = decoded
        else:
            items = text.split(",")

    tags: list[str] = []
    for item in items:
        tag = str(item).strip().lstrip("#").strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def load_index(index_path: Path) -> dict:
    """Load the note index (embeddings and open statistics)."""
    if index_path.exists():
        with open(index_path, "r", encoding="utf-8") as f:
            return json.load(f)
    return {"notes": []}


# ============== Paths ==============

def folder_of(path: str | None) -> str:
    """Return the vault folder of a note path ("" for the vault root)."""
    if not path:
        return ""
    return posixpath.dirname(path.replace("\\", "/").strip("/"))


def validate_note_path(path_str: str) -> str:
    """Validate a vault-relative note path and normalize its separators.

    Args:
        path_str: Vault-relative path or note title

    Returns:
        The path with forward slashes

    Raises:
        PathValidationError: If the path is empty, absolute or escapes the vault
    """
    if not path_str or not path_str.strip():
        raise PathValidationError("Path cannot be empty")

    normalized = path_str.strip().replace("\\", "/")
    if ".." in normalized.split("/"):
        raise PathValidationError("Path traversal detected: '..' is not allowed")

    if normalized.startswith("/") or (len(normalized) > 1 and normalized[1] == ":"):
        raise PathValidationError("Absolute paths are not allowed")

    return normalized


# ============== Vectors & Edges ==============

def cosine_similarity(a: list[float] | None, b: list[float] | None) -> float:
    """Cosine similarity without numpy; 0.0 for empty or mismatched vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


def edge_key(from_id: str, to_id: str) -> str:
    return f"{from_id}->{to_id}"


def is_forbidden(forbidden_edges: frozenset[str], from_id: str, to_id: str) -> bool:
    """Forbidden edges block traversal in both directions."""
    return edge_key(from_id, to_id) in forbidden_edges or edge_key(to_id, from_id) in forbidden_edges


def format_similarity(similarity: float | None) -> str:
    """Render a [0, 1] similarity as the percentage string shown to users."""
    if similarity is None:
        return ""
    return f"{similarity * 100:.1f}%"


# ============== Timeout ==============

@dataclass
class TimeoutResult(Generic[T]):
    """Outcome of an operation that may time out."""

    success: bool
    data: T | None = None
    message: str = ""


async def with_timeout_message(
    operation: Awaitable[T],
    timeout_seconds: float,
    operation_name: str = "Operation",
) -> TimeoutResult[T]:
    """Await an operation with a timeout, returning a result instead of raising.

    On expiry the operation is cancelled and its state abandoned.
    """
    try:
        data = await asyncio.wait_for(operation, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        return TimeoutResult(
            success=False,
            message=(
                f"{operation_name} timed out after {timeout_seconds:g}s. "
                "The operation took too long to complete."
            ),
        )
    return TimeoutResult(success=True, data=data)
