"""
Pytest configuration and fixtures for knowledge-paths tests.
"""

import json
from pathlib import Path

import pytest

from knowledge_paths.models import DocMeta, GraphEdge, GraphNode
from knowledge_paths.store import in_memory_repositories


@pytest.fixture
def temp_vault(tmp_path: Path):
    """Create a temporary vault with test notes."""
    vault_path = tmp_path / "vault"
    vault_path.mkdir()

    # Create folder structure
    (vault_path / "Concepts").mkdir()
    (vault_path / "Sessions").mkdir()
    (vault_path / "References").mkdir()
    (vault_path / "_Templates").mkdir()
    (vault_path / ".obsidian").mkdir()

    # Note 1: Concept with full frontmatter
    (vault_path / "Concepts" / "C_Python.md").write_text("""---
title: Python
date: 2024-01-15
type: concept
tags:
  - programming
  - language
---

# Python

Python is a programming language.

See also [[JavaScript]] for comparison.
""", encoding="utf-8")

    # Note 2: Another concept with links
    (vault_path / "Concepts" / "C_JavaScript.md").write_text("""---
title: JavaScript
date: 2024-01-16
type: concept
tags:
  - programming
  - web
---

# JavaScript

JavaScript is a web programming language.

It links to [[Python]] and [[Docker]].
""", encoding="utf-8")

    # Note 3: Session note with date prefix
    (vault_path / "Sessions" / "2024-01-20_Session_DevSetup.md").write_text("""---
title: Dev Setup Session
date: 2024-01-20
type: session
tags:
  - devops
  - setup
---

# Development Setup

Today we configured the toolchain.
The setup includes [[Python]] configuration.
""", encoding="utf-8")

    # Note 4: Reference note with an unresolved link
    (vault_path / "References" / "R_Docker.md").write_text("""---
title: Docker Reference
date: 2024-01-10
type: reference
tags:
  - devops
  - containers
---

# Docker

Docker is a containerization platform.

Related: [[Python]], [[Kubernetes]]
""", encoding="utf-8")

    # Note 5: Template (filtered out by default)
    (vault_path / "_Templates" / "T_Concept.md").write_text("""---
title: Concept Template
type: template
tags:
  - template
---

# {{title}}

Links to [[Python]].
""", encoding="utf-8")

    # Note 6: Note without frontmatter, with an inline tag
    (vault_path / "no_frontmatter.md").write_text("""# Simple Note

This note has no YAML frontmatter but an inline #scratch tag.
""", encoding="utf-8")

    # Note 7: Note with invalid frontmatter
    (vault_path / "invalid_frontmatter.md").write_text("""---
title: [invalid yaml
date: not-a-date
---

This note has invalid YAML frontmatter.
""", encoding="utf-8")

    # Note 8: Note with aliased and heading links
    (vault_path / "Concepts" / "C_Aliases.md").write_text("""---
title: Aliases Test
date: 2024-01-25
type: concept
tags:
  - testing
---

# Aliases

This note uses [[Python|the Python language]] and [[JavaScript#Syntax]].
""", encoding="utf-8")

    # Hidden folders are never scanned
    (vault_path / ".obsidian" / "workspace.md").write_text("[[Python]]", encoding="utf-8")

    yield vault_path


@pytest.fixture
async def vault_cache(temp_vault):
    """Create a VaultCache instance with the temp vault."""
    from knowledge_paths.cache import VaultCache

    cache = VaultCache(temp_vault, ttl=60)
    await cache.refresh(force=True)
    return cache


@pytest.fixture
def patched_vault_cache(vault_cache, note_index, monkeypatch):
    """Patch the global vault_cache and index path used by the MCP tools."""
    from knowledge_paths import tools

    monkeypatch.setattr(tools, "vault_cache", vault_cache)
    monkeypatch.setattr(tools.settings, "index_path", note_index)
    return vault_cache


@pytest.fixture
def note_index(tmp_path: Path):
    """Write a note index with embeddings and open statistics."""
    index_path = tmp_path / "notes-index.json"
    index_path.write_text(json.dumps({
        "notes": [
            {
                "path": "Concepts/C_Python.md",
                "embedding": [1.0, 0.0, 0.0],
                "last_open_ts": 1_700_000_000,
                "open_count": 4,
            },
            {
                "path": "Concepts/C_JavaScript.md",
                "embedding": [[0.9, 0.1, 0.0], [0.7, 0.3, 0.0]],
            },
            {
                "path": "References/R_Docker.md",
                "embedding": [0.0, 1.0, 0.0],
                "open_count": 1,
            },
            {
                "path": "Unknown/Ghost.md",
                "embedding": [0.0, 0.0, 1.0],
            },
        ]
    }), encoding="utf-8")
    return index_path


def _build_repositories(edges=(), docs=None, embeddings=None, statistics=(), extra_nodes=()):
    docs = dict(docs or {})
    node_ids = set(docs) | set(extra_nodes)
    for a, b in edges:
        node_ids.update((a, b))
    node_ids.update(embeddings or {})

    nodes: list[GraphNode] = []
    metas: list[DocMeta] = []
    for node_id in sorted(node_ids):
        if node_id.startswith("tag:"):
            nodes.append(GraphNode(id=node_id, type="tag", label=node_id.removeprefix("tag:")))
            continue
        info = docs.get(node_id, {})
        nodes.append(GraphNode(
            id=node_id,
            type="document",
            label=node_id.rsplit("/", 1)[-1].removesuffix(".md"),
            attributes={"path": node_id},
        ))
        metas.append(DocMeta(
            id=node_id,
            path=node_id,
            tags=info.get("tags", ""),
            ctime=info.get("ctime"),
            mtime=info.get("mtime"),
        ))

    return in_memory_repositories(
        nodes,
        [GraphEdge(from_node_id=a, to_node_id=b) for a, b in edges],
        metas,
        embeddings,
        statistics,
    )


@pytest.fixture
def make_repositories():
    """Factory for in-memory repositories.

    Every id in `edges`, `docs` or `embeddings` becomes a node: ids starting
    with "tag:" are tag nodes, anything else is a document whose path is
    its id. `docs` maps ids to {"tags", "ctime", "mtime"}.
    """
    return _build_repositories
