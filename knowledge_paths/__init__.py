# Knowledge Paths: multi-strategy path finding between notes
#
# Modular package structure:
# - config.py: Settings and path finding constants
# - logging.py: structlog configuration and per-search context
# - models.py: Pydantic models (store records, paths, results)
# - utils.py: Parsing, vector math, validation and the timeout wrapper
# - cache.py: VaultCache class for in-memory caching of notes
# - repositories.py: Read-only store interfaces injected into the engine
# - store.py: In-memory store implementations
# - vault_store.py: Builds the stores from the vault and the note index
# - pathfinding/: Neighbor lookup, strategies, scoring, analysis, PathFinder
# - formatter.py: Result formatting and response packaging
# - tools.py: MCP tool handlers and server instance
# - main.py: Entry point and server initialization
