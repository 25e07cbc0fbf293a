"""
Configuration module for Knowledge Paths.

Uses pydantic-settings for configuration management with environment variable support.
Environment variables use KNOWLEDGE_ prefix (e.g., KNOWLEDGE_VAULT_PATH).
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_default_vault_path() -> Path:
    """Get default vault path."""
    return Path.home() / "Documents" / "Knowledge"


def _get_default_index_path() -> Path:
    """Get default note index path (embeddings and open statistics)."""
    return Path.home() / ".knowledge" / "notes-index.json"


# ============== Path Finding Constants ==============

# Hard cap on BFS levels per side, whatever KNOWLEDGE_MAX_HOPS says
MAX_HOPS_LIMIT = 5
# Search iterations for the diversity strategies (direct path + alternatives)
DEFAULT_ITERATIONS = 3
DEFAULT_NEIGHBOR_LIMIT = 20
# Semantic neighbors are only added by "smart" lookups below this physical count
SMART_PHYSICAL_THRESHOLD = 3

# A* (FastTrack)
PHYSICAL_EDGE_WEIGHT = 1.0
SEMANTIC_EDGE_WEIGHT = 1.5
CONSECUTIVE_SEMANTIC_EDGE_WEIGHT = 2.0
HEURISTIC_WEIGHT = 1.0
SEMANTIC_STREAK_LIMIT = 4
SEMANTIC_SIMILARITY_FLOOR = 0.5
ASTAR_EXPANSION_FACTOR = 50

# Brainstorm
BRAINSTORM_SEMANTIC_THRESHOLD = 0.7

# Temporal
TEMPORAL_WINDOW_SECONDS = 7 * 24 * 3600
TEMPORAL_LEVEL_CAP = 5
TEMPORAL_PHYSICAL_LIMIT = 10
TEMPORAL_SEMANTIC_LIMIT = 3
TEMPORAL_TIMEOUT_SECONDS = 3.0

# Fallback
FALLBACK_MIN_HOPS = 8

# Scoring
FRESHNESS_HORIZON_SECONDS = 30 * 24 * 3600
DEFAULT_FRESHNESS = 0.5
MAX_COUNTED_DOMAIN_JUMPS = 3
SCORE_WEIGHTS = {
    "physical": 35.0,
    "freshness": 25.0,
    "domain": 20.0,
    "uniqueness": 15.0,
}
LENGTH_PENALTY = 0.5

# Context intersection
MAX_COMMON_PARENTS = 5


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Environment variables:
    - KNOWLEDGE_VAULT_PATH: Path to the Obsidian vault
    - KNOWLEDGE_INDEX_PATH: Path to the note index (embeddings, open statistics)
    - KNOWLEDGE_CACHE_TTL: Cache TTL in seconds
    - KNOWLEDGE_PATH_FINDING_TIMEOUT: Global path finding timeout in seconds
    - KNOWLEDGE_MAX_HOPS: BFS levels per side (clamped to MAX_HOPS_LIMIT)
    - KNOWLEDGE_DEFAULT_LIMIT: Number of paths returned when the caller gives no limit
    - KNOWLEDGE_PARALLEL_STRATEGIES: Run strategies concurrently
    - KNOWLEDGE_TEMPORAL_TIMEOUT: Temporal strategy timeout in seconds
    - KNOWLEDGE_LOG_LEVEL: structlog filtering level
    """

    vault_path: Path = Field(default_factory=_get_default_vault_path)
    index_path: Path = Field(default_factory=_get_default_index_path)
    cache_ttl: int = 60
    path_finding_timeout: float = 30.0
    max_hops: int = Field(default=MAX_HOPS_LIMIT, ge=1)
    default_limit: int = Field(default=5, ge=1)
    parallel_strategies: bool = True
    temporal_timeout: float = TEMPORAL_TIMEOUT_SECONDS
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="KNOWLEDGE_")

    @property
    def effective_max_hops(self) -> int:
        return min(self.max_hops, MAX_HOPS_LIMIT)


# Global settings instance
settings = Settings()
