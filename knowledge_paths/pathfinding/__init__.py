# Path finding engine
#
# - neighbors.py: physical, semantic, mixed and smart neighbor lookup
# - filters.py: caller filters applied at every expansion step
# - bidirectional.py: two-frontier BFS and key edge selection
# - reliable.py, fast_track.py, brainstorm.py, temporal.py, fallback.py: strategies
# - scoring.py: validation, dedup, scoring and strategy diversity
# - analysis.py: hub nodes and context intersection
# - orchestrator.py: PathFinder, the entry point

from .orchestrator import PathFinder

__all__ = ["PathFinder"]
