"""Knowledge graph building, recommendations and statistics."""

from .builder import GraphBuildResult, KnowledgeGraphBuilder, PreparedMention
from .recommendations import RecommendationEngine
from .stats import StatsExporter

__all__ = [
    "GraphBuildResult",
    "KnowledgeGraphBuilder",
    "PreparedMention",
    "RecommendationEngine",
    "StatsExporter",
]
