"""Caching, health and logging utilities."""

from .cache import CacheStats, EnrichmentCache, ExtractionCache, LRUCache
from .health import HealthChecker, HealthStatus, SystemHealth, build_health_checker
from .logging import setup_logging

__all__ = [
    "CacheStats",
    "EnrichmentCache",
    "ExtractionCache",
    "HealthChecker",
    "HealthStatus",
    "LRUCache",
    "SystemHealth",
    "build_health_checker",
    "setup_logging",
]
