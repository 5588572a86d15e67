"""Entity extraction and knowledge graph engine."""

from .service import EntityGraphService, create_service

__all__ = ["EntityGraphService", "create_service"]

__version__ = "0.1.0"
