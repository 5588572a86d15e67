"""Data models for documents, mentions, the knowledge graph and enrichment."""

from .types import DocumentSection, EntityType, RelationshipKind, Sentiment
from .documents import Document
from .mentions import EntityMention, ResolvedEntityKey
from .graph import EntityRelationship, KnowledgeGraph, KnowledgeGraphEntity
from .enrichment import AuthorityEnrichment, KnowledgeBaseEntity
from .snapshots import (
    BuildReport,
    DocumentFailure,
    EnrichmentReport,
    EntityRecommendation,
    EntitySummary,
    ExportedEntity,
    ExportedRelationship,
    ExportMetadata,
    ExtractionStats,
    KnowledgeGraphExport,
    KnowledgeGraphStats,
)

__all__ = [
    "DocumentSection",
    "EntityType",
    "RelationshipKind",
    "Sentiment",
    "Document",
    "EntityMention",
    "ResolvedEntityKey",
    "EntityRelationship",
    "KnowledgeGraph",
    "KnowledgeGraphEntity",
    "AuthorityEnrichment",
    "KnowledgeBaseEntity",
    "BuildReport",
    "DocumentFailure",
    "EnrichmentReport",
    "EntityRecommendation",
    "EntitySummary",
    "ExportedEntity",
    "ExportedRelationship",
    "ExportMetadata",
    "ExtractionStats",
    "KnowledgeGraphExport",
    "KnowledgeGraphStats",
]
