"""Read-only views of the knowledge graph: statistics, exports and reports."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from .types import EntityType, RelationshipKind


class EntitySummary(BaseModel):
    """Compact entity listing used in statistics."""

    id: str
    name: str
    type: EntityType
    frequency: int
    neighbor_count: int = 0


class KnowledgeGraphStats(BaseModel):
    """Aggregate statistics of the current graph."""

    total_entities: int = Field(..., description="Number of entity nodes")
    total_relationships: int = Field(..., description="Number of relationships")
    average_connections: float = Field(default=0.0, description="Mean neighbors per entity")
    type_distribution: dict[str, int] = Field(default_factory=dict)
    relationship_kind_distribution: dict[str, int] = Field(default_factory=dict)
    most_frequent_entities: list[EntitySummary] = Field(default_factory=list)
    most_connected_entity: Optional[EntitySummary] = None
    last_updated: datetime


class ExportedEntity(BaseModel):
    """Serialized entity node."""

    id: str
    name: str
    type: EntityType
    frequency: int
    confidence: float
    category: Optional[str] = None
    neighbors: list[str] = Field(default_factory=list)
    related_documents: list[str] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)
    surface_forms: dict[str, int] = Field(default_factory=dict)
    last_updated: datetime


class ExportedRelationship(BaseModel):
    """Serialized relationship."""

    source: str
    target: str
    kind: RelationshipKind
    strength: float
    contexts: list[str] = Field(default_factory=list)
    documents: list[str] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)


class ExportMetadata(BaseModel):
    """Snapshot metadata."""

    entity_count: int
    relationship_count: int
    last_updated: datetime
    exported_at: datetime
    format_version: str = "1.0"


class KnowledgeGraphExport(BaseModel):
    """Full serializable snapshot of the graph."""

    entities: list[ExportedEntity] = Field(default_factory=list)
    relationships: list[ExportedRelationship] = Field(default_factory=list)
    metadata: ExportMetadata


class EntityRecommendation(BaseModel):
    """A neighbor of the queried entity, ranked for "related entities"."""

    id: str
    name: str
    type: EntityType
    frequency: int
    confidence: float
    neighbor_count: int
    related_document_count: int
    strength: float = Field(..., description="Strength of the connecting relationship")
    relationship_kind: RelationshipKind


class DocumentFailure(BaseModel):
    """A document that could not be processed during a batch."""

    identifier: str
    error: str


class BuildReport(BaseModel):
    """Outcome of a rebuild or incremental merge."""

    document_count: int = 0
    entity_count: int = 0
    relationship_count: int = 0
    failures: list[DocumentFailure] = Field(default_factory=list)
    elapsed_seconds: float = 0.0
    incremental: bool = False


class ExtractionStats(BaseModel):
    """Extraction layer statistics."""

    total_patterns: int
    cached_extractions: int
    cache_hit_rate: float
    knowledge_graph_size: int
    initialized: bool
    last_activity: Optional[datetime] = None


class EnrichmentReport(BaseModel):
    """Outcome of enriching graph entities with authority data."""

    requested: int = 0
    enriched: int = 0
    seeded_relationships: int = 0
    elapsed_seconds: float = 0.0
