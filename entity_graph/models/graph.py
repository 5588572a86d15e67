"""Knowledge graph node, edge and aggregate models."""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .types import EntityType, RelationshipKind


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class KnowledgeGraphEntity:
    """Deduplicated, corpus-wide entity node."""

    id: str
    name: str
    type: EntityType
    frequency: int = 0
    confidence: float = 0.0
    neighbors: set[str] = field(default_factory=set)
    related_documents: set[str] = field(default_factory=set)
    properties: dict[str, Any] = field(default_factory=dict)
    category: Optional[str] = None
    last_updated: datetime = field(default_factory=utcnow)
    surface_forms: dict[str, int] = field(default_factory=dict, repr=False)

    def record_surface_form(self, surface: str) -> None:
        """Count a surface form and keep the most frequent one as display name.

        Ties go to the form seen first.
        """
        self.surface_forms[surface] = self.surface_forms.get(surface, 0) + 1
        self.name = max(self.surface_forms, key=self.surface_forms.__getitem__)


@dataclass
class EntityRelationship:
    """Undirected, accumulated relationship between two entities.

    ``source_id`` always sorts before ``target_id``.
    """

    source_id: str
    target_id: str
    kind: RelationshipKind = RelationshipKind.CO_OCCURS
    strength: float = 0.0
    contexts: list[str] = field(default_factory=list)
    documents: list[str] = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return (self.source_id, self.target_id)

    def other(self, entity_id: str) -> str:
        """Endpoint opposite to ``entity_id``."""
        return self.target_id if entity_id == self.source_id else self.source_id


@dataclass
class KnowledgeGraph:
    """All entity nodes and relationships of the corpus."""

    entities: dict[str, KnowledgeGraphEntity] = field(default_factory=dict)
    relationships: dict[tuple[str, str], EntityRelationship] = field(default_factory=dict)
    document_ids: set[str] = field(default_factory=set)
    last_updated: datetime = field(default_factory=utcnow)

    @staticmethod
    def relationship_key(first_id: str, second_id: str) -> tuple[str, str]:
        """Canonical (ordered) key for an unordered entity pair."""
        if first_id <= second_id:
            return (first_id, second_id)
        return (second_id, first_id)

    @property
    def entity_count(self) -> int:
        return len(self.entities)

    @property
    def relationship_count(self) -> int:
        return len(self.relationships)

    def get_entity(self, entity_id: str) -> KnowledgeGraphEntity | None:
        return self.entities.get(entity_id)

    def get_relationship(self, first_id: str, second_id: str) -> EntityRelationship | None:
        """Relationship between two entities, in either order."""
        return self.relationships.get(self.relationship_key(first_id, second_id))

    def neighbors_of(self, entity_id: str) -> list[tuple[KnowledgeGraphEntity, EntityRelationship]]:
        """1-hop neighbors of an entity with the connecting relationship."""
        entity = self.entities.get(entity_id)
        if entity is None:
            return []

        result = []
        for neighbor_id in entity.neighbors:
            neighbor = self.entities.get(neighbor_id)
            relationship = self.get_relationship(entity_id, neighbor_id)
            if neighbor is not None and relationship is not None:
                result.append((neighbor, relationship))
        return result

    def touch(self) -> None:
        self.last_updated = utcnow()

    def copy(self) -> "KnowledgeGraph":
        """Independent deep copy, used for copy-on-write merges."""
        return copy.deepcopy(self)
