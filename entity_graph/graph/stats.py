"""Statistics, export and restore of the knowledge graph."""

import logging
from collections import Counter
from collections.abc import Mapping
from typing import Any

from entity_graph.models import (
    EntityRelationship,
    EntitySummary,
    ExportedEntity,
    ExportedRelationship,
    ExportMetadata,
    KnowledgeGraph,
    KnowledgeGraphEntity,
    KnowledgeGraphExport,
    KnowledgeGraphStats,
)
from entity_graph.models.graph import utcnow

logger = logging.getLogger(__name__)


class StatsExporter:
    """Read-only views of a graph plus snapshot round-tripping."""

    FORMAT_VERSION = "1.0"

    def __init__(self, top_n: int = 10):
        self.top_n = top_n

    def stats(self, graph: KnowledgeGraph, top_n: int | None = None) -> KnowledgeGraphStats:
        """Compute aggregate statistics.

        Args:
            graph: Graph to summarize
            top_n: Number of most frequent entities to list

        Returns:
            KnowledgeGraphStats snapshot
        """
        top_n = self.top_n if top_n is None else top_n
        entities = list(graph.entities.values())

        total_neighbors = sum(len(entity.neighbors) for entity in entities)
        average_connections = total_neighbors / len(entities) if entities else 0.0

        by_frequency = sorted(entities, key=lambda e: (-e.frequency, e.name.casefold(), e.id))
        by_connections = sorted(
            entities, key=lambda e: (-len(e.neighbors), -e.frequency, e.name.casefold(), e.id)
        )

        return KnowledgeGraphStats(
            total_entities=graph.entity_count,
            total_relationships=graph.relationship_count,
            average_connections=round(average_connections, 4),
            type_distribution=dict(Counter(entity.type.value for entity in entities)),
            relationship_kind_distribution=dict(
                Counter(relationship.kind.value for relationship in graph.relationships.values())
            ),
            most_frequent_entities=[self._summary(entity) for entity in by_frequency[:max(top_n, 0)]],
            most_connected_entity=self._summary(by_connections[0]) if by_connections else None,
            last_updated=graph.last_updated,
        )

    @staticmethod
    def _summary(entity: KnowledgeGraphEntity) -> EntitySummary:
        return EntitySummary(
            id=entity.id,
            name=entity.name,
            type=entity.type,
            frequency=entity.frequency,
            neighbor_count=len(entity.neighbors),
        )

    def export(self, graph: KnowledgeGraph) -> KnowledgeGraphExport:
        """Serialize the full graph.

        Entities are ordered by id and relationships by their key so that
        equal graphs export identically.
        """
        entities = [
            ExportedEntity(
                id=entity.id,
                name=entity.name,
                type=entity.type,
                frequency=entity.frequency,
                confidence=entity.confidence,
                category=entity.category,
                neighbors=sorted(entity.neighbors),
                related_documents=sorted(entity.related_documents),
                properties=dict(entity.properties),
                surface_forms=dict(entity.surface_forms),
                last_updated=entity.last_updated,
            )
            for entity in sorted(graph.entities.values(), key=lambda e: e.id)
        ]
        relationships = [
            ExportedRelationship(
                source=relationship.source_id,
                target=relationship.target_id,
                kind=relationship.kind,
                strength=relationship.strength,
                contexts=list(relationship.contexts),
                documents=list(relationship.documents),
                properties=dict(relationship.properties),
            )
            for _, relationship in sorted(graph.relationships.items())
        ]

        return KnowledgeGraphExport(
            entities=entities,
            relationships=relationships,
            metadata=ExportMetadata(
                entity_count=len(entities),
                relationship_count=len(relationships),
                last_updated=graph.last_updated,
                exported_at=utcnow(),
                format_version=self.FORMAT_VERSION,
            ),
        )

    def restore(self, snapshot: KnowledgeGraphExport | Mapping[str, Any]) -> KnowledgeGraph:
        """Rebuild a graph from an export.

        Neighbor sets are derived from the relationships, not trusted from
        the snapshot.

        Args:
            snapshot: KnowledgeGraphExport or its JSON-compatible dict

        Returns:
            Restored KnowledgeGraph

        Raises:
            pydantic.ValidationError: If the snapshot is malformed
            ValueError: If the format version is unsupported or an edge is dangling
        """
        if not isinstance(snapshot, KnowledgeGraphExport):
            snapshot = KnowledgeGraphExport.model_validate(snapshot)

        major = snapshot.metadata.format_version.split(".")[0]
        if major != self.FORMAT_VERSION.split(".")[0]:
            raise ValueError(f"Unsupported snapshot format version: {snapshot.metadata.format_version}")

        graph = KnowledgeGraph(last_updated=snapshot.metadata.last_updated)
        for exported in snapshot.entities:
            graph.entities[exported.id] = KnowledgeGraphEntity(
                id=exported.id,
                name=exported.name,
                type=exported.type,
                frequency=exported.frequency,
                confidence=exported.confidence,
                related_documents=set(exported.related_documents),
                properties=dict(exported.properties),
                category=exported.category,
                last_updated=exported.last_updated,
                surface_forms=dict(exported.surface_forms) or {exported.name: exported.frequency},
            )
            graph.document_ids.update(exported.related_documents)

        for exported in snapshot.relationships:
            if exported.source not in graph.entities or exported.target not in graph.entities:
                raise ValueError(
                    f"Relationship {exported.source} -> {exported.target} references a missing entity"
                )

            key = graph.relationship_key(exported.source, exported.target)
            graph.relationships[key] = EntityRelationship(
                source_id=key[0],
                target_id=key[1],
                kind=exported.kind,
                strength=exported.strength,
                contexts=list(exported.contexts),
                documents=list(exported.documents),
                properties=dict(exported.properties),
            )
            graph.entities[key[0]].neighbors.add(key[1])
            graph.entities[key[1]].neighbors.add(key[0])
            graph.document_ids.update(exported.documents)

        logger.info(
            f"Restored knowledge graph: {graph.entity_count} entities, "
            f"{graph.relationship_count} relationships"
        )
        return graph
