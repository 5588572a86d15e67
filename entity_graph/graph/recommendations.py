"""Entity-based recommendations over the knowledge graph."""

import logging

from entity_graph.extraction.normalization import NormalizationResolver
from entity_graph.models import (
    EntityRecommendation,
    EntityRelationship,
    EntityType,
    KnowledgeGraph,
    KnowledgeGraphEntity,
)

logger = logging.getLogger(__name__)


class RecommendationEngine:
    """Rank the direct neighbors of an entity.

    Ordering is deterministic: relationship strength, then neighbor
    frequency (both descending), then neighbor name and id.
    """

    def __init__(self, resolver: NormalizationResolver | None = None):
        self.resolver = resolver or NormalizationResolver()

    def recommend(
        self,
        graph: KnowledgeGraph,
        name: str,
        entity_type: EntityType | str,
        limit: int = 10,
    ) -> list[EntityRecommendation]:
        """Recommend entities related to a named entity.

        Args:
            graph: Graph to query
            name: Entity name in any surface form
            entity_type: Entity type or its string value
            limit: Maximum recommendations to return

        Returns:
            Ranked recommendations; empty for unknown entities or types
        """
        if limit <= 0:
            return []

        try:
            key = self.resolver.resolve(entity_type, name)
        except ValueError as e:
            logger.debug(f"No recommendations for {name!r}: {e}")
            return []

        if graph.get_entity(key.id) is None:
            logger.debug(f"No recommendations for unknown entity {key.id}")
            return []

        neighbors = sorted(graph.neighbors_of(key.id), key=self._rank_key)
        return [self._to_recommendation(entity, relationship) for entity, relationship in neighbors[:limit]]

    @staticmethod
    def _rank_key(pair: tuple[KnowledgeGraphEntity, EntityRelationship]) -> tuple:
        entity, relationship = pair
        return (-relationship.strength, -entity.frequency, entity.name.casefold(), entity.id)

    @staticmethod
    def _to_recommendation(
        entity: KnowledgeGraphEntity,
        relationship: EntityRelationship,
    ) -> EntityRecommendation:
        return EntityRecommendation(
            id=entity.id,
            name=entity.name,
            type=entity.type,
            frequency=entity.frequency,
            confidence=entity.confidence,
            neighbor_count=len(entity.neighbors),
            related_document_count=len(entity.related_documents),
            strength=relationship.strength,
            relationship_kind=relationship.kind,
        )
