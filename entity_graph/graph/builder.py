"""Knowledge graph construction from per-document entity mentions."""

import itertools
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from entity_graph.extraction.normalization import NormalizationResolver
from entity_graph.models import (
    DocumentFailure,
    EntityMention,
    EntityRelationship,
    KnowledgeGraph,
    KnowledgeGraphEntity,
    RelationshipKind,
    ResolvedEntityKey,
)
from entity_graph.models.graph import utcnow

logger = logging.getLogger(__name__)


@dataclass
class PreparedMention:
    """A validated mention reduced to what the graph needs."""

    key: ResolvedEntityKey
    name: str
    confidence: float
    category: str | None = None
    context: str = ""


@dataclass
class GraphBuildResult:
    """Graph produced by a build along with skipped documents."""

    graph: KnowledgeGraph
    failures: list[DocumentFailure] = field(default_factory=list)
    document_count: int = 0


class KnowledgeGraphBuilder:
    """Merge entity mentions into a deduplicated co-occurrence graph.

    Every pair of distinct entities in a document gets an undirected
    relationship whose strength grows by one per shared document.
    """

    def __init__(
        self,
        resolver: NormalizationResolver | None = None,
        min_confidence: float = 0.3,
        max_context_snippets: int = 5,
        authority_edge_weight: float = 0.5,
    ):
        """Initialize graph builder.

        Args:
            resolver: Name normalizer, shared with extraction
            min_confidence: Mentions below this confidence are ignored
            max_context_snippets: Context snippets kept per relationship
            authority_edge_weight: Strength added by an authority-seeded relationship

        Raises:
            ValueError: If a numeric setting is out of range
        """
        if not 0.0 <= min_confidence <= 1.0:
            raise ValueError(f"min_confidence must be within [0, 1], got {min_confidence}")
        if max_context_snippets < 1:
            raise ValueError(f"max_context_snippets must be positive, got {max_context_snippets}")
        if authority_edge_weight < 0:
            raise ValueError(f"authority_edge_weight must be >= 0, got {authority_edge_weight}")

        self.resolver = resolver or NormalizationResolver()
        self.min_confidence = min_confidence
        self.max_context_snippets = max_context_snippets
        self.authority_edge_weight = authority_edge_weight

    def build(
        self,
        mentions_by_document: Mapping[str, Iterable[EntityMention | Mapping[str, Any]]],
    ) -> GraphBuildResult:
        """Build a new graph from scratch.

        Args:
            mentions_by_document: Document identifier -> mentions of that document

        Returns:
            GraphBuildResult with the graph and the documents that were skipped
        """
        graph = KnowledgeGraph()
        result = GraphBuildResult(graph=graph)

        for document_id, mentions in mentions_by_document.items():
            try:
                self.merge_document(graph, document_id, mentions)
                result.document_count += 1
            except (ValidationError, ValueError, TypeError, KeyError) as e:
                logger.warning(f"Skipping document {document_id} during graph build: {e}")
                result.failures.append(DocumentFailure(identifier=str(document_id), error=str(e)))

        graph.touch()
        logger.info(
            f"Built knowledge graph: {graph.entity_count} entities, "
            f"{graph.relationship_count} relationships from {result.document_count} documents"
        )
        return result

    def merge_document(
        self,
        graph: KnowledgeGraph,
        document_id: str,
        mentions: Iterable[EntityMention | Mapping[str, Any]],
    ) -> int:
        """Apply one document's mentions to a graph in place.

        Preparation runs before any mutation, so a document that fails
        validation leaves the graph untouched.

        Args:
            graph: Graph to update
            document_id: Identifier of the document
            mentions: Mentions extracted from the document

        Returns:
            Number of distinct entities the document contributed

        Raises:
            ValueError: If the document was already merged or a mention is invalid
        """
        if document_id in graph.document_ids:
            raise ValueError(f"Document {document_id} is already part of the graph")

        prepared = self.prepare(mentions)
        self._apply(graph, document_id, prepared)
        return len(prepared)

    def prepare(self, mentions: Iterable[EntityMention | Mapping[str, Any]]) -> list[PreparedMention]:
        """Validate, threshold and collapse the mentions of one document.

        Raises:
            ValueError: If a mention has an unknown type or is malformed
        """
        collapsed: dict[ResolvedEntityKey, PreparedMention] = {}

        for raw in mentions:
            mention = self._prepare_one(raw)
            if mention is None:
                continue

            existing = collapsed.get(mention.key)
            if existing is None:
                collapsed[mention.key] = mention
            else:
                existing.confidence = max(existing.confidence, mention.confidence)
                existing.category = existing.category or mention.category

        return list(collapsed.values())

    def _prepare_one(self, raw: EntityMention | Mapping[str, Any]) -> PreparedMention | None:
        if isinstance(raw, EntityMention):
            entity_type, name = raw.type, raw.name
            normalized = raw.normalized_name or raw.name
            confidence, category, context = raw.confidence, raw.category, raw.context
        elif isinstance(raw, Mapping):
            entity_type, name = raw["type"], str(raw["name"])
            normalized = raw.get("normalized_name") or name
            confidence = float(raw.get("confidence", 1.0))
            category, context = raw.get("category"), str(raw.get("context") or "")
            if not 0.0 <= confidence <= 1.0:
                raise ValueError(f"Confidence out of range for {name!r}: {confidence}")
        else:
            raise TypeError(f"Unsupported mention type: {type(raw).__name__}")

        if confidence < self.min_confidence:
            return None

        key = self.resolver.resolve(entity_type, normalized)
        if not key.normalized_name:
            return None

        return PreparedMention(
            key=key,
            name=name.strip() or key.normalized_name,
            confidence=confidence,
            category=category,
            context=context,
        )

    def _apply(self, graph: KnowledgeGraph, document_id: str, prepared: list[PreparedMention]) -> None:
        now = utcnow()

        for mention in prepared:
            entity = graph.entities.get(mention.key.id)
            if entity is None:
                entity = KnowledgeGraphEntity(
                    id=mention.key.id,
                    name=mention.name,
                    type=mention.key.type,
                    confidence=mention.confidence,
                    category=mention.category,
                )
                graph.entities[entity.id] = entity

            entity.frequency += 1
            entity.confidence = max(entity.confidence, mention.confidence)
            entity.category = entity.category or mention.category
            entity.related_documents.add(document_id)
            entity.record_surface_form(mention.name)
            entity.last_updated = now

        for first, second in itertools.combinations(prepared, 2):
            relationship = self._get_or_create_relationship(graph, first.key.id, second.key.id)
            relationship.strength += 1
            if document_id not in relationship.documents:
                relationship.documents.append(document_id)
            self._add_context(relationship, first.context or second.context)

        graph.document_ids.add(document_id)
        graph.touch()
        logger.debug(f"Merged document {document_id}: {len(prepared)} entities")

    def seed_authority_relationship(
        self,
        graph: KnowledgeGraph,
        first_id: str,
        second_id: str,
        context: str = "",
    ) -> bool:
        """Connect two existing entities that the knowledge base relates.

        The authority weight is added at most once per pair.

        Returns:
            True if the relationship was created or strengthened
        """
        if first_id == second_id or first_id not in graph.entities or second_id not in graph.entities:
            return False

        existing = graph.get_relationship(first_id, second_id)
        if existing is not None and existing.properties.get("authority_seeded"):
            return False

        relationship = self._get_or_create_relationship(
            graph, first_id, second_id, kind=RelationshipKind.RELATED_TO
        )
        relationship.strength += self.authority_edge_weight
        relationship.properties["authority_seeded"] = True
        self._add_context(relationship, context)
        graph.touch()
        return True

    @staticmethod
    def _get_or_create_relationship(
        graph: KnowledgeGraph,
        first_id: str,
        second_id: str,
        kind: RelationshipKind = RelationshipKind.CO_OCCURS,
    ) -> EntityRelationship:
        key = graph.relationship_key(first_id, second_id)
        relationship = graph.relationships.get(key)
        if relationship is None:
            relationship = EntityRelationship(source_id=key[0], target_id=key[1], kind=kind)
            graph.relationships[key] = relationship
            graph.entities[key[0]].neighbors.add(key[1])
            graph.entities[key[1]].neighbors.add(key[0])
        return relationship

    def _add_context(self, relationship: EntityRelationship, context: str) -> None:
        snippet = context.strip()
        if (
            snippet
            and snippet not in relationship.contexts
            and len(relationship.contexts) < self.max_context_snippets
        ):
            relationship.contexts.append(snippet)
