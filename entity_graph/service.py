"""Top-level entity graph service."""

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import datetime
from typing import Any, Union

from pydantic import ValidationError

from entity_graph.config import Settings, get_settings
from entity_graph.enrichment import AuthorityEnricher, KnowledgeBaseClient, WikidataClient
from entity_graph.extraction import BatchExtraction, EntityExtractor, NormalizationResolver
from entity_graph.graph import KnowledgeGraphBuilder, RecommendationEngine, StatsExporter
from entity_graph.models import (
    AuthorityEnrichment,
    BuildReport,
    Document,
    DocumentFailure,
    EnrichmentReport,
    EntityMention,
    EntityRecommendation,
    EntityType,
    ExtractionStats,
    KnowledgeBaseEntity,
    KnowledgeGraph,
    KnowledgeGraphExport,
    KnowledgeGraphStats,
)
from entity_graph.models.graph import utcnow
from entity_graph.utils.cache import EnrichmentCache, ExtractionCache
from entity_graph.utils.health import SystemHealth, build_health_checker
from entity_graph.utils.logging import setup_logging

logger = logging.getLogger(__name__)

DocumentInput = Union[Document, Mapping[str, Any]]
DocumentLoader = Callable[[], Union[Iterable[DocumentInput], Awaitable[Iterable[DocumentInput]]]]


class EntityGraphService:
    """Extraction, knowledge graph and enrichment behind one object.

    Readers use the current graph reference without locking. Writers
    serialize on one lock, build a new or copied graph off to the side and
    swap the reference, so a reader never observes a half-merged graph.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        knowledge_base: KnowledgeBaseClient | None = None,
        document_loader: DocumentLoader | None = None,
        enrichment_cache: EnrichmentCache | None = None,
    ):
        """Initialize the service.

        Args:
            settings: Engine settings (defaults to environment settings)
            knowledge_base: Knowledge base client; when omitted a Wikidata
                client is created if enrichment is enabled in settings
            document_loader: Callable returning the corpus, sync or async;
                used by ``rebuild()`` and lazy reloads after ``clear_cache()``
            enrichment_cache: Storage for knowledge base records
        """
        self.settings = settings or get_settings()
        self.resolver = NormalizationResolver()

        self.extraction_cache = ExtractionCache(max_size=self.settings.extraction_cache_size)
        self.extractor = EntityExtractor.from_settings(
            self.settings, resolver=self.resolver, cache=self.extraction_cache
        )
        self.builder = KnowledgeGraphBuilder(
            resolver=self.resolver,
            min_confidence=self.settings.min_confidence,
            max_context_snippets=self.settings.max_context_snippets,
            authority_edge_weight=self.settings.authority_edge_weight,
        )
        self.recommender = RecommendationEngine(resolver=self.resolver)
        self.exporter = StatsExporter(top_n=self.settings.top_entities_limit)

        self._owns_knowledge_base = False
        if knowledge_base is None and self.settings.enrichment_enabled:
            knowledge_base = WikidataClient(self.settings)
            self._owns_knowledge_base = True
        self.knowledge_base = knowledge_base
        self.enricher = AuthorityEnricher.from_settings(
            self.settings, knowledge_base, cache=enrichment_cache, resolver=self.resolver
        )

        self.document_loader = document_loader

        self._graph = KnowledgeGraph()
        self._graph_loaded = False
        self._stats_cache: tuple[KnowledgeGraph, KnowledgeGraphStats] | None = None
        self._write_lock = asyncio.Lock()
        self._initialized = False
        self._last_activity: datetime | None = None

    @property
    def graph(self) -> KnowledgeGraph:
        """Current graph snapshot. Treat as read-only."""
        return self._graph

    @property
    def initialized(self) -> bool:
        return self._initialized

    # Lifecycle

    async def initialize(self) -> None:
        """Load the corpus from the document loader, if one is configured."""
        if self._initialized:
            return
        await self._ensure_loaded()
        self._initialized = True
        logger.info(
            f"Entity graph service initialized: {self._graph.entity_count} entities, "
            f"enrichment {'enabled' if self.enricher.enabled else 'disabled'}"
        )

    async def close(self) -> None:
        """Release the knowledge base client if this service created it."""
        if self._owns_knowledge_base and self.knowledge_base is not None:
            await self.knowledge_base.close()
        self._initialized = False
        logger.info("Entity graph service closed")

    async def __aenter__(self) -> "EntityGraphService":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Extraction

    def extract_entities(self, document: DocumentInput) -> list[EntityMention]:
        """Extract entities from one document. Never raises."""
        self._touch()
        return self.extractor.extract_entities(document)

    async def batch_extract_entities(self, documents: Iterable[DocumentInput]) -> BatchExtraction:
        """Extract entities from many documents concurrently."""
        self._touch()
        return await self.extractor.batch_extract_entities(documents)

    def get_extraction_stats(self) -> ExtractionStats:
        """Extraction layer statistics."""
        cache_stats = self.extraction_cache.get_stats()
        return ExtractionStats(
            total_patterns=self.extractor.total_patterns,
            cached_extractions=len(self.extraction_cache),
            cache_hit_rate=round(cache_stats.hit_rate, 4),
            knowledge_graph_size=self._graph.entity_count,
            initialized=self._initialized,
            last_activity=self._last_activity,
        )

    # Graph writes

    async def build_knowledge_graph(
        self,
        mentions_by_document: Mapping[str, Iterable[EntityMention | Mapping[str, Any]]],
    ) -> KnowledgeGraph:
        """Build a graph from precomputed mentions and make it current.

        Args:
            mentions_by_document: Document identifier -> mentions

        Returns:
            The new current graph
        """
        result = self.builder.build(mentions_by_document)
        async with self._write_lock:
            self._swap(result.graph)
        return result.graph

    async def rebuild(self, documents: Iterable[DocumentInput] | None = None) -> BuildReport:
        """Extract a corpus and replace the graph with a fresh build.

        Args:
            documents: Corpus to build from (defaults to the document loader)

        Returns:
            BuildReport of the rebuild

        Raises:
            ValueError: If no documents are given and no loader is configured
        """
        if documents is None:
            documents = await self._load_documents()

        start_time = time.perf_counter()
        extraction = await self.extractor.batch_extract_entities(documents)
        async with self._write_lock:
            report = self._build_and_swap(extraction)
        report.elapsed_seconds = time.perf_counter() - start_time
        return report

    async def merge_documents(self, documents: Iterable[DocumentInput]) -> BuildReport:
        """Incrementally add documents to the current graph.

        Documents already part of the graph are reported as failures.

        Args:
            documents: New documents

        Returns:
            BuildReport with ``incremental`` set
        """
        await self._ensure_loaded()

        start_time = time.perf_counter()
        extraction = await self.extractor.batch_extract_entities(documents)
        report = BuildReport(incremental=True, failures=list(extraction.failures))

        async with self._write_lock:
            await self._reload_if_cleared()
            graph = self._graph.copy()
            for identifier, mentions in extraction.successful().items():
                try:
                    self.builder.merge_document(graph, identifier, mentions)
                    report.document_count += 1
                except (ValidationError, ValueError, TypeError, KeyError) as e:
                    logger.warning(f"Skipping document {identifier} during merge: {e}")
                    report.failures.append(DocumentFailure(identifier=identifier, error=str(e)))
            self._swap(graph)

        report.entity_count = graph.entity_count
        report.relationship_count = graph.relationship_count
        report.elapsed_seconds = time.perf_counter() - start_time
        logger.info(
            f"Merged {report.document_count} documents: {graph.entity_count} entities, "
            f"{graph.relationship_count} relationships, {len(report.failures)} failures"
        )
        return report

    async def import_knowledge_graph(
        self,
        snapshot: KnowledgeGraphExport | Mapping[str, Any],
    ) -> KnowledgeGraph:
        """Replace the current graph with a restored export.

        Raises:
            pydantic.ValidationError: If the snapshot is malformed
            ValueError: If the snapshot is inconsistent
        """
        graph = self.exporter.restore(snapshot)
        async with self._write_lock:
            self._swap(graph)
        return graph

    def clear_cache(self) -> None:
        """Drop cached extractions, knowledge base records and the graph.

        The next graph read rebuilds from the document loader when one is
        configured, otherwise it sees an empty graph. Safe to call repeatedly.
        """
        self.extraction_cache.clear()
        self.enricher.clear_cache()
        self._graph = KnowledgeGraph()
        self._graph_loaded = False
        self._stats_cache = None
        logger.info("Entity graph caches cleared")

    # Graph reads

    async def get_entity_recommendations(
        self,
        name: str,
        entity_type: EntityType | str,
        limit: int = 10,
    ) -> list[EntityRecommendation]:
        """Entities most strongly related to the named entity.

        Args:
            name: Entity name in any surface form
            entity_type: Entity type or its string value
            limit: Maximum recommendations

        Returns:
            Ranked recommendations; empty for unknown entities
        """
        graph = await self._ensure_loaded()
        self._touch()
        return self.recommender.recommend(graph, name, entity_type, limit)

    async def get_knowledge_graph_stats(self) -> KnowledgeGraphStats:
        """Aggregate statistics of the current graph, memoized per graph."""
        graph = await self._ensure_loaded()
        if self._stats_cache is not None and self._stats_cache[0] is graph:
            return self._stats_cache[1]

        stats = self.exporter.stats(graph)
        self._stats_cache = (graph, stats)
        return stats

    async def export_knowledge_graph(self) -> dict[str, Any]:
        """JSON-serializable export of the current graph."""
        graph = await self._ensure_loaded()
        return self.exporter.export(graph).model_dump(mode="json")

    async def check_health(self) -> SystemHealth:
        """Run the knowledge graph and knowledge base health checks."""
        return await build_health_checker(self).check_all()

    # Enrichment

    async def enhance_entity(
        self,
        name: str,
        entity_type: EntityType | str | None = None,
    ) -> AuthorityEnrichment | None:
        """Look up one entity in the knowledge base. Never raises."""
        return await self.enricher.enhance_entity(name, entity_type)

    async def find_related_entities(self, external_id: str) -> list[KnowledgeBaseEntity]:
        """Knowledge base entities related to an external id. Never raises."""
        return await self.enricher.find_related_entities(external_id)

    async def enrich_graph(
        self,
        entity_ids: Iterable[str] | None = None,
        seed_relationships: bool = True,
    ) -> EnrichmentReport:
        """Attach authority data to graph entities.

        Lookups run outside the write lock with bounded concurrency. Results
        are written into a copy of the graph which is then swapped in.

        Args:
            entity_ids: Entities to enrich (defaults to every entity)
            seed_relationships: Connect entities the knowledge base relates

        Returns:
            EnrichmentReport with counts
        """
        start_time = time.perf_counter()
        graph = await self._ensure_loaded()
        targets = [
            graph.entities[entity_id]
            for entity_id in (entity_ids if entity_ids is not None else list(graph.entities))
            if entity_id in graph.entities
        ]
        report = EnrichmentReport(requested=len(targets))
        if not targets or not self.enricher.enabled:
            return report

        semaphore = asyncio.Semaphore(self.settings.enrichment_concurrency)

        async def lookup(entity_id: str, name: str, entity_type: EntityType):
            async with semaphore:
                enrichment = await self.enricher.enhance_entity(name, entity_type)
                related: list[KnowledgeBaseEntity] = []
                if enrichment is not None and seed_relationships:
                    related = await self.enricher.find_related_entities(enrichment.external_id)
            return entity_id, enrichment, related

        results = await asyncio.gather(
            *(lookup(entity.id, entity.name, entity.type) for entity in targets)
        )

        async with self._write_lock:
            await self._reload_if_cleared()
            updated = self._graph.copy()
            ids_by_name: dict[str, list[str]] = {}
            for entity in updated.entities.values():
                ids_by_name.setdefault(self.resolver.normalize(entity.name), []).append(entity.id)

            for entity_id, enrichment, related in results:
                entity = updated.entities.get(entity_id)
                if entity is None or enrichment is None:
                    continue
                entity.properties["authority"] = enrichment.model_dump(mode="json")
                entity.last_updated = utcnow()
                report.enriched += 1

                for item in related:
                    for target_id in ids_by_name.get(self.resolver.normalize(item.label), []):
                        if self.builder.seed_authority_relationship(
                            updated, entity_id, target_id, context=f"{enrichment.label} / {item.label}"
                        ):
                            report.seeded_relationships += 1

            updated.touch()
            self._swap(updated)

        report.elapsed_seconds = time.perf_counter() - start_time
        logger.info(
            f"Enriched {report.enriched}/{report.requested} entities, "
            f"seeded {report.seeded_relationships} relationships"
        )
        return report

    # Internals

    def _swap(self, graph: KnowledgeGraph) -> None:
        """Make ``graph`` current. Caller holds the write lock."""
        self._graph = graph
        self._graph_loaded = True
        self._stats_cache = None
        self._touch()

    def _touch(self) -> None:
        self._last_activity = utcnow()

    async def _ensure_loaded(self) -> KnowledgeGraph:
        """Current graph, rebuilt from the document loader if it was cleared."""
        if self._graph_loaded or self.document_loader is None:
            return self._graph

        async with self._write_lock:
            await self._reload_if_cleared()
        return self._graph

    async def _reload_if_cleared(self) -> None:
        """Rebuild from the document loader if the graph was cleared. Caller holds the write lock."""
        if self._graph_loaded or self.document_loader is None:
            return

        documents = await self._load_documents()
        extraction = await self.extractor.batch_extract_entities(documents)
        self._build_and_swap(extraction)

    async def _load_documents(self) -> list[DocumentInput]:
        if self.document_loader is None:
            raise ValueError("No documents given and no document loader configured")

        loaded = self.document_loader()
        if inspect.isawaitable(loaded):
            loaded = await loaded
        return list(loaded)

    def _build_and_swap(self, extraction: BatchExtraction) -> BuildReport:
        """Build from an extraction and swap it in. Caller holds the write lock."""
        result = self.builder.build(extraction.successful())
        self._swap(result.graph)

        return BuildReport(
            document_count=result.document_count,
            entity_count=result.graph.entity_count,
            relationship_count=result.graph.relationship_count,
            failures=[*extraction.failures, *result.failures],
        )


def create_service(settings: Settings | None = None, **kwargs: Any) -> EntityGraphService:
    """Configure logging and create a service from settings.

    Args:
        settings: Engine settings (defaults to environment settings)
        **kwargs: Passed to EntityGraphService

    Returns:
        New EntityGraphService
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    return EntityGraphService(settings, **kwargs)
