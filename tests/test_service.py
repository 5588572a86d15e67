"""Tests for the entity graph service."""

import json
import logging

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from entity_graph import EntityGraphService, create_service
from entity_graph.config import Settings
from entity_graph.models import Document, EntityType, RelationshipKind


def assert_edges_consistent(graph):
    for (source, target), relationship in graph.relationships.items():
        assert source < target
        assert source in graph.entities and target in graph.entities
        assert target in graph.entities[source].neighbors
        assert source in graph.entities[target].neighbors


class TestEndToEnd:
    """Tests for the documented Tokyo example."""

    @pytest.mark.asyncio
    async def test_tokyo_recommendations(self, service, tokyo_documents):
        """Test recommendations after building from two posts."""
        report = await service.rebuild(tokyo_documents)

        assert report.document_count == 2
        assert report.failures == []

        recommendations = await service.get_entity_recommendations("Tokyo", "Place", 5)
        assert [r.name for r in recommendations] == ["Kyoto", "Shibuya"]
        assert all(r.strength == 1 for r in recommendations)

        tokyo = service.graph.entities["Place:tokyo"]
        assert tokyo.frequency == 2
        assert tokyo.related_documents == {"post-a", "post-b"}

    @pytest.mark.asyncio
    async def test_recommendations_are_deterministic(self, service, tokyo_documents):
        """Test that repeated queries give identical results."""
        await service.rebuild(tokyo_documents)

        first = await service.get_entity_recommendations("Tokyo", "Place")
        second = await service.get_entity_recommendations("tokyo", EntityType.PLACE)

        assert first == second

    @pytest.mark.asyncio
    async def test_unknown_entity(self, service, tokyo_documents):
        """Test that unknown entities and types yield no recommendations."""
        await service.rebuild(tokyo_documents)

        assert await service.get_entity_recommendations("Atlantis", "Place") == []
        assert await service.get_entity_recommendations("Tokyo", "Planet") == []


class TestExtraction:
    """Tests for extraction through the service."""

    def test_extraction_is_idempotent_and_cached(self, service, travel_document):
        """Test that a repeat extraction is a cache hit."""
        extractor = service.extractor
        with patch.object(extractor, "_extract_document", wraps=extractor._extract_document) as spy:
            first = service.extract_entities(travel_document)
            second = service.extract_entities(travel_document)

        assert first == second
        assert spy.call_count == 1

        stats = service.get_extraction_stats()
        assert stats.cached_extractions == 1
        assert stats.cache_hit_rate == pytest.approx(0.5)
        assert stats.total_patterns > 0
        assert stats.last_activity is not None

    def test_threshold_from_settings(self):
        """Test that min_confidence drops weak heuristic matches."""
        strict = EntityGraphService(settings=Settings(_env_file=None, min_confidence=0.5))
        mentions = strict.extract_entities(Document(identifier="d", content="Lisbon was lovely. We loved Tokyo."))

        assert [m.name for m in mentions] == ["Tokyo"]
        assert all(m.confidence >= 0.5 for m in mentions)

    @pytest.mark.asyncio
    async def test_batch_extract(self, service, tokyo_documents):
        """Test batch extraction through the service."""
        result = await service.batch_extract_entities(tokyo_documents)
        assert set(result.entities) == {"post-a", "post-b"}


class TestGraphWrites:
    """Tests for builds, merges and imports."""

    @pytest.mark.asyncio
    async def test_build_knowledge_graph(self, service):
        """Test building from precomputed mentions."""
        graph = await service.build_knowledge_graph(
            {
                "a": [{"type": "Place", "name": "Tokyo"}, {"type": "Place", "name": "TOKYO's"}],
                "b": [{"type": "Place", "name": "tokyo"}, {"type": "Food", "name": "Ramen"}],
            }
        )

        assert graph is service.graph
        assert graph.entities["Place:tokyo"].frequency == 2
        assert set(graph.entities) == {"Place:tokyo", "Food:ramen"}
        assert_edges_consistent(graph)

    @pytest.mark.asyncio
    async def test_merge_documents(self, service, tokyo_documents):
        """Test that incremental merges extend the graph copy-on-write."""
        await service.rebuild(tokyo_documents)
        before = service.graph

        report = await service.merge_documents(
            [Document(identifier="post-c", content="Osaka and Tokyo, then Tokyo again.")]
        )

        assert report.incremental is True
        assert report.document_count == 1
        assert service.graph is not before
        assert service.graph.entities["Place:tokyo"].frequency == 3
        assert before.entities["Place:tokyo"].frequency == 2
        assert "Place:osaka" not in before.entities
        assert_edges_consistent(service.graph)

    @pytest.mark.asyncio
    async def test_merge_reports_duplicates_and_invalid_documents(self, service, tokyo_documents):
        """Test that merge failures are reported per document."""
        await service.rebuild(tokyo_documents)

        report = await service.merge_documents([tokyo_documents[0], {"content": "Kyoto"}])

        assert report.document_count == 0
        assert sorted(f.identifier for f in report.failures) == ["document_1", "post-a"]
        assert service.graph.entities["Place:tokyo"].frequency == 2

    @pytest.mark.asyncio
    async def test_repeated_identifier_in_rebuild_is_reported(self, service):
        """Test that a repeated identifier keeps the first document and reports the rest."""
        report = await service.rebuild(
            [
                Document(identifier="same", content="We visited Tokyo."),
                Document(identifier="same", content="We visited Kyoto."),
            ]
        )

        assert report.document_count == 1
        assert [f.identifier for f in report.failures] == ["same"]
        assert set(service.graph.entities) == {"Place:tokyo"}
        assert service.graph.document_ids == {"same"}

    @pytest.mark.asyncio
    async def test_repeated_identifier_in_merge_is_reported(self, service, tokyo_documents):
        """Test that merges report repeated identifiers too."""
        await service.rebuild(tokyo_documents)

        report = await service.merge_documents(
            [
                Document(identifier="post-c", content="Osaka"),
                Document(identifier="post-c", content="Nara"),
            ]
        )

        assert report.document_count == 1
        assert [f.identifier for f in report.failures] == ["post-c"]
        assert "Place:osaka" in service.graph.entities
        assert "Place:nara" not in service.graph.entities

    @pytest.mark.asyncio
    async def test_rebuild_requires_documents(self, service):
        """Test that rebuild without documents needs a loader."""
        with pytest.raises(ValueError):
            await service.rebuild()

    @pytest.mark.asyncio
    async def test_export_and_import(self, service, settings, tokyo_documents):
        """Test that an export restores into another service."""
        await service.rebuild(tokyo_documents)
        snapshot = await service.export_knowledge_graph()
        json.dumps(snapshot)

        other = EntityGraphService(settings=settings)
        await other.import_knowledge_graph(snapshot)

        assert await other.get_entity_recommendations("Tokyo", "Place") == (
            await service.get_entity_recommendations("Tokyo", "Place")
        )
        assert (await other.get_knowledge_graph_stats()).total_entities == 3


class TestStatsAndExport:
    """Tests for graph statistics through the service."""

    @pytest.mark.asyncio
    async def test_stats_match_export(self, service, tokyo_documents):
        """Test that stats and export agree."""
        await service.rebuild(tokyo_documents)

        stats = await service.get_knowledge_graph_stats()
        snapshot = await service.export_knowledge_graph()

        assert stats.total_entities == len(snapshot["entities"]) == snapshot["metadata"]["entity_count"] == 3
        assert stats.total_relationships == len(snapshot["relationships"]) == 2
        assert stats.most_connected_entity.id == "Place:tokyo"

    @pytest.mark.asyncio
    async def test_stats_are_memoized_per_graph(self, service, tokyo_documents):
        """Test that stats are recomputed only after the graph changes."""
        await service.rebuild(tokyo_documents)

        first = await service.get_knowledge_graph_stats()
        assert await service.get_knowledge_graph_stats() is first

        await service.merge_documents([Document(identifier="post-c", content="Osaka")])
        refreshed = await service.get_knowledge_graph_stats()
        assert refreshed is not first
        assert refreshed.total_entities == 4


class TestCacheInvalidation:
    """Tests for clear_cache."""

    @pytest.mark.asyncio
    async def test_clear_cache_forces_reextraction(self, service, tokyo_documents):
        """Test that cleared extractions are recomputed."""
        extractor = service.extractor
        with patch.object(extractor, "_extract_document", wraps=extractor._extract_document) as spy:
            await service.rebuild(tokyo_documents)
            await service.rebuild(tokyo_documents)
            assert spy.call_count == 2

            service.clear_cache()
            await service.rebuild(tokyo_documents)
            assert spy.call_count == 4

    @pytest.mark.asyncio
    async def test_clear_cache_without_loader_empties_graph(self, service, tokyo_documents):
        """Test that clearing without a loader leaves an empty graph."""
        await service.rebuild(tokyo_documents)

        service.clear_cache()
        service.clear_cache()

        assert service.graph.entity_count == 0
        assert await service.get_entity_recommendations("Tokyo", "Place") == []
        assert len(service.extraction_cache) == 0

    @pytest.mark.asyncio
    async def test_clear_cache_reloads_lazily(self, settings, tokyo_documents):
        """Test that the next read rebuilds from the document loader."""
        loader = MagicMock(return_value=tokyo_documents)
        service = EntityGraphService(settings=settings, document_loader=loader)

        await service.initialize()
        assert loader.call_count == 1
        assert service.graph.entity_count == 3

        service.clear_cache()
        assert loader.call_count == 1

        recommendations = await service.get_entity_recommendations("Tokyo", "Place")
        assert loader.call_count == 2
        assert [r.name for r in recommendations] == ["Kyoto", "Shibuya"]

    @pytest.mark.asyncio
    async def test_clear_during_merge_reloads_corpus(self, settings, tokyo_documents):
        """Test that a merge racing a clear still merges into the reloaded corpus."""
        loader = MagicMock(return_value=tokyo_documents)
        service = EntityGraphService(settings=settings, document_loader=loader)
        await service.initialize()

        extract = service.extractor.batch_extract_entities
        cleared = []

        async def extract_then_clear(documents):
            result = await extract(documents)
            if not cleared:
                cleared.append(True)
                service.clear_cache()
            return result

        with patch.object(service.extractor, "batch_extract_entities", side_effect=extract_then_clear):
            report = await service.merge_documents([Document(identifier="post-c", content="Osaka and Tokyo")])

        assert report.document_count == 1
        assert loader.call_count == 2
        assert service.graph.document_ids == {"post-a", "post-b", "post-c"}
        assert service.graph.entities["Place:tokyo"].frequency == 3

    @pytest.mark.asyncio
    async def test_async_loader(self, settings, tokyo_documents):
        """Test that async document loaders are awaited."""
        loader = AsyncMock(return_value=tokyo_documents)
        service = EntityGraphService(settings=settings, document_loader=loader)

        report = await service.rebuild()

        loader.assert_awaited_once()
        assert report.entity_count == 3


class TestEnrichment:
    """Tests for enrichment through the service."""

    @pytest.mark.asyncio
    async def test_enrich_graph(self, settings, mock_knowledge_base, tokyo_documents):
        """Test authority data and seeded relationships."""
        service = EntityGraphService(settings=settings, knowledge_base=mock_knowledge_base)
        await service.rebuild(tokyo_documents)
        before = service.graph

        report = await service.enrich_graph(["Place:tokyo"])

        assert report.requested == 1
        assert report.enriched == 1
        assert report.seeded_relationships == 1

        tokyo = service.graph.entities["Place:tokyo"]
        assert tokyo.properties["authority"]["external_id"] == "Q1490"
        assert tokyo.properties["authority"]["match_confidence"] == 1.0
        assert before.entities["Place:tokyo"].properties == {}

        relationship = service.graph.get_relationship("Place:tokyo", "Place:kyoto")
        assert relationship.strength == 1.5
        assert relationship.kind == RelationshipKind.CO_OCCURS

        recommendations = await service.get_entity_recommendations("Tokyo", "Place")
        assert [r.name for r in recommendations] == ["Kyoto", "Shibuya"]

    @pytest.mark.asyncio
    async def test_enrichment_failures_are_isolated(self, settings, failing_knowledge_base, tokyo_documents):
        """Test that a broken knowledge base never blocks graph work."""
        service = EntityGraphService(settings=settings, knowledge_base=failing_knowledge_base)

        report = await service.rebuild(tokyo_documents)
        assert report.entity_count == 3

        enrichment_report = await service.enrich_graph()
        assert enrichment_report.requested == 3
        assert enrichment_report.enriched == 0

        assert await service.enhance_entity("Tokyo") is None
        assert await service.find_related_entities("Q1490") == []
        recommendations = await service.get_entity_recommendations("Tokyo", "Place")
        assert [r.name for r in recommendations] == ["Kyoto", "Shibuya"]

    @pytest.mark.asyncio
    async def test_enhance_entity(self, settings, mock_knowledge_base):
        """Test single-entity enrichment."""
        service = EntityGraphService(settings=settings, knowledge_base=mock_knowledge_base)

        enrichment = await service.enhance_entity("Tokyo", "Place")

        assert enrichment.entity_key == "Place:tokyo"
        assert [r.label for r in await service.find_related_entities("Q1490")] == ["Kyoto", "Japan"]

    @pytest.mark.asyncio
    async def test_enrichment_disabled(self, service, tokyo_documents):
        """Test that enrichment is a no-op without a client."""
        await service.rebuild(tokyo_documents)

        report = await service.enrich_graph()

        assert report.enriched == 0
        assert service.knowledge_base is None


class TestLifecycle:
    """Tests for initialization and shutdown."""

    @pytest.mark.asyncio
    async def test_context_manager(self, settings, tokyo_documents):
        """Test async context manager usage."""
        async with EntityGraphService(settings=settings, document_loader=lambda: tokyo_documents) as service:
            assert service.initialized is True
            assert service.get_extraction_stats().knowledge_graph_size == 3

        assert service.initialized is False

    @pytest.mark.asyncio
    async def test_owned_wikidata_client_is_closed(self):
        """Test that a service-created client is released on close."""
        service = EntityGraphService(settings=Settings(_env_file=None, enrichment_enabled=True))

        assert service.enricher.enabled is True
        await service.close()
        assert service.knowledge_base._client.is_closed

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self, settings, mock_knowledge_base):
        """Test that an injected client stays owned by the caller."""
        service = EntityGraphService(settings=settings, knowledge_base=mock_knowledge_base)
        await service.close()

        mock_knowledge_base.close.assert_not_awaited()

    def test_create_service_configures_logging(self, settings):
        """Test the service factory."""
        service = create_service(settings)

        assert isinstance(service, EntityGraphService)
        assert logging.getLogger("entity_graph").level == logging.INFO
