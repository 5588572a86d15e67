"""Pytest configuration and fixtures."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from entity_graph.config import Settings
from entity_graph.extraction import EntityExtractor, NormalizationResolver
from entity_graph.graph import KnowledgeGraphBuilder
from entity_graph.models import Document, KnowledgeBaseEntity
from entity_graph.service import EntityGraphService
from entity_graph.utils.cache import ExtractionCache


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def resolver():
    return NormalizationResolver()


@pytest.fixture
def extraction_cache():
    return ExtractionCache(max_size=100)


@pytest.fixture
def extractor(resolver, extraction_cache):
    return EntityExtractor(resolver=resolver, cache=extraction_cache)


@pytest.fixture
def builder(resolver):
    return KnowledgeGraphBuilder(resolver=resolver)


@pytest.fixture
def tokyo_documents():
    """Two short travel posts sharing Tokyo."""
    return [
        Document(identifier="post-a", content="We visited Tokyo and Shibuya."),
        Document(identifier="post-b", content="Tokyo is famous for Kyoto day trips."),
    ]


@pytest.fixture
def travel_document():
    return Document(
        identifier="bangkok-guide",
        title="Street Food in Bangkok",
        excerpt="The best pad thai we ever had.",
        content=(
            "Bangkok is amazing. We took a tuk tuk to Wat Pho and ate delicious "
            "pad thai near Khao San Road. Later we met Somchai, our guide. "
            "We walked to Lumpini Park."
        ),
        tags=["street-food", "thailand"],
    )


@pytest.fixture
def tokyo_record():
    return KnowledgeBaseEntity(
        id="Q1490",
        label="Tokyo",
        description="capital and largest city of Japan",
        aliases=["Tokyo Metropolis", "Tōkyō"],
        statement_count=40,
        sitelink_count=30,
        reference_count=10,
    )


@pytest.fixture
def mock_knowledge_base(tokyo_record):
    """Knowledge base client that knows Tokyo and relates it to Kyoto."""
    client = MagicMock()
    client.search = AsyncMock(return_value=[tokyo_record])
    client.get_by_id = AsyncMock(return_value=tokyo_record)
    client.get_related = AsyncMock(
        return_value=[
            KnowledgeBaseEntity(id="Q34600", label="Kyoto", description="city in Japan"),
            KnowledgeBaseEntity(id="Q17", label="Japan", description="country in East Asia"),
        ]
    )
    client.close = AsyncMock()
    return client


@pytest.fixture
def failing_knowledge_base():
    """Knowledge base client whose every call fails."""
    client = MagicMock()
    client.search = AsyncMock(side_effect=ConnectionError("knowledge base unreachable"))
    client.get_by_id = AsyncMock(side_effect=ConnectionError("knowledge base unreachable"))
    client.get_related = AsyncMock(side_effect=ConnectionError("knowledge base unreachable"))
    client.close = AsyncMock()
    return client


@pytest.fixture
def service(settings):
    return EntityGraphService(settings=settings)
