"""Authority enrichment of graph entities from an external knowledge base."""

import asyncio
import logging

from entity_graph.config import Settings
from entity_graph.extraction.normalization import NormalizationResolver
from entity_graph.models import AuthorityEnrichment, EntityType, KnowledgeBaseEntity
from entity_graph.utils.cache import EnrichmentCache, LRUCache

from .client import KnowledgeBaseClient

logger = logging.getLogger(__name__)


def match_confidence(search_term: str, entity: KnowledgeBaseEntity) -> float:
    """How well a knowledge base entity matches the name that was searched.

    Args:
        search_term: Name that was looked up
        entity: Candidate record

    Returns:
        1.0 exact label, 0.95 alias, 0.8 substring either way,
        0.6 found in the description, 0.3 otherwise
    """
    term = search_term.strip().casefold()
    label = entity.label.strip().casefold()

    if not term:
        return 0.3
    if term == label:
        return 1.0
    if any(alias.strip().casefold() == term for alias in entity.aliases):
        return 0.95
    if label and (term in label or label in term):
        return 0.8
    if term in entity.description.casefold():
        return 0.6
    return 0.3


def authority_score(entity: KnowledgeBaseEntity) -> float:
    """Score in [0, 1] of how established an entity is.

    Sitelinks weigh most, then references, then statements.
    """
    raw = 2 * entity.sitelink_count + 0.5 * entity.statement_count + entity.reference_count
    return min(1.0, raw / 100)


class AuthorityEnricher:
    """Look up entities in a knowledge base and score the match.

    Every failure (network, parsing, timeout) is logged and degrades to
    "no enrichment"; nothing propagates to the caller.
    """

    SEARCH_LIMIT = 5

    def __init__(
        self,
        client: KnowledgeBaseClient | None,
        cache: EnrichmentCache | None = None,
        timeout_seconds: float = 10.0,
        cache_ttl_seconds: float = 24 * 60 * 60,
        cache_size: int = 5000,
        related_limit: int = 20,
        resolver: NormalizationResolver | None = None,
    ):
        """Initialize authority enricher.

        Args:
            client: Knowledge base client; None disables enrichment
            cache: Record cache keyed by external id (defaults to an LRUCache)
            timeout_seconds: Timeout for a single enrichment call
            cache_ttl_seconds: TTL of cached records and of produced enrichments
            cache_size: Size of the default record cache
            related_limit: Maximum related entities returned
            resolver: Name normalizer used to build entity keys
        """
        self.client = client
        self.cache = cache if cache is not None else LRUCache(
            max_size=cache_size,
            ttl_seconds=cache_ttl_seconds,
            name="authority_records",
        )
        self.timeout_seconds = timeout_seconds
        self.cache_ttl_seconds = cache_ttl_seconds
        self.related_limit = related_limit
        self.resolver = resolver or NormalizationResolver()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: KnowledgeBaseClient | None,
        cache: EnrichmentCache | None = None,
        resolver: NormalizationResolver | None = None,
    ) -> "AuthorityEnricher":
        """Create an enricher configured from settings."""
        return cls(
            client=client,
            cache=cache,
            timeout_seconds=settings.enrichment_timeout_seconds,
            cache_ttl_seconds=settings.enrichment_cache_ttl_seconds,
            cache_size=settings.enrichment_cache_size,
            related_limit=settings.related_entities_limit,
            resolver=resolver,
        )

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def enhance_entity(
        self,
        name: str,
        entity_type: EntityType | str | None = None,
    ) -> AuthorityEnrichment | None:
        """Enrich an entity name with knowledge base authority data.

        Args:
            name: Entity name to look up
            entity_type: Optional type, used to build the entity key

        Returns:
            AuthorityEnrichment, or None when disabled, unmatched or failed
        """
        if self.client is None or not name or not name.strip():
            return None

        try:
            return await asyncio.wait_for(
                self._enhance(name.strip(), entity_type),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Enrichment of {name!r} timed out after {self.timeout_seconds}s")
            return None
        except Exception as e:
            logger.warning(f"Enrichment of {name!r} failed: {e}")
            return None

    async def _enhance(
        self,
        name: str,
        entity_type: EntityType | str | None,
    ) -> AuthorityEnrichment | None:
        if entity_type is not None:
            entity_key = self.resolver.resolve(entity_type, name).id
        else:
            entity_key = self.resolver.normalize(name)

        candidates = await self.client.search(name, limit=self.SEARCH_LIMIT)
        if not candidates:
            logger.debug(f"No knowledge base match for {name!r}")
            return None

        # max() keeps the first of equal scores, i.e. search order
        best = max(candidates, key=lambda candidate: match_confidence(name, candidate))
        record = await self._get_record(best.id) or best

        enrichment = AuthorityEnrichment(
            entity_key=entity_key,
            entity_name=name,
            external_id=record.id,
            label=record.label,
            description=record.description,
            aliases=list(record.aliases),
            statement_count=record.statement_count,
            sitelink_count=record.sitelink_count,
            reference_count=record.reference_count,
            authority_score=authority_score(record),
            match_confidence=match_confidence(name, record),
            ttl_seconds=self.cache_ttl_seconds,
        )
        logger.info(
            f"Enriched {name!r} with {record.id} "
            f"(authority {enrichment.authority_score:.2f}, match {enrichment.match_confidence:.2f})"
        )
        return enrichment

    async def _get_record(self, external_id: str) -> KnowledgeBaseEntity | None:
        cached = self.cache.get(external_id)
        if isinstance(cached, KnowledgeBaseEntity):
            return cached

        record = await self.client.get_by_id(external_id)
        if record is not None:
            self.cache.set(external_id, record, ttl=self.cache_ttl_seconds)
        return record

    async def find_related_entities(self, external_id: str) -> list[KnowledgeBaseEntity]:
        """Entities the knowledge base links to ``external_id``.

        Returns:
            Up to ``related_limit`` entities; empty when disabled or on failure
        """
        if self.client is None:
            return []

        try:
            related = await asyncio.wait_for(
                self.client.get_related(external_id, limit=self.related_limit),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Related entity lookup for {external_id} timed out")
            return []
        except Exception as e:
            logger.warning(f"Related entity lookup for {external_id} failed: {e}")
            return []

        return list(related)[:self.related_limit]

    def clear_cache(self) -> None:
        """Drop cached knowledge base records."""
        self.cache.clear()
