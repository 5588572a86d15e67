"""Authority enrichment from external knowledge bases."""

from .client import KnowledgeBaseClient
from .enricher import AuthorityEnricher, authority_score, match_confidence
from .wikidata import WikidataClient, validate_entity_id

__all__ = [
    "AuthorityEnricher",
    "KnowledgeBaseClient",
    "WikidataClient",
    "authority_score",
    "match_confidence",
    "validate_entity_id",
]
