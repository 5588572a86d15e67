"""Engine settings using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Validated once at construction; invalid values raise
    ``pydantic.ValidationError`` before any component is built.
    """

    model_config = SettingsConfigDict(
        env_prefix="ENTITY_GRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Extraction Settings
    min_confidence: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Minimum mention confidence"
    )
    context_window: int = Field(
        default=50, ge=0, description="Characters of context kept on each side of a match"
    )
    max_context_snippets: int = Field(
        default=5, ge=1, description="Context snippets kept per mention and per relationship"
    )
    extraction_cache_size: int = Field(
        default=1000, ge=1, description="Maximum cached extraction results"
    )
    batch_concurrency: int = Field(
        default=10, ge=1, description="Documents extracted concurrently in a batch"
    )

    # Graph Settings
    top_entities_limit: int = Field(
        default=10, ge=1, description="Entities listed in graph statistics"
    )
    authority_edge_weight: float = Field(
        default=0.5, ge=0.0, description="Strength added by an authority-seeded relationship"
    )

    # Wikidata Settings
    enrichment_enabled: bool = Field(
        default=False, description="Create a Wikidata client when none is injected"
    )
    wikidata_api_url: str = Field(
        default="https://www.wikidata.org/w/api.php", description="MediaWiki API endpoint"
    )
    wikidata_entity_url: str = Field(
        default="https://www.wikidata.org/wiki/Special:EntityData",
        description="Entity data endpoint",
    )
    wikidata_sparql_url: str = Field(
        default="https://query.wikidata.org/sparql", description="SPARQL query endpoint"
    )
    wikidata_language: str = Field(default="en", description="Label language")
    user_agent: str = Field(
        default="entity-graph-engine/0.1 (knowledge graph enrichment)",
        description="User-Agent sent to the knowledge base",
    )
    enrichment_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Timeout for a single enrichment call"
    )
    enrichment_cache_ttl_seconds: float = Field(
        default=24 * 60 * 60, gt=0.0, description="TTL for cached knowledge base records"
    )
    enrichment_cache_size: int = Field(
        default=5000, ge=1, description="Maximum cached knowledge base records"
    )
    enrichment_concurrency: int = Field(
        default=4, ge=1, description="Concurrent enrichment calls"
    )
    related_entities_limit: int = Field(
        default=20, ge=1, le=50, description="Related entities fetched per record"
    )

    # Application Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
