"""Authority enrichment models."""

import time

from pydantic import BaseModel, Field


class KnowledgeBaseEntity(BaseModel):
    """Entity record returned by an external knowledge base."""

    id: str = Field(..., description="External identifier (e.g. Q1490)")
    label: str = Field(default="", description="Preferred label")
    description: str = Field(default="", description="Short description")
    aliases: list[str] = Field(default_factory=list, description="Known alternative labels")
    statement_count: int = Field(default=0, ge=0, description="Number of statements")
    sitelink_count: int = Field(default=0, ge=0, description="Number of sitelinks")
    reference_count: int = Field(default=0, ge=0, description="Number of statement references")
    sitelinks: list[str] = Field(default_factory=list, description="Sitelink URLs")


class AuthorityEnrichment(BaseModel):
    """Authority data attached to a graph entity."""

    entity_key: str = Field(..., description="Originating entity key")
    entity_name: str = Field(..., description="Name that was looked up")
    external_id: str = Field(..., description="Knowledge base identifier")
    label: str = Field(default="", description="Knowledge base label")
    description: str = Field(default="", description="Knowledge base description")
    aliases: list[str] = Field(default_factory=list, description="Known aliases")
    statement_count: int = Field(default=0, ge=0)
    sitelink_count: int = Field(default=0, ge=0)
    reference_count: int = Field(default=0, ge=0)
    authority_score: float = Field(..., ge=0.0, le=1.0, description="How established the entity is")
    match_confidence: float = Field(..., ge=0.0, le=1.0, description="Reliability of the match")
    cached_at: float = Field(default_factory=time.time, description="Unix time the record was fetched")
    ttl_seconds: float = Field(default=24 * 60 * 60, gt=0.0, description="Record time-to-live")

    @property
    def expires_at(self) -> float:
        return self.cached_at + self.ttl_seconds

    @property
    def is_expired(self) -> bool:
        return time.time() > self.expires_at
