"""Entity mention models produced by extraction."""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .types import DocumentSection, EntityType, Sentiment


@dataclass(frozen=True)
class ResolvedEntityKey:
    """Identity of an entity across the corpus.

    Two mentions merge into one graph node if and only if their keys are equal.
    """

    type: EntityType
    normalized_name: str

    @property
    def id(self) -> str:
        """Graph node identifier, e.g. ``Place:tokyo``."""
        return f"{self.type.value}:{self.normalized_name}"


class EntityMention(BaseModel):
    """One entity detected in a single document."""

    model_config = ConfigDict(frozen=True)

    type: EntityType = Field(..., description="Entity type")
    name: str = Field(..., description="Surface name as reported by extraction")
    normalized_name: str = Field(..., description="Normalized identity name")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Detection confidence")
    context: str = Field(default="", description="Surrounding text")
    category: Optional[str] = Field(None, description="Gazetteer or taxonomy category")
    sentiment: Sentiment = Field(default=Sentiment.NEUTRAL, description="Context sentiment")
    relevance: Optional[float] = Field(None, ge=0.0, le=1.0, description="Relevance to the document")
    mention_count: int = Field(default=1, ge=1, description="Occurrences within the document")
    section: DocumentSection = Field(
        default=DocumentSection.CONTENT, description="Section of the first occurrence"
    )

    @property
    def key(self) -> ResolvedEntityKey:
        """Resolved identity of this mention."""
        return ResolvedEntityKey(self.type, self.normalized_name)
