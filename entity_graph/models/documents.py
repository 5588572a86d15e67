"""Source document model consumed by extraction."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class Document(BaseModel):
    """Article-like document to mine for entities."""

    identifier: str = Field(..., min_length=1, description="Stable document identifier (e.g. slug)")
    title: str = Field(default="", description="Document title")
    excerpt: str = Field(default="", description="Short summary shown in listings")
    content: str = Field(default="", description="Body text")
    tags: list[str] = Field(default_factory=list, description="Author-declared tags")

    @field_validator("title", "excerpt", "content", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(tag) for tag in value if tag is not None and str(tag).strip()]
