"""Categorical values shared across the engine."""

from enum import Enum


class EntityType(str, Enum):
    """Entity categories recognised by extraction."""

    PERSON = "Person"
    PLACE = "Place"
    ORGANIZATION = "Organization"
    EVENT = "Event"
    THING = "Thing"
    ACTIVITY = "Activity"
    CULTURAL = "Cultural"
    FOOD = "Food"
    TRANSPORT = "Transport"


class Sentiment(str, Enum):
    """Sentiment of the text surrounding a mention."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class RelationshipKind(str, Enum):
    """Kinds of graph relationships."""

    CO_OCCURS = "co_occurs"
    LOCATED_IN = "located_in"
    PART_OF = "part_of"
    RELATED_TO = "related_to"
    MENTIONED_WITH = "mentioned_with"


class DocumentSection(str, Enum):
    """Part of a document a mention was found in."""

    TITLE = "title"
    EXCERPT = "excerpt"
    CONTENT = "content"
    TAGS = "tags"

    @property
    def weight(self) -> float:
        """Positional weight used for relevance scoring."""
        return _SECTION_WEIGHTS[self]


_SECTION_WEIGHTS = {
    DocumentSection.TITLE: 1.0,
    DocumentSection.EXCERPT: 0.8,
    DocumentSection.CONTENT: 0.5,
    DocumentSection.TAGS: 0.9,
}
