"""Canonicalization of surface names into stable identity keys."""

import logging
import re
import unicodedata
from typing import Any

from entity_graph.models import EntityType, ResolvedEntityKey

logger = logging.getLogger(__name__)

_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "ʼ": "'", "`": "'"})
_POSSESSIVE = re.compile(r"(?<=\w)'s\b|(?<=s)'(?=\s|$)")
_PUNCTUATION = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")

# Singular forms that merely end in "s"
_PLURAL_EXCEPTIONS = ("ss", "us", "is")


class NormalizationResolver:
    """Turn raw entity names into normalized keys.

    ``normalize`` is total (never raises) and idempotent.
    """

    def normalize(self, name: Any) -> str:
        """Normalize a surface name.

        Args:
            name: Raw name; non-strings are converted with ``str()``

        Returns:
            Lowercase, accent-free, punctuation-free name with collapsed
            whitespace and the trailing plural/possessive folded
        """
        if name is None:
            return ""
        if not isinstance(name, str):
            name = str(name)

        text = unicodedata.normalize("NFKD", name.lower())
        text = "".join(ch for ch in text if not unicodedata.combining(ch))
        text = text.translate(_APOSTROPHES).lower()
        text = _POSSESSIVE.sub("", text)
        text = _PUNCTUATION.sub(" ", text)
        text = _WHITESPACE.sub(" ", text).strip()
        if not text:
            return ""

        words = text.split(" ")
        words[-1] = self._singularize(words[-1])
        return " ".join(words)

    @staticmethod
    def _singularize(word: str) -> str:
        if len(word) <= 3 or not word.endswith("s"):
            return word
        if word.endswith("ies") and len(word) > 4:
            return word[:-3] + "y"
        if word.endswith(_PLURAL_EXCEPTIONS):
            return word
        return word[:-1]

    def resolve(self, entity_type: EntityType | str, name: Any) -> ResolvedEntityKey:
        """Resolve a typed name to its identity key.

        Args:
            entity_type: Entity type or its string value
            name: Raw name

        Returns:
            ResolvedEntityKey for the pair

        Raises:
            ValueError: If ``entity_type`` is not a known type
        """
        return ResolvedEntityKey(self.parse_type(entity_type), self.normalize(name))

    @staticmethod
    def parse_type(entity_type: EntityType | str) -> EntityType:
        """Coerce a type value, accepting case-insensitive strings."""
        if isinstance(entity_type, EntityType):
            return entity_type

        value = str(entity_type).strip()
        for member in EntityType:
            if member.value.lower() == value.lower() or member.name.lower() == value.lower():
                return member
        raise ValueError(f"Unknown entity type: {entity_type!r}")
